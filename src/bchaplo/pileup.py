from __future__ import annotations

import logging
from typing import Iterator

import pysam

from .models import ReadObservation

logger = logging.getLogger(__name__)


def observation_from_pileup_read(
    pread: pysam.PileupRead, barcode_tag: str = "CB"
) -> ReadObservation:
    """Convert a pysam PileupRead into the collector's read view."""
    read = pread.alignment
    barcode = read.get_tag(barcode_tag) if read.has_tag(barcode_tag) else None
    qpos = None
    if not (pread.is_del or pread.is_refskip):
        qpos = pread.query_position
    return ReadObservation(
        qname=str(read.query_name),
        barcode=barcode,
        query_position=qpos,
        query_sequence=read.query_sequence or "",
    )


def iter_site_observations(
    bam: pysam.AlignmentFile,
    chrom: str,
    pos0: int,
    *,
    barcode_tag: str = "CB",
    max_depth: int = 8000,
) -> Iterator[ReadObservation]:
    """Yield one observation per read covering ``chrom:pos0`` (0-based).

    Only unmapped, secondary, QC-fail and duplicate reads are dropped (pysam's
    default flag filter). Orphan mates are kept, overlapping mates count as two
    reads, and base-quality filtering is disabled.
    """
    columns = bam.pileup(
        chrom,
        pos0,
        pos0 + 1,
        truncate=True,
        ignore_orphans=False,
        ignore_overlaps=False,
        min_base_quality=0,
        max_depth=max_depth,
    )
    for column in columns:
        if column.reference_pos != pos0:
            continue
        for pread in column.pileups:
            yield observation_from_pileup_read(pread, barcode_tag)
