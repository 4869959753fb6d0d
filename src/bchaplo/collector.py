from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from .errors import ErrorPolicy, OutOfRangePositionError, UnexpectedTagTypeError
from .evidence import EvidenceAggregator
from .models import EvidenceUnit, ReadObservation, SiteKey

logger = logging.getLogger(__name__)


def new_read_counts() -> Dict[str, int]:
    return {
        "reads_seen": 0,
        "reads_with_evidence": 0,
        "reads_no_barcode": 0,
        "reads_no_offset": 0,
        "reads_non_snv": 0,
        "reads_skipped_tag_type": 0,
        "reads_skipped_out_of_range": 0,
        "evidence_alt": 0,
        "evidence_ref": 0,
    }


def _barcode_of(obs: ReadObservation, barcode_tag: str) -> Optional[str]:
    if obs.barcode is None:
        return None
    if not isinstance(obs.barcode, str):
        raise UnexpectedTagTypeError(
            f"Read {obs.qname}: {barcode_tag} tag is {type(obs.barcode).__name__}, expected a string"
        )
    return obs.barcode


def _base_at(obs: ReadObservation) -> Optional[str]:
    qpos = obs.query_position
    if qpos is None:
        return None
    if qpos < 0 or qpos >= len(obs.query_sequence):
        raise OutOfRangePositionError(
            f"Read {obs.qname}: query position {qpos} outside read of length "
            f"{len(obs.query_sequence)}"
        )
    return obs.query_sequence[qpos]


def collect(
    site: SiteKey,
    site_evidence_type: EvidenceUnit,
    alt_allele: Optional[str],
    pileup: Iterable[ReadObservation],
    aggregator: EvidenceAggregator,
    *,
    barcode_tag: str = "CB",
    on_error: ErrorPolicy = ErrorPolicy.ABORT,
    counts: Optional[Dict[str, int]] = None,
) -> Dict[str, int]:
    """Record one evidence unit per eligible read of ``pileup`` into ``aggregator``.

    A read matching the single-base ALT adds ``site_evidence_type``; any other
    base adds ``REFERENCE``. Reads without a barcode or without an aligned
    base at the site, and every read at a non-SNV site, add nothing.

    Returns the (updated) read counters.
    """
    if counts is None:
        counts = new_read_counts()

    snv = alt_allele is not None and len(alt_allele) == 1
    alt = alt_allele.upper() if snv else None

    for obs in pileup:
        counts["reads_seen"] += 1
        try:
            barcode = _barcode_of(obs, barcode_tag)
            if barcode is None:
                counts["reads_no_barcode"] += 1
                continue
            base = _base_at(obs)
        except UnexpectedTagTypeError as e:
            if on_error is ErrorPolicy.ABORT:
                raise
            logger.warning("Skipping read: %s", e)
            counts["reads_skipped_tag_type"] += 1
            continue
        except OutOfRangePositionError as e:
            if on_error is ErrorPolicy.ABORT:
                raise
            logger.warning("Skipping read: %s", e)
            counts["reads_skipped_out_of_range"] += 1
            continue

        if base is None:
            counts["reads_no_offset"] += 1
            continue
        if alt is None:
            counts["reads_non_snv"] += 1
            continue

        if base.upper() == alt:
            aggregator.update_site_data(barcode, site, 1, site_evidence_type)
            counts["evidence_alt"] += 1
        else:
            aggregator.update_site_data(barcode, site, 1, EvidenceUnit.REFERENCE)
            counts["evidence_ref"] += 1
        counts["reads_with_evidence"] += 1

    return counts
