from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO, Tuple

import numpy as np
import pysam
from tqdm import tqdm

from .classify import classify_site
from .collector import collect, new_read_counts
from .errors import (
    ErrorPolicy,
    MalformedRecordError,
    MissingGenotypeError,
    MissingRequiredArgumentError,
)
from .evidence import EvidenceAggregator
from .models import BarcodeTally, EvidenceUnit, HaplotypeClass
from .pileup import iter_site_observations
from .sites import require_sample, site_from_record, vcf_samples
from .utils import ensure_outdir, open_textmaybe_gzip, write_json

logger = logging.getLogger(__name__)

MODES = ("maternal", "paternal")


def resolve_reference_sample(
    mode: str,
    *,
    mother: Optional[str],
    father: Optional[str],
) -> str:
    """Return the sample whose genotype classifies sites in ``mode``."""
    if mode == "maternal":
        if not mother:
            raise MissingRequiredArgumentError("--name-mother is required in maternal mode")
        return mother
    if mode == "paternal":
        if not father:
            raise MissingRequiredArgumentError("--name-father is required in paternal mode")
        return father
    raise ValueError(f"Mode must be one of {MODES}, got '{mode}'")


def _new_site_counts() -> Dict[str, int]:
    return {
        "records_total": 0,
        "sites_transmitted": 0,
        "sites_maternal": 0,
        "sites_non_snv": 0,
        "sites_contig_not_in_bam": 0,
        "sites_skipped_malformed": 0,
        "sites_skipped_missing_genotype": 0,
    }


def collect_evidence(
    *,
    vcf_path: str,
    bam_path: str,
    sample: str,
    barcode_tag: str = "CB",
    on_error: ErrorPolicy = ErrorPolicy.ABORT,
    max_depth: int = 8000,
    progress: bool = True,
) -> Tuple[EvidenceAggregator, Dict[str, int]]:
    """Single forward pass over the VCF, filling an evidence table from BAM pileups."""
    aggregator = EvidenceAggregator()
    site_counts = _new_site_counts()
    read_counts = new_read_counts()

    with pysam.VariantFile(vcf_path) as vcf, pysam.AlignmentFile(bam_path, "rb") as bam:
        require_sample(list(vcf.header.samples), sample, role="reference")
        bam_contigs = set(bam.references)

        records: Iterable[pysam.VariantRecord] = vcf
        if progress:
            records = tqdm(records, unit="site", desc="Collecting evidence")

        for rec in records:
            site_counts["records_total"] += 1
            try:
                site = site_from_record(rec, sample)
                evidence_type = classify_site(site.genotype)
            except MalformedRecordError as e:
                if on_error is ErrorPolicy.ABORT:
                    raise
                logger.warning("Skipping site: %s", e)
                site_counts["sites_skipped_malformed"] += 1
                continue
            except MissingGenotypeError as e:
                if on_error is ErrorPolicy.ABORT:
                    raise
                logger.warning("Skipping site: %s", e)
                site_counts["sites_skipped_missing_genotype"] += 1
                continue

            if evidence_type is EvidenceUnit.TRANSMITTED:
                site_counts["sites_transmitted"] += 1
            else:
                site_counts["sites_maternal"] += 1
            if site.alt is None or len(site.alt) != 1:
                site_counts["sites_non_snv"] += 1

            if site.chrom not in bam_contigs:
                logger.debug("Contig %s absent from BAM; no reads for %s", site.chrom, site.record_id)
                site_counts["sites_contig_not_in_bam"] += 1
                continue

            seen_before = read_counts["reads_seen"]
            collect(
                site.key,
                evidence_type,
                site.alt,
                iter_site_observations(
                    bam, site.chrom, site.pos0, barcode_tag=barcode_tag, max_depth=max_depth
                ),
                aggregator,
                barcode_tag=barcode_tag,
                on_error=on_error,
                counts=read_counts,
            )
            logger.debug(
                "%s:%d depth %d (%s site, ALT %s)",
                site.chrom,
                site.pos0,
                read_counts["reads_seen"] - seen_before,
                evidence_type.value,
                site.alt,
            )

    counts: Dict[str, int] = {}
    counts.update(site_counts)
    counts.update(read_counts)
    logger.info(
        "Processed %d VCF records; %d barcodes with %d evidence entries",
        site_counts["records_total"],
        len(aggregator),
        aggregator.n_entries,
    )
    return aggregator, counts


def classify_barcodes(
    *,
    vcf_path: str,
    bam_path: str,
    mother: str,
    proband: Optional[str] = None,
    barcode_tag: str = "CB",
    on_error: ErrorPolicy | str = ErrorPolicy.ABORT,
    max_depth: int = 8000,
    progress: bool = True,
) -> Tuple[List[BarcodeTally], List[HaplotypeClass], Dict[str, object]]:
    """Main workhorse: collect evidence for the mother's sites and label every barcode.

    Returns per-barcode tallies, their labels (aligned with the tallies), and a
    summary dict.
    """
    t0 = time.time()
    policy = ErrorPolicy(on_error)

    if proband is not None:
        require_sample(vcf_samples(vcf_path), proband, role="proband")

    aggregator, counts = collect_evidence(
        vcf_path=vcf_path,
        bam_path=bam_path,
        sample=mother,
        barcode_tag=barcode_tag,
        on_error=policy,
        max_depth=max_depth,
        progress=progress,
    )

    tallies = aggregator.tally_all()
    labels = [cls for _, cls in aggregator.classify_all()]

    counts["barcodes_total"] = len(tallies)
    counts["class_Transmitted"] = sum(1 for c in labels if c is HaplotypeClass.TRANSMITTED)
    counts["class_Maternal"] = sum(1 for c in labels if c is HaplotypeClass.MATERNAL)

    # Informative evidence per barcode (maternal + transmitted); tail collapses into the last bin.
    informative = np.array(
        [t.maternal_count + t.transmitted_count for t in tallies], dtype=np.int64
    )
    max_bin = 20
    hist = np.bincount(np.minimum(informative, max_bin), minlength=max_bin + 1)

    summary: Dict[str, object] = {
        "vcf_path": vcf_path,
        "bam_path": bam_path,
        "mode": "maternal",
        "mother": mother,
        "proband": proband,
        "barcode_tag": barcode_tag,
        "on_error": policy.value,
        "counts": counts,
        "informative_evidence_hist": {
            "max_bin": max_bin,
            "counts": hist.tolist(),
        },
        "runtime_seconds": float(time.time() - t0),
    }
    return tallies, labels, summary


def write_calls(
    tallies: List[BarcodeTally], labels: List[HaplotypeClass], fh: TextIO
) -> None:
    for t, cls in zip(tallies, labels):
        fh.write(f"{t.barcode}\t{cls.value}\n")


def write_tallies_tsv(
    tallies: List[BarcodeTally], labels: List[HaplotypeClass], path: str | Path
) -> None:
    with open_textmaybe_gzip(path, "wt") as fh:
        fh.write(
            "\t".join(
                [
                    "barcode",
                    "maternal_count",
                    "transmitted_count",
                    "reference_count",
                    "paternal_count",
                    "class",
                ]
            )
            + "\n"
        )
        for t, cls in zip(tallies, labels):
            fh.write(
                f"{t.barcode}\t{t.maternal_count}\t{t.transmitted_count}\t"
                f"{t.reference_count}\t{t.paternal_count}\t{cls.value}\n"
            )


def write_run_outputs(
    *,
    outdir: str | Path,
    tallies: List[BarcodeTally],
    labels: List[HaplotypeClass],
    summary: Dict[str, object],
) -> Path:
    """Write barcode_tallies.tsv.gz and summary.json into ``outdir``."""
    outdir_path = ensure_outdir(outdir)
    tallies_path = outdir_path / "barcode_tallies.tsv.gz"
    write_tallies_tsv(tallies, labels, tallies_path)
    summary = dict(summary)
    summary["barcode_tallies_tsv_gz"] = str(tallies_path)
    write_json(outdir_path / "summary.json", summary)
    return outdir_path
