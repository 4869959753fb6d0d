from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def check_bam_index(bam_path: str | Path) -> None:
    """Ensure a BAM has an index; raise ValueError with fix instructions.

    Pileups use random access, so an index is mandatory.
    """
    bam = Path(bam_path)
    bai1 = bam.with_suffix(bam.suffix + ".bai")
    bai2 = bam.with_suffix(".bai")
    csi = bam.with_suffix(bam.suffix + ".csi")
    if bai1.exists() or bai2.exists() or csi.exists():
        return
    raise ValueError("BAM is not indexed. Run: samtools index " + str(bam))


def check_vcf_compression(vcf_path: str | Path) -> None:
    """Log a hint for uncompressed VCFs. Sites are read sequentially, so no index is needed."""
    vcf = Path(vcf_path)
    if vcf.suffix == ".vcf":
        logger.info(
            "VCF is uncompressed (.vcf). This is supported; "
            "bgzip it to save space on large site lists."
        )


def check_contig_overlap(vcf_contigs: Iterable[str], bam_contigs: Iterable[str]) -> None:
    """Raise ValueError when the VCF and BAM share no contig names."""
    vcf_set = set(vcf_contigs)
    bam_set = set(bam_contigs)
    if vcf_set and bam_set and not vcf_set.intersection(bam_set):
        raise ValueError(
            "Contig mismatch between BAM and VCF (e.g., chrX vs X). "
            "Rename contigs in one of the files so they agree."
        )
