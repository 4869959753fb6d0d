from __future__ import annotations

import logging
from typing import List, Tuple

import pysam

from .errors import MalformedRecordError, MissingGenotypeError
from .models import GenotypeAllele, VariantSite

logger = logging.getLogger(__name__)


def vcf_samples(vcf_path: str) -> List[str]:
    with pysam.VariantFile(vcf_path) as vcf:
        return list(vcf.header.samples)


def require_sample(samples: List[str], name: str, *, role: str) -> str:
    """Return ``name`` if it is a VCF sample; raise ValueError otherwise."""
    if name not in samples:
        raise ValueError(f"{role.capitalize()} sample '{name}' not found in VCF samples: {samples}")
    return name


def decode_genotype(rec: pysam.VariantRecord, sample: str) -> Tuple[GenotypeAllele, ...]:
    """Decode the GT field of ``sample`` into allele calls.

    The first allele of a VCF genotype never carries a phase separator, so it
    is always reported unphased; later alleles take the sample's phasing.
    """
    s = rec.samples[sample]
    if "GT" not in s.keys():
        raise MissingGenotypeError(
            f"{_describe(rec)}: sample '{sample}' has no GT field"
        )
    gt = s["GT"]
    if gt is None or len(gt) == 0:
        raise MissingGenotypeError(
            f"{_describe(rec)}: genotype of sample '{sample}' could not be decoded"
        )
    phased = bool(s.phased)
    return tuple(
        GenotypeAllele(index=a, phased=phased and i > 0) for i, a in enumerate(gt)
    )


def _describe(rec: pysam.VariantRecord) -> str:
    try:
        return f"{rec.contig}:{rec.pos}"
    except ValueError:
        return f"<rid {rec.rid}>:{rec.pos}"


def site_from_record(rec: pysam.VariantRecord, sample: str) -> VariantSite:
    """Reduce a VCF record to a :class:`VariantSite` for the designated parent."""
    try:
        chrom = rec.contig
    except (ValueError, KeyError, IndexError) as e:
        raise MalformedRecordError(f"VCF record at POS {rec.pos} has no resolvable contig") from e
    if not chrom:
        raise MalformedRecordError(f"VCF record at POS {rec.pos} has no resolvable contig")

    alleles = tuple(rec.alleles or ())
    genotype = decode_genotype(rec, sample)
    pos0 = int(rec.pos) - 1  # VCF is 1-based
    alt = alleles[1] if len(alleles) > 1 else "."
    ref = alleles[0] if alleles else "."
    rid = rec.id if rec.id is not None else f"{chrom}:{rec.pos}:{ref}:{alt}"
    return VariantSite(
        chrom=str(chrom),
        pos0=pos0,
        alleles=alleles,
        genotype=genotype,
        record_id=rid,
    )

