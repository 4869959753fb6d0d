from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Tuple


class EvidenceUnit(str, Enum):
    """Why a read base was recorded at a site."""

    MATERNAL = "Maternal"
    TRANSMITTED = "Transmitted"
    REFERENCE = "Reference"
    PATERNAL = "Paternal"  # reserved, never emitted by the collector


class HaplotypeClass(str, Enum):
    """Final per-barcode label."""

    TRANSMITTED = "Transmitted"
    MATERNAL = "Maternal"


class SiteKey(NamedTuple):
    """A genomic site: contig name and 0-based position."""

    chrom: str
    pos0: int


class GenotypeAllele(NamedTuple):
    """One decoded allele call. ``index`` is None for a missing call ('.')."""

    index: Optional[int]
    phased: bool


@dataclass(frozen=True)
class VariantSite:
    """A VCF record reduced to what evidence collection needs.

    Attributes
    ----------
    chrom:
        Contig name as present in BAM/VCF.
    pos0:
        0-based genomic position (reference coordinate).
    alleles:
        Reference allele first, then alternates, as written in the VCF.
    genotype:
        Decoded genotype of the designated parent.
    record_id:
        VCF ID or CHROM:POS:REF:ALT.
    """

    chrom: str
    pos0: int
    alleles: Tuple[str, ...]
    genotype: Tuple[GenotypeAllele, ...]
    record_id: str

    @property
    def key(self) -> SiteKey:
        return SiteKey(self.chrom, self.pos0)

    @property
    def alt(self) -> Optional[str]:
        """First alternate allele, or None for a monomorphic record."""
        if len(self.alleles) < 2:
            return None
        return self.alleles[1]


@dataclass(frozen=True)
class ReadObservation:
    """One read from a pileup column, as seen by the evidence collector.

    ``barcode`` holds the raw aux tag value (None when the read has no tag) so
    the collector can tell an absent tag from a wrongly typed one.
    ``query_position`` is None when the read has a deletion or reference skip
    at the site.
    """

    qname: str
    barcode: object
    query_position: Optional[int]
    query_sequence: str


@dataclass
class BarcodeTally:
    """Summed evidence counts for one barcode."""

    barcode: str
    maternal_count: int = 0
    transmitted_count: int = 0
    reference_count: int = 0
    paternal_count: int = 0

    def update(self, maternal: int, transmitted: int, reference: int, paternal: int) -> None:
        self.maternal_count += maternal
        self.transmitted_count += transmitted
        self.reference_count += reference
        self.paternal_count += paternal

    @property
    def total(self) -> int:
        return (
            self.maternal_count
            + self.transmitted_count
            + self.reference_count
            + self.paternal_count
        )
