from __future__ import annotations

import logging
from typing import Sequence

from .errors import MissingGenotypeError
from .models import BarcodeTally, EvidenceUnit, GenotypeAllele, HaplotypeClass

logger = logging.getLogger(__name__)


def classify_site(genotype: Sequence[GenotypeAllele]) -> EvidenceUnit:
    """Decide which haplotype an ALT allele at this site marks.

    ``genotype`` is the decoded call of the reference parent (the mother by
    default). The input VCF is built so that an ALT allele absent from the
    parent can only sit on the haplotype she transmitted; therefore a parent
    that is unphased homozygous reference gives ``TRANSMITTED``. Any other
    call (including phased 0|0) gives ``MATERNAL``: the ALT is on the copy she
    retained. A no-call (./.) is not homozygous reference either, so it also
    gives ``MATERNAL``.
    """
    if len(genotype) == 0:
        raise MissingGenotypeError("Genotype has no decodable alleles")
    if all(a.index == 0 and not a.phased for a in genotype):
        return EvidenceUnit.TRANSMITTED
    return EvidenceUnit.MATERNAL


def classify_tally(tally: BarcodeTally) -> HaplotypeClass:
    """Label a barcode from its maternal vs transmitted counts; ties go to TRANSMITTED."""
    if tally.maternal_count <= tally.transmitted_count:
        return HaplotypeClass.TRANSMITTED
    return HaplotypeClass.MATERNAL
