"""bchaplo: per-barcode parental haplotype-of-origin calls from single-cell reads.

Public API is intentionally small; most users should use the CLI:

    bchaplo classify --vcf ... --bam ... --name-mother ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
