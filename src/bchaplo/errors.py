"""Error taxonomy and the policy for handling per-site / per-read failures."""

from __future__ import annotations

from enum import Enum


class BchaploError(ValueError):
    """Base class for input conditions that stop (or skip part of) a run."""


class MalformedRecordError(BchaploError):
    """A VCF record has no resolvable contig."""


class MissingGenotypeError(BchaploError):
    """Genotype could not be decoded for the designated sample."""


class UnexpectedTagTypeError(BchaploError):
    """A barcode tag is present on a read but is not a string."""


class OutOfRangePositionError(BchaploError):
    """A pileup query position lies outside the read sequence."""


class MissingRequiredArgumentError(BchaploError):
    """A sample name required by the selected mode was not supplied."""


class ErrorPolicy(str, Enum):
    """What to do when a site or read raises a :class:`BchaploError`.

    ABORT stops the run at the first failure. SKIP drops the offending site
    (or read), counts it, and keeps going.
    """

    ABORT = "abort"
    SKIP = "skip"


class UnsupportedModeError(BchaploError):
    """The selected mode is recognized but has no classification rule."""
