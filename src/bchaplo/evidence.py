"""In-memory evidence table keyed by barcode and site.

Barcodes and sites are interned to integer ids; entries live in a flat
mapping ``(barcode_id, site_id) -> [(EvidenceUnit, count), ...]``. Entries are
only ever appended, so the per-read audit trail is kept until the run ends.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Tuple

from .classify import classify_tally
from .models import BarcodeTally, EvidenceUnit, HaplotypeClass, SiteKey

logger = logging.getLogger(__name__)

Entry = Tuple[EvidenceUnit, int]


class EvidenceAggregator:
    """Accumulates (EvidenceUnit, count) observations per barcode and site."""

    def __init__(self) -> None:
        self._barcode_ids: Dict[str, int] = {}
        self._barcodes: List[str] = []
        self._site_ids: Dict[SiteKey, int] = {}
        self._sites: List[SiteKey] = []
        # barcode id -> site ids in first-seen order
        self._sites_by_barcode: List[List[int]] = []
        self._entries: Dict[Tuple[int, int], List[Entry]] = {}
        self._n_entries = 0

    def __len__(self) -> int:
        return len(self._barcodes)

    def __contains__(self, barcode: object) -> bool:
        return barcode in self._barcode_ids

    @property
    def n_entries(self) -> int:
        return self._n_entries

    def _intern_barcode(self, barcode: str) -> int:
        bid = self._barcode_ids.get(barcode)
        if bid is None:
            bid = len(self._barcodes)
            self._barcode_ids[barcode] = bid
            self._barcodes.append(barcode)
            self._sites_by_barcode.append([])
        return bid

    def _intern_site(self, site: SiteKey) -> int:
        sid = self._site_ids.get(site)
        if sid is None:
            sid = len(self._sites)
            self._site_ids[site] = sid
            self._sites.append(site)
        return sid

    def update_site_data(
        self,
        barcode: str,
        site: SiteKey,
        count: int,
        evidence_type: EvidenceUnit,
    ) -> None:
        """Append one (evidence_type, count) entry for ``barcode`` at ``site``."""
        if count < 0:
            raise ValueError(f"Evidence count must be non-negative, got {count}")
        bid = self._intern_barcode(barcode)
        sid = self._intern_site(SiteKey(*site))
        key = (bid, sid)
        entries = self._entries.get(key)
        if entries is None:
            entries = []
            self._entries[key] = entries
            self._sites_by_barcode[bid].append(sid)
        entries.append((EvidenceUnit(evidence_type), int(count)))
        self._n_entries += 1

    def barcodes(self) -> Iterator[str]:
        return iter(self._barcodes)

    def sites(self, barcode: str) -> List[SiteKey]:
        bid = self._barcode_ids[barcode]
        return [self._sites[sid] for sid in self._sites_by_barcode[bid]]

    def entries(self, barcode: str, site: SiteKey) -> List[Entry]:
        bid = self._barcode_ids[barcode]
        sid = self._site_ids[SiteKey(*site)]
        return list(self._entries.get((bid, sid), []))

    def tally_barcode(self, barcode: str) -> BarcodeTally:
        """Sum every entry recorded for ``barcode`` across all of its sites."""
        bid = self._barcode_ids[barcode]
        tally = BarcodeTally(barcode=barcode)
        for sid in self._sites_by_barcode[bid]:
            sums = {unit: 0 for unit in EvidenceUnit}
            for unit, count in self._entries[(bid, sid)]:
                sums[unit] += count
            tally.update(
                sums[EvidenceUnit.MATERNAL],
                sums[EvidenceUnit.TRANSMITTED],
                sums[EvidenceUnit.REFERENCE],
                sums[EvidenceUnit.PATERNAL],
            )
        return tally

    def tally_all(self) -> List[BarcodeTally]:
        return [self.tally_barcode(bc) for bc in self._barcodes]

    def classify_all(self) -> List[Tuple[str, HaplotypeClass]]:
        """Classify every barcode in the table. Order is not part of the contract."""
        return [(t.barcode, classify_tally(t)) for t in self.tally_all()]

    def merge(self, other: "EvidenceAggregator") -> None:
        """Append all of ``other``'s entries into this table.

        Summation is order independent, so merging per-worker tables gives the
        same tallies as a single table fed with every update.
        """
        for bid, barcode in enumerate(other._barcodes):
            for sid in other._sites_by_barcode[bid]:
                site = other._sites[sid]
                for unit, count in other._entries[(bid, sid)]:
                    self.update_site_data(barcode, site, count, unit)
        logger.debug(
            "Merged %d barcodes; table now holds %d barcodes / %d entries",
            len(other),
            len(self),
            self._n_entries,
        )
