import pytest

from bchaplo.collector import collect
from bchaplo.errors import ErrorPolicy, OutOfRangePositionError, UnexpectedTagTypeError
from bchaplo.evidence import EvidenceAggregator
from bchaplo.models import EvidenceUnit, HaplotypeClass, ReadObservation, SiteKey

S1 = SiteKey("chrX", 1000)
S2 = SiteKey("chrX", 2000)


def obs(base: str, barcode: object = "BC1", qpos=2, name: str = "r") -> ReadObservation:
    seq = "AC" + base + "TT"
    return ReadObservation(qname=name, barcode=barcode, query_position=qpos, query_sequence=seq)


def test_scenarios_from_two_sites():
    agg = EvidenceAggregator()
    collect(S1, EvidenceUnit.TRANSMITTED, "A", [obs("A"), obs("A"), obs("G")], agg)

    assert agg.entries("BC1", S1) == [
        (EvidenceUnit.TRANSMITTED, 1),
        (EvidenceUnit.TRANSMITTED, 1),
        (EvidenceUnit.REFERENCE, 1),
    ]
    t = agg.tally_barcode("BC1")
    assert (t.maternal_count, t.transmitted_count, t.reference_count, t.paternal_count) == (0, 2, 1, 0)
    assert dict(agg.classify_all()) == {"BC1": HaplotypeClass.TRANSMITTED}

    collect(S2, EvidenceUnit.MATERNAL, "T", [obs("T")], agg)
    t = agg.tally_barcode("BC1")
    assert (t.maternal_count, t.transmitted_count, t.reference_count, t.paternal_count) == (1, 2, 1, 0)
    assert dict(agg.classify_all()) == {"BC1": HaplotypeClass.TRANSMITTED}


def test_base_comparison_is_case_insensitive():
    agg = EvidenceAggregator()
    collect(S1, EvidenceUnit.MATERNAL, "t", [obs("T"), obs("t")], agg)
    assert agg.tally_barcode("BC1").maternal_count == 2


def test_multi_base_alt_gives_no_evidence():
    agg = EvidenceAggregator()
    counts = collect(S1, EvidenceUnit.TRANSMITTED, "AT", [obs("A"), obs("G")], agg)
    assert len(agg) == 0
    assert counts["reads_non_snv"] == 2
    assert counts["reads_with_evidence"] == 0


def test_missing_alt_gives_no_evidence():
    agg = EvidenceAggregator()
    collect(S1, EvidenceUnit.TRANSMITTED, None, [obs("A")], agg)
    assert len(agg) == 0


def test_read_without_barcode_is_ignored():
    agg = EvidenceAggregator()
    counts = collect(S1, EvidenceUnit.TRANSMITTED, "A", [obs("A", barcode=None)], agg)
    assert len(agg) == 0
    assert list(agg.barcodes()) == []
    assert counts["reads_no_barcode"] == 1


def test_read_without_aligned_base_is_ignored():
    agg = EvidenceAggregator()
    counts = collect(S1, EvidenceUnit.TRANSMITTED, "A", [obs("A", qpos=None)], agg)
    assert len(agg) == 0
    assert counts["reads_no_offset"] == 1


def test_non_string_tag_aborts_by_default():
    agg = EvidenceAggregator()
    with pytest.raises(UnexpectedTagTypeError):
        collect(S1, EvidenceUnit.TRANSMITTED, "A", [obs("A", barcode=17)], agg)


def test_out_of_range_position_aborts_by_default():
    agg = EvidenceAggregator()
    with pytest.raises(OutOfRangePositionError):
        collect(S1, EvidenceUnit.TRANSMITTED, "A", [obs("A", qpos=5)], agg)


def test_skip_policy_counts_bad_reads_and_continues():
    agg = EvidenceAggregator()
    reads = [obs("A", barcode=17), obs("A", qpos=99), obs("A", barcode="BC2")]
    counts = collect(S1, EvidenceUnit.TRANSMITTED, "A", reads, agg, on_error=ErrorPolicy.SKIP)
    assert counts["reads_skipped_tag_type"] == 1
    assert counts["reads_skipped_out_of_range"] == 1
    assert counts["reads_seen"] == 3
    assert list(agg.barcodes()) == ["BC2"]
    assert agg.tally_barcode("BC2").transmitted_count == 1


def test_counts_accumulate_across_calls():
    agg = EvidenceAggregator()
    counts = collect(S1, EvidenceUnit.TRANSMITTED, "A", [obs("A")], agg)
    collect(S2, EvidenceUnit.MATERNAL, "C", [obs("G"), obs("C")], agg, counts=counts)
    assert counts["reads_seen"] == 3
    assert counts["evidence_alt"] == 2
    assert counts["evidence_ref"] == 1
