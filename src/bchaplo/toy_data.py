from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pysam

from .utils import ensure_outdir, write_json

TOY_CONTIG = "chrX"
TOY_MOTHER = "MOTHER"
TOY_PROBAND = "PROBAND"
TOY_BARCODE_TRANSMITTED = "AAACCTGAGAAACCAT-1"
TOY_BARCODE_MATERNAL = "AAACCTGAGAAACCGC-1"

_READ_LEN = 50


def _write_fasta(path: Path, contig: str, seq: str) -> None:
    lines = [f">{contig}"]
    for i in range(0, len(seq), 60):
        lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _mutate_base(base: str) -> str:
    for alt in ["A", "C", "G", "T"]:
        if alt != base:
            return alt
    return "A"


def _make_read(
    name: str,
    start0: int,
    seq: str,
    barcode: Optional[str],
    mapq: int = 60,
) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = 0
    a.reference_id = 0
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = [(0, len(seq))]
    a.query_qualities = pysam.qualitystring_to_array("I" * len(seq))
    if barcode is not None:
        a.set_tag("CB", barcode, value_type="Z")
    return a


def _read_seq(ref_seq: str, start0: int, edits: Dict[int, str]) -> str:
    seq = list(ref_seq[start0 : start0 + _READ_LEN])
    for pos0, base in edits.items():
        rel = pos0 - start0
        if 0 <= rel < len(seq):
            seq[rel] = base
    return "".join(seq)


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny reference, barcoded BAM, and trio-style VCF for demos/tests.

    Sites (0-based):
    - 50: mother 0/0, so ALT marks the transmitted haplotype
    - 120: mother 0/1, so ALT marks the retained maternal haplotype
    - 150: insertion, never used as evidence

    Barcode ``TOY_BARCODE_TRANSMITTED`` carries ALT at 50 (3 reads) and REF at
    120 (2 reads); ``TOY_BARCODE_MATERNAL`` carries REF at 50 (2 reads) and ALT
    at 120 (3 reads). One extra read has no barcode tag.

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    ref_seq = ("ACGT" * 50)[:200]
    ref_fa = outdir_p / "toy_ref.fa"
    _write_fasta(ref_fa, TOY_CONTIG, ref_seq)
    pysam.faidx(str(ref_fa))

    snv_t = 50
    snv_m = 120
    ins = 150
    alt_t = _mutate_base(ref_seq[snv_t])
    alt_m = _mutate_base(ref_seq[snv_m])

    reads: List[pysam.AlignedSegment] = []
    for i, start0 in enumerate([30, 31, 32]):
        seq = _read_seq(ref_seq, start0, {snv_t: alt_t})
        reads.append(_make_read(f"t_alt_{i}", start0, seq, TOY_BARCODE_TRANSMITTED))
    for i, start0 in enumerate([100, 101]):
        seq = _read_seq(ref_seq, start0, {})
        reads.append(_make_read(f"t_ref_{i}", start0, seq, TOY_BARCODE_TRANSMITTED))
    for i, start0 in enumerate([33, 34]):
        seq = _read_seq(ref_seq, start0, {})
        reads.append(_make_read(f"m_ref_{i}", start0, seq, TOY_BARCODE_MATERNAL))
    for i, start0 in enumerate([102, 103, 104]):
        seq = _read_seq(ref_seq, start0, {snv_m: alt_m})
        reads.append(_make_read(f"m_alt_{i}", start0, seq, TOY_BARCODE_MATERNAL))
    reads.append(_make_read("untagged_0", 35, _read_seq(ref_seq, 35, {snv_t: alt_t}), None))

    reads.sort(key=lambda r: r.reference_start)

    bam_path = outdir_p / "toy.bam"
    bam_header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": TOY_CONTIG, "LN": len(ref_seq)}],
    }
    with pysam.AlignmentFile(str(bam_path), "wb", header=bam_header) as bam:
        for r in reads:
            bam.write(r)
    pysam.index(str(bam_path))

    sites: List[Tuple[int, Tuple[str, str], Tuple[int, int]]] = [
        (snv_t, (ref_seq[snv_t], alt_t), (0, 0)),
        (snv_m, (ref_seq[snv_m], alt_m), (0, 1)),
        (ins, (ref_seq[ins], ref_seq[ins] + "T"), (0, 0)),
    ]

    vcf_path = outdir_p / "sites.vcf"
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    header.add_sample(TOY_MOTHER)
    header.add_sample(TOY_PROBAND)
    header.contigs.add(TOY_CONTIG, length=len(ref_seq))
    header.formats.add("GT", number=1, type="String", description="Genotype")

    with pysam.VariantFile(str(vcf_path), "w", header=header) as vcf:
        for pos0, alleles, mother_gt in sites:
            rec = vcf.new_record(
                contig=TOY_CONTIG,
                start=pos0,
                stop=pos0 + len(alleles[0]),
                alleles=alleles,
                qual=60,
                filter="PASS",
            )
            rec.samples[TOY_MOTHER]["GT"] = mother_gt
            rec.samples[TOY_PROBAND]["GT"] = (0, 1)
            vcf.write(rec)

    vcf_gz = outdir_p / "sites.vcf.gz"
    pysam.tabix_compress(str(vcf_path), str(vcf_gz), force=True)
    pysam.tabix_index(str(vcf_gz), preset="vcf", force=True)

    summary = {
        "ref_fa": str(ref_fa),
        "bam": str(bam_path),
        "sites_vcf": str(vcf_gz),
        "mother": TOY_MOTHER,
        "proband": TOY_PROBAND,
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
