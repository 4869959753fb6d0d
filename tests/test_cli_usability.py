import gzip
import json
import subprocess
import sys
from pathlib import Path

from bchaplo.toy_data import TOY_BARCODE_MATERNAL, TOY_BARCODE_TRANSMITTED, make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "bchaplo"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def _parse_calls(text: str) -> dict:
    return dict(line.split("\t") for line in text.strip().splitlines())


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "bchaplo classify" in cp.stdout
    assert "bchaplo make-toy-data" in cp.stdout


def test_make_toy_data_and_classify_to_stdout(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0

    cp = _run_cli(
        [
            "classify",
            "--vcf",
            str(toy_dir / "sites.vcf.gz"),
            "--bam",
            str(toy_dir / "toy.bam"),
            "--name-mother",
            "MOTHER",
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert _parse_calls(cp.stdout) == {
        TOY_BARCODE_TRANSMITTED: "Transmitted",
        TOY_BARCODE_MATERNAL: "Maternal",
    }


def test_classify_writes_outdir(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    calls = outdir / "calls.tsv.gz"
    cp = _run_cli(
        [
            "classify",
            "--vcf",
            toy["sites_vcf"],
            "--bam",
            toy["bam"],
            "--name-mother",
            "MOTHER",
            "--name-proband",
            "PROBAND",
            "--out",
            str(calls),
            "--outdir",
            str(outdir),
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert cp.stdout == ""

    with gzip.open(calls, "rt") as fh:
        assert len(_parse_calls(fh.read())) == 2
    with gzip.open(outdir / "barcode_tallies.tsv.gz", "rt") as fh:
        header = fh.readline().rstrip("\n").split("\t")
        rows = [line.rstrip("\n").split("\t") for line in fh]
    assert header[0] == "barcode" and header[-1] == "class"
    assert len(rows) == 2

    summary = json.loads((outdir / "summary.json").read_text())
    assert summary["proband"] == "PROBAND"
    assert summary["counts"]["barcodes_total"] == 2
    assert (outdir / "report.html").exists()
    assert (outdir / "plots" / "class_counts.png").exists()
    assert (outdir / "logs" / "classify.log").exists()


def test_missing_mother_is_a_config_error(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["classify", "--vcf", toy["sites_vcf"], "--bam", toy["bam"]])
    assert cp.returncode == 2
    assert "MissingRequiredArgumentError" in cp.stderr
    assert cp.stdout == ""


def test_paternal_mode_requires_father_and_is_not_supported(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    base = ["classify", "--vcf", toy["sites_vcf"], "--bam", toy["bam"], "--mode", "paternal"]

    cp = _run_cli(base)
    assert cp.returncode == 2
    assert "--name-father" in cp.stderr

    cp = _run_cli(base + ["--name-father", "MOTHER"])
    assert cp.returncode == 2
    assert "Paternal mode" in cp.stderr
    assert "UnsupportedModeError" in cp.stderr
    assert cp.stdout == ""


def test_classify_dry_run_does_not_write_outputs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "classify",
            "--vcf",
            toy["sites_vcf"],
            "--bam",
            toy["bam"],
            "--name-mother",
            "MOTHER",
            "--outdir",
            str(outdir),
            "--dry-run",
        ]
    )
    assert cp.returncode == 0
    assert "Dry-run" in cp.stdout
    assert not (outdir / "summary.json").exists()


def test_unknown_sample_message(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        ["classify", "--vcf", toy["sites_vcf"], "--bam", toy["bam"], "--name-mother", "MUM"]
    )
    assert cp.returncode != 0
    assert "not found in VCF samples" in cp.stderr
