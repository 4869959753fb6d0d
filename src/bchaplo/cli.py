from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import pysam

from . import __version__
from .errors import ErrorPolicy, UnsupportedModeError
from .plotting import plot_class_counts, plot_evidence_hist, plot_tally_scatter
from .report import render_report
from .runner import (
    MODES,
    classify_barcodes,
    resolve_reference_sample,
    write_calls,
    write_run_outputs,
)
from .sites import require_sample, vcf_samples
from .toy_data import make_toy_data
from .utils import open_textmaybe_gzip
from .validation import check_bam_index, check_contig_overlap, check_vcf_compression


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _vcf_contigs(vcf_path: str) -> list[str]:
    with pysam.VariantFile(vcf_path) as vcf:
        return list(vcf.header.contigs)


def _bam_contigs(bam_path: str) -> list[str]:
    with pysam.AlignmentFile(bam_path, "rb") as bam:
        return list(bam.header.references)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bchaplo",
        description=(
            "bchaplo: call the parental haplotype of origin (transmitted vs retained maternal) "
            "for every cell barcode in a BAM, using informative sites from a VCF."
        ),
    )
    p.add_argument("--version", action="version", version=f"bchaplo {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny barcoded BAM and trio VCF for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # classify
    # -----------------
    c = sub.add_parser(
        "classify",
        help="Collect per-barcode evidence at VCF sites and label each barcode.",
    )
    c.add_argument("--vcf", required=True, type=_path_exists, help="VCF with informative sites.")
    c.add_argument("--bam", required=True, type=_path_exists, help="Input BAM (sorted, indexed).")
    c.add_argument(
        "--mode",
        choices=list(MODES),
        default="maternal",
        help="Classification mode (paternal is recognized but not supported yet).",
    )
    c.add_argument("--name-mother", default=None, help="VCF sample of the mother (maternal mode).")
    c.add_argument("--name-father", default=None, help="VCF sample of the father (paternal mode).")
    c.add_argument(
        "--name-proband",
        default=None,
        help="VCF sample of the proband (checked for presence and recorded in the summary).",
    )
    c.add_argument("--barcode-tag", default="CB", help="Aux tag holding the cell barcode.")
    c.add_argument(
        "--on-error",
        choices=[policy.value for policy in ErrorPolicy],
        default=ErrorPolicy.ABORT.value,
        help="abort: stop at the first bad site/read; skip: drop it, count it, continue.",
    )
    c.add_argument("--max-depth", type=int, default=8000, help="Maximum pileup depth per site.")
    c.add_argument(
        "--out",
        default=None,
        help="Write barcode<TAB>class lines here (.gz supported; default: stdout).",
    )
    c.add_argument(
        "--outdir",
        default=None,
        help="Optional directory for tallies, summary.json, plots, report.html and logs.",
    )
    c.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    c.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    c.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "bchaplo quickstart (copy/paste):",
        "",
        "1) Barcode calls to stdout:",
        "   bchaplo classify \\",
        "     --vcf trio_sites.vcf.gz \\",
        "     --bam possorted_genome_bam.bam \\",
        "     --name-mother MOTHER > calls.tsv",
        "",
        "2) Calls plus tallies, summary and HTML report:",
        "   bchaplo classify \\",
        "     --vcf trio_sites.vcf.gz \\",
        "     --bam possorted_genome_bam.bam \\",
        "     --name-mother MOTHER --name-proband PROBAND \\",
        "     --out results/calls.tsv --outdir results/",
        "   Outputs: results/calls.tsv, results/report.html, results/barcode_tallies.tsv.gz",
        "",
        "3) Try it on toy data:",
        "   bchaplo make-toy-data --outdir toy/",
        "   bchaplo classify --vcf toy/sites.vcf.gz --bam toy/toy.bam --name-mother MOTHER",
        "",
        "Tip: use --on-error skip to keep going past malformed sites or reads.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _write_report(outdir: Path, tallies, summary) -> Path:
    plots_dir = outdir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    class_counts_png = plots_dir / "class_counts.png"
    evidence_png = plots_dir / "evidence_hist.png"
    scatter_png = plots_dir / "tally_scatter.png"

    plot_class_counts(class_counts=summary["counts"], out_png=class_counts_png)
    plot_evidence_hist(
        counts=summary["informative_evidence_hist"]["counts"],
        out_png=evidence_png,
    )
    plot_tally_scatter(
        maternal=[t.maternal_count for t in tallies],
        transmitted=[t.transmitted_count for t in tallies],
        out_png=scatter_png,
    )

    plots_rel = {
        "class_counts": str(Path("plots") / class_counts_png.name),
        "evidence_hist": str(Path("plots") / evidence_png.name),
        "tally_scatter": str(Path("plots") / scatter_png.name),
    }
    return render_report(outdir=outdir, version=__version__, run=summary, plots=plots_rel)


def cmd_classify(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve() if args.outdir else None
    log_path = outdir / "logs" / "classify.log" if outdir is not None else None
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("bchaplo")
    logger.info("bchaplo %s", __version__)

    try:
        sample = resolve_reference_sample(
            args.mode, mother=args.name_mother, father=args.name_father
        )

        check_bam_index(args.bam)
        check_vcf_compression(args.vcf)
        check_contig_overlap(_vcf_contigs(args.vcf), _bam_contigs(args.bam))
        samples = vcf_samples(args.vcf)
        role = "mother" if args.mode == "maternal" else "father"
        require_sample(samples, sample, role=role)
        if args.name_proband is not None:
            require_sample(samples, args.name_proband, role="proband")

        if args.mode == "paternal":
            raise UnsupportedModeError(
                "Paternal mode is recognized but no paternal classification rule is defined yet; "
                "use --mode maternal."
            )

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            print(f"Reference sample: {sample}")
            print(f"VCF samples: {', '.join(samples)}")
            print("Planned outputs:")
            print(f"  calls -> {args.out or 'stdout'}")
            if outdir is not None:
                print(f"  barcode_tallies.tsv.gz -> {outdir / 'barcode_tallies.tsv.gz'}")
                print(f"  summary.json -> {outdir / 'summary.json'}")
                print(f"  report.html -> {outdir / 'report.html'}")
            return 0

        tallies, labels, summary = classify_barcodes(
            vcf_path=args.vcf,
            bam_path=args.bam,
            mother=sample,
            proband=args.name_proband,
            barcode_tag=str(args.barcode_tag),
            on_error=ErrorPolicy(args.on_error),
            max_depth=int(args.max_depth),
            progress=not bool(args.no_progress),
        )

        if args.out is None:
            write_calls(tallies, labels, sys.stdout)
            sys.stdout.flush()
        else:
            Path(args.out).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
            with open_textmaybe_gzip(args.out, "wt") as fh:
                write_calls(tallies, labels, fh)

        if outdir is not None:
            write_run_outputs(outdir=outdir, tallies=tallies, labels=labels, summary=summary)
            report_path = _write_report(outdir, tallies, summary)
            logger.info("Report written: %s", report_path)

        counts = summary["counts"]
        skipped_sites = counts["sites_skipped_malformed"] + counts["sites_skipped_missing_genotype"]
        skipped_reads = counts["reads_skipped_tag_type"] + counts["reads_skipped_out_of_range"]
        if skipped_sites or skipped_reads:
            logger.warning(
                "Skipped %d site(s) and %d read(s) because of input errors.",
                skipped_sites,
                skipped_reads,
            )
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "classify":
        return cmd_classify(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
