from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>bchaplo Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>bchaplo Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>BAM</th><td><code>{{ run.bam_path }}</code></td></tr>
      <tr><th>VCF</th><td><code>{{ run.vcf_path }}</code></td></tr>
      <tr><th>Mother</th><td><code>{{ run.mother }}</code></td></tr>
      {% if run.proband %}
      <tr><th>Proband</th><td><code>{{ run.proband }}</code></td></tr>
      {% endif %}
    </table>
  </div>
  <div class="card">
    <h3>Settings</h3>
    <table>
      <tr><th>Barcode tag</th><td><code>{{ run.barcode_tag }}</code></td></tr>
      <tr><th>On error</th><td>{{ run.on_error }}</td></tr>
    </table>
  </div>
</div>

<h2>Sites</h2>
<table>
  <tr><th>VCF records</th><td>{{ counts.records_total }}</td></tr>
  <tr><th>Transmitted-informative sites</th><td>{{ counts.sites_transmitted }}</td></tr>
  <tr><th>Maternal-informative sites</th><td>{{ counts.sites_maternal }}</td></tr>
  <tr><th>Non-SNV sites (no evidence)</th><td>{{ counts.sites_non_snv }}</td></tr>
  <tr><th>Contig absent from BAM</th><td>{{ counts.sites_contig_not_in_bam }}</td></tr>
  <tr><th>Skipped malformed</th><td>{{ counts.sites_skipped_malformed }}</td></tr>
  <tr><th>Skipped missing genotype</th><td>{{ counts.sites_skipped_missing_genotype }}</td></tr>
</table>

<h2>Reads</h2>
<table>
  <tr><th>Reads seen in pileups</th><td>{{ counts.reads_seen }}</td></tr>
  <tr><th>Reads with evidence</th><td>{{ counts.reads_with_evidence }}</td></tr>
  <tr><th>No barcode tag</th><td>{{ counts.reads_no_barcode }}</td></tr>
  <tr><th>No aligned base</th><td>{{ counts.reads_no_offset }}</td></tr>
  <tr><th>At non-SNV sites</th><td>{{ counts.reads_non_snv }}</td></tr>
  <tr><th>Skipped bad tag type</th><td>{{ counts.reads_skipped_tag_type }}</td></tr>
  <tr><th>Skipped out-of-range position</th><td>{{ counts.reads_skipped_out_of_range }}</td></tr>
</table>

<h2>Barcodes</h2>
<table>
  <tr><th>Barcodes</th><td>{{ counts.barcodes_total }}</td></tr>
  <tr><th>Transmitted</th><td>{{ counts.class_Transmitted }}</td></tr>
  <tr><th>Maternal</th><td>{{ counts.class_Maternal }}</td></tr>
</table>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Calls</h3>
    <img src="{{ plots.class_counts }}" alt="class counts">
  </div>
  <div class="card">
    <h3>Evidence per barcode</h3>
    <img src="{{ plots.evidence_hist }}" alt="evidence histogram">
  </div>
</div>
<div class="grid" style="margin-top:16px;">
  <div class="card">
    <h3>Maternal vs transmitted</h3>
    <img src="{{ plots.tally_scatter }}" alt="tally scatter">
  </div>
</div>

<h2>Outputs</h2>
<ul>
  <li><code>barcode_tallies.tsv.gz</code> (per-barcode counts and call)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>A barcode is called Maternal only when its maternal reads strictly outnumber its transmitted reads; ties, including barcodes with no informative reads, are called Transmitted.</li>
  <li>Reference-allele reads are counted but do not influence the call.</li>
</ul>

<hr>
<p class="small">bchaplo {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        run=run,
        counts=run.get("counts", {}),
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.debug("Report written to %s", out_path)
    return out_path
