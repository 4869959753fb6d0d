from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Sequence

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_class_counts(
    *,
    class_counts: Dict[str, int],
    out_png: str | Path,
    title: str = "Barcode haplotype calls",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = ["Transmitted", "Maternal"]
    values = [
        int(class_counts.get("class_Transmitted", 0)),
        int(class_counts.get("class_Maternal", 0)),
    ]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel("Barcode count")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_evidence_hist(
    *,
    counts: List[int],
    out_png: str | Path,
    title: str = "Informative reads per barcode",
) -> None:
    """Bar plot of a histogram whose last bin holds the collapsed tail."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    max_bin = len(counts) - 1
    xticklabels = [str(x) for x in range(max_bin)] + [f"{max_bin}+"]

    plt.figure()
    plt.bar(range(len(counts)), counts)
    plt.xlabel("Maternal + transmitted reads")
    plt.ylabel("Barcode count")
    plt.title(title)
    plt.xticks(range(len(counts)), xticklabels, rotation=90, fontsize=7)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_tally_scatter(
    *,
    maternal: Sequence[int],
    transmitted: Sequence[int],
    out_png: str | Path,
    title: str = "Maternal vs transmitted evidence",
) -> None:
    """Per-barcode scatter; points on or above the diagonal are called Transmitted."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    hi = max([1] + list(maternal) + list(transmitted))

    plt.figure()
    plt.scatter(maternal, transmitted, s=6, alpha=0.5)
    plt.plot([0, hi], [0, hi], linestyle="--", linewidth=1, color="grey")
    plt.xlabel("Maternal reads")
    plt.ylabel("Transmitted reads")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
