from __future__ import annotations

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

LOGGER = logging.getLogger("netrand.charts")

RATIO_CHART_FILENAME = "ratio_vs_batch_size.png"
LATENCY_CHART_FILENAME = "latency_by_batch_size.png"

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13
plt.rcParams["legend.fontsize"] = 9

MODE_COLORS = {
    "concurrent": "#2E86AB",
    "sequential": "#F18F01",
}


def render_sweep_charts(
    runs_df: pd.DataFrame,
    timings_df: pd.DataFrame,
    output_dir: Path,
) -> list[Path]:
    """Render every sweep chart that has data and return the written paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []

    ratio_path = _render_ratio_chart(runs_df, output_dir / RATIO_CHART_FILENAME)
    if ratio_path is not None:
        written.append(ratio_path)

    latency_path = _render_latency_chart(timings_df, output_dir / LATENCY_CHART_FILENAME)
    if latency_path is not None:
        written.append(latency_path)

    return written


def _render_ratio_chart(runs_df: pd.DataFrame, chart_path: Path) -> Path | None:
    """Mean concurrent/sequential ratio per batch size with a min/max band."""
    if runs_df.empty or "ratio" not in runs_df.columns:
        LOGGER.warning("No run data available for ratio chart")
        return None

    df = runs_df[runs_df["ratio"].notna()].copy()
    if df.empty:
        LOGGER.warning("No defined ratios available for ratio chart")
        return None
    df["ratio"] = df["ratio"].astype(float)

    stats = df.groupby("batch_size")["ratio"].agg(["mean", "min", "max"]).sort_index()
    batch_sizes = stats.index.to_numpy(dtype=int)

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(
        batch_sizes,
        stats["mean"].to_numpy(),
        marker="o",
        linewidth=2.5,
        markersize=6,
        color=MODE_COLORS["concurrent"],
        label="mean ratio",
    )
    ax.fill_between(
        batch_sizes,
        stats["min"].to_numpy(),
        stats["max"].to_numpy(),
        color=MODE_COLORS["concurrent"],
        alpha=0.2,
        label="min/max",
    )
    ax.axhline(1.0, color=MODE_COLORS["sequential"], linestyle="--", linewidth=1.5, label="sequential")

    ax.set_xlabel("Batch size", fontweight="semibold")
    ax.set_ylabel("Concurrent / sequential total", fontweight="semibold")
    ax.set_title("Concurrent vs Sequential Total Time by Batch Size", fontweight="bold", pad=15)
    ax.set_xticks(np.unique(batch_sizes))
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3, linestyle="--")
    ax.legend(loc="upper right", frameon=True)

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


def _render_latency_chart(timings_df: pd.DataFrame, chart_path: Path) -> Path | None:
    """Per-request latency distribution per batch size, split by mode."""
    if timings_df.empty or "timing_ms" not in timings_df.columns:
        LOGGER.warning("No timing data available for latency chart")
        return None

    df = timings_df[timings_df["timing_ms"].notna() & (timings_df["timing_ms"] >= 0)].copy()
    if df.empty:
        LOGGER.warning("No valid timing data after filtering")
        return None

    order = sorted(df["batch_size"].unique())
    hue_order = [mode for mode in MODE_COLORS if mode in set(df["mode"])]

    fig, ax = plt.subplots(figsize=(max(10, len(order) * 0.6), 7))
    sns.boxplot(
        data=df,
        x="batch_size",
        y="timing_ms",
        hue="mode",
        order=order,
        hue_order=hue_order,
        palette=[MODE_COLORS[mode] for mode in hue_order],
        ax=ax,
        linewidth=1.2,
        width=0.7,
        fliersize=2,
    )

    ax.set_xlabel("Batch size", fontweight="semibold", labelpad=12)
    ax.set_ylabel("Request latency (ms)", fontweight="semibold", labelpad=12)
    ax.set_title("Per-Request Latency by Batch Size", fontweight="bold", pad=15)
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5, axis="y")
    ax.set_axisbelow(True)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path
