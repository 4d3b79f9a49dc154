#!/usr/bin/env python3
"""
Study Group Report Charts
=========================================================
Renders charts from the course report CSVs written by study_group_analyzer.

Usage:
    python visualize_study_groups.py
    python visualize_study_groups.py --data-dir ./reports
    python visualize_study_groups.py --output-dir ./charts
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # headless rendering
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import pandas as pd

from study_group_analyzer import LIST_SEPARATOR, OUTPUT_DIR, REPORT_HEADER


# ── Theme ─────────────────────────────────────────────────────────────────

THEME_COLORS = {
    "primary": "#1B3A5C",      # dark navy
    "secondary": "#2E86AB",    # bright blue
    "accent": "#F18F01",       # orange
    "success": "#2CA58D",      # teal/green
    "light": "#E8EEF2",       # light gray-blue
    "text": "#2C3E50",         # dark text
}


def apply_theme():
    """Apply theme styling to matplotlib."""
    plt.rcParams.update({
        "font.family": "sans-serif",
        "font.sans-serif": ["Helvetica Neue", "Arial", "DejaVu Sans"],
        "font.size": 11,
        "axes.titlesize": 14,
        "axes.titleweight": "bold",
        "axes.labelsize": 12,
        "axes.facecolor": "#FAFBFC",
        "axes.edgecolor": "#DEE2E6",
        "axes.grid": True,
        "grid.alpha": 0.3,
        "grid.color": "#CED4DA",
        "figure.facecolor": "white",
        "figure.dpi": 150,
        "savefig.dpi": 200,
        "savefig.bbox": "tight",
        "savefig.pad_inches": 0.3,
    })


# ── Loading ───────────────────────────────────────────────────────────────

def load_course_report(path: Path) -> pd.DataFrame:
    """Read a course report CSV and add a member_count column."""
    df = pd.read_csv(path)
    missing = [c for c in REPORT_HEADER if c not in df.columns]
    if missing:
        raise ValueError(f"{path} is not a course report (missing {', '.join(missing)})")
    df["member_count"] = df["MemberIDs"].fillna("").astype(str).map(
        lambda ids: len([i for i in ids.split(LIST_SEPARATOR.strip()) if i.strip()])
    )
    return df


def find_course_reports(data_dir: Path) -> list[Path]:
    return sorted(p for p in data_dir.glob("*.csv") if p.is_file())


# ── Chart Builders ────────────────────────────────────────────────────────

def chart_course_report(report_path: Path, output_dir: Path):
    """Average reports per member (bars) with average minutes (line)."""
    df = load_course_report(report_path)
    if df.empty:
        return None

    labels = [f"Group {g}" for g in df["Group"]]
    positions = range(len(labels))

    fig, ax1 = plt.subplots(figsize=(max(8, len(labels) * 0.9), 6))

    bars = ax1.bar(
        positions, df["Reports"],
        color=THEME_COLORS["secondary"], alpha=0.85, label="Avg Reports / Member",
        edgecolor="white", linewidth=0.5,
    )
    ax1.set_xlabel("Study Group")
    ax1.set_ylabel("Avg Reports / Member", color=THEME_COLORS["secondary"])
    ax1.set_xticks(list(positions))
    ax1.set_xticklabels(labels, rotation=30, ha="right")
    ax1.tick_params(axis="y", labelcolor=THEME_COLORS["secondary"])

    for bar, val, members in zip(bars, df["Reports"], df["member_count"]):
        ax1.text(
            bar.get_x() + bar.get_width() / 2, bar.get_height(),
            f"{val:g} ({members} m)", ha="center", va="bottom",
            fontsize=9, fontweight="bold", color=THEME_COLORS["text"],
        )

    ax2 = ax1.twinx()
    ax2.plot(
        list(positions), df["Times"],
        color=THEME_COLORS["accent"], marker="o", linewidth=2.5,
        markersize=8, label="Avg Minutes / Member", zorder=5,
    )
    ax2.set_ylabel("Avg Minutes / Member", color=THEME_COLORS["accent"])
    ax2.tick_params(axis="y", labelcolor=THEME_COLORS["accent"])

    fig.suptitle(
        f"Course Report: {report_path.stem}",
        fontsize=16, fontweight="bold", color=THEME_COLORS["primary"], y=1.02,
    )

    lines1, labels1 = ax1.get_legend_handles_labels()
    lines2, labels2 = ax2.get_legend_handles_labels()
    ax1.legend(lines1 + lines2, labels1 + labels2, loc="upper left", framealpha=0.9)

    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{report_path.stem}.png"
    fig.savefig(path)
    plt.close(fig)
    return path


def chart_report_overview(report_paths: list[Path], output_dir: Path):
    """Horizontal bars: groups and members per course report."""
    if not report_paths:
        return None

    frames = {p.stem: load_course_report(p) for p in report_paths}
    overview = pd.DataFrame({
        "groups": {name: len(df) for name, df in frames.items()},
        "members": {name: int(df["member_count"].sum()) for name, df in frames.items()},
    })

    fig, ax = plt.subplots(figsize=(11, max(4, len(overview) * 0.6)))
    overview.plot(
        kind="barh", ax=ax,
        color=[THEME_COLORS["primary"], THEME_COLORS["success"]],
        edgecolor="white", linewidth=0.5,
    )
    ax.set_xlabel("Count")
    ax.set_ylabel("")
    ax.invert_yaxis()
    ax.xaxis.set_major_formatter(mticker.FuncFormatter(lambda x, _: f"{int(x):,}"))
    ax.legend(["Groups", "Members"], loc="lower right", framealpha=0.9)

    fig.suptitle(
        "Course Reports Overview",
        fontsize=16, fontweight="bold", color=THEME_COLORS["primary"], y=1.02,
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / "overview.png"
    fig.savefig(path)
    plt.close(fig)
    return path


# ── CLI ───────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Study Group Report Charts")
    parser.add_argument(
        "--data-dir",
        default=f"./{OUTPUT_DIR}",
        help="Directory with course report CSV files",
    )
    parser.add_argument(
        "--output-dir",
        default=f"./{OUTPUT_DIR}/charts",
        help="Directory to save charts",
    )
    args = parser.parse_args()

    data = Path(args.data_dir)
    out = Path(args.output_dir)

    reports = find_course_reports(data) if data.is_dir() else []
    if not reports:
        print(f"ERROR: no course reports found in {data}.")
        print("Run the analyzer with a course name first:")
        print("  python study_group_analyzer.py -f <file-path> -n <course-name>")
        sys.exit(1)

    out.mkdir(parents=True, exist_ok=True)
    apply_theme()

    print("Generating charts...")

    charts = []
    valid_reports = []
    for report in reports:
        try:
            charts.append((report.stem, chart_course_report(report, out)))
        except ValueError as exc:
            print(f"WARNING: skipping {report.name}: {exc}")
            continue
        valid_reports.append(report)
    charts.append(("Overview", chart_report_overview(valid_reports, out)))

    generated = [(n, p) for n, p in charts if p]
    print(f"\nGenerated {len(generated)} charts:")
    for name, path in generated:
        print(f"  {name:25s} -> {path}")

    print(f"\nAll charts saved to: {out}/")


if __name__ == "__main__":
    main()
