from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from typing import Any

import matplotlib
import numpy as np

from .plots import (
    plot_run_summary,
    plot_separation,
    plot_step_size,
    plot_stuck_beads,
)
from .plots.run_summary import summary_lines

REQUIRED_FIELDS = [
    "step",
    "stuck",
    "min_separation",
    "perimeter",
]
OPTIONAL_FIELDS = [
    "max_step",
    "elapsed_s",
    "step_s",
]


def read_metrics(csv_path: Path) -> dict[str, np.ndarray]:
    with csv_path.open(newline="") as csv_file:
        reader = csv.DictReader(csv_file)
        if reader.fieldnames is None:
            raise ValueError("metrics.csv is missing a header row")
        missing = [field for field in REQUIRED_FIELDS if field not in reader.fieldnames]
        if missing:
            raise ValueError(f"metrics.csv missing columns: {', '.join(missing)}")
        optional = [field for field in OPTIONAL_FIELDS if field in reader.fieldnames]
        rows = list(reader)

    if not rows:
        raise ValueError("metrics.csv has no data rows")

    steps = np.array([int(row["step"]) for row in rows], dtype=np.int32)
    order = np.argsort(steps)

    def col_float(name: str) -> np.ndarray:
        return np.array([float(row[name]) for row in rows], dtype=np.float32)[order]

    data = {
        "step": steps[order],
        "stuck": np.array([int(row["stuck"]) for row in rows], dtype=np.int32)[order],
        "min_separation": col_float("min_separation"),
        "perimeter": col_float("perimeter"),
    }
    for name in optional:
        data[name] = col_float(name)
    return data


def plot_metrics(
    csv_path: Path,
    out_dir: Path,
    prefix: str,
    show: bool,
    start_step: int | None,
) -> Path:
    if not show:
        matplotlib.use("Agg")
    data = read_metrics(csv_path)
    out_dir.mkdir(parents=True, exist_ok=True)

    suffix = ""
    if start_step is not None:
        mask = data["step"] >= start_step
        if not np.any(mask):
            raise ValueError(f"No rows with step >= {start_step}")
        data = {key: val[mask] for key, val in data.items()}
        suffix = f"_from_step{start_step}"

    steps = data["step"]
    start_label = int(steps[0])
    end_label = int(steps[-1])
    plot_dir = out_dir / f"start_{start_label}_end_{end_label}"
    plot_dir.mkdir(parents=True, exist_ok=True)

    metadata: dict[str, Any] = {}
    metadata_path = csv_path.with_name("metadata.json")
    if metadata_path.exists():
        metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        plot_run_summary(
            plot_dir / f"{prefix}{suffix}_1_run_summary.png",
            "1 Run Summary",
            summary_lines(csv_path.parent, start_label, end_label, metadata),
        )
    params = metadata.get("params", {})

    plot_stuck_beads(
        plot_dir / f"{prefix}{suffix}_stuck_beads.png",
        steps,
        data["stuck"],
        metadata.get("vertices"),
    )
    plot_separation(
        plot_dir / f"{prefix}{suffix}_separation.png",
        steps,
        data["min_separation"],
        data["perimeter"],
        params.get("d_close"),
    )
    if "max_step" in data:
        plot_step_size(
            plot_dir / f"{prefix}{suffix}_step_size.png",
            steps,
            data["max_step"],
            params.get("d_max"),
        )

    if show:
        import matplotlib.pyplot as plt

        plt.show()
    return plot_dir


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--input", required=True, help="Path to metrics.csv")
    ap.add_argument(
        "--out-dir",
        default=None,
        help="Output directory for plots (defaults to CSV directory)",
    )
    ap.add_argument(
        "--prefix",
        default=None,
        help="Output filename prefix (defaults to CSV stem)",
    )
    ap.add_argument("--show", action="store_true", help="Show plots interactively")
    ap.add_argument(
        "--start-step",
        type=int,
        default=None,
        help="Only plot rows with step >= this value",
    )
    args = ap.parse_args()

    csv_path = Path(args.input)
    out_dir = Path(args.out_dir) if args.out_dir is not None else csv_path.parent
    prefix = args.prefix if args.prefix is not None else csv_path.stem

    plot_dir = plot_metrics(csv_path, out_dir, prefix, args.show, args.start_step)
    print(f"Saved plots: {plot_dir}")


if __name__ == "__main__":
    main()
