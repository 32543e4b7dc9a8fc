from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def summary_lines(
    run_dir: Path,
    start_step: int,
    end_step: int,
    metadata: dict[str, Any],
) -> list[str]:
    params = metadata.get("params", {})
    lines = [
        f"run_dir: {run_dir}",
        f"steps: {start_step} .. {end_step}",
        f"grid_size: {metadata.get('grid_size', '?')}  "
        f"vertices: {metadata.get('vertices', '?')}  "
        f"crossings: {metadata.get('crossings', '?')}",
        "",
        "params:",
        *(f"  {name} = {value:.6g}" for name, value in sorted(params.items())),
        "",
        "metadata.json:",
    ]
    rest = {key: val for key, val in metadata.items() if key != "params"}
    lines.extend(json.dumps(rest, indent=2, sort_keys=True).splitlines())
    return lines


def plot_run_summary(out_path: Path, title: str, lines: list[str]) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8.5, 11.0), dpi=120)
    ax.axis("off")
    fig.suptitle(title, fontsize=12, y=0.98)
    ax.text(
        0.01,
        0.98,
        "\n".join(lines),
        va="top",
        ha="left",
        family="monospace",
        fontsize=8,
    )
    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
