from __future__ import annotations

from pathlib import Path

import numpy as np


def plot_separation(
    out_path: Path,
    steps: np.ndarray,
    min_separation: np.ndarray,
    perimeter: np.ndarray,
    d_close: float | None = None,
) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8.5, 5.0), dpi=120)
    ax.plot(
        steps, min_separation, label="min_separation", color="#1f77b4", linewidth=2.0
    )
    if d_close is not None:
        ax.axhline(d_close, color="#1f77b4", linestyle=":", linewidth=1.0, label="d_close")
    ax.set_xlabel("step")
    ax.set_ylabel("min_separation", color="#1f77b4")
    ax.tick_params(axis="y", labelcolor="#1f77b4")
    ax.grid(True, alpha=0.3)

    ax_len = ax.twinx()
    ax_len.plot(steps, perimeter, label="perimeter", color="#9467bd", linewidth=2.0)
    ax_len.set_ylabel("perimeter", color="#9467bd")
    ax_len.tick_params(axis="y", labelcolor="#9467bd")

    lines = ax.get_lines() + ax_len.get_lines()
    labels = [str(line.get_label()) for line in lines]
    ax.legend(lines, labels, loc="best")
    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
