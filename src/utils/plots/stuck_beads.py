from __future__ import annotations

from pathlib import Path

import numpy as np


def plot_stuck_beads(
    out_path: Path,
    steps: np.ndarray,
    stuck: np.ndarray,
    vertices: int | None = None,
) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8.5, 5.0), dpi=120)
    ax.step(steps, stuck, where="post", color="#d62728", linewidth=1.5, label="stuck")
    if vertices is not None:
        ax.axhline(vertices, color="#7f7f7f", linestyle="--", linewidth=1.0, label="beads")
    ax.set_xlabel("step")
    ax.set_ylabel("stuck beads")
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3)
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
