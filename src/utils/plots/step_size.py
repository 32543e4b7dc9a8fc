from __future__ import annotations

from pathlib import Path

import numpy as np


def plot_step_size(
    out_path: Path,
    steps: np.ndarray,
    max_step: np.ndarray,
    d_max: float | None = None,
) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8.5, 5.0), dpi=120)
    ax.plot(steps, max_step, color="#2ca02c", linewidth=1.5, label="max_step")
    if d_max is not None:
        ax.axhline(d_max, color="#7f7f7f", linestyle="--", linewidth=1.0, label="d_max")
    ax.set_xlabel("step")
    ax.set_ylabel("largest bead displacement")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
