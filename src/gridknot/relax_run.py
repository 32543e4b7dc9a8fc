from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import numpy as np
from tqdm import tqdm  # type: ignore[reportMissingModuleSource]

from .. import PROJECT_ROOT
from ..utils import debug
from .checkpoint import (
    RELAX_CSV_FIELDS,
    CheckpointRun,
    append_metrics_csv,
    init_checkpoint_run,
    save_checkpoint_npz,
)
from .geometry import min_segment_separation
from .relax import StepStats
from .session import KnotSession


def _metrics_row(
    session: KnotSession,
    stats: StepStats,
    start_time: float,
    step_start: float,
) -> dict[str, Any]:
    V = np.array(session.vertices)
    return {
        "step": stats.step,
        "stuck": stats.stuck,
        "min_separation": min_segment_separation(V),
        "perimeter": session.curve.perimeter(),
        "max_step": stats.max_step,
        "elapsed_s": float(time.perf_counter() - start_time),
        "step_s": float(time.perf_counter() - step_start),
    }


def _save_snapshot(run: CheckpointRun, session: KnotSession, step_idx: int) -> Path:
    return save_checkpoint_npz(
        run.run_dir,
        step_idx,
        np.array(session.vertices),
        session.stuck_flags(),
        np.array(session.engine.anchors.vertices),
    )


def relax_session(
    session: KnotSession,
    steps: int,
    *,
    checkpoint_every: int | None = None,
    checkpoint_dir: Path | None = None,
    metadata_extra: dict[str, Any] | None = None,
    log_every: int = 100,
    progress: bool = True,
) -> tuple[StepStats | None, CheckpointRun | None]:
    """
    Run `steps` relaxation steps on `session`.

    With `checkpoint_every` set, a run directory is created under
    `checkpoint_dir` (default data/checkpoints) holding metadata.json, one
    metrics.csv row per step and an npz snapshot every `checkpoint_every`
    steps (0 keeps the CSV but skips snapshots).
    """
    if steps < 0:
        raise ValueError("steps must be >= 0")
    if log_every <= 0:
        raise ValueError("log_every must be positive")
    if checkpoint_every is not None and checkpoint_every < 0:
        raise ValueError("checkpoint_every must be >= 0")

    run: CheckpointRun | None = None
    if checkpoint_every is not None:
        metadata: dict[str, Any] = {
            "grid_size": session.size,
            "vertices": session.vertex_count,
            "crossings": session.extracted.number_of_crossings,
            "steps": steps,
            "checkpoint_every": checkpoint_every,
            "params": session.config.params.as_dict(),
            "use_anchors": session.config.use_anchors,
            "warmup_steps": session.config.warmup_steps,
            "subdivisions": session.config.subdivisions,
            "lift": session.config.lift,
        }
        if metadata_extra is not None:
            metadata.update(metadata_extra)
        base_dir = (
            checkpoint_dir
            if checkpoint_dir is not None
            else PROJECT_ROOT / "data" / "checkpoints"
        )
        run = init_checkpoint_run(base_dir, metadata)
        if checkpoint_every > 0:
            _save_snapshot(run, session, session.engine.steps_taken)

    stats: StepStats | None = None
    start_time = time.perf_counter()
    for t in tqdm(range(steps), desc="Relaxing", unit="step", disable=not progress):
        step_start = time.perf_counter()
        stats = session.relax_step()

        if run is not None:
            append_metrics_csv(
                run.csv_path,
                RELAX_CSV_FIELDS,
                _metrics_row(session, stats, start_time, step_start),
            )
            if checkpoint_every and stats.step % checkpoint_every == 0:
                path = _save_snapshot(run, session, stats.step)
                debug.log(f"checkpoint saved step={stats.step} path={path}", tag="relax")

        if (t % log_every) == 0 or t == steps - 1:
            debug.log(
                f"step {stats.step:5d}  stuck={stats.stuck}  max_step={stats.max_step:.6g}",
                tag="relax",
            )

    return stats, run
