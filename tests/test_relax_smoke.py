import json
from pathlib import Path

import numpy as np
import pytest

from src import PROJECT_ROOT
from src.gridknot.checkpoint import RELAX_CSV_FIELDS, load_checkpoint_npz
from src.gridknot.diagram_io import load_diagram_csv
from src.gridknot.relax_run import relax_session
from src.gridknot.session import KnotSession, SessionConfig
from src.run_relax import apply_move, main
from src.utils.plot_metrics import plot_metrics, read_metrics

TREFOIL_CSV = PROJECT_ROOT / "data" / "diagrams" / "trefoil.csv"


def test_relax_session_writes_checkpoints(tmp_path: Path) -> None:
    session = KnotSession(load_diagram_csv(TREFOIL_CSV), SessionConfig(warmup_steps=0))
    stats, run = relax_session(
        session,
        6,
        checkpoint_every=3,
        checkpoint_dir=tmp_path,
        progress=False,
    )
    assert stats is not None and stats.step == 6
    assert run is not None

    metadata = json.loads((run.run_dir / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["vertices"] == 24
    assert metadata["crossings"] == 3
    assert metadata["params"]["d_close"] == pytest.approx(0.0625)

    snapshots = sorted(p.name for p in run.run_dir.glob("step_*.npz"))
    assert snapshots == ["step_000000.npz", "step_000003.npz", "step_000006.npz"]
    last = load_checkpoint_npz(run.run_dir / "step_000006.npz")
    np.testing.assert_allclose(last["vertices"], np.array(session.vertices))
    assert last["stuck"].shape == (24,)
    assert int(last["step"]) == 6

    data = read_metrics(run.csv_path)
    np.testing.assert_array_equal(data["step"], np.arange(1, 7))
    assert np.all(data["min_separation"] >= 0.0625 - 1e-3)
    header = run.csv_path.read_text(encoding="utf-8").splitlines()[0]
    assert header.split(",") == RELAX_CSV_FIELDS

    plot_dir = plot_metrics(run.csv_path, tmp_path / "plots", "metrics", False, None)
    assert (plot_dir / "metrics_stuck_beads.png").exists()
    assert (plot_dir / "metrics_separation.png").exists()
    assert (plot_dir / "metrics_1_run_summary.png").exists()


def test_relax_session_without_checkpoints() -> None:
    session = KnotSession(load_diagram_csv(TREFOIL_CSV), SessionConfig(warmup_steps=0))
    stats, run = relax_session(session, 2, progress=False)
    assert run is None
    assert stats is not None and stats.step == 2
    with pytest.raises(ValueError):
        relax_session(session, -1, progress=False)


def test_apply_move_parsing() -> None:
    session = KnotSession(load_diagram_csv(TREFOIL_CSV), SessionConfig(warmup_steps=0))
    assert apply_move(session, "translate:u") is None
    err = apply_move(session, "destabilize:0:0")
    assert err is not None
    assert apply_move(session, "stabilize:se:0:1") is None
    assert session.size == 6
    with pytest.raises(ValueError):
        apply_move(session, "spin:1")
    with pytest.raises(ValueError):
        apply_move(session, "commute:diagonal:1")


def test_cli_smoke(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out = tmp_path / "final.npz"
    main(
        [
            "--input",
            str(TREFOIL_CSV),
            "--steps",
            "4",
            "--move",
            "commute:row:0",
            "--checkpoint_every",
            "2",
            "--checkpoint_dir",
            str(tmp_path / "runs"),
            "--output",
            str(out),
            "--no_progress",
        ]
    )
    printed = capsys.readouterr().out
    assert "Move rejected: commute:row:0" in printed
    assert "Relaxed: steps=7" in printed

    with np.load(out) as data:
        assert data["vertices"].shape == (24, 3)
        assert data["stuck"].shape == (24,)
        assert data["grid"].shape == (5, 5)
    runs = list((tmp_path / "runs").iterdir())
    assert len(runs) == 1
    assert (runs[0] / "metrics.csv").exists()
