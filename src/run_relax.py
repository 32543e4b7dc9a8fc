from __future__ import annotations

import argparse
from pathlib import Path
from typing import Protocol, TypedDict, cast

import numpy as np

from .gridknot.diagram import Axis, Cardinal, CromwellError, Direction
from .gridknot.diagram_io import load_diagram_csv
from .gridknot.geometry import min_segment_separation
from .gridknot.params import SimulationParams
from .gridknot.relax_run import relax_session
from .gridknot.session import KnotSession, SessionConfig
from .utils import debug, debug_helpers


class CliArgs(Protocol):
    input: str
    output: str | None
    steps: int
    starting_length: float
    damping: float
    mass: float
    anchor_weight: float
    alpha: float
    beta: float
    h: float
    k: float
    no_anchors: bool
    warmup_steps: int
    subdivisions: int
    lift: float
    move: list[str] | None
    checkpoint_every: int | None
    checkpoint_dir: str | None
    log_every: int
    no_progress: bool
    verbose: bool


class CliArgsDict(TypedDict):
    input: str
    output: str | None
    steps: int
    starting_length: float
    damping: float
    mass: float
    anchor_weight: float
    alpha: float
    beta: float
    h: float
    k: float
    no_anchors: bool
    warmup_steps: int
    subdivisions: int
    lift: float
    move: list[str] | None
    checkpoint_every: int | None
    checkpoint_dir: str | None
    log_every: int
    no_progress: bool
    verbose: bool


def apply_move(session: KnotSession, text: str) -> CromwellError | None:
    """
    Apply one move written as colon-separated fields:
    translate:U|D|L|R, commute:row|col:INDEX, stabilize:NW|SW|NE|SE:I:J,
    destabilize:I:J.
    """
    name, *fields = text.strip().split(":")
    name = name.lower()
    try:
        if name == "translate" and len(fields) == 1:
            return session.translate(Direction[fields[0].upper()])
        if name == "commute" and len(fields) == 2:
            return session.commute(Axis(fields[0].lower()), int(fields[1]))
        if name == "stabilize" and len(fields) == 3:
            return session.stabilize(
                Cardinal[fields[0].upper()], int(fields[1]), int(fields[2])
            )
        if name == "destabilize" and len(fields) == 2:
            return session.destabilize(int(fields[0]), int(fields[1]))
    except (KeyError, ValueError) as err:
        raise ValueError(f"malformed move {text!r}: {err}") from err
    raise ValueError(f"malformed move {text!r}")


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--input", required=True, help="Grid diagram CSV (x, o, blank)")
    ap.add_argument(
        "--output",
        default=None,
        help="Optional NPZ with the final vertices and stuck flags",
    )
    ap.add_argument("--steps", type=int, default=1000)
    ap.add_argument(
        "--starting_length",
        type=float,
        default=0.25,
        help="Stick length; d_max and d_close are derived from it",
    )
    ap.add_argument("--damping", type=float, default=0.25)
    ap.add_argument("--mass", type=float, default=1.0)
    ap.add_argument("--anchor_weight", type=float, default=0.01)
    ap.add_argument("--alpha", type=float, default=4.0, help="Repulsion exponent offset")
    ap.add_argument("--beta", type=float, default=1.0, help="Spring exponent offset")
    ap.add_argument("--h", type=float, default=1.0, help="Spring constant")
    ap.add_argument("--k", type=float, default=1.0, help="Repulsion constant")
    ap.add_argument(
        "--no_anchors",
        action="store_true",
        help="Disable the pull towards the extracted rest positions",
    )
    ap.add_argument("--warmup_steps", type=int, default=3)
    ap.add_argument(
        "--subdivisions",
        type=int,
        default=1,
        help="Split each grid-unit segment into this many pieces",
    )
    ap.add_argument("--lift", type=float, default=1.0, help="Crossing lift along z")
    ap.add_argument(
        "--move",
        action="append",
        default=None,
        help="Cromwell move applied before relaxing (repeatable), "
        "e.g. translate:U, commute:row:1, stabilize:NW:0:0, destabilize:0:0",
    )
    ap.add_argument(
        "--checkpoint_every",
        type=int,
        default=None,
        help="Write a checkpoint run (metrics.csv every step, NPZ every N steps; "
        "0 keeps only the CSV)",
    )
    ap.add_argument(
        "--checkpoint_dir",
        default=None,
        help="Parent directory for checkpoint runs (defaults to data/checkpoints)",
    )
    ap.add_argument("--log_every", type=int, default=100)
    ap.add_argument("--no_progress", action="store_true", help="Hide the progress bar")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logs")

    args = cast(CliArgs, ap.parse_args(argv))
    debug.set_verbose(args.verbose)

    if args.steps < 0:
        raise ValueError("steps must be >= 0")
    if args.checkpoint_every is not None and args.checkpoint_every < 0:
        raise ValueError("checkpoint_every must be >= 0")

    cli_args_raw = vars(args)
    expected_cli = set(CliArgsDict.__annotations__.keys())
    actual_cli = set(cli_args_raw.keys())
    if actual_cli != expected_cli:
        missing = sorted(expected_cli - actual_cli)
        extra = sorted(actual_cli - expected_cli)
        raise ValueError(
            f"CliArgsDict mismatch. missing={missing} extra={extra}"
        )
    cli_args = cast(CliArgsDict, cli_args_raw)

    params = SimulationParams.from_starting_length(
        args.starting_length,
        damping=args.damping,
        mass=args.mass,
        anchor_weight=args.anchor_weight,
        alpha=args.alpha,
        beta=args.beta,
        h=args.h,
        k=args.k,
    )
    config = SessionConfig(
        params=params,
        use_anchors=not args.no_anchors,
        warmup_steps=args.warmup_steps,
        subdivisions=args.subdivisions,
        lift=args.lift,
    )

    # 1) Diagram -> curve
    diagram = load_diagram_csv(Path(args.input))
    debug.log(f"diagram size={diagram.size}\n{diagram}")
    session = KnotSession(diagram, config)
    print(
        f"Loaded: {args.input}  grid={session.size}  vertices={session.vertex_count}  "
        f"crossings={session.extracted.number_of_crossings}"
    )

    # 2) Moves
    for text in args.move or []:
        err = apply_move(session, text)
        if err is not None:
            print(f"Move rejected: {text}  ({err.kind.value}) {err.message}")
        else:
            print(
                f"Move applied: {text}  grid={session.size}  "
                f"vertices={session.vertex_count}"
            )

    # 3) Relax
    _, run = relax_session(
        session,
        args.steps,
        checkpoint_every=args.checkpoint_every,
        checkpoint_dir=(
            Path(args.checkpoint_dir) if args.checkpoint_dir is not None else None
        ),
        metadata_extra={"cli_args": cli_args},
        log_every=args.log_every,
        progress=not args.no_progress,
    )

    V = np.array(session.vertices)
    stuck = session.stuck_flags()
    debug_helpers.log_array("vertices", V)
    stuck_count = int(stuck.sum())
    print(
        f"Relaxed: steps={session.engine.steps_taken}  stuck={stuck_count}  "
        f"min_separation={min_segment_separation(V):.6g}  "
        f"perimeter={session.curve.perimeter():.6g}"
    )
    if run is not None:
        print(f"Checkpoints: {run.run_dir}")

    if args.output is not None:
        np.savez_compressed(
            args.output,
            vertices=V,
            stuck=stuck,
            lifted=session.lifted,
            grid=np.array(
                [[entry.value for entry in row] for row in session.rows], dtype="<U1"
            ),
        )
        print(f"Saved: {args.output}")


if __name__ == "__main__":
    main()
