from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from ..utils import debug
from .curve import PolygonalCurve
from .diagram import Axis, Cardinal, CromwellError, Direction, Entry, GridDiagram
from .extract import DEFAULT_LIFT, ExtractedCurve, generate_curve
from .knot_types import NpLiftedMask, NpPoints3, NpStuckFlags
from .params import SimulationParams
from .relax import RelaxationEngine, StepStats


@dataclass(frozen=True)
class SessionConfig:
    params: SimulationParams = field(default_factory=SimulationParams)
    use_anchors: bool = True
    # Relaxation steps run right after each rebuild
    warmup_steps: int = 3
    # Pieces each extracted grid-unit segment is split into
    subdivisions: int = 1
    lift: float = DEFAULT_LIFT

    def __post_init__(self) -> None:
        if self.warmup_steps < 0:
            raise ValueError("warmup_steps must be >= 0")
        if self.subdivisions < 1:
            raise ValueError("subdivisions must be >= 1")
        if self.lift <= 0:
            raise ValueError("lift must be positive")


class KnotSession:
    """
    A grid diagram together with the relaxing curve built from it.

    Moves are applied to the diagram; a move that the diagram rejects comes back
    as the `CromwellError` value and leaves everything untouched. Any accepted
    move re-extracts the curve and rebuilds the engine from scratch.
    """

    def __init__(self, diagram: GridDiagram, config: SessionConfig | None = None) -> None:
        self.config = SessionConfig() if config is None else config
        self._diagram = diagram.copy()
        self._extracted = self._extract()
        self._engine = RelaxationEngine(
            self._curve_for_engine(),
            self.config.params,
            use_anchors=self.config.use_anchors,
        )
        self._warmup()

    def _extract(self) -> ExtractedCurve:
        return generate_curve(self._diagram, lift=self.config.lift)

    def _curve_for_engine(self) -> PolygonalCurve:
        curve = self._extracted.curve
        if self.config.subdivisions > 1:
            curve = curve.refine(self.config.subdivisions)
        return curve

    def _warmup(self) -> None:
        for _ in range(self.config.warmup_steps):
            self._engine.step()

    def _rebuild(self) -> None:
        self._extracted = self._extract()
        self._engine.rebuild(self._curve_for_engine())
        self._warmup()
        debug.log(
            f"rebuilt curve: grid={self.size} vertices={self.vertex_count} "
            f"crossings={self._extracted.number_of_crossings}",
            tag="session",
        )

    def _apply(
        self, name: str, move: Callable[..., None], *args: Any
    ) -> CromwellError | None:
        try:
            move(*args)
        except CromwellError as err:
            debug.log(f"{name} rejected ({err.kind.value}): {err.message}", tag="session")
            return err
        debug.log(f"{name} applied", tag="session")
        self._rebuild()
        return None

    def translate(self, direction: Direction) -> CromwellError | None:
        return self._apply(f"translate {direction.value}", self._diagram.translate, direction)

    def commute(self, axis: Axis, index: int) -> CromwellError | None:
        return self._apply(
            f"commute {axis.value} {index}", self._diagram.commute, axis, index
        )

    def stabilize(self, corner: Cardinal, i: int, j: int) -> CromwellError | None:
        return self._apply(
            f"stabilize {corner.value} at ({i}, {j})",
            self._diagram.stabilize,
            corner,
            i,
            j,
        )

    def destabilize(self, i: int, j: int) -> CromwellError | None:
        return self._apply(
            f"destabilize at ({i}, {j})", self._diagram.destabilize, i, j
        )

    def relax_step(self) -> StepStats:
        return self._engine.step()

    def reset(self) -> None:
        self._engine.reset()

    @property
    def diagram(self) -> GridDiagram:
        return self._diagram.copy()

    @property
    def size(self) -> int:
        return self._diagram.size

    @property
    def rows(self) -> list[list[Entry]]:
        return self._diagram.to_rows()

    @property
    def engine(self) -> RelaxationEngine:
        return self._engine

    @property
    def extracted(self) -> ExtractedCurve:
        return self._extracted

    @property
    def curve(self) -> PolygonalCurve:
        return self._engine.rope

    @property
    def vertex_count(self) -> int:
        return self._engine.number_of_beads

    @property
    def vertices(self) -> NpPoints3:
        return self._engine.vertices

    @property
    def lifted(self) -> NpLiftedMask:
        """Lifted-crossing mask of the extracted (unrefined) curve."""
        return self._extracted.lifted.copy()

    def stuck_flags(self) -> NpStuckFlags:
        return self._engine.stuck_flags()
