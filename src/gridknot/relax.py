from __future__ import annotations

from dataclasses import dataclass
from functools import partial

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from jaxtyping import jaxtyped

from ..utils import debug, debug_helpers
from .curve import PolygonalCurve
from .geometry import _bead_edge_clearance
from .knot_types import (
    JaxNeighborIndices,
    JaxPoints3,
    NpPoint3,
    NpPoints3,
    NpStuckFlags,
)
from .params import SimulationParams

__all__ = [
    "Bead",
    "StepStats",
    "RelaxationEngine",
    "pairwise_forces",
    "anchor_forces",
]

# Relative tolerance for treating two sticks as parallel in the collision guard
PARALLEL_TOL = 1e-6


@dataclass(frozen=True, eq=False)
class Bead:
    """Read-only snapshot of one particle slot in the engine's arena."""

    index: int
    position: NpPoint3
    prev_position: NpPoint3
    velocity: NpPoint3
    acceleration: NpPoint3
    neighbor_l_index: int
    neighbor_r_index: int
    is_stuck: bool

    def are_neighbors(self, other: Bead) -> bool:
        return self.index in (other.neighbor_l_index, other.neighbor_r_index)


@dataclass(frozen=True)
class StepStats:
    step: int
    stuck: int
    max_step: float


@jaxtyped(typechecker=beartype)
def pairwise_forces(
    X: JaxPoints3,
    left: JaxNeighborIndices,
    right: JaxNeighborIndices,
    *,
    h: float,
    beta: float,
    k: float,
    alpha: float,
    epsilon: float,
) -> JaxPoints3:
    """
    Net force on every bead from every other bead.
    Ring neighbours attract with h * r^(1+beta); all other beads repel with
    k * r^-(2+alpha). Pairs closer than epsilon contribute nothing.
    """
    n = X.shape[0]
    diff = X[None, :, :] - X[:, None, :]  # [i, j] points from bead i to bead j
    r = jnp.linalg.norm(diff, axis=-1)
    idx = jnp.arange(n)
    neighbor = (idx[None, :] == left[:, None]) | (idx[None, :] == right[:, None])
    valid = (r >= epsilon) & (idx[None, :] != idx[:, None])
    r_safe = jnp.where(valid, r, 1.0)
    direction = diff / r_safe[..., None]

    spring = h * jnp.power(r_safe, 1.0 + beta)
    repulse = -k * jnp.power(r_safe, -(2.0 + alpha))
    magnitude = jnp.where(valid, jnp.where(neighbor, spring, repulse), 0.0)
    return jnp.sum(magnitude[..., None] * direction, axis=1)


@jaxtyped(typechecker=beartype)
def anchor_forces(
    X: JaxPoints3,
    anchors: JaxPoints3,
    *,
    h: float,
    beta: float,
    weight: float,
    epsilon: float,
) -> JaxPoints3:
    """Spring pull of each bead towards its rest position, scaled by `weight`."""
    to_anchor = anchors - X
    r = jnp.linalg.norm(to_anchor, axis=-1)
    ok = r > epsilon
    r_safe = jnp.where(ok, r, 1.0)
    magnitude = jnp.where(ok, weight * h * jnp.power(r_safe, 1.0 + beta), 0.0)
    return (magnitude / r_safe)[:, None] * to_anchor


@partial(jax.jit, static_argnames=("params", "use_anchors"))
def _integrate(
    X: JaxPoints3,
    velocity: JaxPoints3,
    acceleration: JaxPoints3,
    anchors: JaxPoints3,
    left: JaxNeighborIndices,
    right: JaxNeighborIndices,
    params: SimulationParams,
    use_anchors: bool,
) -> tuple[JaxPoints3, JaxPoints3, JaxPoints3]:
    force = pairwise_forces(
        X,
        left,
        right,
        h=float(params.h),
        beta=float(params.beta),
        k=float(params.k),
        alpha=float(params.alpha),
        epsilon=float(params.epsilon),
    )
    if use_anchors:
        force = force + anchor_forces(
            X,
            anchors,
            h=float(params.h),
            beta=float(params.beta),
            weight=float(params.anchor_weight),
            epsilon=float(params.epsilon),
        )

    acceleration = acceleration + force / params.mass
    velocity = (velocity + acceleration) * params.damping
    acceleration = jnp.zeros_like(acceleration)

    # Overflowed forces keep only their direction; NaN components carry none.
    finite = jnp.isfinite(velocity)
    overflow = ~jnp.all(finite, axis=-1, keepdims=True)
    direction = jnp.where(finite, 0.0, jnp.nan_to_num(jnp.sign(velocity)))
    velocity = jnp.where(overflow, direction * params.d_max, velocity)

    # Each bead travels at most d_max per step
    speed = jnp.linalg.norm(velocity, axis=-1)
    scale = jnp.where(
        speed > params.d_max,
        params.d_max / jnp.where(speed > 0.0, speed, 1.0),
        1.0,
    )
    proposed = X + velocity * scale[:, None]
    return proposed, velocity, acceleration


class RelaxationEngine:
    """
    Mass-spring relaxation of a closed polyline ("rope").

    Beads live in contiguous arrays indexed like the curve's vertices, with
    ring neighbours cached as integer indices. A step computes every bead's
    force from the pre-step positions, integrates, and then walks the beads in
    index order: a bead whose two sticks come within `d_close` of any stick
    they do not touch is moved back to its previous position and marked stuck.
    That guard sees the beads before it already moved.
    """

    def __init__(
        self,
        curve: PolygonalCurve,
        params: SimulationParams | None = None,
        *,
        use_anchors: bool = True,
    ) -> None:
        self.params = SimulationParams() if params is None else params
        self.use_anchors = use_anchors
        self.rebuild(curve)

    def rebuild(self, curve: PolygonalCurve) -> None:
        """Replace the curve and recreate every bead (vertex count or topology changed)."""
        if curve.number_of_vertices < 3:
            raise ValueError("a closed curve needs at least 3 vertices")
        self._rope = curve.copy()
        self._anchors = curve.copy()
        anchors = np.array(self._anchors.vertices, dtype=np.float32)
        self._anchors_j = jnp.asarray(anchors)

        self._position = anchors.copy()
        self._prev_position = anchors.copy()
        self._velocity = np.zeros_like(anchors)
        self._acceleration = np.zeros_like(anchors)
        left, right = self._rope.neighbor_index_arrays()
        self._left = left
        self._right = right
        self._left_j = jnp.asarray(left)
        self._right_j = jnp.asarray(right)
        self._stuck = np.zeros(anchors.shape[0], dtype=bool)
        self._steps = 0
        n = anchors.shape[0]
        debug.log(f"built {n} beads", tag="relax")
        # the step kernel is traced once per bead count
        debug_helpers.log_once(
            f"trace_{n}", f"step kernel will trace for {n} beads", tag="relax"
        )

    @property
    def rope(self) -> PolygonalCurve:
        return self._rope

    @property
    def anchors(self) -> PolygonalCurve:
        return self._anchors

    @property
    def vertices(self) -> NpPoints3:
        return self._rope.vertices

    @property
    def number_of_beads(self) -> int:
        return int(self._position.shape[0])

    @property
    def steps_taken(self) -> int:
        return self._steps

    def bead(self, index: int) -> Bead:
        i = index % self.number_of_beads
        return Bead(
            index=i,
            position=self._position[i].copy(),
            prev_position=self._prev_position[i].copy(),
            velocity=self._velocity[i].copy(),
            acceleration=self._acceleration[i].copy(),
            neighbor_l_index=int(self._left[i]),
            neighbor_r_index=int(self._right[i]),
            is_stuck=bool(self._stuck[i]),
        )

    def stuck_flags(self) -> NpStuckFlags:
        """Per-vertex 0/1 flags for the last step."""
        return self._stuck.astype(np.int32)

    def step(self) -> StepStats:
        params = self.params
        before = self._position
        proposed_j, velocity_j, acceleration_j = _integrate(
            jnp.asarray(before),
            jnp.asarray(self._velocity),
            jnp.asarray(self._acceleration),
            self._anchors_j,
            self._left_j,
            self._right_j,
            params,
            self.use_anchors,
        )
        proposed = np.array(proposed_j, dtype=np.float32)
        self._velocity = np.array(velocity_j, dtype=np.float32)
        self._acceleration = np.array(acceleration_j, dtype=np.float32)
        if debug.is_verbose() and not np.isfinite(proposed).all():
            debug_helpers.log_array_once(
                "proposed_nonfinite", "proposed", proposed, tag="relax"
            )

        self._prev_position = before.copy()
        working = before.copy()
        stuck = np.zeros(self.number_of_beads, dtype=bool)
        for i in range(self.number_of_beads):
            working[i] = proposed[i]
            clearance = _bead_edge_clearance(working, i, PARALLEL_TOL)
            if clearance < params.d_close:
                working[i] = self._prev_position[i]
                stuck[i] = True

        self._position = working
        self._stuck = stuck
        self._rope.set_vertices(working)
        self._steps += 1

        moved = np.linalg.norm(working - self._prev_position, axis=-1)
        stats = StepStats(
            step=self._steps,
            stuck=int(stuck.sum()),
            max_step=float(moved.max()) if moved.size else 0.0,
        )
        if debug.is_verbose():
            debug.log(
                f"step={stats.step} stuck={stats.stuck} max_step={stats.max_step:.6g}",
                tag="relax",
            )
        return stats

    def reset(self) -> None:
        """Put every bead back on its anchor; bead count and neighbours are kept."""
        anchors = np.array(self._anchors.vertices, dtype=np.float32)
        self._position = anchors.copy()
        self._prev_position = anchors.copy()
        self._velocity = np.zeros_like(anchors)
        self._acceleration = np.zeros_like(anchors)
        self._stuck = np.zeros(anchors.shape[0], dtype=bool)
        self._rope.set_vertices(anchors)
        self._steps = 0
