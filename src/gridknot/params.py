from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from typing import Any

DEFAULT_STARTING_LENGTH = 0.25


@dataclass(frozen=True)
class SimulationParams:
    """
    Force-law constants for the relaxation. The engine never mutates these;
    build a new record (`with_overrides`) to change them.
    """

    # Typical segment ("stick") length before relaxation
    starting_length: float = DEFAULT_STARTING_LENGTH
    # Maximum distance a bead may travel per step
    d_max: float = DEFAULT_STARTING_LENGTH * 0.025
    # Closest two non-adjacent sticks may get; must exceed d_max
    d_close: float = DEFAULT_STARTING_LENGTH * 0.25
    mass: float = 1.0
    damping: float = 0.25
    # Pull towards the rest position (0 disables it)
    anchor_weight: float = 0.01
    # Spring: h * r^(1 + beta)
    beta: float = 1.0
    h: float = 1.0
    # Repulsion: k * r^-(2 + alpha)
    alpha: float = 4.0
    k: float = 1.0
    epsilon: float = 0.001

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite")
        if self.starting_length <= 0:
            raise ValueError("starting_length must be positive")
        if self.d_max <= 0:
            raise ValueError("d_max must be positive")
        if self.d_close <= 0:
            raise ValueError("d_close must be positive")
        if self.d_close <= self.d_max:
            raise ValueError("d_close must be larger than d_max")
        if self.mass <= 0:
            raise ValueError("mass must be positive")
        if not 0 < self.damping <= 1:
            raise ValueError("damping must lie in (0, 1]")
        if self.anchor_weight < 0:
            raise ValueError("anchor_weight must be >= 0")
        if self.h < 0 or self.k < 0:
            raise ValueError("h and k must be >= 0")
        if self.epsilon <= 0:
            raise ValueError("epsilon must be positive")

    @classmethod
    def from_starting_length(cls, starting_length: float, **overrides: Any) -> SimulationParams:
        """Derive d_max and d_close from the stick length, then apply overrides."""
        base = {
            "starting_length": starting_length,
            "d_max": starting_length * 0.025,
            "d_close": starting_length * 0.25,
        }
        base.update(overrides)
        return cls(**base)

    def with_overrides(self, **overrides: Any) -> SimulationParams:
        return replace(self, **overrides)

    def as_dict(self) -> dict[str, float]:
        return {name: float(value) for name, value in asdict(self).items()}
