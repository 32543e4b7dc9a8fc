from __future__ import annotations

from typing import TypeAlias

import jax
import numpy as np
from jaxtyping import Bool, Float, Int

NpPoint3: TypeAlias = Float[np.ndarray, "3"]
NpPoints3: TypeAlias = Float[np.ndarray, "N 3"]
NpSegmentEnds: TypeAlias = Float[np.ndarray, "... 3"]
NpDistances: TypeAlias = Float[np.ndarray, "..."]
NpNeighborIndices: TypeAlias = Int[np.ndarray, "N"]
NpStuckFlags: TypeAlias = Int[np.ndarray, "N"]
NpLiftedMask: TypeAlias = Bool[np.ndarray, "N"]
JaxPoints3: TypeAlias = Float[jax.Array, "N 3"]
JaxNeighborIndices: TypeAlias = Int[jax.Array, "N"]
