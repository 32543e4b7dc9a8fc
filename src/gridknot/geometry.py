from __future__ import annotations

import numpy as np
from beartype import beartype
from jaxtyping import Float, Int, jaxtyped

from .knot_types import NpDistances, NpPoints3, NpSegmentEnds


def _closest_vector(
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
    d: np.ndarray,
    parallel_tol: float,
) -> np.ndarray:
    u = b - a
    v = d - c
    w = a - c
    A = np.sum(u * u, axis=-1)
    B = np.sum(u * v, axis=-1)
    C = np.sum(v * v, axis=-1)
    D = np.sum(u * w, axis=-1)
    E = np.sum(v * w, axis=-1)
    denom = A * C - B * B
    A_safe = np.where(A > 0.0, A, 1.0)
    C_safe = np.where(C > 0.0, C, 1.0)

    # Nearly parallel or zero-length segments have no unique line optimum:
    # start from an end of the shorter one instead.
    parallel = denom <= parallel_tol * A * C
    denom_safe = np.where(parallel, 1.0, denom)
    s_start = np.where(A > C, np.clip(-D / A_safe, 0.0, 1.0), 0.0)
    s = np.where(parallel, s_start, np.clip((B * E - C * D) / denom_safe, 0.0, 1.0))

    # Project onto [c,d] for that s, clamp, then back onto [a,b].
    t = np.clip((E + s * B) / C_safe, 0.0, 1.0)
    s = np.clip((t * B - D) / A_safe, 0.0, 1.0)
    return w + s[..., None] * u - t[..., None] * v


@jaxtyped(typechecker=beartype)
def segment_closest_vector(
    a: NpSegmentEnds,
    b: NpSegmentEnds,
    c: NpSegmentEnds,
    d: NpSegmentEnds,
    parallel_tol: float = 1e-6,
) -> NpSegmentEnds:
    """
    Vector between the closest points of segments [a,b] and [c,d].
    a,b,c,d: (...,3) broadcastable
    The segment parameters are clamped to [0,1]; `parallel_tol` is relative to
    the squared segment lengths.
    """
    return _closest_vector(a, b, c, d, parallel_tol)


@jaxtyped(typechecker=beartype)
def segment_distance(
    a: NpSegmentEnds,
    b: NpSegmentEnds,
    c: NpSegmentEnds,
    d: NpSegmentEnds,
    parallel_tol: float = 1e-6,
) -> NpDistances:
    """Minimum distance between segments [a,b] and [c,d]: (...,)"""
    return np.asarray(
        np.linalg.norm(_closest_vector(a, b, c, d, parallel_tol), axis=-1)
    )


def _bead_edge_clearance(V: np.ndarray, index: int, parallel_tol: float) -> float:
    n = V.shape[0]
    if n < 5:
        return float("inf")
    # Segment k runs from vertex k to vertex k+1 (cyclically). The bead's own
    # segments are index-1 and index; skip those and their neighbours.
    excluded = {(index + off) % n for off in (-2, -1, 0, 1)}
    others = np.array([k for k in range(n) if k not in excluded], dtype=np.int64)
    starts = V[others]
    ends = V[(others + 1) % n]

    left_a = V[(index - 1) % n]
    mid = V[index]
    right_b = V[(index + 1) % n]
    d_left = np.linalg.norm(
        _closest_vector(left_a[None, :], mid[None, :], starts, ends, parallel_tol),
        axis=-1,
    )
    d_right = np.linalg.norm(
        _closest_vector(mid[None, :], right_b[None, :], starts, ends, parallel_tol),
        axis=-1,
    )
    return float(min(d_left.min(), d_right.min()))


@jaxtyped(typechecker=beartype)
def bead_edge_clearance(
    V: NpPoints3,
    index: int,
    parallel_tol: float = 1e-6,
) -> float:
    """
    Smallest distance between the two segments meeting at vertex `index` and
    every segment of the closed polyline that does not touch either of them.
    Returns inf when the polyline is too short to have such segments.
    """
    return _bead_edge_clearance(V, index, parallel_tol)


@jaxtyped(typechecker=beartype)
def separated_segment_pairs(
    n: int,
    min_gap: int = 3,
) -> tuple[Int[np.ndarray, "P"], Int[np.ndarray, "P"]]:
    """
    Index pairs (k, l), k < l, of segments of a closed n-gon whose cyclic index
    distance is at least `min_gap`.
    """
    k, l = np.triu_indices(n, k=1)
    gap = np.minimum(l - k, n - (l - k))
    keep = gap >= min_gap
    return k[keep].astype(np.int64), l[keep].astype(np.int64)


@jaxtyped(typechecker=beartype)
def min_segment_separation(
    V: NpPoints3,
    min_gap: int = 3,
) -> float:
    """
    Minimum distance over all segment pairs of the closed polyline V whose
    cyclic index distance is at least `min_gap`; inf if there are none.
    """
    n = V.shape[0]
    k, l = separated_segment_pairs(n, min_gap)
    if k.size == 0:
        return float("inf")
    dist = segment_distance(V[k], V[(k + 1) % n], V[l], V[(l + 1) % n])
    return float(np.min(dist))


@jaxtyped(typechecker=beartype)
def closed_polyline_length(V: NpPoints3) -> float:
    """Perimeter of the closed polyline V (last vertex joins the first)."""
    seg = np.roll(V, -1, axis=0) - V
    return float(np.sum(np.linalg.norm(seg, axis=-1)))


@jaxtyped(typechecker=beartype)
def segment_lengths(V: NpPoints3) -> Float[np.ndarray, "N"]:
    return np.linalg.norm(np.roll(V, -1, axis=0) - V, axis=-1)
