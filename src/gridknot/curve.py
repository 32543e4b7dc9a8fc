from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .geometry import closed_polyline_length, segment_closest_vector, segment_lengths
from .knot_types import NpNeighborIndices, NpPoint3, NpPoints3


@dataclass(frozen=True, eq=False)
class Segment:
    start: NpPoint3
    end: NpPoint3

    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))

    def midpoint(self) -> NpPoint3:
        return (self.start + self.end) * 0.5

    def point_at(self, t: float) -> NpPoint3:
        """Point at `t` along the segment: 0 -> start, 1 -> end."""
        return self.start + (self.end - self.start) * np.float32(t)

    def shortest_vector_to(self, other: Segment) -> NpPoint3:
        """Vector from the closest point on `other` to the closest point on this segment."""
        return segment_closest_vector(self.start, self.end, other.start, other.end)

    def distance_to(self, other: Segment) -> float:
        return float(np.linalg.norm(self.shortest_vector_to(other)))


class PolygonalCurve:
    """
    Closed polyline in 3-space. Vertex n-1 connects back to vertex 0; the
    closing vertex is never stored twice.
    """

    def __init__(self, vertices: NpPoints3) -> None:
        V = np.array(vertices, dtype=np.float32)
        if V.ndim != 2 or V.shape[1] != 3:
            raise ValueError("vertices must have shape (N,3)")
        if not np.isfinite(V).all():
            raise ValueError("vertices contain non-finite coordinates")
        self._vertices = V

    @property
    def vertices(self) -> NpPoints3:
        view = self._vertices.view()
        view.flags.writeable = False
        return view

    @property
    def number_of_vertices(self) -> int:
        return int(self._vertices.shape[0])

    def __len__(self) -> int:
        return self.number_of_vertices

    def __repr__(self) -> str:
        return f"PolygonalCurve(vertices={self.number_of_vertices})"

    def copy(self) -> PolygonalCurve:
        return PolygonalCurve(self._vertices)

    def set_vertices(self, vertices: NpPoints3) -> None:
        """Overwrite every vertex at once; the vertex count is fixed for a curve."""
        V = np.array(vertices, dtype=np.float32)
        if V.shape != self._vertices.shape:
            raise ValueError(
                f"expected vertices of shape {self._vertices.shape}, got {V.shape}"
            )
        self._vertices = V

    def wrapped_index(self, index: int) -> int:
        return index % self.number_of_vertices

    def neighboring_indices_wrapped(self, center_index: int) -> tuple[int, int]:
        """(left, right) neighbours of `center_index` on the closed curve."""
        i = self.wrapped_index(center_index)
        n = self.number_of_vertices
        return (i - 1) % n, (i + 1) % n

    def neighbor_index_arrays(self) -> tuple[NpNeighborIndices, NpNeighborIndices]:
        idx = np.arange(self.number_of_vertices, dtype=np.int32)
        return np.roll(idx, 1), np.roll(idx, -1)

    def segment(self, index: int) -> Segment:
        """Segment from vertex `index` to vertex `index + 1`."""
        return Segment(
            self._vertices[self.wrapped_index(index)].copy(),
            self._vertices[self.wrapped_index(index + 1)].copy(),
        )

    def perimeter(self) -> float:
        return closed_polyline_length(self._vertices)

    def point_at(self, t: float) -> NpPoint3:
        """
        Point at arc-length fraction `t` of the closed curve, starting and
        ending at vertex 0.
        """
        if not 0.0 <= t <= 1.0:
            raise ValueError("t must lie in [0, 1]")
        lengths = segment_lengths(self._vertices)
        total = float(np.sum(lengths))
        if total <= 0.0:
            return self._vertices[0].copy()
        desired = total * t
        traversed = np.cumsum(lengths)
        k = int(np.searchsorted(traversed, desired, side="left"))
        k = min(k, self.number_of_vertices - 1)
        seg_start = float(traversed[k] - lengths[k])
        seg = self.segment(k)
        if lengths[k] <= 0.0:
            return seg.start
        return seg.point_at((desired - seg_start) / float(lengths[k]))

    def refine(self, subdivisions: int = 4) -> PolygonalCurve:
        """
        Split every segment into `subdivisions` equal pieces. Vertex i of this
        curve becomes vertex i * subdivisions of the refined one.
        """
        if subdivisions < 1:
            raise ValueError("subdivisions must be >= 1")
        A = self._vertices
        B = np.roll(A, -1, axis=0)
        t = (np.arange(subdivisions, dtype=np.float32) / subdivisions)[None, :, None]
        refined = A[:, None, :] + t * (B - A)[:, None, :]
        return PolygonalCurve(refined.reshape(-1, 3))
