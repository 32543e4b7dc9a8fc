from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..utils import debug, debug_helpers
from .curve import PolygonalCurve
from .diagram import Axis, DiagramError, Entry, GridDiagram
from .knot_types import NpLiftedMask

__all__ = [
    "Crossing",
    "ExtractedCurve",
    "traverse",
    "find_crossings",
    "insert_crossings",
    "grid_coordinate",
    "generate_curve",
]

DEFAULT_LIFT = 1.0


@dataclass(frozen=True)
class Crossing:
    """A column passing over a row at grid cell (row, col)."""

    row: int
    col: int
    absolute_index: int


@dataclass(frozen=True, eq=False)
class ExtractedCurve:
    curve: PolygonalCurve
    lifted: NpLiftedMask
    traversal: tuple[int, ...]
    crossed: tuple[int, ...]
    crossings: tuple[Crossing, ...]

    @property
    def number_of_crossings(self) -> int:
        return len(self.crossings)


def traverse(diagram: GridDiagram) -> list[int]:
    """
    Walk the knot through its X/O endpoints, starting with column 0.

    Columns connect x -> o and rows connect o -> x. Cells are stored as
    absolute indices `row + col * N`. The walk stops when an index repeats and
    the first index is appended again to close the loop, so a single-component
    N x N diagram yields exactly 2N + 1 indices.
    """
    n = diagram.size
    x_row, o_row = diagram.find_indices_of_xo(Axis.COL, 0)
    indices = [diagram.absolute_index(x_row, 0), diagram.absolute_index(o_row, 0)]
    seen = set(indices)

    end = o_row
    horizontal = True
    while True:
        if horizontal:
            # We are at an `o`: find the `x` in its row
            nxt = diagram.find_index_of_first(Axis.ROW, end, Entry.X)
            absolute = diagram.absolute_index(end, nxt)
        else:
            # We are at an `x`: find the `o` in its column
            nxt = diagram.find_index_of_first(Axis.COL, end, Entry.O)
            absolute = diagram.absolute_index(nxt, end)

        if absolute in seen:
            indices.append(indices[0])
            break
        indices.append(absolute)
        seen.add(absolute)
        end = nxt
        horizontal = not horizontal

    if len(indices) != 2 * n + 1:
        raise DiagramError(
            f"Error when constructing curve: traversal visited {len(indices)} "
            f"indices, expected {2 * n + 1} (is the diagram a single closed loop?)"
        )
    debug_helpers.log_indices("traversal", indices, tag="extract")
    return indices


def find_crossings(diagram: GridDiagram, indices: list[int]) -> list[list[Crossing]]:
    """
    Columns pass over rows. For each column chunk of the traversal (in
    traversal order), return the crossings along it ordered the way the walk
    meets them.
    """
    cols = indices[:-1]
    rows = indices[1:]
    col_chunks = [(cols[2 * k], cols[2 * k + 1]) for k in range(len(cols) // 2)]
    row_chunks = [(rows[2 * k], rows[2 * k + 1]) for k in range(len(rows) // 2)]

    per_column: list[list[Crossing]] = []
    for col_s, col_e in col_chunks:
        s_i, col_j = diagram.grid_indices(col_s)
        e_i, _ = diagram.grid_indices(col_e)
        top, bottom = min(s_i, e_i), max(s_i, e_i)

        hits: list[Crossing] = []
        for row_s, row_e in row_chunks:
            row_i, a_j = diagram.grid_indices(row_s)
            _, b_j = diagram.grid_indices(row_e)
            left, right = min(a_j, b_j), max(a_j, b_j)
            if left < col_j < right and top < row_i < bottom:
                hits.append(
                    Crossing(row_i, col_j, diagram.absolute_index(row_i, col_j))
                )

        hits.sort(key=lambda c: c.row)
        if s_i > e_i:
            # walked bottom to top
            hits.reverse()
        per_column.append(hits)

    if debug.is_verbose():
        found = [(c.row, c.col) for hits in per_column for c in hits]
        debug.log(f"crossings ({len(found)}): {found}", tag="extract")
    return per_column


def insert_crossings(indices: list[int], per_column: list[list[Crossing]]) -> list[int]:
    """Splice each column's crossings in right after the column's first endpoint."""
    if len(per_column) != (len(indices) - 1) // 2:
        raise DiagramError("crossing list does not match the traversal")
    out: list[int] = []
    for position, absolute in enumerate(indices):
        out.append(absolute)
        if position % 2 == 0 and position < len(indices) - 1:
            out.extend(c.absolute_index for c in per_column[position // 2])
    return out


def grid_coordinate(n: int, i: int, j: int, z: float = 0.0) -> tuple[float, float, float]:
    """World position of grid cell (i, j): unit cells, grid centred on the origin."""
    half = 0.5 * n
    return float(j) - half, half - float(i), z


def generate_curve(diagram: GridDiagram, lift: float = DEFAULT_LIFT) -> ExtractedCurve:
    """
    Build the closed polyline for `diagram`: traverse, resolve crossings with the
    column strand lifted by `lift` along z, and emit a vertex at every grid unit
    the strand passes through.
    """
    if lift <= 0:
        raise ValueError("lift must be positive")

    n = diagram.size
    raw = traverse(diagram)
    per_column = find_crossings(diagram, raw)
    crossed = insert_crossings(raw, per_column)
    crossings = tuple(c for hits in per_column for c in hits)
    lifted_cells = {c.absolute_index for c in crossings}
    debug_helpers.log_indices("crossed", crossed, tag="extract")

    points: list[tuple[float, float, float]] = []
    lifted: list[bool] = []
    prev: tuple[int, int] | None = None
    for absolute in crossed:
        i, j = diagram.grid_indices(absolute)
        if prev is not None:
            prev_i, prev_j = prev
            if prev_i == i:
                # Same row: filler points along the row
                step = 1 if j > prev_j else -1
                for f in range(prev_j + step, j, step):
                    points.append(grid_coordinate(n, i, f))
                    lifted.append(False)
            else:
                # Same column: filler points along the column
                step = 1 if i > prev_i else -1
                for f in range(prev_i + step, i, step):
                    points.append(grid_coordinate(n, f, j))
                    lifted.append(False)

        is_lifted = absolute in lifted_cells
        points.append(grid_coordinate(n, i, j, lift if is_lifted else 0.0))
        lifted.append(is_lifted)
        prev = (i, j)

    # The last vertex repeats the first one; the curve closes by wraparound.
    points.pop()
    lifted.pop()

    V = np.asarray(points, dtype=np.float32)
    debug_helpers.log_array("curve", V, tag="extract")
    return ExtractedCurve(
        curve=PolygonalCurve(V),
        lifted=np.asarray(lifted, dtype=bool),
        traversal=tuple(raw),
        crossed=tuple(crossed),
        crossings=crossings,
    )
