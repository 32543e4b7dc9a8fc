from __future__ import annotations

from enum import Enum
from typing import Sequence


class Entry(Enum):
    """A grid cell entry."""

    X = "x"
    O = "o"
    BLANK = " "

    def opposite(self) -> Entry:
        if self is Entry.X:
            return Entry.O
        if self is Entry.O:
            return Entry.X
        raise ValueError("BLANK has no opposite entry")


class Direction(Enum):
    U = "up"
    D = "down"
    L = "left"
    R = "right"


class Axis(Enum):
    ROW = "row"
    COL = "col"


class Cardinal(Enum):
    """Corner of a 2x2 sub-grid that holds the blank cell after stabilization."""

    NW = "NW"
    SW = "SW"
    NE = "NE"
    SE = "SE"


class DiagramError(ValueError):
    """A structurally malformed grid diagram (or a curve that cannot be built from it)."""


class CromwellErrorKind(Enum):
    NO_ADJACENT = "no_adjacent"
    INTERLEAVED = "interleaved"
    NOT_FOUND = "not_found"
    OUT_OF_BOUNDS = "out_of_bounds"
    INVALID_SUBGRID = "invalid_subgrid"


class CromwellError(Exception):
    """A rejected Cromwell move. The diagram is left untouched when this is raised."""

    def __init__(self, kind: CromwellErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"CromwellError({self.kind.name}, {self.message!r})"


class GridDiagram:
    """
    Square table of X / O / blank entries describing a knot.

    Every row and every column holds exactly one X and exactly one O. The
    invariant is checked on construction and after every move; moves build
    the new table on a copy and only commit it once it validates.
    """

    def __init__(self, rows: Sequence[Sequence[Entry]]) -> None:
        self._data: list[list[Entry]] = [list(row) for row in rows]
        self.validate()

    @property
    def size(self) -> int:
        return len(self._data)

    def to_rows(self) -> list[list[Entry]]:
        return [list(row) for row in self._data]

    def copy(self) -> GridDiagram:
        return GridDiagram(self._data)

    def __getitem__(self, cell: tuple[int, int]) -> Entry:
        i, j = cell
        self.validate_index(i)
        self.validate_index(j)
        return self._data[i][j]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GridDiagram):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"GridDiagram(size={self.size})"

    def __str__(self) -> str:
        symbols = {Entry.X: "x", Entry.O: "o", Entry.BLANK: "_"}
        return "\n".join(" ".join(symbols[e] for e in row) for row in self._data)

    def validate_index(self, index: int) -> None:
        if not 0 <= index < self.size:
            raise IndexError(f"index {index} out of range for grid of size {self.size}")

    def row(self, row_index: int) -> list[Entry]:
        self.validate_index(row_index)
        return list(self._data[row_index])

    def col(self, col_index: int) -> list[Entry]:
        self.validate_index(col_index)
        return [row[col_index] for row in self._data]

    def line(self, axis: Axis, index: int) -> list[Entry]:
        return self.row(index) if axis is Axis.ROW else self.col(index)

    def find_index_of_first(self, axis: Axis, index: int, entry: Entry) -> int:
        """Position of the first `entry` along row (or col) `index`; ValueError if absent."""
        return self.line(axis, index).index(entry)

    def find_indices_of_xo(self, axis: Axis, index: int) -> tuple[int, int]:
        line = self.line(axis, index)
        return line.index(Entry.X), line.index(Entry.O)

    def absolute_index(self, i: int, j: int) -> int:
        return i + j * self.size

    def grid_indices(self, absolute_index: int) -> tuple[int, int]:
        return absolute_index % self.size, absolute_index // self.size

    def are_interleaved(self, axis: Axis, a: int, b: int) -> bool:
        """
        Two rows (or cols) are interleaved when the spans between their X and O
        partially overlap. Strictly nested or strictly disjoint spans are not
        interleaved; spans that touch at an endpoint count as interleaved.
        """
        a_start, a_end = sorted(self.find_indices_of_xo(axis, a))
        b_start, b_end = sorted(self.find_indices_of_xo(axis, b))

        if a_start > b_start and a_end < b_end:
            return False
        if b_start > a_start and b_end < a_end:
            return False
        if a_end < b_start or b_end < a_start:
            return False
        return True

    def validate(self) -> None:
        n = len(self._data)
        if n < 2:
            raise DiagramError(f"grid diagram must be at least 2x2, got {n} rows")
        for i, row in enumerate(self._data):
            if len(row) != n:
                raise DiagramError(
                    f"grid diagram must be square: row {i} has {len(row)} entries, expected {n}"
                )
            for entry in row:
                if not isinstance(entry, Entry):
                    raise DiagramError(f"unrecognized cell entry {entry!r} in row {i}")
        for k in range(n):
            for axis, line in ((Axis.ROW, self._data[k]), (Axis.COL, [r[k] for r in self._data])):
                if line.count(Entry.X) != 1 or line.count(Entry.O) != 1:
                    raise DiagramError(
                        f"invalid grid diagram: {axis.value} {k} must contain exactly "
                        "one 'x' and one 'o'"
                    )

    def _commit(self, rows: list[list[Entry]]) -> None:
        # Validate the candidate before replacing the live table.
        GridDiagram(rows)
        self._data = rows

    def translate(self, direction: Direction) -> None:
        """Cyclically shift the whole table by one row or column."""
        rows = self.to_rows()
        if direction is Direction.U:
            rows = rows[1:] + rows[:1]
        elif direction is Direction.D:
            rows = rows[-1:] + rows[:-1]
        elif direction is Direction.L:
            rows = [row[1:] + row[:1] for row in rows]
        else:
            rows = [row[-1:] + row[:-1] for row in rows]
        self._commit(rows)

    def commute(self, axis: Axis, index: int) -> None:
        """Exchange row (or col) `index` with `index + 1` when they are not interleaved."""
        if index < 0:
            raise CromwellError(
                CromwellErrorKind.OUT_OF_BOUNDS,
                f"{axis.value} {index} does not exist in a grid of size {self.size}",
            )
        if index >= self.size - 1:
            raise CromwellError(
                CromwellErrorKind.NO_ADJACENT,
                "Cannot exchange row or column with non-existing adjacent row or column",
            )
        if self.are_interleaved(axis, index, index + 1):
            raise CromwellError(
                CromwellErrorKind.INTERLEAVED,
                "The specified rows (or columns) are interleaved and cannot be exchanged",
            )

        rows = self.to_rows()
        a, b = index, index + 1
        if axis is Axis.ROW:
            rows[a], rows[b] = rows[b], rows[a]
        else:
            for row in rows:
                row[a], row[b] = row[b], row[a]
        self._commit(rows)

    def stabilize(self, corner: Cardinal, i: int, j: int) -> None:
        """
        Replace the X (or O) at (i, j) with a 2x2 sub-grid whose blank cell sits
        at `corner`. The new sub-grid always has its upper-left cell at (i, j),
        and the grid grows from N to N+1.
        """
        if not (0 <= i < self.size and 0 <= j < self.size):
            raise CromwellError(
                CromwellErrorKind.OUT_OF_BOUNDS,
                f"cell ({i}, {j}) is outside a grid of size {self.size}",
            )
        entry = self._data[i][j]
        if entry is Entry.BLANK:
            raise CromwellError(
                CromwellErrorKind.NOT_FOUND,
                "There is no `x` or `o` at the specified grid position: "
                "stabilization cannot be performed",
            )
        other = entry.opposite()

        rows = self.to_rows()
        west_blank = corner in (Cardinal.NW, Cardinal.SW)
        # Blank column goes right of `j` for NW/SW, left of it for NE/SE.
        col_at = j + 1 if west_blank else j
        for row in rows:
            row.insert(col_at, Entry.BLANK)

        extra_row = [Entry.BLANK] * len(rows[0])
        if west_blank:
            rows[i][j] = Entry.BLANK
            rows[i][j + 1] = entry
            extra_row[j] = entry
            extra_row[j + 1] = other
        else:
            rows[i][j] = entry
            rows[i][j + 1] = Entry.BLANK
            extra_row[j] = other
            extra_row[j + 1] = entry

        # The extra row goes below the original one for NW/NE, above it for SW/SE.
        row_at = i + 1 if corner in (Cardinal.NW, Cardinal.NE) else i
        rows.insert(row_at, extra_row)
        self._commit(rows)

    def destabilize(self, i: int, j: int) -> None:
        """
        Collapse the 2x2 sub-grid with upper-left cell (i, j) back into a single
        entry. The block must hold one blank and three entries, two of one kind
        and one of the other, with the single entry diagonally opposite the blank.
        That entry's row and column lie entirely inside the block and are removed;
        the doubled entry is written into the blank cell. The grid shrinks by one.
        """
        if not (0 <= i and 0 <= j and i + 1 < self.size and j + 1 < self.size):
            raise CromwellError(
                CromwellErrorKind.OUT_OF_BOUNDS,
                f"a 2x2 sub-grid at ({i}, {j}) does not fit in a grid of size {self.size}",
            )

        cells = {
            Cardinal.NW: (i, j),
            Cardinal.NE: (i, j + 1),
            Cardinal.SW: (i + 1, j),
            Cardinal.SE: (i + 1, j + 1),
        }
        opposite_corner = {
            Cardinal.NW: Cardinal.SE,
            Cardinal.SE: Cardinal.NW,
            Cardinal.NE: Cardinal.SW,
            Cardinal.SW: Cardinal.NE,
        }
        blanks = [c for c, (r, k) in cells.items() if self._data[r][k] is Entry.BLANK]
        if len(blanks) != 1:
            raise CromwellError(
                CromwellErrorKind.INVALID_SUBGRID,
                f"the sub-grid at ({i}, {j}) must contain exactly one blank cell, "
                f"found {len(blanks)}",
            )

        blank = blanks[0]
        single = opposite_corner[blank]
        doubled = [c for c in cells if c not in (blank, single)]
        single_r, single_c = cells[single]
        single_entry = self._data[single_r][single_c]
        doubled_entries = {self._data[r][k] for r, k in (cells[c] for c in doubled)}
        if len(doubled_entries) != 1 or single_entry in doubled_entries:
            raise CromwellError(
                CromwellErrorKind.INVALID_SUBGRID,
                f"the sub-grid at ({i}, {j}) must hold two entries of one kind and "
                "one of the other, with the single entry opposite the blank",
            )
        doubled_entry = doubled_entries.pop()

        rows = self.to_rows()
        blank_r, blank_c = cells[blank]
        rows[blank_r][blank_c] = doubled_entry
        del rows[single_r]
        for row in rows:
            del row[single_c]
        self._commit(rows)
