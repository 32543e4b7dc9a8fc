from __future__ import annotations

import csv
import io
from pathlib import Path

from .diagram import DiagramError, Entry, GridDiagram

_TOKENS = {
    "x": Entry.X,
    "o": Entry.O,
    " ": Entry.BLANK,
}


def parse_diagram_csv(text: str) -> GridDiagram:
    """
    Parse a grid diagram from comma-separated cells, one row per line.
    Cells are 'x', 'o' or a single space for a blank.
    """
    rows: list[list[Entry]] = []
    reader = csv.reader(io.StringIO(text, newline=""))
    for fields in reader:
        if not fields:
            continue
        row: list[Entry] = []
        for field in fields:
            entry = _TOKENS.get(field)
            if entry is None:
                raise DiagramError(
                    f"Unknown entry {field!r} on line {reader.line_num} - all entries "
                    "should be 'x', 'o', or ' ' (blank)"
                )
            row.append(entry)
        rows.append(row)
    return GridDiagram(rows)


def load_diagram_csv(csv_path: str | Path) -> GridDiagram:
    return parse_diagram_csv(Path(csv_path).read_text(encoding="utf-8"))


def format_diagram_csv(diagram: GridDiagram) -> str:
    return "".join(
        ",".join(entry.value for entry in row) + "\n" for row in diagram.to_rows()
    )


def save_diagram_csv(diagram: GridDiagram, csv_path: str | Path) -> Path:
    out_path = Path(csv_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(format_diagram_csv(diagram), encoding="utf-8")
    return out_path
