from pathlib import Path

import pytest

from src import PROJECT_ROOT
from src.gridknot.diagram import DiagramError, Entry
from src.gridknot.diagram_io import (
    format_diagram_csv,
    load_diagram_csv,
    parse_diagram_csv,
    save_diagram_csv,
)


def test_parse_unknot() -> None:
    g = parse_diagram_csv("x,o\no,x\n")
    assert g.size == 2
    assert g.row(0) == [Entry.X, Entry.O]


def test_parse_skips_empty_lines() -> None:
    g = parse_diagram_csv("\nx,o\n\no,x\n\n")
    assert g.size == 2


def test_parse_crlf_and_quoted_fields() -> None:
    g = parse_diagram_csv('"x","o"\r\no,x\r\n')
    assert g.size == 2
    assert g.row(0) == [Entry.X, Entry.O]
    assert g.row(1) == [Entry.O, Entry.X]


def test_parse_quoted_blank() -> None:
    g = parse_diagram_csv('x,o," "\n" ",x,o\no," ",x\n')
    assert g.size == 3
    assert g[0, 2] is Entry.BLANK


def test_unknown_token_rejected() -> None:
    with pytest.raises(DiagramError, match="Unknown entry 'q' on line 1"):
        parse_diagram_csv("x,q\no,x\n")


def test_bad_counts_rejected() -> None:
    with pytest.raises(DiagramError):
        parse_diagram_csv("x,x\no,o\n")


def test_load_bundled_trefoil() -> None:
    g = load_diagram_csv(PROJECT_ROOT / "data" / "diagrams" / "trefoil.csv")
    assert g.size == 5
    assert g[3, 0] is Entry.O
    assert all(g[i, i] is Entry.X for i in range(5))


def test_save_and_load(tmp_path: Path) -> None:
    g = load_diagram_csv(PROJECT_ROOT / "data" / "diagrams" / "trefoil.csv")
    out = save_diagram_csv(g, tmp_path / "nested" / "trefoil.csv")
    assert out.exists()
    assert load_diagram_csv(out) == g
    assert format_diagram_csv(g).splitlines()[0] == "x, ,o, , "


def test_load_bundled_unknot() -> None:
    g = load_diagram_csv(PROJECT_ROOT / "data" / "diagrams" / "unknot.csv")
    assert g.size == 2
    assert format_diagram_csv(g) == "x,o\no,x\n"
