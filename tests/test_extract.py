import numpy as np
import pytest

from src.gridknot.diagram import Axis, DiagramError, Entry, GridDiagram
from src.gridknot.diagram_io import parse_diagram_csv
from src.gridknot.extract import (
    find_crossings,
    generate_curve,
    grid_coordinate,
    insert_crossings,
    traverse,
)
from src.gridknot.geometry import min_segment_separation

TREFOIL = "x, ,o, , \n ,x, ,o, \n , ,x, ,o\no, , ,x, \n ,o, , ,x\n"

X, O, B = Entry.X, Entry.O, Entry.BLANK


def test_trefoil_traversal() -> None:
    g = parse_diagram_csv(TREFOIL)
    indices = traverse(g)
    assert indices == [0, 3, 18, 16, 6, 9, 24, 22, 12, 10, 0]
    assert len(indices) == 2 * g.size + 1


def test_trefoil_crossings_inserted_once_each() -> None:
    g = parse_diagram_csv(TREFOIL)
    raw = traverse(g)
    per_column = find_crossings(g, raw)
    found = [(c.row, c.col) for hits in per_column for c in hits]
    assert sorted(found) == [(1, 2), (2, 3), (3, 1)]

    crossed = insert_crossings(raw, per_column)
    assert crossed == [0, 3, 18, 17, 16, 6, 8, 9, 24, 22, 12, 11, 10, 0]
    # without the closing repeat: 2N endpoints plus one entry per crossing
    assert len(crossed) - 1 == 2 * g.size + len(found)


def test_trefoil_curve() -> None:
    g = parse_diagram_csv(TREFOIL)
    extracted = generate_curve(g)
    V = extracted.curve.vertices
    assert V.shape == (24, 3)
    assert extracted.number_of_crossings == 3
    assert int(extracted.lifted.sum()) == 3
    np.testing.assert_allclose(V[0], [-2.5, 2.5, 0.0])
    np.testing.assert_allclose(V[1], [-2.5, 1.5, 0.0])

    lifted = {tuple(float(c) for c in v) for v in V[extracted.lifted]}
    assert lifted == {(0.5, 0.5, 1.0), (-1.5, -0.5, 1.0), (-0.5, 1.5, 1.0)}
    assert np.all(V[~extracted.lifted][:, 2] == 0.0)


def test_consecutive_vertices_one_unit_apart_in_plane() -> None:
    extracted = generate_curve(parse_diagram_csv(TREFOIL))
    V = extracted.curve.vertices
    step = np.roll(V, -1, axis=0) - V
    np.testing.assert_allclose(np.linalg.norm(step[:, :2], axis=-1), 1.0, atol=1e-6)


def test_initial_curve_does_not_self_intersect() -> None:
    extracted = generate_curve(parse_diagram_csv(TREFOIL))
    assert min_segment_separation(np.array(extracted.curve.vertices)) > 0.5


def test_unknot_curve() -> None:
    extracted = generate_curve(parse_diagram_csv("x,o\no,x\n"))
    assert extracted.curve.number_of_vertices == 4
    assert extracted.number_of_crossings == 0


def test_lift_height_is_configurable() -> None:
    extracted = generate_curve(parse_diagram_csv(TREFOIL), lift=0.5)
    assert float(extracted.curve.vertices[:, 2].max()) == pytest.approx(0.5)
    with pytest.raises(ValueError):
        generate_curve(parse_diagram_csv(TREFOIL), lift=0.0)


def test_two_component_link_rejected() -> None:
    # two disjoint unknots
    g = GridDiagram(
        [
            [X, O, B, B],
            [O, X, B, B],
            [B, B, X, O],
            [B, B, O, X],
        ]
    )
    with pytest.raises(DiagramError):
        traverse(g)


def test_grid_coordinate_centres_grid() -> None:
    assert grid_coordinate(4, 0, 0) == (-2.0, 2.0, 0.0)
    assert grid_coordinate(4, 3, 1, 1.0) == (-1.0, -1.0, 1.0)


def test_traversal_starts_at_column_zero() -> None:
    g = parse_diagram_csv(TREFOIL)
    x_row, _ = g.find_indices_of_xo(Axis.COL, 0)
    assert traverse(g)[0] == g.absolute_index(x_row, 0)
