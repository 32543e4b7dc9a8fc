import numpy as np
import pytest

from src.gridknot.curve import PolygonalCurve, Segment


def _square(side: float = 1.0) -> PolygonalCurve:
    return PolygonalCurve(
        np.array(
            [[0.0, 0.0, 0.0], [side, 0.0, 0.0], [side, side, 0.0], [0.0, side, 0.0]],
            dtype=np.float32,
        )
    )


def test_rejects_bad_shape() -> None:
    with pytest.raises(ValueError):
        PolygonalCurve(np.zeros((4, 2), dtype=np.float32))


def test_rejects_non_finite() -> None:
    V = np.zeros((3, 3), dtype=np.float32)
    V[1, 2] = np.nan
    with pytest.raises(ValueError):
        PolygonalCurve(V)


def test_vertices_are_read_only() -> None:
    curve = _square()
    with pytest.raises(ValueError):
        curve.vertices[0, 0] = 5.0


def test_set_vertices_keeps_count() -> None:
    curve = _square()
    curve.set_vertices(np.ones((4, 3), dtype=np.float32))
    np.testing.assert_allclose(curve.vertices, 1.0)
    with pytest.raises(ValueError):
        curve.set_vertices(np.ones((5, 3), dtype=np.float32))


def test_neighbors_wrap() -> None:
    curve = _square()
    assert curve.neighboring_indices_wrapped(0) == (3, 1)
    assert curve.neighboring_indices_wrapped(3) == (2, 0)
    assert curve.wrapped_index(-1) == 3
    left, right = curve.neighbor_index_arrays()
    np.testing.assert_array_equal(left, [3, 0, 1, 2])
    np.testing.assert_array_equal(right, [1, 2, 3, 0])


def test_segment_wraps_to_first_vertex() -> None:
    seg = _square().segment(3)
    np.testing.assert_allclose(seg.start, [0.0, 1.0, 0.0])
    np.testing.assert_allclose(seg.end, [0.0, 0.0, 0.0])
    assert seg.length() == pytest.approx(1.0)
    np.testing.assert_allclose(seg.midpoint(), [0.0, 0.5, 0.0])


def test_perimeter_and_point_at() -> None:
    curve = _square(2.0)
    assert curve.perimeter() == pytest.approx(8.0)
    np.testing.assert_allclose(curve.point_at(0.0), [0.0, 0.0, 0.0])
    np.testing.assert_allclose(curve.point_at(0.125), [1.0, 0.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(curve.point_at(0.5), [2.0, 2.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(curve.point_at(0.875), [0.0, 1.0, 0.0], atol=1e-6)
    with pytest.raises(ValueError):
        curve.point_at(1.5)


def test_refine_keeps_original_vertices() -> None:
    curve = _square()
    fine = curve.refine(4)
    assert fine.number_of_vertices == 16
    np.testing.assert_allclose(fine.vertices[::4], curve.vertices)
    np.testing.assert_allclose(fine.vertices[1], [0.25, 0.0, 0.0])
    assert fine.perimeter() == pytest.approx(curve.perimeter())


def test_segment_shortest_vector() -> None:
    a = Segment(np.array([0, 0, 1], np.float32), np.array([1, 0, 1], np.float32))
    b = Segment(np.array([0.5, -1, 0], np.float32), np.array([0.5, 1, 0], np.float32))
    np.testing.assert_allclose(a.shortest_vector_to(b), [0.0, 0.0, 1.0], atol=1e-6)
    assert a.distance_to(b) == pytest.approx(1.0)
    np.testing.assert_allclose(a.point_at(0.25), [0.25, 0.0, 1.0])
