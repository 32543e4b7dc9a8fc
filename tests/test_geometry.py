import numpy as np

from src.gridknot.geometry import (
    bead_edge_clearance,
    closed_polyline_length,
    min_segment_separation,
    segment_closest_vector,
    segment_distance,
    segment_lengths,
    separated_segment_pairs,
)


def _p(*xyz: float) -> np.ndarray:
    return np.array(xyz, dtype=np.float32)


def _square(side: float = 1.0) -> np.ndarray:
    return np.array(
        [[0.0, 0.0, 0.0], [side, 0.0, 0.0], [side, side, 0.0], [0.0, side, 0.0]],
        dtype=np.float32,
    )


def test_segment_distance_skew_crossing() -> None:
    d = segment_distance(_p(0, 0, 0), _p(1, 0, 0), _p(0.5, -1, 1), _p(0.5, 1, 1))
    assert np.isclose(float(d), 1.0)


def test_segment_distance_parallel() -> None:
    d = segment_distance(_p(0, 0, 0), _p(1, 0, 0), _p(0, 1, 0), _p(1, 1, 0))
    assert np.isclose(float(d), 1.0)


def test_segment_distance_collinear_disjoint() -> None:
    d = segment_distance(_p(0, 0, 0), _p(1, 0, 0), _p(2, 0, 0), _p(3, 0, 0))
    assert np.isclose(float(d), 1.0)


def test_segment_distance_clamps_to_endpoints() -> None:
    d = segment_distance(_p(0, 0, 0), _p(1, 0, 0), _p(2, 1, 0), _p(2, 2, 0))
    assert np.isclose(float(d), np.sqrt(2.0))


def test_segment_distance_intersecting_is_zero() -> None:
    d = segment_distance(_p(-1, 0, 0), _p(1, 0, 0), _p(0, -1, 0), _p(0, 1, 0))
    assert np.isclose(float(d), 0.0, atol=1e-6)


def test_segment_distance_point_to_segment_either_order() -> None:
    a, b, p = _p(-1, 0, 0), _p(1, 0, 0), _p(0, 0.01, 0)
    assert np.isclose(float(segment_distance(a, b, p, p)), 0.01, atol=1e-6)
    assert np.isclose(float(segment_distance(p, p, a, b)), 0.01, atol=1e-6)


def test_segment_distance_point_to_point() -> None:
    d = segment_distance(_p(0, 0, 0), _p(0, 0, 0), _p(0, 3, 4), _p(0, 3, 4))
    assert np.isclose(float(d), 5.0)


def test_segment_distance_parallel_overlap_short_second() -> None:
    d = segment_distance(_p(0, 0, 0), _p(4, 0, 0), _p(1, 1, 0), _p(2, 1, 0))
    assert np.isclose(float(d), 1.0)
    d = segment_distance(_p(1, 1, 0), _p(2, 1, 0), _p(0, 0, 0), _p(4, 0, 0))
    assert np.isclose(float(d), 1.0)


def test_closest_vector_points_from_second_to_first() -> None:
    v = segment_closest_vector(_p(0, 0, 2), _p(1, 0, 2), _p(0, 0, 0), _p(1, 0, 0))
    np.testing.assert_allclose(v, [0.0, 0.0, 2.0], atol=1e-6)


def test_segment_distance_batched() -> None:
    a = np.zeros((3, 3), dtype=np.float32)
    b = np.tile(_p(1, 0, 0), (3, 1))
    c = np.array([[0, 1, 0], [0, 2, 0], [0, 3, 0]], dtype=np.float32)
    d = c + _p(1, 0, 0)
    np.testing.assert_allclose(segment_distance(a, b, c, d), [1.0, 2.0, 3.0], atol=1e-6)


def test_separated_segment_pairs_gap() -> None:
    k, l = separated_segment_pairs(8, 3)
    gap = np.minimum(l - k, 8 - (l - k))
    assert k.shape == l.shape
    assert np.all(gap >= 3)
    assert np.all(k < l)
    # each of the 8 segments pairs with the 3 segments at gap 3 or 4
    assert k.size == 8 * 3 // 2


def test_min_segment_separation_square_has_no_pairs() -> None:
    assert min_segment_separation(_square()) == float("inf")


def test_min_segment_separation_long_rectangle() -> None:
    # 6 unit segments around a 2 x 1 rectangle
    V = np.array(
        [[0, 0, 0], [1, 0, 0], [2, 0, 0], [2, 1, 0], [1, 1, 0], [0, 1, 0]],
        dtype=np.float32,
    )
    assert np.isclose(min_segment_separation(V), 1.0)


def test_bead_edge_clearance_too_short_is_inf() -> None:
    assert bead_edge_clearance(_square(), 0) == float("inf")


def test_bead_edge_clearance_hexagon() -> None:
    V = np.array(
        [[0, 0, 0], [1, 0, 0], [2, 0, 0], [2, 1, 0], [1, 1, 0], [0, 1, 0]],
        dtype=np.float32,
    )
    # vertex 1's segments are 0 and 1; only segments 3 and 4 remain to check
    assert np.isclose(bead_edge_clearance(V, 1), 1.0)


def test_closed_polyline_length_square() -> None:
    assert np.isclose(closed_polyline_length(_square(2.0)), 8.0)
    np.testing.assert_allclose(segment_lengths(_square(2.0)), [2.0, 2.0, 2.0, 2.0])
