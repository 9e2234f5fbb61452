import numpy as np
import pytest

from sfcknn import (
    CandidateWindow,
    ConfigurationError,
    CurveOrder,
    CurveSet,
    Dataset,
    InvalidParameter,
    candidate_window,
)


def test_build_sorts_by_key(dataset):
    curve = CurveOrder.build(dataset, lambda v: v[0], name="x")
    assert len(curve) == len(dataset)
    xs = [dataset[key][0] for key in curve]
    assert xs == sorted(xs)
    assert sorted(curve) == sorted(dataset)


def test_position_is_inverse_of_order(dataset):
    curve = CurveOrder.build(dataset, lambda v: v.sum())
    for i in range(len(curve)):
        assert curve.position(curve[i]) == i


def test_ties_keep_dataset_order(dataset):
    curve = CurveOrder.build(dataset, lambda v: 0)
    assert list(curve) == list(dataset.keys_list)


def test_key_func_errors_propagate(dataset):
    def bad_key(v):
        raise ZeroDivisionError()

    with pytest.raises(ZeroDivisionError):
        CurveOrder.build(dataset, bad_key)


def test_unknown_key_is_fatal(dataset):
    curve = CurveOrder.build(dataset, lambda v: v[0])
    with pytest.raises(KeyError):
        curve.position("missing")


def test_duplicate_keys_rejected():
    with pytest.raises(ConfigurationError):
        CurveOrder([1, 2, 1])


@pytest.mark.parametrize(
    "position, expected",
    [(1, (0, 4)), (5, (3, 7)), (8, (5, 9)), (0, (0, 4)), (2, (0, 4)), (9, (5, 9)), (7, (5, 9))],
)
def test_window_boundaries(position, expected):
    window = candidate_window(10, position, 2)
    assert (window.start, window.end) == expected
    assert window.size == 5
    assert not window.is_truncated


def test_window_half_width_zero():
    for p in range(10):
        assert candidate_window(10, p, 0) == CandidateWindow(p, p, 1)


def test_window_whole_curve():
    # 2h + 1 == n: exact fit, nothing truncated.
    window = candidate_window(9, 3, 4)
    assert (window.start, window.end) == (0, 8)
    assert window.covers(9)
    assert not window.is_truncated

    # 2h + 1 > n: the whole curve, flagged as truncated.
    for p in range(10):
        window = candidate_window(10, p, 7)
        assert (window.start, window.end) == (0, 9)
        assert window.requested_size == 15
        assert window.is_truncated


def test_window_has_full_width():
    n = 50
    for h in range(0, 24):
        for p in range(n):
            window = candidate_window(n, p, h)
            assert window.size == 2 * h + 1
            assert p in window


def test_windows_are_nested_in_half_width():
    # Positions near both ends cross the clamp transition as h grows.
    n = 30
    for p in [0, 1, 2, 3, 14, 26, 27, 28, 29]:
        previous = None
        for h in range(0, 20):
            current = set(candidate_window(n, p, h).positions())
            if previous is not None:
                assert previous <= current, (p, h)
            previous = current


@pytest.mark.parametrize(
    "n, position, half_width",
    [(0, 0, 1), (10, -1, 1), (10, 10, 1), (10, 3, -1)],
)
def test_window_invalid_parameters(n, position, half_width):
    with pytest.raises(InvalidParameter):
        candidate_window(n, position, half_width)


def test_keys_between(line_dataset):
    curve = CurveOrder.build(line_dataset, lambda v: v[0])
    window = curve.window(5, 2)
    assert curve.keys_between(window.start, window.end) == (3, 4, 5, 6, 7)


def test_curve_set_position_cache(dataset):
    curves = [
        CurveOrder.build(dataset, lambda v: v[0], name="a"),
        CurveOrder.build(dataset, lambda v: -v[1], name="b"),
    ]
    curve_set = CurveSet(curves, scale_factors=[3, 7])
    assert len(curve_set) == 2
    assert curve_set.names == ["a", "b"]
    assert curve_set.half_width(1, 2) == 14
    for key in dataset:
        positions = curve_set.positions_of(key)
        assert positions.shape == (2,)
        for c, curve in enumerate(curves):
            assert curve[positions[c]] == key
    with pytest.raises(ValueError):
        positions[0] = 1


def test_curve_set_rejects_bad_scale_factors(dataset):
    curve = CurveOrder.build(dataset, lambda v: v[0])
    with pytest.raises(ConfigurationError):
        CurveSet([curve], scale_factors=[1, 2])
    with pytest.raises(ConfigurationError):
        CurveSet([curve], scale_factors=[0])
    with pytest.raises(ConfigurationError):
        CurveSet([curve], sample_scale=-2)


def test_curve_set_rejects_mismatched_curves():
    a = CurveOrder([0, 1, 2])
    b = CurveOrder([0, 1, 3])
    with pytest.raises(ConfigurationError):
        CurveSet([a, b])


def test_curve_set_check_covers(line_dataset):
    curve_set = CurveSet([CurveOrder(range(9))])
    with pytest.raises(ConfigurationError):
        curve_set.check_covers(line_dataset)
    CurveSet([CurveOrder(range(10))]).check_covers(line_dataset)
