import numpy as np
import pytest

from sfcknn import (
    Dataset,
    ExactKNN,
    InvalidParameter,
    brute_force_knn,
    candidate_recall,
    euclidean_distance,
    relative_kdist_error,
)


def test_exact_knn_matches_brute_force(dataset):
    exact = ExactKNN(dataset)
    for key in range(0, len(dataset), 23):
        expected = brute_force_knn(dataset, dataset, dataset[key], 10)
        result = exact.query(key, 10)
        assert [k for k, _ in result] == [k for k, _ in expected]
        np.testing.assert_allclose([d for _, d in result], [d for _, d in expected])


def test_exact_knn_euclidean_vector_query(dataset):
    exact = ExactKNN(dataset, metric="euclidean")
    query = np.full(dataset.dim, 0.5)
    expected = brute_force_knn(dataset, dataset, query, 5, euclidean_distance)
    assert [k for k, _ in exact.query(query, 5)] == [k for k, _ in expected]


def test_exact_knn_k_larger_than_dataset(line_dataset):
    result = ExactKNN(line_dataset).query(0, 50)
    assert len(result) == 10
    assert result[0] == (0, 0.0)


def test_exact_knn_invalid_k(line_dataset):
    with pytest.raises(InvalidParameter):
        ExactKNN(line_dataset).query(0, 0)


def test_candidate_recall():
    true = [(1, 0.0), (2, 1.0), (3, 2.0), (4, 3.0)]
    assert candidate_recall(true, {1, 2, 9}, 4) == 0.5
    assert candidate_recall([1, 2, 3, 4], {1, 2, 3, 4, 5}, 4) == 1.0
    # More hits than k (ties in the exact result) are capped.
    assert candidate_recall([1, 2, 3], {1, 2, 3}, 2) == 1.0


def test_relative_kdist_error():
    exact = [("a", 0.0), ("b", 2.0)]
    approx = [("a", 0.0), ("c", 3.0)]
    assert relative_kdist_error(approx, exact, 2) == pytest.approx(0.5)
    assert relative_kdist_error(approx[:1], exact, 2) is None
    assert relative_kdist_error(approx, [("a", 0.0), ("d", 0.0)], 2) is None


def test_recall_of_all_curves_beats_single_curve(index):
    exact = ExactKNN(index.dataset)
    single, fused = [], []
    for key in range(0, len(index), 5):
        true = exact.query(key, 10)
        single.append(candidate_recall(true, index.candidates(key, 1, 2, 10), 10))
        fused.append(candidate_recall(true, index.candidates(key, 7, 2, 10), 10))
    assert np.mean(fused) >= np.mean(single)


def test_candidate_recall_with_integer_distances():
    true = [(3, 0), (6, 1), (23, 1), (13, 2), (15, np.float32(2.0))]
    assert candidate_recall(true, {3, 6, 23, 13, 15}, 5) == 1.0
    assert candidate_recall(true, {3, 6}, 5) == pytest.approx(0.4)


def test_brute_force_knn_returns_floats():
    ds = Dataset.from_array(np.array([[0, 0], [1, 0], [1, 1]]))
    hamming = lambda x, y: int(np.count_nonzero(x != y))
    result = brute_force_knn(ds, ds, ds[0], 3, hamming)
    assert result == [(0, 0.0), (1, 1.0), (2, 2.0)]
    assert all(type(dist) is float for _, dist in result)
