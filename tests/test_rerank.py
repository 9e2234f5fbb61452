import numpy as np
import pytest

from sfcknn import (
    BoundedExactReranker,
    CountingDistance,
    Dataset,
    InvalidParameter,
    brute_force_knn,
    euclidean_distance,
    manhattan_distance,
)
from sfcknn.rerank import _KNNHeap


def test_distances():
    x = np.array([0.0, 0.0])
    y = np.array([3.0, -4.0])
    assert manhattan_distance(x, y) == 7.0
    assert euclidean_distance(x, y) == 5.0


def test_heap_keeps_k_smallest():
    heap = _KNNHeap(3)
    for row, dist in enumerate([5.0, 1.0, 4.0, 2.0, 3.0, 0.5]):
        heap.insert(dist, row, f"p{row}")
    assert len(heap) == 3
    assert heap.kdist() == 2.0
    assert heap.to_sorted_list() == [("p5", 0.5), ("p1", 1.0), ("p3", 2.0)]


def test_heap_ties_prefer_lower_rows():
    heap = _KNNHeap(2)
    for row in [4, 2, 3, 0, 1]:
        heap.insert(1.0, row, row)
    assert heap.to_sorted_list() == [(0, 1.0), (1, 1.0)]


def test_empty_heap_kdist():
    assert _KNNHeap(3).kdist() == float("inf")


@pytest.mark.parametrize("k", [1, 5, 20, 80, 200])
def test_rerank_matches_brute_force(dataset, k):
    reranker = BoundedExactReranker(dataset)
    rng = np.random.RandomState(k)
    for _ in range(10):
        query = int(rng.randint(len(dataset)))
        cands = set(rng.choice(len(dataset), size=60, replace=False).tolist()) | {query}
        result = reranker.rerank(cands, dataset[query], k)
        assert result == brute_force_knn(dataset, cands, dataset[query], k)
        assert len(result) == min(k, len(cands))
        dists = [d for _, d in result]
        assert dists == sorted(dists)
        assert result[0] == (query, 0.0)


def test_rerank_with_duplicates():
    data = np.array([[0.0, 0.0], [1.0, 1.0], [0.0, 0.0], [0.0, 0.0], [2.0, 2.0]])
    ds = Dataset.from_array(data, keys=["a", "b", "c", "d", "e"])
    reranker = BoundedExactReranker(ds)
    result = reranker.rerank(["e", "d", "c", "b", "a"], ds["a"], 2)
    assert result == [("a", 0.0), ("c", 0.0)]
    assert result == brute_force_knn(ds, ["e", "d", "c", "b", "a"], ds["a"], 2)


def test_rerank_with_custom_distance(dataset):
    reranker = BoundedExactReranker(dataset, distance_func=euclidean_distance)
    cands = range(0, 300, 3)
    result = reranker.rerank(cands, dataset[0], 10)
    assert result == brute_force_knn(dataset, cands, dataset[0], 10, euclidean_distance)


def test_rerank_scores_every_candidate(dataset):
    dist = CountingDistance(manhattan_distance)
    reranker = BoundedExactReranker(dataset, distance_func=dist)
    reranker.rerank(range(50), dataset[0], 5)
    assert dist.count == 50
    assert dist.reset() == 50
    assert dist.count == 0


def test_rerank_invalid_k(dataset):
    reranker = BoundedExactReranker(dataset)
    with pytest.raises(InvalidParameter):
        reranker.rerank([0, 1], dataset[0], 0)
