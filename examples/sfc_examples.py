#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sfcknn examples
===============

Shows how to build an approximate kNN index from several curve orders and
query it with single curves, fused curves and the random-sampling baseline.

Real space-filling curve keys (Z-order, Hilbert, ...) are computed outside
this library. The examples use projections onto random directions as
stand-in curve keys: they are not locality preserving in all dimensions,
but they induce total orders the same way.
"""

import numpy as np
from sfcknn import (
    CountingDistance,
    CurveMask,
    ExactKNN,
    build_index,
    candidate_recall,
    manhattan_distance,
)


def projection_keys(dim, num_curves, seed=0):
    rng = np.random.RandomState(seed)
    directions = rng.randn(num_curves, dim)
    return [lambda v, d=d: float(np.dot(v, d)) for d in directions]


def basic_usage_example():
    """Basic usage"""
    print("=== Basic usage ===")

    dimension = 4
    num_points = 2000
    data = np.random.RandomState(1).random_sample((num_points, dimension))
    print(f"Created {num_points} random vectors of dimension {dimension}")

    index = build_index(
        data,
        projection_keys(dimension, 3),
        scale_factors=[25, 25, 25],  # positions per half-window unit
        curve_names=["p1", "p2", "p3"],
        verbose=True,
    )

    k = 10
    print(f"\nSearching the {k} nearest neighbours of object 0 on curve p1...")
    neighbors = index.query(0, CurveMask.of(0), half_window_unit=2, k=k)
    for i, (key, distance) in enumerate(neighbors):
        print(f"  {i+1}. key: {key}, distance: {distance:.6f}")


def curve_fusion_example():
    """Compare single curves, fused curves and random sampling"""
    print("\n=== Curve fusion vs. random sampling ===")

    data = np.random.RandomState(2).random_sample((3000, 3))
    index = build_index(data, projection_keys(3, 3, seed=3), scale_factors=[10, 10, 10],
                        sample_scale=10)
    exact = ExactKNN(index.dataset)

    k = 20
    queries = range(0, len(data), 100)
    variants = [
        ("p1", CurveMask.of(0)),
        ("p2", CurveMask.of(1)),
        ("p123", CurveMask.all(3)),
        ("random", CurveMask.none()),
    ]
    rng = np.random.RandomState(0)
    for name, mask in variants:
        recalls = []
        sizes = []
        for key in queries:
            cands = index.candidates(key, mask, half_window_unit=4, k=k, random_state=rng)
            recalls.append(candidate_recall(exact.query(key, k), cands, k))
            sizes.append(len(cands) - 1)
        print(f"  {name:>7}: recall {np.mean(recalls):.3f}, "
              f"{np.mean(sizes):.1f} distance computations per query")


def distance_counting_example():
    """Count exact distance computations"""
    print("\n=== Counting distance computations ===")

    data = np.random.RandomState(4).random_sample((1000, 5))
    dist = CountingDistance(manhattan_distance)
    index = build_index(data, projection_keys(5, 2), scale_factors=[8, 8], distance_func=dist)

    results = index.query_batch(range(100), CurveMask.all(2), half_window_unit=3, k=5,
                                max_workers=4)
    print(f"Answered {len(results)} queries with {dist.count} distance computations")


if __name__ == "__main__":
    basic_usage_example()
    curve_fusion_example()
    distance_counting_example()
