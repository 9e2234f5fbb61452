import os
import sys

import numpy as np
import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from sfcknn import Dataset, build_index


def projection_keys(dim, num_curves, seed=0):
    """Curve key functions projecting vectors onto random directions."""
    rng = np.random.RandomState(seed)
    directions = rng.randn(num_curves, dim)
    return [lambda v, d=d: float(np.dot(v, d)) for d in directions]


@pytest.fixture
def random_data():
    rng = np.random.RandomState(42)
    return rng.random_sample((300, 6))


@pytest.fixture
def dataset(random_data):
    return Dataset.from_array(random_data)


@pytest.fixture
def index(random_data):
    return build_index(
        random_data,
        projection_keys(random_data.shape[1], 3),
        scale_factors=[5, 5, 5],
        sample_scale=5,
    )


@pytest.fixture
def line_dataset():
    # Ten points on a line; the identity order is also the curve order.
    return Dataset.from_array(np.arange(10, dtype=np.float64).reshape(-1, 1))
