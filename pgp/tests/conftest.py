"""
Shared fixtures for the PGP test suite.
"""

import numpy as np
import pytest

from pgp.core.expressions.expression import Variable
from pgp.core.grammar.operators import create_operator_catalog
from pgp.data.dataset import Dataset


@pytest.fixture
def rng():
    """Seeded generator so random tests are reproducible."""
    return np.random.default_rng(12345)


@pytest.fixture
def linear_dataset():
    """100 rows with x1 evenly spaced in [0, 10] and y = 2 * x1."""
    x1 = np.linspace(0.0, 10.0, 100)
    return Dataset.from_columns({"x1": x1, "y": 2.0 * x1}, target="y", name="linear")


@pytest.fixture
def sampled_linear_dataset():
    """100 rows with x1 drawn uniformly from [0, 10] and y = 2 * x1."""
    x1 = np.random.default_rng(2024).uniform(0.0, 10.0, 100)
    return Dataset.from_columns({"x1": x1, "y": 2.0 * x1}, target="y", name="sampled_linear")


@pytest.fixture
def two_variable_dataset():
    """Two inputs with y = x1 * x2 + x1."""
    rng = np.random.default_rng(7)
    x1 = rng.uniform(1.0, 5.0, 60)
    x2 = rng.uniform(-2.0, 2.0, 60)
    return Dataset.from_columns({"x1": x1, "x2": x2, "y": x1 * x2 + x1}, target="y", name="product")


@pytest.fixture
def small_dataset():
    """Three rows with hand-picked values: a, b and y = a / 2."""
    return Dataset.from_columns(
        {"a": [2.0, 4.0, 6.0], "b": [3.0, 1.0, 5.0], "y": [1.0, 2.0, 3.0]},
        target="y",
        name="small"
    )


@pytest.fixture
def arithmetic_catalog():
    return create_operator_catalog(["add", "subtract", "multiply"])


@pytest.fixture
def variables():
    """Input variables of ``two_variable_dataset``."""
    return [Variable("x1", 0), Variable("x2", 1)]


