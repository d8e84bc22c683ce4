# pgp/__init__.py
"""
PGP: postfix genetic programming for symbolic regression.
"""

from pgp.algorithms.genetic import PgpAlgorithm, create_engine_from_config, run_symbolic_regression
from pgp.core.search.config import EngineConfig
from pgp.data.dataset import Dataset

__version__ = "0.1.0"

__all__ = [
    "Dataset",
    "EngineConfig",
    "PgpAlgorithm",
    "create_engine_from_config",
    "run_symbolic_regression",
]
