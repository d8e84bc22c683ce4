"""
Seeded random generators for sequential and parallel search.

Every worker owns a generator derived from the master seed and its worker
index, so parallel runs never share generator state and a fixed seed gives a
fixed sequence per worker.
"""

from typing import List, Optional

import numpy as np


def create_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def spawn_worker_rngs(seed: Optional[int], n_workers: int) -> List[np.random.Generator]:
    """One independent generator per worker index."""
    children = np.random.SeedSequence(seed).spawn(n_workers)
    return [np.random.default_rng(child) for child in children]


def uniform(rng: np.random.Generator, low: float, high: float) -> float:
    """Uniform double in [low, high); returns ``low`` when the interval is empty."""
    if high <= low:
        return float(low)
    return float(rng.uniform(low, high))
