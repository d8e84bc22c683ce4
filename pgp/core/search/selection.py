# pgp/core/search/selection.py
"""
Parent selection strategies for the evolution driver.

Strategies pick population indices from the fitness array. They hold no
per-call state and draw from the caller's generator, so parallel workers can
share one strategy instance.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Type
import logging

import numpy as np

from pgp.utils.exceptions import OptimizationError, UnsupportedOperationError


class SelectionStrategy(ABC):
    """
    Abstract base class for selection strategies.

    All selection strategies should inherit from this class and implement
    the select method.
    """

    @abstractmethod
    def select(
        self,
        fitnesses: np.ndarray,
        rng: np.random.Generator,
        num_parents: int = 2
    ) -> np.ndarray:
        """
        Select parent indices based on fitness.

        Args:
            fitnesses: Fitness per population slot; NaN marks an undefined fitness
            rng: Random generator of the calling worker
            num_parents: Number of parent indices to return

        Returns:
            Array of population indices
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this selection strategy."""
        pass

    def validate_inputs(self, fitnesses: np.ndarray) -> None:
        """Validate inputs for selection."""
        if len(fitnesses) == 0:
            raise OptimizationError("Population is empty")


class UniformSelection(SelectionStrategy):
    """
    Picks every index with equal probability, regardless of fitness.

    Selection pressure then comes only from elitism and from discarding
    offspring with undefined fitness.
    """

    @property
    def name(self) -> str:
        return "uniform"

    def select(
        self,
        fitnesses: np.ndarray,
        rng: np.random.Generator,
        num_parents: int = 2
    ) -> np.ndarray:
        self.validate_inputs(fitnesses)
        return rng.integers(len(fitnesses), size=num_parents)


class FitnessProportionalSelection(SelectionStrategy):
    """
    Roulette-wheel selection.

    Fitnesses are shifted so the worst defined value gets a small positive
    weight; slots with undefined fitness are never picked. Falls back to
    uniform selection when no usable weights remain.
    """

    def __init__(self, min_fitness_offset: float = 1e-8):
        """
        Initialize fitness-proportional selection.

        Args:
            min_fitness_offset: Minimum offset to ensure positive probabilities
        """
        self.min_fitness_offset = min_fitness_offset
        self.logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return "proportional"

    def probabilities(self, fitnesses: np.ndarray) -> np.ndarray:
        """Selection probability per slot, or an empty array for uniform fallback."""
        fitnesses = np.asarray(fitnesses, dtype=float)
        valid = np.isfinite(fitnesses)
        if not valid.any():
            return np.empty(0)

        weights = np.zeros_like(fitnesses)
        weights[valid] = fitnesses[valid] - fitnesses[valid].min() + self.min_fitness_offset

        total = weights.sum()
        if total <= self.min_fitness_offset:
            return np.empty(0)
        return weights / total

    def select(
        self,
        fitnesses: np.ndarray,
        rng: np.random.Generator,
        num_parents: int = 2
    ) -> np.ndarray:
        self.validate_inputs(fitnesses)
        probabilities = self.probabilities(fitnesses)

        if probabilities.size == 0:
            self.logger.debug("No usable fitness weights, falling back to uniform selection")
            return rng.integers(len(fitnesses), size=num_parents)

        return rng.choice(len(fitnesses), size=num_parents, p=probabilities)


class TournamentSelection(SelectionStrategy):
    """
    Tournament selection strategy.

    Each parent is the fittest of ``tournament_size`` uniformly drawn slots.
    """

    def __init__(self, tournament_size: int = 3):
        """
        Initialize tournament selection.

        Args:
            tournament_size: Number of individuals in each tournament
        """
        if tournament_size <= 0:
            raise ValueError("tournament_size must be positive")
        self.tournament_size = tournament_size
        self.logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return "tournament"

    def select(
        self,
        fitnesses: np.ndarray,
        rng: np.random.Generator,
        num_parents: int = 2
    ) -> np.ndarray:
        self.validate_inputs(fitnesses)
        fitnesses = np.asarray(fitnesses, dtype=float)
        size = min(self.tournament_size, len(fitnesses))

        parents = np.empty(num_parents, dtype=int)
        for p in range(num_parents):
            contenders = rng.choice(len(fitnesses), size=size, replace=False)
            scores = fitnesses[contenders]
            finite = np.isfinite(scores)
            if finite.any():
                scores = np.where(finite, scores, -np.inf)
                parents[p] = contenders[int(np.argmax(scores))]
            else:
                parents[p] = contenders[0]
        return parents


_SELECTION_REGISTRY: Dict[str, Type[SelectionStrategy]] = {
    "uniform": UniformSelection,
    "proportional": FitnessProportionalSelection,
    "tournament": TournamentSelection,
}


def create_selection_strategy(name: str, **kwargs) -> SelectionStrategy:
    """
    Create a selection strategy by name.

    Args:
        name: Strategy name ("uniform", "proportional", "tournament")
        **kwargs: Strategy-specific parameters

    Returns:
        Configured SelectionStrategy instance
    """
    if name not in _SELECTION_REGISTRY:
        raise UnsupportedOperationError(
            f"Selection strategy '{name}'",
            context_info="create_selection_strategy",
            alternative=f"Available strategies: {list(_SELECTION_REGISTRY.keys())}"
        )

    if name == "tournament":
        return TournamentSelection(tournament_size=kwargs.get('tournament_size', 3))
    if name == "proportional":
        return FitnessProportionalSelection(
            min_fitness_offset=kwargs.get('min_fitness_offset', 1e-8)
        )
    return UniformSelection()


def list_selection_strategies() -> List[str]:
    """List available selection strategy names."""
    return list(_SELECTION_REGISTRY.keys())
