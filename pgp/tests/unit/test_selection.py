"""
Unit tests for parent selection strategies.
"""

import numpy as np
import pytest

from pgp.core.search.selection import (
    FitnessProportionalSelection,
    TournamentSelection,
    UniformSelection,
    create_selection_strategy,
    list_selection_strategies,
)
from pgp.utils.exceptions import OptimizationError, UnsupportedOperationError


@pytest.fixture
def fitnesses():
    return np.array([0.1, 0.5, np.nan, 0.9, 0.3])


class TestSelectionStrategies:
    """Test selection strategy implementations."""

    def test_uniform_selection(self, fitnesses, rng):
        strategy = UniformSelection()
        picks = np.concatenate([strategy.select(fitnesses, rng) for _ in range(200)])
        assert set(picks) == set(range(len(fitnesses)))

    def test_proportional_skips_undefined(self, fitnesses, rng):
        strategy = FitnessProportionalSelection()
        for _ in range(200):
            parents = strategy.select(fitnesses, rng, num_parents=2)
            assert len(parents) == 2
            assert 2 not in parents

    def test_proportional_probabilities(self, fitnesses):
        probabilities = FitnessProportionalSelection().probabilities(fitnesses)
        assert probabilities.sum() == pytest.approx(1.0)
        assert probabilities[2] == 0.0
        assert probabilities[3] == probabilities.max()

    def test_proportional_falls_back_to_uniform(self, rng):
        strategy = FitnessProportionalSelection()
        undefined = np.full(4, np.nan)
        assert strategy.probabilities(undefined).size == 0
        parents = strategy.select(undefined, rng, num_parents=3)
        assert len(parents) == 3
        assert all(0 <= p < 4 for p in parents)

    def test_proportional_handles_negative_fitness(self, rng):
        probabilities = FitnessProportionalSelection().probabilities(np.array([-0.9, -0.1, 0.4]))
        assert np.all(probabilities > 0)
        assert probabilities.sum() == pytest.approx(1.0)

    def test_tournament_of_whole_population(self, fitnesses, rng):
        """A tournament over every slot always picks the fittest."""
        strategy = TournamentSelection(tournament_size=len(fitnesses))
        for _ in range(20):
            assert list(strategy.select(fitnesses, rng)) == [3, 3]

    def test_tournament_size_validation(self):
        with pytest.raises(ValueError):
            TournamentSelection(tournament_size=0)

    def test_empty_population(self, rng):
        with pytest.raises(OptimizationError):
            UniformSelection().select(np.array([]), rng)


class TestSelectionRegistry:
    """Test strategy creation by name."""

    def test_create_by_name(self):
        assert isinstance(create_selection_strategy("uniform"), UniformSelection)
        assert isinstance(create_selection_strategy("proportional"), FitnessProportionalSelection)

        tournament = create_selection_strategy("tournament", tournament_size=5)
        assert isinstance(tournament, TournamentSelection)
        assert tournament.tournament_size == 5

    def test_names(self):
        for name in list_selection_strategies():
            assert create_selection_strategy(name).name == name

    def test_unknown_strategy(self):
        with pytest.raises(UnsupportedOperationError):
            create_selection_strategy("rank")
