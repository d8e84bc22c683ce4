"""
Unit tests for program breeding, subtree location, crossover and mutation.

Every variation operator must keep programs arity-balanced, so most tests
here run an operator many times and check the invariant on each result.
"""

import numpy as np
import pytest

from pgp.core.expressions.expression import Constant, Program, Variable
from pgp.core.grammar.operators import ADD, COSINE, MULTIPLY, SINE, SUBTRACT, create_operator_catalog
from pgp.core.search.operators import (
    CONSTANT_PERTURBATION,
    PointMutation,
    ProgramGenerator,
    SubtreeCrossover,
    find_operator_at_or_after,
    find_subtree_start,
)
from pgp.utils.exceptions import InvalidConfigError, ProgramStructureError

A = Variable("a", 0)
B = Variable("b", 1)
C = Variable("c", 2)

BOUNDS = {"x1": (1.0, 5.0), "x2": (-2.0, 2.0), "y": (-10.0, 25.0)}


@pytest.fixture
def generator(variables):
    catalog = create_operator_catalog(["add", "subtract", "multiply", "divide", "sin", "cos"])
    return ProgramGenerator(catalog, variables, BOUNDS, tree_length=15)


@pytest.fixture
def population(generator, rng):
    return [generator.breed(rng) for _ in range(40)]


class TestSubtreeBoundaries:
    """Test the backward arity-counting scan."""

    def test_binary_root(self):
        symbols = [A, B, ADD, C, MULTIPLY]
        assert find_subtree_start(symbols, 4) == 0
        assert find_subtree_start(symbols, 2) == 0

    def test_right_operand_subtree(self):
        symbols = [A, B, C, SUBTRACT, ADD]
        assert find_subtree_start(symbols, 3) == 1
        assert find_subtree_start(symbols, 4) == 0

    def test_unary_operators(self):
        symbols = [A, SINE, B, COSINE, ADD]
        assert find_subtree_start(symbols, 1) == 0
        assert find_subtree_start(symbols, 3) == 2
        assert find_subtree_start(symbols, 4) == 0

    def test_terminal_position_raises(self):
        with pytest.raises(ProgramStructureError):
            find_subtree_start([A, B, ADD], 1)

    def test_incomplete_subtree_raises(self):
        with pytest.raises(ProgramStructureError, match="incomplete"):
            find_subtree_start([A, ADD], 1)

    def test_find_operator_at_or_after(self):
        symbols = [A, B, ADD, C, MULTIPLY]
        assert find_operator_at_or_after(symbols, 0) == 2
        assert find_operator_at_or_after(symbols, 3) == 4
        assert find_operator_at_or_after([A, B], 0) == -1


class TestProgramGenerator:
    """Test random program breeding."""

    def test_bred_programs_are_balanced(self, generator, rng):
        for _ in range(200):
            program = generator.breed(rng)
            assert program.is_balanced()
            assert len(program) >= generator.tree_length

    def test_bred_programs_start_unevaluated(self, generator, rng):
        program = generator.breed(rng, row_capacity=60)
        assert not program.has_fitness
        assert program.predicted.shape == (60,)

    def test_terminals(self, generator, rng):
        terminals = [generator.random_terminal(rng, i) for i in range(2000)]
        variables = [t for t in terminals if isinstance(t, Variable)]
        constants = [t for t in terminals if isinstance(t, Constant)]

        assert 0.70 < len(variables) / len(terminals) < 0.80
        assert all(v.coefficient == 1.0 for v in variables)
        assert {v.name for v in variables} == {"x1", "x2"}
        assert all(-10.0 <= c.value <= 25.0 for c in constants)

    def test_constant_names_are_unique_per_program(self, generator, rng):
        for _ in range(20):
            names = [s.name for s in generator.breed(rng) if isinstance(s, Constant)]
            assert len(names) == len(set(names))

    def test_unary_only_catalog_rejected(self, variables):
        catalog = create_operator_catalog(["sin", "cos"])
        with pytest.raises(InvalidConfigError):
            ProgramGenerator(catalog, variables, BOUNDS, tree_length=10)

    def test_no_inputs_rejected(self):
        with pytest.raises(InvalidConfigError):
            ProgramGenerator(create_operator_catalog(["add"]), [], BOUNDS, tree_length=10)


class TestSubtreeCrossover:
    """Test subtree exchange between two parents."""

    def test_offspring_are_balanced(self, population, rng):
        crossover = SubtreeCrossover()
        produced = 0
        for _ in range(300):
            i, j = rng.integers(len(population), size=2)
            offspring = crossover.crossover(population[i], population[j], rng)
            if offspring is None:
                continue
            produced += 1
            for child in offspring:
                assert child.is_balanced()
                assert not child.has_fitness
        assert produced > 0

    def test_parents_unchanged(self, population, rng):
        crossover = SubtreeCrossover()
        before = [list(p.symbols) for p in population[:2]]
        crossover.crossover(population[0], population[1], rng)
        assert [list(p.symbols) for p in population[:2]] == before

    def test_exchanges_subtrees(self, rng):
        """With a single operator per parent, the whole programs are swapped."""
        first = Program([A, B, ADD])
        second = Program([C, SINE])
        offspring = SubtreeCrossover().crossover(first, second, rng)
        assert offspring is not None
        assert offspring[0] == second
        assert offspring[1] == first

    def test_operator_free_parent_is_degenerate(self, rng):
        assert SubtreeCrossover().crossover(Program([A]), Program([A, B, ADD]), rng) is None
        assert SubtreeCrossover().crossover(Program([A, B, ADD]), Program([C]), rng) is None


class TestPointMutation:
    """Test single-position mutation."""

    def test_mutants_are_balanced(self, generator, population, rng):
        mutation = PointMutation(generator)
        for _ in range(500):
            parent = population[int(rng.integers(len(population)))]
            mutant = mutation.mutate(parent, rng)
            assert mutant.is_balanced()
            assert mutant is not parent

    def test_original_untouched(self, generator, population, rng):
        mutation = PointMutation(generator)
        before = list(population[0].symbols)
        for _ in range(20):
            mutation.mutate(population[0], rng)
        assert population[0].symbols == before

    def test_constant_perturbation_bound(self, generator, rng):
        mutation = PointMutation(generator)
        for _ in range(100):
            mutant = mutation.mutate(Program([Constant("c0", 10.0)]), rng)
            value = mutant[0].value
            assert abs(value - 10.0) <= 10.0 * CONSTANT_PERTURBATION

    def test_variable_replaced_by_input(self, generator, rng):
        mutation = PointMutation(generator)
        for _ in range(50):
            mutant = mutation.mutate(Program([Variable("x1", 0)]), rng)
            assert isinstance(mutant[0], Variable)
            assert mutant[0].name in {"x1", "x2"}

    def test_operator_mutation_outcomes(self, generator, rng):
        """An operator is removed, collapsed or replaced within its arity."""
        mutation = PointMutation(generator)
        seen_lengths = set()
        program = Program([Variable("x1", 0), SINE])
        for _ in range(100):
            mutant = mutation.mutate(program, rng)
            assert mutant.is_balanced()
            seen_lengths.add(len(mutant))
            if len(mutant) == 2:
                assert mutant[1].arity == 1
        assert seen_lengths == {1, 2}

    def test_binary_removal_collapses_subtree(self, rng):
        catalog = create_operator_catalog(["multiply"])
        generator = ProgramGenerator(catalog, [Variable("x1", 0)], {"x1": (0.0, 1.0)}, tree_length=3)
        mutation = PointMutation(generator)

        program = Program([Variable("x1", 0), Variable("x1", 0), MULTIPLY])
        lengths = {len(mutation.mutate(program, rng)) for _ in range(200)}
        assert 1 in lengths
        assert lengths <= {1, 3}
