"""
Genetic operators for postfix program evolution.

This module provides the program generator used for initialization and the
two variation operators, subtree crossover and point mutation. Subtrees are
located with a backward arity-counting scan over the flat symbol sequence,
so every operator preserves the arity-balance invariant without building a
tree.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np

from pgp.core.expressions.expression import Constant, Program, Symbol, Variable
from pgp.core.grammar.operators import Operator, OperatorCatalog
from pgp.utils.exceptions import InvalidConfigError, ProgramStructureError
from pgp.utils.random import uniform

logger = logging.getLogger(__name__)

VARIABLE_PROBABILITY = 0.75
CONSTANT_PERTURBATION = 0.1


def find_subtree_start(symbols: Sequence[Symbol], idx: int) -> int:
    """
    Index of the first symbol of the subtree rooted at operator ``idx``.

    Scans backward from ``idx - 1``: the number of terminals still required
    starts at the operator's arity and grows by ``arity - 1`` for every
    operator passed; the subtree starts where the terminal count catches up.

    Raises:
        ProgramStructureError: If ``idx`` is not an operator or the sequence
            runs out before the subtree is complete
    """
    root = symbols[idx]
    if not isinstance(root, Operator):
        raise ProgramStructureError(f"position {idx} does not hold an operator")

    target_arity = root.arity
    terminal_count = 0

    for i in range(idx - 1, -1, -1):
        symbol = symbols[i]
        if isinstance(symbol, Operator):
            target_arity += symbol.arity - 1
        else:
            terminal_count += 1
        if terminal_count == target_arity:
            return i

    raise ProgramStructureError(
        f"subtree rooted at position {idx} is incomplete",
        program=" ".join(str(s) for s in symbols)
    )


def find_operator_at_or_after(symbols: Sequence[Symbol], start: int) -> int:
    """Index of the nearest operator at or after ``start``, or -1."""
    for i in range(start, len(symbols)):
        if isinstance(symbols[i], Operator):
            return i
    return -1


class ProgramGenerator:
    """
    Generates random arity-balanced programs.

    Terminals are input variables (coefficient 1.0) three times out of four,
    otherwise constants drawn uniformly within the observed range of a
    randomly chosen variable.
    """

    def __init__(
        self,
        catalog: OperatorCatalog,
        input_variables: List[Variable],
        variable_bounds: Dict[str, Tuple[float, float]],
        tree_length: int
    ):
        """
        Initialize the generator.

        Args:
            catalog: Operators available to programs
            input_variables: Variables terminals may reference
            variable_bounds: Observed (min, max) per variable, used to sample constants
            tree_length: Target program length before the closing phase
        """
        if not input_variables:
            raise InvalidConfigError("at least one input variable is required", config_field="input_variables")
        if not catalog.has_arity(2):
            raise InvalidConfigError(
                "operator catalog needs a binary operator to close programs",
                config_field="operators",
                invalid_value=catalog.names
            )

        self.catalog = catalog
        self.input_variables = list(input_variables)
        self.variable_bounds = dict(variable_bounds)
        self._bounds = list(self.variable_bounds.values())
        self.tree_length = tree_length

    def random_variable(self, rng: np.random.Generator) -> Variable:
        return self.input_variables[rng.integers(len(self.input_variables))]

    def random_terminal(self, rng: np.random.Generator, constant_id: int = 0) -> Symbol:
        if rng.random() < VARIABLE_PROBABILITY or not self._bounds:
            return self.random_variable(rng)
        low, high = self._bounds[rng.integers(len(self._bounds))]
        return Constant(f"c{constant_id}", uniform(rng, low, high))

    def breed(self, rng: np.random.Generator, row_capacity: int = 0) -> Program:
        """
        Create a random program of at least ``tree_length`` symbols.

        Operators are only accepted while enough operands are on the stack.
        Once the target length is reached, operators keep being appended until
        a single value remains.
        """
        ratio = self.catalog.operator_to_operand_ratio
        constant_id = 0

        symbols: List[Symbol] = [self.random_terminal(rng, constant_id)]
        surplus = 1

        while len(symbols) < self.tree_length:
            if rng.random() > ratio:
                constant_id += 1
                symbols.append(self.random_terminal(rng, constant_id))
                surplus += 1
            else:
                op = self.catalog.select_random(rng)
                if surplus >= op.arity:
                    surplus -= op.arity - 1
                    symbols.append(op)

        while surplus > 1:
            op = self.catalog.select_random(rng)
            if surplus >= op.arity:
                surplus -= op.arity - 1
                symbols.append(op)

        return Program(symbols, row_capacity=row_capacity)


class CrossoverOperator(ABC):
    """Abstract base class for crossover operators."""

    @abstractmethod
    def crossover(
        self,
        parent1: Program,
        parent2: Program,
        rng: np.random.Generator
    ) -> Optional[Tuple[Program, Program]]:
        """
        Produce two offspring, or None when no offspring can be formed.

        Offspring fitness is undefined until the caller evaluates them.
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass


class SubtreeCrossover(CrossoverOperator):
    """
    Swaps one subtree between two parents.

    The cut point in each parent is the nearest operator at or after a
    uniformly drawn index. A parent with no operator in that range makes the
    attempt degenerate, and no offspring are produced.
    """

    @property
    def name(self) -> str:
        return "subtree"

    def crossover(
        self,
        parent1: Program,
        parent2: Program,
        rng: np.random.Generator
    ) -> Optional[Tuple[Program, Program]]:
        a, b = parent1.symbols, parent2.symbols

        a_end = find_operator_at_or_after(a, int(rng.integers(len(a))))
        b_end = find_operator_at_or_after(b, int(rng.integers(len(b))))
        if a_end == -1 or b_end == -1:
            logger.debug("Degenerate crossover: no operator after a cut point")
            return None

        a_start = find_subtree_start(a, a_end)
        b_start = find_subtree_start(b, b_end)

        a_subtree = a[a_start:a_end + 1]
        b_subtree = b[b_start:b_end + 1]

        offspring1 = Program(a[:a_start] + b_subtree + a[a_end + 1:], row_capacity=len(parent1.predicted))
        offspring2 = Program(b[:b_start] + a_subtree + b[b_end + 1:], row_capacity=len(parent2.predicted))
        return offspring1, offspring2


class MutationOperator(ABC):
    """Abstract base class for mutation operators."""

    @abstractmethod
    def mutate(self, program: Program, rng: np.random.Generator) -> Program:
        """Return a mutated copy of ``program``; the original is untouched."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass


class PointMutation(MutationOperator):
    """
    Mutates the symbol at one uniformly chosen position.

    - Constant: value moves by up to 10% of itself, up or down.
    - Variable: replaced by a random input variable.
    - Operator: half the time removed (a unary operator is dropped, a binary
      operator's whole subtree collapses into one random variable), otherwise
      replaced by a different operator of the same arity.
    """

    def __init__(self, generator: ProgramGenerator):
        self.generator = generator
        self.catalog = generator.catalog

    @property
    def name(self) -> str:
        return "point"

    def mutate(self, program: Program, rng: np.random.Generator) -> Program:
        symbols = list(program.symbols)
        idx = int(rng.integers(len(symbols)))
        symbol = symbols[idx]

        if isinstance(symbol, Constant):
            delta = symbol.value * rng.random() * CONSTANT_PERTURBATION
            if rng.random() < 0.5:
                symbols[idx] = symbol.with_value(symbol.value + delta)
            else:
                symbols[idx] = symbol.with_value(symbol.value - delta)

        elif isinstance(symbol, Variable):
            symbols[idx] = self.generator.random_variable(rng)

        elif rng.random() < 0.5:
            if symbol.arity == 1:
                del symbols[idx]
            else:
                start = find_subtree_start(symbols, idx)
                symbols[start:idx + 1] = [self.generator.random_variable(rng)]

        else:
            symbols[idx] = self.catalog.select_random_different(rng, symbol)

        return Program(symbols, row_capacity=len(program.predicted))
