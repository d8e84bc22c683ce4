"""
Operator catalog for postfix programs.

Each catalog entry knows its arity, display glyph, a numpy implementation used
by the stack evaluator, and a sympy counterpart used to render programs as
symbolic expressions. Operators take their operands off a stack: the value on
top is popped first, the one beneath it second, and binary operators compute
``second (op) first``. Evaluating ``[a, b, subtract]`` therefore yields
``a - b``.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence
import logging

import numpy as np
import sympy as sp

from pgp.utils.exceptions import UnsupportedOperationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operator:
    """
    A single catalog entry.

    Attributes:
        name: Catalog name (e.g. "subtract")
        symbol: Display glyph (e.g. "-")
        arity: Number of operands consumed, 1 or 2
        function: Numeric implementation, called with operands in push order
        sympy_function: Symbolic implementation with the same operand order
    """

    name: str
    symbol: str
    arity: int
    function: Callable = field(compare=False, repr=False)
    sympy_function: Callable = field(compare=False, repr=False)

    def __post_init__(self):
        if self.arity not in (1, 2):
            raise ValueError(f"arity must be 1 or 2, got {self.arity}")

    @property
    def is_infix(self) -> bool:
        return self.arity == 2

    def apply(self, stack: List):
        """Pop ``arity`` operands from ``stack`` and return the result."""
        if self.arity == 1:
            return self.function(stack.pop())
        first = stack.pop()
        second = stack.pop()
        return self.function(second, first)

    def __str__(self) -> str:
        return self.symbol


# Numerically unsafe entries (divide, log, exp) may produce NaN or infinity;
# the evaluator checks every intermediate result.
ADD = Operator("add", "+", 2, np.add, lambda a, b: a + b)
SUBTRACT = Operator("subtract", "-", 2, np.subtract, lambda a, b: a - b)
MULTIPLY = Operator("multiply", "*", 2, np.multiply, lambda a, b: a * b)
DIVIDE = Operator("divide", "/", 2, np.divide, lambda a, b: a / b)
SINE = Operator("sin", "sin", 1, np.sin, sp.sin)
COSINE = Operator("cos", "cos", 1, np.cos, sp.cos)
TANGENT = Operator("tan", "tan", 1, np.tan, sp.tan)
HYPERBOLIC_TANGENT = Operator("tanh", "tanh", 1, np.tanh, sp.tanh)
LOGARITHM = Operator("log", "log", 1, np.log, sp.log)
EXPONENTIAL = Operator("exp", "exp", 1, np.exp, sp.exp)

ALL_OPERATORS: Dict[str, Operator] = {
    op.name: op for op in (
        ADD, SUBTRACT, MULTIPLY, DIVIDE,
        SINE, COSINE, TANGENT, HYPERBOLIC_TANGENT,
        LOGARITHM, EXPONENTIAL,
    )
}

DEFAULT_OPERATOR_NAMES = [
    "add", "subtract", "multiply", "divide", "sin", "cos", "tan", "tanh"
]


class OperatorCatalog:
    """
    Ordered, immutable set of operators available to the search.

    All random choices go through a caller-supplied ``numpy.random.Generator``
    so parallel workers can each use their own generator.
    """

    def __init__(self, operators: Sequence[Operator]):
        if not operators:
            raise ValueError("operator catalog must not be empty")

        names = [op.name for op in operators]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate operator names in catalog: {names}")

        self._operators = tuple(operators)
        self._by_name = {op.name: op for op in self._operators}
        self._by_arity: Dict[int, tuple] = {
            arity: tuple(op for op in self._operators if op.arity == arity)
            for arity in (1, 2)
        }
        self.operator_to_operand_ratio = (
            len(self._operators) / sum(op.arity for op in self._operators)
        )

    def __len__(self) -> int:
        return len(self._operators)

    def __iter__(self):
        return iter(self._operators)

    def __contains__(self, item) -> bool:
        return isinstance(item, Operator) and self._by_name.get(item.name) == item

    def __repr__(self) -> str:
        return f"OperatorCatalog({[op.name for op in self._operators]})"

    @property
    def names(self) -> List[str]:
        return [op.name for op in self._operators]

    def get(self, name: str) -> Operator:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnsupportedOperationError(
                f"Operator '{name}'",
                context_info="OperatorCatalog.get",
                alternative=f"Available operators: {self.names}"
            ) from None

    def has_arity(self, arity: int) -> bool:
        return bool(self._by_arity.get(arity))

    def select_random(self, rng: np.random.Generator) -> Operator:
        """Uniformly choose any operator."""
        return self._operators[rng.integers(len(self._operators))]

    def select_random_with_arity(self, rng: np.random.Generator, arity: int) -> Operator:
        """Uniformly choose an operator of the given arity."""
        candidates = self._by_arity.get(arity, ())
        if not candidates:
            raise UnsupportedOperationError(
                f"Operator of arity {arity}",
                context_info=repr(self)
            )
        return candidates[rng.integers(len(candidates))]

    def select_random_different(
        self,
        rng: np.random.Generator,
        operator: Operator
    ) -> Operator:
        """
        Uniformly choose a different operator with the same arity.

        When ``operator`` is the only one of its arity it is returned unchanged,
        which makes the replacing mutation a no-op for that position.
        """
        candidates = [
            op for op in self._by_arity.get(operator.arity, ())
            if op.name != operator.name
        ]
        if not candidates:
            return operator
        return candidates[rng.integers(len(candidates))]


def create_operator_catalog(names: Optional[Iterable[str]] = None) -> OperatorCatalog:
    """
    Build a catalog from operator names.

    Args:
        names: Operator names from ``ALL_OPERATORS``; defaults to every operator
               except log and exp.

    Returns:
        OperatorCatalog with operators in the given order
    """
    if names is None:
        names = DEFAULT_OPERATOR_NAMES

    operators = []
    for name in names:
        if name not in ALL_OPERATORS:
            raise UnsupportedOperationError(
                f"Operator '{name}'",
                context_info="create_operator_catalog",
                alternative=f"Available operators: {list(ALL_OPERATORS.keys())}"
            )
        operators.append(ALL_OPERATORS[name])

    logger.debug(f"Created operator catalog: {[op.name for op in operators]}")
    return OperatorCatalog(operators)


def list_operators() -> List[str]:
    """List every operator name known to the engine."""
    return list(ALL_OPERATORS.keys())
