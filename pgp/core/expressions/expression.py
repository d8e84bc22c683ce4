"""
Postfix Program Representation
==============================

Defines the symbols a postfix (RPN) program is built from, `Variable` and
`Constant` terminals plus catalog `Operator` entries, and the `Program` class
that owns a symbol sequence together with its cached fitness and the
predicted/true result buffers filled by the evaluator.

A program is valid when evaluating it left to right (push every terminal, pop
``arity`` values for every operator and push one result) never underflows the
stack and leaves exactly one value behind.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np
import sympy as sp

from pgp.core.grammar.operators import Operator
from pgp.utils.exceptions import ProgramStructureError
from pgp.utils.math.statistics import regression_metrics


@dataclass(frozen=True)
class Variable:
    """
    Reference to an input column.

    Attributes:
        name (str): Column name, e.g. "x1".
        index (int): Column index in the dataset view.
        coefficient (float): Multiplier applied to the column value.
    """
    name: str
    index: int
    coefficient: float = 1.0

    def __str__(self) -> str:
        if self.coefficient == 1.0:
            return self.name
        return f"{self.coefficient:g}*{self.name}"


@dataclass(frozen=True)
class Constant:
    """Literal value. Changing a constant means replacing the symbol."""
    name: str
    value: float

    def with_value(self, value: float) -> 'Constant':
        return Constant(self.name, float(value))

    def __str__(self) -> str:
        return f"{self.value:g}"


Terminal = Union[Variable, Constant]
Symbol = Union[Variable, Constant, Operator]


def is_operator(symbol: Symbol) -> bool:
    return isinstance(symbol, Operator)


def stack_effect(symbol: Symbol) -> int:
    """Net change in stack depth caused by ``symbol``."""
    if isinstance(symbol, Operator):
        return 1 - symbol.arity
    return 1


class Program:
    """
    Postfix symbol sequence with cached evaluation results.

    Attributes:
        symbols: Symbols in postfix order
        predicted: Per-row model output from the last full-dataset evaluation
        true: Per-row target values aligned with ``predicted``
        fitness: Pearson r from the last evaluation, NaN when undefined
    """

    def __init__(self, symbols: Optional[Iterable[Symbol]] = None, row_capacity: int = 0):
        self.symbols: List[Symbol] = list(symbols) if symbols is not None else []
        self.predicted = np.zeros(row_capacity)
        self.true = np.zeros(row_capacity)
        self.fitness: float = float('nan')

    # Sequence protocol

    def __len__(self) -> int:
        return len(self.symbols)

    def __getitem__(self, idx):
        return self.symbols[idx]

    def __setitem__(self, idx, symbol: Symbol):
        self.symbols[idx] = symbol

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self.symbols)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Program):
            return NotImplemented
        return self.symbols == other.symbols

    __hash__ = None

    # Cloning

    def clone(self) -> 'Program':
        """
        Structure-only copy.

        The symbol list and fitness are copied; result buffers are fresh and
        zeroed. Used for routine population turnover.
        """
        copy = Program(self.symbols, row_capacity=len(self.predicted))
        copy.fitness = self.fitness
        return copy

    def clone_with_results(self) -> 'Program':
        """Copy structure, fitness and both result buffers."""
        copy = Program(self.symbols)
        copy.predicted = self.predicted.copy()
        copy.true = self.true.copy()
        copy.fitness = self.fitness
        return copy

    # Queries

    @property
    def has_fitness(self) -> bool:
        return not np.isnan(self.fitness)

    def operator_positions(self) -> List[int]:
        return [i for i, s in enumerate(self.symbols) if isinstance(s, Operator)]

    def constant_positions(self) -> List[Tuple[int, float]]:
        """Ordered (position, value) pairs for every constant."""
        return [
            (i, s.value) for i, s in enumerate(self.symbols)
            if isinstance(s, Constant)
        ]

    def set_constant(self, position: int, value: float):
        symbol = self.symbols[position]
        if not isinstance(symbol, Constant):
            raise TypeError(f"symbol at position {position} is not a constant: {symbol}")
        self.symbols[position] = symbol.with_value(value)

    def is_balanced(self) -> bool:
        """True when the sequence satisfies the arity-balance invariant."""
        depth = 0
        for symbol in self.symbols:
            if isinstance(symbol, Operator) and depth < symbol.arity:
                return False
            depth += stack_effect(symbol)
        return depth == 1

    def metrics(self) -> dict:
        """Regression metrics over the buffers from the last evaluation."""
        return regression_metrics(self.true, self.predicted)

    # Rendering

    def __str__(self) -> str:
        return " ".join(str(s) for s in self.symbols)

    def __repr__(self) -> str:
        return f"Program('{self}', fitness={self.fitness:.6f})"

    def _fold(self, terminal, unary, binary):
        stack = []
        for symbol in self.symbols:
            if isinstance(symbol, Operator):
                if len(stack) < symbol.arity:
                    raise ProgramStructureError("stack underflow", program=str(self))
                if symbol.arity == 1:
                    stack.append(unary(symbol, stack.pop()))
                else:
                    first = stack.pop()
                    second = stack.pop()
                    stack.append(binary(symbol, second, first))
            else:
                stack.append(terminal(symbol))

        if len(stack) != 1:
            raise ProgramStructureError(
                "residual stack size is not one", program=str(self), residual=len(stack)
            )
        return stack[0]

    def to_infix(self) -> str:
        """Render as a parenthesised infix string."""
        return self._fold(
            str,
            lambda op, x: f"{op.symbol}({x})",
            lambda op, a, b: f"({a} {op.symbol} {b})",
        )

    def to_sympy(self, simplify: bool = False) -> sp.Expr:
        def terminal(symbol):
            if isinstance(symbol, Constant):
                return sp.Float(symbol.value)
            if symbol.coefficient == 1.0:
                return sp.Symbol(symbol.name)
            return sp.Float(symbol.coefficient) * sp.Symbol(symbol.name)

        expr = self._fold(
            terminal,
            lambda op, x: op.sympy_function(x),
            lambda op, a, b: op.sympy_function(a, b),
        )
        return sp.simplify(expr) if simplify else expr
