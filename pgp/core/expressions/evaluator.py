"""
Stack evaluator for postfix programs.

`evaluate` interprets a program against a single dataset row; `evaluate_set`
runs the same stack machine over every row at once with numpy column vectors
and scores the program by Pearson correlation with the target column.

Arithmetic failure (a NaN or infinite intermediate result) is not an error:
the row yields no value, and a single failed row leaves the whole program
with an undefined (NaN) fitness. A stack underflow or a residual stack size
other than one means the program itself is corrupt and raises
`ProgramStructureError`.
"""

from typing import List, Optional, Tuple
import logging

import numpy as np

from pgp.core.expressions.expression import Constant, Program, Variable
from pgp.core.grammar.operators import Operator
from pgp.data.dataset import Dataset
from pgp.utils.exceptions import ProgramStructureError
from pgp.utils.math.statistics import pearson_r

logger = logging.getLogger(__name__)


class StackEvaluator:
    """
    Evaluates programs against one dataset.

    Each instance owns its scratch stack and evaluation counter, so parallel
    workers use one evaluator each.
    """

    def __init__(self, dataset: Dataset):
        self.dataset = dataset
        self.evaluation_count = 0
        self._stack: List = []
        self._columns = {
            index: dataset.column(index) for index in dataset.variable_indices.values()
        }
        self._target = dataset.target_values

    def _structure_error(self, program: Program, issue: str, residual: Optional[int] = None):
        self._stack.clear()
        error = ProgramStructureError(issue, program=str(program), residual=residual)
        logger.error(str(error))
        return error

    def evaluate(self, program: Program, row: int) -> Optional[float]:
        """
        Evaluate ``program`` on one row.

        Returns:
            The program value, or None when an intermediate result is NaN or
            infinite
        """
        stack = self._stack
        stack.clear()

        for symbol in program.symbols:
            if isinstance(symbol, Operator):
                if len(stack) < symbol.arity:
                    raise self._structure_error(program, "stack underflow", len(stack))
                with np.errstate(all='ignore'):
                    result = symbol.apply(stack)
                if not np.isfinite(result):
                    stack.clear()
                    logger.debug("Numeric failure at row %d in %s", row, program)
                    return None
                stack.append(result)
            elif isinstance(symbol, Constant):
                stack.append(symbol.value)
            elif isinstance(symbol, Variable):
                stack.append(self.dataset.value(symbol.index, row) * symbol.coefficient)
            else:
                raise TypeError(f"unknown symbol type: {type(symbol).__name__}")

        if len(stack) != 1:
            raise self._structure_error(program, "residual stack size is not one", len(stack))
        return float(stack.pop())

    def _run_columns(self, program: Program, columns, row_count: int) -> Tuple[np.ndarray, np.ndarray]:
        """Vectorised stack pass; returns (values, failed_row_mask)."""
        stack = self._stack
        stack.clear()
        failed = np.zeros(row_count, dtype=bool)

        with np.errstate(all='ignore'):
            for symbol in program.symbols:
                if isinstance(symbol, Operator):
                    if len(stack) < symbol.arity:
                        raise self._structure_error(program, "stack underflow", len(stack))
                    result = symbol.apply(stack)
                    failed |= ~np.isfinite(result)
                    stack.append(result)
                elif isinstance(symbol, Constant):
                    stack.append(symbol.value)
                elif isinstance(symbol, Variable):
                    column = columns[symbol.index]
                    stack.append(column if symbol.coefficient == 1.0 else column * symbol.coefficient)
                else:
                    raise TypeError(f"unknown symbol type: {type(symbol).__name__}")

        if len(stack) != 1:
            raise self._structure_error(program, "residual stack size is not one", len(stack))

        values = np.broadcast_to(np.asarray(stack.pop(), dtype=np.float64), (row_count,))
        return np.array(values), failed

    def evaluate_set(self, program: Program) -> float:
        """
        Evaluate ``program`` on every row and store the results on it.

        Fills ``program.predicted`` and ``program.true`` and sets
        ``program.fitness`` to the Pearson r of the two, or NaN when any row
        fails.

        Returns:
            The new fitness
        """
        self.evaluation_count += 1
        row_count = self.dataset.row_count
        values, failed = self._run_columns(program, self._columns, row_count)

        program.true = self._target.copy()
        if failed.any():
            logger.debug("Numeric failure on %d of %d rows in %s", int(failed.sum()), row_count, program)
            values[failed] = np.nan
            program.predicted = values
            program.fitness = float('nan')
        else:
            program.predicted = values
            program.fitness = pearson_r(program.true, values)

        return program.fitness

    def predict(self, program: Program, dataset: Optional[Dataset] = None) -> np.ndarray:
        """
        Program output for every row of ``dataset`` (the training data by default).

        Failed rows are NaN. Column indices must follow the training layout.
        """
        if dataset is None or dataset is self.dataset:
            columns, row_count = self._columns, self.dataset.row_count
        else:
            columns = {index: dataset.column(index) for index in dataset.variable_indices.values()}
            row_count = dataset.row_count

        values, failed = self._run_columns(program, columns, row_count)
        values[failed] = np.nan
        return values
