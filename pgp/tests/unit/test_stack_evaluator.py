"""
Unit tests for the stack evaluator.
"""

import logging

import numpy as np
import pytest

from pgp.core.expressions.evaluator import StackEvaluator
from pgp.core.expressions.expression import Constant, Program, Variable
from pgp.core.grammar.operators import ADD, DIVIDE, LOGARITHM, MULTIPLY, SINE, SUBTRACT
from pgp.data.dataset import Dataset
from pgp.utils.exceptions import ProgramStructureError

A = Variable("a", 0)
B = Variable("b", 1)


@pytest.fixture
def evaluator(small_dataset):
    return StackEvaluator(small_dataset)


class TestRowEvaluation:
    """Test single-row evaluation."""

    def test_pop_order(self, evaluator):
        """With a=2 and b=3, [a, b, subtract] is a - b."""
        assert evaluator.evaluate(Program([A, B, SUBTRACT]), 0) == -1.0
        assert evaluator.evaluate(Program([A, B, ADD]), 0) == 5.0
        assert evaluator.evaluate(Program([B, A, SUBTRACT]), 0) == 1.0

    def test_constants_and_coefficients(self, evaluator):
        program = Program([Variable("a", 0, coefficient=3.0), Constant("c0", 0.5), MULTIPLY])
        assert evaluator.evaluate(program, 1) == pytest.approx(6.0)

    def test_numeric_failure_returns_none(self, evaluator):
        assert evaluator.evaluate(Program([A, Constant("c0", 0.0), DIVIDE]), 0) is None
        assert evaluator.evaluate(Program([Constant("c0", -1.0), LOGARITHM]), 0) is None

    def test_numeric_failure_is_logged_at_debug(self, evaluator, caplog):
        with caplog.at_level(logging.DEBUG, logger="pgp.core.expressions.evaluator"):
            evaluator.evaluate(Program([A, Constant("c0", 0.0), DIVIDE]), 0)
            evaluator.evaluate_set(Program([A, Constant("c0", 0.0), DIVIDE]))

        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG]
        assert any("at row 0" in m for m in messages)
        assert any("on 3 of 3 rows" in m for m in messages)

    def test_underflow_raises(self, evaluator):
        with pytest.raises(ProgramStructureError, match="underflow"):
            evaluator.evaluate(Program([A, ADD]), 0)

    def test_residual_raises(self, evaluator):
        with pytest.raises(ProgramStructureError) as exc_info:
            evaluator.evaluate(Program([A, B]), 0)
        assert exc_info.value.context["residual"] == 2

    def test_row_evaluation_does_not_count(self, evaluator):
        evaluator.evaluate(Program([A]), 0)
        assert evaluator.evaluation_count == 0


class TestSetEvaluation:
    """Test whole-dataset evaluation and fitness."""

    def test_perfect_correlation(self, evaluator):
        """y = a / 2, so the program [a] correlates perfectly."""
        program = Program([A], row_capacity=3)
        fitness = evaluator.evaluate_set(program)
        assert fitness == pytest.approx(1.0)
        assert list(program.true) == [1.0, 2.0, 3.0]
        assert list(program.predicted) == [2.0, 4.0, 6.0]

    def test_negative_correlation(self, evaluator):
        program = Program([Constant("c0", 0.0), A, SUBTRACT])
        assert evaluator.evaluate_set(program) == pytest.approx(-1.0)

    def test_matches_row_evaluation(self, evaluator, small_dataset):
        program = Program([A, B, MULTIPLY, B, SUBTRACT])
        evaluator.evaluate_set(program)
        for row in range(small_dataset.row_count):
            assert program.predicted[row] == pytest.approx(evaluator.evaluate(program, row))

    def test_failed_row_makes_fitness_undefined(self):
        dataset = Dataset.from_columns({"a": [0.0, 1.0, 2.0], "y": [1.0, 2.0, 3.0]}, target="y")
        evaluator = StackEvaluator(dataset)
        program = Program([Constant("c0", 1.0), A, DIVIDE])

        fitness = evaluator.evaluate_set(program)
        assert np.isnan(fitness)
        assert not program.has_fitness
        assert np.isnan(program.predicted[0])
        assert program.predicted[1] == pytest.approx(1.0)

    def test_constant_program_has_undefined_fitness(self, evaluator):
        """A constant output has zero variance, so Pearson r is undefined."""
        program = Program([Constant("c0", 4.0)])
        assert np.isnan(evaluator.evaluate_set(program))
        assert list(program.predicted) == [4.0, 4.0, 4.0]

    def test_constant_subexpression_has_undefined_fitness(self):
        """sin(1) broadcast over every row still has zero variance."""
        x1 = np.linspace(1.0, 10.0, 50)
        dataset = Dataset.from_columns({"x1": x1, "y": x1 * x1}, target="y")
        program = Program([Constant("c0", 1.0), SINE])

        assert np.isnan(StackEvaluator(dataset).evaluate_set(program))
        assert not program.has_fitness

    def test_counts_every_set_evaluation(self, evaluator):
        for _ in range(3):
            evaluator.evaluate_set(Program([A]))
        assert evaluator.evaluation_count == 3

    def test_structural_error_propagates(self, evaluator):
        with pytest.raises(ProgramStructureError):
            evaluator.evaluate_set(Program([A, B, ADD, ADD]))

    def test_evaluator_can_continue_after_structural_error(self, evaluator):
        with pytest.raises(ProgramStructureError):
            evaluator.evaluate_set(Program([A, B]))
        assert evaluator.evaluate_set(Program([A])) == pytest.approx(1.0)


class TestPredict:
    """Test prediction on training and new data."""

    def test_predict_training_data(self, evaluator):
        values = evaluator.predict(Program([A, B, ADD]))
        assert list(values) == [5.0, 5.0, 11.0]

    def test_predict_other_dataset(self, evaluator):
        other = Dataset.from_columns({"a": [1.0, 0.0], "b": [2.0, 0.0], "y": [0.0, 1.0]}, target="y")
        values = evaluator.predict(Program([A, B, DIVIDE]), other)
        assert values[0] == pytest.approx(0.5)
        assert np.isnan(values[1])

    def test_predict_does_not_count(self, evaluator):
        evaluator.predict(Program([A]))
        assert evaluator.evaluation_count == 0
