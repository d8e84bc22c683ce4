# pgp/core/search/optimization.py
"""
Local refinement of program constants.

The stack evaluator is not differentiable, so constants are tuned by
coordinate-wise search with a per-constant adaptive step: each proposal
multiplies a constant by its step factor, an improvement grows the factor by
1.5 and a rejection shrinks it by 1.5 ** -0.25.
"""

from typing import Tuple
import logging

import numpy as np

from pgp.core.expressions.evaluator import StackEvaluator
from pgp.core.expressions.expression import Program


class ConstantOptimizer:
    """
    Adaptive-step coordinate ascent over the literal values of a program.

    The returned program never scores below the input program: after all
    rounds the refined candidate is kept only if it beats the original.
    """

    def __init__(
        self,
        rounds: int = 10,
        initial_step: float = 0.1,
        step_increase: float = 1.5,
        step_decrease: float = 1.5 ** -0.25
    ):
        """
        Initialize the optimizer.

        Args:
            rounds: Passes over all constants
            initial_step: Starting multiplicative step factor per constant
            step_increase: Factor applied to a step after an accepted proposal
            step_decrease: Factor applied to a step after a rejected proposal
        """
        if rounds < 0:
            raise ValueError("rounds must be non-negative")
        self.rounds = rounds
        self.initial_step = initial_step
        self.step_increase = step_increase
        self.step_decrease = step_decrease
        self.logger = logging.getLogger(__name__)

    def optimize(
        self,
        program: Program,
        evaluator: StackEvaluator,
        rng: np.random.Generator
    ) -> Tuple[Program, float]:
        """
        Refine the constants of ``program``.

        Args:
            program: Program to refine; left unmodified
            evaluator: Evaluator bound to the training data
            rng: Generator for the visiting order

        Returns:
            (best program, its fitness)
        """
        constants = program.constant_positions()
        if not constants:
            return program, program.fitness

        original = program.clone()
        original_fitness = evaluator.evaluate_set(original)

        best = original
        best_fitness = original_fitness
        steps = np.full(len(constants), self.initial_step)

        for _ in range(self.rounds):
            for i in rng.permutation(len(constants)):
                position = constants[i][0]
                current = best[position].value

                candidate = best.clone()
                candidate.set_constant(position, current * steps[i])
                candidate_fitness = evaluator.evaluate_set(candidate)

                if candidate_fitness > best_fitness:
                    best, best_fitness = candidate, candidate_fitness
                    steps[i] *= self.step_increase
                else:
                    steps[i] *= self.step_decrease

        if best_fitness > original_fitness:
            self.logger.debug(
                f"Constant optimization improved fitness {original_fitness:.6f} -> {best_fitness:.6f}"
            )
            return best, best_fitness
        return original, original_fitness
