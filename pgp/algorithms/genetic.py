# pgp/algorithms/genetic.py
"""
Postfix Genetic Programming for Symbolic Regression

This module provides the generational evolution driver. It composes the
program generator, stack evaluator, genetic operators and constant optimizer
into a search that maximises the Pearson correlation between program output
and the target column.

Key properties:
- Double-buffered populations: each generation writes a fresh buffer that is
  swapped with the previous one once every slot is filled
- Elitism: slots ``[0, elites)`` carry the best programs into the next
  generation
- Soft termination: a generation whose attempts per population slot exceed
  ``max_selection_pressure`` ends the run
- Fork-join parallelism over disjoint slot ranges, with one lock guarding the
  global best and one guarding the evaluation counter
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
from tqdm import tqdm

from pgp.core.expressions.evaluator import StackEvaluator
from pgp.core.expressions.expression import Program, Variable
from pgp.core.grammar.operators import OperatorCatalog, create_operator_catalog
from pgp.core.search.config import CONFIG_PRESETS, EngineConfig
from pgp.core.search.operators import PointMutation, ProgramGenerator, SubtreeCrossover
from pgp.core.search.optimization import ConstantOptimizer
from pgp.core.search.selection import create_selection_strategy
from pgp.core.search.stats import SearchStats, StatsTracker
from pgp.data.dataset import Dataset
from pgp.utils.exceptions import (
    DataValidationError,
    OptimizationError,
    PgpError,
    UnsupportedOperationError,
)
from pgp.utils.random import create_rng, spawn_worker_rngs


class _WorkerContext:
    """Per-partition resources: a generator and an evaluator with its own scratch stack."""

    def __init__(self, rng: np.random.Generator, evaluator: StackEvaluator):
        self.rng = rng
        self.evaluator = evaluator


class PgpAlgorithm:
    """
    Generational genetic programming over postfix programs.

    The driver moves through three states: initialization fills every slot
    with a random program of defined fitness; the generational loop breeds
    offspring into a write buffer and swaps it in; the run terminates when
    the generation budget is spent or a generation needs too many attempts.
    """

    def __init__(self, config: EngineConfig, catalog: Optional[OperatorCatalog] = None):
        """
        Initialize the driver.

        Args:
            config: Validated engine configuration
            catalog: Operator catalog; built from ``config.operators`` when omitted
        """
        self.config = config
        self.catalog = catalog or create_operator_catalog(config.operators)

        self.input_variables = [
            Variable(name, config.variable_indices[name]) for name in config.input_variables
        ]
        self.generator = ProgramGenerator(
            self.catalog,
            self.input_variables,
            config.variable_bounds,
            config.tree_length
        )
        self.crossover_operator = SubtreeCrossover()
        self.mutation_operator = PointMutation(self.generator)
        self.constant_optimizer = ConstantOptimizer()
        self.selection_strategy = create_selection_strategy(
            config.selection_strategy,
            tournament_size=config.tournament_size
        )
        self.stats_tracker = StatsTracker()

        self.rng = create_rng(config.random_state)
        self.n_workers = config.n_workers or os.cpu_count() or 1

        # Results tracking
        self.population: List[Program] = []
        self.best_program: Optional[Program] = None
        self.evaluation_count = 0
        self.dataset: Optional[Dataset] = None
        self._evaluator: Optional[StackEvaluator] = None

        self._write_buffer: List[Program] = []
        self._generation_attempts = 0
        self._best_lock = threading.Lock()
        self._count_lock = threading.Lock()

        self.logger = logging.getLogger(__name__)

    @property
    def best_fitness(self) -> float:
        return self.best_program.fitness if self.best_program is not None else float('nan')

    def fit(self, dataset: Dataset, initialize: bool = True) -> Program:
        """
        Evolve programs that predict the target column of ``dataset``.

        Args:
            dataset: Training data; column indices must match the configuration
            initialize: Start from a fresh random population. When False the
                        population of a previous fit is re-scored on
                        ``dataset`` and evolution continues from it.

        Returns:
            Program: Best program found, with its result buffers

        Raises:
            DataValidationError: If the dataset does not match the configuration
            ProgramStructureError: If a genetic operator produced a corrupt program
            OptimizationError: If no program with defined fitness can be found
        """
        try:
            self._validate_training_data(dataset)
            self.dataset = dataset
            self._evaluator = StackEvaluator(dataset)
            self.stats_tracker.reset()
            self.evaluation_count = 0

            if initialize or not self.population:
                self._initialize()
            else:
                self._rescore_population()

            self.stats_tracker.record_initialization(self.evaluation_count, self.best_program)

            if self.config.use_parallelization and self.n_workers > 1:
                terminated = self._run_parallel()
            else:
                terminated = self._run_sequential()

            search_stats = self.stats_tracker.finish_search(terminated)

            if self.config.verbose:
                self._log_final_results(search_stats)

            return self.best_program

        except Exception as e:
            if isinstance(e, PgpError):
                raise
            raise OptimizationError(f"Genetic programming run failed: {e}", cause=e) from e

    def predict(self, data: Union[Dataset, np.ndarray]) -> np.ndarray:
        """
        Evaluate the best program on new data.

        Args:
            data: A Dataset with the training column layout, or an array of
                  shape (n_samples, n_inputs) with columns in
                  ``config.input_variables`` order

        Returns:
            np.ndarray: Predicted values; NaN where evaluation failed
        """
        if self.best_program is None or self._evaluator is None:
            raise OptimizationError("No program available. Call fit() first.")

        if not isinstance(data, Dataset):
            data = self._dataset_from_inputs(np.asarray(data, dtype=float))
        else:
            self._validate_dataset(data)

        return self._evaluator.predict(self.best_program, data)

    def get_search_stats(self) -> SearchStats:
        return self.stats_tracker.search_stats

    def get_performance_summary(self) -> Dict[str, Any]:
        """Runtime, evaluations and time per evaluation of the last fit."""
        return self.stats_tracker.get_performance_summary()

    def get_results(self) -> Dict[str, Any]:
        """Serializable summary of the best program and the run."""
        if self.best_program is None:
            raise OptimizationError("No program available. Call fit() first.")

        best = self.best_program
        return {
            "program": str(best),
            "infix": best.to_infix(),
            "expression": str(best.to_sympy()),
            "length": len(best),
            "fitness": best.fitness,
            "metrics": best.metrics(),
            "evaluations": self.evaluation_count,
            "performance": self.get_performance_summary(),
            "config": {
                "input_variables": self.config.input_variables,
                "target_variable": self.config.target_variable,
                "generations": self.config.generations,
                "population_size": self.config.population_size,
                "tree_length": self.config.tree_length,
                "operators": self.catalog.names,
                "selection_strategy": self.config.selection_strategy,
                "random_state": self.config.random_state,
            },
        }

    # Private methods

    def _validate_dataset(self, dataset: Dataset):
        """Check that the column layout matches the configured variable indices."""
        for name in self.config.input_variables + [self.config.target_variable]:
            expected = self.config.variable_indices[name]
            actual = dataset.variable_indices.get(name)
            if actual != expected:
                raise DataValidationError(
                    f"column '{name}' has index {actual}, configuration expects {expected}",
                    data_source=dataset.name
                )
        if dataset.target != self.config.target_variable:
            raise DataValidationError(
                f"dataset target '{dataset.target}' differs from '{self.config.target_variable}'",
                data_source=dataset.name
            )

    def _validate_training_data(self, dataset: Dataset):
        self._validate_dataset(dataset)
        if dataset.row_count < 2 or np.ptp(dataset.target_values) == 0:
            raise DataValidationError(
                "target column needs at least two distinct values for correlation fitness",
                data_source=dataset.name
            )

    def _dataset_from_inputs(self, X: np.ndarray) -> Dataset:
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if X.ndim != 2 or X.shape[1] != len(self.config.input_variables):
            raise DataValidationError(
                f"X must have shape (n_samples, {len(self.config.input_variables)}), got {X.shape}"
            )

        indices = self.config.variable_indices
        matrix = np.zeros((len(indices), X.shape[0]))
        for column, name in enumerate(self.config.input_variables):
            matrix[indices[name]] = X[:, column]
        return Dataset(matrix.ravel(), X.shape[0], indices, self.config.target_variable)

    def _attempt_limit(self) -> int:
        """Smallest attempt count whose selection pressure exceeds the ceiling."""
        return int(np.floor(self.config.max_selection_pressure * self.config.population_size)) + 1

    def _breed_valid(self, evaluator: StackEvaluator, rng: np.random.Generator) -> Program:
        """Breed until a program has defined fitness."""
        limit = self._attempt_limit()
        for _ in range(limit):
            program = self.generator.breed(rng, row_capacity=evaluator.dataset.row_count)
            if not np.isnan(evaluator.evaluate_set(program)):
                return program

        raise OptimizationError(
            f"No program with defined fitness after {limit} attempts",
            context={"target": self.config.target_variable},
            suggestion="Check that the target column is not constant and the operator set is suitable"
        )

    def _consider_best(self, program: Program):
        """Replace the global best with a deep copy of ``program`` if it scores higher."""
        best = self.best_program
        if best is not None and not program.fitness > best.fitness:
            return
        with self._best_lock:
            best = self.best_program
            if best is None or program.fitness > best.fitness:
                self.best_program = program.clone_with_results()

    def _initialize(self):
        """Fill every slot with a random program of defined fitness."""
        if self.config.verbose:
            self.logger.info(f"Initializing population of {self.config.population_size} programs...")

        evaluator = self._evaluator
        start = evaluator.evaluation_count
        self.best_program = None
        self.population = []

        for _ in range(self.config.population_size):
            program = self._breed_valid(evaluator, self.rng)
            self.population.append(program)
            self._consider_best(program)

        self.population[0] = self.best_program.clone()
        self.evaluation_count += evaluator.evaluation_count - start

    def _rescore_population(self):
        """Evaluate a carried-over population on the current dataset."""
        evaluator = self._evaluator
        start = evaluator.evaluation_count
        self.best_program = None

        for i, program in enumerate(self.population):
            if np.isnan(evaluator.evaluate_set(program)):
                program = self._breed_valid(evaluator, self.rng)
                self.population[i] = program
            self._consider_best(program)

        self.evaluation_count += evaluator.evaluation_count - start

    def _produce_offspring(
        self,
        slot: int,
        population: List[Program],
        fitnesses: np.ndarray,
        target: List[Program],
        context: _WorkerContext
    ) -> Program:
        """One attempt at filling ``slot``; the result may have undefined fitness."""
        rng, evaluator = context.rng, context.evaluator
        config = self.config
        evaluated = False

        i, j = self.selection_strategy.select(fitnesses, rng, num_parents=2)
        if rng.random() < config.crossover_rate:
            offspring = self.crossover_operator.crossover(population[i], population[j], rng)
            if offspring is None:
                child = target[slot]
            else:
                first, second = offspring
                evaluator.evaluate_set(first)
                evaluator.evaluate_set(second)
                child = second if np.isnan(first.fitness) or second.fitness > first.fitness else first
                evaluated = True
        else:
            child = population[i].clone()

        if rng.random() < config.mutation_rate:
            child = self.mutation_operator.mutate(child, rng)
            evaluated = False

        if not evaluated:
            evaluator.evaluate_set(child)

        if (config.use_constant_optimization and child.has_fitness
                and rng.random() < config.constant_optimization_rate):
            child, _ = self.constant_optimizer.optimize(child, evaluator, rng)

        return child

    def _run_partition(
        self,
        start: int,
        stop: int,
        population: List[Program],
        fitnesses: np.ndarray,
        target: List[Program],
        context: _WorkerContext
    ) -> int:
        """
        Fill slots ``[start, stop)`` of ``target``.

        Stops early once this partition alone spends more attempts than the
        selection-pressure ceiling allows; unfilled slots keep their previous,
        valid programs. Returns the number of attempts.
        """
        limit = self._attempt_limit()
        evaluations_before = context.evaluator.evaluation_count
        attempts = 0
        slot = start

        while slot < stop and attempts < limit:
            attempts += 1
            child = self._produce_offspring(slot, population, fitnesses, target, context)
            if child.has_fitness:
                target[slot] = child
                self._consider_best(child)
                slot += 1

        with self._count_lock:
            self.evaluation_count += context.evaluator.evaluation_count - evaluations_before
            self._generation_attempts += attempts
        return attempts

    def _place_elites(self, population: List[Program], target: List[Program]):
        """Slot 0 gets the global best; further elite slots the next fittest programs."""
        elites = self.config.elites
        if elites == 0:
            return

        target[0] = self.best_program.clone()
        if elites > 1:
            fitnesses = np.array([p.fitness for p in population])
            order = np.argsort(np.where(np.isnan(fitnesses), -np.inf, -fitnesses), kind="stable")
            for slot, idx in enumerate(order[:elites - 1], start=1):
                target[slot] = population[idx].clone()

    def _finish_generation(self, generation: int, evaluations_before: int, progress_bar) -> bool:
        """Swap buffers, log and return True when selection pressure ends the run."""
        self.population, self._write_buffer = self._write_buffer, self.population

        selection_pressure = self._generation_attempts / self.config.population_size
        generation_evaluations = self.evaluation_count - evaluations_before

        self.stats_tracker.record_generation(
            generation,
            self.population,
            self.evaluation_count,
            selection_pressure,
            self.best_program,
            additional_metadata={"generation_evaluations": generation_evaluations}
        )

        if self.config.log_generations:
            self.logger.info(
                f"Generation: {generation:04d}, Evaluations: {generation_evaluations:04d}, "
                f"Selection Pressure: {selection_pressure:.2f}, Score: {self.best_fitness:.12f}"
            )

        if progress_bar:
            progress_bar.set_description(f"Gen {generation}: Best={self.best_fitness:.6f}")
            progress_bar.update(1)

        if selection_pressure > self.config.max_selection_pressure:
            self.logger.info(
                f"Selection pressure {selection_pressure:.2f} exceeded the ceiling "
                f"{self.config.max_selection_pressure:.2f} at generation {generation}"
            )
            return True
        return False

    def _generations(self, run_generation):
        """Shared generational loop; ``run_generation`` fills the write buffer."""
        self._write_buffer = [p.clone() for p in self.population]

        progress_bar = None
        if self.config.verbose:
            progress_bar = tqdm(total=self.config.generations, desc="Genetic Programming Progress")

        terminated = False
        try:
            for generation in range(self.config.generations):
                self.stats_tracker.start_generation(generation)
                evaluations_before = self.evaluation_count
                self._generation_attempts = 0

                population = self.population
                fitnesses = np.array([p.fitness for p in population], dtype=float)
                self._place_elites(population, self._write_buffer)
                run_generation(population, fitnesses, self._write_buffer)

                if self._finish_generation(generation, evaluations_before, progress_bar):
                    terminated = True
                    break
        finally:
            if progress_bar:
                progress_bar.close()

        return terminated

    def _run_sequential(self) -> bool:
        context = _WorkerContext(self.rng, self._evaluator)

        def run_generation(population, fitnesses, target):
            self._run_partition(self.config.elites, self.config.population_size,
                                population, fitnesses, target, context)

        return self._generations(run_generation)

    def _run_parallel(self) -> bool:
        slots = np.arange(self.config.elites, self.config.population_size)
        partitions = [p for p in np.array_split(slots, self.n_workers) if p.size]
        seed = self.config.random_state
        contexts = [
            _WorkerContext(rng, StackEvaluator(self.dataset))
            for rng in spawn_worker_rngs(seed, len(partitions))
        ]

        self.logger.debug(f"Running {len(partitions)} partitions on {self.n_workers} workers")

        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:

            def run_generation(population, fitnesses, target):
                futures = [
                    executor.submit(
                        self._run_partition, int(part[0]), int(part[-1]) + 1,
                        population, fitnesses, target, context
                    )
                    for part, context in zip(partitions, contexts)
                ]
                for future in as_completed(futures):
                    future.result()

            return self._generations(run_generation)

    def _log_final_results(self, search_stats: SearchStats):
        """Log final results and statistics."""
        self.logger.info("=" * 60)
        self.logger.info("GENETIC PROGRAMMING COMPLETED")
        self.logger.info("=" * 60)
        self.logger.info(f"Duration: {search_stats.get_duration():.2f}s")
        self.logger.info(f"Generations: {search_stats.total_generations}")
        self.logger.info(f"Total evaluations: {self.evaluation_count}")
        self.logger.info(f"Best fitness: {self.best_fitness:.12f}")

        if self.best_program is not None:
            self.logger.info(f"Best program: {self.best_program}")
            self.logger.info(f"Best expression: {self.best_program.to_infix()}")
            self.logger.info(f"Program length: {len(self.best_program)}")

        if search_stats.terminated_by_selection_pressure:
            self.logger.info("Terminated by selection pressure")

        self.logger.info("=" * 60)


# Factory functions and utilities

def create_engine_from_config(
    dataset: Dataset,
    config_name: str = "default",
    inputs: Optional[List[str]] = None,
    **config_overrides
) -> PgpAlgorithm:
    """
    Create a PgpAlgorithm from a named configuration preset.

    Args:
        dataset: Training data the variable description is derived from
        config_name: Name of configuration ("default", "fast", "thorough")
        inputs: Input variable names; every non-target column by default
        **config_overrides: Override specific config parameters

    Returns:
        Configured PgpAlgorithm
    """
    if config_name not in CONFIG_PRESETS:
        raise UnsupportedOperationError(
            f"Configuration '{config_name}'",
            context_info="create_engine_from_config",
            alternative=f"Available configs: {list(CONFIG_PRESETS.keys())}"
        )

    config = CONFIG_PRESETS[config_name](dataset, inputs=inputs, **config_overrides)
    return PgpAlgorithm(config)


def run_symbolic_regression(
    X: np.ndarray,
    y: np.ndarray,
    variable_names: Optional[List[str]] = None,
    target_name: str = "y",
    **config_kwargs
) -> Tuple[Program, SearchStats]:
    """
    Convenience function to run symbolic regression on arrays.

    Args:
        X: Input features of shape (n_samples, n_features)
        y: Target values
        variable_names: Input names; defaults to x1, x2, ...
        target_name: Name given to the target column
        **config_kwargs: EngineConfig fields

    Returns:
        Tuple of (best_program, search_statistics)
    """
    dataset = Dataset.from_arrays(X, y, variable_names, target_name=target_name)
    config = EngineConfig.from_dataset(dataset, **config_kwargs)

    start = time.time()
    engine = PgpAlgorithm(config)
    best = engine.fit(dataset)
    engine.logger.debug(f"run_symbolic_regression finished in {time.time() - start:.2f}s")

    return best, engine.get_search_stats()
