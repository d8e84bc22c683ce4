# pgp/core/search/config.py
"""
Configuration for the evolution engine.

`EngineConfig` bundles the variable description and every search
hyperparameter into one object that is validated once, at construction, so an
invalid setup is rejected before any evolution work starts.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple
import math

from pgp.core.grammar.operators import ALL_OPERATORS
from pgp.core.search.selection import list_selection_strategies
from pgp.data.dataset import Dataset
from pgp.utils.exceptions import InvalidConfigError, MissingConfigError


@dataclass
class EngineConfig:
    """
    Configuration for a postfix genetic programming run.

    The variable description (inputs, target, column indices and observed
    bounds) must match the dataset handed to ``fit``; ``from_dataset`` derives
    it directly from a dataset.
    """

    # Variable description
    input_variables: List[str] = field(default_factory=list)
    target_variable: str = ""
    variable_indices: Dict[str, int] = field(default_factory=dict)
    variable_bounds: Dict[str, Tuple[float, float]] = field(default_factory=dict)

    # Population parameters
    generations: int = 1000
    population_size: int = 1000
    tree_length: int = 50
    elites: int = 1

    # Genetic operator rates
    crossover_rate: float = 1.0
    mutation_rate: float = 0.25

    # Termination
    max_selection_pressure: float = 200.0

    # Selection parameters
    selection_strategy: str = "proportional"  # "proportional", "uniform", "tournament"
    tournament_size: int = 3

    # Constant refinement
    use_constant_optimization: bool = False
    constant_optimization_rate: float = 0.1

    # Operators by catalog name; None selects the default catalog
    operators: Optional[List[str]] = None

    # Execution
    use_parallelization: bool = False
    n_workers: Optional[int] = None  # None for all available cores

    # Logging and output
    log_generations: bool = False
    verbose: bool = False
    random_state: Optional[int] = None

    def __post_init__(self):
        """Validate configuration parameters."""
        if not self.input_variables:
            raise MissingConfigError("input_variables")

        if not self.target_variable:
            raise MissingConfigError("target_variable")

        if self.target_variable not in self.variable_indices:
            raise InvalidConfigError(
                f"target variable '{self.target_variable}' is not in the variable index map",
                config_field="target_variable",
                invalid_value=self.target_variable
            )

        missing = [v for v in self.input_variables if v not in self.variable_indices]
        if missing:
            raise InvalidConfigError(
                f"input variables missing from the variable index map: {missing}",
                config_field="input_variables",
                invalid_value=missing
            )

        for name, bounds in self.variable_bounds.items():
            low, high = bounds
            if not (math.isfinite(low) and math.isfinite(high)) or low > high:
                raise InvalidConfigError(
                    f"bounds for '{name}' must be finite with min <= max",
                    config_field="variable_bounds",
                    invalid_value=bounds
                )

        if self.generations < 0:
            raise InvalidConfigError("generations must be non-negative", "generations", self.generations)

        if self.population_size <= 0:
            raise InvalidConfigError("population_size must be positive", "population_size", self.population_size)

        if self.tree_length <= 0:
            raise InvalidConfigError("tree_length must be positive", "tree_length", self.tree_length)

        if self.elites < 0:
            raise InvalidConfigError("elites must be non-negative", "elites", self.elites)

        if self.elites >= self.population_size:
            raise InvalidConfigError("elites must be less than population_size", "elites", self.elites)

        if not 0 <= self.crossover_rate <= 1:
            raise InvalidConfigError("crossover_rate must be between 0 and 1", "crossover_rate", self.crossover_rate)

        if not 0 <= self.mutation_rate <= 1:
            raise InvalidConfigError("mutation_rate must be between 0 and 1", "mutation_rate", self.mutation_rate)

        if not 0 <= self.constant_optimization_rate <= 1:
            raise InvalidConfigError(
                "constant_optimization_rate must be between 0 and 1",
                "constant_optimization_rate",
                self.constant_optimization_rate
            )

        if self.max_selection_pressure <= 0:
            raise InvalidConfigError(
                "max_selection_pressure must be positive",
                "max_selection_pressure",
                self.max_selection_pressure
            )

        if self.tournament_size <= 0:
            raise InvalidConfigError("tournament_size must be positive", "tournament_size", self.tournament_size)

        valid_strategies = list_selection_strategies()
        if self.selection_strategy not in valid_strategies:
            raise InvalidConfigError(
                f"selection_strategy must be one of {valid_strategies}",
                "selection_strategy",
                self.selection_strategy
            )

        if self.operators is not None:
            unknown = [op for op in self.operators if op not in ALL_OPERATORS]
            if unknown or not self.operators:
                raise InvalidConfigError(
                    f"operators must be a non-empty subset of {list(ALL_OPERATORS.keys())}",
                    "operators",
                    unknown or self.operators
                )

        if self.n_workers is not None and self.n_workers <= 0:
            raise InvalidConfigError("n_workers must be positive", "n_workers", self.n_workers)

    @classmethod
    def from_dataset(
        cls,
        dataset: Dataset,
        inputs: Optional[List[str]] = None,
        **kwargs
    ) -> 'EngineConfig':
        """Derive the variable description from ``dataset``; other fields from kwargs."""
        return cls(
            input_variables=list(inputs) if inputs is not None else dataset.input_names,
            target_variable=dataset.target,
            variable_indices=dict(dataset.variable_indices),
            variable_bounds=dataset.variable_bounds(),
            **kwargs
        )

    def with_overrides(self, **overrides) -> 'EngineConfig':
        """Copy with some fields replaced; the copy is validated again."""
        return replace(self, **overrides)


def create_default_config(dataset: Dataset, **overrides) -> EngineConfig:
    """Create a default configuration suitable for most tasks."""
    return EngineConfig.from_dataset(dataset, **overrides)


def create_fast_config(dataset: Dataset, **overrides) -> EngineConfig:
    """Create a configuration optimized for speed over accuracy."""
    settings = dict(
        population_size=100,
        generations=100,
        tree_length=20,
        max_selection_pressure=100.0,
    )
    settings.update(overrides)
    return EngineConfig.from_dataset(dataset, **settings)


def create_thorough_config(dataset: Dataset, **overrides) -> EngineConfig:
    """Create a configuration optimized for solution quality."""
    settings = dict(
        population_size=2000,
        generations=2000,
        tree_length=100,
        elites=2,
        use_constant_optimization=True,
        use_parallelization=True,
    )
    settings.update(overrides)
    return EngineConfig.from_dataset(dataset, **settings)


CONFIG_PRESETS = {
    "default": create_default_config,
    "fast": create_fast_config,
    "thorough": create_thorough_config,
}
