# pgp/core/search/__init__.py
"""
PGP Core Search Module

Components of the postfix genetic programming search:
- EngineConfig: Configuration management and presets
- SelectionStrategy: Parent selection strategies
- ProgramGenerator, SubtreeCrossover, PointMutation: Breeding and variation
- ConstantOptimizer: Local refinement of program constants
- StatsTracker: Per-generation statistics

The evolution driver itself lives in ``pgp.algorithms.genetic``.
"""

from pgp.core.search.config import (
    CONFIG_PRESETS,
    EngineConfig,
    create_default_config,
    create_fast_config,
    create_thorough_config,
)

from pgp.core.search.stats import (
    GenerationStats,
    SearchStats,
    StatsTracker,
)

from pgp.core.search.selection import (
    FitnessProportionalSelection,
    SelectionStrategy,
    TournamentSelection,
    UniformSelection,
    create_selection_strategy,
    list_selection_strategies,
)

from pgp.core.search.operators import (
    CrossoverOperator,
    MutationOperator,
    PointMutation,
    ProgramGenerator,
    SubtreeCrossover,
    find_operator_at_or_after,
    find_subtree_start,
)

from pgp.core.search.optimization import ConstantOptimizer

__all__ = [
    # Configuration
    "CONFIG_PRESETS",
    "EngineConfig",
    "create_default_config",
    "create_fast_config",
    "create_thorough_config",

    # Statistics
    "GenerationStats",
    "SearchStats",
    "StatsTracker",

    # Selection strategies
    "FitnessProportionalSelection",
    "SelectionStrategy",
    "TournamentSelection",
    "UniformSelection",
    "create_selection_strategy",
    "list_selection_strategies",

    # Genetic operators
    "CrossoverOperator",
    "MutationOperator",
    "PointMutation",
    "ProgramGenerator",
    "SubtreeCrossover",
    "find_operator_at_or_after",
    "find_subtree_start",

    # Constant refinement
    "ConstantOptimizer",
]
