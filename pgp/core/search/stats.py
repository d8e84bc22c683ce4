# pgp/core/search/stats.py
"""
Statistics tracking for evolution runs.

This module records one `GenerationStats` entry per generation and
aggregates them into a `SearchStats` summary for the whole fit.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

import numpy as np

from pgp.core.expressions.expression import Program


@dataclass
class GenerationStats:
    """Statistics for a single generation."""

    generation: int
    timestamp: float

    # Search progress
    evaluations: int
    selection_pressure: float
    best_fitness: float

    # Population fitness statistics over defined fitnesses
    mean_fitness: float
    median_fitness: float
    std_fitness: float
    undefined_count: int

    # Program size
    mean_length: float

    generation_time: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchStats:
    """Statistics for an entire fit."""

    start_time: float
    end_time: Optional[float] = None
    total_generations: int = 0

    # Best solution tracking
    best_program: Optional[str] = None
    best_fitness: float = float('nan')
    best_generation: int = -1

    # Performance tracking
    initialization_evaluations: int = 0
    total_evaluations: int = 0
    average_generation_time: float = 0.0
    terminated_by_selection_pressure: bool = False

    generation_history: List[GenerationStats] = field(default_factory=list)

    def get_duration(self) -> float:
        """Get total search duration in seconds."""
        if self.end_time is None:
            return time.time() - self.start_time
        return self.end_time - self.start_time


class StatsTracker:
    """
    Collects per-generation statistics during a fit.
    """

    def __init__(self):
        self.search_stats = SearchStats(start_time=time.time())
        self._generation_start_time = self.search_stats.start_time
        self.logger = logging.getLogger(__name__)

    def reset(self):
        self.search_stats = SearchStats(start_time=time.time())
        self._generation_start_time = self.search_stats.start_time

    def record_initialization(self, evaluations: int, best: Optional[Program]):
        self.search_stats.initialization_evaluations = evaluations
        self.search_stats.total_evaluations = evaluations
        if best is not None:
            self.search_stats.best_program = str(best)
            self.search_stats.best_fitness = best.fitness
            self.search_stats.best_generation = -1

    def start_generation(self, generation: int) -> float:
        """Mark the start of a generation and return timestamp."""
        self._generation_start_time = time.time()
        return self._generation_start_time

    def record_generation(
        self,
        generation: int,
        population: List[Program],
        evaluations: int,
        selection_pressure: float,
        best: Program,
        additional_metadata: Optional[Dict[str, Any]] = None
    ) -> GenerationStats:
        """
        Record statistics for a completed generation.

        Args:
            generation: Generation index
            population: Population after the buffer swap
            evaluations: Cumulative evaluation count
            selection_pressure: Attempts per population slot in this generation
            best: Best program found so far
            additional_metadata: Additional metadata to store

        Returns:
            GenerationStats object for this generation
        """
        timestamp = time.time()
        fitnesses = np.array([p.fitness for p in population], dtype=float)
        defined = fitnesses[np.isfinite(fitnesses)]

        if defined.size:
            mean, median, std = float(defined.mean()), float(np.median(defined)), float(defined.std())
        else:
            mean = median = std = float('nan')

        gen_stats = GenerationStats(
            generation=generation,
            timestamp=timestamp,
            evaluations=evaluations,
            selection_pressure=selection_pressure,
            best_fitness=best.fitness,
            mean_fitness=mean,
            median_fitness=median,
            std_fitness=std,
            undefined_count=int(fitnesses.size - defined.size),
            mean_length=float(np.mean([len(p) for p in population])),
            generation_time=timestamp - self._generation_start_time,
            metadata=additional_metadata or {}
        )

        stats = self.search_stats
        if np.isnan(stats.best_fitness) or best.fitness > stats.best_fitness:
            stats.best_fitness = best.fitness
            stats.best_program = str(best)
            stats.best_generation = generation
        stats.total_evaluations = evaluations
        stats.generation_history.append(gen_stats)

        return gen_stats

    def finish_search(self, terminated_by_selection_pressure: bool = False) -> SearchStats:
        """Mark the end of search and finalize statistics."""
        stats = self.search_stats
        stats.end_time = time.time()
        stats.total_generations = len(stats.generation_history)
        stats.terminated_by_selection_pressure = terminated_by_selection_pressure

        if stats.generation_history:
            total_gen_time = sum(g.generation_time for g in stats.generation_history)
            stats.average_generation_time = total_gen_time / stats.total_generations

        self.logger.debug(
            f"Search finished after {stats.total_generations} generations, "
            f"{stats.total_evaluations} evaluations, best fitness {stats.best_fitness:.6f}"
        )
        return stats

    def get_performance_summary(self) -> Dict[str, Any]:
        """Runtime, evaluation count and time per evaluation."""
        stats = self.search_stats
        duration = stats.get_duration()
        evaluations = stats.total_evaluations

        return {
            "total_duration": duration,
            "total_generations": stats.total_generations,
            "total_evaluations": evaluations,
            "time_per_evaluation": duration / evaluations if evaluations else float('nan'),
            "evaluations_per_second": evaluations / duration if duration > 0 else float('nan'),
            "average_generation_time": stats.average_generation_time,
            "best_fitness": stats.best_fitness,
            "best_generation": stats.best_generation,
            "terminated_by_selection_pressure": stats.terminated_by_selection_pressure,
        }
