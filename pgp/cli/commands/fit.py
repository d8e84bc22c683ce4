# pgp/cli/commands/fit.py
"""Fit command implementation."""

import click
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from pgp.algorithms.genetic import PgpAlgorithm
from pgp.config.loader import ConfigLoader
from pgp.config.models import RunConfig
from pgp.data.dataset import Dataset
from pgp.utils.exceptions import InvalidConfigError, PgpError
from pgp.utils.io import DataIO, save_results
from pgp.utils.math import pearson_r
from pgp.utils.random import create_rng

logger = logging.getLogger(__name__)


def _apply_cli_overrides(run_config: RunConfig, overrides: Dict[str, Dict[str, Any]]) -> RunConfig:
    """Merge options given on the command line over the resolved configuration."""
    data = run_config.model_dump()
    for section, values in overrides.items():
        data[section].update({k: v for k, v in values.items() if v is not None})
    try:
        return RunConfig.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigError(f"invalid command line option: {e}", config_field="cli") from e


def _split_rows(dataset: Dataset, run_config: RunConfig):
    """Training rows and, when ``train_rows`` leaves some over, the held-out rows."""
    if run_config.data.shuffle:
        dataset = dataset.shuffle(create_rng(run_config.search.random_state))

    train_rows = run_config.data.train_rows
    if train_rows is None or train_rows >= dataset.row_count:
        return dataset, None

    training = dataset.subset(0, train_rows)
    held_out = dataset.subset(train_rows, dataset.row_count - train_rows)
    return training, held_out


@click.command()
@click.argument('data', type=click.Path(exists=True, dir_okay=False))
@click.option('--target', '-t', help='Target column name')
@click.option('--inputs', '-i', help='Comma separated input column names (default: all other numeric columns)')
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False),
              help='YAML run configuration')
@click.option('--generations', type=int, help='Number of generations')
@click.option('--population-size', type=int, help='Population size')
@click.option('--tree-length', type=int, help='Target length of bred programs')
@click.option('--parallel/--no-parallel', default=None, help='Breed offspring on worker threads')
@click.option('--optimize-constants/--no-optimize-constants', default=None,
              help='Refine constants of offspring by local search')
@click.option('--seed', type=int, help='Random seed')
@click.option('--train-rows', type=int, help='Use only the first N rows for training')
@click.option('--shuffle/--no-shuffle', default=None, help='Shuffle rows before splitting')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write results to this JSON file')
def fit(data, target, inputs, config, generations, population_size, tree_length,
        parallel, optimize_constants, seed, train_rows, shuffle, output):
    """
    Evolve a formula that predicts TARGET from the other columns of DATA.

    Examples:

        pgp fit data/poly.csv --target y

        pgp fit data/poly.csv --target y --inputs x1,x2 --seed 7 --parallel
    """
    try:
        run_config = ConfigLoader(config).load_resolved_config()
        run_config = _apply_cli_overrides(run_config, {
            'data': {
                'path': data,
                'target': target,
                'inputs': [c.strip() for c in inputs.split(',') if c.strip()] if inputs else None,
                'train_rows': train_rows,
                'shuffle': shuffle,
            },
            'search': {
                'generations': generations,
                'population_size': population_size,
                'tree_length': tree_length,
                'use_parallelization': parallel,
                'use_constant_optimization': optimize_constants,
                'random_state': seed,
            },
            'output': {
                'results_path': output,
            },
        })

        if not run_config.data.target:
            raise click.UsageError("a target column is required (--target or data.target in the config)")

        dataset = DataIO(sep=run_config.data.sep).load_dataset(
            run_config.data.path, run_config.data.target, inputs=run_config.data.inputs
        )
        training, held_out = _split_rows(dataset, run_config)

        engine = PgpAlgorithm(run_config.to_engine_config(training))
        logger.info(f"Starting fit: target={training.target}, inputs={engine.config.input_variables}")
        best = engine.fit(training)

        results = engine.get_results()
        held_out_fitness: Optional[float] = None
        if held_out is not None:
            held_out_fitness = pearson_r(held_out.target_values, engine.predict(held_out))
            results['held_out_fitness'] = held_out_fitness

    except PgpError as e:
        raise click.ClickException(str(e)) from e

    performance = results['performance']

    click.echo("\n" + "=" * 60)
    click.echo("SYMBOLIC REGRESSION RESULTS")
    click.echo("=" * 60)
    click.echo(f"Formula: {best.to_infix()}")
    click.echo(f"Postfix: {best}")
    click.echo(f"Fitness: {best.fitness:.12f}")
    if held_out_fitness is not None:
        click.echo(f"Held-out fitness: {held_out_fitness:.12f}")
    click.echo(f"Runtime: {performance['total_duration']:.3f}s")
    click.echo(f"Evaluations: {results['evaluations']}")
    click.echo(f"Time per evaluation: {performance['time_per_evaluation'] * 1e3:.6f}ms")

    if run_config.output.results_path:
        save_results(results, run_config.output.results_path)
        click.echo(f"Results saved to {run_config.output.results_path}")
