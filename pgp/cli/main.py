# pgp/cli/main.py
"""Main CLI interface for PGP."""

import click
import logging

from pgp import __version__
from pgp.cli.commands import fit
from pgp.utils.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="pgp")
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--quiet', is_flag=True, help='Minimize output')
@click.pass_context
def cli(ctx, debug, quiet):
    """
    PGP: postfix genetic programming for symbolic regression.

    Examples:

        # Fit the column 'y' of a semicolon separated file
        pgp fit data/poly.csv --target y --generations 200

        # Use a run configuration and hold out rows beyond the first 80
        pgp fit data/poly.csv --config run.yaml --train-rows 80 --output results.json
    """
    log_level = logging.WARNING if quiet else (logging.DEBUG if debug else logging.INFO)
    setup_logging(level=log_level)

    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug
    ctx.obj['quiet'] = quiet


cli.add_command(fit.fit)
