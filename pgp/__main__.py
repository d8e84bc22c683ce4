# pgp/__main__.py
"""
Entry point for ``python -m pgp``.
"""

from pgp.cli.main import cli

if __name__ == "__main__":
    cli()
