"""
CLI layer for cfgscript.

A thin Typer application over ``cfgscript.load``: argument parsing,
record output and test tables. No loading or harness logic lives here.

Entry point::

    cfgscript --help
"""

from cfgscript.cli.app import app

__all__ = ["app"]
