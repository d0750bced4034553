"""
Root Typer application for the cfgscript CLI.

    cfgscript run deploy.py --var env=prod --format yaml
    cfgscript test deploy.py
"""

from __future__ import annotations

import typer
from typer import Typer

from cfgscript.cli.utils import (
    import_registry,
    output_records,
    parse_vars,
    print_error,
    print_test_report,
)
from cfgscript.config import load, with_record_registry, with_test_helpers
from cfgscript.core.cancellation import CancellationToken
from cfgscript.core.errors import CfgScriptError
from cfgscript.core.logging import configure_logging
from cfgscript.core.settings import get_settings
from cfgscript.harness.execution import with_vars

app = Typer(
    name="cfgscript",
    help="cfgscript: run and test configuration scripts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from cfgscript import __version__

        typer.echo(f"cfgscript {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """cfgscript CLI: execute a config's main() or run its tests."""
    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_json,
    )


def _load_options(registry: str | None, *, tests: bool = False) -> list:
    options = []
    found = import_registry(registry)
    if found is not None:
        options.append(with_record_registry(found))
    if tests:
        options.append(with_test_helpers())
    return options


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def run(
    file: str = typer.Argument(..., help="Root config module"),
    var: list[str] | None = typer.Option(None, "--var", help="KEY=VALUE passed in ctx.vars"),
    fmt: str = typer.Option("json", "--format", "-f", help="Output format: json or yaml"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Deadline in seconds"),
    registry: str | None = typer.Option(None, "--registry", "-r", help="MODULE:ATTR of a RecordRegistry"),
) -> None:
    """Load a config, call its main(ctx) and print the records."""
    if fmt not in ("json", "yaml"):
        raise typer.BadParameter("must be json or yaml", param_hint="--format")
    settings = get_settings()
    variables = parse_vars(var)
    options = _load_options(registry)
    token = CancellationToken.with_timeout(timeout if timeout is not None else settings.default_timeout)

    try:
        config = load(file, *options, token=token)
        records = config.main(with_vars(variables), token=token, entry_point=settings.entry_point)
    except CfgScriptError as e:
        print_error(e)
        raise typer.Exit(code=1) from e

    output_records(records, fmt=fmt)


@app.command()
def test(
    file: str = typer.Argument(..., help="Root config module"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Deadline in seconds"),
    registry: str | None = typer.Option(None, "--registry", "-r", help="MODULE:ATTR of a RecordRegistry"),
) -> None:
    """Load a config with test helpers and run every test function."""
    settings = get_settings()
    options = _load_options(registry, tests=True)
    token = CancellationToken.with_timeout(timeout if timeout is not None else settings.default_timeout)

    try:
        config = load(file, *options, token=token)
    except CfgScriptError as e:
        print_error(e)
        raise typer.Exit(code=1) from e

    report = config.run_tests(token=token, prefix=settings.test_prefix)
    print_test_report(report, title=file)
    if not report.ok:
        raise typer.Exit(code=1)
