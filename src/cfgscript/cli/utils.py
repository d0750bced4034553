"""
CLI utility helpers: argument parsing and output formatting.
"""

from __future__ import annotations

import importlib
import json
from typing import Any

import typer
import yaml
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cfgscript.core.errors import CfgScriptError
from cfgscript.harness.testing import TestOutcome, TestReport
from cfgscript.records import RecordRegistry

console = Console()
err_console = Console(stderr=True)


# ── Argument helpers ─────────────────────────────────────────────────────


def parse_vars(pairs: list[str] | None) -> dict[str, str]:
    """Turn repeated ``--var KEY=VALUE`` options into a dict."""
    result: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--var")
        result[key] = value
    return result


def import_registry(target: str | None) -> RecordRegistry | None:
    """Import a RecordRegistry from ``package.module:attribute``."""
    if not target:
        return None
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(
            f"expected MODULE:ATTRIBUTE, got {target!r}", param_hint="--registry"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"cannot import {module_name!r}: {e}", param_hint="--registry") from e
    try:
        registry = getattr(module, attr)
    except AttributeError as e:
        raise typer.BadParameter(
            f"{module_name!r} has no attribute {attr!r}", param_hint="--registry"
        ) from e
    if not isinstance(registry, RecordRegistry):
        raise typer.BadParameter(
            f"{target} is a {type(registry).__name__}, not a RecordRegistry",
            param_hint="--registry",
        )
    return registry


# ── Output helpers ───────────────────────────────────────────────────────


def _record_dict(record: BaseModel) -> dict[str, Any]:
    return {"kind": type(record).__name__, "value": record.model_dump(mode="json")}


def output_records(records: list[BaseModel], *, fmt: str = "json") -> None:
    """Write the records a run produced to stdout."""
    payload = [_record_dict(r) for r in records]
    if fmt == "yaml":
        typer.echo(yaml.safe_dump(payload, sort_keys=False, default_flow_style=False), nl=False)
    else:
        typer.echo(json.dumps(payload, indent=2))


def print_error(error: CfgScriptError) -> None:
    """Render a library error on stderr."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}"
    )


def print_test_report(report: TestReport, *, title: str = "") -> None:
    """Render a batch test run as a Rich table plus failure details."""
    if not report.tests:
        console.print("[dim]No tests.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    table.add_column("Test", overflow="fold")
    table.add_column("Result")
    table.add_column("Duration", justify="right")
    for case in report.tests:
        style = "green" if case.outcome is TestOutcome.PASS else "red"
        table.add_row(
            escape(case.name),
            f"[{style}]{case.outcome.value}[/{style}]",
            f"{case.duration * 1000:.1f}ms",
        )
    console.print(table)

    for failure in report.failures:
        err_console.print(f"[red]FAIL[/red] {escape(failure)}")
    console.print(f"\n{report.passed} passed, {report.failed} failed")
