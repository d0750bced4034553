"""
Harnesses that drive a loaded Config.

This module provides:
- run_main / with_vars / ExecutionContext: production runs of ``main(ctx)``
- TestCase / run_tests / TestReport: discovery and isolated execution of tests
"""

from cfgscript.harness.execution import (
    ExecOption,
    ExecutionContext,
    run_main,
    validate_output,
    with_vars,
)
from cfgscript.harness.testing import (
    TestCase,
    TestOutcome,
    TestReport,
    discover_tests,
    run_tests,
)

__all__ = [
    "ExecOption",
    "ExecutionContext",
    "run_main",
    "validate_output",
    "with_vars",
    "TestCase",
    "TestOutcome",
    "TestReport",
    "discover_tests",
    "run_tests",
]
