"""Discover and run test functions defined in a config module.

Any top-level callable in the root module whose name starts with ``test_``
is a test. Each runs with its own fresh ``ctx`` and a failure in one never
stops the others.

Usage:
    config = cfgscript.load("deploy.py", cfgscript.with_test_helpers())

    # Caller-driven
    for case in config.tests():
        if case.run() is TestOutcome.FAIL:
            print(case.name, case.error)

    # Batch
    report = config.run_tests()
    report.raise_for_failures()
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from cfgscript.core.cancellation import CancellationToken, background
from cfgscript.core.errors import (
    TestExecutionError,
    TestNotRunError,
    TestSuiteError,
)
from cfgscript.core.logging import LogContext, get_logger
from cfgscript.core.protocols import ScriptEngine
from cfgscript.harness.execution import ExecutionContext

if TYPE_CHECKING:
    from cfgscript.config import Config

log = get_logger(__name__)


class TestOutcome(str, Enum):
    """Result of one completed test run."""

    __test__ = False

    PASS = "PASS"
    FAIL = "FAIL"


@dataclass(frozen=True)
class _Ran:
    outcome: TestOutcome
    duration: float
    error: TestExecutionError | None


class TestCase:
    """One discovered test function and, once run, its result."""

    __test__ = False

    def __init__(self, name: str, fn: Any, engine: ScriptEngine):
        self.name = name
        self.fn = fn
        self.engine = engine
        self._ran: _Ran | None = None

    def run(
        self,
        token: CancellationToken | None = None,
        vars: Mapping[str, Any] | None = None,
    ) -> TestOutcome:
        """Execute the test with a fresh context. Running again replaces the result."""
        ctx = ExecutionContext(
            vars=dict(vars) if vars is not None else {},
            token=token if token is not None else background(),
        )
        error: TestExecutionError | None = None
        start = time.perf_counter()
        try:
            self.engine.call(self.fn, (ctx,), ctx.token)
        except Exception as e:
            # a plugged-in engine may raise anything; it still only fails this test
            error = TestExecutionError(self.name, e)
        duration = time.perf_counter() - start

        outcome = TestOutcome.FAIL if error is not None else TestOutcome.PASS
        self._ran = _Ran(outcome=outcome, duration=duration, error=error)
        if error is None:
            log.debug("test.passed", test=self.name, duration_ms=round(duration * 1000, 2))
        else:
            log.info("test.failed", test=self.name, error=error.message)
        return outcome

    @property
    def ran(self) -> bool:
        return self._ran is not None

    def _require_ran(self, what: str) -> _Ran:
        if self._ran is None:
            raise TestNotRunError(f"can't get the {what} of test {self.name!r}: it has not run")
        return self._ran

    @property
    def outcome(self) -> TestOutcome:
        return self._require_ran("result").outcome

    @property
    def duration(self) -> float:
        """Wall-clock seconds the last run took."""
        return self._require_ran("duration").duration

    @property
    def error(self) -> TestExecutionError | None:
        return self._require_ran("error").error

    def __repr__(self) -> str:
        state = self._ran.outcome.value if self._ran else "NOT RUN"
        return f"TestCase({self.name!r}, {state})"


@dataclass
class TestReport:
    """Outcome of a batch run."""

    __test__ = False

    tests: list[TestCase] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    error: TestSuiteError | None = None

    @property
    def passed(self) -> int:
        return sum(1 for t in self.tests if t.outcome is TestOutcome.PASS)

    @property
    def failed(self) -> int:
        return len(self.tests) - self.passed

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_failures(self) -> None:
        if self.error is not None:
            raise self.error


def discover_tests(config: Config, prefix: str = "test_") -> list[TestCase]:
    """Test cases for every callable in ``config.locals`` named ``prefix*``."""
    engine = config.engine
    return [
        TestCase(name, value, engine)
        for name, value in sorted(config.locals.items())
        if name.startswith(prefix) and engine.is_callable(value)
    ]


def run_tests(
    config: Config,
    token: CancellationToken | None = None,
    prefix: str = "test_",
) -> TestReport:
    """Run every discovered test; never stops at the first failure."""
    cases = discover_tests(config, prefix)
    failures: list[str] = []

    with LogContext(config=config.filename):
        for case in cases:
            if case.run(token) is TestOutcome.FAIL:
                failures.append(str(case.error))

        error = TestSuiteError(failures, total=len(cases)) if failures else None
        log.info("tests.completed", total=len(cases), failed=len(failures))

    return TestReport(tests=cases, failures=failures, error=error)


__all__ = [
    "TestOutcome",
    "TestCase",
    "TestReport",
    "discover_tests",
    "run_tests",
]
