"""
Structured error types for cfgscript.

Every failure the loader and the harnesses can report is a typed
CfgScriptError subclass carrying a category, structured context and an
optional chained cause. Callers branch on the type; logs consume to_dict().

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the caller can act on
    - **Rich Context:** Errors name the module, function or index involved
    - **Error Chaining:** The underlying exception is kept as ``cause``
    - **Verbatim diagnostics:** Script positions and backtraces are never
      reformatted once captured

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       CfgScriptError                             │
        │              (category, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  LoadError          ExecutionError       ContractError           │
        │  (LOAD)             (EXECUTION)          (CONTRACT)              │
        │     │                   │                    │                   │
        │  ResolveError       ScriptFailure        NoMainFunctionError     │
        │  FetchError                              NotCallableError        │
        │  CycleError                              InvalidReturnShapeError │
        │                                                                  │
        │  TestExecutionError    CancelledError                            │
        │  (TEST)                (CANCELLED)                               │
        │     │                                                            │
        │  TestSuiteError                                                  │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = CycleError("/cfg/a.py")
    >>> err.category
    <ErrorCategory.LOAD: 'LOAD'>
    >>> err.context.module
    '/cfg/a.py'

Guardrails:
    ❌ DON'T: Raise bare Exception from loader or harness code
    ✅ DO: Raise the CfgScriptError subclass naming the failure

    ❌ DON'T: Re-wrap an ExecutionError coming out of a nested load
    ✅ DO: Let it propagate so the root cause type stays visible

Tags:
    error-handling, exception-hierarchy, error-context, cfgscript

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and reporting.

    Attributes:
        LOAD: Resolution, fetch and cycle failures while building a Config
        SOURCE: I/O failures underneath a fetch
        EXECUTION: Script-raised failures in module bodies or calls
        CONTRACT: Entry point missing, not callable, or bad return shape
        TEST: Test bodies that did not complete cleanly
        CANCELLED: Cooperative cancellation or deadline expiry
        INTERNAL: Bugs, unexpected state
    """

    LOAD = "LOAD"
    SOURCE = "SOURCE"
    EXECUTION = "EXECUTION"
    CONTRACT = "CONTRACT"
    TEST = "TEST"
    CANCELLED = "CANCELLED"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        module: Canonical module path (or config filename) involved
        from_path: Path of the importing module, for resolution failures
        function: Script function name (``main``, ``test_x``)
        index: Position of an offending element in a returned sequence
        metadata: Additional key-value pairs
    """

    module: str | None = None
    from_path: str | None = None
    function: str | None = None
    index: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["module", "from_path", "function", "index"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CfgScriptError(Exception):
    """
    Base exception for all cfgscript errors.

    Subclasses set ``default_category``. The message passed in is the full
    user-facing text; str(error) returns it unchanged.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CfgScriptError:
        """
        Add context to this error (fluent API).

        Usage:
            raise FetchError(path, cause=e).with_context(from_path=parent)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# LOAD ERRORS (abort the whole top-level load)
# =============================================================================


class LoadError(CfgScriptError):
    """Failure while resolving, fetching or executing the module graph."""

    default_category = ErrorCategory.LOAD


class ResolveError(LoadError):
    """A module name is malformed or not allowed by the resolver."""

    def __init__(self, name: str, reason: str, *, from_path: str | None = None):
        super().__init__(
            f"load({name!r}): {reason}",
            context=ErrorContext(module=name, from_path=from_path or None),
        )
        self.name = name
        self.reason = reason


class FetchError(LoadError):
    """Reading a resolved module path failed. The I/O error is the cause."""

    default_category = ErrorCategory.SOURCE

    def __init__(self, path: str, cause: BaseException):
        super().__init__(
            f"cannot read module {path!r}: {cause}",
            context=ErrorContext(module=path),
            cause=cause,
        )
        self.path = path


class CycleError(LoadError):
    """A module re-entered its own path before finishing execution."""

    def __init__(self, path: str):
        super().__init__(
            f"cycle in load graph: {path!r} is already being loaded",
            context=ErrorContext(module=path),
        )
        self.path = path


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class ExecutionError(CfgScriptError):
    """
    A script raised while a module body or a function call was evaluated.

    ``position`` is ``file:line:col`` of the innermost script frame and
    ``backtrace`` the formatted script call stack, both possibly empty when
    the failure happened before any script frame ran.
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(
        self,
        message: str,
        *,
        position: str = "",
        backtrace: str = "",
        module: str | None = None,
        function: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(module=module, function=function),
            cause=cause,
        )
        self.position = position
        self.backtrace = backtrace


class ScriptFailure(ExecutionError):
    """
    Raised by the ``fail`` builtin.

    The message is ``[position] msg`` followed by the backtrace captured at
    the call site, exactly as config authors see it.
    """

    def __init__(self, msg: str, *, position: str, backtrace: str):
        super().__init__(
            f"[{position}] {msg}\n{backtrace}",
            position=position,
            backtrace=backtrace,
        )
        self.msg = msg


class CancelledError(CfgScriptError):
    """The caller's cancellation token fired or its deadline expired."""

    default_category = ErrorCategory.CANCELLED


# =============================================================================
# ENTRY-POINT CONTRACT ERRORS
# =============================================================================


class ContractError(CfgScriptError):
    """The config does not satisfy the entry-point output contract."""

    default_category = ErrorCategory.CONTRACT


class NoMainFunctionError(ContractError):
    """The root module does not define the entry function."""

    def __init__(self, filename: str, entry_point: str = "main"):
        super().__init__(
            f"no `{entry_point}' function found in {filename!r}",
            context=ErrorContext(module=filename, function=entry_point),
        )
        self.filename = filename


class NotCallableError(ContractError):
    """The entry symbol exists but cannot be called."""

    def __init__(self, kind: str, entry_point: str = "main"):
        super().__init__(
            f"`{entry_point}' must be a function (got a {kind})",
            context=ErrorContext(function=entry_point),
        )
        self.kind = kind


class InvalidReturnShapeError(ContractError):
    """
    The entry function returned something other than None or a list of records.

    ``index`` is set when a list element is the offender.
    """

    def __init__(self, kind: str, index: int | None = None, entry_point: str = "main"):
        if index is None:
            message = f"`{entry_point}' didn't return a list (got a {kind})"
        else:
            message = (
                f"`{entry_point}' returned something that's not a record "
                f"at index {index} (a {kind})"
            )
        super().__init__(
            message,
            context=ErrorContext(function=entry_point, index=index),
        )
        self.kind = kind
        self.index = index


# =============================================================================
# TEST ERRORS
# =============================================================================


class TestExecutionError(CfgScriptError):
    """A test body did not complete cleanly."""

    __test__ = False
    default_category = ErrorCategory.TEST

    def __init__(self, test_name: str, cause: BaseException):
        super().__init__(
            f"{test_name}: {cause}",
            context=ErrorContext(function=test_name),
            cause=cause,
        )
        self.test_name = test_name


class TestSuiteError(TestExecutionError):
    """Aggregate error for a batch run with one or more failing tests."""

    __test__ = False

    def __init__(self, failures: list[str], total: int):
        CfgScriptError.__init__(
            self,
            f"{len(failures)} of {total} tests failed",
            context=ErrorContext(metadata={"failed": len(failures), "total": total}),
        )
        self.test_name = None
        self.failures = list(failures)
        self.total = total


class TestNotRunError(RuntimeError):
    """Programming error: a test result was queried before the test ran."""

    __test__ = False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CfgScriptError",
    "LoadError",
    "ResolveError",
    "FetchError",
    "CycleError",
    "ExecutionError",
    "ScriptFailure",
    "CancelledError",
    "ContractError",
    "NoMainFunctionError",
    "NotCallableError",
    "InvalidReturnShapeError",
    "TestExecutionError",
    "TestSuiteError",
    "TestNotRunError",
]
