"""Production runs: invoke ``main(ctx)`` and validate its output.

Manifesto:
    A config run has exactly one observable result: an ordered list of
    records, possibly empty. Anything else ``main`` returns is a contract
    violation reported with the offending kind (and index), never a
    partially converted list.

Architecture:

    .. code-block:: text

        run_main(config, with_vars(...), token=...)
        ┌──────────────────────────────────────────────────┐
        │ 1. locals["main"]      missing → NoMainFunction   │
        │ 2. engine.is_callable  no      → NotCallable      │
        │ 3. ctx = ExecutionContext(vars, token)            │
        │ 4. engine.call(main, (ctx,))   → ExecutionError   │
        │ 5. validate_output(value)                         │
        │      None        → []                             │
        │      list/tuple  → bridge.as_record per element   │
        │      other       → InvalidReturnShape             │
        └──────────────────────────────────────────────────┘

Tags:
    cfgscript, harness, entry-point, output-contract

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cfgscript.core.cancellation import CancellationToken, background
from cfgscript.core.errors import (
    CfgScriptError,
    InvalidReturnShapeError,
    NoMainFunctionError,
    NotCallableError,
)
from cfgscript.core.logging import LogContext, get_logger
from cfgscript.core.protocols import ScriptEngine, ValueBridge

if TYPE_CHECKING:
    from cfgscript.config import Config

log = get_logger(__name__)


@dataclass(frozen=True)
class ExecutionContext:
    """The single argument passed to ``main`` and to every test function.

    .. code-block:: text

        ctx
        ├── .vars   → dict of injected variables (fresh per call)
        └── .token  → CancellationToken for cooperative cancellation
    """

    vars: dict[str, Any] = field(default_factory=dict)
    token: CancellationToken = field(default_factory=background)


@dataclass
class _ExecOptions:
    vars: dict[str, Any] = field(default_factory=dict)


ExecOption = Callable[[_ExecOptions], None]


def with_vars(vars: Mapping[str, Any]) -> ExecOption:
    """Add key/value pairs to the ``ctx.vars`` dict passed to main()."""
    items = dict(vars)

    def apply(opts: _ExecOptions) -> None:
        opts.vars.update(items)

    return apply


def validate_output(
    value: Any,
    bridge: ValueBridge,
    engine: ScriptEngine,
    entry_point: str = "main",
) -> list[Any]:
    """Turn ``main``'s return value into an ordered list of records.

    Raises:
        InvalidReturnShapeError: Not None/list, or a list element is not a record
    """
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise InvalidReturnShapeError(engine.type_name(value), entry_point=entry_point)

    records = []
    for index, item in enumerate(value):
        match = bridge.as_record(item)
        if not match.ok:
            raise InvalidReturnShapeError(match.kind, index=index, entry_point=entry_point)
        records.append(match.record)
    return records


def run_main(
    config: Config,
    *options: ExecOption,
    token: CancellationToken | None = None,
    entry_point: str = "main",
) -> list[Any]:
    """Execute the config's entry function and return the records it produced.

    Raises:
        NoMainFunctionError: The root module has no ``entry_point``
        NotCallableError: ``entry_point`` is not callable
        ExecutionError: The function raised (including ``fail()``)
        InvalidReturnShapeError: The return value breaks the output contract
        CancelledError: ``token`` fired before the call
    """
    opts = _ExecOptions()
    for opt in options:
        opt(opts)
    token = token if token is not None else background()
    engine = config.engine

    if entry_point not in config.locals:
        raise NoMainFunctionError(config.filename, entry_point)
    main = config.locals[entry_point]
    if not engine.is_callable(main):
        raise NotCallableError(engine.type_name(main), entry_point)

    ctx = ExecutionContext(vars=_script_vars(opts.vars, config.bridge), token=token)

    with LogContext(config=config.filename, entry_point=entry_point):
        log.debug("main.start", vars=sorted(ctx.vars))
        start = time.perf_counter()
        try:
            value = engine.call(main, (ctx,), token)
            records = validate_output(value, config.bridge, engine, entry_point)
        except CfgScriptError as e:
            log.info("main.failed", error_type=type(e).__name__, error=e.message)
            raise
        log.info(
            "main.completed",
            records=len(records),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
    return records


def _script_vars(vars: Mapping[str, Any], bridge: ValueBridge) -> dict[str, Any]:
    # Host records are copied in so scripts cannot mutate the caller's objects.
    return {
        key: bridge.wrap(value) if bridge.as_record(value).ok else value
        for key, value in vars.items()
    }


__all__ = [
    "ExecutionContext",
    "ExecOption",
    "with_vars",
    "validate_output",
    "run_main",
]
