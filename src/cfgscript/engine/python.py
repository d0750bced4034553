"""
Default script engine: configs written in a hermetic subset of Python.

Manifesto:
    Config modules should read like ordinary Python but behave like data:
    no imports, no file or network access, no classes, and only one way
    to reach another module, the ``load()`` builtin. The engine enforces
    that by executing each module in a fresh namespace whose builtins are
    a curated allow-list plus the session's predeclared globals. Dunder
    names and frame-introspection attributes are rejected at parse time.

Architecture:
    ::

        exec_module(path, source, predeclared, load, token)
        ┌──────────────────────────────────────────────────────────────┐
        │ 1. token.check()                                              │
        │ 2. decode + parse; reject __dunder__ and frame attributes     │
        │    compile(tree, filename=path)                               │
        │ 3. namespace = {__builtins__: SAFE ∪ predeclared ∪ {load},    │
        │                 __cfgscript_module__: path}                    │
        │ 4. exec(code, namespace)                                      │
        │      load("x.py", "a", b="c") → load("x.py") → bind a, b      │
        │ 5. close load(); SymbolTable = read-only view of non-dunders  │
        └──────────────────────────────────────────────────────────────┘

        Failure mapping:
          CfgScriptError (nested load, fail(), cancellation) → unchanged
          SyntaxError / UnicodeDecodeError                   → ExecutionError
          any other Exception                                → ExecutionError
                                                                (position, backtrace)

Guardrails:
    ❌ DON'T: Add __import__, open, eval, exec or __build_class__ to SAFE_BUILTINS
    ❌ DON'T: Allow-list the raw getattr/hasattr; scripts get checked wrappers
    ✅ DO: Expose host capabilities as predeclared globals

Tags:
    cfgscript, engine, interpreter, sandbox, python-subset

Doc-Types:
    api-reference
"""

from __future__ import annotations

import ast
import builtins
import inspect
import linecache
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any

from cfgscript.core.cancellation import CancellationToken
from cfgscript.core.errors import CfgScriptError, ExecutionError
from cfgscript.core.logging import get_logger
from cfgscript.core.protocols import LoadFunc, ModulePath, SymbolTable
from cfgscript.engine.frames import (
    SCRIPT_MARKER,
    format_backtrace,
    format_position,
    script_traceback,
)

log = get_logger(__name__)

_SAFE_NAMES = (
    # constructors and conversions
    "bool", "bytes", "dict", "float", "frozenset", "int", "list", "set", "str", "tuple",
    "range", "slice",
    # functions
    "abs", "all", "any", "callable", "chr", "dir", "divmod", "enumerate", "filter",
    "format", "isinstance", "iter", "len", "map", "max", "min",
    "next", "ord", "pow", "repr", "reversed", "round", "sorted", "sum", "zip",
    # exceptions usable in try/except
    "Exception", "ArithmeticError", "AssertionError", "AttributeError", "IndexError",
    "KeyError", "LookupError", "TypeError", "ValueError", "ZeroDivisionError",
)

# Attributes that lead from a value back to interpreter frames or host globals.
_FRAME_ATTRS = frozenset({
    "f_back", "f_builtins", "f_code", "f_globals", "f_locals",
    "gi_code", "gi_frame", "cr_code", "cr_frame", "ag_code", "ag_frame",
    "tb_frame", "tb_next",
})


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _is_forbidden_attr(name: str) -> bool:
    return name.startswith("__") or name in _FRAME_ATTRS


def _checked_getattr(obj: Any, name: str, *default: Any) -> Any:
    if isinstance(name, str) and _is_forbidden_attr(name):
        raise AttributeError(f"access to attribute {name!r} is not allowed")
    return getattr(obj, name, *default)


def _checked_hasattr(obj: Any, name: str) -> bool:
    if isinstance(name, str) and _is_forbidden_attr(name):
        return False
    return hasattr(obj, name)


_checked_getattr.__name__ = "getattr"
_checked_hasattr.__name__ = "hasattr"

SAFE_BUILTINS: Mapping[str, Any] = MappingProxyType(
    {
        **{name: getattr(builtins, name) for name in _SAFE_NAMES},
        "getattr": _checked_getattr,
        "hasattr": _checked_hasattr,
    }
)


def _check_names(tree: ast.AST, path: ModulePath) -> None:
    """Reject dunder names and introspection attributes before anything runs."""
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            names = [node.attr]
        elif isinstance(node, ast.Name):
            names = [node.id] if node.id.startswith("__") else []
        elif isinstance(node, ast.MatchClass):
            names = node.kwd_attrs
        else:
            continue
        for name in names:
            if _is_forbidden_attr(name):
                position = f"{path}:{node.lineno}:{node.col_offset + 1}"
                raise ExecutionError(
                    f"{position}: access to {name!r} is not allowed",
                    position=position,
                    module=path,
                )


class _LoadBuiltin:
    """The ``load`` builtin of one module, usable only while its body runs."""

    def __init__(self, path: ModulePath, namespace: dict[str, Any], load: LoadFunc):
        self.path = path
        self.namespace = namespace
        self.load = load
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def __call__(self, module: str, *symbols: str, **aliases: str) -> None:
        if self.closed:
            raise ExecutionError(
                "load() is only allowed while the module is loading", module=self.path
            )
        if not isinstance(module, str):
            raise TypeError(f"load: module name must be a string, got {type(module).__name__}")
        if not symbols and not aliases:
            raise ValueError(f"load({module!r}): no symbols requested")
        table = self.load(module)
        bindings = [(s, s) for s in symbols] + list(aliases.items())
        for local, remote in bindings:
            if not isinstance(remote, str):
                raise TypeError(f"load({module!r}): symbol names must be strings")
            if remote.startswith("_"):
                raise ValueError(f"load({module!r}): cannot load private symbol {remote!r}")
            if remote not in table:
                raise ValueError(f"load({module!r}): symbol {remote!r} not found")
            self.namespace[local] = table[remote]


class PythonScriptEngine:
    """Executes config modules and calls script functions."""

    def exec_module(
        self,
        path: ModulePath,
        source: bytes,
        predeclared: Mapping[str, Any],
        load: LoadFunc,
        token: CancellationToken,
    ) -> SymbolTable:
        token.check(f"exec {path}")

        try:
            text = source.decode("utf-8") if isinstance(source, bytes) else source
        except UnicodeDecodeError as e:
            raise ExecutionError(f"{path}: source is not valid UTF-8: {e}", module=path, cause=e) from e

        self._register_source(path, text)
        try:
            tree = ast.parse(text, filename=path)
        except SyntaxError as e:
            position = f"{path}:{e.lineno}:{e.offset}" if e.offset else f"{path}:{e.lineno}"
            raise ExecutionError(
                f"{position}: {e.msg}", position=position, module=path, cause=e
            ) from e
        _check_names(tree, path)
        code = compile(tree, path, "exec", dont_inherit=True)

        namespace: dict[str, Any] = {SCRIPT_MARKER: path, "__name__": path}
        load_builtin = _LoadBuiltin(path, namespace, load)
        namespace["__builtins__"] = {**SAFE_BUILTINS, **predeclared, "load": load_builtin}

        try:
            exec(code, namespace)
        except CfgScriptError:
            raise
        except Exception as e:
            raise self._execution_error(e, module=path) from e
        finally:
            load_builtin.close()

        return MappingProxyType({k: v for k, v in namespace.items() if not _is_dunder(k)})

    def call(self, fn: Any, args: Sequence[Any], token: CancellationToken) -> Any:
        name = getattr(fn, "__name__", None)
        token.check(f"call {name or self.type_name(fn)}")
        try:
            return fn(*args)
        except CfgScriptError:
            raise
        except Exception as e:
            raise self._execution_error(e, function=name) from e

    def is_callable(self, value: Any) -> bool:
        return callable(value)

    def is_function(self, value: Any) -> bool:
        """True for functions defined by config code (including lambdas)."""
        return inspect.isfunction(value) and SCRIPT_MARKER in value.__globals__

    def type_name(self, value: Any) -> str:
        if value is None:
            return "NoneType"
        if self.is_function(value):
            return "function"
        return type(value).__name__

    # ------------------------------------------------------------------

    @staticmethod
    def _register_source(path: ModulePath, text: str) -> None:
        # Backtraces look lines up by filename; sources may not live on disk.
        lines = text.splitlines(keepends=True)
        linecache.cache[path] = (len(text), None, lines, path)

    @staticmethod
    def _execution_error(
        error: Exception, *, module: str | None = None, function: str | None = None
    ) -> ExecutionError:
        frames = script_traceback(error.__traceback__)
        position = format_position(frames[-1]) if frames else ""
        detail = f"{type(error).__name__}: {error}"
        message = f"{position}: {detail}" if position else detail
        log.debug("engine.error", module=module, function=function, position=position)
        return ExecutionError(
            message,
            position=position,
            backtrace=format_backtrace(frames) if frames else "",
            module=module,
            function=function,
            cause=error,
        )


__all__ = ["PythonScriptEngine", "SAFE_BUILTINS"]
