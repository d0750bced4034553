"""
Canonical protocol definitions for cfgscript collaborators.

The loader and the harnesses never touch the filesystem, the script
interpreter, or record types directly. They go through the contracts below,
so any object with the right shape can be plugged in.

Manifesto:
    Protocols define contracts without inheritance. They enable:
    - **Decoupling:** The loader depends on shape, not implementation
    - **Testability:** Spy readers and fake engines satisfy the contracts
    - **Portability:** Configs can come from disk, a bundle, or memory

Architecture:
    ::

        protocols.py (YOU ARE HERE)
        ├── Resolver        : (name, from_path) → ModulePath
        ├── ContentStore    : ModulePath → bytes
        ├── FileReader      : Resolver + ContentStore in one object
        ├── ScriptEngine    : execute source, call callables
        └── ValueBridge     : "is this a record?" / "wrap this record"

    Implementations:
        cfgscript.loading.reader.LocalFileReader    (FileReader)
        cfgscript.engine.python.PythonScriptEngine  (ScriptEngine)
        cfgscript.records.PydanticBridge            (ValueBridge)

Guardrails:
    ❌ DON'T: Cache inside a ContentStore
    ✅ DO: Leave memoization to the per-session LoadCache

    ❌ DON'T: Read the cancellation token from ambient state
    ✅ DO: Accept it as a parameter on every blocking call

Tags:
    protocol, resolver, content-store, script-engine, value-bridge,
    cfgscript, contracts

Doc-Types:
    - API Reference
    - Architecture Decision Record
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cfgscript.core.cancellation import CancellationToken

# Canonical, comparable module identifier produced by a Resolver.
ModulePath = str

# Names → script values produced by executing a module.
SymbolTable = Mapping[str, Any]

# Callback the engine uses for import directives, already bound to the
# path of the module being executed.
LoadFunc = Callable[[str], SymbolTable]


# ---------------------------------------------------------------------------
# Content access
# ---------------------------------------------------------------------------


@runtime_checkable
class Resolver(Protocol):
    """
    Maps an import name to a canonical ModulePath.

    ``from_path`` is empty for the root module and the importing module's
    ModulePath otherwise. Must be deterministic for the same inputs.

    Raises:
        ResolveError: The name is malformed or not allowed
    """

    def resolve(self, token: CancellationToken, name: str, from_path: str) -> ModulePath: ...


@runtime_checkable
class ContentStore(Protocol):
    """
    Fetches raw source bytes for a resolved ModulePath.

    Raises:
        FetchError: Wrapping the underlying I/O failure as its cause
    """

    def read_file(self, token: CancellationToken, path: ModulePath) -> bytes: ...


@runtime_checkable
class FileReader(Resolver, ContentStore, Protocol):
    """A Resolver and ContentStore pair implemented by one object."""


# ---------------------------------------------------------------------------
# Script engine
# ---------------------------------------------------------------------------


@runtime_checkable
class ScriptEngine(Protocol):
    """
    Narrow interface to the script interpreter.

    Any failure raised by script code comes out as ExecutionError. Load
    errors raised by a nested ``load`` callback propagate unchanged.
    """

    def exec_module(
        self,
        path: ModulePath,
        source: bytes,
        predeclared: Mapping[str, Any],
        load: LoadFunc,
        token: CancellationToken,
    ) -> SymbolTable: ...

    def call(self, fn: Any, args: Sequence[Any], token: CancellationToken) -> Any: ...

    def is_callable(self, value: Any) -> bool: ...

    def is_function(self, value: Any) -> bool: ...

    def type_name(self, value: Any) -> str: ...


# ---------------------------------------------------------------------------
# Value bridge
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordMatch:
    """Tagged outcome of asking the bridge whether a value is a record."""

    ok: bool
    kind: str
    record: Any = None


@runtime_checkable
class ValueBridge(Protocol):
    """Converts between host records and script-side values."""

    def as_record(self, value: Any) -> RecordMatch: ...

    def wrap(self, record: Any) -> Any: ...

    def namespace(self) -> Any: ...


__all__ = [
    "ModulePath",
    "SymbolTable",
    "LoadFunc",
    "Resolver",
    "ContentStore",
    "FileReader",
    "ScriptEngine",
    "RecordMatch",
    "ValueBridge",
]
