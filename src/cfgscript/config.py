"""Loading a config and the immutable Config it produces.

Manifesto:
    Loading is all-or-nothing. Either every module in the graph resolved,
    read and executed cleanly and the caller gets a Config, or the caller
    gets the first error and nothing else. A Config, once built, is only
    read: production runs and test runs can be repeated against it in any
    order.

Architecture:

    .. code-block:: text

        load(filename, *options, token=None)
            │
            ├─ options → _LoadOptions (globals, reader, registry, engine)
            ├─ predeclared = default_globals()
            │                + records namespace (PydanticBridge)
            │                + with_globals / with_test_helpers, in order
            ├─ ModuleLoader(resolver, store, engine, predeclared, token)
            │      .load_root(filename)      ← fresh LoadCache per call
            └─ Config(filename, globals, locals, engine, bridge)
                   ├─ .main(with_vars(...))  → list[record]
                   ├─ .tests()               → list[TestCase]
                   └─ .run_tests()           → TestReport

Example:
    >>> config = load("deploy/main.py", with_record_registry(registry))
    >>> records = config.main(with_vars({"env": "prod"}))

Tags:
    cfgscript, config, load-options, entry-point

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from cfgscript.core.cancellation import CancellationToken, background
from cfgscript.core.logging import LogContext, get_logger
from cfgscript.core.protocols import ContentStore, Resolver, ScriptEngine, ValueBridge
from cfgscript.engine.helpers import helper_globals
from cfgscript.engine.predeclared import default_globals
from cfgscript.engine.python import PythonScriptEngine
from cfgscript.harness.execution import ExecOption, run_main
from cfgscript.harness.testing import TestCase, TestReport, discover_tests, run_tests
from cfgscript.loading.loader import ModuleLoader
from cfgscript.loading.reader import LocalFileReader
from cfgscript.records import PydanticBridge, RecordRegistry

log = get_logger(__name__)


@dataclass
class _LoadOptions:
    additions: list[Mapping[str, Any]] = field(default_factory=list)
    resolver: Resolver | None = None
    store: ContentStore | None = None
    registry: RecordRegistry | None = None
    engine: ScriptEngine | None = None


LoadOption = Callable[[_LoadOptions], None]


def with_globals(globals: Mapping[str, Any]) -> LoadOption:
    """Add global symbols visible to every module of the config."""
    items = dict(globals)

    def apply(opts: _LoadOptions) -> None:
        opts.additions.append(items)

    return apply


def with_test_helpers() -> LoadOption:
    """Add ``asserts``, ``catch`` and ``matches`` to the globals."""

    def apply(opts: _LoadOptions) -> None:
        opts.additions.append(helper_globals())

    return apply


def with_file_reader(reader: Resolver, store: ContentStore | None = None) -> LoadOption:
    """Change how ``load()`` names are resolved and read.

    ``reader`` must also be a ContentStore unless ``store`` is given.
    """
    if reader is None:
        raise ValueError("with_file_reader: reader must not be None")
    content = store if store is not None else reader
    if not isinstance(content, ContentStore):
        raise TypeError(f"with_file_reader: {content!r} cannot read files")

    def apply(opts: _LoadOptions) -> None:
        opts.resolver = reader
        opts.store = content

    return apply


def with_record_registry(registry: RecordRegistry) -> LoadOption:
    """Override which record types configs may build and return."""
    if registry is None:
        raise ValueError("with_record_registry: registry must not be None")

    def apply(opts: _LoadOptions) -> None:
        opts.registry = registry

    return apply


def with_engine(engine: ScriptEngine) -> LoadOption:
    """Execute modules with a different ScriptEngine."""
    if engine is None:
        raise ValueError("with_engine: engine must not be None")

    def apply(opts: _LoadOptions) -> None:
        opts.engine = engine

    return apply


@dataclass(frozen=True)
class Config:
    """A fully loaded config, ready for execution.

    Attributes:
        filename: The name originally passed to load()
        globals: Predeclared symbols shared by every module (read-only)
        locals: Symbols defined by the root module (read-only)
    """

    filename: str
    globals: Mapping[str, Any]
    locals: Mapping[str, Any]
    engine: ScriptEngine = field(repr=False)
    bridge: ValueBridge = field(repr=False)

    def main(
        self,
        *options: ExecOption,
        token: CancellationToken | None = None,
        entry_point: str = "main",
    ) -> list[Any]:
        """Run ``main(ctx)`` and return the records it produced."""
        return run_main(self, *options, token=token, entry_point=entry_point)

    def tests(self, prefix: str = "test_") -> list[TestCase]:
        """All test functions defined by the root module, not yet run."""
        return discover_tests(self, prefix)

    def run_tests(
        self,
        token: CancellationToken | None = None,
        prefix: str = "test_",
    ) -> TestReport:
        """Run every test and collect failures."""
        return run_tests(self, token=token, prefix=prefix)


def load(
    filename: str | os.PathLike[str],
    *options: LoadOption,
    token: CancellationToken | None = None,
) -> Config:
    """Load a config module and everything it loads.

    Raises:
        ResolveError, FetchError, CycleError: The module graph could not be built
        ExecutionError: A module body raised
        CancelledError: ``token`` fired during the load
    """
    filename = os.fspath(filename)
    opts = _LoadOptions()
    for opt in options:
        opt(opts)

    bridge = PydanticBridge(opts.registry)
    engine = opts.engine if opts.engine is not None else PythonScriptEngine()
    if opts.resolver is None:
        reader = LocalFileReader(os.path.dirname(os.path.abspath(filename)))
        resolver, store = reader, reader
    else:
        resolver, store = opts.resolver, opts.store

    predeclared: dict[str, Any] = default_globals()
    predeclared["records"] = bridge.namespace()
    for additions in opts.additions:
        predeclared.update(additions)
    globals_view = MappingProxyType(predeclared)

    loader = ModuleLoader(
        resolver,
        store,
        engine,
        globals_view,
        token if token is not None else background(),
    )
    with LogContext(config=filename):
        locals_ = loader.load_root(filename)
        log.debug("config.loaded", modules=len(loader.cache), symbols=len(locals_))

    return Config(
        filename=filename,
        globals=globals_view,
        locals=locals_ if isinstance(locals_, MappingProxyType) else MappingProxyType(dict(locals_)),
        engine=engine,
        bridge=bridge,
    )


__all__ = [
    "Config",
    "LoadOption",
    "load",
    "with_globals",
    "with_test_helpers",
    "with_file_reader",
    "with_record_registry",
    "with_engine",
]
