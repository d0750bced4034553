"""Recursive, cycle-safe module loader.

Manifesto:
    A config is a graph of small modules. However many times a module is
    named by ``load()``, it must run exactly once per session, every
    requester must see the same result, and a cycle must fail fast
    instead of recursing until the interpreter gives up.

Architecture:

    .. code-block:: text

        ModuleLoader.load(name, from_path)
            │
            ├─ Resolver.resolve(token, name, from_path) ──▶ path
            │
            └─ LoadCache.get(path)
                 ├─ DONE     → return symbols / raise memoized error
                 ├─ PENDING  → raise CycleError
                 └─ ABSENT   → mark PENDING
                               ContentStore.read_file(token, path)
                               ScriptEngine.exec_module(path, source,
                                   predeclared, load=<bound to path>, token)
                                   └─ nested load("x") re-enters here;
                                      failures are recorded
                               any recorded failure → error, even if caught
                               LoadCache.complete(path, symbols | error)

    The engine receives a ``load`` callback already bound to the path of
    the module it is executing, so nested resolution always knows its
    requester without consulting interpreter frames. The callback refuses
    to run once its module has left the PENDING state.

Tags:
    cfgscript, loader, memoization, cycle-detection, module-graph

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from cfgscript.core.cancellation import CancellationToken
from cfgscript.core.errors import CfgScriptError, CycleError, ExecutionError, FetchError
from cfgscript.core.logging import get_logger
from cfgscript.core.protocols import (
    ContentStore,
    LoadFunc,
    ModulePath,
    Resolver,
    ScriptEngine,
    SymbolTable,
)
from cfgscript.loading.cache import EntryState, LoadCache

log = get_logger(__name__)


class ModuleLoader:
    """
    One load session: a cache plus the collaborators it drives.

    Create a new ModuleLoader (and therefore a new LoadCache) for every
    top-level load. The instance is not thread-safe.
    """

    def __init__(
        self,
        resolver: Resolver,
        store: ContentStore,
        engine: ScriptEngine,
        predeclared: Mapping[str, Any],
        token: CancellationToken,
        cache: LoadCache | None = None,
    ):
        self.resolver = resolver
        self.store = store
        self.engine = engine
        self.predeclared = predeclared
        self.token = token
        self.cache = cache if cache is not None else LoadCache()

    def load_root(self, filename: str) -> SymbolTable:
        """Load the top-level module of a config."""
        return self.load(filename, "")

    def load(self, name: str, from_path: ModulePath) -> SymbolTable:
        """
        Resolve ``name`` relative to ``from_path`` and return its symbols.

        Raises:
            ResolveError: The resolver rejected the name
            FetchError: The module source could not be read
            CycleError: The module is already being loaded in this session
            ExecutionError: The module body raised
        """
        path = self.resolver.resolve(self.token, name, from_path)
        log.debug("module.resolved", name=name, from_path=from_path or None, module=path)
        return self._load_path(path)

    def _load_path(self, path: ModulePath) -> SymbolTable:
        entry = self.cache.get(path)
        if entry.state is EntryState.DONE:
            log.debug("module.cache_hit", module=path, failed=entry.failed)
            if entry.error is not None:
                raise entry.error
            return entry.symbols
        if entry.state is EntryState.PENDING:
            log.warning("module.cycle", module=path, stack=self.cache.pending())
            raise CycleError(path)

        self.cache.mark_pending(path)
        nested_errors: list[Exception] = []
        start = time.perf_counter()
        try:
            source = self._fetch(path)
            symbols = self.engine.exec_module(
                path,
                source,
                self.predeclared,
                self._nested_load(path, nested_errors),
                self.token,
            )
            if nested_errors:
                # the module body caught a failed load(); the session still fails
                raise nested_errors[0]
        except Exception as e:
            self.cache.complete(path, error=e)
            log.debug("module.failed", module=path, error_type=type(e).__name__)
            raise

        self.cache.complete(path, symbols=symbols)
        log.debug(
            "module.executed",
            module=path,
            symbols=len(symbols),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return symbols

    def _nested_load(self, path: ModulePath, errors: list[Exception]) -> LoadFunc:
        """Build the ``load`` callback handed to the engine for module ``path``.

        Failures are recorded in ``errors`` before they propagate. Once the
        module is no longer pending the callback refuses to run, so function
        bodies called after loading cannot grow the session.
        """

        def load(name: str) -> SymbolTable:
            if self.cache.get(path).state is not EntryState.PENDING:
                raise ExecutionError(
                    "load() is only allowed while the module is loading",
                    module=path,
                )
            try:
                return self.load(name, path)
            except Exception as e:
                errors.append(e)
                raise

        return load

    def _fetch(self, path: ModulePath) -> bytes:
        try:
            return self.store.read_file(self.token, path)
        except CfgScriptError:
            raise
        except OSError as e:
            raise FetchError(path, e) from e


__all__ = ["ModuleLoader"]
