"""Per-session load memoization with an explicit in-progress state.

Every ModulePath a session touches moves through exactly one lifecycle:

.. code-block:: text

    ABSENT ──mark_pending()──▶ PENDING ──complete()──▶ DONE(symbols | error)

PENDING is the cycle sentinel: a lookup that finds it means the module is
still on the call stack. DONE is terminal and holds either the symbol table
or the memoized error; neither is ever recomputed within the session.

A LoadCache belongs to one top-level load. It is not locked; concurrent
loads each build their own.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from cfgscript.core.protocols import ModulePath, SymbolTable


class EntryState(str, Enum):
    """Lifecycle state of one module within a load session."""

    ABSENT = "absent"
    PENDING = "pending"
    DONE = "done"


@dataclass(frozen=True)
class CacheEntry:
    """One cache slot. ``symbols``/``error`` are only meaningful when DONE."""

    state: EntryState
    symbols: SymbolTable | None = None
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.state is EntryState.DONE and self.error is not None


ABSENT = CacheEntry(EntryState.ABSENT)
PENDING = CacheEntry(EntryState.PENDING)


class LoadCache:
    """Mapping from ModulePath to CacheEntry for a single load session."""

    def __init__(self) -> None:
        self._entries: dict[ModulePath, CacheEntry] = {}

    def get(self, path: ModulePath) -> CacheEntry:
        return self._entries.get(path, ABSENT)

    def mark_pending(self, path: ModulePath) -> None:
        current = self.get(path)
        if current.state is not EntryState.ABSENT:
            raise RuntimeError(f"cannot mark {path!r} pending from state {current.state.value}")
        self._entries[path] = PENDING

    def complete(
        self,
        path: ModulePath,
        *,
        symbols: SymbolTable | None = None,
        error: Exception | None = None,
    ) -> CacheEntry:
        """Replace the PENDING marker for ``path`` with a terminal entry."""
        current = self.get(path)
        if current.state is not EntryState.PENDING:
            raise RuntimeError(f"cannot complete {path!r} from state {current.state.value}")
        if (symbols is None) == (error is None):
            raise ValueError("complete() takes exactly one of symbols or error")
        entry = CacheEntry(EntryState.DONE, symbols=symbols, error=error)
        self._entries[path] = entry
        return entry

    def pending(self) -> list[ModulePath]:
        """Paths currently being loaded, in the order they were entered."""
        return [p for p, e in self._entries.items() if e.state is EntryState.PENDING]

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[ModulePath]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["EntryState", "CacheEntry", "LoadCache", "ABSENT", "PENDING"]
