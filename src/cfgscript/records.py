"""
Record types and the value bridge between config output and host code.

A *record* is an instance of a pydantic model registered in a
RecordRegistry. Config scripts build records through the ``records``
global (``records.Deployment(name="web", replicas=3)``); the harness asks
the bridge whether each value ``main()`` returned is one of them.

Manifesto:
    The output contract of a config is "a list of records", nothing
    looser. Registering the allowed types up front means a run can never
    hand the caller a dict that merely looks like a record, and the
    caller decides which types a config may emit.

Examples:
    >>> from pydantic import BaseModel
    >>> registry = RecordRegistry()
    >>> @registry.register
    ... class Deployment(BaseModel):
    ...     name: str
    ...     replicas: int = 1
    >>> bridge = PydanticBridge(registry)
    >>> bridge.as_record(Deployment(name="web")).ok
    True
    >>> bridge.as_record({"name": "web"}).kind
    'dict'

Tags:
    cfgscript, records, pydantic, value-bridge, registry

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, TypeVar

from pydantic import BaseModel

from cfgscript.core.protocols import RecordMatch
from cfgscript.engine.predeclared import Struct

M = TypeVar("M", bound=type[BaseModel])


class RecordRegistry:
    """Name → pydantic model type for everything a config may emit."""

    def __init__(self, *models: type[BaseModel]):
        self._types: dict[str, type[BaseModel]] = {}
        for model in models:
            self.register(model)

    def register(self, model: M, name: str | None = None) -> M:
        """Register ``model`` under ``name`` (default: its class name).

        Returns the model, so it can be used as a class decorator.
        """
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise TypeError(f"records must be pydantic models, got {model!r}")
        key = name or model.__name__
        if not key.isidentifier() or key.startswith("_"):
            raise ValueError(f"invalid record name {key!r}")
        existing = self._types.get(key)
        if existing is not None and existing is not model:
            raise ValueError(f"record {key!r} is already registered")
        self._types[key] = model
        return model

    def get(self, name: str) -> type[BaseModel]:
        if name not in self._types:
            available = ", ".join(sorted(self._types))
            raise KeyError(f"record {name!r} not found. Available: {available}")
        return self._types[name]

    def is_registered(self, model: type) -> bool:
        return any(model is t for t in self._types.values())

    def names(self) -> list[str]:
        return sorted(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._types)


class PydanticBridge:
    """ValueBridge over a RecordRegistry."""

    def __init__(self, registry: RecordRegistry | None = None):
        self.registry = registry if registry is not None else RecordRegistry()

    def as_record(self, value: Any) -> RecordMatch:
        kind = type(value).__name__ if value is not None else "NoneType"
        if isinstance(value, BaseModel) and self.registry.is_registered(type(value)):
            return RecordMatch(ok=True, kind=kind, record=value)
        return RecordMatch(ok=False, kind=kind)

    def wrap(self, record: BaseModel) -> BaseModel:
        """Script-side value for a host record: an independent copy."""
        if not self.as_record(record).ok:
            raise TypeError(f"{type(record).__name__} is not a registered record type")
        return record.model_copy(deep=True)

    def namespace(self) -> Struct:
        """The ``records`` global exposed to config scripts."""
        return Struct(**{name: self.registry.get(name) for name in self.registry.names()})


__all__ = ["RecordRegistry", "PydanticBridge"]
