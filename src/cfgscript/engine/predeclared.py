"""
Global symbols every config module can use without loading anything.

Manifesto:
    Config authors need a small, stable toolbox: a way to abort with a
    readable message, immutable records for grouping values, and codecs
    for the formats configs are usually rendered into. Everything here is
    deterministic and side-effect free except ``print``, which writes to
    stderr so it never mixes with a run's output.

Architecture:
    ::

        fail(msg)          → ScriptFailure with position + backtrace
        print(*args)       → "[file:line] message" on stderr
        struct(**fields)   → immutable Struct
        hash.md5/sha1/sha256(s)
        json.encode(v, indent=None) / json.decode(s)
        yaml.encode(v) / yaml.decode(s)
        url.encode_query(mapping)
        records.<Name>     → registered record types (added by the loader)

Examples:
    >>> point = struct(x=1, y=2)
    >>> point.x
    1
    >>> json.encode(point)
    '{"x": 1, "y": 2}'

Tags:
    cfgscript, builtins, struct, json, yaml, hash, url

Doc-Types:
    api-reference
"""

from __future__ import annotations

import hashlib
import json as _json
import sys
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import yaml as _yaml
from pydantic import BaseModel

from cfgscript.core.errors import ScriptFailure
from cfgscript.engine.frames import format_backtrace, format_position, script_stack


class Struct:
    """Immutable attribute record. Equality and hashing go by fields."""

    __slots__ = ("_fields",)

    def __init__(self, **fields: Any):
        object.__setattr__(self, "_fields", dict(fields))

    def __getattr__(self, name: str) -> Any:
        if name == "_fields":
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(f"struct has no field {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"cannot set field {name!r}: struct is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"cannot delete field {name!r}: struct is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Struct):
            return NotImplemented
        return self._fields == other._fields

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._fields.items())))

    def __dir__(self) -> list[str]:
        return sorted(self._fields)

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in self._fields.items())
        return f"struct({body})"


def struct_fields(value: Struct) -> dict[str, Any]:
    """Host-side accessor for a Struct's fields."""
    return dict(value._fields)


# ---------------------------------------------------------------------------
# fail / print
# ---------------------------------------------------------------------------


def fail(msg: Any) -> None:
    """Abort the current script with ``msg``, capturing where it was called."""
    frames = script_stack(sys._getframe(1))
    position = format_position(frames[-1]) if frames else "<unknown>"
    raise ScriptFailure(str(msg), position=position, backtrace=format_backtrace(frames))


def script_print(*args: Any, sep: str = " ") -> None:
    frames = script_stack(sys._getframe(1))
    position = format_position(frames[-1]) if frames else "<unknown>"
    message = sep.join(a if isinstance(a, str) else repr(a) for a in args)
    sys.stderr.write(f"[{position}] {message}\n")


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


def to_plain(value: Any) -> Any:
    """Recursively convert script values into JSON/YAML-safe Python data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Struct):
        return {k: to_plain(v) for k, v in value._fields.items()}
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(to_plain(v) for v in value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"cannot encode value of type {type(value).__name__}")


def _json_encode(value: Any, indent: int | None = None) -> str:
    return _json.dumps(to_plain(value), indent=indent)


def _json_decode(text: str) -> Any:
    return _json.loads(text)


def _yaml_encode(value: Any) -> str:
    return _yaml.safe_dump(to_plain(value), sort_keys=False, default_flow_style=False)


def _yaml_decode(text: str) -> Any:
    return _yaml.safe_load(text)


def _digest(algorithm: str):
    def digest(data: str | bytes) -> str:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return hashlib.new(algorithm, data).hexdigest()

    digest.__name__ = algorithm
    return digest


def _encode_query(params: Mapping[str, Any]) -> str:
    return urlencode(sorted(params.items()), doseq=True)


hash_module = Struct(md5=_digest("md5"), sha1=_digest("sha1"), sha256=_digest("sha256"))
json_module = Struct(encode=_json_encode, decode=_json_decode)
yaml_module = Struct(encode=_yaml_encode, decode=_yaml_decode)
url_module = Struct(encode_query=_encode_query)


def default_globals() -> dict[str, Any]:
    """Builtins present in every load, before caller additions."""
    return {
        "fail": fail,
        "print": script_print,
        "struct": Struct,
        "hash": hash_module,
        "json": json_module,
        "yaml": yaml_module,
        "url": url_module,
    }


__all__ = [
    "Struct",
    "struct_fields",
    "fail",
    "script_print",
    "to_plain",
    "default_globals",
]
