"""Test-helper globals installed by ``with_test_helpers()``.

Usage inside a config module::

    def test_replicas(ctx):
        asserts.eq(make_deployment(ctx).replicas, 3)

    def test_rejects_empty_name(ctx):
        asserts.fails(lambda: make_deployment(ctx, name=""), "name must be set")

Every assertion failure goes through ``fail`` so the report points at the
line in the config that made the assertion, not at this module.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from cfgscript.core.errors import CancelledError, CfgScriptError
from cfgscript.engine.predeclared import Struct, fail


def catch(fn: Callable[[], Any]) -> str | None:
    """Evaluate ``fn()`` and return its error message, or None if it succeeded.

    Cancellation is never caught.
    """
    try:
        fn()
    except CancelledError:
        raise
    except CfgScriptError as e:
        return str(e)
    except Exception as e:
        return f"{type(e).__name__}: {e}"
    return None


def matches(pattern: str, text: str) -> bool:
    """Report whether ``text`` contains a match of the regular expression ``pattern``."""
    try:
        return re.search(pattern, text) is not None
    except re.error as e:
        raise ValueError(f"matches: {e}") from None


def _eq(actual: Any, expected: Any, msg: str | None = None) -> None:
    if actual != expected:
        fail(msg or f"assertion failed: {actual!r} != {expected!r}")


def _ne(actual: Any, unexpected: Any, msg: str | None = None) -> None:
    if actual == unexpected:
        fail(msg or f"assertion failed: {actual!r} == {unexpected!r}")


def _true(condition: Any, msg: str | None = None) -> None:
    if not condition:
        fail(msg or f"assertion failed: {condition!r} is not truthy")


def _false(condition: Any, msg: str | None = None) -> None:
    if condition:
        fail(msg or f"assertion failed: {condition!r} is not falsy")


def _contains(container: Any, item: Any, msg: str | None = None) -> None:
    if item not in container:
        fail(msg or f"assertion failed: {item!r} not in {container!r}")


def _fails(fn: Callable[[], Any], pattern: str) -> None:
    error = catch(fn)
    if error is None:
        fail(f"evaluation succeeded unexpectedly (want error matching {pattern!r})")
    elif not matches(pattern, error):
        fail(f"regular expression ({pattern}) did not match error ({error})")


asserts = Struct(
    eq=_eq,
    ne=_ne,
    true=_true,
    false=_false,
    contains=_contains,
    fails=_fails,
)


def helper_globals() -> dict[str, Any]:
    return {"catch": catch, "matches": matches, "asserts": asserts}


__all__ = ["catch", "matches", "asserts", "helper_globals"]
