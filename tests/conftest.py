"""
Shared pytest fixtures and configuration for cfgscript tests.

This module provides:
- write_tree: lay out a config directory under tmp_path
- DictReader: an in-memory Resolver/ContentStore that counts calls
- CountingEngine: a ScriptEngine spy that counts module executions
- A sample record registry (Deployment, Service)

Usage:
    def test_something(write_tree):
        root = write_tree({"main.py": "def main(ctx):\\n    return []\\n"})
"""

import posixpath
import sys
from collections import Counter
from pathlib import Path

import pytest
from pydantic import BaseModel

# Ensure cfgscript package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cfgscript.core.cancellation import CancellationToken
from cfgscript.core.errors import FetchError, ResolveError
from cfgscript.core import settings as settings_module
from cfgscript.core.logging import configure_logging
from cfgscript.engine.python import PythonScriptEngine
from cfgscript.records import RecordRegistry


def pytest_configure(config: pytest.Config) -> None:
    """Keep library debug logs out of test output."""
    configure_logging(level="WARNING", json_format=False)


# =============================================================================
# Collaborator doubles
# =============================================================================


class DictReader:
    """In-memory FileReader over ``{name: source}``.

    Names are absolute-style: ``"lib/a.py"`` and ``"/lib/a.py"`` resolve to
    the same path whichever module asks.
    """

    def __init__(self, files: dict[str, str]):
        self.files = {self._clean(k): v for k, v in files.items()}
        self.resolves: list[tuple[str, str]] = []
        self.reads: Counter[str] = Counter()

    @staticmethod
    def _clean(name: str) -> str:
        return posixpath.normpath("/" + name.lstrip("/"))

    def resolve(self, token: CancellationToken, name: str, from_path: str) -> str:
        token.check("resolve")
        self.resolves.append((name, from_path))
        if not name:
            raise ResolveError(name, "empty module name", from_path=from_path)
        return self._clean(name)

    def read_file(self, token: CancellationToken, path: str) -> bytes:
        token.check("read")
        self.reads[path] += 1
        try:
            return self.files[path].encode("utf-8")
        except KeyError:
            raise FetchError(path, FileNotFoundError(path)) from None


class CountingEngine(PythonScriptEngine):
    """PythonScriptEngine that records every module it executes."""

    def __init__(self) -> None:
        self.executed: Counter[str] = Counter()
        self.order: list[str] = []

    def exec_module(self, path, source, predeclared, load, token):
        self.executed[path] += 1
        self.order.append(path)
        return super().exec_module(path, source, predeclared, load, token)


# =============================================================================
# Sample records
# =============================================================================


class Deployment(BaseModel):
    name: str
    replicas: int = 1
    labels: dict[str, str] = {}


class Service(BaseModel):
    name: str
    port: int


class Unregistered(BaseModel):
    name: str


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings so env changes in one test never leak."""
    yield
    settings_module._settings = None


@pytest.fixture
def registry() -> RecordRegistry:
    """Registry with Deployment and Service."""
    return RecordRegistry(Deployment, Service)


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def write_tree(tmp_path: Path):
    """Write ``{relative_name: source}`` under tmp_path and return the root."""

    def write(files: dict[str, str]) -> Path:
        for name, source in files.items():
            target = tmp_path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source, encoding="utf-8")
        return tmp_path

    return write


@pytest.fixture
def dict_reader():
    """Factory for DictReader instances."""

    def make(files: dict[str, str]) -> DictReader:
        return DictReader(files)

    return make


def source(*lines: str) -> str:
    """Join script lines with newlines."""
    return "\n".join(lines) + "\n"
