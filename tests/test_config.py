"""Tests for cfgscript.load and the Config it returns."""

import dataclasses
from pathlib import Path

import pytest

import cfgscript
from cfgscript.config import (
    load,
    with_engine,
    with_file_reader,
    with_globals,
    with_record_registry,
    with_test_helpers,
)
from cfgscript.core.cancellation import CancellationToken
from cfgscript.core.errors import (
    CancelledError,
    CycleError,
    ExecutionError,
    FetchError,
    LoadError,
)
from cfgscript.engine.predeclared import Struct

from conftest import CountingEngine, Deployment, DictReader, source


class TestLoad:
    """Loading from disk with the default reader."""

    def test_locals_of_root_module(self, write_tree):
        root = write_tree({"main.py": source("x = 1", "def main(ctx):", "    return []")})
        config = load(str(root / "main.py"))
        assert config.locals["x"] == 1
        assert "main" in config.locals
        assert config.filename == str(root / "main.py")

    def test_accepts_pathlike(self, write_tree):
        root = write_tree({"main.py": "x = 1\n"})
        config = load(Path(root) / "main.py")
        assert isinstance(config.filename, str)

    def test_nested_loads_resolve_under_root_dir(self, write_tree):
        root = write_tree(
            {
                "main.py": source('load("lib/common.py", "name")'),
                "lib/common.py": source('load("lib/base.py", "prefix")', 'name = prefix + "-web"'),
                "lib/base.py": source('prefix = "prod"'),
            }
        )
        assert load(str(root / "main.py")).locals["name"] == "prod-web"

    def test_diamond_executes_once(self, write_tree):
        root = write_tree(
            {
                "main.py": source('load("a.py", "a")', 'load("b.py", "b")'),
                "a.py": source('load("c.py", "c")', "a = c"),
                "b.py": source('load("c.py", "c")', "b = c"),
                "c.py": source("c = struct(v=1)"),
            }
        )
        engine = CountingEngine()
        config = load(str(root / "main.py"), with_engine(engine))
        assert engine.executed[str(root / "c.py")] == 1
        assert config.locals["a"] is config.locals["b"]

    def test_missing_root_is_fetch_error(self, tmp_path):
        with pytest.raises(FetchError):
            load(str(tmp_path / "nope.py"))

    def test_cycle(self, write_tree):
        root = write_tree(
            {
                "main.py": source('load("a.py", "x")'),
                "a.py": source('load("b.py", "x")'),
                "b.py": source('load("c.py", "x")'),
                "c.py": source('load("a.py", "x")'),
            }
        )
        with pytest.raises(CycleError):
            load(str(root / "main.py"))

    def test_cycle_through_root(self, write_tree):
        root = write_tree(
            {
                "main.py": source('load("lib.py", "x")', "y = 1"),
                "lib.py": source('load("main.py", "y")', "x = 1"),
            }
        )
        with pytest.raises(CycleError):
            load(str(root / "main.py"))

    def test_swallowed_dependency_failure_yields_no_config(self, write_tree):
        """A failed load() hidden behind catch() still fails the whole load."""
        root = write_tree(
            {
                "main.py": source('err = catch(lambda: load("bad.py", "x"))', "ok = True"),
                "bad.py": source('fail("boom")'),
            }
        )
        with pytest.raises(ExecutionError, match="boom"):
            load(str(root / "main.py"), with_test_helpers())

    def test_errors_are_load_or_execution(self, write_tree):
        root = write_tree({"main.py": "x = 1 +\n"})
        with pytest.raises(ExecutionError):
            load(str(root / "main.py"))

    def test_cancelled(self, write_tree):
        root = write_tree({"main.py": "x = 1\n"})
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CancelledError):
            load(str(root / "main.py"), token=token)

    def test_each_load_is_a_new_session(self, dict_reader):
        reader = dict_reader({"main.py": source('load("lib.py", "x")'), "lib.py": "x = 1\n"})
        load("main.py", with_file_reader(reader))
        load("main.py", with_file_reader(reader))
        assert reader.reads["/lib.py"] == 2


class TestConfigValue:
    """The returned Config is read-only."""

    def test_frozen(self, write_tree):
        config = load(str(write_tree({"main.py": "x = 1\n"}) / "main.py"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.filename = "other"

    def test_locals_and_globals_read_only(self, write_tree):
        config = load(str(write_tree({"main.py": "x = 1\n"}) / "main.py"))
        with pytest.raises(TypeError):
            config.locals["x"] = 2
        with pytest.raises(TypeError):
            config.globals["fail"] = None

    def test_default_globals(self, write_tree):
        config = load(str(write_tree({"main.py": "x = 1\n"}) / "main.py"))
        for name in ("fail", "print", "struct", "hash", "json", "yaml", "url", "records"):
            assert name in config.globals
        assert "asserts" not in config.globals


class TestLoadOptions:
    """with_* options."""

    def test_with_globals_visible_in_every_module(self, dict_reader):
        reader = dict_reader(
            {"main.py": source('load("lib.py", "v")', "w = region"), "lib.py": "v = region\n"}
        )
        config = load("main.py", with_file_reader(reader), with_globals({"region": "eu"}))
        assert config.locals["v"] == "eu"
        assert config.locals["w"] == "eu"
        assert config.globals["region"] == "eu"

    def test_later_globals_override(self, dict_reader):
        reader = dict_reader({"main.py": "v = region\n"})
        config = load(
            "main.py",
            with_file_reader(reader),
            with_globals({"region": "eu"}),
            with_globals({"region": "us"}),
        )
        assert config.locals["v"] == "us"

    def test_with_test_helpers(self, dict_reader):
        config = load("main.py", with_file_reader(dict_reader({"main.py": "x = 1\n"})), with_test_helpers())
        for name in ("asserts", "catch", "matches"):
            assert name in config.globals

    def test_with_record_registry(self, dict_reader, registry):
        reader = dict_reader({"main.py": 'd = records.Deployment(name="web")\n'})
        config = load("main.py", with_file_reader(reader), with_record_registry(registry))
        assert config.locals["d"] == Deployment(name="web")
        assert isinstance(config.globals["records"], Struct)

    def test_unknown_record_without_registry(self, dict_reader):
        reader = dict_reader({"main.py": 'd = records.Deployment(name="web")\n'})
        with pytest.raises(ExecutionError, match="AttributeError"):
            load("main.py", with_file_reader(reader))

    def test_separate_resolver_and_store(self, dict_reader):
        store = dict_reader({"main.py": "x = 1\n"})

        class UpperResolver:
            def resolve(self, token, name, from_path):
                return "/" + name.lower()

        config = load("MAIN.PY", with_file_reader(UpperResolver(), store))
        assert config.locals["x"] == 1

    def test_nil_options_rejected(self):
        with pytest.raises(ValueError):
            with_file_reader(None)
        with pytest.raises(ValueError):
            with_record_registry(None)
        with pytest.raises(ValueError):
            with_engine(None)

    def test_resolver_without_store_rejected(self):
        class OnlyResolves:
            def resolve(self, token, name, from_path):
                return name

        with pytest.raises(TypeError, match="cannot read files"):
            with_file_reader(OnlyResolves())

    def test_fetch_error_from_custom_store(self, dict_reader):
        reader = dict_reader({"main.py": source('load("gone.py", "x")')})
        with pytest.raises(LoadError):
            load("main.py", with_file_reader(reader))


class TestPackageApi:
    """Top-level re-exports."""

    def test_public_names(self):
        assert cfgscript.load is load
        assert cfgscript.__version__
        for name in cfgscript.__all__:
            assert hasattr(cfgscript, name)

    def test_dict_reader_is_a_file_reader(self):
        from cfgscript.core.protocols import FileReader

        assert isinstance(DictReader({}), FileReader)
