"""Tests for cfgscript.engine.python.PythonScriptEngine."""

from types import MappingProxyType

import pytest

from cfgscript.core.cancellation import CancellationToken
from cfgscript.core.errors import CancelledError, CycleError, ExecutionError, ScriptFailure
from cfgscript.core.protocols import ScriptEngine
from cfgscript.engine.frames import SCRIPT_MARKER
from cfgscript.engine.predeclared import default_globals
from cfgscript.engine.python import SAFE_BUILTINS, PythonScriptEngine

from conftest import source


def no_load(name):
    raise AssertionError(f"unexpected load({name!r})")


def run(text, *, load=no_load, path="/m.py", predeclared=None, token=None):
    engine = PythonScriptEngine()
    return engine.exec_module(
        path,
        text.encode("utf-8"),
        predeclared if predeclared is not None else default_globals(),
        load,
        token or CancellationToken(),
    )


class TestExecModule:
    """Executing module bodies."""

    def test_satisfies_protocol(self):
        assert isinstance(PythonScriptEngine(), ScriptEngine)

    def test_returns_top_level_names(self):
        symbols = run(source("x = 1", "def f():", "    return x", "_hidden = 2"))
        assert symbols["x"] == 1
        assert callable(symbols["f"])
        assert "_hidden" in symbols

    def test_dunders_are_not_symbols(self):
        symbols = run("x = 1\n")
        assert SCRIPT_MARKER not in symbols
        assert "__builtins__" not in symbols
        assert "__name__" not in symbols

    def test_symbols_are_read_only(self):
        symbols = run("x = 1\n")
        assert isinstance(symbols, MappingProxyType)

    def test_predeclared_visible(self):
        symbols = run("y = greeting + '!'\n", predeclared={"greeting": "hi"})
        assert symbols["y"] == "hi!"

    def test_syntax_error_has_position(self):
        with pytest.raises(ExecutionError) as exc_info:
            run("def broken(:\n")
        assert exc_info.value.position.startswith("/m.py:1")
        assert isinstance(exc_info.value.__cause__, SyntaxError)

    def test_invalid_utf8(self):
        engine = PythonScriptEngine()
        with pytest.raises(ExecutionError, match="UTF-8"):
            engine.exec_module("/m.py", b"x = '\xff'\n", {}, no_load, CancellationToken())

    def test_runtime_error_has_position_and_backtrace(self):
        with pytest.raises(ExecutionError) as exc_info:
            run(source("def f():", "    return 1 // 0", "f()"))
        err = exc_info.value
        assert err.position.startswith("/m.py:2")
        assert "ZeroDivisionError" in str(err)
        assert "in f" in err.backtrace
        assert "in <module>" in err.backtrace
        assert "return 1 // 0" in err.backtrace

    def test_cancelled_token(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CancelledError):
            run("x = 1\n", token=token)


class TestSandbox:
    """Only the allow-listed builtins are reachable."""

    @pytest.mark.parametrize(
        "text",
        [
            "import os\n",
            "f = open('/etc/passwd')\n",
            "eval('1')\n",
            "class A:\n    pass\n",
            "x = __import__('os')\n",
        ],
    )
    def test_forbidden_operations(self, text):
        with pytest.raises(ExecutionError):
            run(text)

    def test_safe_builtins_excludes_escape_hatches(self):
        for name in ("__import__", "open", "eval", "exec", "__build_class__", "type"):
            assert name not in SAFE_BUILTINS

    def test_common_builtins_available(self):
        symbols = run("x = sorted(set([3, 1, 2]))\ny = len(x)\n")
        assert symbols["x"] == [1, 2, 3]
        assert symbols["y"] == 3

    @pytest.mark.parametrize(
        "text",
        [
            "x = ().__class__.__base__.__subclasses__()\n",
            "f = len.__self__\n",
            "g = (i for i in [1])\nf = g.gi_frame\n",
            "def f():\n    pass\nc = f.__globals__\n",
            "x = __builtins__\n",
            "match 1:\n    case int(__class__=c):\n        pass\n",
        ],
    )
    def test_introspection_rejected_before_running(self, text):
        with pytest.raises(ExecutionError, match="is not allowed") as exc_info:
            run(text)
        assert exc_info.value.position.startswith("/m.py:")
        assert exc_info.value.__cause__ is None

    def test_getattr_refuses_dunders(self):
        with pytest.raises(ExecutionError, match="AttributeError"):
            run('x = getattr((), "__class__")\n')

    def test_hasattr_hides_dunders(self):
        symbols = run('x = hasattr((), "__class__")\ny = hasattr(struct(a=1), "a")\n')
        assert symbols["x"] is False
        assert symbols["y"] is True

    def test_getattr_on_plain_names(self):
        symbols = run('x = getattr(struct(a=1), "a")\ny = getattr(struct(), "b", 2)\n')
        assert (symbols["x"], symbols["y"]) == (1, 2)


class TestLoadBuiltin:
    """The load() import directive."""

    def test_binds_requested_symbols(self):
        tables = {"lib.py": {"a": 1, "b": 2}}
        symbols = run('load("lib.py", "a", "b")\n', load=tables.__getitem__)
        assert (symbols["a"], symbols["b"]) == (1, 2)

    def test_alias(self):
        tables = {"lib.py": {"a": 1}}
        symbols = run('load("lib.py", other="a")\n', load=tables.__getitem__)
        assert symbols["other"] == 1
        assert "a" not in symbols

    def test_missing_symbol(self):
        tables = {"lib.py": {"a": 1}}
        with pytest.raises(ExecutionError, match="symbol 'z' not found"):
            run('load("lib.py", "z")\n', load=tables.__getitem__)

    def test_private_symbol(self):
        tables = {"lib.py": {"_a": 1}}
        with pytest.raises(ExecutionError, match="private symbol"):
            run('load("lib.py", "_a")\n', load=tables.__getitem__)

    def test_no_symbols(self):
        with pytest.raises(ExecutionError, match="no symbols requested"):
            run('load("lib.py")\n', load=lambda name: {})

    def test_non_string_module(self):
        with pytest.raises(ExecutionError, match="must be a string"):
            run('load(1, "a")\n')

    def test_load_errors_propagate_unchanged(self):
        """Errors from the loader callback are not re-wrapped."""

        def load(name):
            raise CycleError("/lib.py")

        with pytest.raises(CycleError):
            run('load("lib.py", "a")\n', load=load)

    def test_closed_after_module_body(self):
        """Functions cannot load once their module has finished executing."""
        requested = []
        symbols = run(
            source("def late():", '    load("lib.py", "a")'),
            load=lambda name: requested.append(name) or {"a": 1},
        )
        with pytest.raises(ExecutionError, match="only allowed while the module is loading"):
            PythonScriptEngine().call(symbols["late"], (), CancellationToken())
        assert requested == []


class TestCallAndIntrospection:
    """call(), is_function(), type_name()."""

    def test_call_script_function(self):
        engine = PythonScriptEngine()
        symbols = run("def double(x):\n    return x * 2\n")
        assert engine.call(symbols["double"], (3,), CancellationToken()) == 6

    def test_call_maps_errors(self):
        engine = PythonScriptEngine()
        symbols = run("def boom(ctx):\n    return ctx.missing\n")
        with pytest.raises(ExecutionError) as exc_info:
            engine.call(symbols["boom"], (object(),), CancellationToken())
        assert exc_info.value.context.function == "boom"
        assert "AttributeError" in str(exc_info.value)

    def test_call_respects_cancellation(self):
        engine = PythonScriptEngine()
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CancelledError):
            engine.call(lambda: None, (), token)

    def test_is_function(self):
        engine = PythonScriptEngine()
        symbols = run("def f():\n    pass\ng = lambda: 1\nn = 3\n")
        assert engine.is_function(symbols["f"])
        assert engine.is_function(symbols["g"])
        assert not engine.is_function(symbols["n"])
        assert not engine.is_function(len)
        assert not engine.is_function(lambda: 1)

    def test_type_name(self):
        engine = PythonScriptEngine()
        symbols = run("def f():\n    pass\n")
        assert engine.type_name(None) == "NoneType"
        assert engine.type_name(symbols["f"]) == "function"
        assert engine.type_name({}) == "dict"
        assert engine.type_name(1) == "int"


class TestFail:
    """fail() from script code."""

    def test_fail_reports_call_site(self):
        with pytest.raises(ScriptFailure) as exc_info:
            run(source("x = 1", 'fail("bad " + str(x))'))
        err = exc_info.value
        assert err.msg == "bad 1"
        assert err.position.startswith("/m.py:2")
        assert str(err).startswith(f"[{err.position}] bad 1\n")

    def test_fail_backtrace_lists_script_frames(self):
        with pytest.raises(ScriptFailure) as exc_info:
            run(source("def check(v):", "    fail('v=%d' % v)", "check(7)"))
        err = exc_info.value
        assert err.msg == "v=7"
        assert err.position.startswith("/m.py:2")
        assert "in <module>" in err.backtrace
        assert "in check" in err.backtrace
