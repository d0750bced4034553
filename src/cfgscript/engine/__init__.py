"""
Script engine: the interpreter behind config modules.

This module provides:
- PythonScriptEngine, the default ScriptEngine implementation
- Predeclared globals (fail, print, struct, hash, json, yaml, url)
- Test helpers (catch, matches, asserts)

Other engines plug in through cfgscript.core.protocols.ScriptEngine.
"""

from cfgscript.engine.helpers import asserts, catch, helper_globals, matches
from cfgscript.engine.predeclared import Struct, default_globals, fail, struct_fields, to_plain
from cfgscript.engine.python import SAFE_BUILTINS, PythonScriptEngine

__all__ = [
    "PythonScriptEngine",
    "SAFE_BUILTINS",
    "Struct",
    "struct_fields",
    "default_globals",
    "fail",
    "to_plain",
    "asserts",
    "catch",
    "matches",
    "helper_globals",
]
