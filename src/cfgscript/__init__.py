"""
cfgscript - configuration as small scripts, with a typed output contract.

A config is a graph of script modules. ``load()`` executes the graph once
(memoized, cycle-safe) and returns an immutable Config. ``Config.main()``
calls the config's ``main(ctx)`` and checks that it returned a list of
registered records; ``Config.run_tests()`` runs the ``test_*`` functions
defined alongside it.

Usage:
    import cfgscript
    from pydantic import BaseModel

    registry = cfgscript.RecordRegistry()

    @registry.register
    class Deployment(BaseModel):
        name: str
        replicas: int = 1

    config = cfgscript.load("deploy/main.py", cfgscript.with_record_registry(registry))
    deployments = config.main(cfgscript.with_vars({"env": "prod"}))
"""

from cfgscript.config import (
    Config,
    LoadOption,
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
    CfgScriptError,
    ContractError,
    CycleError,
    ExecutionError,
    FetchError,
    InvalidReturnShapeError,
    LoadError,
    NoMainFunctionError,
    NotCallableError,
    ResolveError,
    ScriptFailure,
    TestExecutionError,
    TestNotRunError,
    TestSuiteError,
)
from cfgscript.engine.predeclared import Struct
from cfgscript.engine.python import PythonScriptEngine
from cfgscript.harness.execution import ExecutionContext, with_vars
from cfgscript.harness.testing import TestCase, TestOutcome, TestReport
from cfgscript.loading.reader import LocalFileReader
from cfgscript.records import PydanticBridge, RecordRegistry

__version__ = "0.1.0"

__all__ = [
    # Loading
    "Config",
    "LoadOption",
    "load",
    "with_engine",
    "with_file_reader",
    "with_globals",
    "with_record_registry",
    "with_test_helpers",
    "LocalFileReader",
    "PythonScriptEngine",
    # Records
    "RecordRegistry",
    "PydanticBridge",
    "Struct",
    # Execution
    "CancellationToken",
    "ExecutionContext",
    "with_vars",
    "TestCase",
    "TestOutcome",
    "TestReport",
    # Errors
    "CfgScriptError",
    "LoadError",
    "ResolveError",
    "FetchError",
    "CycleError",
    "ExecutionError",
    "ScriptFailure",
    "CancelledError",
    "ContractError",
    "NoMainFunctionError",
    "NotCallableError",
    "InvalidReturnShapeError",
    "TestExecutionError",
    "TestSuiteError",
    "TestNotRunError",
]
