"""cfgscript core -- errors, logging, settings and collaborator contracts.

Manifesto:
    The loader and the harnesses share one vocabulary of failures, one
    logging setup and one set of protocols. Keeping them in a layer with
    no dependency on the rest of the package lets every other module
    import from here without cycles.

Architecture::

    errors.py          Structured error hierarchy (CfgScriptError, LoadError, ...)
    protocols.py       Resolver, ContentStore, ScriptEngine, ValueBridge
    cancellation.py    CancellationToken threaded through blocking calls
    logging.py         structlog configuration + get_logger
    settings.py        CFGSCRIPT_* settings (pydantic-settings)

Tags:
    cfgscript, core, errors, protocols

Doc-Types:
    api-reference
"""

from cfgscript.core.cancellation import CancellationToken, background
from cfgscript.core.errors import (
    CancelledError,
    CfgScriptError,
    ContractError,
    CycleError,
    ErrorCategory,
    ErrorContext,
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
from cfgscript.core.protocols import (
    ContentStore,
    FileReader,
    ModulePath,
    RecordMatch,
    Resolver,
    ScriptEngine,
    SymbolTable,
    ValueBridge,
)

__all__ = [
    "CancellationToken",
    "background",
    "CancelledError",
    "CfgScriptError",
    "ContractError",
    "CycleError",
    "ErrorCategory",
    "ErrorContext",
    "ExecutionError",
    "FetchError",
    "InvalidReturnShapeError",
    "LoadError",
    "NoMainFunctionError",
    "NotCallableError",
    "ResolveError",
    "ScriptFailure",
    "TestExecutionError",
    "TestNotRunError",
    "TestSuiteError",
    "ContentStore",
    "FileReader",
    "ModulePath",
    "RecordMatch",
    "Resolver",
    "ScriptEngine",
    "SymbolTable",
    "ValueBridge",
]
