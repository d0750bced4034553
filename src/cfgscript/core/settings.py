"""Process-level settings for cfgscript.

Library calls take explicit arguments; these settings only supply the
defaults the CLI passes down when the user gives no flag.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** Reads ``CFGSCRIPT_*`` env vars and ``.env``
    - **Sensible defaults:** ``main`` entry point, ``test_`` prefix

Examples:
    >>> import os
    >>> os.environ["CFGSCRIPT_LOG_LEVEL"] = "DEBUG"
    >>> get_settings(_force_reload=True).log_level
    'DEBUG'

Tags:
    settings, configuration, pydantic, environment, cfgscript

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CfgScriptSettings(BaseSettings):
    """Settings shared by the CLI and harness defaults.

    Fields
    ──────
    log_level        : Structlog log level
    log_json         : Force JSON (True) or console (False) logs; None = auto
    entry_point      : Name of the production entry function
    test_prefix      : Prefix that marks a top-level function as a test
    default_timeout  : Seconds before a run is cancelled; None = no deadline
    """

    model_config = SettingsConfigDict(
        env_prefix="CFGSCRIPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    log_json: bool | None = None

    # ── Harness ──────────────────────────────────────────────────
    entry_point: str = "main"
    test_prefix: str = "test_"
    default_timeout: float | None = Field(
        default=None,
        description="Deadline in seconds applied to CLI runs",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @field_validator("entry_point", "test_prefix")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value


_settings: CfgScriptSettings | None = None


def get_settings(*, _force_reload: bool = False) -> CfgScriptSettings:
    """Get or create the settings instance."""
    global _settings
    if _settings is None or _force_reload:
        _settings = CfgScriptSettings()
    return _settings


__all__ = ["CfgScriptSettings", "get_settings"]
