"""Environment-driven settings for ``bank_transactions``.

Settings are read from the process environment every time
:func:`load_settings` is called; nothing is cached at import time so tests and
host applications can change the environment freely. The CLI loads a local
``.env`` (via ``python-dotenv``) before the first call.

Variables
---------
``BANK_TX_MAX_BYTES``
    Byte ceiling applied to a single read or write call. Defaults to
    :data:`DEFAULT_MAX_BYTES`.
``BANK_TX_LOG_LEVEL``
    Log level (name or number) used by the CLI when ``--log-level`` is not
    given.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_MAX_BYTES = 64 * 1024 * 1024

MAX_BYTES_ENV = "BANK_TX_MAX_BYTES"
LOG_LEVEL_ENV = "BANK_TX_LOG_LEVEL"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    max_bytes: int = DEFAULT_MAX_BYTES
    log_level: str | None = None

    @field_validator("max_bytes")
    @classmethod
    def _positive_ceiling(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"{MAX_BYTES_ENV} must be a positive integer")
        return v

    @field_validator("log_level")
    @classmethod
    def _blank_level_is_unset(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip().upper()


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``).

    Unset or empty variables fall back to the model defaults. Invalid values
    raise ``pydantic.ValidationError`` (a ``ValueError``).
    """

    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    raw_max = env.get(MAX_BYTES_ENV, "").strip()
    if raw_max:
        values["max_bytes"] = raw_max
    raw_level = env.get(LOG_LEVEL_ENV, "").strip()
    if raw_level:
        values["log_level"] = raw_level
    # Lax mode so the numeric env string coerces to int.
    return Settings.model_validate(values, strict=False)


def default_limit() -> int:
    """Return the byte ceiling currently configured for one read/write call."""

    return load_settings().max_bytes


__all__ = [
    "DEFAULT_MAX_BYTES",
    "LOG_LEVEL_ENV",
    "MAX_BYTES_ENV",
    "Settings",
    "default_limit",
    "load_settings",
]
