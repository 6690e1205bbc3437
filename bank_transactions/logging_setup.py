"""Logging for ``bank_transactions``.

Codecs log decoded/encoded record counts at DEBUG, the conversion facade logs
one INFO line per conversion or comparison, and the CLI logs failures before it
exits. None of them attach handlers: they call :func:`get_logger` and leave
output to whoever runs them.

:func:`configure_logging` is the single place that installs a handler. The CLI
calls it from its root callback; a host application may call it instead, or
configure the ``"bank_transactions"`` logger itself.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

from .config import load_settings

_PKG_LOGGER_NAME = "bank_transactions"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _level_from_text(text: str) -> int | None:
    text = text.strip().upper()
    if text.isdigit():
        return int(text)
    return logging.getLevelNamesMapping().get(text)


def _resolve_level(level: int | str | None) -> int:
    """Turn ``level`` into a numeric level; unknown names fall back to INFO.

    ``None`` means "use ``BANK_TX_LOG_LEVEL`` when set".
    """

    if isinstance(level, int):
        return level
    if level is None:
        level = load_settings().log_level
        if level is None:
            return logging.INFO
    resolved = _level_from_text(level)
    return logging.INFO if resolved is None else resolved


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Send package log records to ``stream`` (``sys.stderr`` by default).

    Only the first call has an effect. Records stop propagating to the root
    logger so a host that also configures the root does not print them twice.

    Parameters
    ----------
    level:
        Level name (``"debug"``), numeric string or ``int``. ``None`` reads
        ``BANK_TX_LOG_LEVEL``; without it the level is INFO.
    fmt:
        ``logging.Formatter`` format string.
    stream:
        Text stream for the handler, resolved at call time so captured
        ``sys.stderr`` replacements are honoured.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in [h for h in pkg_logger.handlers if isinstance(h, logging.NullHandler)]:
        pkg_logger.removeHandler(h)

    resolved = _resolve_level(level)
    handler = logging.StreamHandler(sys.stderr if stream is None else stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(resolved)
    pkg_logger.propagate = False
    _CONFIGURED = True


def reset_logging() -> None:
    """Undo :func:`configure_logging`; tests call this between cases."""

    global _CONFIGURED
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(pkg_logger.handlers):
        pkg_logger.removeHandler(h)
    pkg_logger.setLevel(logging.NOTSET)
    pkg_logger.propagate = True
    _CONFIGURED = False


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` for a module of this package.

    Until :func:`configure_logging` runs, the package logger carries a
    ``NullHandler`` so importing the library never prints anything.
    """

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "reset_logging"]
