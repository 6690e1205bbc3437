"""Typed errors raised by the ``bank_transactions`` codecs and facade.

Every error derives from :class:`ParseError` so callers can catch the whole
family at one seam (the CLI does exactly that). Position data is carried as
attributes and folded into the message:

- text formats report a 1-based ``line``;
- the binary format reports an absolute, 0-based byte ``offset``.
"""

from __future__ import annotations

from typing import Any


def _where(line: int | None, offset: int | None) -> str:
    parts: list[str] = []
    if line is not None:
        parts.append(f"line {line}")
    if offset is not None:
        parts.append(f"offset {offset}")
    return f" ({', '.join(parts)})" if parts else ""


class ParseError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, *, line: int | None = None, offset: int | None = None):
        self.message = message
        self.line = line
        self.offset = offset
        super().__init__(f"{message}{_where(line, offset)}")


class StructuralError(ParseError):
    """Malformed record shape: bad header, unknown key or discriminant, truncation."""


class FieldParseError(ParseError):
    """A single field's text or bytes could not be parsed as its typed value."""

    def __init__(
        self,
        field: str,
        raw: Any,
        reason: str,
        *,
        line: int | None = None,
        offset: int | None = None,
    ):
        self.field = field
        self.raw = raw
        self.reason = reason
        super().__init__(f"invalid value for {field}: {raw!r} ({reason})", line=line, offset=offset)


class ConversionError(ParseError):
    """A canonical value cannot be expressed by the target format."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"cannot convert {field}={value!r}: {reason}")


class RangeError(ConversionError):
    """A numeric value lies outside the representable range of its target."""


class SizeLimitExceeded(ParseError):
    """A read or write would exceed the configured byte ceiling."""

    def __init__(self, actual: int, limit: int):
        self.actual = actual
        self.limit = limit
        super().__init__(f"size limit exceeded: {actual} bytes requested, limit is {limit} bytes")


class StreamError(ParseError):
    """The underlying byte stream failed; the ``OSError`` is chained as the cause."""


class UnsupportedFormatError(ParseError, ValueError):
    """Unknown format name passed to :meth:`SupportedFormat.parse`."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unsupported format {name!r}; expected one of: csv, txt, bin")


__all__ = [
    "ConversionError",
    "FieldParseError",
    "ParseError",
    "RangeError",
    "SizeLimitExceeded",
    "StreamError",
    "StructuralError",
    "UnsupportedFormatError",
]
