"""Field parsing shared by the CSV and TXT codecs.

Both text formats first collect a record's raw values into a mapping keyed by
canonical field name, then hand that mapping to :func:`build_record`. Parsing
errors name the field, the offending text and the line.
"""

from __future__ import annotations

import codecs
from collections.abc import Mapping
from typing import TypeVar

from ..errors import ConversionError, FieldParseError, StructuralError
from ..models import AMOUNT_MAX, FIELD_NAMES, U64_MAX, TxStatus, TxType

_UINT_LIMITS: dict[str, int] = {
    "tx_id": U64_MAX,
    "from_user_id": U64_MAX,
    "to_user_id": U64_MAX,
    "amount": AMOUNT_MAX,
    "timestamp": U64_MAX,
}

R = TypeVar("R")


def parse_uint(field: str, raw: str, maximum: int, *, line: int | None = None) -> int:
    """Parse ASCII decimal digits into an int no larger than ``maximum``."""

    text = raw.strip()
    # int() would also accept signs, underscores and non-ASCII digits.
    if not text or not text.isascii() or not text.isdigit():
        raise FieldParseError(field, raw, "expected an unsigned decimal integer", line=line)
    value = int(text)
    if value > maximum:
        raise FieldParseError(field, raw, f"value exceeds the maximum of {maximum}", line=line)
    return value


def parse_enum(
    enum_cls: type[TxType] | type[TxStatus], field: str, raw: str, *, line: int | None = None
) -> TxType | TxStatus:
    try:
        return enum_cls.parse(raw)
    except ValueError as exc:
        raise FieldParseError(field, raw, str(exc), line=line) from exc


def build_record(
    record_cls: type[R],
    values: Mapping[str, str],
    *,
    line: int | None = None,
    field_lines: Mapping[str, int] | None = None,
) -> R:
    """Assemble ``record_cls`` from raw string ``values`` keyed by field name.

    ``values`` is only read. ``field_lines`` optionally maps a field to the
    line it came from so errors can point at it; otherwise ``line`` is used.
    """

    missing = [name for name in FIELD_NAMES if name not in values]
    if missing:
        raise StructuralError(f"missing required field(s): {', '.join(missing)}", line=line)

    def where(name: str) -> int | None:
        if field_lines is not None and name in field_lines:
            return field_lines[name]
        return line

    parsed: dict[str, object] = {
        name: parse_uint(name, values[name], maximum, line=where(name))
        for name, maximum in _UINT_LIMITS.items()
    }
    parsed["tx_type"] = parse_enum(TxType, "tx_type", values["tx_type"], line=where("tx_type"))
    parsed["status"] = parse_enum(TxStatus, "status", values["status"], line=where("status"))
    parsed["description"] = values["description"]
    return record_cls(**parsed)


def decode_text(data: bytes, format_name: str) -> str:
    """Decode UTF-8 input; a leading BOM is dropped, offsets still count it."""

    prefix = len(codecs.BOM_UTF8) if data.startswith(codecs.BOM_UTF8) else 0
    try:
        return data[prefix:].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise StructuralError(
            f"{format_name} input is not valid UTF-8: {exc.reason}", offset=prefix + exc.start
        ) from exc


def encode_text(text: str, field: str = "description") -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ConversionError(field, text, f"not encodable as UTF-8: {exc.reason}") from exc
