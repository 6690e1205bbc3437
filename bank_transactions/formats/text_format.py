"""TXT codec: labeled ``key=value`` lines, one block per transaction.

Layout written by :func:`encode_records`::

    # Record 1 (DEPOSIT)
    tx_id=1001
    tx_type=DEPOSIT
    from_user_id=0
    to_user_id=42
    amount=5000
    timestamp=1700000000000
    status=SUCCESS
    description="Salary for ""March"", net"

Decoding rules:

- a record is a run of ``key=value`` lines; blank lines and ``#`` comment
  lines end the current record;
- keys are the canonical field names, matched case-insensitively; whitespace
  around keys and values is ignored;
- every key is required exactly once per record;
- a double-quoted value is unquoted, with ``""`` collapsing to ``"``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from ..errors import StructuralError
from ..io_guard import SizeGuardedReader, SizeGuardedWriter
from ..logging_setup import get_logger
from ..models import FIELD_NAMES, TextRecord
from ._fields import build_record, decode_text, encode_text

logger = get_logger("bank_transactions.formats.text")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1].replace('""', '"')
    return value


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def record_from_fields(
    fields: Mapping[str, str],
    *,
    line: int | None = None,
    field_lines: Mapping[str, int] | None = None,
) -> TextRecord:
    """Assemble a :class:`TextRecord` from a parsed ``key -> raw value`` mapping.

    ``fields`` is read, never modified, so callers may keep inspecting it.
    ``line`` is where the block starts; ``field_lines`` optionally gives each
    key's own line for error messages.
    """

    values = dict(fields)
    if "description" in values:
        values["description"] = _unquote(values["description"])
    return build_record(TextRecord, values, line=line, field_lines=field_lines)


def parse_text(text: str) -> list[TextRecord]:
    """Parse TXT ``text`` into records, failing on the first malformed block."""

    records: list[TextRecord] = []
    fields: dict[str, str] = {}
    field_lines: dict[str, int] = {}
    start_line: int | None = None

    def flush() -> None:
        nonlocal fields, field_lines, start_line
        if fields:
            records.append(record_from_fields(fields, line=start_line, field_lines=field_lines))
        fields, field_lines, start_line = {}, {}, None

    for number, raw_line in enumerate(text.splitlines(), start=1):
        stripped = raw_line.strip()
        if not stripped or stripped.startswith("#"):
            flush()
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            raise StructuralError(f"expected key=value, got {raw_line!r}", line=number)
        key = key.strip().lower()
        if key not in FIELD_NAMES:
            raise StructuralError(f"unknown key {key!r}", line=number)
        if key in fields:
            raise StructuralError(f"duplicate key {key!r}", line=number)
        if start_line is None:
            start_line = number
        fields[key] = value.strip()
        field_lines[key] = number
    flush()
    return records


def format_text_block(record: TextRecord, number: int) -> str:
    lines = [
        f"# Record {number} ({record.tx_type.label})",
        f"tx_id={record.tx_id}",
        f"tx_type={record.tx_type.label}",
        f"from_user_id={record.from_user_id}",
        f"to_user_id={record.to_user_id}",
        f"amount={record.amount}",
        f"timestamp={record.timestamp}",
        f"status={record.status.label}",
        f"description={_quote(record.description)}",
    ]
    return "\n".join(lines) + "\n"


def decode_records(reader: SizeGuardedReader) -> list[TextRecord]:
    text = decode_text(reader.read_all(), "TXT")
    records = parse_text(text)
    logger.debug("decoded %d TXT records", len(records))
    return records


def encode_records(records: Iterable[TextRecord], writer: SizeGuardedWriter) -> int:
    count = 0
    for number, record in enumerate(records, start=1):
        if number > 1:
            writer.write(b"\n")
        writer.write(encode_text(format_text_block(record, number)))
        count += 1
    logger.debug("encoded %d TXT records", count)
    return count


__all__ = [
    "decode_records",
    "encode_records",
    "format_text_block",
    "parse_text",
    "record_from_fields",
]
