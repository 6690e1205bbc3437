"""CSV codec: one header line, then one transaction per line.

Header (names are matched case-insensitively, in any order, each exactly once)::

    TX_ID,TX_TYPE,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS,DESCRIPTION

Quoting follows RFC 4180 via the stdlib :mod:`csv` module: a field may be
wrapped in double quotes, and a double quote inside it is doubled. The encoder
always quotes ``DESCRIPTION`` and never quotes the other columns, so a
description may hold commas, quotes and line breaks.

An unquoted description containing a comma splits into extra fields. That row
is ambiguous and is rejected with a ``StructuralError``; it is never truncated.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from ..errors import StructuralError
from ..io_guard import SizeGuardedReader, SizeGuardedWriter
from ..logging_setup import get_logger
from ..models import FIELD_NAMES, CsvRecord
from ._fields import build_record, decode_text, encode_text

logger = get_logger("bank_transactions.formats.csv")

HEADER: tuple[str, ...] = tuple(name.upper() for name in FIELD_NAMES)
HEADER_LINE = ",".join(HEADER)


def _is_blank(row: list[str]) -> bool:
    # An empty or whitespace-only line; a row of empty fields is data.
    return not row or (len(row) == 1 and not row[0].strip())


def _column_order(row: list[str], line: int) -> list[str]:
    """Validate the header row and return canonical field names in column order."""

    names = [cell.strip().upper() for cell in row]
    unknown = [n for n in names if n not in HEADER]
    if unknown:
        raise StructuralError(f"unknown CSV column(s): {', '.join(unknown)}", line=line)
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise StructuralError(f"duplicate CSV column(s): {', '.join(duplicates)}", line=line)
    missing = [n for n in HEADER if n not in names]
    if missing:
        raise StructuralError(f"missing CSV column(s): {', '.join(missing)}", line=line)
    return [n.lower() for n in names]


def parse_csv(text: str) -> list[CsvRecord]:
    """Parse CSV ``text`` into records, failing on the first malformed line."""

    reader = csv.reader(io.StringIO(text, newline=""), strict=True, skipinitialspace=True)
    columns: list[str] | None = None
    records: list[CsvRecord] = []
    try:
        for row in reader:
            line = reader.line_num
            if _is_blank(row):
                continue
            if columns is None:
                columns = _column_order(row, line)
                continue
            if len(row) != len(columns):
                hint = ""
                if len(row) > len(columns):
                    hint = "; a DESCRIPTION containing ',' must be double-quoted"
                raise StructuralError(
                    f"expected {len(columns)} fields, found {len(row)}{hint}", line=line
                )
            values = dict(zip(columns, row, strict=True))
            records.append(build_record(CsvRecord, values, line=line))
    except csv.Error as exc:
        raise StructuralError(f"malformed CSV: {exc}", line=reader.line_num) from exc

    if columns is None:
        raise StructuralError("CSV input has no header line", line=1)
    return records


def format_csv_line(record: CsvRecord) -> str:
    description = '"' + record.description.replace('"', '""') + '"'
    return ",".join(
        [
            str(record.tx_id),
            record.tx_type.label,
            str(record.from_user_id),
            str(record.to_user_id),
            str(record.amount),
            str(record.timestamp),
            record.status.label,
            description,
        ]
    )


def decode_records(reader: SizeGuardedReader) -> list[CsvRecord]:
    text = decode_text(reader.read_all(), "CSV")
    records = parse_csv(text)
    logger.debug("decoded %d CSV records", len(records))
    return records


def encode_records(records: Iterable[CsvRecord], writer: SizeGuardedWriter) -> int:
    writer.write((HEADER_LINE + "\n").encode("ascii"))
    count = 0
    for record in records:
        writer.write(encode_text(format_csv_line(record) + "\n"))
        count += 1
    logger.debug("encoded %d CSV records", count)
    return count


__all__ = [
    "HEADER",
    "HEADER_LINE",
    "decode_records",
    "encode_records",
    "format_csv_line",
    "parse_csv",
]
