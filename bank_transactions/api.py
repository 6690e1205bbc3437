"""Public API: per-format read/write, conversion and comparison.

Every function here is a thin orchestration over the codecs in
:mod:`bank_transactions.formats` and the guards in
:mod:`bank_transactions.io_guard`:

- reads fail on the first structural, field or size error and return nothing
  partial;
- writes are all-or-nothing: bytes reach the sink only after every record has
  been encoded within the byte ceiling;
- ``limit`` overrides the configured byte ceiling for that single call.

``reader``/``writer`` arguments are binary streams (anything with
``read(n)``/``write(b)``).
"""

from __future__ import annotations

import os
import stat
import tempfile
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from os import PathLike
from pathlib import Path
from typing import Any, Self, TypeAlias

from .errors import StreamError, UnsupportedFormatError
from .formats import binary_format, csv_format, text_format
from .io_guard import SizeGuardedReader, guarded_writer
from .logging_setup import get_logger
from .models import BinaryRecord, CsvRecord, TextRecord, Transaction

logger = get_logger("bank_transactions.api")

Transactions: TypeAlias = Sequence[Transaction]


class SupportedFormat(StrEnum):
    CSV = "csv"
    TEXT = "txt"
    BINARY = "bin"

    @classmethod
    def parse(cls, name: str | Self) -> Self:
        """Resolve ``csv``, ``txt``/``text`` or ``bin``/``binary`` (any case)."""

        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        aliases = {"text": "txt", "binary": "bin"}
        try:
            return cls(aliases.get(key, key))
        except ValueError:
            raise UnsupportedFormatError(str(name)) from None


# ---------------------------------------------------------------------------
# Per-format entry points
# ---------------------------------------------------------------------------


def read_csv(reader: Any, *, limit: int | None = None) -> list[CsvRecord]:
    return csv_format.decode_records(SizeGuardedReader(reader, limit))


def write_csv(writer: Any, records: Iterable[CsvRecord], *, limit: int | None = None) -> None:
    with guarded_writer(writer, limit) as out:
        csv_format.encode_records(records, out)


def read_text(reader: Any, *, limit: int | None = None) -> list[TextRecord]:
    return text_format.decode_records(SizeGuardedReader(reader, limit))


def write_text(writer: Any, records: Iterable[TextRecord], *, limit: int | None = None) -> None:
    with guarded_writer(writer, limit) as out:
        text_format.encode_records(records, out)


def read_binary(reader: Any, *, limit: int | None = None) -> list[BinaryRecord]:
    return binary_format.decode_records(SizeGuardedReader(reader, limit))


def write_binary(
    writer: Any, records: Iterable[BinaryRecord], *, limit: int | None = None
) -> None:
    with guarded_writer(writer, limit) as out:
        binary_format.encode_records(records, out)


@dataclass(frozen=True, slots=True)
class _Codec:
    record_cls: type[CsvRecord] | type[TextRecord] | type[BinaryRecord]
    read: Callable[..., list[Any]]
    write: Callable[..., None]


_CODECS: dict[SupportedFormat, _Codec] = {
    SupportedFormat.CSV: _Codec(CsvRecord, read_csv, write_csv),
    SupportedFormat.TEXT: _Codec(TextRecord, read_text, write_text),
    SupportedFormat.BINARY: _Codec(BinaryRecord, read_binary, write_binary),
}


def _output_mode(path: Path) -> int:
    """Permission bits for a converted file: the existing target's, else 0o666 minus umask."""

    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


# ---------------------------------------------------------------------------
# Canonical-level operations
# ---------------------------------------------------------------------------


def read_transactions(
    reader: Any, fmt: SupportedFormat | str, *, limit: int | None = None
) -> list[Transaction]:
    """Decode ``reader`` as ``fmt`` and return canonical transactions in order."""

    codec = _CODECS[SupportedFormat.parse(fmt)]
    return [record.to_transaction() for record in codec.read(reader, limit=limit)]


def write_transactions(
    writer: Any,
    fmt: SupportedFormat | str,
    transactions: Iterable[Transaction],
    *,
    limit: int | None = None,
) -> int:
    """Encode canonical ``transactions`` as ``fmt``; return the record count.

    Every record is converted before anything is written, so a
    ``ConversionError`` on record N leaves the sink untouched.
    """

    codec = _CODECS[SupportedFormat.parse(fmt)]
    records = [codec.record_cls.from_transaction(tx) for tx in transactions]
    codec.write(writer, records, limit=limit)
    return len(records)


def convert(
    reader: Any,
    source_format: SupportedFormat | str,
    writer: Any,
    target_format: SupportedFormat | str,
    *,
    limit: int | None = None,
) -> int:
    """Read ``source_format`` records and write them as ``target_format``."""

    src = SupportedFormat.parse(source_format)
    dst = SupportedFormat.parse(target_format)
    transactions = read_transactions(reader, src, limit=limit)
    count = write_transactions(writer, dst, transactions, limit=limit)
    logger.info("converted %d records from %s to %s", count, src, dst)
    return count


def convert_file(
    source_path: str | PathLike[str],
    source_format: SupportedFormat | str,
    target_path: str | PathLike[str],
    target_format: SupportedFormat | str,
    *,
    limit: int | None = None,
) -> int:
    """Convert between files without ever leaving a truncated target.

    Output goes to a temporary file next to ``target_path`` that replaces the
    target only after the whole conversion succeeded.
    """

    src_path = Path(source_path)
    dst_path = Path(target_path)
    try:
        with src_path.open("rb") as src:
            transactions = read_transactions(src, source_format, limit=limit)
    except OSError as exc:
        raise StreamError(f"cannot read {src_path}: {exc}") from exc

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{dst_path.name}.", suffix=".tmp", dir=dst_path.parent
        )
    except OSError as exc:
        raise StreamError(f"cannot write {dst_path}: {exc}") from exc
    try:
        with os.fdopen(fd, "wb") as tmp:
            count = write_transactions(tmp, target_format, transactions, limit=limit)
        # mkstemp creates the file 0o600.
        os.chmod(tmp_name, _output_mode(dst_path))
        os.replace(tmp_name, dst_path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise StreamError(f"cannot write {dst_path}: {exc}") from exc
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("wrote %d records to %s", count, dst_path)
    return count


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    """Outcome of an index-wise comparison of two transaction sequences.

    Attributes
    ----------
    identical:
        ``True`` only when both sides have the same length and every pair at
        the same index is equal.
    mismatches:
        Number of unequal index-wise pairs plus the length difference.
    left_count, right_count:
        Number of transactions on each side.
    first_difference:
        Index of the first unequal pair (or of the first unmatched record when
        one side is a prefix of the other); ``None`` when identical.
    """

    identical: bool
    mismatches: int
    left_count: int
    right_count: int
    first_difference: int | None = None

    @property
    def verdict(self) -> str:
        return "IDENTICAL" if self.identical else "DIFFERENT"


def compare_transactions(left: Transactions, right: Transactions) -> ComparisonResult:
    """Compare two sequences index by index.

    Order matters: the same records in a different order are DIFFERENT, and
    records are not matched by ``tx_id``.
    """

    unequal = [i for i, (a, b) in enumerate(zip(left, right)) if a != b]
    length_gap = abs(len(left) - len(right))
    first: int | None = unequal[0] if unequal else None
    if first is None and length_gap:
        first = min(len(left), len(right))
    return ComparisonResult(
        identical=not unequal and not length_gap,
        mismatches=len(unequal) + length_gap,
        left_count=len(left),
        right_count=len(right),
        first_difference=first,
    )


def compare(
    left_reader: Any,
    left_format: SupportedFormat | str,
    right_reader: Any,
    right_format: SupportedFormat | str,
    *,
    limit: int | None = None,
) -> ComparisonResult:
    """Read both sides fully into canonical form, then compare them index-wise."""

    left = read_transactions(left_reader, left_format, limit=limit)
    right = read_transactions(right_reader, right_format, limit=limit)
    result = compare_transactions(left, right)
    logger.info(
        "compared %d vs %d records: %s (%d mismatches)",
        result.left_count,
        result.right_count,
        result.verdict,
        result.mismatches,
    )
    return result


__all__ = [
    "ComparisonResult",
    "SupportedFormat",
    "Transactions",
    "compare",
    "compare_transactions",
    "convert",
    "convert_file",
    "read_binary",
    "read_csv",
    "read_text",
    "read_transactions",
    "write_binary",
    "write_csv",
    "write_text",
    "write_transactions",
]
