"""Binary codec: concatenated fixed-layout records, big-endian, no file header.

Record layout (offsets relative to the record start)::

    0   u64  tx_id
    8   u8   tx_type discriminant
    9   u64  from_user_id
    17  u64  to_user_id
    25  u64  amount (at most 2**63-1)
    33  u64  timestamp
    41  u8   status discriminant
    42  u32  description length L
    46  L    description bytes (UTF-8)

Each record self-delimits through ``L``; a clean end of stream at a record
boundary ends the sequence. A zero ``L`` marks an absent description.

Error offsets are absolute positions in the stream.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable

from ..errors import FieldParseError, RangeError, StructuralError
from ..io_guard import SizeGuardedReader, SizeGuardedWriter
from ..logging_setup import get_logger
from ..models import AMOUNT_MAX, BinaryRecord, TxStatus, TxType
from ._fields import encode_text

logger = get_logger("bank_transactions.formats.binary")

FIXED = struct.Struct(">QBQQQQBI")
FIXED_SIZE = FIXED.size  # 46
U32_MAX = 2**32 - 1

# Field offsets inside the fixed part, for error reporting.
TX_TYPE_OFFSET = 8
AMOUNT_OFFSET = 25
STATUS_OFFSET = 41


def _read_record(reader: SizeGuardedReader) -> BinaryRecord:
    start = reader.position
    (
        tx_id,
        tx_type_byte,
        from_user_id,
        to_user_id,
        amount,
        timestamp,
        status_byte,
        desc_len,
    ) = FIXED.unpack(reader.read_exact(FIXED_SIZE, "record header"))

    tx_type = TxType.from_byte(tx_type_byte)
    if tx_type is None:
        raise StructuralError(
            f"unknown tx_type discriminant {tx_type_byte:#04x}", offset=start + TX_TYPE_OFFSET
        )
    status = TxStatus.from_byte(status_byte)
    if status is None:
        raise StructuralError(
            f"unknown status discriminant {status_byte:#04x}", offset=start + STATUS_OFFSET
        )
    if amount > AMOUNT_MAX:
        raise FieldParseError(
            "amount",
            amount,
            f"value exceeds the maximum of {AMOUNT_MAX}",
            offset=start + AMOUNT_OFFSET,
        )

    desc_offset = reader.position
    # Check the prefix against what the source can hold before allocating.
    reader.ensure_available(desc_len, "description")
    raw = reader.read_exact(desc_len, "description")
    try:
        description = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FieldParseError(
            "description", raw[:32], f"invalid UTF-8: {exc.reason}", offset=desc_offset + exc.start
        ) from exc

    return BinaryRecord(
        tx_id=tx_id,
        tx_type=tx_type,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        amount=amount,
        timestamp=timestamp,
        status=status,
        description=description,
    )


def pack_record(record: BinaryRecord) -> bytes:
    """Return the exact byte layout of ``record``."""

    desc = encode_text(record.description)
    if len(desc) > U32_MAX:
        raise RangeError("description", len(desc), "byte length does not fit the 32-bit prefix")
    header = FIXED.pack(
        record.tx_id,
        record.tx_type.value,
        record.from_user_id,
        record.to_user_id,
        record.amount,
        record.timestamp,
        record.status.value,
        len(desc),
    )
    return header + desc


def decode_records(reader: SizeGuardedReader) -> list[BinaryRecord]:
    records: list[BinaryRecord] = []
    while not reader.at_eof():
        records.append(_read_record(reader))
    logger.debug("decoded %d binary records", len(records))
    return records


def encode_records(records: Iterable[BinaryRecord], writer: SizeGuardedWriter) -> int:
    count = 0
    for record in records:
        writer.write(pack_record(record))
        count += 1
    logger.debug("encoded %d binary records", count)
    return count


__all__ = [
    "FIXED_SIZE",
    "decode_records",
    "encode_records",
    "pack_record",
]
