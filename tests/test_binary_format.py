from __future__ import annotations

import io
import struct

import pytest

from bank_transactions.errors import (
    FieldParseError,
    RangeError,
    SizeLimitExceeded,
    StructuralError,
)
from bank_transactions.formats import binary_format
from bank_transactions.io_guard import SizeGuardedReader, SizeGuardedWriter
from bank_transactions.models import BinaryRecord, TxStatus, TxType


def _record(**overrides) -> BinaryRecord:
    fields = dict(
        tx_id=0x0102030405060708,
        tx_type=TxType.TRANSFER,
        from_user_id=11,
        to_user_id=22,
        amount=333,
        timestamp=1_700_000_000,
        status=TxStatus.PENDING,
        description="café",
    )
    fields.update(overrides)
    return BinaryRecord(**fields)


def _decode(data: bytes, limit: int | None = None) -> list[BinaryRecord]:
    return binary_format.decode_records(SizeGuardedReader(io.BytesIO(data), limit))


def _encode(records: list[BinaryRecord]) -> bytes:
    sink = io.BytesIO()
    writer = SizeGuardedWriter(sink)
    binary_format.encode_records(records, writer)
    writer.commit()
    return sink.getvalue()


class _Unsized(io.RawIOBase):
    """A readable stream that cannot report its size (like a pipe)."""

    def __init__(self, data: bytes):
        self._inner = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, b) -> int:
        chunk = self._inner.read(len(b))
        b[: len(chunk)] = chunk
        return len(chunk)


# ---- Layout --------------------------------------------------------------------


def test_pack_record_exact_bytes():
    data = binary_format.pack_record(_record())

    assert binary_format.FIXED_SIZE == 46
    assert data[:8] == bytes.fromhex("0102030405060708")
    assert data[8] == 1  # TRANSFER
    assert struct.unpack(">Q", data[9:17]) == (11,)
    assert struct.unpack(">Q", data[17:25]) == (22,)
    assert struct.unpack(">Q", data[25:33]) == (333,)
    assert struct.unpack(">Q", data[33:41]) == (1_700_000_000,)
    assert data[41] == 2  # PENDING
    assert struct.unpack(">I", data[42:46]) == (5,)  # UTF-8 bytes, not characters
    assert data[46:] == "café".encode("utf-8")


def test_encode_concatenates_without_header():
    a = _record(tx_id=1, description="")
    b = _record(tx_id=2, description="xy")
    data = _encode([a, b])
    assert data == binary_format.pack_record(a) + binary_format.pack_record(b)
    assert len(data) == 46 + 46 + 2


def test_decode_is_exact_inverse_of_encode():
    records = [
        _record(),
        _record(tx_id=2**64 - 1, amount=2**63 - 1, timestamp=0, description=""),
        _record(tx_type=TxType.DEPOSIT, status=TxStatus.SUCCESS, description="x" * 70_000),
    ]
    data = _encode(records)
    assert _decode(data) == records
    assert _encode(_decode(data)) == data


def test_decode_empty_stream():
    assert _decode(b"") == []


# ---- Malformed input ---------------------------------------------------------------


def test_unknown_tx_type_reports_absolute_offset_and_value():
    good = binary_format.pack_record(_record())
    bad = bytearray(binary_format.pack_record(_record()))
    bad[8] = 0x07
    with pytest.raises(StructuralError) as ei:
        _decode(good + bytes(bad))
    assert ei.value.offset == len(good) + 8
    assert "0x07" in str(ei.value)


def test_unknown_status_reports_offset():
    bad = bytearray(binary_format.pack_record(_record()))
    bad[41] = 0xFF
    with pytest.raises(StructuralError) as ei:
        _decode(bytes(bad))
    assert ei.value.offset == 41
    assert "0xff" in str(ei.value)


def test_amount_above_signed_range_is_field_error():
    bad = bytearray(binary_format.pack_record(_record()))
    bad[25:33] = struct.pack(">Q", 2**63)
    with pytest.raises(FieldParseError) as ei:
        _decode(bytes(bad))
    assert ei.value.field == "amount"
    assert ei.value.offset == 25


@pytest.mark.parametrize("cut", [1, 20, 45])
def test_truncated_record_is_structural(cut: int):
    data = binary_format.pack_record(_record())
    with pytest.raises(StructuralError) as ei:
        _decode(data + data[:cut])
    assert ei.value.offset == len(data)
    assert "record header" in str(ei.value)


def test_truncated_record_on_unsized_stream_names_offset():
    data = binary_format.pack_record(_record())
    reader = SizeGuardedReader(_Unsized(data[:48]))
    with pytest.raises(StructuralError) as ei:
        binary_format.decode_records(reader)
    assert ei.value.offset == 46
    assert "description" in str(ei.value)


def test_length_prefix_beyond_stream_size_fails_before_reading():
    header = bytearray(binary_format.pack_record(_record(description="")))
    header[42:46] = struct.pack(">I", 2**32 - 1)
    with pytest.raises(SizeLimitExceeded) as ei:
        _decode(bytes(header) + b"abc", limit=2**40)
    assert ei.value.limit == 49
    assert ei.value.actual == 46 + 2**32 - 1


def test_length_prefix_beyond_ceiling_on_unsized_stream():
    header = bytearray(binary_format.pack_record(_record(description="")))
    header[42:46] = struct.pack(">I", 1_000_000)
    reader = SizeGuardedReader(_Unsized(bytes(header)), limit=4096)
    with pytest.raises(SizeLimitExceeded) as ei:
        binary_format.decode_records(reader)
    assert ei.value.limit == 4096


def test_invalid_utf8_description():
    header = bytearray(binary_format.pack_record(_record(description="")))
    header[42:46] = struct.pack(">I", 2)
    with pytest.raises(FieldParseError) as ei:
        _decode(bytes(header) + b"a\xff")
    assert ei.value.field == "description"
    assert ei.value.offset == 47


def test_oversized_description_cannot_be_packed(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(binary_format, "U32_MAX", 3)
    with pytest.raises(RangeError) as ei:
        binary_format.pack_record(_record(description="four"))
    assert ei.value.field == "description"
