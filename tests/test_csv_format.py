from __future__ import annotations

import io
import textwrap

import pytest

from bank_transactions.errors import FieldParseError, StructuralError
from bank_transactions.formats import csv_format
from bank_transactions.io_guard import SizeGuardedReader, SizeGuardedWriter
from bank_transactions.models import CsvRecord, TxStatus, TxType


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


def _decode(text: str | bytes) -> list[CsvRecord]:
    data = text.encode("utf-8") if isinstance(text, str) else text
    return csv_format.decode_records(SizeGuardedReader(io.BytesIO(data)))


def _encode(records: list[CsvRecord]) -> str:
    sink = io.BytesIO()
    writer = SizeGuardedWriter(sink)
    csv_format.encode_records(records, writer)
    writer.commit()
    return sink.getvalue().decode("utf-8")


# ---- Decoding ------------------------------------------------------------------


def test_decode_basic_file():
    records = _decode(
        _dedent(
            """
            TX_ID,TX_TYPE,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS,DESCRIPTION
            1001,DEPOSIT,0,42,5000,1700000000000,SUCCESS,"Salary"
            1002,transfer,42,7,1250,1700000360000,pending,Rent share
            """
        )
    )

    assert records == [
        CsvRecord(
            tx_id=1001,
            tx_type=TxType.DEPOSIT,
            from_user_id=0,
            to_user_id=42,
            amount=5000,
            timestamp=1_700_000_000_000,
            status=TxStatus.SUCCESS,
            description="Salary",
        ),
        CsvRecord(
            tx_id=1002,
            tx_type=TxType.TRANSFER,
            from_user_id=42,
            to_user_id=7,
            amount=1250,
            timestamp=1_700_000_360_000,
            status=TxStatus.PENDING,
            description="Rent share",
        ),
    ]


def test_decode_quoted_description_with_commas_quotes_and_newline():
    records = _decode(
        'TX_ID,TX_TYPE,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS,DESCRIPTION\r\n'
        '1,DEPOSIT,0,1,10,20,SUCCESS,"a, ""b""\nc"\r\n'
    )
    assert [r.description for r in records] == ['a, "b"\nc']


def test_decode_header_may_reorder_columns_and_ignore_case():
    records = _decode(
        _dedent(
            """
            description,status,timestamp,amount,to_user_id,from_user_id,tx_type,tx_id
            "x",FAILURE,9,8,7,6,WITHDRAWAL,5
            """
        )
    )
    (record,) = records
    assert (record.tx_id, record.from_user_id, record.to_user_id) == (5, 6, 7)
    assert (record.amount, record.timestamp) == (8, 9)
    assert record.tx_type is TxType.WITHDRAWAL
    assert record.status is TxStatus.FAILURE


def test_decode_skips_blank_lines_and_bom():
    data = (
        "\ufeff"
        + csv_format.HEADER_LINE
        + "\n\n1,DEPOSIT,0,1,10,20,SUCCESS,\n\n"
    ).encode("utf-8")
    (record,) = _decode(data)
    assert record.description == ""


def test_decode_header_only_is_empty():
    assert _decode(csv_format.HEADER_LINE + "\n") == []


def test_decode_without_header_fails():
    with pytest.raises(StructuralError) as ei:
        _decode("")
    assert ei.value.line == 1


@pytest.mark.parametrize(
    "header, needle",
    [
        ("TX_ID,TX_TYPE,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS", "missing"),
        ("TX_ID,TX_TYPE,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS,DESCRIPTION,X", "unknown"),
        ("TX_ID,TX_ID,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS,DESCRIPTION", "duplicate"),
    ],
)
def test_decode_rejects_bad_header(header: str, needle: str):
    with pytest.raises(StructuralError) as ei:
        _decode(header + "\n")
    assert needle in str(ei.value)
    assert ei.value.line == 1


def test_decode_short_line_names_the_line():
    text = csv_format.HEADER_LINE + "\n1,DEPOSIT,0,1,10,20,SUCCESS,ok\n2,DEPOSIT,0,1\n"
    with pytest.raises(StructuralError) as ei:
        _decode(text)
    assert ei.value.line == 3
    assert "expected 8 fields, found 4" in str(ei.value)


def test_decode_row_of_empty_fields_is_not_skipped():
    text = (
        csv_format.HEADER_LINE
        + "\n1,DEPOSIT,0,1,10,20,SUCCESS,x\n,,,,,,,\n2,DEPOSIT,0,1,10,20,SUCCESS,y\n"
    )
    with pytest.raises(FieldParseError) as ei:
        _decode(text)
    assert ei.value.field == "tx_id"
    assert ei.value.line == 3


def test_decode_whitespace_fields_count_as_a_row():
    text = csv_format.HEADER_LINE + "\n1,DEPOSIT,0,1,10,20,SUCCESS,x\n ,  ,\n"
    with pytest.raises(StructuralError) as ei:
        _decode(text)
    assert ei.value.line == 3
    assert "expected 8 fields, found 3" in str(ei.value)


def test_decode_unquoted_comma_in_description_fails_fast():
    text = csv_format.HEADER_LINE + "\n1,DEPOSIT,0,1,10,20,SUCCESS,rent, March\n"
    with pytest.raises(StructuralError) as ei:
        _decode(text)
    assert ei.value.line == 2
    assert "double-quoted" in str(ei.value)


def test_decode_malformed_quoting_is_structural():
    text = csv_format.HEADER_LINE + '\n1,DEPOSIT,0,1,10,20,SUCCESS,"open"junk\n'
    with pytest.raises(StructuralError):
        _decode(text)


@pytest.mark.parametrize(
    "row, field",
    [
        ("x1,DEPOSIT,0,1,10,20,SUCCESS,d", "tx_id"),
        ("1,DEPOSIT,-3,1,10,20,SUCCESS,d", "from_user_id"),
        ("1,DEPOSIT,0,18446744073709551616,10,20,SUCCESS,d", "to_user_id"),
        ("1,DEPOSIT,0,1,9223372036854775808,20,SUCCESS,d", "amount"),
        ("1,DEPOSIT,0,1,10,1_000,SUCCESS,d", "timestamp"),
        ("1,REFUND,0,1,10,20,SUCCESS,d", "tx_type"),
        ("1,DEPOSIT,0,1,10,20,DONE,d", "status"),
    ],
)
def test_decode_field_errors_name_field_line_and_text(row: str, field: str):
    with pytest.raises(FieldParseError) as ei:
        _decode(csv_format.HEADER_LINE + "\n" + row + "\n")
    err = ei.value
    assert err.field == field
    assert err.line == 2
    assert err.raw in row
    assert field in str(err)
    assert "line 2" in str(err)


def test_decode_rejects_invalid_utf8():
    data = csv_format.HEADER_LINE.encode("ascii") + b"\n1,DEPOSIT,0,1,10,20,SUCCESS,\xff\n"
    with pytest.raises(StructuralError) as ei:
        _decode(data)
    assert ei.value.offset == len(csv_format.HEADER_LINE) + 1 + len("1,DEPOSIT,0,1,10,20,SUCCESS,")


# ---- Encoding ------------------------------------------------------------------


def test_encode_writes_header_and_quoted_description():
    record = CsvRecord(
        tx_id=7,
        tx_type=TxType.WITHDRAWAL,
        from_user_id=3,
        to_user_id=0,
        amount=99,
        timestamp=123,
        status=TxStatus.FAILURE,
        description='say "hi", then leave',
    )
    assert _encode([record]) == (
        "TX_ID,TX_TYPE,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS,DESCRIPTION\n"
        '7,WITHDRAWAL,3,0,99,123,FAILURE,"say ""hi"", then leave"\n'
    )


def test_encode_then_decode_preserves_records(transactions):
    records = [CsvRecord.from_transaction(tx) for tx in transactions]
    assert _decode(_encode(records)) == records


def test_encode_empty_writes_only_header():
    assert _encode([]) == csv_format.HEADER_LINE + "\n"
