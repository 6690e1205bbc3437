"""Canonical transaction model and the per-format record shapes.

All codecs route through :class:`Transaction`. Each on-disk format has its own
record type (:class:`CsvRecord`, :class:`TextRecord`, :class:`BinaryRecord`)
that mirrors the canonical fields with the format's exact value shapes:

- ``amount`` is non-negative and limited to ``0 .. 2**63-1`` so that
  :meth:`to_transaction` never overflows the canonical signed amount;
- ``description`` is a mandatory (possibly empty) string.

Conversion directions
---------------------
``record.to_transaction()``
    Total: every valid format record has a canonical form.
``Record.from_transaction(tx)``
    Partial: raises :class:`~bank_transactions.errors.RangeError` when ``tx``
    holds a value the format cannot carry (negative ``amount``, a line break
    inside a TXT description). An absent description becomes ``""``.

Description coercion
--------------------
CSV and TXT have no "no description" marker, so a decoded description is
always a string. The binary format treats a zero-length description as absent,
so ``""`` decodes to ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Self

from .errors import RangeError

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1
# Format records store amounts unsigned but must fit the canonical i64.
AMOUNT_MAX = I64_MAX

# Field order shared by every format (CSV columns, TXT keys, binary layout).
FIELD_NAMES: tuple[str, ...] = (
    "tx_id",
    "tx_type",
    "from_user_id",
    "to_user_id",
    "amount",
    "timestamp",
    "status",
    "description",
)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class _CodedEnum(IntEnum):
    """Integer enum whose value is the binary discriminant and name the text form."""

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parse the text form case-insensitively; raise ``ValueError`` otherwise."""

        try:
            return cls[text.strip().upper()]
        except KeyError:
            allowed = ", ".join(m.name for m in cls)
            raise ValueError(f"unknown {cls.__name__} {text!r}; expected one of: {allowed}") from None

    @classmethod
    def from_byte(cls, value: int) -> Self | None:
        try:
            return cls(value)
        except ValueError:
            return None


class TxType(_CodedEnum):
    DEPOSIT = 0
    TRANSFER = 1
    WITHDRAWAL = 2


class TxStatus(_CodedEnum):
    SUCCESS = 0
    FAILURE = 1
    PENDING = 2


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_int(field: str, value: object, low: int, high: int) -> None:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an int, got {type(value).__name__}")
    if not low <= value <= high:
        raise RangeError(field, value, f"must be within [{low}, {high}]")


def _check_enums(tx_type: object, status: object) -> None:
    if not isinstance(tx_type, TxType):
        raise TypeError(f"tx_type must be a TxType, got {tx_type!r}")
    if not isinstance(status, TxStatus):
        raise TypeError(f"status must be a TxStatus, got {status!r}")


# ---------------------------------------------------------------------------
# Canonical record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """The canonical bank transaction every format converts through.

    Attributes
    ----------
    tx_id:
        Unsigned 64-bit identifier. Uniqueness within a dataset is a
        convention; it is not enforced here.
    tx_type:
        Kind of transaction.
    from_user_id, to_user_id:
        Unsigned 64-bit account identifiers.
    amount:
        Signed 64-bit amount. Negative values exist only in canonical form and
        cannot be encoded by any format.
    timestamp:
        Unsigned 64-bit time since epoch; the unit is not interpreted.
    status:
        Processing status.
    description:
        Optional free text; ``None`` when absent.
    """

    tx_id: int
    tx_type: TxType
    from_user_id: int
    to_user_id: int
    amount: int
    timestamp: int
    status: TxStatus
    description: str | None = None

    def __post_init__(self) -> None:
        _check_int("tx_id", self.tx_id, 0, U64_MAX)
        _check_int("from_user_id", self.from_user_id, 0, U64_MAX)
        _check_int("to_user_id", self.to_user_id, 0, U64_MAX)
        _check_int("amount", self.amount, I64_MIN, I64_MAX)
        _check_int("timestamp", self.timestamp, 0, U64_MAX)
        _check_enums(self.tx_type, self.status)
        if self.description is not None and not isinstance(self.description, str):
            raise TypeError("description must be a str or None")


# ---------------------------------------------------------------------------
# Format records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _FormatRecord:
    FORMAT_NAME: ClassVar[str] = ""

    tx_id: int
    tx_type: TxType
    from_user_id: int
    to_user_id: int
    amount: int
    timestamp: int
    status: TxStatus
    description: str

    def __post_init__(self) -> None:
        _check_int("tx_id", self.tx_id, 0, U64_MAX)
        _check_int("from_user_id", self.from_user_id, 0, U64_MAX)
        _check_int("to_user_id", self.to_user_id, 0, U64_MAX)
        _check_int("amount", self.amount, 0, AMOUNT_MAX)
        _check_int("timestamp", self.timestamp, 0, U64_MAX)
        _check_enums(self.tx_type, self.status)
        if not isinstance(self.description, str):
            raise TypeError("description must be a str")
        self._check_description(self.description)

    @classmethod
    def _check_description(cls, description: str) -> None:
        """Hook for formats that cannot carry every string."""

    def _canonical_description(self) -> str | None:
        return self.description

    def to_transaction(self) -> Transaction:
        return Transaction(
            tx_id=self.tx_id,
            tx_type=self.tx_type,
            from_user_id=self.from_user_id,
            to_user_id=self.to_user_id,
            amount=self.amount,
            timestamp=self.timestamp,
            status=self.status,
            description=self._canonical_description(),
        )

    @classmethod
    def from_transaction(cls, tx: Transaction) -> Self:
        if tx.amount < 0:
            raise RangeError(
                "amount",
                tx.amount,
                f"negative amounts cannot be encoded as {cls.FORMAT_NAME}",
            )
        description = tx.description if tx.description is not None else ""
        cls._check_description(description)
        return cls(
            tx_id=tx.tx_id,
            tx_type=tx.tx_type,
            from_user_id=tx.from_user_id,
            to_user_id=tx.to_user_id,
            amount=tx.amount,
            timestamp=tx.timestamp,
            status=tx.status,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class CsvRecord(_FormatRecord):
    """One CSV data line. Descriptions always decode to a string."""

    FORMAT_NAME: ClassVar[str] = "CSV"


@dataclass(frozen=True, slots=True)
class TextRecord(_FormatRecord):
    """One ``key=value`` block of the TXT format.

    A description is stored on a single line, so it may not contain line
    breaks.
    """

    FORMAT_NAME: ClassVar[str] = "TXT"

    @classmethod
    def _check_description(cls, description: str) -> None:
        # str.splitlines() is what the decoder uses to split records.
        if description and description.splitlines() != [description]:
            raise RangeError("description", description, "line breaks cannot be encoded as TXT")


@dataclass(frozen=True, slots=True)
class BinaryRecord(_FormatRecord):
    """One fixed-layout binary record; a zero-length description means absent."""

    FORMAT_NAME: ClassVar[str] = "binary"

    def _canonical_description(self) -> str | None:
        return self.description or None


__all__ = [
    "AMOUNT_MAX",
    "BinaryRecord",
    "CsvRecord",
    "FIELD_NAMES",
    "I64_MAX",
    "I64_MIN",
    "TextRecord",
    "Transaction",
    "TxStatus",
    "TxType",
    "U64_MAX",
]
