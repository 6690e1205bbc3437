"""Pytest configuration for test isolation.

Settings are read from the process environment on every call, and the CLI
loads a ``.env`` from the working directory. A developer shell with
``BANK_TX_MAX_BYTES`` or ``BANK_TX_LOG_LEVEL`` exported (or a stray ``.env``)
would otherwise leak into assertions about limits and log output.

The autouse fixture clears both variables, runs each test from its own
temporary directory and detaches any handlers installed by
``configure_logging`` so every test starts unconfigured.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from bank_transactions.config import LOG_LEVEL_ENV, MAX_BYTES_ENV
from bank_transactions.logging_setup import reset_logging
from bank_transactions.models import Transaction, TxStatus, TxType


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(MAX_BYTES_ENV, raising=False)
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def transactions() -> list[Transaction]:
    """A small dataset covering every transaction type and status."""

    return [
        Transaction(
            tx_id=1001,
            tx_type=TxType.DEPOSIT,
            from_user_id=0,
            to_user_id=42,
            amount=5000,
            timestamp=1_700_000_000_000,
            status=TxStatus.SUCCESS,
            description='Salary for "March", net',
        ),
        Transaction(
            tx_id=1002,
            tx_type=TxType.TRANSFER,
            from_user_id=42,
            to_user_id=7,
            amount=1250,
            timestamp=1_700_000_360_000,
            status=TxStatus.PENDING,
            description="Rent share",
        ),
        Transaction(
            tx_id=1003,
            tx_type=TxType.WITHDRAWAL,
            from_user_id=7,
            to_user_id=0,
            amount=2**63 - 1,
            timestamp=2**64 - 1,
            status=TxStatus.FAILURE,
            description="ATM Zürich",
        ),
    ]
