from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from errors import LedgerWriteFailed
from services import ledger as ledger_module
from services.ledger import LedgerRecorder

from conftest import TRANSFER_URL


async def test_record_writes_transaction(db, make_user, make_bank):
    sender, receiver = await make_user(), await make_user()
    sender_bank, receiver_bank = await make_bank(sender), await make_bank(receiver)

    tx = await LedgerRecorder().record(
        db,
        transfer_url=TRANSFER_URL,
        amount=Decimal("12.5"),
        sender_bank=sender_bank,
        receiver_bank=receiver_bank,
        email="receiver@example.com",
        note="  ",
    )

    assert tx.amount == "12.50"
    assert tx.name == "Transfer to receiver@example.com"
    assert tx.receiver_id == receiver.id


async def test_database_error_becomes_ledger_write_failed(db, make_user, make_bank, monkeypatch):
    user = await make_user()
    sender_bank, receiver_bank = await make_bank(user), await make_bank(user)
    failing = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("database is locked")))
    monkeypatch.setattr(ledger_module.crud, "create_transaction", failing)

    with pytest.raises(LedgerWriteFailed) as exc_info:
        await LedgerRecorder().record(
            db,
            transfer_url=TRANSFER_URL,
            amount=Decimal("5"),
            sender_bank=sender_bank,
            receiver_bank=receiver_bank,
            email="receiver@example.com",
        )
    assert "database is locked" in exc_info.value.detail
