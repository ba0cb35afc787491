"""
Local ledger: one Transaction row per completed transfer.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db import crud
from db.models import BankLink, Transaction
from errors import LedgerWriteFailed
from logging_config import get_logger
from services.transfers import format_amount

logger = get_logger("justbank.services.ledger")


class LedgerRecorder:
    async def record(
        self,
        db: AsyncSession,
        *,
        transfer_url: str,
        amount: Decimal,
        sender_bank: BankLink,
        receiver_bank: BankLink,
        email: str,
        note: Optional[str] = None,
    ) -> Transaction:
        """
        Raises LedgerWriteFailed if the row cannot be written. The money has
        already moved by the time this runs, so callers must treat that as a
        warning, not as a failed transfer.
        """
        if not sender_bank.user_id or not receiver_bank.user_id:
            raise LedgerWriteFailed(detail="bank link without owning user id")

        name = (note or "").strip() or f"Transfer to {email}"
        try:
            tx = await crud.create_transaction(
                db,
                name=name,
                amount=format_amount(amount),
                sender_id=sender_bank.user_id,
                sender_bank_id=sender_bank.id,
                receiver_id=receiver_bank.user_id,
                receiver_bank_id=receiver_bank.id,
                email=email,
                transfer_url=transfer_url,
            )
        except SQLAlchemyError as e:
            logger.exception("Ledger write failed for transfer %s: %s", transfer_url, e)
            await db.rollback()
            raise LedgerWriteFailed(detail=str(e)) from e

        logger.info("Ledger entry %s recorded for transfer %s", tx.id, transfer_url)
        return tx
