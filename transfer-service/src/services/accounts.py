"""
Account resolution for transfers (read-only).
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from db import crud
from db.models import BankLink, User
from logging_config import get_logger

logger = get_logger("justbank.services.accounts")


async def resolve_receiver(db: AsyncSession, account_id: str) -> Optional[BankLink]:
    """
    Find the bank link for a decoded account id. Anything but exactly one
    match is "not found": an ambiguous match must never pick a counterparty.
    """
    if not account_id or not account_id.strip():
        return None
    # two rows are enough to tell "one" from "many"
    banks = await crud.list_banks_where(db, "account_id", account_id, limit=2)
    if len(banks) != 1:
        if banks:
            # Kept as not-found; flagged for product review (fraud guard vs data bug)
            logger.warning("Ambiguous receiver lookup account_id=%s matches=%s", account_id, len(banks))
        else:
            logger.info("Receiver lookup found nothing account_id=%s", account_id)
        return None
    return banks[0]


async def resolve_sender(db: AsyncSession, bank_link_id: str) -> Optional[BankLink]:
    bank = await crud.get_bank_by_id(db, bank_link_id)
    if bank is None:
        logger.info("Sender bank not found id=%s", bank_link_id)
    return bank


async def resolve_user(db: AsyncSession, user_id: str) -> Optional[User]:
    return await crud.get_user_by_id(db, user_id)
