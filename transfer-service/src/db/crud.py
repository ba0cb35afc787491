# transfer-service/src/db/crud.py
"""
Document-style data access: get by id, list by field equality, create, update.
"""

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import not_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import BankLink, Transaction, User


async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    if not user_id:
        return None
    return await db.get(User, user_id)


async def get_bank_by_id(db: AsyncSession, bank_id: str) -> Optional[BankLink]:
    if not bank_id or not bank_id.strip():
        return None
    return await db.get(BankLink, bank_id.strip())


async def list_banks_where(db: AsyncSession, field: str, value: Any, limit: Optional[int] = None) -> List[BankLink]:
    """
    List bank links whose ``field`` equals ``value``.
    """
    column = getattr(BankLink, field)
    q = select(BankLink).where(column == value).order_by(BankLink.created_at)
    if limit is not None:
        q = q.limit(limit)
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_banks_for_user(db: AsyncSession, user_id: str) -> List[BankLink]:
    return await list_banks_where(db, "user_id", user_id)


async def create_user(db: AsyncSession, **fields) -> User:
    user = User(**fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_bank(db: AsyncSession, **fields) -> BankLink:
    bank = BankLink(**fields)
    db.add(bank)
    await db.commit()
    await db.refresh(bank)
    return bank


async def create_transaction(db: AsyncSession, **fields) -> Transaction:
    tx = Transaction(**fields)
    db.add(tx)
    await db.commit()
    await db.refresh(tx)
    return tx


async def update_user(db: AsyncSession, user: User, values: Dict[str, Any]) -> User:
    for key, value in values.items():
        setattr(user, key, value)
    await db.commit()
    await db.refresh(user)
    return user


async def update_bank(db: AsyncSession, bank: BankLink, values: Dict[str, Any]) -> BankLink:
    for key, value in values.items():
        setattr(bank, key, value)
    await db.commit()
    await db.refresh(bank)
    return bank


async def set_funding_source_url_if_unset(
    db: AsyncSession,
    bank_id: str,
    funding_source_url: str,
    valid_prefixes: Sequence[str],
) -> bool:
    """
    Write ``funding_source_url`` only while the stored value is still null or
    not a recognised funding-source URL. Returns False when another writer
    got there first.
    """
    column = BankLink.funding_source_url
    still_unset = or_(
        column.is_(None),
        not_(or_(*[column.startswith(prefix) for prefix in valid_prefixes])),
    )
    stmt = (
        update(BankLink)
        .where(BankLink.id == bank_id, still_unset)
        .values(funding_source_url=funding_source_url)
        .execution_options(synchronize_session=False)
    )
    res = await db.execute(stmt)
    await db.commit()
    return res.rowcount == 1
