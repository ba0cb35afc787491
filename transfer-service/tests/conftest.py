"""
Shared fixtures: settings, a throwaway SQLite database per test, row
factories and a Dwolla stand-in built from AsyncMock.
"""

import uuid
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from config import Settings
from db import crud
from db.session import create_engine, create_schema, create_session_factory

SENDER_FS = "https://api-sandbox.dwolla.com/funding-sources/fs-sender"
RECEIVER_FS = "https://api-sandbox.dwolla.com/funding-sources/fs-receiver"
TRANSFER_URL = "https://api-sandbox.dwolla.com/transfers/tr-001"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'justbank.db'}",
        dwolla_env="sandbox",
        dwolla_key="test-key",
        dwolla_secret="test-secret",
        log_dir=str(tmp_path / "logs"),
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = create_engine(settings.database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def _make_user(**overrides):
        fields = {
            "first_name": "Jane",
            "last_name": "Doe",
            "email": f"{uuid.uuid4().hex[:8]}@example.com",
            "dwolla_customer_id": "cust-" + uuid.uuid4().hex[:6],
        }
        fields.update(overrides)
        if fields.get("dwolla_customer_id") and "dwolla_customer_url" not in overrides:
            fields["dwolla_customer_url"] = f"https://api-sandbox.dwolla.com/customers/{fields['dwolla_customer_id']}"
        return await crud.create_user(db, **fields)

    return _make_user


@pytest.fixture
def make_bank(db):
    async def _make_bank(user, **overrides):
        fields = {
            "user_id": user.id,
            "bank_id": "item-" + uuid.uuid4().hex[:6],
            "account_id": "acc-" + uuid.uuid4().hex[:8],
            "access_token": "access-sandbox-" + uuid.uuid4().hex[:6],
            "processor_token": "processor-sandbox-" + uuid.uuid4().hex[:6],
            "bank_name": "Plaid Checking",
            "account_type": "checking",
        }
        fields.update(overrides)
        return await crud.create_bank(db, **fields)

    return _make_bank


@pytest.fixture
def dwolla():
    client = AsyncMock()
    client.create_transfer.return_value = TRANSFER_URL
    return client
