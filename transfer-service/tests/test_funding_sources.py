from unittest.mock import AsyncMock

import pytest

from clients.dwolla_client import DwollaAPIError
from db import crud
from errors import (
    AggregatorError,
    FundingSourceCreationFailed,
    MissingDwollaCustomer,
    MissingProcessorToken,
)
from services.funding_sources import (
    FUNDING_SOURCE_PREFIXES,
    FundingSourceProvisioner,
    customer_id_for,
    extract_customer_id,
    funding_source_name,
    validate_funding_source_url,
)

from conftest import SENDER_FS

NEW_FS = "https://api-sandbox.dwolla.com/funding-sources/fs-new"


@pytest.mark.parametrize(
    "url",
    [
        "https://api-sandbox.dwolla.com/funding-sources/abc",
        "https://api.dwolla.com/funding-sources/abc",
    ],
)
def test_valid_funding_source_urls(url):
    assert validate_funding_source_url(url) is True


@pytest.mark.parametrize(
    "url",
    [None, "", "   ", "N/A", "null", "undefined", "https://example.com/funding-sources/abc", 42],
)
def test_invalid_funding_source_urls(url):
    assert validate_funding_source_url(url) is False


def test_extract_customer_id():
    assert extract_customer_id("https://api-sandbox.dwolla.com/customers/cust-9") == "cust-9"
    assert extract_customer_id("https://api-sandbox.dwolla.com/customers/cust-9/") == "cust-9"
    assert extract_customer_id(None) is None


async def test_customer_id_falls_back_to_url(make_user):
    user = await make_user(dwolla_customer_id=None, dwolla_customer_url="https://api.dwolla.com/customers/c-77")
    assert customer_id_for(user) == "c-77"


async def test_funding_source_name_defaults(make_user, make_bank):
    user = await make_user()
    bank = await make_bank(user, bank_name=None, account_type=None)
    assert funding_source_name(bank) == "Bank - account"


async def test_valid_funding_source_is_left_alone(db, make_user, make_bank, dwolla):
    user = await make_user()
    bank = await make_bank(user, funding_source_url=SENDER_FS)

    result = await FundingSourceProvisioner(dwolla).ensure_funding_source(db, bank, user)

    assert result.created is False
    assert result.funding_source_url == SENDER_FS
    dwolla.create_funding_source.assert_not_awaited()


async def test_creates_and_stores_missing_funding_source(db, make_user, make_bank, dwolla):
    user = await make_user(dwolla_customer_id="cust-1")
    bank = await make_bank(user, funding_source_url="N/A", processor_token="processor-1")
    dwolla.create_funding_source.return_value = NEW_FS

    result = await FundingSourceProvisioner(dwolla).ensure_funding_source(db, bank, user)

    assert result.created is True
    assert result.funding_source_url == NEW_FS
    assert bank.funding_source_url == NEW_FS
    dwolla.create_funding_source.assert_awaited_once_with(
        customer_id="cust-1",
        name="Plaid Checking - checking",
        plaid_token="processor-1",
    )


async def test_missing_customer_stops_before_dwolla(db, make_user, make_bank, dwolla):
    user = await make_user(dwolla_customer_id=None, dwolla_customer_url=None)
    bank = await make_bank(user)

    with pytest.raises(MissingDwollaCustomer):
        await FundingSourceProvisioner(dwolla).ensure_funding_source(db, bank, user)
    dwolla.create_funding_source.assert_not_awaited()


async def test_missing_processor_token(db, make_user, make_bank, dwolla):
    user = await make_user()
    bank = await make_bank(user, processor_token=None)

    with pytest.raises(MissingProcessorToken):
        await FundingSourceProvisioner(dwolla).ensure_funding_source(db, bank, user)
    dwolla.create_funding_source.assert_not_awaited()


@pytest.mark.parametrize(
    "status, fragment",
    [
        (400, "Invalid funding source request"),
        (401, "authentication failed"),
        (403, "processor token is invalid or expired"),
        (404, "customer not found"),
    ],
)
async def test_dwolla_rejection_maps_to_readable_message(db, make_user, make_bank, dwolla, status, fragment):
    user = await make_user()
    bank = await make_bank(user)
    dwolla.create_funding_source.side_effect = DwollaAPIError(status, "upstream said no")

    with pytest.raises(FundingSourceCreationFailed) as exc_info:
        await FundingSourceProvisioner(dwolla).ensure_funding_source(db, bank, user)

    assert fragment in exc_info.value.message
    assert exc_info.value.detail == "upstream said no"
    assert bank.funding_source_url is None


async def test_concurrent_write_wins_and_is_kept(db, make_user, make_bank, dwolla):
    user = await make_user()
    bank = await make_bank(user)
    other = "https://api-sandbox.dwolla.com/funding-sources/fs-other"

    async def create_while_someone_else_stores(**kwargs):
        await crud.set_funding_source_url_if_unset(db, bank.id, other, FUNDING_SOURCE_PREFIXES)
        return NEW_FS

    dwolla.create_funding_source.side_effect = create_while_someone_else_stores

    result = await FundingSourceProvisioner(dwolla).ensure_funding_source(db, bank, user)

    assert result.raced is True
    assert result.created is False
    assert result.funding_source_url == other
    assert bank.funding_source_url == other


async def test_processor_token_is_derived_when_allowed(db, make_user, make_bank, dwolla):
    user = await make_user()
    bank = await make_bank(user, processor_token=None, access_token="access-1")
    plaid = AsyncMock()
    plaid.create_processor_token.return_value = "processor-derived"
    dwolla.create_funding_source.return_value = NEW_FS

    result = await FundingSourceProvisioner(dwolla, plaid).ensure_funding_source(
        db, bank, user, derive_processor_token=True
    )

    assert result.created is True
    assert bank.processor_token == "processor-derived"
    plaid.create_processor_token.assert_awaited_once_with("access-1", bank.account_id)
    assert dwolla.create_funding_source.await_args.kwargs["plaid_token"] == "processor-derived"


async def test_failed_derivation_reports_missing_processor_token(db, make_user, make_bank, dwolla):
    user = await make_user()
    bank = await make_bank(user, processor_token=None)
    plaid = AsyncMock()
    plaid.create_processor_token.side_effect = AggregatorError(detail="ITEM_LOGIN_REQUIRED")

    with pytest.raises(MissingProcessorToken) as exc_info:
        await FundingSourceProvisioner(dwolla, plaid).ensure_funding_source(
            db, bank, user, derive_processor_token=True
        )
    assert "ITEM_LOGIN_REQUIRED" in exc_info.value.message
    dwolla.create_funding_source.assert_not_awaited()
