from decimal import Decimal

import pytest

from clients.dwolla_client import DwollaAPIError
from errors import (
    AuthenticationFailed,
    CounterpartyNotFound,
    InvalidAmount,
    InvalidRequest,
    NotAuthorized,
    SameAccountTransfer,
    TransferFailed,
    UpstreamUnavailable,
    transfer_error_for_status,
)
from services.transfers import TransferExecutor, format_amount, parse_amount

from conftest import RECEIVER_FS, SENDER_FS, TRANSFER_URL


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("5.00", Decimal("5.00")),
        ("5", Decimal("5.00")),
        (" 12.5 ", Decimal("12.50")),
        ("0.01", Decimal("0.01")),
        ("10.005", Decimal("10.01")),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["0.00", "-5.00", "abc", "", "0.001", "NaN", "Infinity", None, "1e30", "1" + "0" * 29],
)
def test_parse_amount_rejects(raw):
    with pytest.raises(InvalidAmount):
        parse_amount(raw)


def test_format_amount_is_fixed_two_decimals():
    assert format_amount(Decimal("5")) == "5.00"
    assert format_amount(Decimal("1234.5")) == "1234.50"


@pytest.mark.parametrize(
    "status, error_cls",
    [
        (400, InvalidRequest),
        (401, AuthenticationFailed),
        (403, NotAuthorized),
        (404, CounterpartyNotFound),
        (422, TransferFailed),
        (500, UpstreamUnavailable),
        (503, UpstreamUnavailable),
    ],
)
def test_transfer_error_for_status(status, error_cls):
    assert transfer_error_for_status(status) is error_cls


async def test_execute_sends_fixed_point_amount(dwolla):
    executor = TransferExecutor(dwolla, currency="USD")

    url = await executor.execute(SENDER_FS, RECEIVER_FS, Decimal("5"), "bank-a", "bank-b")

    assert url == TRANSFER_URL
    dwolla.create_transfer.assert_awaited_once_with(
        source_funding_source_url=SENDER_FS,
        destination_funding_source_url=RECEIVER_FS,
        amount="5.00",
        currency="USD",
    )


async def test_execute_refuses_same_bank(dwolla):
    with pytest.raises(SameAccountTransfer):
        await TransferExecutor(dwolla).execute(SENDER_FS, SENDER_FS, Decimal("5"), "bank-a", "bank-a")
    dwolla.create_transfer.assert_not_awaited()


async def test_execute_refuses_invalid_funding_source(dwolla):
    with pytest.raises(InvalidRequest):
        await TransferExecutor(dwolla).execute(SENDER_FS, "N/A", Decimal("5"), "bank-a", "bank-b")
    dwolla.create_transfer.assert_not_awaited()


@pytest.mark.parametrize(
    "status, error_cls",
    [(400, InvalidRequest), (404, CounterpartyNotFound), (502, UpstreamUnavailable), (None, UpstreamUnavailable)],
)
async def test_execute_maps_dwolla_failures(dwolla, status, error_cls):
    dwolla.create_transfer.side_effect = DwollaAPIError(status, "rejected")

    with pytest.raises(error_cls) as exc_info:
        await TransferExecutor(dwolla).execute(SENDER_FS, RECEIVER_FS, Decimal("5"), "bank-a", "bank-b")

    assert exc_info.value.detail == "rejected"
    assert dwolla.create_transfer.await_count == 1


def test_error_to_dict_omits_empty_fields():
    assert InvalidAmount().to_dict() == {
        "kind": "InvalidAmount",
        "message": "Please enter a valid transfer amount of at least $0.01.",
    }
    assert UpstreamUnavailable(detail="timeout", stage="Transferring").to_dict()["stage"] == "Transferring"
