"""
Transfer execution against the payment rails.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from clients.dwolla_client import DwollaAPIError, DwollaClient
from errors import (
    InvalidAmount,
    InvalidRequest,
    SameAccountTransfer,
    UpstreamUnavailable,
    transfer_error_for_status,
)
from logging_config import get_logger
from services.funding_sources import validate_funding_source_url

logger = get_logger("justbank.services.transfers")

MINIMUM_AMOUNT = Decimal("0.01")
CENTS = Decimal("0.01")


def parse_amount(raw) -> Decimal:
    """
    Parse a user-entered amount into a positive two-decimal Decimal.
    """
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmount(detail=f"not a number: {raw!r}") from e
    if not amount.is_finite():
        raise InvalidAmount(detail=f"not a number: {raw!r}")
    if amount <= 0:
        raise InvalidAmount("Please enter a valid transfer amount greater than $0.00.", detail=str(raw))
    if amount < MINIMUM_AMOUNT:
        raise InvalidAmount("Transfer amount must be at least $0.01.", detail=str(raw))
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        # more digits than the decimal context can hold
        raise InvalidAmount(detail=f"amount out of range: {raw!r}") from e


def format_amount(amount: Decimal) -> str:
    return f"{amount.quantize(CENTS, rounding=ROUND_HALF_UP):.2f}"


class TransferExecutor:
    """
    Calls Dwolla's create-transfer exactly once per invocation. No retries:
    a 5xx is reported as UpstreamUnavailable and the user decides.
    """

    def __init__(self, dwolla: DwollaClient, currency: str = "USD"):
        self.dwolla = dwolla
        self.currency = currency

    async def execute(
        self,
        source_url: str,
        destination_url: str,
        amount: Decimal,
        sender_bank_id: str,
        receiver_bank_id: str,
    ) -> str:
        if sender_bank_id == receiver_bank_id:
            raise SameAccountTransfer()
        if not validate_funding_source_url(source_url) or not validate_funding_source_url(destination_url):
            raise InvalidRequest(
                "Bank setup incomplete. Please reconnect your bank accounts and try again.",
                detail="funding source URL failed validation",
            )

        value = format_amount(amount)
        try:
            return await self.dwolla.create_transfer(
                source_funding_source_url=source_url,
                destination_funding_source_url=destination_url,
                amount=value,
                currency=self.currency,
            )
        except DwollaAPIError as e:
            if e.status is None:
                # no response at all
                raise UpstreamUnavailable(detail=e.message) from e
            error_cls = transfer_error_for_status(e.status)
            logger.warning("Transfer rejected status=%s kind=%s message=%s", e.status, error_cls.kind, e.message)
            raise error_cls(detail=e.message) from e
