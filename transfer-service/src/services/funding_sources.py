"""
Funding-source validation and provisioning.

A bank link can only take part in a transfer once it carries a Dwolla
funding-source URL. Links created while Dwolla was unavailable (or before the
owner had a Dwolla customer) are left without one; ``FundingSourceProvisioner``
is the explicit step that fills it in.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clients.dwolla_client import DwollaAPIError, DwollaClient
from clients.plaid_client import PlaidClient
from db import crud
from db.models import BankLink, User
from errors import (
    AggregatorError,
    FundingSourceCreationFailed,
    MissingDwollaCustomer,
    MissingProcessorToken,
)
from logging_config import get_logger

logger = get_logger("justbank.services.funding_sources")

FUNDING_SOURCE_PREFIXES = (
    "https://api-sandbox.dwolla.com/funding-sources/",
    "https://api.dwolla.com/funding-sources/",
    "https://api-sandbox.dwolla.com/funding-sources",
    "https://api.dwolla.com/funding-sources",
)

PLACEHOLDER_VALUES = ("N/A", "null", "undefined")

FUNDING_SOURCE_ERROR_MESSAGES = {
    400: "Invalid funding source request. Please check your bank account details.",
    401: "Payment service authentication failed. Please contact support.",
    403: "Plaid processor token is invalid or expired. Please reconnect your bank account.",
    404: "Payment customer not found. Please verify your account setup.",
}


def validate_funding_source_url(url: Optional[str]) -> bool:
    """
    True only for a real Dwolla funding-source URL (sandbox or production).
    """
    if not url or not isinstance(url, str):
        return False
    if url in PLACEHOLDER_VALUES or not url.strip():
        return False
    return url.startswith(FUNDING_SOURCE_PREFIXES)


def compose_funding_source_name(bank_name: Optional[str], account_type: Optional[str]) -> str:
    return f"{bank_name or 'Bank'} - {account_type or 'account'}"


def funding_source_name(bank: BankLink) -> str:
    return compose_funding_source_name(bank.bank_name, bank.account_type)


def extract_customer_id(customer_url: Optional[str]) -> Optional[str]:
    """
    Last path segment of a Dwolla customer URL.
    """
    if not customer_url:
        return None
    customer_id = customer_url.rstrip("/").split("/")[-1]
    return customer_id or None


def customer_id_for(user: Optional[User]) -> Optional[str]:
    if user is None:
        return None
    return user.dwolla_customer_id or extract_customer_id(user.dwolla_customer_url)


@dataclass
class ProvisioningResult:
    bank_id: str
    funding_source_url: str
    created: bool
    # another request stored a funding source between our check and our write
    raced: bool = False


class FundingSourceProvisioner:
    """
    Makes sure a bank link has a valid funding source, creating one on Dwolla
    when it does not.
    """

    def __init__(self, dwolla: DwollaClient, plaid: Optional[PlaidClient] = None):
        self.dwolla = dwolla
        self.plaid = plaid

    async def ensure_funding_source(
        self,
        db: AsyncSession,
        bank: BankLink,
        user: Optional[User],
        *,
        derive_processor_token: bool = False,
    ) -> ProvisioningResult:
        if validate_funding_source_url(bank.funding_source_url):
            return ProvisioningResult(bank.id, bank.funding_source_url, created=False)

        logger.info("Bank %s has no valid funding source (value=%r); provisioning", bank.id, bank.funding_source_url)

        customer_id = customer_id_for(user)
        if not customer_id:
            raise MissingDwollaCustomer(detail=f"user {bank.user_id} has no Dwolla customer")

        processor_token = bank.processor_token
        if not processor_token:
            if not (derive_processor_token and self.plaid is not None and bank.access_token):
                raise MissingProcessorToken(detail=f"bank {bank.id} has no processor token")
            processor_token = await self._derive_processor_token(db, bank)

        try:
            url = await self.dwolla.create_funding_source(
                customer_id=customer_id,
                name=funding_source_name(bank),
                plaid_token=processor_token,
            )
        except DwollaAPIError as e:
            message = FUNDING_SOURCE_ERROR_MESSAGES.get(e.status)
            raise FundingSourceCreationFailed(message, detail=e.message) from e

        written = await crud.set_funding_source_url_if_unset(db, bank.id, url, FUNDING_SOURCE_PREFIXES)
        await db.refresh(bank)
        if not written:
            logger.warning(
                "Funding source for bank %s was set concurrently; keeping stored value, created %s is unused",
                bank.id,
                url,
            )
            return ProvisioningResult(bank.id, bank.funding_source_url, created=False, raced=True)

        logger.info("Funding source stored for bank %s", bank.id)
        return ProvisioningResult(bank.id, url, created=True)

    async def _derive_processor_token(self, db: AsyncSession, bank: BankLink) -> str:
        logger.info("No processor token for bank %s, creating one from access token", bank.id)
        try:
            token = await self.plaid.create_processor_token(bank.access_token, bank.account_id)
        except AggregatorError as e:
            raise MissingProcessorToken(
                f"Failed to create processor token: {e.detail or e.message}. Please reconnect the bank account.",
                detail=e.detail,
            ) from e
        await crud.update_bank(db, bank, {"processor_token": token})
        return token
