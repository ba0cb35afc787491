"""
Bank linking, diagnostics and batch funding-source provisioning.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clients.dwolla_client import DwollaAPIError, DwollaClient
from clients.plaid_client import PlaidClient
from db import crud
from db.models import BankLink, User
from errors import AggregatorError, JustBankError
from logging_config import get_logger
from services.funding_sources import (
    FundingSourceProvisioner,
    compose_funding_source_name,
    customer_id_for,
    validate_funding_source_url,
)
from shareable_id import encode_id

logger = get_logger("justbank.services.bank_links")


class BankLinkService:
    def __init__(self, plaid: Optional[PlaidClient], dwolla: DwollaClient, provisioner: FundingSourceProvisioner):
        self.plaid = plaid
        self.dwolla = dwolla
        self.provisioner = provisioner

    async def link_bank(self, db: AsyncSession, user: User, public_token: str) -> BankLink:
        """
        Complete the Plaid Link flow: exchange the public token, create a
        Dwolla processor token for the first account and store the bank link.
        The funding source is attempted here too; if Dwolla refuses, the link
        is still stored without one and can be provisioned later.
        """
        if self.plaid is None:
            raise AggregatorError("Bank linking is not configured.")

        exchange = await self.plaid.exchange_public_token(public_token)
        access_token = exchange["access_token"]
        item_id = exchange["item_id"]

        plaid_accounts = await self.plaid.get_accounts(access_token)
        if not plaid_accounts:
            raise AggregatorError(detail="no accounts returned for item")
        account = plaid_accounts[0]
        account_id = account["account_id"]
        bank_name = account.get("name")
        account_type = account.get("subtype") or account.get("type")

        processor_token = await self.plaid.create_processor_token(access_token, account_id)

        funding_source_url = None
        customer_id = customer_id_for(user)
        if customer_id:
            try:
                funding_source_url = await self.dwolla.create_funding_source(
                    customer_id=customer_id,
                    name=compose_funding_source_name(bank_name, account_type),
                    plaid_token=processor_token,
                )
            except DwollaAPIError as e:
                logger.warning("Funding source not created while linking item %s: %s", item_id, e.message)
        else:
            logger.warning("User %s has no Dwolla customer; linking bank without funding source", user.id)

        bank = await crud.create_bank(
            db,
            user_id=user.id,
            bank_id=item_id,
            account_id=account_id,
            access_token=access_token,
            funding_source_url=funding_source_url,
            processor_token=processor_token,
            shareable_id=encode_id(account_id),
            bank_name=bank_name,
            account_type=account_type,
        )
        logger.info("Bank %s linked for user %s (funding source %s)", bank.id, user.id, bool(funding_source_url))
        return bank

    async def diagnose(self, db: AsyncSession, user: User) -> Dict[str, Any]:
        banks = await crud.get_banks_for_user(db, user.id)
        diagnostics = [
            {
                "id": b.id,
                "bank_name": b.bank_name,
                "account_type": b.account_type,
                "account_id": b.account_id,
                "has_funding_source": validate_funding_source_url(b.funding_source_url),
                "funding_source_url": b.funding_source_url,
                "has_processor_token": bool(b.processor_token),
            }
            for b in banks
        ]
        with_source = sum(1 for d in diagnostics if d["has_funding_source"])
        return {
            "user": {
                "id": user.id,
                "email": user.email,
                "has_dwolla_customer_id": bool(user.dwolla_customer_id),
                "has_dwolla_customer_url": bool(user.dwolla_customer_url),
            },
            "banks": diagnostics,
            "summary": {
                "total_banks": len(banks),
                "banks_with_funding_source": with_source,
                "banks_without_funding_source": len(banks) - with_source,
                "banks_with_processor_token": sum(1 for d in diagnostics if d["has_processor_token"]),
            },
        }

    async def provision_all(self, db: AsyncSession, user: User) -> Dict[str, Any]:
        """
        Provision every bank of ``user`` lacking a valid funding source. One
        bank failing does not stop the rest; each gets its own result.
        """
        banks = await crud.get_banks_for_user(db, user.id)
        needing_fix = [b for b in banks if not validate_funding_source_url(b.funding_source_url)]

        results: List[Dict[str, Any]] = []
        for bank in needing_fix:
            try:
                result = await self.provisioner.ensure_funding_source(db, bank, user)
            except JustBankError as e:
                logger.warning("Provisioning bank %s failed: %s", bank.id, e.kind)
                results.append(
                    {
                        "bank_id": bank.id,
                        "bank_name": bank.bank_name,
                        "success": False,
                        "error": e.to_dict(),
                    }
                )
                continue
            results.append(
                {
                    "bank_id": bank.id,
                    "bank_name": bank.bank_name,
                    "success": True,
                    "funding_source_url": result.funding_source_url,
                }
            )

        fixed = sum(1 for r in results if r["success"])
        logger.info("Provisioned %s of %s banks for user %s", fixed, len(needing_fix), user.id)
        return {
            "fixed_banks": fixed,
            "failed_banks": len(results) - fixed,
            "total_banks": len(banks),
            "results": results,
        }
