from typing import Any, Dict

from db.models import BankLink
from services.funding_sources import validate_funding_source_url


def serialize_bank(b: BankLink) -> Dict[str, Any]:
    # access_token / processor_token never leave the service
    return {
        "id": b.id,
        "user_id": b.user_id,
        "bank_id": b.bank_id,
        "account_id": b.account_id,
        "bank_name": b.bank_name,
        "account_type": b.account_type,
        "shareable_id": b.shareable_id,
        "has_funding_source": validate_funding_source_url(b.funding_source_url),
        "funding_source_url": b.funding_source_url,
        "has_processor_token": bool(b.processor_token),
        "created_at": b.created_at.isoformat() if getattr(b, "created_at", None) else None,
    }
