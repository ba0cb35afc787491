from fastapi import APIRouter, Depends, HTTPException

from errors import JustBankError
from logging_config import get_logger
from .deps import get_customer_provisioner, get_db
from .schemas import CustomerOut, CustomerStatusOut

logger = get_logger("justbank.api.customers")

router = APIRouter(tags=["customers"])


@router.post("/users/{user_id}/dwolla-customer", response_model=CustomerOut)
async def ensure_dwolla_customer(user_id: str, db=Depends(get_db), provisioner=Depends(get_customer_provisioner)):
    """
    Create the user's Dwolla customer if missing; idempotent otherwise.
    """
    try:
        result = await provisioner.ensure_customer(db, user_id)
    except JustBankError as e:
        logger.warning("Dwolla customer setup failed user_id=%s kind=%s", user_id, e.kind)
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return CustomerOut(
        user_id=result.user_id,
        dwolla_customer_id=result.dwolla_customer_id,
        dwolla_customer_url=result.dwolla_customer_url,
        created=result.created,
    )


@router.get("/users/{user_id}/dwolla-customer", response_model=CustomerStatusOut)
async def dwolla_customer_status(user_id: str, db=Depends(get_db), provisioner=Depends(get_customer_provisioner)):
    try:
        return await provisioner.customer_status(db, user_id)
    except JustBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
