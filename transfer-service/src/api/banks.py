from typing import List

from fastapi import APIRouter, Depends, HTTPException

from db import crud
from errors import JustBankError
from logging_config import get_logger
from .deps import (
    get_bank_link_service,
    get_db,
    get_provisioner,
    require_plaid,
)
from .schemas import BankOut, FundingSourceOut, LinkBankIn, ProvisionAllOut
from .serializers import serialize_bank

logger = get_logger("justbank.api.banks")

router = APIRouter(tags=["banks"])


async def _get_user_or_404(db, user_id: str):
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        logger.warning("User not found user_id=%s", user_id)
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users/{user_id}/banks", response_model=List[BankOut])
async def list_banks(user_id: str, db=Depends(get_db)):
    """
    Return all bank links of a user (without credentials).
    """
    await _get_user_or_404(db, user_id)
    banks = await crud.get_banks_for_user(db, user_id)
    return [serialize_bank(b) for b in banks]


@router.get("/users/{user_id}/banks/diagnostics")
async def diagnose_banks(user_id: str, db=Depends(get_db), service=Depends(get_bank_link_service)):
    """
    Per-bank readiness for transfers (funding source, processor token).
    """
    user = await _get_user_or_404(db, user_id)
    return await service.diagnose(db, user)


@router.post(
    "/users/{user_id}/banks/link",
    response_model=BankOut,
    status_code=201,
    dependencies=[Depends(require_plaid)],
)
async def link_bank(user_id: str, payload: LinkBankIn, db=Depends(get_db), service=Depends(get_bank_link_service)):
    """
    Finish Plaid Link for a user: exchange the public token and store the bank.
    """
    user = await _get_user_or_404(db, user_id)
    try:
        bank = await service.link_bank(db, user, payload.public_token)
    except JustBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return serialize_bank(bank)


@router.post("/banks/{bank_id}/funding-source", response_model=FundingSourceOut)
async def provision_funding_source(bank_id: str, db=Depends(get_db), provisioner=Depends(get_provisioner)):
    """
    Create the Dwolla funding source for one bank link if it has none.
    A missing processor token is re-derived from the access token here.
    """
    bank = await crud.get_bank_by_id(db, bank_id)
    if not bank:
        raise HTTPException(status_code=404, detail="Bank account not found")
    user = await crud.get_user_by_id(db, bank.user_id)

    try:
        result = await provisioner.ensure_funding_source(db, bank, user, derive_processor_token=True)
    except JustBankError as e:
        logger.warning("Funding source provisioning failed bank_id=%s kind=%s", bank_id, e.kind)
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

    return FundingSourceOut(
        success=True,
        bank_id=result.bank_id,
        created=result.created,
        funding_source_url=result.funding_source_url,
    )


@router.post("/users/{user_id}/banks/funding-sources", response_model=ProvisionAllOut)
async def provision_all_funding_sources(user_id: str, db=Depends(get_db), service=Depends(get_bank_link_service)):
    """
    Provision every bank of the user that lacks a funding source.
    """
    user = await _get_user_or_404(db, user_id)
    return await service.provision_all(db, user)
