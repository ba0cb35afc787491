from fastapi import APIRouter, Depends, Response

from errors import JustBankError
from logging_config import get_logger
from services.transfer_pipeline import TransferSubmission
from .deps import get_db, get_transfer_pipeline
from .schemas import TransferIn, TransferResponse

logger = get_logger("justbank.api.transfers")

router = APIRouter(tags=["transfers"])


@router.post("/transfers", response_model=TransferResponse)
async def submit_transfer(
    payload: TransferIn,
    response: Response,
    db=Depends(get_db),
    pipeline=Depends(get_transfer_pipeline),
):
    """
    Submit a payment transfer. Failures come back with executed=false and an
    error the UI can show as-is; a missing ledger entry after a successful
    transfer comes back as a warning on a 200.
    """
    logger.info(
        "Transfer submission sender_bank_id=%s email=%s amount=%s",
        payload.sender_bank_id,
        payload.email,
        payload.amount,
    )
    submission = TransferSubmission(
        sharable_id=payload.sharable_id,
        sender_bank_id=payload.sender_bank_id,
        email=payload.email,
        amount=payload.amount,
        name=payload.name,
    )
    try:
        outcome = await pipeline.submit(db, submission)
    except JustBankError as e:
        response.status_code = e.status_code
        return TransferResponse(
            executed=False,
            amount=payload.amount,
            email=payload.email,
            error=e.to_dict(),
        )

    return TransferResponse(
        executed=outcome.executed,
        amount=outcome.amount,
        email=outcome.email,
        transfer_url=outcome.transfer_url,
        transaction_id=outcome.transaction_id,
        provisioned=outcome.provisioned,
        warning=outcome.warning,
    )
