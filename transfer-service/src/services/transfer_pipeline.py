"""
transfer-service/src/services/transfer_pipeline.py

Payment transfer submission, end to end:

    decode sharable id -> resolve sender/receiver banks -> check funding
    sources -> provision missing ones -> create transfer -> write ledger entry

Stages run strictly in order and any failure ends the submission, except a
failed ledger write, which only adds a warning (the money already moved).
Nothing is rolled back and nothing is retried.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from db.models import BankLink, User
from errors import (
    AccountNotFound,
    JustBankError,
    LedgerWriteFailed,
    MissingDwollaCustomer,
    SameAccountTransfer,
)
from logging_config import get_logger
from services import accounts
from services.funding_sources import (
    FundingSourceProvisioner,
    customer_id_for,
    validate_funding_source_url,
)
from services.ledger import LedgerRecorder
from services.transfers import TransferExecutor, format_amount, parse_amount
from shareable_id import decode_id

logger = get_logger("justbank.services.transfer_pipeline")

SENDER_SETUP_MESSAGE = (
    "Your source bank is not fully set up for transfers. "
    "Please reconnect this bank from the My Banks section."
)
RECEIVER_SETUP_MESSAGE = (
    "The recipient's bank is not fully set up for transfers. "
    "Please ask the recipient to reconnect their bank from their My Banks section."
)


class SubmissionState(str, Enum):
    IDLE = "Idle"
    DECODING = "Decoding"
    RESOLVING_ACCOUNTS = "ResolvingAccounts"
    VALIDATING_FUNDING = "ValidatingFunding"
    REMEDIATING_SENDER = "RemediatingSender"
    REMEDIATING_RECEIVER = "RemediatingReceiver"
    TRANSFERRING = "Transferring"
    RECORDING_LEDGER = "RecordingLedger"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class TransferSubmission:
    sharable_id: str
    sender_bank_id: str
    email: str
    amount: str
    name: Optional[str] = None


@dataclass
class TransferOutcome:
    executed: bool
    amount: str
    email: str
    transfer_url: Optional[str] = None
    transaction_id: Optional[str] = None
    provisioned: List[str] = field(default_factory=list)
    warning: Optional[Dict[str, Any]] = None
    states: List[str] = field(default_factory=list)


class _StateTrail:
    """
    Forward-only record of the stages one submission went through.
    """

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        self.current = SubmissionState.IDLE
        self.visited: List[SubmissionState] = [SubmissionState.IDLE]

    def enter(self, state: SubmissionState) -> None:
        if state in self.visited:
            raise RuntimeError(f"submission re-entered state {state.value}")
        logger.info("[%s] %s -> %s", self.submission_id, self.current.value, state.value)
        self.current = state
        self.visited.append(state)

    def fail(self, error: JustBankError) -> None:
        if error.stage is None:
            error.stage = self.current.value
        logger.warning(
            "[%s] %s -> Failed(%s): %s",
            self.submission_id,
            self.current.value,
            error.kind,
            error.detail or error.message,
        )
        self.current = SubmissionState.FAILED
        self.visited.append(SubmissionState.FAILED)

    @property
    def names(self) -> List[str]:
        return [s.value for s in self.visited]


class TransferPipeline:
    def __init__(
        self,
        provisioner: FundingSourceProvisioner,
        executor: TransferExecutor,
        ledger: Optional[LedgerRecorder] = None,
    ):
        self.provisioner = provisioner
        self.executor = executor
        self.ledger = ledger or LedgerRecorder()

    async def submit(self, db: AsyncSession, submission: TransferSubmission) -> TransferOutcome:
        trail = _StateTrail(submission.sender_bank_id or "?")
        try:
            return await self._run(db, submission, trail)
        except JustBankError as e:
            trail.fail(e)
            raise

    async def _run(self, db: AsyncSession, submission: TransferSubmission, trail: _StateTrail) -> TransferOutcome:
        trail.enter(SubmissionState.DECODING)
        receiver_account_id = decode_id(submission.sharable_id)
        amount = parse_amount(submission.amount)

        trail.enter(SubmissionState.RESOLVING_ACCOUNTS)
        sender_bank, receiver_bank, sender_user = await self._resolve(db, submission, receiver_account_id)

        trail.enter(SubmissionState.VALIDATING_FUNDING)
        sender_ok = validate_funding_source_url(sender_bank.funding_source_url)
        receiver_ok = validate_funding_source_url(receiver_bank.funding_source_url)
        logger.info(
            "[%s] funding sources valid: sender=%s receiver=%s",
            trail.submission_id,
            sender_ok,
            receiver_ok,
        )

        provisioned: List[str] = []
        if not sender_ok:
            trail.enter(SubmissionState.REMEDIATING_SENDER)
            if await self._provision(db, sender_bank, sender_user, SENDER_SETUP_MESSAGE):
                provisioned.append("sender")
        if not receiver_ok:
            trail.enter(SubmissionState.REMEDIATING_RECEIVER)
            receiver_user = await accounts.resolve_user(db, receiver_bank.user_id)
            if await self._provision(db, receiver_bank, receiver_user, RECEIVER_SETUP_MESSAGE):
                provisioned.append("receiver")

        trail.enter(SubmissionState.TRANSFERRING)
        transfer_url = await self.executor.execute(
            source_url=sender_bank.funding_source_url,
            destination_url=receiver_bank.funding_source_url,
            amount=amount,
            sender_bank_id=sender_bank.id,
            receiver_bank_id=receiver_bank.id,
        )

        trail.enter(SubmissionState.RECORDING_LEDGER)
        transaction_id = None
        warning = None
        try:
            tx = await self.ledger.record(
                db,
                transfer_url=transfer_url,
                amount=amount,
                sender_bank=sender_bank,
                receiver_bank=receiver_bank,
                email=submission.email,
                note=submission.name,
            )
            transaction_id = tx.id
        except LedgerWriteFailed as e:
            e.stage = SubmissionState.RECORDING_LEDGER.value
            logger.error("[%s] transfer %s moved money but ledger write failed", trail.submission_id, transfer_url)
            warning = e.to_dict()

        trail.enter(SubmissionState.DONE)
        return TransferOutcome(
            executed=True,
            amount=format_amount(amount),
            email=submission.email,
            transfer_url=transfer_url,
            transaction_id=transaction_id,
            provisioned=provisioned,
            warning=warning,
            states=trail.names,
        )

    async def _resolve(self, db: AsyncSession, submission: TransferSubmission, receiver_account_id: str):
        receiver_bank = await accounts.resolve_receiver(db, receiver_account_id)
        if receiver_bank is None:
            raise AccountNotFound("Recipient account not found. Please verify the sharable ID is correct.")

        sender_bank = await accounts.resolve_sender(db, submission.sender_bank_id)
        if sender_bank is None:
            raise AccountNotFound("Source bank account not found. Please try reconnecting your bank.")

        if sender_bank.id == receiver_bank.id:
            raise SameAccountTransfer()

        sender_user = await accounts.resolve_user(db, sender_bank.user_id)
        if sender_user is None:
            raise AccountNotFound("Your profile could not be found. Please sign in again.")
        if not customer_id_for(sender_user):
            raise MissingDwollaCustomer(detail=f"user {sender_user.id} has no Dwolla customer")
        return sender_bank, receiver_bank, sender_user

    async def _provision(self, db: AsyncSession, bank: BankLink, user: Optional[User], setup_message: str) -> bool:
        try:
            result = await self.provisioner.ensure_funding_source(db, bank, user)
        except JustBankError as e:
            e.message = f"{setup_message} Error: {e.detail or e.message}"
            e.args = (e.message,)
            raise
        return result.created
