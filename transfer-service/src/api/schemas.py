from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TransferIn(BaseModel):
    sharable_id: str = Field(..., min_length=1, examples=["YWNjLTAwMQ=="])
    sender_bank_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, examples=["johndoe@gmail.com"])
    amount: str = Field(..., examples=["5.00"])
    name: Optional[str] = None  # transfer note


class TransferErrorOut(BaseModel):
    kind: str
    message: str
    detail: Optional[str] = None
    stage: Optional[str] = None


class TransferResponse(BaseModel):
    executed: bool
    amount: str
    email: str
    transfer_url: Optional[str] = None
    transaction_id: Optional[str] = None
    provisioned: List[str] = []
    warning: Optional[TransferErrorOut] = None
    error: Optional[TransferErrorOut] = None


class BankOut(BaseModel):
    id: str
    user_id: str
    bank_id: Optional[str] = None
    account_id: str
    bank_name: Optional[str] = None
    account_type: Optional[str] = None
    shareable_id: Optional[str] = None
    has_funding_source: bool
    funding_source_url: Optional[str] = None
    has_processor_token: bool
    created_at: Optional[str] = None


class LinkBankIn(BaseModel):
    public_token: str = Field(..., min_length=1)


class FundingSourceOut(BaseModel):
    success: bool
    bank_id: str
    created: bool
    funding_source_url: str


class ProvisionAllOut(BaseModel):
    fixed_banks: int
    failed_banks: int
    total_banks: int
    results: List[Dict[str, Any]]


class CustomerOut(BaseModel):
    user_id: str
    dwolla_customer_id: str
    dwolla_customer_url: str
    created: bool


class CustomerStatusOut(BaseModel):
    user_id: str
    email: Optional[str] = None
    has_dwolla_customer_id: bool
    has_dwolla_customer_url: bool
    dwolla_customer_id: Optional[str] = None
    dwolla_customer_url: Optional[str] = None
