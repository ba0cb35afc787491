from typing import AsyncGenerator

from fastapi import HTTPException, Request

from config import Settings
from services.bank_links import BankLinkService
from services.customers import CustomerProvisioner
from services.funding_sources import FundingSourceProvisioner
from services.transfer_pipeline import TransferPipeline


async def get_db(request: Request) -> AsyncGenerator:
    """
    Async DB session dependency for FastAPI routes.
    """
    async with request.app.state.session_factory() as session:
        yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_transfer_pipeline(request: Request) -> TransferPipeline:
    return request.app.state.transfer_pipeline


def get_provisioner(request: Request) -> FundingSourceProvisioner:
    return request.app.state.provisioner


def get_customer_provisioner(request: Request) -> CustomerProvisioner:
    return request.app.state.customer_provisioner


def get_bank_link_service(request: Request) -> BankLinkService:
    return request.app.state.bank_links


def require_plaid(request: Request) -> None:
    """
    Guard for endpoints that need the aggregator.
    """
    if request.app.state.plaid is None:
        raise HTTPException(status_code=503, detail="Bank linking is not configured (PLAID_CLIENT_ID/PLAID_SECRET)")
