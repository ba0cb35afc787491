"""
transfer-service/src/app.py

FastAPI application entrypoint for the JustBank transfer service.

This module wires together:
- Settings (read and validated once, here)
- Logging configuration (file-based under transfer-service/logs/)
- The database engine and session factory
- Outbound Dwolla / Plaid clients and the services built on them
- Domain routers under src/api/ (transfers, banks, customers)

Run with:  uvicorn app:create_app --factory --app-dir transfer-service/src
"""

import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request

from clients.dwolla_client import DwollaClient
from clients.plaid_client import PlaidClient
from config import Settings
from db.session import create_engine, create_schema, create_session_factory
from logging_config import get_logger, setup_logging
from services.bank_links import BankLinkService
from services.customers import CustomerProvisioner
from services.funding_sources import FundingSourceProvisioner
from services.ledger import LedgerRecorder
from services.transfer_pipeline import TransferPipeline
from services.transfers import TransferExecutor
from api.banks import router as banks_router
from api.customers import router as customers_router
from api.transfers import router as transfers_router

logger = get_logger("justbank.app")


def create_app(
    settings: Optional[Settings] = None,
    *,
    dwolla_client: Optional[DwollaClient] = None,
    plaid_client: Optional[PlaidClient] = None,
) -> FastAPI:
    """
    Build the app. Without arguments, settings come from the environment and
    a ConfigError stops startup if anything required is missing.
    """
    if settings is None:
        settings = Settings.from_env()

    setup_logging(settings.log_level, settings.log_dir)
    logger.info("Transfer service configuration: %s", settings.redacted())

    engine = create_engine(settings.database_url, echo=settings.sql_echo)
    dwolla = dwolla_client or DwollaClient(settings)
    plaid = plaid_client
    if plaid is None and settings.plaid_enabled:
        plaid = PlaidClient(settings)
    if plaid is None:
        logger.warning("Plaid is not configured; bank linking endpoints are disabled")

    provisioner = FundingSourceProvisioner(dwolla, plaid)

    app = FastAPI(title="JustBank Transfer Service", version="1.0.0")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.dwolla = dwolla
    app.state.plaid = plaid
    app.state.provisioner = provisioner
    app.state.transfer_pipeline = TransferPipeline(
        provisioner,
        TransferExecutor(dwolla, currency=settings.transfer_currency),
        LedgerRecorder(),
    )
    app.state.customer_provisioner = CustomerProvisioner(dwolla)
    app.state.bank_links = BankLinkService(plaid, dwolla, provisioner)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Lightweight request logger to help trace transfer traffic.
        """
        logger.info(
            "HTTP %s %s from %s",
            request.method,
            request.url.path,
            request.client.host if request.client else "?",
        )
        return await call_next(request)

    @app.get("/api/health")
    async def health():
        """
        Simple health check endpoint.
        """
        return {"status": "healthy", "dwolla_env": settings.dwolla_env, "plaid_enabled": plaid is not None}

    app.include_router(transfers_router, prefix="/api")
    app.include_router(banks_router, prefix="/api")
    app.include_router(customers_router, prefix="/api")

    @app.on_event("startup")
    async def on_startup():
        await create_schema(engine)
        logger.info("Transfer service starting up")

    @app.on_event("shutdown")
    async def on_shutdown():
        await dwolla.close()
        if plaid is not None:
            await plaid.close()
        await engine.dispose()
        logger.info("Transfer service shutting down")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8002")),
        log_level="info",
    )
