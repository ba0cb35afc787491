"""
Plaid Client
HTTP client for the bank-data aggregation API (public token exchange,
account lookup and Dwolla processor tokens).
"""

from typing import Any, Dict, List, Optional

import httpx

from config import Settings
from errors import AggregatorError
from logging_config import get_logger

logger = get_logger("justbank.clients.plaid")


class PlaidClient:
    """
    Async client for the Plaid REST API. Credentials travel in the JSON body,
    as Plaid expects.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.plaid_base_url.rstrip("/")
        self._client_id = settings.plaid_client_id
        self._secret = settings.plaid_secret
        self.client = http_client or httpx.AsyncClient(timeout=settings.http_timeout)

    async def close(self) -> None:
        await self.client.aclose()

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        body = {"client_id": self._client_id, "secret": self._secret, **payload}
        try:
            resp = await self.client.post(url, json=body)
        except httpx.RequestError as e:
            logger.exception("Plaid POST %s failed: %s", url, e)
            raise AggregatorError("Bank connection service is unreachable. Please try again later.", detail=str(e)) from e

        logger.info("Plaid POST %s -> %s", url, resp.status_code)
        if resp.status_code >= 400:
            try:
                err = resp.json()
            except ValueError:
                err = {}
            message = err.get("error_message") or resp.text or resp.reason_phrase
            logger.error(
                "Plaid POST %s failed status=%s code=%s message=%s",
                url,
                resp.status_code,
                err.get("error_code"),
                message,
            )
            raise AggregatorError(detail=message)
        return resp.json()

    async def exchange_public_token(self, public_token: str) -> Dict[str, str]:
        """
        Returns {"access_token": ..., "item_id": ...}.
        """
        data = await self._post("/item/public_token/exchange", {"public_token": public_token})
        return {"access_token": data["access_token"], "item_id": data["item_id"]}

    async def get_accounts(self, access_token: str) -> List[Dict[str, Any]]:
        data = await self._post("/accounts/get", {"access_token": access_token})
        return data.get("accounts", [])

    async def create_processor_token(self, access_token: str, account_id: str, processor: str = "dwolla") -> str:
        data = await self._post(
            "/processor/token/create",
            {"access_token": access_token, "account_id": account_id, "processor": processor},
        )
        return data["processor_token"]
