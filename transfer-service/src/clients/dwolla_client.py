"""
Dwolla Client
HTTP client for the payment-rails (money movement) API.

Only the three calls this service relies on are implemented: create customer,
create funding source (from an aggregator processor token) and create
transfer. Each returns the URL of the created resource, taken from the
``Location`` header of the 201 response.
"""

import time
from typing import Any, Dict, Optional

import httpx

from config import Settings
from logging_config import get_logger

logger = get_logger("justbank.clients.dwolla")

HAL_JSON = "application/vnd.dwolla.v1.hal+json"

# refresh the OAuth token this many seconds before it actually expires
TOKEN_EXPIRY_MARGIN = 60


class DwollaAPIError(Exception):
    """
    Raised for any non-2xx answer (or no answer at all) from Dwolla.
    ``status`` is None when the request never got a response.
    """

    def __init__(self, status: Optional[int], message: str, body: Any = None):
        self.status = status
        self.message = message
        self.body = body
        super().__init__(f"Dwolla API error ({status}): {message}")


def _truncate(url: Optional[str], length: int = 50) -> str:
    if not url:
        return "<missing>"
    return url if len(url) <= length else url[:length] + "..."


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if not isinstance(body, dict):
        return str(body)
    message = body.get("message") or body.get("error_description") or body.get("error") or resp.reason_phrase
    embedded = (body.get("_embedded") or {}).get("errors") or []
    if embedded and isinstance(embedded[0], dict) and embedded[0].get("message"):
        message = f"{message} {embedded[0]['message']}"
    return message


class DwollaClient:
    """
    Async client for the Dwolla v2 API using client-credentials OAuth.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.dwolla_base_url.rstrip("/")
        self._key = settings.dwolla_key
        self._secret = settings.dwolla_secret
        self.client = http_client or httpx.AsyncClient(timeout=settings.http_timeout)
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        logger.info("DwollaClient initialized for %s", self.base_url)

    async def close(self) -> None:
        await self.client.aclose()

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith("http"):
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    async def _get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        url = self._url("token")
        try:
            resp = await self.client.post(
                url,
                data={"grant_type": "client_credentials"},
                auth=(self._key, self._secret),
            )
        except httpx.RequestError as e:
            logger.error("Dwolla token request failed: %s", e)
            raise DwollaAPIError(None, f"Dwolla unreachable: {e}") from e

        if resp.status_code != 200:
            logger.error("Dwolla token request -> %s", resp.status_code)
            raise DwollaAPIError(resp.status_code, _error_message(resp), resp.text)

        try:
            body = resp.json()
            access_token = body["access_token"]
            expires_in = int(body.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Dwolla token response unusable: %s", e)
            raise DwollaAPIError(resp.status_code, "invalid token response", resp.text) from e

        self._access_token = access_token
        self._token_expires_at = time.monotonic() + expires_in - TOKEN_EXPIRY_MARGIN
        return self._access_token

    async def _post(self, path_or_url: str, payload: Dict[str, Any]) -> httpx.Response:
        token = await self._get_access_token()
        url = self._url(path_or_url)
        headers = {
            "Accept": HAL_JSON,
            "Content-Type": HAL_JSON,
            "Authorization": f"Bearer {token}",
        }
        try:
            resp = await self.client.post(url, json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.exception("Dwolla POST %s failed: %s", url, e)
            raise DwollaAPIError(None, f"Dwolla unreachable: {e}") from e

        logger.info("Dwolla POST %s -> %s", url, resp.status_code)
        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.error("Dwolla POST %s failed status=%s message=%s", url, resp.status_code, message)
            raise DwollaAPIError(resp.status_code, message, resp.text)
        return resp

    @staticmethod
    def _location(resp: httpx.Response, what: str) -> str:
        location = resp.headers.get("location")
        if not location:
            raise DwollaAPIError(resp.status_code, f"{what} succeeded but no location header returned")
        return location

    async def create_customer(self, customer: Dict[str, Any]) -> str:
        """
        Create a personal verified customer; returns the customer URL.
        """
        logger.info(
            "Creating Dwolla customer email=%s type=%s has_address=%s has_ssn=%s",
            customer.get("email"),
            customer.get("type"),
            bool(customer.get("address1")),
            bool(customer.get("ssn")),
        )
        resp = await self._post("customers", customer)
        return self._location(resp, "Customer creation")

    async def create_funding_source(self, customer_id: str, name: str, plaid_token: str) -> str:
        """
        Attach a bank account (via Plaid processor token) to a customer;
        returns the funding-source URL.
        """
        logger.info("Creating funding source customer_id=%s name=%s", customer_id, name)
        resp = await self._post(
            f"customers/{customer_id}/funding-sources",
            {"name": name, "plaidToken": plaid_token},
        )
        location = self._location(resp, "Funding source creation")
        logger.info("Funding source created %s", _truncate(location))
        return location

    async def create_transfer(
        self,
        source_funding_source_url: str,
        destination_funding_source_url: str,
        amount: str,
        currency: str = "USD",
    ) -> str:
        """
        Move ``amount`` (a fixed two-decimal string) between two funding
        sources; returns the transfer URL.
        """
        logger.info(
            "Creating transfer source=%s destination=%s amount=%s %s",
            _truncate(source_funding_source_url),
            _truncate(destination_funding_source_url),
            amount,
            currency,
        )
        payload = {
            "_links": {
                "source": {"href": source_funding_source_url},
                "destination": {"href": destination_funding_source_url},
            },
            "amount": {"currency": currency, "value": amount},
        }
        resp = await self._post("transfers", payload)
        location = self._location(resp, "Transfer creation")
        logger.info("Transfer created %s", location)
        return location
