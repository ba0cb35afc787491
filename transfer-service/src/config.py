"""
transfer-service/src/config.py

Settings for the transfer service, read from the environment (and .env)
once at startup and passed explicitly to clients and services.
"""

import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from errors import ConfigError

DWOLLA_BASE_URLS = {
    "sandbox": "https://api-sandbox.dwolla.com",
    "production": "https://api.dwolla.com",
}

PLAID_BASE_URLS = {
    "sandbox": "https://sandbox.plaid.com",
    "production": "https://production.plaid.com",
}


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    database_url: str
    dwolla_env: str
    dwolla_key: str
    dwolla_secret: str
    plaid_env: str = "sandbox"
    plaid_client_id: Optional[str] = None
    plaid_secret: Optional[str] = None
    http_timeout: float = 30.0
    transfer_currency: str = "USD"
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    sql_echo: bool = False
    cors_origins: str = "*"

    @field_validator("database_url", "dwolla_key", "dwolla_secret")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be set")
        return v.strip()

    @field_validator("dwolla_env", "plaid_env")
    @classmethod
    def _known_environment(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in ("sandbox", "production"):
            raise ValueError("should either be set to `sandbox` or `production`")
        return v

    @field_validator("transfer_currency")
    @classmethod
    def _currency_code(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("must be a 3-letter ISO currency code")
        return v

    @field_validator("http_timeout")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @property
    def dwolla_base_url(self) -> str:
        return DWOLLA_BASE_URLS[self.dwolla_env]

    @property
    def plaid_base_url(self) -> str:
        return PLAID_BASE_URLS[self.plaid_env]

    @property
    def plaid_enabled(self) -> bool:
        return bool(self.plaid_client_id and self.plaid_secret)

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Build settings from process environment. Raises ConfigError listing
        every missing/invalid value.
        """
        if load_env_file:
            load_dotenv(find_dotenv(), override=False)

        raw = {
            "database_url": os.getenv("DATABASE_URL", ""),
            "dwolla_env": os.getenv("DWOLLA_ENV", ""),
            "dwolla_key": os.getenv("DWOLLA_KEY", ""),
            "dwolla_secret": os.getenv("DWOLLA_SECRET", ""),
            "plaid_env": os.getenv("PLAID_ENV", "sandbox"),
            "plaid_client_id": os.getenv("PLAID_CLIENT_ID") or None,
            "plaid_secret": os.getenv("PLAID_SECRET") or None,
            "http_timeout": os.getenv("HTTP_TIMEOUT", "30"),
            "transfer_currency": os.getenv("TRANSFER_CURRENCY", "USD"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "log_dir": os.getenv("LOG_DIR") or None,
            "sql_echo": _env_flag(os.getenv("SQL_ECHO")),
            "cors_origins": os.getenv("CORS_ORIGINS", "*"),
        }
        try:
            return cls(**raw)
        except ValidationError as e:
            problems = ", ".join(
                f"{'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {problems}") from e

    def redacted(self) -> dict:
        """Settings safe to log."""
        return {
            "dwolla_env": self.dwolla_env,
            "has_dwolla_key": bool(self.dwolla_key),
            "has_dwolla_secret": bool(self.dwolla_secret),
            "plaid_env": self.plaid_env,
            "plaid_enabled": self.plaid_enabled,
            "http_timeout": self.http_timeout,
            "transfer_currency": self.transfer_currency,
        }
