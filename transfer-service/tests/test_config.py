import pytest

from config import Settings
from errors import ConfigError

ENV_VARS = (
    "DATABASE_URL",
    "DWOLLA_ENV",
    "DWOLLA_KEY",
    "DWOLLA_SECRET",
    "PLAID_ENV",
    "PLAID_CLIENT_ID",
    "PLAID_SECRET",
    "HTTP_TIMEOUT",
    "TRANSFER_CURRENCY",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_from_env_reads_required_values(clean_env):
    clean_env.setenv("DATABASE_URL", "postgresql+asyncpg://justbank:pw@localhost/justbank")
    clean_env.setenv("DWOLLA_ENV", "Sandbox")
    clean_env.setenv("DWOLLA_KEY", "key")
    clean_env.setenv("DWOLLA_SECRET", "secret")

    settings = Settings.from_env(load_env_file=False)

    assert settings.dwolla_env == "sandbox"
    assert settings.dwolla_base_url == "https://api-sandbox.dwolla.com"
    assert settings.transfer_currency == "USD"
    assert settings.http_timeout == 30.0
    assert settings.plaid_enabled is False


def test_from_env_names_every_missing_value(clean_env):
    with pytest.raises(ConfigError) as exc_info:
        Settings.from_env(load_env_file=False)

    message = exc_info.value.message
    for name in ("DATABASE_URL", "DWOLLA_ENV", "DWOLLA_KEY", "DWOLLA_SECRET"):
        assert name in message


def test_unknown_dwolla_environment_is_rejected(clean_env):
    clean_env.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    clean_env.setenv("DWOLLA_ENV", "staging")
    clean_env.setenv("DWOLLA_KEY", "key")
    clean_env.setenv("DWOLLA_SECRET", "secret")

    with pytest.raises(ConfigError) as exc_info:
        Settings.from_env(load_env_file=False)
    assert "DWOLLA_ENV" in exc_info.value.message


def test_production_urls_and_plaid_flag(settings):
    prod = settings.model_copy(
        update={"dwolla_env": "production", "plaid_env": "production", "plaid_client_id": "cid", "plaid_secret": "s"}
    )
    assert prod.dwolla_base_url == "https://api.dwolla.com"
    assert prod.plaid_base_url == "https://production.plaid.com"
    assert prod.plaid_enabled is True


def test_redacted_hides_credentials(settings):
    view = settings.redacted()
    assert "test-secret" not in str(view)
    assert view["has_dwolla_secret"] is True
