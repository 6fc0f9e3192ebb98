from __future__ import annotations

import pytest

from core import settings as settings_module


def _set_minimal_valid_env(monkeypatch: pytest.MonkeyPatch) -> None:
    values = {
        "MPESA_API_URL": "https://sandbox.safaricom.co.ke",
        "MPESA_CONSUMER_KEY": "consumer-key",
        "MPESA_CONSUMER_SECRET": "consumer-secret",
        "MPESA_PASSKEY": "passkey",
        "MPESA_SHORTCODE": "174379",
        "BASE_URL": "https://learnly.example.com/",
        "CLERK_SECRET_KEY": "sk_test_123",
        "MONGO_URL": "mongodb://localhost:27017",
        "DB_NAME": "learnly",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    for key in (
        "MPESA_TRANSACTION_TYPE",
        "MPESA_CALLBACK_PATH",
        "MPESA_CALLBACK_TOKEN",
        "HTTP_TIMEOUT_SECONDS",
        "LOG_LEVEL",
        "CLERK_API_URL",
    ):
        monkeypatch.delenv(key, raising=False)
    settings_module.get_settings.cache_clear()


def test_collect_missing_required_env_vars_lists_gateway_credentials(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.delenv("MPESA_PASSKEY", raising=False)
    monkeypatch.setenv("BASE_URL", "   ")

    missing = settings_module.collect_missing_required_env_vars()

    assert missing == ["BASE_URL", "MPESA_PASSKEY"]


def test_validate_required_environment_raises_with_missing_and_invalid_values(
    monkeypatch: pytest.MonkeyPatch,
):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.delenv("CLERK_SECRET_KEY", raising=False)
    monkeypatch.setenv("MPESA_SHORTCODE", "17a379")
    monkeypatch.setenv("MPESA_TRANSACTION_TYPE", "CardPayment")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "0")
    monkeypatch.setenv("MPESA_API_URL", "sandbox.safaricom.co.ke")

    with pytest.raises(RuntimeError) as exc_info:
        settings_module.validate_required_environment()

    message = str(exc_info.value)
    assert "Missing required environment variables" in message
    assert "- CLERK_SECRET_KEY" in message
    assert "Invalid environment values" in message
    assert "MPESA_SHORTCODE must contain digits only" in message
    assert "MPESA_TRANSACTION_TYPE must be one of" in message
    assert "HTTP_TIMEOUT_SECONDS must be a positive number" in message
    assert "MPESA_API_URL must start with http:// or https://" in message


def test_get_settings_builds_callback_url_from_base_url(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("MPESA_CALLBACK_PATH", "hooks/mpesa")
    monkeypatch.setenv("MPESA_CALLBACK_TOKEN", "s3cret")

    settings = settings_module.get_settings()

    assert settings.mpesa_callback_url == "https://learnly.example.com/hooks/mpesa"
    assert settings.mpesa_callback_token == "s3cret"
    assert settings.mpesa_transaction_type == "CustomerPayBillOnline"
    assert settings.http_timeout_seconds == 10.0
    assert settings.clerk_api_url == "https://api.clerk.com"
    settings_module.get_settings.cache_clear()


def test_get_settings_refuses_to_start_without_configuration(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.delenv("MPESA_CONSUMER_KEY", raising=False)

    with pytest.raises(settings_module.ConfigurationError):
        settings_module.get_settings()
