from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_TRANSACTION_TYPES = {"CustomerPayBillOnline", "CustomerBuyGoodsOnline"}
SUPPORTED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
DEFAULT_CALLBACK_PATH = "/v1/payments/mpesa/callback"


class ConfigurationError(RuntimeError):
    pass


def _split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env(name: str) -> str | None:
    raw_value = os.getenv(name)
    if raw_value is None:
        return None
    normalized = raw_value.strip()
    return normalized or None


def collect_missing_required_env_vars() -> list[str]:
    missing: list[str] = []

    always_required = (
        "MPESA_API_URL",
        "MPESA_CONSUMER_KEY",
        "MPESA_CONSUMER_SECRET",
        "MPESA_PASSKEY",
        "MPESA_SHORTCODE",
        "BASE_URL",
        "CLERK_SECRET_KEY",
        "MONGO_URL",
        "DB_NAME",
    )
    for var_name in always_required:
        if _env(var_name) is None:
            missing.append(var_name)

    return sorted(set(missing))


def collect_invalid_env_values() -> list[str]:
    invalid_values: list[str] = []

    for var_name in ("MPESA_API_URL", "BASE_URL", "CLERK_API_URL"):
        value = _env(var_name)
        if value is not None and not value.startswith(("http://", "https://")):
            invalid_values.append(f"{var_name} must start with http:// or https://")

    shortcode = _env("MPESA_SHORTCODE")
    if shortcode is not None and not shortcode.isdigit():
        invalid_values.append("MPESA_SHORTCODE must contain digits only")

    transaction_type = _env("MPESA_TRANSACTION_TYPE") or "CustomerPayBillOnline"
    if transaction_type not in SUPPORTED_TRANSACTION_TYPES:
        invalid_values.append(
            "MPESA_TRANSACTION_TYPE must be one of: CustomerPayBillOnline, CustomerBuyGoodsOnline"
        )

    timeout = _env("HTTP_TIMEOUT_SECONDS")
    if timeout is not None:
        try:
            parsed_timeout = float(timeout)
            if parsed_timeout <= 0:
                raise ValueError("must be positive")
        except ValueError:
            invalid_values.append("HTTP_TIMEOUT_SECONDS must be a positive number")

    log_level = (_env("LOG_LEVEL") or "INFO").upper()
    if log_level not in SUPPORTED_LOG_LEVELS:
        invalid_values.append("LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    return invalid_values


def validate_required_environment() -> None:
    missing_vars = collect_missing_required_env_vars()
    invalid_values = collect_invalid_env_values()
    if not missing_vars and not invalid_values:
        return

    message_lines = ["Application startup blocked by invalid environment configuration."]
    if missing_vars:
        message_lines.append("")
        message_lines.append("Missing required environment variables:")
        message_lines.extend(f"- {name}" for name in missing_vars)
    if invalid_values:
        message_lines.append("")
        message_lines.append("Invalid environment values:")
        message_lines.extend(f"- {message}" for message in invalid_values)
    raise ConfigurationError("\n".join(message_lines))


@dataclass(frozen=True)
class Settings:
    env: str
    cors_origins: tuple[str, ...]
    debug_include_error_details: bool
    log_level: str
    mongo_url: str
    db_name: str
    base_url: str
    http_timeout_seconds: float
    mpesa_api_url: str
    mpesa_consumer_key: str
    mpesa_consumer_secret: str
    mpesa_passkey: str
    mpesa_shortcode: str
    mpesa_transaction_type: str
    mpesa_callback_path: str
    mpesa_callback_token: str | None
    clerk_api_url: str
    clerk_secret_key: str

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def mpesa_callback_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.mpesa_callback_path}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    validate_required_environment()

    callback_path = _env("MPESA_CALLBACK_PATH") or DEFAULT_CALLBACK_PATH
    if not callback_path.startswith("/"):
        callback_path = f"/{callback_path}"

    return Settings(
        env=os.getenv("ENV", "development"),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
        debug_include_error_details=os.getenv("DEBUG_INCLUDE_ERROR_DETAILS", "false").lower()
        in {"1", "true", "yes"},
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        mongo_url=os.environ["MONGO_URL"].strip(),
        db_name=os.environ["DB_NAME"].strip(),
        base_url=os.environ["BASE_URL"].strip(),
        http_timeout_seconds=float(_env("HTTP_TIMEOUT_SECONDS") or "10"),
        mpesa_api_url=os.environ["MPESA_API_URL"].strip().rstrip("/"),
        mpesa_consumer_key=os.environ["MPESA_CONSUMER_KEY"].strip(),
        mpesa_consumer_secret=os.environ["MPESA_CONSUMER_SECRET"].strip(),
        mpesa_passkey=os.environ["MPESA_PASSKEY"].strip(),
        mpesa_shortcode=os.environ["MPESA_SHORTCODE"].strip(),
        mpesa_transaction_type=_env("MPESA_TRANSACTION_TYPE") or "CustomerPayBillOnline",
        mpesa_callback_path=callback_path,
        mpesa_callback_token=_env("MPESA_CALLBACK_TOKEN"),
        clerk_api_url=(_env("CLERK_API_URL") or "https://api.clerk.com").rstrip("/"),
        clerk_secret_key=os.environ["CLERK_SECRET_KEY"].strip(),
    )
