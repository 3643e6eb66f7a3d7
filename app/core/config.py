from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so casting and validation live in one place
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    stripe_secret_key: str | None = None
    payment_currency: str = "usd"
    currency_minor_unit: int = 100
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    mail_from: str = "no-reply@course-checkout.local"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port = _parse_int("PORT", _getenv("PORT", "8000"))

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    currency = _getenv("PAYMENT_CURRENCY", "usd").lower()
    if len(currency) != 3 or not currency.isalpha():
        raise ValueError(
            f"PAYMENT_CURRENCY must be a 3-letter ISO code (got {currency!r})"
        )

    minor_unit = _parse_int(
        "CURRENCY_MINOR_UNIT", _getenv("CURRENCY_MINOR_UNIT", "100")
    )
    if minor_unit <= 0:
        raise ValueError(f"CURRENCY_MINOR_UNIT must be positive (got {minor_unit})")

    stripe_secret_key = _getenv("STRIPE_SECRET_KEY", "") or None
    if app_env_raw == "prod" and stripe_secret_key is None:
        raise ValueError("STRIPE_SECRET_KEY is required when APP_ENV=prod")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        stripe_secret_key=stripe_secret_key,
        payment_currency=currency,
        currency_minor_unit=minor_unit,
        smtp_host=_getenv("SMTP_HOST", "") or None,
        smtp_port=_parse_int("SMTP_PORT", _getenv("SMTP_PORT", "587")),
        smtp_username=_getenv("SMTP_USERNAME", "") or None,
        smtp_password=_getenv("SMTP_PASSWORD", "") or None,
        mail_from=_getenv("MAIL_FROM", "no-reply@course-checkout.local"),
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
