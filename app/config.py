"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    value = os.getenv(name, str(default))
    try:
        parsed = int(value)
    except ValueError:
        parsed = default
    return max(parsed, minimum)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, str(default))
    try:
        parsed = float(value)
    except ValueError:
        parsed = default
    return parsed if parsed > 0 else default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    database_path: str = "data/commerce.sqlite3"
    jwt_secret: str = ""
    jwt_expire_minutes: int = 30
    refresh_expire_days: int = 30
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    gateway_base_url: str = "https://api.razorpay.com/v1"
    gateway_timeout_seconds: float = 10.0
    default_currency: str = "USD"
    otp_ttl_minutes: int = 10
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    mail_from: str = ""
    google_client_id: str = ""
    cookie_secure: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_path=os.getenv("DATABASE_PATH", cls.database_path),
            jwt_secret=os.getenv("JWT_SECRET", ""),
            jwt_expire_minutes=_env_int("JWT_EXPIRE_MIN", cls.jwt_expire_minutes),
            refresh_expire_days=_env_int("REFRESH_EXPIRE_DAYS", cls.refresh_expire_days),
            gateway_key_id=os.getenv("GATEWAY_KEY_ID", ""),
            gateway_key_secret=os.getenv("GATEWAY_KEY_SECRET", ""),
            gateway_base_url=os.getenv("GATEWAY_BASE_URL", cls.gateway_base_url),
            gateway_timeout_seconds=_env_float("GATEWAY_TIMEOUT_SECONDS", cls.gateway_timeout_seconds),
            default_currency=os.getenv("DEFAULT_CURRENCY", cls.default_currency).upper(),
            otp_ttl_minutes=_env_int("OTP_TTL_MINUTES", cls.otp_ttl_minutes),
            smtp_host=os.getenv("SMTP_HOST", ""),
            smtp_port=_env_int("SMTP_PORT", cls.smtp_port),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            smtp_use_tls=_env_bool("SMTP_USE_TLS", True),
            mail_from=os.getenv("MAIL_FROM", ""),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID", ""),
            cookie_secure=_env_bool("COOKIE_SECURE", False),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
