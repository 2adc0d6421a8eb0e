"""Runtime configuration loaded from the environment (and an optional .env)."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[2]

DEFAULT_REDIRECT_URL = "betza://payment-callback"


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value is not None and value.strip() != "":
            return value.strip()
    return default


def _get_int(*keys: str, default: int) -> int:
    value = _get_env(*keys)
    return default if value is None else int(value)


def _get_float(*keys: str, default: float) -> float:
    value = _get_env(*keys)
    return default if value is None else float(value)


@dataclass(frozen=True)
class Settings:
    backend_url: str = "http://localhost:54321"
    api_key: str = ""
    service_key: str = ""
    database_url: str = ""
    payment_redirect_url: str = DEFAULT_REDIRECT_URL
    request_timeout: float = 10.0
    verify_attempts: int = 2
    currency: str = "NGN"
    paystack_secret_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"

    @classmethod
    def from_env(cls, dotenv_path: Path | None = None) -> "Settings":
        load_dotenv(dotenv_path=dotenv_path or ROOT_DIR / ".env")
        return cls(
            backend_url=_get_env("STOREFRONT_BACKEND_URL", "SUPABASE_URL", default=cls.backend_url),
            api_key=_get_env("STOREFRONT_API_KEY", "SUPABASE_ANON_KEY", default="") or "",
            service_key=_get_env("STOREFRONT_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY", default="") or "",
            database_url=_get_env("STOREFRONT_DATABASE_URL", "DATABASE_URL", default="") or "",
            payment_redirect_url=_get_env("STOREFRONT_PAYMENT_REDIRECT_URL", default=DEFAULT_REDIRECT_URL),
            request_timeout=_get_float("STOREFRONT_REQUEST_TIMEOUT", default=cls.request_timeout),
            verify_attempts=_get_int("STOREFRONT_VERIFY_ATTEMPTS", default=cls.verify_attempts),
            currency=_get_env("STOREFRONT_CURRENCY", default=cls.currency),
            paystack_secret_key=_get_env("PAYSTACK_SECRET_KEY", default="") or "",
            paystack_base_url=_get_env("PAYSTACK_BASE_URL", default=cls.paystack_base_url),
        )
