"""Checkout Service Configuration"""

from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Application
    app_name: str = "Lottery Checkout"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000

    # Fixed exchange rates (no live FX)
    usd_to_thb_rate: Decimal = Decimal("35.5")
    usd_to_cny_rate: Decimal = Decimal("7.2")

    # QR-push sessions
    qr_window_seconds: int = 15 * 60
    poll_interval_seconds: float = 5.0

    # Manual verification delays
    bank_review_delay_seconds: float = 3.0
    wise_processing_delay_seconds: float = 2.0
    slip_max_bytes: int = 5 * 1024 * 1024

    # Gateway
    gateway_mode: str = "simulated"  # "simulated" or "http"
    gateway_base_url: str = "http://localhost:8000/sandbox/gateway"
    gateway_timeout_seconds: float = 30.0
    simulated_latency_seconds: float = 0.5
    polls_before_completion: int = 3
    sandbox_gateway_enabled: bool = True

    # PromptPay merchant proxy (phone number)
    promptpay_merchant_id: str = "0891234567"

    # Saved cards belong to a single local profile
    card_profile_id: str = "default"

    # Optional override for the log level
    log_level: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def use_http_gateway(self) -> bool:
        """Check if the remote sandbox gateway should be used"""
        return self.gateway_mode.lower() == "http"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
