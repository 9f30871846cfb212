"""Environment-driven configuration objects for the checkout core."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from freshcart.core.constants import (
    DEFAULT_API_URL,
    DEFAULT_FISH_CATEGORY,
    FEE_SPLIT_PER_LINE,
    FEE_SPLIT_WEIGHT,
    QUOTE_TIMEOUT_SECONDS,
)
from freshcart.core.exceptions import ConfigurationException


@dataclass(slots=True)
class ApiConfig:
    base_url: str
    fish_base_url: str
    access_token: str | None
    quote_timeout: float


@dataclass(slots=True)
class Settings:
    api: ApiConfig
    redis_url: str | None
    fish_category: str
    fee_split: str
    log_level: str


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationException(f"{name} must be a number, got {raw!r}")


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    base_url = os.getenv("FRESHCART_API_URL", DEFAULT_API_URL).rstrip("/")
    fish_base_url = os.getenv("FRESHCART_FISH_API_URL") or f"{base_url}/fish"

    quote_timeout = _float_env("FRESHCART_QUOTE_TIMEOUT", QUOTE_TIMEOUT_SECONDS)
    if quote_timeout <= 0:
        raise ConfigurationException("FRESHCART_QUOTE_TIMEOUT must be positive")

    fee_split = os.getenv("FRESHCART_FEE_SPLIT", FEE_SPLIT_PER_LINE).strip().lower()
    if fee_split not in (FEE_SPLIT_PER_LINE, FEE_SPLIT_WEIGHT):
        raise ConfigurationException(
            f"FRESHCART_FEE_SPLIT must be '{FEE_SPLIT_PER_LINE}' or '{FEE_SPLIT_WEIGHT}'"
        )

    api = ApiConfig(
        base_url=base_url,
        fish_base_url=fish_base_url.rstrip("/"),
        access_token=os.getenv("FRESHCART_ACCESS_TOKEN") or None,
        quote_timeout=quote_timeout,
    )

    return Settings(
        api=api,
        redis_url=os.getenv("REDIS_URL") or None,
        fish_category=os.getenv("FRESHCART_FISH_CATEGORY", DEFAULT_FISH_CATEGORY),
        fee_split=fee_split,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def setup_logging(level: str | int = "INFO") -> None:
    """Configure a basic log handler for host applications."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
