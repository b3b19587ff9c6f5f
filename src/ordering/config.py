"""Runtime settings for the Ordering domain.

Values are read from environment variables once, when first requested.
Protean's own configuration (providers, brokers) is selected separately
through ``PROTEAN_ENV``.
"""

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    lookup_timeout_seconds: float = 10.0
    lookup_requester_tag: str = "cart-service"
    lookup_request_channel: str = "lookup.requests"
    lookup_response_channel: str = "lookup.responses"
    cart_event_channel: str = "cart.events"
    payment_event_channel: str = "payment.events"
    payment_success_rate: float = 0.85
    payment_min_delay_seconds: float = 2.0
    payment_max_delay_seconds: float = 5.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Build settings from the environment, falling back to defaults."""
    defaults = Settings()
    return Settings(
        lookup_timeout_seconds=_env_float("LOOKUP_TIMEOUT_SECONDS", defaults.lookup_timeout_seconds),
        lookup_requester_tag=os.getenv("LOOKUP_REQUESTER_TAG", defaults.lookup_requester_tag),
        lookup_request_channel=os.getenv("LOOKUP_REQUEST_CHANNEL", defaults.lookup_request_channel),
        lookup_response_channel=os.getenv("LOOKUP_RESPONSE_CHANNEL", defaults.lookup_response_channel),
        cart_event_channel=os.getenv("CART_EVENT_CHANNEL", defaults.cart_event_channel),
        payment_event_channel=os.getenv("PAYMENT_EVENT_CHANNEL", defaults.payment_event_channel),
        payment_success_rate=_env_float("PAYMENT_SUCCESS_RATE", defaults.payment_success_rate),
        payment_min_delay_seconds=_env_float("PAYMENT_MIN_DELAY_SECONDS", defaults.payment_min_delay_seconds),
        payment_max_delay_seconds=_env_float("PAYMENT_MAX_DELAY_SECONDS", defaults.payment_max_delay_seconds),
    )
