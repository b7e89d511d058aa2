"""Process settings read from the environment.

Protean's own configuration (databases, brokers, event store, processing
mode) lives in ``domain.toml``. The knobs here belong to the ordering rules
themselves and are read on every call so they can be changed per process
or per test via environment variables.
"""

import os

DEFAULT_REFUND_TIME_LIMIT_DAYS = 30
DEFAULT_GATEWAY_TIMEOUT_SECONDS = 10.0
DEFAULT_GATEWAY_MAX_WORKERS = 4
DEFAULT_CURRENCY = "USD"


def current_env() -> str:
    """Active environment name (``PROTEAN_ENV`` wins over ``ENV``)."""
    return (os.getenv("PROTEAN_ENV") or os.getenv("ENV") or "development").lower()


def refund_time_limit_days() -> int:
    """Days after delivery (or shipment, or creation) a refund may be requested."""
    return int(os.getenv("REFUND_TIME_LIMIT_DAYS", DEFAULT_REFUND_TIME_LIMIT_DAYS))


def gateway_timeout_seconds() -> float:
    """Upper bound for a single outbound refund call."""
    return float(os.getenv("REFUND_GATEWAY_TIMEOUT_SECONDS", DEFAULT_GATEWAY_TIMEOUT_SECONDS))


def gateway_max_workers() -> int:
    """Outbound refund calls that may be in flight at once."""
    return int(os.getenv("REFUND_GATEWAY_MAX_WORKERS", DEFAULT_GATEWAY_MAX_WORKERS))


def default_currency() -> str:
    return os.getenv("DEFAULT_CURRENCY", DEFAULT_CURRENCY).upper()
