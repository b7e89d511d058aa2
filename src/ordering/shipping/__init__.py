"""Shipping label adapter access: pluggable label provider integration."""

import os

from ordering.shipping.port import LabelPort

_label_provider: LabelPort | None = None


def get_label_provider() -> LabelPort:
    """Return the configured label provider (singleton).

    Uses FakeLabelProvider by default. In production, configure via the
    LABEL_ADAPTER environment variable.
    """
    global _label_provider
    if _label_provider is None:
        adapter = os.environ.get("LABEL_ADAPTER", "fake")
        if adapter == "fake":
            from ordering.shipping.fake_adapter import FakeLabelProvider

            _label_provider = FakeLabelProvider()
        else:
            raise ValueError(f"Unknown label adapter: {adapter}")
    return _label_provider


def set_label_provider(provider: LabelPort) -> None:
    global _label_provider
    _label_provider = provider


def reset_label_provider() -> None:
    """Reset the label provider singleton (useful for testing)."""
    global _label_provider
    _label_provider = None
