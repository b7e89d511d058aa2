"""Refund gateway registry.

Provider dispatch happens here and nowhere else: callers pass the stored
provider tag and receive the adapter for it. Fake adapters are installed
by default; production wiring replaces them with ``set_gateway``.
"""

from ordering.gateway.fake_adapter import FakeGateway
from ordering.gateway.port import GatewayErrorKind, RefundGateway, RefundResult
from ordering.order.order import PaymentProvider

_gateways: dict[PaymentProvider, RefundGateway] = {}


def get_gateway(provider) -> RefundGateway:
    """Return the refund gateway for ``provider``. Defaults to FakeGateway."""
    provider = PaymentProvider(provider)
    if provider == PaymentProvider.MANUAL:
        raise ValueError("Manually collected payments have no refund gateway")
    if provider not in _gateways:
        _gateways[provider] = FakeGateway(provider=provider.value)
    return _gateways[provider]


def set_gateway(provider, gateway: RefundGateway) -> None:
    """Override the gateway for one provider (useful for tests)."""
    _gateways[PaymentProvider(provider)] = gateway


def reset_gateways() -> None:
    """Reset to default gateways."""
    _gateways.clear()


__all__ = [
    "FakeGateway",
    "GatewayErrorKind",
    "RefundGateway",
    "RefundResult",
    "get_gateway",
    "reset_gateways",
    "set_gateway",
]
