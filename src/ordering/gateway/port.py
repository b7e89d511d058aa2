"""Refund gateway port (abstract interface).

Defines the contract every payment provider adapter implements. The
ordering core depends only on this contract; provider SDKs, credentials
and wire formats stay inside the concrete adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class GatewayErrorKind(Enum):
    NOT_FOUND = "not_found"  # the capture id is unknown to the provider
    TRANSIENT = "transient"  # timeout, outage, rate limit
    REJECTED = "rejected"  # the provider refused the refund


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    provider_refund_id: str | None = None
    raw_response: dict = field(default_factory=dict)
    error_kind: GatewayErrorKind | None = None
    failure_reason: str | None = None

    @classmethod
    def succeeded(cls, provider_refund_id: str, raw_response: dict | None = None) -> "RefundResult":
        return cls(success=True, provider_refund_id=provider_refund_id, raw_response=raw_response or {})

    @classmethod
    def failed(cls, error_kind: GatewayErrorKind, failure_reason: str, raw_response: dict | None = None) -> "RefundResult":
        return cls(
            success=False,
            error_kind=error_kind,
            failure_reason=failure_reason,
            raw_response=raw_response or {},
        )


class RefundGateway(ABC):
    """Abstract refund gateway interface, one instance per provider."""

    @abstractmethod
    def refund(
        self,
        capture_id: str,
        amount: float,
        currency: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Refund ``amount`` of a previously captured charge.

        Adapters forward ``idempotency_key`` to the provider. A repeated key
        returns the refund already issued under it instead of paying out a
        second time, including when the first call is still in flight.
        """
        ...
