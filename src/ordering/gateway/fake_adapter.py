"""Configurable fake refund gateway for development and testing.

Simulates a provider without any external calls. It can be configured at
runtime to succeed, to fail with a given error kind, to report specific
capture ids as unknown, or to stall (to exercise the timeout path).

Like the real providers, it honours idempotency keys: a successful refund
is remembered under its key and replayed for later calls with that key.
"""

import threading
import time
from contextlib import nullcontext
from uuid import uuid4

from ordering.gateway.port import GatewayErrorKind, RefundGateway, RefundResult


class FakeGateway(RefundGateway):
    """Configurable fake refund gateway."""

    def __init__(self, provider: str = "stripe") -> None:
        self.provider = provider
        self.should_succeed: bool = True
        self.error_kind: GatewayErrorKind = GatewayErrorKind.REJECTED
        self.failure_reason: str = "Refund declined"
        self.delay_seconds: float = 0.0
        self.unknown_captures: set[str] = set()
        self.calls: list[dict] = []
        self.refunds_issued: list[dict] = []
        self._results: dict[str, RefundResult] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def configure(
        self,
        should_succeed: bool,
        error_kind: GatewayErrorKind = GatewayErrorKind.REJECTED,
        failure_reason: str = "Refund declined",
        delay_seconds: float = 0.0,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.error_kind = error_kind
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds

    def forget_capture(self, capture_id: str) -> None:
        """Make the provider report ``capture_id`` as not found."""
        self.unknown_captures.add(capture_id)

    def _lock_for(self, idempotency_key: str | None):
        if not idempotency_key:
            return nullcontext()
        with self._registry_lock:
            return self._key_locks.setdefault(idempotency_key, threading.Lock())

    def refund(
        self,
        capture_id: str,
        amount: float,
        currency: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "refund",
                "capture_id": capture_id,
                "amount": amount,
                "currency": currency,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
            }
        )

        # Calls sharing a key run one at a time
        with self._lock_for(idempotency_key):
            if idempotency_key in self._results:
                return self._results[idempotency_key]

            result = self._attempt(capture_id, amount, currency)
            if result.success:
                self.refunds_issued.append(
                    {
                        "provider_refund_id": result.provider_refund_id,
                        "capture_id": capture_id,
                        "amount": amount,
                        "idempotency_key": idempotency_key,
                    }
                )
                if idempotency_key:
                    self._results[idempotency_key] = result
            return result

    def _attempt(self, capture_id: str, amount: float, currency: str) -> RefundResult:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if capture_id in self.unknown_captures:
            return RefundResult.failed(
                GatewayErrorKind.NOT_FOUND,
                f"No such capture: {capture_id}",
                raw_response={"error": {"code": "RESOURCE_NOT_FOUND"}},
            )

        if self.should_succeed:
            refund_id = f"fake_{self.provider}_re_{uuid4().hex[:12]}"
            return RefundResult.succeeded(
                refund_id,
                raw_response={
                    "id": refund_id,
                    "status": "succeeded",
                    "amount": amount,
                    "currency": currency,
                },
            )
        return RefundResult.failed(self.error_kind, self.failure_reason, raw_response={"status": "failed"})
