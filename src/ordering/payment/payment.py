"""Payment records (CQRS): captured charges and the payment audit log.

``Payment`` is written once when a provider confirms a charge and is later
read by the refund flow to recover a capture id the order itself lacks.
``PaymentLogEntry`` is an append-only ledger of money movements and refund
milestones. Charges are logged with positive amounts and refunds with
negative amounts so that summing the log gives the net collected.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import PaymentProvider


class ChargeStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class LogStatus(Enum):
    CAPTURED = "captured"
    REFUND_REQUESTED = "refund_requested"
    REFUNDED = "refunded"
    REFUND_FAILED = "refund_failed"
    REFUND_REJECTED = "refund_rejected"
    REFUND_CANCELLED = "refund_cancelled"


@ordering.aggregate
class Payment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider = String(choices=PaymentProvider, required=True)
    provider_transaction_id = String(max_length=255)
    amount = Float(required=True, min_value=0.0)
    fee = Float(default=0.0, min_value=0.0)
    net_amount = Float(default=0.0)
    currency = String(max_length=3, default="USD")
    payment_method = String(max_length=50)
    status = String(choices=ChargeStatus, default=ChargeStatus.PENDING.value)
    gateway_response = Text()  # JSON
    created_at = DateTime()

    @classmethod
    def record_capture(
        cls,
        order_id,
        customer_id,
        provider,
        provider_transaction_id,
        amount,
        fee=0.0,
        currency="USD",
        payment_method=None,
        gateway_response=None,
    ):
        return cls(
            order_id=str(order_id),
            customer_id=str(customer_id),
            provider=PaymentProvider(provider).value,
            provider_transaction_id=provider_transaction_id,
            amount=amount,
            fee=fee or 0.0,
            net_amount=round(amount - (fee or 0.0), 2),
            currency=currency,
            payment_method=payment_method,
            status=ChargeStatus.COMPLETED.value,
            gateway_response=json.dumps(gateway_response) if gateway_response else None,
            created_at=datetime.now(UTC),
        )

    @property
    def capture_id(self):
        """Transaction id, else a ``captureId`` kept in the raw gateway response."""
        if self.provider_transaction_id:
            return self.provider_transaction_id
        if self.gateway_response:
            response = json.loads(self.gateway_response)
            return response.get("captureId") or response.get("capture_id")
        return None


@ordering.aggregate
class PaymentLogEntry:
    order_id = Identifier(required=True)
    refund_id = Identifier()
    provider = String(max_length=20)
    transaction_id = String(max_length=255)
    amount = Float(required=True)
    currency = String(max_length=3, default="USD")
    status = String(choices=LogStatus, required=True)
    notes = Text()
    created_at = DateTime()

    @classmethod
    def for_charge(cls, payment):
        return cls(
            order_id=str(payment.order_id),
            provider=payment.provider,
            transaction_id=payment.provider_transaction_id,
            amount=payment.amount,
            currency=payment.currency,
            status=LogStatus.CAPTURED.value,
            created_at=datetime.now(UTC),
        )

    @classmethod
    def for_refund(cls, refund, status, notes=None, transaction_id=None):
        now = datetime.now(UTC)
        return cls(
            order_id=str(refund.order_id),
            refund_id=str(refund.id),
            provider=refund.payment_provider,
            transaction_id=transaction_id or f"REFUND_REQ_{refund.id}_{int(now.timestamp() * 1000)}",
            amount=-abs(refund.amount),
            currency=refund.currency,
            status=LogStatus(status).value,
            notes=notes,
            created_at=now,
        )


def latest_completed_payment(order_id, provider=None):
    """Most recent completed charge for the order, optionally per provider."""
    repo = current_domain.repository_for(Payment)
    filters = {"order_id": str(order_id), "status": ChargeStatus.COMPLETED.value}
    if provider:
        filters["provider"] = PaymentProvider(provider).value
    payments = repo._dao.query.filter(**filters).all().items
    if not payments:
        return None
    return max(payments, key=lambda p: p.created_at)
