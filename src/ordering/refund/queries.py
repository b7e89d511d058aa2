"""Read-side snapshots of refund requests."""

from protean.utils.globals import current_domain

from ordering.errors import Outcome, capture_outcome
from ordering.refund.refund import RefundRequest


def refund_snapshot(refund) -> dict:
    return {
        "refund_id": str(refund.id),
        "order_id": str(refund.order_id),
        "user_id": str(refund.user_id),
        "status": refund.status,
        "refund_type": refund.refund_type,
        "amount": refund.amount,
        "currency": refund.currency,
        "reason": refund.reason,
        "admin_notes": refund.admin_notes,
        "rejection_reason": refund.rejection_reason,
        "provider_refund_id": refund.provider_refund_id,
        "failure_kind": refund.failure_kind,
        "inventory_restored": bool(refund.inventory_restored),
    }


def _get_refund(refund_id):
    return refund_snapshot(current_domain.repository_for(RefundRequest).get(refund_id))


def get_refund(refund_id) -> Outcome:
    return capture_outcome("get_refund", _get_refund, refund_id)
