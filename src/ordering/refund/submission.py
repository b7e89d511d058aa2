"""Refund request submission: command and handler.

Opening a request is checked against the order in this order: ownership,
refundable status, already fully refunded, an open request on the same
order, the eligibility window, then the amount. The refund request, the
order's refund stamp and the audit entry are written in one unit of work.
"""

import json

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.config import refund_time_limit_days
from ordering.domain import ordering
from ordering.order.order import AMOUNT_TOLERANCE, Order
from ordering.payment.payment import LogStatus, PaymentLogEntry, latest_completed_payment
from ordering.policies import is_refundable_status, within_refund_window
from ordering.refund.refund import (
    RefundMethod,
    RefundReason,
    RefundRequest,
    RefundType,
    parse_choice,
)

logger = structlog.get_logger(__name__)


@ordering.command(part_of="RefundRequest")
class SubmitRefundRequest:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String(required=True, max_length=50)
    amount = Float()  # Optional: defaults to the remaining refundable amount
    refund_type = String(max_length=20)
    description = Text()
    items = Text()  # JSON: [{product_id, variant_id, quantity}]
    evidence_urls = Text()  # JSON: list of URLs
    refund_method = String(max_length=30, default=RefundMethod.ORIGINAL_PAYMENT.value)


def active_refund_for(order_id):
    """The order's non-final refund request, if one exists."""
    repo = current_domain.repository_for(RefundRequest)
    requests = repo._dao.query.filter(order_id=str(order_id)).all().items
    return next((r for r in requests if not r.is_final_state), None)


@ordering.command_handler(part_of=RefundRequest)
class SubmitRefundRequestHandler:
    @handle(SubmitRefundRequest)
    def submit_refund_request(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)

        if str(order.customer_id) != str(command.user_id):
            raise ValidationError({"user_id": ["Order does not belong to this user"]})
        reason = parse_choice(RefundReason, command.reason, "reason")

        if not is_refundable_status(order.status):
            raise InvalidOperationError(f"Orders in {order.status} status are not eligible for a refund")
        if order.is_fully_refunded:
            raise InvalidOperationError("Order has already been fully refunded")

        active = active_refund_for(order.id)
        if active is not None:
            raise InvalidOperationError(f"Refund request {active.id} is already open for this order")

        limit_days = refund_time_limit_days()
        if not within_refund_window(order, limit_days):
            raise InvalidOperationError(f"Refund window of {limit_days} days has passed")

        remaining = order.remaining_refundable
        amount = command.amount if command.amount is not None else remaining
        if amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})
        if amount > remaining + AMOUNT_TOLERANCE:
            raise ValidationError({"amount": [f"Refund amount {amount} exceeds the refundable balance {remaining}"]})

        if command.refund_type:
            refund_type = parse_choice(RefundType, command.refund_type, "refund_type")
        else:
            refund_type = RefundType.FULL if amount >= remaining - AMOUNT_TOLERANCE else RefundType.PARTIAL

        payment = latest_completed_payment(order.id, order.payment_provider)
        refund = RefundRequest.submit(
            order_id=order.id,
            user_id=command.user_id,
            amount=round(amount, 2),
            original_amount=order.total,
            reason=reason.value,
            refund_type=refund_type.value,
            currency=order.currency,
            order_number=order.order_number or f"ORD-{order.id}",
            payment_id=payment.id if payment else None,
            payment_provider=order.payment_provider,
            description=command.description,
            items=json.loads(command.items) if command.items else None,
            evidence_urls=json.loads(command.evidence_urls) if command.evidence_urls else None,
            refund_method=command.refund_method or RefundMethod.ORIGINAL_PAYMENT.value,
        )
        order.mark_refund_requested(refund.id, refund.amount)

        current_domain.repository_for(RefundRequest).add(refund)
        order_repo.add(order)
        current_domain.repository_for(PaymentLogEntry).add(
            PaymentLogEntry.for_refund(refund, LogStatus.REFUND_REQUESTED, notes=f"Refund requested: {reason.value}")
        )

        logger.info(
            "Refund request submitted",
            refund_id=str(refund.id),
            order_id=str(order.id),
            amount=refund.amount,
            reason=refund.reason,
        )
        return str(refund.id)
