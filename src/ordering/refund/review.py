"""Refund review decisions: start review, reject, cancel."""

from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.payment.payment import LogStatus, PaymentLogEntry
from ordering.refund.refund import RefundRequest


@ordering.command(part_of="RefundRequest")
class StartRefundReview:
    refund_id = Identifier(required=True)
    reviewer_id = String(max_length=100)


@ordering.command(part_of="RefundRequest")
class RejectRefundRequest:
    refund_id = Identifier(required=True)
    reason = Text(required=True)
    reviewer_id = String(max_length=100)


@ordering.command(part_of="RefundRequest")
class CancelRefundRequest:
    refund_id = Identifier(required=True)
    acting_user_id = Identifier()
    is_admin = Boolean(default=False)


@ordering.command_handler(part_of=RefundRequest)
class RefundReviewHandler:
    @handle(StartRefundReview)
    def start_review(self, command):
        repo = current_domain.repository_for(RefundRequest)
        refund = repo.get(command.refund_id)
        refund.start_review(command.reviewer_id)
        repo.add(refund)
        return refund.status

    @handle(RejectRefundRequest)
    def reject(self, command):
        repo = current_domain.repository_for(RefundRequest)
        refund = repo.get(command.refund_id)
        refund.reject(command.reason, reviewer_id=command.reviewer_id)

        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(refund.order_id)
        order.release_refund(refund.id)

        repo.add(refund)
        order_repo.add(order)
        current_domain.repository_for(PaymentLogEntry).add(
            PaymentLogEntry.for_refund(refund, LogStatus.REFUND_REJECTED, notes=command.reason)
        )
        return refund.status

    @handle(CancelRefundRequest)
    def cancel(self, command):
        repo = current_domain.repository_for(RefundRequest)
        refund = repo.get(command.refund_id)
        refund.cancel(acting_user_id=command.acting_user_id, is_admin=bool(command.is_admin))

        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(refund.order_id)
        order.release_refund(refund.id)

        repo.add(refund)
        order_repo.add(order)
        current_domain.repository_for(PaymentLogEntry).add(
            PaymentLogEntry.for_refund(refund, LogStatus.REFUND_CANCELLED)
        )
        return refund.status
