"""Refund settlement steps: commands and handler.

Approving a refund is split into steps that each commit on their own, so
the move to processing is durable before the provider is called:

1. ``BeginRefundSettlement``: approve and move to processing.
2. (outside any unit of work) call the payment gateway.
3. ``CompleteRefundSettlement`` or ``FailRefundSettlement``.
4. ``ClaimInventoryRestoration`` before stock is put back.
"""

import json

from protean import handle
from protean.exceptions import InvalidOperationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import AMOUNT_TOLERANCE, Order
from ordering.payment.payment import LogStatus, PaymentLogEntry
from ordering.refund.refund import RefundRequest


@ordering.command(part_of="RefundRequest")
class BeginRefundSettlement:
    refund_id = Identifier(required=True)
    operator_id = String(max_length=100)
    notes = Text()


@ordering.command(part_of="RefundRequest")
class CompleteRefundSettlement:
    refund_id = Identifier(required=True)
    provider_refund_id = String(required=True, max_length=255)
    provider_response = Text()  # JSON


@ordering.command(part_of="RefundRequest")
class FailRefundSettlement:
    refund_id = Identifier(required=True)
    reason = Text(required=True)
    failure_kind = String(required=True, max_length=50)


@ordering.command(part_of="RefundRequest")
class ClaimInventoryRestoration:
    refund_id = Identifier(required=True)


@ordering.command_handler(part_of=RefundRequest)
class RefundSettlementHandler:
    @handle(BeginRefundSettlement)
    def begin(self, command):
        repo = current_domain.repository_for(RefundRequest)
        refund = repo.get(command.refund_id)
        if not refund.can_be_approved:
            raise InvalidOperationError(f"Refund in {refund.status} state cannot be approved")

        order = current_domain.repository_for(Order).get(refund.order_id)
        if refund.amount > order.remaining_refundable + AMOUNT_TOLERANCE:
            raise InvalidOperationError(
                f"Refund of {refund.amount} exceeds the refundable balance {order.remaining_refundable}"
            )

        refund.begin_processing(operator_id=command.operator_id, notes=command.notes)
        repo.add(refund)
        return {
            "refund_id": str(refund.id),
            "order_id": str(refund.order_id),
            "order_number": refund.order_number,
            "amount": refund.amount,
            "currency": refund.currency,
            "reason": refund.reason,
            "provider": refund.payment_provider or order.payment_provider,
        }

    @handle(CompleteRefundSettlement)
    def complete(self, command):
        repo = current_domain.repository_for(RefundRequest)
        refund = repo.get(command.refund_id)
        response = json.loads(command.provider_response) if command.provider_response else None
        refund.complete(command.provider_refund_id, response)

        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(refund.order_id)
        order.settle_refund(refund.id, refund.amount)

        repo.add(refund)
        order_repo.add(order)
        current_domain.repository_for(PaymentLogEntry).add(
            PaymentLogEntry.for_refund(refund, LogStatus.REFUNDED, transaction_id=command.provider_refund_id)
        )
        return refund.status

    @handle(FailRefundSettlement)
    def fail(self, command):
        repo = current_domain.repository_for(RefundRequest)
        refund = repo.get(command.refund_id)
        refund.fail(command.reason, command.failure_kind)
        repo.add(refund)
        current_domain.repository_for(PaymentLogEntry).add(
            PaymentLogEntry.for_refund(refund, LogStatus.REFUND_FAILED, notes=command.reason)
        )
        return refund.status

    @handle(ClaimInventoryRestoration)
    def claim_inventory_restoration(self, command):
        repo = current_domain.repository_for(RefundRequest)
        refund = repo.get(command.refund_id)
        refund.claim_inventory_restoration()
        repo.add(refund)
