"""Payment capture recording: commands and handler.

A provider webhook (or the manual checkout path) reports a captured
charge. The handler stores a ``Payment`` record and an audit log entry and
advances the order out of pending-payment, all in one unit of work. A
repeated callback for the same capture is acknowledged without changes.
"""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, PaymentProvider
from ordering.payment.payment import Payment, PaymentLogEntry

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class RecordPaymentCapture:
    order_id = Identifier(required=True)
    provider = String(required=True, choices=PaymentProvider)
    capture_id = String(required=True, max_length=255)
    amount = Float(required=True, min_value=0.0)
    fee = Float(default=0.0)
    transaction_id = String(max_length=255)
    payment_method = String(max_length=50)
    card_last4 = String(max_length=4)
    card_brand = String(max_length=50)
    gateway_response = Text()  # JSON


@ordering.command(part_of="Order")
class AssignOrderNumber:
    order_id = Identifier(required=True)
    order_number = String(max_length=100)


@ordering.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(RecordPaymentCapture)
    def record_payment_capture(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)

        payment = Payment.record_capture(
            order_id=order.id,
            customer_id=order.customer_id,
            provider=command.provider,
            provider_transaction_id=command.capture_id,
            amount=command.amount,
            fee=command.fee,
            currency=order.currency,
            payment_method=command.payment_method,
            gateway_response=json.loads(command.gateway_response) if command.gateway_response else None,
        )
        recorded = order.record_payment_capture(
            payment_id=payment.id,
            provider=command.provider,
            capture_id=command.capture_id,
            amount=command.amount,
            transaction_id=command.transaction_id,
            payment_method=command.payment_method,
            card_last4=command.card_last4,
            card_brand=command.card_brand,
        )
        if not recorded:
            logger.info("Duplicate payment capture ignored", order_id=str(order.id), capture_id=command.capture_id)
            return order.status

        current_domain.repository_for(Payment).add(payment)
        current_domain.repository_for(PaymentLogEntry).add(PaymentLogEntry.for_charge(payment))
        order_repo.add(order)
        logger.info(
            "Payment captured",
            order_id=str(order.id),
            order_number=order.order_number,
            provider=payment.provider,
            amount=payment.amount,
        )
        return order.status

    @handle(AssignOrderNumber)
    def assign_order_number(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assign_order_number(command.order_number)
        repo.add(order)
        return order.order_number
