"""Notifications for order and refund events.

Fire-and-forget: ``notify`` never raises, so a delivery problem cannot
affect the write that produced the event.
"""

import structlog
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.notification import alert_operations, notify
from ordering.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderRefundSettled,
    OrderShipped,
    OrderStatusChanged,
)
from ordering.order.order import Order
from ordering.refund.events import (
    RefundCompleted,
    RefundFailed,
    RefundRejected,
    RefundRequestSubmitted,
)
from ordering.refund.refund import RefundRequest

logger = structlog.get_logger(__name__)


@ordering.event_handler(part_of=Order)
class OrderNotificationHandler:
    """Tells customers about their order and operators about new work."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        notify("order_placed", event.customer_id, order_id=str(event.order_id), total=event.total)
        alert_operations("order_awaiting_review", order_id=str(event.order_id))

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        notify(
            "order_status_changed",
            event.customer_id,
            order_id=str(event.order_id),
            previous_status=event.previous_status,
            status=event.new_status,
            notes=event.notes,
        )

    @handle(OrderShipped)
    def on_order_shipped(self, event: OrderShipped) -> None:
        notify(
            "order_shipped",
            event.customer_id,
            order_id=str(event.order_id),
            carrier=event.carrier,
            tracking_number=event.tracking_number,
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        notify("order_cancelled", event.customer_id, order_id=str(event.order_id), reason=event.reason)

    @handle(OrderRefundSettled)
    def on_refund_settled(self, event: OrderRefundSettled) -> None:
        if event.new_status != event.previous_status:
            logger.info(
                "Order closed by refund",
                order_id=str(event.order_id),
                status=event.new_status,
            )


@ordering.event_handler(part_of=RefundRequest)
class RefundNotificationHandler:
    """Keeps the customer and the operations team informed about refunds."""

    @handle(RefundRequestSubmitted)
    def on_submitted(self, event: RefundRequestSubmitted) -> None:
        notify("refund_requested", event.user_id, refund_id=str(event.refund_id), amount=event.amount)
        alert_operations(
            "refund_awaiting_review",
            refund_id=str(event.refund_id),
            order_id=str(event.order_id),
            reason=event.reason,
        )

    @handle(RefundCompleted)
    def on_completed(self, event: RefundCompleted) -> None:
        notify(
            "refund_completed",
            event.user_id,
            refund_id=str(event.refund_id),
            amount=event.amount,
            currency=event.currency,
        )

    @handle(RefundFailed)
    def on_failed(self, event: RefundFailed) -> None:
        alert_operations(
            "refund_failed",
            refund_id=str(event.refund_id),
            order_id=str(event.order_id),
            failure_kind=event.failure_kind,
            reason=event.reason,
        )

    @handle(RefundRejected)
    def on_rejected(self, event: RefundRejected) -> None:
        notify("refund_rejected", event.user_id, refund_id=str(event.refund_id), reason=event.reason)
