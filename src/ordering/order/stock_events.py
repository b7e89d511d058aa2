"""Stock reactions to committed order events.

Stock moves only after the order's own write has committed, so a stock
failure can never undo a status change. All movements of one event share
the handler's unit of work.
"""

import structlog
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.order.events import OrderCancelled, OrderStatusChanged
from ordering.order.order import Order
from ordering.stock.ledger import deduct_for_order, restore_for_order

logger = structlog.get_logger(__name__)


@ordering.event_handler(part_of=Order)
class OrderStockEventHandler:
    """Deducts stock on entry to the stock-commit phase, restores it on cancellation."""

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        if not event.stock_deduction_required:
            return

        logger.info(
            "Deducting stock for order",
            order_id=str(event.order_id),
            previous_status=event.previous_status,
            new_status=event.new_status,
        )
        outcome = deduct_for_order(event.order_id)
        if not outcome.success:
            logger.error(
                "Stock deduction did not run",
                order_id=str(event.order_id),
                error_kind=outcome.error_kind.value,
                reason=outcome.message,
            )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        if not event.restock_required:
            return

        logger.info("Restoring stock for cancelled order", order_id=str(event.order_id))
        outcome = restore_for_order(event.order_id)
        if not outcome.success:
            logger.error(
                "Stock restoration did not run",
                order_id=str(event.order_id),
                error_kind=outcome.error_kind.value,
                reason=outcome.message,
            )
