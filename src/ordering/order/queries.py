"""Read-side snapshots of orders for the API and operators."""

from protean.utils.globals import current_domain

from ordering.errors import Outcome, capture_outcome
from ordering.order.order import Order


def order_snapshot(order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "phase": order.phase.value,
        "last_requested_action": order.last_requested_action,
        "payment_status": order.payment_status,
        "payment_provider": order.payment_provider,
        "refund_status": order.refund_status,
        "refunded_amount": order.refunded_amount or 0.0,
        "total": order.total,
        "currency": order.currency,
        "carrier": order.carrier,
        "tracking_number": order.tracking_number,
        "lines": [
            {
                "product_id": line.product_id,
                "variant_id": line.variant_id,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
            }
            for line in order.lines
        ],
    }


def _get_order(order_id):
    return order_snapshot(current_domain.repository_for(Order).get(order_id))


def get_order(order_id) -> Outcome:
    return capture_outcome("get_order", _get_order, order_id)
