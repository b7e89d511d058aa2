"""Shipping label purchase and void: commands and handler.

The label provider is called before the order is touched; a provider
failure leaves the order unchanged. Voiding a label on a shipped order
returns it to ready-for-checkout.
"""

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from ordering.shipping import get_label_provider

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CreateShippingLabel:
    order_id = Identifier(required=True)
    carrier = String(required=True, max_length=100)
    service_level = String(max_length=50, default="Standard")
    weight = Float()


@ordering.command(part_of="Order")
class VoidShippingLabel:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class ShippingLabelHandler:
    @handle(CreateShippingLabel)
    def create_shipping_label(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if OrderStatus(order.status) not in (OrderStatus.IN_PRODUCTION, OrderStatus.READY_FOR_CHECKOUT):
            raise InvalidOperationError(f"Cannot create a shipping label for a {order.status} order")
        if order.tracking_number:
            raise InvalidOperationError("Order already has a shipping label; void it first")

        label = get_label_provider().create_label(
            str(order.id),
            command.carrier,
            command.service_level or "Standard",
            command.weight,
        )
        if label.get("error") or not label.get("tracking_number"):
            raise InvalidOperationError(f"Label purchase failed: {label.get('error', 'no tracking number')}")

        order.attach_shipping_label(
            carrier=command.carrier,
            tracking_number=label["tracking_number"],
            label_url=label.get("label_url"),
            service_level=command.service_level,
        )
        repo.add(order)
        logger.info("Shipping label created", order_id=str(order.id), tracking_number=order.tracking_number)
        return {"tracking_number": order.tracking_number, "label_url": order.label_url}

    @handle(VoidShippingLabel)
    def void_shipping_label(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.tracking_number:
            raise InvalidOperationError("Order has no shipping label to void")

        result = get_label_provider().void_label(order.tracking_number)
        if not result.get("voided"):
            raise InvalidOperationError(f"Label void failed: {result.get('reason')}")

        order.void_shipping_label()
        repo.add(order)
        logger.info("Shipping label voided", order_id=str(order.id), status=order.status)
        return order.status
