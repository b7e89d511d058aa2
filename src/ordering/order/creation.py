"""Order placement and resubmission: commands and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.config import default_currency
from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of line dicts
    subtotal = Float(required=True)
    shipping = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(required=True)
    currency = String(max_length=3)


@ordering.command(part_of="Order")
class ResubmitOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines_data = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
        totals = {
            "subtotal": command.subtotal,
            "shipping": command.shipping or 0.0,
            "tax": command.tax or 0.0,
            "total": command.total,
            "currency": command.currency or default_currency(),
        }

        order = Order.place(customer_id=command.customer_id, lines_data=lines_data, totals=totals)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @handle(ResubmitOrder)
    def resubmit_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.resubmit(command.customer_id)
        repo.add(order)
        return order.status
