"""Admin review actions on an order: command and handler.

An admin action names either a verb ("approve", "reject",
"request-changes", "cancel") or a target status. The handler only moves
the order; stock deduction reacts to the committed ``OrderStatusChanged``
event in ``ordering.order.stock_events``.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class ApplyAdminAction:
    order_id = Identifier(required=True)
    action = String(required=True, max_length=50)
    notes = Text()
    operator_id = String(max_length=100)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)


@ordering.command_handler(part_of=Order)
class ApplyAdminActionHandler:
    @handle(ApplyAdminAction)
    def apply_admin_action(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        new_status = order.apply_admin_action(
            command.action,
            notes=command.notes,
            operator_id=command.operator_id,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
        )
        repo.add(order)
        return new_status
