"""Order entry points.

Thin wrappers that send one command each and translate expected failures
into an ``Outcome`` for the transport layer. Commands are built inside the
captured call so malformed input is reported as a validation failure.
"""

import json

from protean.utils.globals import current_domain

from ordering.errors import Outcome, capture_outcome
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import PlaceOrder, ResubmitOrder
from ordering.order.fulfillment import CreateShippingLabel, VoidShippingLabel
from ordering.order.payment import AssignOrderNumber, RecordPaymentCapture
from ordering.order.review import ApplyAdminAction


def _process(command_cls, **fields):
    return current_domain.process(command_cls(**fields), asynchronous=False)


def place_order(customer_id, lines, subtotal, total, shipping=0.0, tax=0.0, currency=None) -> Outcome:
    """Submit a new order for review. The value is the new order id."""
    return capture_outcome(
        "place_order",
        _process,
        PlaceOrder,
        customer_id=str(customer_id),
        lines=json.dumps(lines),
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=total,
        currency=currency,
    )


def apply_admin_action(order_id, action, payload=None) -> Outcome:
    """Apply an admin review action. The value is the resulting status.

    ``payload`` may carry ``notes``, ``operator_id``, ``tracking_number`` and
    ``carrier``.
    """
    payload = payload or {}
    return capture_outcome(
        "apply_admin_action",
        _process,
        ApplyAdminAction,
        order_id=str(order_id),
        action=action,
        notes=payload.get("notes"),
        operator_id=payload.get("operator_id"),
        tracking_number=payload.get("tracking_number"),
        carrier=payload.get("carrier"),
    )


def resubmit_order(order_id, customer_id) -> Outcome:
    return capture_outcome(
        "resubmit_order",
        _process,
        ResubmitOrder,
        order_id=str(order_id),
        customer_id=str(customer_id),
    )


def cancel_order(order_id, reason, cancelled_by, acting_user_id=None) -> Outcome:
    return capture_outcome(
        "cancel_order",
        _process,
        CancelOrder,
        order_id=str(order_id),
        reason=reason,
        cancelled_by=cancelled_by,
        acting_user_id=str(acting_user_id) if acting_user_id else None,
    )


def record_payment_capture(order_id, provider, capture_id, amount, **details) -> Outcome:
    """Record a captured charge. Extra keyword args follow ``RecordPaymentCapture``."""
    gateway_response = details.pop("gateway_response", None)
    return capture_outcome(
        "record_payment_capture",
        _process,
        RecordPaymentCapture,
        order_id=str(order_id),
        provider=provider,
        capture_id=capture_id,
        amount=amount,
        gateway_response=json.dumps(gateway_response) if gateway_response else None,
        **details,
    )


def assign_order_number(order_id, order_number=None) -> Outcome:
    return capture_outcome(
        "assign_order_number",
        _process,
        AssignOrderNumber,
        order_id=str(order_id),
        order_number=order_number,
    )


def create_shipping_label(order_id, carrier, service_level="Standard", weight=None) -> Outcome:
    return capture_outcome(
        "create_shipping_label",
        _process,
        CreateShippingLabel,
        order_id=str(order_id),
        carrier=carrier,
        service_level=service_level,
        weight=weight,
    )


def void_shipping_label(order_id) -> Outcome:
    return capture_outcome("void_shipping_label", _process, VoidShippingLabel, order_id=str(order_id))
