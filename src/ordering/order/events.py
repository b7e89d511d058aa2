"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
Events are persisted to the order's stream in the event store and used for:
- Rebuilding aggregate state via @apply (event sourcing)
- Triggering stock deduction and restocking after a transition commits
- Emitting notifications to customers and operators
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer submitted a new order for review."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of line dicts
    subtotal = Float(required=True)
    shipping = Float()
    tax = Float()
    total = Float(required=True)
    currency = String(default="USD")
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved between lifecycle statuses.

    ``requested_action`` is what the actor asked for; ``new_status`` is where
    the order ended up (an "approve" action lands in pending-payment).
    """

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    requested_action = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    notes = Text()
    operator_id = String()
    stock_deduction_required = Boolean(default=False)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    """The order left the workshop."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    carrier = String()
    tracking_number = String()
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    """The carrier confirmed delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before shipment."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    restock_required = Boolean(default=False)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderNumberAssigned:
    """A human-readable order number was assigned."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    assigned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentCaptured:
    """The payment provider confirmed the charge for this order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    provider = String(required=True)
    capture_id = String(required=True)
    transaction_id = String()
    amount = Float(required=True)
    payment_method = String()
    card_last4 = String()
    card_brand = String()
    captured_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ShippingLabelCreated:
    """A shipping label was purchased and its tracking data stored."""

    __version__ = 1

    order_id = Identifier(required=True)
    carrier = String(required=True)
    tracking_number = String(required=True)
    label_url = String()
    service_level = String()
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ShippingLabelVoided:
    """The shipping label was voided; shipment data was cleared."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    tracking_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    voided_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefundRequested:
    """A refund request was opened against the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    amount = Float(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefundSettled:
    """A refund was paid out; the order's refund totals were updated."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_amount = Float(required=True)
    refund_status = String(required=True)
    payment_status = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    settled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefundReleased:
    """An open refund request ended without payout (rejected or cancelled)."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    refund_status = String(required=True)
    released_at = DateTime(required=True)
