"""Order aggregate (Event Sourced): the order ledger and its state machine.

Every change to an order is captured as a domain event on the order's
stream and the current state is rebuilt by replaying events via @apply
decorators. Orders are never deleted; cancellation and refunds are just
further events on the same stream. Because every write appends with the
expected stream version, admin actions, payment callbacks and refund
settlements on one order are serialized through the same aggregate.

Review pipeline:
    pending → pending-payment (admin "approve") | rejected | needs-changes
    needs-changes → pending (customer resubmits)
    pending-payment → approved-processing (payment captured)
    approved-processing → picture-reply-pending | ready-for-production
    picture-reply-pending → picture-reply-approved | picture-reply-rejected
    picture-reply-approved → ready-for-production → in-production
    in-production → ready-for-checkout → shipped → delivered
    cancelled (any open status before shipment), refunded (full refund)

Every status maps to an OrderPhase. Stock is deducted when an order enters
the stock-commit phase from any other phase; that phase edge is the only
de-duplication guard, so an admin rewind from ready-for-production back to
pending-payment deducts again.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderNumberAssigned,
    OrderPlaced,
    OrderRefundReleased,
    OrderRefundRequested,
    OrderRefundSettled,
    OrderShipped,
    OrderStatusChanged,
    PaymentCaptured,
    ShippingLabelCreated,
    ShippingLabelVoided,
)

# Tolerance for comparing money amounts stored as floats.
AMOUNT_TOLERANCE = 0.01


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"  # legacy, never entered by new admin actions
    PROCESSING = "processing"  # legacy
    PENDING_PAYMENT = "pending-payment"
    APPROVED_PROCESSING = "approved-processing"
    PICTURE_REPLY_PENDING = "picture-reply-pending"
    PICTURE_REPLY_APPROVED = "picture-reply-approved"
    PICTURE_REPLY_REJECTED = "picture-reply-rejected"
    READY_FOR_PRODUCTION = "ready-for-production"
    IN_PRODUCTION = "in-production"
    READY_FOR_CHECKOUT = "ready-for-checkout"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    NEEDS_CHANGES = "needs-changes"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class OrderPhase(Enum):
    REVIEW = "review"
    STOCK_COMMIT = "stock_commit"
    PRODUCTION = "production"
    FULFILLED = "fulfilled"
    CLOSED = "closed"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class OrderRefundStatus(Enum):
    NONE = "none"
    REQUESTED = "requested"
    PARTIAL = "partial"
    FULL = "full"


class PaymentProvider(Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    MANUAL = "manual"


_PHASES = {
    OrderStatus.PENDING: OrderPhase.REVIEW,
    OrderStatus.NEEDS_CHANGES: OrderPhase.REVIEW,
    OrderStatus.APPROVED: OrderPhase.STOCK_COMMIT,
    OrderStatus.PROCESSING: OrderPhase.STOCK_COMMIT,
    OrderStatus.PENDING_PAYMENT: OrderPhase.STOCK_COMMIT,
    OrderStatus.APPROVED_PROCESSING: OrderPhase.STOCK_COMMIT,
    OrderStatus.PICTURE_REPLY_PENDING: OrderPhase.PRODUCTION,
    OrderStatus.PICTURE_REPLY_APPROVED: OrderPhase.PRODUCTION,
    OrderStatus.PICTURE_REPLY_REJECTED: OrderPhase.PRODUCTION,
    OrderStatus.READY_FOR_PRODUCTION: OrderPhase.PRODUCTION,
    OrderStatus.IN_PRODUCTION: OrderPhase.PRODUCTION,
    OrderStatus.READY_FOR_CHECKOUT: OrderPhase.PRODUCTION,
    OrderStatus.SHIPPED: OrderPhase.FULFILLED,
    OrderStatus.DELIVERED: OrderPhase.FULFILLED,
    OrderStatus.REJECTED: OrderPhase.CLOSED,
    OrderStatus.REFUNDED: OrderPhase.CLOSED,
    OrderStatus.CANCELLED: OrderPhase.CLOSED,
}

# Forward edges. Cancellation, pipeline rewinds and refunds are checked separately.
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.PENDING_PAYMENT,
        OrderStatus.REJECTED,
        OrderStatus.NEEDS_CHANGES,
    },
    OrderStatus.NEEDS_CHANGES: {OrderStatus.PENDING},
    OrderStatus.APPROVED: {OrderStatus.APPROVED_PROCESSING},
    OrderStatus.PENDING_PAYMENT: {OrderStatus.APPROVED_PROCESSING},
    OrderStatus.PROCESSING: {
        OrderStatus.PICTURE_REPLY_PENDING,
        OrderStatus.READY_FOR_PRODUCTION,
    },
    OrderStatus.APPROVED_PROCESSING: {
        OrderStatus.PICTURE_REPLY_PENDING,
        OrderStatus.READY_FOR_PRODUCTION,
    },
    OrderStatus.PICTURE_REPLY_PENDING: {
        OrderStatus.PICTURE_REPLY_APPROVED,
        OrderStatus.PICTURE_REPLY_REJECTED,
    },
    OrderStatus.PICTURE_REPLY_REJECTED: {OrderStatus.PICTURE_REPLY_PENDING},
    OrderStatus.PICTURE_REPLY_APPROVED: {OrderStatus.READY_FOR_PRODUCTION},
    OrderStatus.READY_FOR_PRODUCTION: {OrderStatus.IN_PRODUCTION},
    OrderStatus.IN_PRODUCTION: {OrderStatus.READY_FOR_CHECKOUT},
    OrderStatus.READY_FOR_CHECKOUT: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal for the forward path
    OrderStatus.REJECTED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Production pipeline in order; admins may move an order back to an earlier step.
_PIPELINE = [
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.APPROVED_PROCESSING,
    OrderStatus.PICTURE_REPLY_PENDING,
    OrderStatus.PICTURE_REPLY_APPROVED,
    OrderStatus.READY_FOR_PRODUCTION,
    OrderStatus.IN_PRODUCTION,
    OrderStatus.READY_FOR_CHECKOUT,
]

_CANCELLABLE_STATES = {
    status
    for status, phase in _PHASES.items()
    if phase in (OrderPhase.REVIEW, OrderPhase.STOCK_COMMIT, OrderPhase.PRODUCTION)
}

# Admin action name -> resulting status. "approve" never yields a literal
# approved status.
_ACTION_ALIASES = {
    "approve": OrderStatus.PENDING_PAYMENT,
    "approved": OrderStatus.PENDING_PAYMENT,
    "reject": OrderStatus.REJECTED,
    "request-changes": OrderStatus.NEEDS_CHANGES,
    "cancel": OrderStatus.CANCELLED,
}

_ADMIN_ASSIGNABLE = {
    status
    for status in OrderStatus
    if status not in (OrderStatus.APPROVED, OrderStatus.PROCESSING, OrderStatus.REFUNDED)
}


def phase_of(status) -> OrderPhase:
    return _PHASES[OrderStatus(status)]


def triggers_stock_deduction(previous_status, new_status) -> bool:
    """Entering the stock-commit phase from outside it deducts stock."""
    return phase_of(new_status) is OrderPhase.STOCK_COMMIT and phase_of(previous_status) is not OrderPhase.STOCK_COMMIT


def resolve_admin_action(action: str) -> OrderStatus:
    """Translate an admin action into the status the order should move to."""
    normalized = (action or "").strip().lower()
    if normalized in _ACTION_ALIASES:
        return _ACTION_ALIASES[normalized]
    try:
        status = OrderStatus(normalized)
    except ValueError:
        raise ValidationError({"action": [f"Unknown action '{action}'"]}) from None
    if status not in _ADMIN_ASSIGNABLE:
        raise ValidationError({"action": [f"Status '{status.value}' cannot be set by an admin action"]})
    return status


def generate_order_number(order_id, now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"ORD-{int(now.timestamp() * 1000)}-{order_id}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderTotals:
    """Financial summary of an order, locked when the customer submits it."""

    subtotal = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="USD")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """One line of an order.

    ``product_id`` may name a made-to-order pseudo-product (for example
    ``custom-embroidery``) that has no stock unit. ``customization`` holds the
    customer's personalisation payload as JSON.
    """

    product_id = String(max_length=100)
    variant_id = String(max_length=100)
    sku = String(max_length=50)
    title = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(default=0.0, min_value=0.0)
    customization = Text()
    line_total = Float(default=0.0, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@ordering.aggregate(is_event_sourced=True)
class Order:
    customer_id = Identifier(required=True)
    order_number = String(max_length=100)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    last_requested_action = String(max_length=50)
    admin_notes = Text()
    reviewed_by = String(max_length=100)
    reviewed_at = DateTime()
    lines = HasMany(OrderLine)
    totals = ValueObject(OrderTotals)

    # Payment
    payment_provider = String(max_length=20)
    capture_id = String(max_length=255)
    transaction_id = String(max_length=255)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(max_length=50)
    card_last4 = String(max_length=4)
    card_brand = String(max_length=50)
    paid_at = DateTime()

    # Fulfillment
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    label_url = String(max_length=500)
    shipped_at = DateTime()
    delivered_at = DateTime()

    # Refund aggregate
    refund_status = String(choices=OrderRefundStatus, default=OrderRefundStatus.NONE.value)
    refunded_amount = Float(default=0.0)
    refund_requested_at = DateTime()

    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, lines_data, totals):
        """Create a new order from the customer's submission.

        Args:
            customer_id: The customer placing the order.
            lines_data: List of dicts with product_id, variant_id, sku, title,
                        quantity, unit_price, customization.
            totals: Dict with subtotal, shipping, tax, total, currency.
        """
        if not lines_data:
            raise ValidationError({"lines": ["An order needs at least one line item"]})

        subtotal = float(totals.get("subtotal", 0.0) or 0.0)
        shipping = float(totals.get("shipping", 0.0) or 0.0)
        tax = float(totals.get("tax", 0.0) or 0.0)
        total = float(totals.get("total", 0.0) or 0.0)
        if min(subtotal, shipping, tax, total) < 0:
            raise ValidationError({"totals": ["Amounts cannot be negative"]})
        if abs(total - (subtotal + shipping + tax)) > AMOUNT_TOLERANCE:
            raise ValidationError({"totals": [f"Total {total} does not equal subtotal + shipping + tax"]})

        lines_with_ids = []
        for line in lines_data:
            quantity = line.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationError({"quantity": ["Quantity must be a positive integer"]})
            customization = line.get("customization")
            if customization is not None and not isinstance(customization, str):
                customization = json.dumps(customization)
            unit_price = float(line.get("unit_price", 0.0) or 0.0)
            line_total = line.get("line_total")
            if line_total is None:
                line_total = unit_price * quantity
            lines_with_ids.append(
                {
                    "id": str(uuid4()),
                    "product_id": line.get("product_id"),
                    "variant_id": line.get("variant_id"),
                    "sku": line.get("sku"),
                    "title": line.get("title"),
                    "quantity": quantity,
                    "unit_price": unit_price,
                    "customization": customization,
                    "line_total": round(float(line_total), 2),
                }
            )

        order = cls._create_new()
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                lines=json.dumps(lines_with_ids),
                subtotal=subtotal,
                shipping=shipping,
                tax=tax,
                total=total,
                currency=(totals.get("currency") or "USD").upper(),
                placed_at=datetime.now(UTC),
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def phase(self) -> OrderPhase:
        return phase_of(self.status)

    @property
    def total(self) -> float:
        return self.totals.total if self.totals else 0.0

    @property
    def currency(self) -> str:
        return self.totals.currency if self.totals else "USD"

    @property
    def remaining_refundable(self) -> float:
        return round(self.total - (self.refunded_amount or 0.0), 2)

    @property
    def is_fully_refunded(self) -> bool:
        return self.refund_status == OrderRefundStatus.FULL.value or self.remaining_refundable <= 0

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _can_transition(self, target: OrderStatus) -> bool:
        current = OrderStatus(self.status)
        if target in _VALID_TRANSITIONS.get(current, set()):
            return True
        if current in _PIPELINE and target in _PIPELINE:
            return _PIPELINE.index(target) < _PIPELINE.index(current)
        return False

    def _assert_can_transition(self, target: OrderStatus):
        if not self._can_transition(target):
            raise InvalidOperationError(f"Cannot transition from {self.status} to {target.value}")

    def _change_status(self, target: OrderStatus, requested_action, notes=None, operator_id=None):
        previous = OrderStatus(self.status)
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                requested_action=requested_action,
                previous_status=previous.value,
                new_status=target.value,
                notes=notes,
                operator_id=operator_id,
                stock_deduction_required=triggers_stock_deduction(previous, target),
                changed_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Review and production
    # -------------------------------------------------------------------
    def apply_admin_action(self, action, notes=None, operator_id=None, tracking_number=None, carrier=None):
        """Apply an admin review action and return the resulting status."""
        target = resolve_admin_action(action)

        if target == OrderStatus.CANCELLED:
            self.cancel(reason=notes or "Cancelled by admin", cancelled_by="admin")
            return self.status

        self._assert_can_transition(target)
        self._change_status(target, requested_action=action, notes=notes, operator_id=operator_id)

        now = datetime.now(UTC)
        if target == OrderStatus.SHIPPED:
            self.raise_(
                OrderShipped(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    carrier=self.carrier or carrier,
                    tracking_number=self.tracking_number or tracking_number,
                    shipped_at=self.shipped_at or now,
                )
            )
        elif target == OrderStatus.DELIVERED:
            self.raise_(
                OrderDelivered(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    delivered_at=self.delivered_at or now,
                )
            )
        return self.status

    def resubmit(self, customer_id):
        """Customer resubmits an order that was sent back for changes."""
        if str(customer_id) != str(self.customer_id):
            raise ValidationError({"customer_id": ["Order does not belong to this customer"]})
        if OrderStatus(self.status) != OrderStatus.NEEDS_CHANGES:
            raise InvalidOperationError(f"Only orders needing changes can be resubmitted, not {self.status}")
        self._change_status(OrderStatus.PENDING, requested_action="resubmit")

    def cancel(self, reason, cancelled_by, acting_user_id=None):
        """Cancel the order. Stock is returned when it was already committed."""
        if acting_user_id is not None and str(acting_user_id) != str(self.customer_id):
            raise ValidationError({"user_id": ["Not authorized to cancel this order"]})

        current = OrderStatus(self.status)
        if current not in _CANCELLABLE_STATES:
            raise InvalidOperationError(f"Cannot cancel order in {current.value} state")

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                previous_status=current.value,
                reason=reason,
                cancelled_by=cancelled_by,
                restock_required=phase_of(current) in (OrderPhase.STOCK_COMMIT, OrderPhase.PRODUCTION),
                cancelled_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def assign_order_number(self, order_number=None):
        if self.order_number:
            raise InvalidOperationError(f"Order already numbered {self.order_number}")
        now = datetime.now(UTC)
        self.raise_(
            OrderNumberAssigned(
                order_id=str(self.id),
                order_number=order_number or generate_order_number(self.id, now),
                assigned_at=now,
            )
        )

    def record_payment_capture(
        self,
        payment_id,
        provider,
        capture_id,
        amount,
        transaction_id=None,
        payment_method=None,
        card_last4=None,
        card_brand=None,
    ):
        """Store a captured charge and advance an order awaiting payment.

        Returns False when the same capture was already recorded.
        """
        provider = PaymentProvider(provider).value
        if self.capture_id and self.capture_id == capture_id:
            return False
        if OrderStatus(self.status) in (OrderStatus.CANCELLED, OrderStatus.REJECTED, OrderStatus.REFUNDED):
            raise InvalidOperationError(f"Cannot record payment on a {self.status} order")

        self.raise_(
            PaymentCaptured(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                payment_id=str(payment_id),
                provider=provider,
                capture_id=capture_id,
                transaction_id=transaction_id,
                amount=amount,
                payment_method=payment_method,
                card_last4=card_last4,
                card_brand=card_brand,
                captured_at=datetime.now(UTC),
            )
        )
        if not self.order_number:
            self.assign_order_number()
        if OrderStatus(self.status) in (OrderStatus.PENDING_PAYMENT, OrderStatus.APPROVED):
            self._change_status(OrderStatus.APPROVED_PROCESSING, requested_action="payment_captured")
        return True

    # -------------------------------------------------------------------
    # Shipping labels
    # -------------------------------------------------------------------
    def attach_shipping_label(self, carrier, tracking_number, label_url=None, service_level=None):
        current = OrderStatus(self.status)
        if current not in (OrderStatus.IN_PRODUCTION, OrderStatus.READY_FOR_CHECKOUT):
            raise InvalidOperationError(f"Cannot create a shipping label for a {current.value} order")
        if self.tracking_number:
            raise InvalidOperationError("Order already has a shipping label; void it first")

        self.raise_(
            ShippingLabelCreated(
                order_id=str(self.id),
                carrier=carrier,
                tracking_number=tracking_number,
                label_url=label_url,
                service_level=service_level,
                created_at=datetime.now(UTC),
            )
        )

    def void_shipping_label(self):
        """Void the label; a shipped order goes back to ready-for-checkout."""
        current = OrderStatus(self.status)
        if not self.tracking_number:
            raise InvalidOperationError("Order has no shipping label to void")
        if current not in (OrderStatus.IN_PRODUCTION, OrderStatus.READY_FOR_CHECKOUT, OrderStatus.SHIPPED):
            raise InvalidOperationError(f"Cannot void the label of a {current.value} order")

        new_status = OrderStatus.READY_FOR_CHECKOUT if current == OrderStatus.SHIPPED else current
        self.raise_(
            ShippingLabelVoided(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                tracking_number=self.tracking_number,
                previous_status=current.value,
                new_status=new_status.value,
                voided_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Refund aggregate
    # -------------------------------------------------------------------
    def mark_refund_requested(self, refund_id, amount):
        self.raise_(
            OrderRefundRequested(
                order_id=str(self.id),
                refund_id=str(refund_id),
                amount=amount,
                requested_at=datetime.now(UTC),
            )
        )

    def settle_refund(self, refund_id, amount):
        """Book a paid-out refund against the order's totals."""
        if amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})
        if amount > self.remaining_refundable + AMOUNT_TOLERANCE:
            raise InvalidOperationError(
                f"Refund of {amount} exceeds the remaining refundable amount {self.remaining_refundable}"
            )

        refunded_amount = min(round((self.refunded_amount or 0.0) + amount, 2), self.total)
        is_full = refunded_amount >= self.total - AMOUNT_TOLERANCE
        current = OrderStatus(self.status)
        new_status = current
        if is_full and current in (
            OrderStatus.IN_PRODUCTION,
            OrderStatus.READY_FOR_CHECKOUT,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ):
            new_status = OrderStatus.REFUNDED

        self.raise_(
            OrderRefundSettled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                refund_id=str(refund_id),
                amount=amount,
                refunded_amount=refunded_amount,
                refund_status=(OrderRefundStatus.FULL if is_full else OrderRefundStatus.PARTIAL).value,
                payment_status=(PaymentStatus.REFUNDED if is_full else PaymentStatus.PARTIALLY_REFUNDED).value,
                previous_status=current.value,
                new_status=new_status.value,
                settled_at=datetime.now(UTC),
            )
        )

    def release_refund(self, refund_id):
        """An open refund request ended without payout.

        The refund status falls back to ``none``, or to ``partial`` when earlier
        refunds on this order were already paid out, so it stays in step with
        ``payment_status`` and ``refunded_amount``.
        """
        refund_status = OrderRefundStatus.PARTIAL if (self.refunded_amount or 0.0) > 0 else OrderRefundStatus.NONE
        self.raise_(
            OrderRefundReleased(
                order_id=str(self.id),
                refund_id=str(refund_id),
                refund_status=refund_status.value,
                released_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_order_placed(self, event: OrderPlaced):
        self.id = event.order_id
        self.customer_id = event.customer_id
        self.status = OrderStatus.PENDING.value
        self.payment_status = PaymentStatus.PENDING.value
        self.refund_status = OrderRefundStatus.NONE.value
        self.refunded_amount = 0.0
        self.created_at = event.placed_at
        self.updated_at = event.placed_at

        lines_data = json.loads(event.lines) if isinstance(event.lines, str) else []
        self.lines = [OrderLine(**line_data) for line_data in lines_data]

        self.totals = OrderTotals(
            subtotal=event.subtotal,
            shipping=event.shipping or 0.0,
            tax=event.tax or 0.0,
            total=event.total,
            currency=event.currency or "USD",
        )

    @apply
    def _on_status_changed(self, event: OrderStatusChanged):
        self.status = event.new_status
        self.last_requested_action = event.requested_action
        if event.notes:
            self.admin_notes = event.notes
        if event.operator_id:
            self.reviewed_by = event.operator_id
            self.reviewed_at = event.changed_at
        self.updated_at = event.changed_at

    @apply
    def _on_order_shipped(self, event: OrderShipped):
        if not self.carrier:
            self.carrier = event.carrier
        if not self.tracking_number:
            self.tracking_number = event.tracking_number
        if not self.shipped_at:
            self.shipped_at = event.shipped_at

    @apply
    def _on_order_delivered(self, event: OrderDelivered):
        if not self.delivered_at:
            self.delivered_at = event.delivered_at

    @apply
    def _on_order_cancelled(self, event: OrderCancelled):
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = event.reason
        self.cancelled_by = event.cancelled_by
        self.updated_at = event.cancelled_at

    @apply
    def _on_order_number_assigned(self, event: OrderNumberAssigned):
        self.order_number = event.order_number

    @apply
    def _on_payment_captured(self, event: PaymentCaptured):
        self.payment_provider = event.provider
        self.capture_id = event.capture_id
        self.transaction_id = event.transaction_id
        self.payment_method = event.payment_method
        self.card_last4 = event.card_last4
        self.card_brand = event.card_brand
        self.payment_status = PaymentStatus.COMPLETED.value
        self.paid_at = event.captured_at
        self.updated_at = event.captured_at

    @apply
    def _on_label_created(self, event: ShippingLabelCreated):
        self.carrier = event.carrier
        self.tracking_number = event.tracking_number
        self.label_url = event.label_url
        self.updated_at = event.created_at

    @apply
    def _on_label_voided(self, event: ShippingLabelVoided):
        self.carrier = None
        self.tracking_number = None
        self.label_url = None
        self.shipped_at = None
        self.status = event.new_status
        self.updated_at = event.voided_at

    @apply
    def _on_refund_requested(self, event: OrderRefundRequested):
        self.refund_status = OrderRefundStatus.REQUESTED.value
        if not self.refund_requested_at:
            self.refund_requested_at = event.requested_at

    @apply
    def _on_refund_settled(self, event: OrderRefundSettled):
        self.refunded_amount = event.refunded_amount
        self.refund_status = event.refund_status
        self.payment_status = event.payment_status
        self.status = event.new_status
        self.updated_at = event.settled_at

    @apply
    def _on_refund_released(self, event: OrderRefundReleased):
        self.refund_status = event.refund_status
