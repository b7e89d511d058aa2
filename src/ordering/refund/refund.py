"""RefundRequest aggregate (CQRS): one attempt to return money for an order.

Lifecycle:
    pending → under_review → processing → completed | failed
    pending | under_review → rejected | cancelled
    failed → processing (operator retries the approval)
    failed → rejected

``completed``, ``rejected`` and ``cancelled`` are final. A failed request
stays visible and can be approved again; its notes keep every attempt.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from ordering.domain import ordering
from ordering.refund.events import (
    RefundCancelled,
    RefundCompleted,
    RefundFailed,
    RefundInventoryRestored,
    RefundProcessingStarted,
    RefundRejected,
    RefundRequestSubmitted,
    RefundReviewStarted,
)


class RefundStatus(Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class RefundReason(Enum):
    DAMAGED_DEFECTIVE = "damaged_defective"
    WRONG_ITEM = "wrong_item"
    NOT_AS_DESCRIBED = "not_as_described"
    CHANGED_MIND = "changed_mind"
    DUPLICATE_ORDER = "duplicate_order"
    SHIPPING_DELAY = "shipping_delay"
    QUALITY_ISSUES = "quality_issues"
    OTHER = "other"


class RefundType(Enum):
    FULL = "full"
    PARTIAL = "partial"


class RefundMethod(Enum):
    ORIGINAL_PAYMENT = "original_payment"
    STORE_CREDIT = "store_credit"
    MANUAL = "manual"


_VALID_TRANSITIONS = {
    RefundStatus.PENDING: {
        RefundStatus.UNDER_REVIEW,
        RefundStatus.PROCESSING,
        RefundStatus.REJECTED,
        RefundStatus.CANCELLED,
    },
    RefundStatus.UNDER_REVIEW: {
        RefundStatus.PROCESSING,
        RefundStatus.REJECTED,
        RefundStatus.CANCELLED,
    },
    RefundStatus.PROCESSING: {RefundStatus.COMPLETED, RefundStatus.FAILED},
    RefundStatus.FAILED: {RefundStatus.PROCESSING, RefundStatus.REJECTED},
    RefundStatus.COMPLETED: set(),  # Terminal
    RefundStatus.REJECTED: set(),  # Terminal
    RefundStatus.CANCELLED: set(),  # Terminal
}

FINAL_STATES = frozenset({RefundStatus.COMPLETED, RefundStatus.REJECTED, RefundStatus.CANCELLED})
APPROVABLE_STATES = frozenset({RefundStatus.PENDING, RefundStatus.UNDER_REVIEW, RefundStatus.FAILED})
CANCELLABLE_STATES = frozenset({RefundStatus.PENDING, RefundStatus.UNDER_REVIEW})

RETRY_MARKER = "[RETRY ATTEMPT]"


def parse_choice(enum_cls, value, field_name):
    """Coerce a raw value into ``enum_cls``, reporting bad input as a ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError({field_name: [f"Invalid value '{value}'; expected one of: {allowed}"]}) from None


@ordering.aggregate
class RefundRequest:
    # Identity
    order_id = Identifier(required=True)
    order_number = String(max_length=100)
    user_id = Identifier(required=True)
    payment_id = Identifier()

    # Content
    refund_type = String(choices=RefundType, default=RefundType.FULL.value)
    amount = Float(required=True, min_value=0.01)
    original_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")
    reason = String(choices=RefundReason, required=True)
    description = Text()
    items = Text()  # JSON: [{product_id, variant_id, quantity, customization}]
    evidence_urls = Text()  # JSON: list of URLs
    refund_method = String(choices=RefundMethod, default=RefundMethod.ORIGINAL_PAYMENT.value)

    # Status and review
    status = String(choices=RefundStatus, default=RefundStatus.PENDING.value)
    admin_notes = Text()
    rejection_reason = Text()
    reviewed_by = String(max_length=100)
    reviewed_at = DateTime()

    # Settlement
    payment_provider = String(max_length=20)
    provider_refund_id = String(max_length=255)
    provider_response = Text()  # JSON
    failure_kind = String(max_length=50)
    inventory_restored = Boolean(default=False)
    inventory_restored_at = DateTime()

    # Timestamps
    requested_at = DateTime()
    processed_at = DateTime()
    completed_at = DateTime()
    failed_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def submit(
        cls,
        order_id,
        user_id,
        amount,
        original_amount,
        reason,
        refund_type=RefundType.FULL.value,
        currency="USD",
        order_number=None,
        payment_id=None,
        payment_provider=None,
        description=None,
        items=None,
        evidence_urls=None,
        refund_method=RefundMethod.ORIGINAL_PAYMENT.value,
    ):
        now = datetime.now(UTC)
        refund = cls(
            order_id=str(order_id),
            order_number=order_number,
            user_id=str(user_id),
            payment_id=str(payment_id) if payment_id else None,
            refund_type=parse_choice(RefundType, refund_type, "refund_type").value,
            amount=amount,
            original_amount=original_amount,
            currency=currency,
            reason=parse_choice(RefundReason, reason, "reason").value,
            description=description,
            items=json.dumps(items) if items else None,
            evidence_urls=json.dumps(evidence_urls) if evidence_urls else None,
            refund_method=parse_choice(RefundMethod, refund_method, "refund_method").value,
            payment_provider=payment_provider,
            status=RefundStatus.PENDING.value,
            inventory_restored=False,
            requested_at=now,
            updated_at=now,
        )
        refund.raise_(
            RefundRequestSubmitted(
                refund_id=str(refund.id),
                order_id=str(order_id),
                user_id=str(user_id),
                refund_type=refund.refund_type,
                amount=amount,
                currency=currency,
                reason=refund.reason,
                requested_at=now,
            )
        )
        return refund

    # -------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------
    @property
    def is_final_state(self) -> bool:
        return RefundStatus(self.status) in FINAL_STATES

    @property
    def can_be_approved(self) -> bool:
        return RefundStatus(self.status) in APPROVABLE_STATES

    @property
    def can_be_cancelled(self) -> bool:
        return RefundStatus(self.status) in CANCELLABLE_STATES

    @property
    def item_refs(self) -> list:
        return json.loads(self.items) if self.items else []

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = RefundStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidOperationError(f"Cannot transition refund from {current.value} to {target_status.value}")

    def _append_note(self, note):
        if not note:
            return
        self.admin_notes = f"{self.admin_notes}\n{note}" if self.admin_notes else note

    # -------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------
    def start_review(self, reviewer_id=None):
        self._assert_can_transition(RefundStatus.UNDER_REVIEW)
        now = datetime.now(UTC)
        self.status = RefundStatus.UNDER_REVIEW.value
        self.reviewed_by = reviewer_id
        self.updated_at = now
        self.raise_(
            RefundReviewStarted(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                reviewer_id=reviewer_id,
                started_at=now,
            )
        )

    def begin_processing(self, operator_id=None, notes=None):
        """Approve the request and move it to processing."""
        if not self.can_be_approved:
            raise InvalidOperationError(f"Refund in {self.status} state cannot be approved")

        is_retry = RefundStatus(self.status) == RefundStatus.FAILED
        now = datetime.now(UTC)
        if is_retry:
            self._append_note(f"{RETRY_MARKER} {notes}" if notes else RETRY_MARKER)
        else:
            self._append_note(notes)
        self.status = RefundStatus.PROCESSING.value
        self.reviewed_by = operator_id or self.reviewed_by
        self.reviewed_at = now
        self.processed_at = now
        self.failure_kind = None
        self.updated_at = now

        self.raise_(
            RefundProcessingStarted(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                operator_id=operator_id,
                is_retry=is_retry,
                started_at=now,
            )
        )

    def complete(self, provider_refund_id, provider_response=None):
        self._assert_can_transition(RefundStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = RefundStatus.COMPLETED.value
        self.provider_refund_id = provider_refund_id
        self.provider_response = json.dumps(provider_response) if provider_response is not None else None
        self.completed_at = now
        self.updated_at = now
        self.raise_(
            RefundCompleted(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                user_id=str(self.user_id),
                amount=self.amount,
                currency=self.currency,
                provider_refund_id=provider_refund_id,
                completed_at=now,
            )
        )

    def fail(self, reason, failure_kind):
        """Record a failed settlement attempt, keeping earlier notes."""
        self._assert_can_transition(RefundStatus.FAILED)
        now = datetime.now(UTC)
        self.status = RefundStatus.FAILED.value
        self.failure_kind = failure_kind
        self._append_note(f"Failed: {reason}")
        self.failed_at = now
        self.updated_at = now
        self.raise_(
            RefundFailed(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                failure_kind=failure_kind,
                reason=reason,
                failed_at=now,
            )
        )

    def reject(self, reason, reviewer_id=None):
        if not self.can_be_approved:
            raise InvalidOperationError(f"Refund in {self.status} state cannot be rejected")
        if not reason:
            raise ValidationError({"reason": ["A rejection reason is required"]})

        now = datetime.now(UTC)
        self.status = RefundStatus.REJECTED.value
        self.rejection_reason = reason
        self.reviewed_by = reviewer_id or self.reviewed_by
        self.reviewed_at = now
        self.updated_at = now
        self.raise_(
            RefundRejected(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                user_id=str(self.user_id),
                reason=reason,
                rejected_at=now,
            )
        )

    def cancel(self, acting_user_id=None, is_admin=False):
        """Withdraw the request. A customer may only cancel their own."""
        if acting_user_id is not None and not is_admin and str(acting_user_id) != str(self.user_id):
            raise ValidationError({"user_id": ["Unauthorized: refund request belongs to another user"]})
        if not self.can_be_cancelled:
            raise InvalidOperationError(f"Refund in {self.status} state cannot be cancelled")

        now = datetime.now(UTC)
        self.status = RefundStatus.CANCELLED.value
        self.updated_at = now
        self.raise_(
            RefundCancelled(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                cancelled_by=str(acting_user_id) if acting_user_id else "admin",
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    def claim_inventory_restoration(self):
        """Mark the items as restocked. Succeeds once per request."""
        if self.inventory_restored:
            raise InvalidOperationError(f"Inventory for refund {self.id} was already restored")
        if RefundStatus(self.status) != RefundStatus.COMPLETED:
            raise InvalidOperationError("Inventory can only be restored for completed refunds")

        now = datetime.now(UTC)
        self.inventory_restored = True
        self.inventory_restored_at = now
        self.updated_at = now
        self.raise_(
            RefundInventoryRestored(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                restored_at=now,
            )
        )
