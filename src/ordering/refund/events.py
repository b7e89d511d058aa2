"""Domain events for the RefundRequest aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="RefundRequest")
class RefundRequestSubmitted:
    """A customer or admin opened a refund request."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    refund_type = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    reason = String(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="RefundRequest")
class RefundReviewStarted:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reviewer_id = String()
    started_at = DateTime(required=True)


@ordering.event(part_of="RefundRequest")
class RefundProcessingStarted:
    """An operator approved the refund; settlement with the provider began."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    operator_id = String()
    is_retry = Boolean(default=False)
    started_at = DateTime(required=True)


@ordering.event(part_of="RefundRequest")
class RefundCompleted:
    """The provider paid the refund out."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    provider_refund_id = String(required=True)
    completed_at = DateTime(required=True)


@ordering.event(part_of="RefundRequest")
class RefundFailed:
    """Settlement failed; the request can be approved again."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    failure_kind = String(required=True)
    reason = Text(required=True)
    failed_at = DateTime(required=True)


@ordering.event(part_of="RefundRequest")
class RefundRejected:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = Text(required=True)
    rejected_at = DateTime(required=True)


@ordering.event(part_of="RefundRequest")
class RefundCancelled:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    cancelled_by = String()
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="RefundRequest")
class RefundInventoryRestored:
    """The refund's items were claimed for restocking (at most once)."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    restored_at = DateTime(required=True)
