"""Named policy tables for refund and inventory rules.

Rules that depend on a reason code, an order status or a product identifier
live here as data so that handlers read a table instead of repeating
inline checks.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime

from ordering.order.order import OrderStatus
from ordering.refund.refund import RefundReason


@dataclass(frozen=True)
class ReasonPolicy:
    restock_eligible: bool
    provider_reason: str


REFUND_REASON_POLICY = {
    RefundReason.DAMAGED_DEFECTIVE: ReasonPolicy(restock_eligible=False, provider_reason="requested_by_customer"),
    RefundReason.WRONG_ITEM: ReasonPolicy(restock_eligible=True, provider_reason="requested_by_customer"),
    RefundReason.NOT_AS_DESCRIBED: ReasonPolicy(restock_eligible=True, provider_reason="requested_by_customer"),
    RefundReason.CHANGED_MIND: ReasonPolicy(restock_eligible=True, provider_reason="requested_by_customer"),
    RefundReason.DUPLICATE_ORDER: ReasonPolicy(restock_eligible=True, provider_reason="duplicate"),
    RefundReason.SHIPPING_DELAY: ReasonPolicy(restock_eligible=True, provider_reason="requested_by_customer"),
    RefundReason.QUALITY_ISSUES: ReasonPolicy(restock_eligible=False, provider_reason="requested_by_customer"),
    RefundReason.OTHER: ReasonPolicy(restock_eligible=True, provider_reason="requested_by_customer"),
}

REFUNDABLE_STATUSES = {status: False for status in OrderStatus} | {
    OrderStatus.IN_PRODUCTION: True,
    OrderStatus.READY_FOR_CHECKOUT: True,
    OrderStatus.SHIPPED: True,
    OrderStatus.DELIVERED: True,
}

# Products built per order; they never have a stock unit.
NON_INVENTORIED_PRODUCT_IDS = frozenset({"custom-embroidery"})
NON_INVENTORIED_PREFIX = "custom-"

# Customization keys whose presence makes an item permanently personalised.
PERMANENT_CUSTOMIZATION_KEYS = ("designs", "embroidery_data", "engraving")


def reason_policy(reason) -> ReasonPolicy:
    return REFUND_REASON_POLICY[RefundReason(reason)]


def is_restock_eligible(reason) -> bool:
    return reason_policy(reason).restock_eligible


def provider_reason_for(reason) -> str:
    return reason_policy(reason).provider_reason


def is_refundable_status(status) -> bool:
    return REFUNDABLE_STATUSES[OrderStatus(status)]


def is_non_inventoried(product_id) -> bool:
    """Made-to-order pseudo-products are excluded from the stock ledger."""
    if not product_id:
        return False
    product_id = str(product_id)
    return product_id in NON_INVENTORIED_PRODUCT_IDS or product_id.startswith(NON_INVENTORIED_PREFIX)


def has_permanent_customization(customization) -> bool:
    """True when a line's customization payload marks it as made-to-order.

    Accepts the JSON text stored on order lines or an already decoded dict.
    """
    if not customization:
        return False
    if isinstance(customization, str):
        try:
            customization = json.loads(customization)
        except ValueError:
            return False
    if not isinstance(customization, dict):
        return False
    if customization.get("permanent") is True:
        return True
    return any(customization.get(key) for key in PERMANENT_CUSTOMIZATION_KEYS)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def refund_window_anchor(order) -> datetime | None:
    """Delivered timestamp, else shipped, else created."""
    return order.delivered_at or order.shipped_at or order.created_at


def days_since_anchor(order, now: datetime | None = None) -> int:
    anchor = refund_window_anchor(order)
    if anchor is None:
        return 0
    now = _as_aware(now or datetime.now(UTC))
    return (now - _as_aware(anchor)).days


def within_refund_window(order, limit_days: int, now: datetime | None = None) -> bool:
    return days_since_anchor(order, now) <= limit_days
