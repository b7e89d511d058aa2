"""Stock ledger: deduct stock for orders and restore it for refunds.

Both directions are best-effort batches. Each line item is resolved to a
stock unit and moved through its own command; a line that cannot be moved
is logged and recorded in the report, and the rest of the batch carries on.

When the batch runs inside an event handler, every command joins the
handler's unit of work, and a command that raises dooms the whole batch.
Expected refusals (no unit, not enough stock) are therefore decided here,
before a command is issued. A version conflict on commit fails the whole
batch, and Protean's version retry (`[server.version_retry]` in
`domain.toml`) runs the handler again from fresh state.

Any failed line raises an inventory discrepancy alert for manual
reconciliation.

Lines are skipped without error when they name a made-to-order
pseudo-product, when they are malformed, and (on restore) when they carry
permanent customization or the refund reason says the goods cannot be
resold.
"""

import json
from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from ordering.errors import Outcome, capture_outcome, describe
from ordering.notification import alert_operations
from ordering.order.order import Order
from ordering.policies import (
    has_permanent_customization,
    is_non_inventoried,
    is_restock_eligible,
)
from ordering.refund.refund import RefundRequest
from ordering.refund.settlement import ClaimInventoryRestoration
from ordering.stock.management import ReplenishStock, WithdrawStock
from ordering.stock.stock import StockUnit

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LedgerItem:
    product_id: str | None
    variant_id: str | None
    quantity: int | None
    customization: str | None = None

    @classmethod
    def from_order_line(cls, line) -> "LedgerItem":
        return cls(
            product_id=line.product_id,
            variant_id=line.variant_id or _selected_variant(line.customization),
            quantity=line.quantity,
            customization=line.customization,
        )

    @classmethod
    def from_refund_ref(cls, ref: dict, order_lines) -> "LedgerItem":
        """Build an item from a refund line reference.

        Quantity, variant and customization default to the matching order
        line when the reference does not carry them.
        """
        product_id = ref.get("product_id")
        variant_id = ref.get("variant_id")
        match = next(
            (
                line
                for line in order_lines
                if line.product_id == product_id and (not variant_id or line.variant_id == variant_id)
            ),
            None,
        )

        customization = ref.get("customization")
        if customization is not None and not isinstance(customization, str):
            customization = json.dumps(customization)
        quantity = ref.get("quantity")
        if match is not None:
            customization = customization if customization is not None else match.customization
            variant_id = variant_id or match.variant_id
            quantity = quantity if quantity is not None else match.quantity

        return cls(
            product_id=product_id,
            variant_id=variant_id or _selected_variant(customization),
            quantity=quantity,
            customization=customization,
        )


@dataclass
class StockReport:
    """What a deduct or restore batch did, line by line."""

    reference: str
    moved: list[dict] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    @property
    def has_discrepancy(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> dict:
        return {
            "reference": self.reference,
            "moved": self.moved,
            "skipped": self.skipped,
            "failed": self.failed,
        }


def _selected_variant(customization) -> str | None:
    """Variant picked inside the customization payload, if any."""
    if not customization:
        return None
    try:
        data = json.loads(customization) if isinstance(customization, str) else customization
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    selected = data.get("selected_variant") or {}
    variant_id = selected.get("id") if isinstance(selected, dict) else None
    return str(variant_id) if variant_id else None


def resolve_stock_unit(product_id, variant_id=None) -> StockUnit | None:
    """Unit for the exact variant, else the best-stocked unit of the product."""
    repo = current_domain.repository_for(StockUnit)
    if variant_id:
        units = repo._dao.query.filter(product_id=str(product_id), variant_id=str(variant_id)).all().items
        return units[0] if units else None

    units = repo._dao.query.filter(product_id=str(product_id)).all().items
    if not units:
        return None
    return max(units, key=lambda unit: unit.stock or 0)


def _skip_reason(item: LedgerItem) -> str | None:
    if not item.product_id or not str(item.product_id).strip():
        return "missing_product_id"
    if is_non_inventoried(item.product_id):
        return "made_to_order"
    if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 1:
        return "invalid_quantity"
    return None


def _describe_item(item: LedgerItem) -> dict:
    return {
        "product_id": item.product_id,
        "variant_id": item.variant_id,
        "quantity": item.quantity,
    }


def _move(items, reference, command_cls, skip_customized=False, check_available=False) -> StockReport:
    report = StockReport(reference=reference)
    for item in items:
        reason = _skip_reason(item)
        if reason is None and skip_customized and has_permanent_customization(item.customization):
            reason = "permanent_customization"
        if reason is not None:
            report.skipped.append({**_describe_item(item), "reason": reason})
            continue

        try:
            unit = resolve_stock_unit(item.product_id, item.variant_id)
            if unit is None:
                report.failed.append({**_describe_item(item), "error": "No matching stock unit"})
                logger.warning(
                    "No stock unit for line item",
                    reference=reference,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                )
                continue
            if check_available and (unit.stock or 0) < item.quantity:
                report.failed.append(
                    {**_describe_item(item), "unit_id": str(unit.id), "error": f"Insufficient stock: {unit.stock} available"}
                )
                logger.warning(
                    "Insufficient stock for line item",
                    reference=reference,
                    unit_id=str(unit.id),
                    available=unit.stock,
                    quantity=item.quantity,
                )
                continue

            new_stock = current_domain.process(
                command_cls(unit_id=str(unit.id), quantity=item.quantity, reference=reference),
                asynchronous=False,
            )
            report.moved.append({**_describe_item(item), "unit_id": str(unit.id), "new_stock": new_stock})
        except Exception as exc:
            report.failed.append({**_describe_item(item), "error": describe(exc)})
            logger.warning(
                "Stock movement failed for line item",
                reference=reference,
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                error=describe(exc),
            )

    if report.has_discrepancy:
        logger.error(
            "Inventory discrepancy flagged",
            reference=reference,
            failed=len(report.failed),
        )
        alert_operations("inventory_discrepancy", reference=reference, failed=report.failed)
    return report


def deduct(items, reference) -> StockReport:
    """Withdraw stock for each item. Best effort, never raises per item."""
    return _move(items, reference, WithdrawStock, check_available=True)


def restore(items, reference) -> StockReport:
    """Put stock back for each item, except permanently customized ones."""
    return _move(items, reference, ReplenishStock, skip_customized=True)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------
def _deduct_for_order(order_id) -> dict:
    order = current_domain.repository_for(Order).get(order_id)
    items = [LedgerItem.from_order_line(line) for line in order.lines]
    report = deduct(items, reference=f"order:{order.id}")
    logger.info(
        "Stock deducted for order",
        order_id=str(order.id),
        moved=len(report.moved),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    return report.to_dict()


def _restore_for_order(order_id) -> dict:
    order = current_domain.repository_for(Order).get(order_id)
    items = [LedgerItem.from_order_line(line) for line in order.lines]
    report = restore(items, reference=f"order:{order.id}:cancelled")
    logger.info("Stock restored for cancelled order", order_id=str(order.id), moved=len(report.moved))
    return report.to_dict()


def _restore_for_refund(refund_id) -> dict:
    refund = current_domain.repository_for(RefundRequest).get(refund_id)
    order = current_domain.repository_for(Order).get(refund.order_id)
    reference = f"refund:{refund.id}"

    if refund.item_refs:
        items = [LedgerItem.from_refund_ref(ref, order.lines) for ref in refund.item_refs]
    else:
        items = [LedgerItem.from_order_line(line) for line in order.lines]

    if not is_restock_eligible(refund.reason):
        logger.info("Refund reason excludes restocking", refund_id=str(refund.id), reason=refund.reason)
        report = StockReport(reference=reference)
        report.skipped.extend({**_describe_item(item), "reason": "not_resellable"} for item in items)
        return report.to_dict()

    # Claimed in its own unit of work before any stock moves.
    current_domain.process(ClaimInventoryRestoration(refund_id=str(refund.id)), asynchronous=False)

    report = restore(items, reference=reference)
    logger.info(
        "Stock restored for refund",
        refund_id=str(refund.id),
        moved=len(report.moved),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    return report.to_dict()


def deduct_for_order(order_id) -> Outcome:
    return capture_outcome("deduct_for_order", _deduct_for_order, order_id)


def restore_for_order(order_id) -> Outcome:
    return capture_outcome("restore_for_order", _restore_for_order, order_id)


def restore_for_refund(refund_id) -> Outcome:
    return capture_outcome("restore_for_refund", _restore_for_refund, refund_id)
