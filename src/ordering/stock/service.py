"""Stock administration entry points."""

from protean.utils.globals import current_domain

from ordering.errors import Outcome, capture_outcome
from ordering.stock.management import AdjustStock, RegisterStockUnit
from ordering.stock.stock import StockUnit


def _process(command_cls, **fields):
    return current_domain.process(command_cls(**fields), asynchronous=False)


def register_stock_unit(product_id, variant_id=None, sku=None, stock=0) -> Outcome:
    """Create a stock unit. The value is the new unit id."""
    return capture_outcome(
        "register_stock_unit",
        _process,
        RegisterStockUnit,
        product_id=str(product_id),
        variant_id=str(variant_id) if variant_id else None,
        sku=sku,
        stock=stock,
    )


def adjust_stock(unit_id, new_stock, reason, adjusted_by=None) -> Outcome:
    """Set a unit's on-hand count after a physical count. The value is the new stock."""
    return capture_outcome(
        "adjust_stock",
        _process,
        AdjustStock,
        unit_id=str(unit_id),
        new_stock=new_stock,
        reason=reason,
        adjusted_by=adjusted_by,
    )


def _get_stock_unit(unit_id):
    unit = current_domain.repository_for(StockUnit).get(unit_id)
    return {
        "unit_id": str(unit.id),
        "product_id": unit.product_id,
        "variant_id": unit.variant_id,
        "sku": unit.sku,
        "stock": unit.stock,
    }


def get_stock_unit(unit_id) -> Outcome:
    return capture_outcome("get_stock_unit", _get_stock_unit, unit_id)
