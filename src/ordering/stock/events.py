"""Domain events for the StockUnit aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="StockUnit")
class StockUnitRegistered:
    __version__ = 1

    unit_id = Identifier(required=True)
    product_id = String(required=True)
    variant_id = String()
    sku = String()
    stock = Integer(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="StockUnit")
class StockWithdrawn:
    """Units left the shelf for an order."""

    __version__ = 1

    unit_id = Identifier(required=True)
    product_id = String(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference = String()
    withdrawn_at = DateTime(required=True)


@ordering.event(part_of="StockUnit")
class StockReplenished:
    """Units came back to the shelf (cancellation or refund)."""

    __version__ = 1

    unit_id = Identifier(required=True)
    product_id = String(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference = String()
    replenished_at = DateTime(required=True)


@ordering.event(part_of="StockUnit")
class StockAdjusted:
    """An operator corrected the on-hand count."""

    __version__ = 1

    unit_id = Identifier(required=True)
    product_id = String(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reason = String(required=True)
    adjusted_by = String()
    adjusted_at = DateTime(required=True)
