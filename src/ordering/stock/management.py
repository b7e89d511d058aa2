"""Stock unit management: commands and handler.

Each command touches one StockUnit. The stock ledger checks availability
before issuing `WithdrawStock`, so a refused line never raises inside a
batch.
"""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.stock.stock import StockUnit


@ordering.command(part_of="StockUnit")
class RegisterStockUnit:
    product_id = String(required=True, max_length=100)
    variant_id = String(max_length=100)
    sku = String(max_length=50)
    stock = Integer(default=0, min_value=0)


@ordering.command(part_of="StockUnit")
class AdjustStock:
    unit_id = Identifier(required=True)
    new_stock = Integer(required=True, min_value=0)
    reason = String(required=True, max_length=500)
    adjusted_by = String(max_length=100)


@ordering.command(part_of="StockUnit")
class WithdrawStock:
    unit_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reference = String(max_length=255)


@ordering.command(part_of="StockUnit")
class ReplenishStock:
    unit_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reference = String(max_length=255)


@ordering.command_handler(part_of=StockUnit)
class StockUnitHandler:
    @handle(RegisterStockUnit)
    def register_stock_unit(self, command):
        unit = StockUnit.register(
            product_id=command.product_id,
            variant_id=command.variant_id,
            sku=command.sku,
            stock=command.stock or 0,
        )
        current_domain.repository_for(StockUnit).add(unit)
        return str(unit.id)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(StockUnit)
        unit = repo.get(command.unit_id)
        unit.adjust(command.new_stock, command.reason, command.adjusted_by)
        repo.add(unit)
        return unit.stock

    @handle(WithdrawStock)
    def withdraw_stock(self, command):
        repo = current_domain.repository_for(StockUnit)
        unit = repo.get(command.unit_id)
        unit.withdraw(command.quantity, reference=command.reference)
        repo.add(unit)
        return unit.stock

    @handle(ReplenishStock)
    def replenish_stock(self, command):
        repo = current_domain.repository_for(StockUnit)
        unit = repo.get(command.unit_id)
        unit.replenish(command.quantity, reference=command.reference)
        repo.add(unit)
        return unit.stock
