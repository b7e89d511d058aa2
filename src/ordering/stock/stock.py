"""StockUnit aggregate (CQRS): on-hand count for one product variant.

Stock never goes negative. A withdrawal is refused when the unit holds
fewer items than requested, and the repository's version check makes the
read-check-write of a withdrawal conditional on nobody else having written
the unit in between.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import DateTime, Integer, String

from ordering.domain import ordering
from ordering.stock.events import (
    StockAdjusted,
    StockReplenished,
    StockUnitRegistered,
    StockWithdrawn,
)


@ordering.aggregate
class StockUnit:
    product_id = String(required=True, max_length=100)
    variant_id = String(max_length=100)
    sku = String(max_length=50)
    stock = Integer(default=0)
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    @classmethod
    def register(cls, product_id, variant_id=None, sku=None, stock=0):
        now = datetime.now(UTC)
        unit = cls(
            product_id=str(product_id),
            variant_id=str(variant_id) if variant_id else None,
            sku=sku,
            stock=stock,
            updated_at=now,
        )
        unit.raise_(
            StockUnitRegistered(
                unit_id=str(unit.id),
                product_id=unit.product_id,
                variant_id=unit.variant_id,
                sku=sku,
                stock=stock,
                registered_at=now,
            )
        )
        return unit

    def withdraw(self, quantity, reference=None):
        """Take ``quantity`` items off the shelf, only if that many are there."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if self.stock < quantity:
            raise InvalidOperationError(
                f"Insufficient stock for {self.product_id}/{self.variant_id}: {self.stock} available, {quantity} requested"
            )

        previous = self.stock
        now = datetime.now(UTC)
        self.stock = previous - quantity
        self.updated_at = now
        self.raise_(
            StockWithdrawn(
                unit_id=str(self.id),
                product_id=self.product_id,
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                reference=reference,
                withdrawn_at=now,
            )
        )

    def replenish(self, quantity, reference=None):
        """Put items back. There is no upper bound."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.stock
        now = datetime.now(UTC)
        self.stock = previous + quantity
        self.updated_at = now
        self.raise_(
            StockReplenished(
                unit_id=str(self.id),
                product_id=self.product_id,
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                reference=reference,
                replenished_at=now,
            )
        )

    def adjust(self, new_stock, reason, adjusted_by=None):
        if not reason:
            raise ValidationError({"reason": ["Reason is required for stock adjustments"]})
        if new_stock is None or new_stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

        previous = self.stock
        now = datetime.now(UTC)
        self.stock = new_stock
        self.updated_at = now
        self.raise_(
            StockAdjusted(
                unit_id=str(self.id),
                product_id=self.product_id,
                previous_stock=previous,
                new_stock=new_stock,
                reason=reason,
                adjusted_by=adjusted_by,
                adjusted_at=now,
            )
        )
