"""Application tests for order cancellation and restocking."""

from ordering.errors import ErrorKind
from ordering.notification import get_notifier
from ordering.order.order import Order, OrderStatus
from ordering.order.service import apply_admin_action, cancel_order, place_order, resubmit_order
from ordering.stock.service import register_stock_unit
from ordering.stock.stock import StockUnit
from protean import current_domain


def _place():
    return place_order(
        "cust-001",
        [
            {"product_id": "hoodie", "variant_id": "hoodie-m", "quantity": 2, "unit_price": 40.0},
            {
                "product_id": "patch",
                "quantity": 1,
                "unit_price": 20.0,
                "customization": {"designs": [{"id": "d1"}]},
            },
        ],
        subtotal=100.0,
        total=100.0,
    ).unwrap()


def _stock(unit_id):
    return current_domain.repository_for(StockUnit).get(unit_id).stock


class TestCancelOrder:
    def test_cancel_pending_order_leaves_stock_alone(self):
        unit_id = register_stock_unit("hoodie", variant_id="hoodie-m", stock=5).unwrap()
        order_id = _place()

        outcome = cancel_order(order_id, reason="Changed my mind", cancelled_by="customer", acting_user_id="cust-001")

        assert outcome.value == OrderStatus.CANCELLED.value
        assert _stock(unit_id) == 5
        assert "order_cancelled" in get_notifier().topics()

    def test_cancel_after_approval_restores_stock(self):
        hoodie = register_stock_unit("hoodie", variant_id="hoodie-m", stock=5).unwrap()
        patch = register_stock_unit("patch", stock=3).unwrap()
        order_id = _place()
        apply_admin_action(order_id, "approve")
        assert _stock(hoodie) == 3
        assert _stock(patch) == 2

        cancel_order(order_id, reason="Customer request", cancelled_by="admin")

        assert _stock(hoodie) == 5
        # Personalised patch cannot go back on the shelf
        assert _stock(patch) == 2

    def test_other_customer_cannot_cancel(self):
        order_id = _place()
        outcome = cancel_order(order_id, reason="x", cancelled_by="customer", acting_user_id="cust-999")
        assert outcome.error_kind == ErrorKind.VALIDATION
        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.PENDING.value

    def test_cannot_cancel_shipped(self):
        order_id = _place()
        for action in [
            "approve",
            "approved-processing",
            "ready-for-production",
            "in-production",
            "ready-for-checkout",
            "shipped",
        ]:
            apply_admin_action(order_id, action)

        outcome = cancel_order(order_id, reason="Too late", cancelled_by="customer")
        assert outcome.error_kind == ErrorKind.CONFLICT


class TestResubmit:
    def test_resubmit_returns_to_pending(self):
        order_id = _place()
        apply_admin_action(order_id, "request-changes", {"notes": "Logo too small"})

        outcome = resubmit_order(order_id, "cust-001")

        assert outcome.value == OrderStatus.PENDING.value

    def test_resubmit_pending_order_conflicts(self):
        order_id = _place()
        assert resubmit_order(order_id, "cust-001").error_kind == ErrorKind.CONFLICT
