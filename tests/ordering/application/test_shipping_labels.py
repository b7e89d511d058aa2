"""Application tests for shipping label purchase and void."""

from ordering.errors import ErrorKind
from ordering.order.order import Order, OrderStatus
from ordering.order.service import (
    apply_admin_action,
    create_shipping_label,
    place_order,
    void_shipping_label,
)
from ordering.shipping import get_label_provider
from protean import current_domain


def _order_in(status):
    order_id = place_order(
        "cust-001",
        [{"product_id": "tote", "quantity": 1, "unit_price": 25.0}],
        subtotal=25.0,
        total=25.0,
    ).unwrap()
    for action in [
        "approve",
        "approved-processing",
        "ready-for-production",
        "in-production",
        "ready-for-checkout",
        "shipped",
    ]:
        if current_domain.repository_for(Order).get(order_id).status == status:
            break
        apply_admin_action(order_id, action)
    return order_id


class TestCreateLabel:
    def test_label_stores_tracking(self):
        order_id = _order_in("ready-for-checkout")

        outcome = create_shipping_label(order_id, "USPS", "Express")

        assert outcome.success
        order = current_domain.repository_for(Order).get(order_id)
        assert order.tracking_number == outcome.value["tracking_number"]
        assert order.carrier == "USPS"
        assert order.label_url.endswith(".pdf")

    def test_label_too_early(self):
        order_id = _order_in("pending-payment")
        assert create_shipping_label(order_id, "USPS").error_kind == ErrorKind.CONFLICT

    def test_second_label_conflicts(self):
        order_id = _order_in("in-production")
        create_shipping_label(order_id, "USPS")
        assert create_shipping_label(order_id, "UPS").error_kind == ErrorKind.CONFLICT

    def test_provider_failure_leaves_order_unchanged(self):
        order_id = _order_in("ready-for-checkout")
        get_label_provider().configure(should_succeed=False)

        assert create_shipping_label(order_id, "USPS").error_kind == ErrorKind.CONFLICT
        assert current_domain.repository_for(Order).get(order_id).tracking_number is None


class TestVoidLabel:
    def test_void_on_shipped_order_returns_to_ready_for_checkout(self):
        order_id = _order_in("ready-for-checkout")
        tracking = create_shipping_label(order_id, "USPS").value["tracking_number"]
        apply_admin_action(order_id, "shipped")

        outcome = void_shipping_label(order_id)

        assert outcome.value == OrderStatus.READY_FOR_CHECKOUT.value
        order = current_domain.repository_for(Order).get(order_id)
        assert order.tracking_number is None
        assert order.carrier is None
        assert order.shipped_at is None
        assert tracking in get_label_provider().voided

    def test_void_without_label(self):
        order_id = _order_in("ready-for-checkout")
        assert void_shipping_label(order_id).error_kind == ErrorKind.CONFLICT
