"""Application tests for recording captured payments."""

from ordering.errors import ErrorKind
from ordering.order.order import Order, OrderStatus
from ordering.order.service import apply_admin_action, assign_order_number, place_order, record_payment_capture
from ordering.payment.payment import LogStatus, Payment, PaymentLogEntry, latest_completed_payment
from ordering.stock.service import register_stock_unit
from ordering.stock.stock import StockUnit
from protean import current_domain


def _approved_order(total=60.0):
    order_id = place_order(
        "cust-001",
        [{"product_id": "cap", "variant_id": "cap-black", "quantity": 2, "unit_price": total / 2}],
        subtotal=total,
        total=total,
    ).unwrap()
    apply_admin_action(order_id, "approve")
    return order_id


def _log_entries(order_id):
    return current_domain.repository_for(PaymentLogEntry)._dao.query.filter(order_id=order_id).all().items


class TestRecordPaymentCapture:
    def test_capture_moves_order_to_approved_processing(self):
        order_id = _approved_order()

        outcome = record_payment_capture(order_id, "stripe", "ch_123", 60.0, card_last4="4242", card_brand="visa")

        assert outcome.success
        assert outcome.value == OrderStatus.APPROVED_PROCESSING.value
        order = current_domain.repository_for(Order).get(order_id)
        assert order.capture_id == "ch_123"
        assert order.payment_provider == "stripe"
        assert order.payment_status == "completed"
        assert order.card_last4 == "4242"
        assert order.order_number.startswith("ORD-")

    def test_capture_writes_payment_record_and_log(self):
        order_id = _approved_order()

        record_payment_capture(order_id, "paypal", "CAP-9", 60.0, fee=2.0)

        payment = latest_completed_payment(order_id)
        assert payment is not None
        assert payment.provider == "paypal"
        assert payment.capture_id == "CAP-9"
        assert payment.net_amount == 58.0

        entries = _log_entries(order_id)
        assert len(entries) == 1
        assert entries[0].status == LogStatus.CAPTURED.value
        assert entries[0].amount == 60.0

    def test_capture_does_not_deduct_stock_twice(self):
        unit_id = register_stock_unit("cap", variant_id="cap-black", stock=10).unwrap()
        order_id = _approved_order()
        assert current_domain.repository_for(StockUnit).get(unit_id).stock == 8

        record_payment_capture(order_id, "stripe", "ch_123", 60.0)

        assert current_domain.repository_for(StockUnit).get(unit_id).stock == 8

    def test_duplicate_callback_is_acknowledged_once(self):
        order_id = _approved_order()
        record_payment_capture(order_id, "stripe", "ch_123", 60.0)

        outcome = record_payment_capture(order_id, "stripe", "ch_123", 60.0)

        assert outcome.success
        assert len(current_domain.repository_for(Payment)._dao.query.filter(order_id=order_id).all().items) == 1
        assert len(_log_entries(order_id)) == 1

    def test_unknown_provider(self):
        order_id = _approved_order()
        outcome = record_payment_capture(order_id, "bitcoin", "tx-1", 60.0)
        assert outcome.error_kind == ErrorKind.VALIDATION

    def test_capture_on_cancelled_order(self):
        order_id = _approved_order()
        apply_admin_action(order_id, "cancel")
        outcome = record_payment_capture(order_id, "stripe", "ch_123", 60.0)
        assert outcome.error_kind == ErrorKind.CONFLICT


class TestAssignOrderNumber:
    def test_assign(self):
        order_id = _approved_order()
        outcome = assign_order_number(order_id)
        assert outcome.value.startswith("ORD-")
        assert outcome.value.endswith(order_id)

    def test_assign_twice_conflicts(self):
        order_id = _approved_order()
        assign_order_number(order_id)
        assert assign_order_number(order_id, "ORD-CUSTOM").error_kind == ErrorKind.CONFLICT
