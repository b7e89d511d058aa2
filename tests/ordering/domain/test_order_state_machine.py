"""Tests for the Order state machine: admin actions, remaps and transition guards."""

import pytest
from ordering.order.events import OrderCancelled, OrderShipped, OrderStatusChanged
from ordering.order.order import Order, OrderPhase, OrderStatus
from protean.exceptions import InvalidOperationError, ValidationError


def _make_order():
    return Order.place(
        customer_id="cust-001",
        lines_data=[
            {
                "product_id": "hoodie",
                "variant_id": "hoodie-m",
                "sku": "HD-M",
                "title": "Hoodie",
                "quantity": 2,
                "unit_price": 40.0,
            }
        ],
        totals={"subtotal": 80.0, "shipping": 15.0, "tax": 5.0, "total": 100.0},
    )


_PATH_TO = [
    "approve",
    "approved-processing",
    "ready-for-production",
    "in-production",
    "ready-for-checkout",
    "shipped",
    "delivered",
]


def _order_at(status):
    order = _make_order()
    for action in _PATH_TO:
        if order.status == status:
            break
        order.apply_admin_action(action)
    assert order.status == status
    order._events.clear()
    return order


class TestApproveRemap:
    def test_approve_lands_in_pending_payment(self):
        order = _make_order()
        new_status = order.apply_admin_action("approve", notes="Looks good", operator_id="admin-1")
        assert new_status == OrderStatus.PENDING_PAYMENT.value
        assert order.status == OrderStatus.PENDING_PAYMENT.value
        assert order.status != OrderStatus.APPROVED.value

    def test_requested_action_is_kept_apart_from_status(self):
        order = _make_order()
        order.apply_admin_action("approve")
        assert order.last_requested_action == "approve"

    def test_literal_approved_action_is_also_remapped(self):
        order = _make_order()
        order.apply_admin_action("approved")
        assert order.status == OrderStatus.PENDING_PAYMENT.value

    def test_approve_records_reviewer_and_notes(self):
        order = _make_order()
        order.apply_admin_action("approve", notes="Design checked", operator_id="admin-7")
        assert order.reviewed_by == "admin-7"
        assert order.admin_notes == "Design checked"
        assert order.reviewed_at is not None

    def test_approve_event_flags_stock_deduction(self):
        order = _make_order()
        order._events.clear()
        order.apply_admin_action("approve")
        event = next(e for e in order._events if isinstance(e, OrderStatusChanged))
        assert event.requested_action == "approve"
        assert event.previous_status == "pending"
        assert event.new_status == "pending-payment"
        assert event.stock_deduction_required is True


class TestReviewOutcomes:
    def test_reject(self):
        order = _make_order()
        order.apply_admin_action("reject", notes="Artwork is copyrighted")
        assert order.status == OrderStatus.REJECTED.value
        assert order.phase == OrderPhase.CLOSED

    def test_request_changes(self):
        order = _make_order()
        order.apply_admin_action("request-changes")
        assert order.status == OrderStatus.NEEDS_CHANGES.value

    def test_resubmit_after_changes(self):
        order = _make_order()
        order.apply_admin_action("request-changes")
        order.resubmit("cust-001")
        assert order.status == OrderStatus.PENDING.value
        assert order.last_requested_action == "resubmit"

    def test_resubmit_by_other_customer_fails(self):
        order = _make_order()
        order.apply_admin_action("request-changes")
        with pytest.raises(ValidationError):
            order.resubmit("cust-999")

    def test_resubmit_requires_needs_changes(self):
        order = _make_order()
        with pytest.raises(InvalidOperationError):
            order.resubmit("cust-001")

    def test_rejected_has_no_forward_edges(self):
        order = _make_order()
        order.apply_admin_action("reject")
        with pytest.raises(InvalidOperationError):
            order.apply_admin_action("approve")


class TestActionValidation:
    def test_unknown_action(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.apply_admin_action("teleport")

    @pytest.mark.parametrize("status", ["processing", "refunded"])
    def test_reserved_statuses_cannot_be_assigned(self, status):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.apply_admin_action(status)

    def test_action_is_case_insensitive(self):
        order = _make_order()
        order.apply_admin_action("  Approve ")
        assert order.status == OrderStatus.PENDING_PAYMENT.value


class TestProductionPipeline:
    def test_full_forward_path(self):
        order = _order_at("delivered")
        assert order.phase == OrderPhase.FULFILLED
        assert order.delivered_at is not None
        assert order.shipped_at is not None

    def test_picture_reply_loop(self):
        order = _order_at("approved-processing")
        order.apply_admin_action("picture-reply-pending")
        order.apply_admin_action("picture-reply-rejected")
        order.apply_admin_action("picture-reply-pending")
        order.apply_admin_action("picture-reply-approved")
        order.apply_admin_action("ready-for-production")
        assert order.status == OrderStatus.READY_FOR_PRODUCTION.value

    def test_cannot_skip_forward(self):
        order = _order_at("pending-payment")
        with pytest.raises(InvalidOperationError):
            order.apply_admin_action("shipped")

    def test_rewind_to_earlier_pipeline_step(self):
        order = _order_at("ready-for-production")
        order.apply_admin_action("pending-payment")
        assert order.status == OrderStatus.PENDING_PAYMENT.value

    def test_rewind_into_stock_commit_flags_deduction_again(self):
        order = _order_at("ready-for-production")
        order.apply_admin_action("pending-payment")
        event = next(e for e in order._events if isinstance(e, OrderStatusChanged))
        assert event.stock_deduction_required is True

    def test_delivered_is_terminal(self):
        order = _order_at("delivered")
        with pytest.raises(InvalidOperationError):
            order.apply_admin_action("in-production")


class TestShippingEntry:
    def test_shipped_uses_caller_tracking_when_unset(self):
        order = _order_at("ready-for-checkout")
        order.apply_admin_action("shipped", tracking_number="1Z999", carrier="UPS")
        assert order.tracking_number == "1Z999"
        assert order.carrier == "UPS"
        assert order.shipped_at is not None

    def test_shipped_keeps_label_tracking(self):
        order = _order_at("ready-for-checkout")
        order.attach_shipping_label(carrier="USPS", tracking_number="LABEL-1")
        order.apply_admin_action("shipped", tracking_number="OTHER", carrier="UPS")
        assert order.tracking_number == "LABEL-1"
        assert order.carrier == "USPS"

    def test_shipped_raises_shipment_event(self):
        order = _order_at("ready-for-checkout")
        order.apply_admin_action("shipped", tracking_number="1Z999", carrier="UPS")
        assert any(isinstance(e, OrderShipped) for e in order._events)


class TestCancellation:
    def test_cancel_from_review_does_not_restock(self):
        order = _make_order()
        order._events.clear()
        order.cancel(reason="Changed my mind", cancelled_by="customer")
        assert order.status == OrderStatus.CANCELLED.value
        event = next(e for e in order._events if isinstance(e, OrderCancelled))
        assert event.restock_required is False

    def test_cancel_after_stock_commit_restocks(self):
        order = _order_at("in-production")
        order.cancel(reason="Customer request", cancelled_by="admin")
        event = next(e for e in order._events if isinstance(e, OrderCancelled))
        assert event.restock_required is True

    def test_cancel_via_admin_action(self):
        order = _order_at("pending-payment")
        assert order.apply_admin_action("cancel", notes="Duplicate") == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Duplicate"

    def test_cannot_cancel_shipped_order(self):
        order = _order_at("shipped")
        with pytest.raises(InvalidOperationError):
            order.cancel(reason="Too late", cancelled_by="customer")

    def test_customer_cannot_cancel_someone_elses_order(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.cancel(reason="Nope", cancelled_by="customer", acting_user_id="cust-999")

    def test_cancelled_is_terminal(self):
        order = _make_order()
        order.cancel(reason="x", cancelled_by="customer")
        with pytest.raises(InvalidOperationError):
            order.cancel(reason="again", cancelled_by="customer")
