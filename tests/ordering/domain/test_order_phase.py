"""Tests for status phases and the stock deduction trigger."""

import pytest
from ordering.order.order import (
    OrderPhase,
    OrderStatus,
    phase_of,
    resolve_admin_action,
    triggers_stock_deduction,
)


class TestPhaseOf:
    @pytest.mark.parametrize(
        "status",
        ["approved", "processing", "pending-payment", "approved-processing"],
    )
    def test_stock_commit_set(self, status):
        assert phase_of(status) == OrderPhase.STOCK_COMMIT

    @pytest.mark.parametrize("status", ["pending", "needs-changes"])
    def test_review_phase(self, status):
        assert phase_of(status) == OrderPhase.REVIEW

    @pytest.mark.parametrize("status", ["rejected", "refunded", "cancelled"])
    def test_closed_phase(self, status):
        assert phase_of(status) == OrderPhase.CLOSED

    def test_every_status_has_a_phase(self):
        for status in OrderStatus:
            assert isinstance(phase_of(status), OrderPhase)


class TestDeductionTrigger:
    def test_entering_from_review(self):
        assert triggers_stock_deduction("pending", "pending-payment") is True

    def test_moving_within_stock_commit(self):
        assert triggers_stock_deduction("pending-payment", "approved-processing") is False

    def test_legacy_approved_to_approved_processing(self):
        assert triggers_stock_deduction("approved", "approved-processing") is False

    def test_re_entry_from_production(self):
        assert triggers_stock_deduction("ready-for-production", "pending-payment") is True

    def test_leaving_stock_commit(self):
        assert triggers_stock_deduction("approved-processing", "ready-for-production") is False


class TestResolveAdminAction:
    def test_approve(self):
        assert resolve_admin_action("approve") == OrderStatus.PENDING_PAYMENT

    def test_request_changes(self):
        assert resolve_admin_action("request-changes") == OrderStatus.NEEDS_CHANGES

    def test_direct_status(self):
        assert resolve_admin_action("in-production") == OrderStatus.IN_PRODUCTION
