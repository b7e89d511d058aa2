"""Tests for the RefundRequest aggregate lifecycle and predicates."""

import pytest
from ordering.refund.events import RefundProcessingStarted
from ordering.refund.refund import RETRY_MARKER, RefundRequest, RefundStatus
from protean.exceptions import InvalidOperationError, ValidationError


def _make_refund(**overrides):
    kwargs = {
        "order_id": "order-001",
        "user_id": "cust-001",
        "amount": 50.0,
        "original_amount": 100.0,
        "reason": "changed_mind",
    }
    kwargs.update(overrides)
    return RefundRequest.submit(**kwargs)


def _processing_refund():
    refund = _make_refund()
    refund.begin_processing(operator_id="admin-1")
    return refund


class TestSubmit:
    def test_new_request_is_pending(self):
        refund = _make_refund()
        assert refund.status == RefundStatus.PENDING.value
        assert refund.refund_type == "full"
        assert refund.refund_method == "original_payment"
        assert refund.inventory_restored is False
        assert refund.requested_at is not None

    def test_items_are_kept_as_references(self):
        refund = _make_refund(items=[{"product_id": "mug", "quantity": 1}])
        assert refund.item_refs == [{"product_id": "mug", "quantity": 1}]

    def test_unknown_reason(self):
        with pytest.raises(ValidationError):
            _make_refund(reason="bored")

    def test_unknown_refund_method(self):
        with pytest.raises(ValidationError):
            _make_refund(refund_method="cash_in_envelope")


class TestPredicates:
    def test_pending(self):
        refund = _make_refund()
        assert refund.can_be_approved
        assert refund.can_be_cancelled
        assert not refund.is_final_state

    def test_under_review(self):
        refund = _make_refund()
        refund.start_review("admin-1")
        assert refund.status == RefundStatus.UNDER_REVIEW.value
        assert refund.can_be_approved
        assert refund.can_be_cancelled

    def test_processing(self):
        refund = _processing_refund()
        assert not refund.can_be_approved
        assert not refund.can_be_cancelled
        assert not refund.is_final_state

    def test_failed(self):
        refund = _processing_refund()
        refund.fail("Card expired", "rejected")
        assert refund.can_be_approved
        assert not refund.can_be_cancelled
        assert not refund.is_final_state

    def test_completed_is_final(self):
        refund = _processing_refund()
        refund.complete("re_123", {"id": "re_123"})
        assert refund.is_final_state
        assert not refund.can_be_approved


class TestProcessing:
    def test_begin_processing_records_reviewer(self):
        refund = _make_refund()
        refund.begin_processing(operator_id="admin-1", notes="Approved")
        assert refund.status == RefundStatus.PROCESSING.value
        assert refund.reviewed_by == "admin-1"
        assert refund.admin_notes == "Approved"
        assert refund.processed_at is not None

    def test_cannot_approve_processing(self):
        refund = _processing_refund()
        with pytest.raises(InvalidOperationError):
            refund.begin_processing()

    def test_failure_keeps_earlier_notes(self):
        refund = _make_refund()
        refund.begin_processing(notes="First try")
        refund.fail("Provider timeout", "transient")
        assert refund.admin_notes == "First try\nFailed: Provider timeout"
        assert refund.failure_kind == "transient"

    def test_retry_appends_marker(self):
        refund = _make_refund()
        refund.begin_processing(notes="First try")
        refund.fail("Provider timeout", "transient")
        refund._events.clear()
        refund.begin_processing(notes="Second try")
        assert refund.admin_notes.endswith(f"{RETRY_MARKER} Second try")
        assert "Failed: Provider timeout" in refund.admin_notes
        assert refund.failure_kind is None
        event = next(e for e in refund._events if isinstance(e, RefundProcessingStarted))
        assert event.is_retry is True

    def test_complete_stores_provider_data(self):
        refund = _processing_refund()
        refund.complete("re_123", {"id": "re_123", "status": "succeeded"})
        assert refund.status == RefundStatus.COMPLETED.value
        assert refund.provider_refund_id == "re_123"
        assert '"succeeded"' in refund.provider_response

    def test_cannot_complete_pending(self):
        refund = _make_refund()
        with pytest.raises(InvalidOperationError):
            refund.complete("re_123")


class TestReject:
    def test_reject_pending(self):
        refund = _make_refund()
        refund.reject("Outside policy", reviewer_id="admin-1")
        assert refund.status == RefundStatus.REJECTED.value
        assert refund.rejection_reason == "Outside policy"
        assert refund.is_final_state

    def test_reject_failed(self):
        refund = _processing_refund()
        refund.fail("Declined", "rejected")
        refund.reject("Giving up")
        assert refund.status == RefundStatus.REJECTED.value

    def test_reject_requires_reason(self):
        refund = _make_refund()
        with pytest.raises(ValidationError):
            refund.reject("")

    def test_cannot_reject_completed(self):
        refund = _processing_refund()
        refund.complete("re_1")
        with pytest.raises(InvalidOperationError):
            refund.reject("Too late")


class TestCancel:
    def test_owner_can_cancel(self):
        refund = _make_refund()
        refund.cancel(acting_user_id="cust-001")
        assert refund.status == RefundStatus.CANCELLED.value

    def test_other_user_cannot_cancel(self):
        refund = _make_refund()
        with pytest.raises(ValidationError):
            refund.cancel(acting_user_id="cust-999")
        assert refund.status == RefundStatus.PENDING.value

    def test_admin_can_cancel_any(self):
        refund = _make_refund()
        refund.cancel(acting_user_id="admin-1", is_admin=True)
        assert refund.status == RefundStatus.CANCELLED.value

    def test_cannot_cancel_processing(self):
        refund = _processing_refund()
        with pytest.raises(InvalidOperationError):
            refund.cancel(acting_user_id="cust-001")


class TestInventoryClaim:
    def test_claim_once(self):
        refund = _processing_refund()
        refund.complete("re_1")
        refund.claim_inventory_restoration()
        assert refund.inventory_restored is True
        assert refund.inventory_restored_at is not None
        with pytest.raises(InvalidOperationError):
            refund.claim_inventory_restoration()

    def test_claim_requires_completed(self):
        refund = _make_refund()
        with pytest.raises(InvalidOperationError):
            refund.claim_inventory_restoration()
