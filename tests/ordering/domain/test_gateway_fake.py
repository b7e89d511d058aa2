"""Tests for the fake refund gateway and the provider registry."""

import pytest
from ordering.gateway import FakeGateway, GatewayErrorKind, get_gateway, set_gateway
from ordering.order.order import PaymentProvider


class TestFakeGateway:
    def test_success(self):
        gateway = FakeGateway("stripe")
        result = gateway.refund("ch_1", 25.0, "USD", {"order_id": "o1"})
        assert result.success
        assert result.provider_refund_id.startswith("fake_stripe_re_")
        assert result.raw_response["amount"] == 25.0
        assert gateway.calls[0]["capture_id"] == "ch_1"

    def test_configured_failure(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, error_kind=GatewayErrorKind.TRANSIENT, failure_reason="503")
        result = gateway.refund("ch_1", 25.0, "USD", {})
        assert not result.success
        assert result.error_kind == GatewayErrorKind.TRANSIENT
        assert result.failure_reason == "503"

    def test_unknown_capture(self):
        gateway = FakeGateway()
        gateway.forget_capture("ch_gone")
        result = gateway.refund("ch_gone", 25.0, "USD", {})
        assert result.error_kind == GatewayErrorKind.NOT_FOUND

    def test_repeated_key_replays_the_first_refund(self):
        gateway = FakeGateway()
        first = gateway.refund("ch_1", 25.0, "USD", {}, idempotency_key="rr-1")
        second = gateway.refund("ch_1", 25.0, "USD", {}, idempotency_key="rr-1")

        assert second == first
        assert len(gateway.calls) == 2
        assert len(gateway.refunds_issued) == 1

    def test_failed_attempt_is_not_replayed(self):
        gateway = FakeGateway()
        gateway.forget_capture("ch_gone")
        assert not gateway.refund("ch_gone", 25.0, "USD", {}, idempotency_key="rr-1").success

        result = gateway.refund("ch_manual", 25.0, "USD", {}, idempotency_key="rr-1")

        assert result.success
        assert gateway.refunds_issued[0]["capture_id"] == "ch_manual"

    def test_calls_without_a_key_are_independent(self):
        gateway = FakeGateway()
        gateway.refund("ch_1", 25.0, "USD", {})
        gateway.refund("ch_1", 25.0, "USD", {})
        assert len(gateway.refunds_issued) == 2


class TestRegistry:
    def test_one_gateway_per_provider(self):
        assert get_gateway("stripe") is get_gateway(PaymentProvider.STRIPE)
        assert get_gateway("stripe") is not get_gateway("paypal")

    def test_override(self):
        custom = FakeGateway("paypal")
        set_gateway("paypal", custom)
        assert get_gateway("paypal") is custom

    def test_manual_payments_have_no_gateway(self):
        with pytest.raises(ValueError):
            get_gateway("manual")

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_gateway("bitcoin")
