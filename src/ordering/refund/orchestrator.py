"""Refund orchestration: the entry points that drive a refund request.

Each entry point returns an ``Outcome``. Expected business-rule failures
(bad input, conflicting state, unknown ids, gateway problems) come back as
a failed outcome with an ``ErrorKind``; anything else is fatal and raised
as ``PersistenceFailure``.

Approval runs as a sequence of independently committed steps so that the
outbound gateway call never happens inside a unit of work:

1. Move the request to processing (committed).
2. Resolve the capture id: order, then latest completed payment, then the
   operator-supplied id.
3. Call the provider's refund gateway, bounded by a timeout and keyed by
   the refund id so a retry never pays out twice.
4. On success, complete the request and book the amount on the order in
   one unit of work, then put eligible stock back.
5. On failure, record the failure on the request and surface its kind.
"""

import atexit
import json
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import structlog
from protean.utils.globals import current_domain

from ordering.config import gateway_max_workers, gateway_timeout_seconds
from ordering.errors import (
    GatewayRejectedError,
    GatewayTransientError,
    ManualInterventionRequired,
    Outcome,
    capture_outcome,
)
from ordering.gateway import GatewayErrorKind, RefundResult, get_gateway
from ordering.order.order import Order, PaymentProvider
from ordering.payment.payment import latest_completed_payment
from ordering.policies import provider_reason_for
from ordering.refund.refund import RefundRequest
from ordering.refund.review import CancelRefundRequest, RejectRefundRequest, StartRefundReview
from ordering.refund.settlement import (
    BeginRefundSettlement,
    CompleteRefundSettlement,
    FailRefundSettlement,
)
from ordering.refund.submission import SubmitRefundRequest
from ordering.stock.ledger import restore_for_refund

logger = structlog.get_logger(__name__)

# Lives for the whole process. A call that outlives its timeout keeps its
# worker until the provider answers.
_executor = ThreadPoolExecutor(max_workers=gateway_max_workers(), thread_name_prefix="refund-gateway")
atexit.register(_executor.shutdown, wait=False, cancel_futures=True)


# ---------------------------------------------------------------------------
# Capture id resolution
# ---------------------------------------------------------------------------
def resolve_capture_id(order, provider, manual_capture_id=None) -> str | None:
    """Capture id for the refund: order, then latest completed payment, then operator input."""
    if order.capture_id:
        return order.capture_id

    payment = latest_completed_payment(order.id, provider)
    if payment is None and provider:
        payment = latest_completed_payment(order.id)
    if payment is not None and payment.capture_id:
        return payment.capture_id

    return manual_capture_id or None


# ---------------------------------------------------------------------------
# Gateway call
# ---------------------------------------------------------------------------
def _call_gateway(provider, capture_id, amount, currency, metadata, idempotency_key) -> RefundResult:
    """Call the provider with a bounded wait. Timeouts and crashes are transient.

    The refund id is the idempotency key, so a retry after a timeout gets the
    outcome of the call that timed out rather than a second payout.
    """
    gateway = get_gateway(provider)
    timeout = gateway_timeout_seconds()
    future = _executor.submit(gateway.refund, capture_id, amount, currency, metadata, idempotency_key)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        logger.warning("Refund gateway timed out", provider=provider, timeout_seconds=timeout)
        return RefundResult.failed(GatewayErrorKind.TRANSIENT, f"Gateway did not answer within {timeout}s")
    except Exception as exc:
        logger.warning("Refund gateway call raised", provider=provider, error=str(exc))
        return RefundResult.failed(GatewayErrorKind.TRANSIENT, f"Gateway error: {exc}")


def _fail_and_raise(refund_id, kind: GatewayErrorKind, reason: str):
    current_domain.process(
        FailRefundSettlement(refund_id=str(refund_id), reason=reason, failure_kind=kind.value),
        asynchronous=False,
    )
    logger.warning("Refund settlement failed", refund_id=str(refund_id), failure_kind=kind.value, reason=reason)

    if kind == GatewayErrorKind.NOT_FOUND:
        raise ManualInterventionRequired(str(refund_id), reason)
    if kind == GatewayErrorKind.TRANSIENT:
        raise GatewayTransientError(str(refund_id), reason)
    raise GatewayRejectedError(str(refund_id), reason)


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------
def _create_refund_request(
    order_id,
    user_id,
    reason,
    amount=None,
    refund_type=None,
    description=None,
    items=None,
    evidence_urls=None,
    refund_method=None,
):
    command = SubmitRefundRequest(
        order_id=str(order_id),
        user_id=str(user_id),
        reason=reason,
        amount=amount,
        refund_type=refund_type,
        description=description,
        items=json.dumps(items) if items else None,
        evidence_urls=json.dumps(evidence_urls) if evidence_urls else None,
        **({"refund_method": refund_method} if refund_method else {}),
    )
    return current_domain.process(command, asynchronous=False)


def _start_refund_review(refund_id, reviewer_id=None):
    return current_domain.process(
        StartRefundReview(refund_id=str(refund_id), reviewer_id=reviewer_id),
        asynchronous=False,
    )


def _approve_refund(refund_id, operator_notes=None, operator_id=None, manual_capture_id=None):
    context = current_domain.process(
        BeginRefundSettlement(refund_id=str(refund_id), operator_id=operator_id, notes=operator_notes),
        asynchronous=False,
    )
    provider = context["provider"] or PaymentProvider.STRIPE.value

    if PaymentProvider(provider) == PaymentProvider.MANUAL:
        _fail_and_raise(refund_id, GatewayErrorKind.NOT_FOUND, "Payment was collected manually; refund it by hand")

    order = current_domain.repository_for(Order).get(context["order_id"])
    capture_id = resolve_capture_id(order, provider, manual_capture_id)
    if not capture_id:
        _fail_and_raise(refund_id, GatewayErrorKind.NOT_FOUND, "No capture id could be resolved for this order")

    metadata = {
        "refund_request_id": context["refund_id"],
        "order_id": context["order_id"],
        "order_number": context["order_number"],
        "reason": provider_reason_for(context["reason"]),
    }
    logger.info(
        "Calling refund gateway",
        refund_id=context["refund_id"],
        provider=provider,
        amount=context["amount"],
    )
    result = _call_gateway(
        provider, capture_id, context["amount"], context["currency"], metadata, idempotency_key=context["refund_id"]
    )
    if not result.success:
        _fail_and_raise(refund_id, result.error_kind or GatewayErrorKind.REJECTED, result.failure_reason or "Refund failed")

    current_domain.process(
        CompleteRefundSettlement(
            refund_id=str(refund_id),
            provider_refund_id=result.provider_refund_id,
            provider_response=json.dumps(result.raw_response) if result.raw_response else None,
        ),
        asynchronous=False,
    )
    logger.info(
        "Refund completed",
        refund_id=context["refund_id"],
        provider_refund_id=result.provider_refund_id,
    )

    stock = restore_for_refund(refund_id)
    if not stock.success:
        logger.error(
            "Stock restoration after refund did not run",
            refund_id=context["refund_id"],
            error_kind=stock.error_kind.value,
            reason=stock.message,
        )

    refund = current_domain.repository_for(RefundRequest).get(refund_id)
    return {
        "refund_id": str(refund.id),
        "status": refund.status,
        "provider_refund_id": refund.provider_refund_id,
        "inventory": stock.value if stock.success else None,
    }


def _reject_refund(refund_id, reason, reviewer_id=None):
    return current_domain.process(
        RejectRefundRequest(refund_id=str(refund_id), reason=reason, reviewer_id=reviewer_id),
        asynchronous=False,
    )


def _cancel_refund(refund_id, acting_user_id=None, is_admin=False):
    return current_domain.process(
        CancelRefundRequest(
            refund_id=str(refund_id),
            acting_user_id=str(acting_user_id) if acting_user_id else None,
            is_admin=is_admin,
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------
def create_refund_request(order_id, user_id, reason, **kwargs) -> Outcome:
    """Open a refund request. The value is the new refund id."""
    return capture_outcome("create_refund_request", _create_refund_request, order_id, user_id, reason, **kwargs)


def start_refund_review(refund_id, reviewer_id=None) -> Outcome:
    return capture_outcome("start_refund_review", _start_refund_review, refund_id, reviewer_id)


def approve_refund(refund_id, operator_notes=None, operator_id=None, manual_capture_id=None) -> Outcome:
    """Approve and settle a refund through the provider's gateway."""
    return capture_outcome(
        "approve_refund",
        _approve_refund,
        refund_id,
        operator_notes=operator_notes,
        operator_id=operator_id,
        manual_capture_id=manual_capture_id,
    )


def reject_refund(refund_id, reason, reviewer_id=None) -> Outcome:
    return capture_outcome("reject_refund", _reject_refund, refund_id, reason, reviewer_id)


def cancel_refund(refund_id, acting_user_id=None, is_admin=False) -> Outcome:
    return capture_outcome("cancel_refund", _cancel_refund, refund_id, acting_user_id, is_admin)
