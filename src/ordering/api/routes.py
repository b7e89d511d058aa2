"""FastAPI routes for the Ordering domain: orders, refunds and stock.

Routes call the entry points and map a failed ``Outcome`` onto an HTTP
status by its error kind.
"""

from fastapi import APIRouter, HTTPException

from ordering.api.schemas import (
    AdjustStockRequest,
    AdminActionRequest,
    ApproveRefundRequest,
    CancelOrderRequest,
    CancelRefundRequest,
    CreateLabelRequest,
    CreateRefundRequest,
    OrderIdResponse,
    PlaceOrderRequest,
    RecordPaymentRequest,
    RefundIdResponse,
    RegisterStockUnitRequest,
    RejectRefundRequest,
    ResubmitOrderRequest,
    StartReviewRequest,
    StatusResponse,
    StockUnitIdResponse,
)
from ordering.errors import ErrorKind, Outcome
from ordering.order import queries as order_queries
from ordering.order import service as order_service
from ordering.refund import orchestrator
from ordering.refund import queries as refund_queries
from ordering.stock import ledger
from ordering.stock import service as stock_service

HTTP_STATUS_FOR_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.GATEWAY_MANUAL_INTERVENTION: 422,
    ErrorKind.GATEWAY_TRANSIENT: 503,
    ErrorKind.GATEWAY_REJECTED: 402,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}


def _unwrap(outcome: Outcome):
    if outcome.success:
        return outcome.value
    raise HTTPException(
        status_code=HTTP_STATUS_FOR_KIND[outcome.error_kind],
        detail={
            "error_kind": outcome.error_kind.value,
            "message": outcome.message,
            "details": outcome.details,
        },
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    order_id = _unwrap(
        order_service.place_order(
            customer_id=body.customer_id,
            lines=[line.model_dump() for line in body.lines],
            subtotal=body.subtotal,
            shipping=body.shipping,
            tax=body.tax,
            total=body.total,
            currency=body.currency,
        )
    )
    return OrderIdResponse(order_id=order_id)


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    return _unwrap(order_queries.get_order(order_id))


@order_router.post("/{order_id}/actions", response_model=StatusResponse)
async def apply_admin_action(order_id: str, body: AdminActionRequest) -> StatusResponse:
    status = _unwrap(
        order_service.apply_admin_action(order_id, body.action, body.model_dump(exclude={"action"}))
    )
    return StatusResponse(status=status)


@order_router.put("/{order_id}/resubmit", response_model=StatusResponse)
async def resubmit_order(order_id: str, body: ResubmitOrderRequest) -> StatusResponse:
    return StatusResponse(status=_unwrap(order_service.resubmit_order(order_id, body.customer_id)))


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    status = _unwrap(
        order_service.cancel_order(
            order_id,
            reason=body.reason,
            cancelled_by=body.cancelled_by,
            acting_user_id=body.acting_user_id,
        )
    )
    return StatusResponse(status=status)


@order_router.post("/{order_id}/payments", response_model=StatusResponse)
async def record_payment(order_id: str, body: RecordPaymentRequest) -> StatusResponse:
    details = body.model_dump(exclude={"provider", "capture_id", "amount"})
    status = _unwrap(
        order_service.record_payment_capture(order_id, body.provider, body.capture_id, body.amount, **details)
    )
    return StatusResponse(status=status)


@order_router.post("/{order_id}/label")
async def create_shipping_label(order_id: str, body: CreateLabelRequest) -> dict:
    return _unwrap(
        order_service.create_shipping_label(order_id, body.carrier, body.service_level, body.weight)
    )


@order_router.delete("/{order_id}/label", response_model=StatusResponse)
async def void_shipping_label(order_id: str) -> StatusResponse:
    return StatusResponse(status=_unwrap(order_service.void_shipping_label(order_id)))


@order_router.post("/{order_id}/stock/deduct")
async def deduct_stock(order_id: str) -> dict:
    """Re-run stock deduction for an order (operator reconciliation)."""
    return _unwrap(ledger.deduct_for_order(order_id))


# ---------------------------------------------------------------------------
# Refund Router
# ---------------------------------------------------------------------------
refund_router = APIRouter(prefix="/refunds", tags=["refunds"])


@refund_router.post("", status_code=201, response_model=RefundIdResponse)
async def create_refund_request(body: CreateRefundRequest) -> RefundIdResponse:
    refund_id = _unwrap(
        orchestrator.create_refund_request(
            body.order_id,
            body.user_id,
            body.reason,
            amount=body.amount,
            refund_type=body.refund_type,
            description=body.description,
            items=[item.model_dump(exclude_none=True) for item in body.items] if body.items else None,
            evidence_urls=body.evidence_urls,
            refund_method=body.refund_method,
        )
    )
    return RefundIdResponse(refund_id=refund_id)


@refund_router.get("/{refund_id}")
async def get_refund(refund_id: str) -> dict:
    return _unwrap(refund_queries.get_refund(refund_id))


@refund_router.put("/{refund_id}/review", response_model=StatusResponse)
async def start_review(refund_id: str, body: StartReviewRequest) -> StatusResponse:
    return StatusResponse(status=_unwrap(orchestrator.start_refund_review(refund_id, body.reviewer_id)))


@refund_router.put("/{refund_id}/approve")
async def approve_refund(refund_id: str, body: ApproveRefundRequest) -> dict:
    return _unwrap(
        orchestrator.approve_refund(
            refund_id,
            operator_notes=body.operator_notes,
            operator_id=body.operator_id,
            manual_capture_id=body.manual_capture_id,
        )
    )


@refund_router.put("/{refund_id}/reject", response_model=StatusResponse)
async def reject_refund(refund_id: str, body: RejectRefundRequest) -> StatusResponse:
    return StatusResponse(status=_unwrap(orchestrator.reject_refund(refund_id, body.reason, body.reviewer_id)))


@refund_router.put("/{refund_id}/cancel", response_model=StatusResponse)
async def cancel_refund(refund_id: str, body: CancelRefundRequest) -> StatusResponse:
    status = _unwrap(
        orchestrator.cancel_refund(refund_id, acting_user_id=body.acting_user_id, is_admin=body.is_admin)
    )
    return StatusResponse(status=status)


@refund_router.post("/{refund_id}/restock")
async def restore_stock(refund_id: str) -> dict:
    """Restore stock for a completed refund whose restock did not run."""
    return _unwrap(ledger.restore_for_refund(refund_id))


# ---------------------------------------------------------------------------
# Stock Router
# ---------------------------------------------------------------------------
stock_router = APIRouter(prefix="/stock", tags=["stock"])


@stock_router.post("", status_code=201, response_model=StockUnitIdResponse)
async def register_stock_unit(body: RegisterStockUnitRequest) -> StockUnitIdResponse:
    unit_id = _unwrap(
        stock_service.register_stock_unit(body.product_id, body.variant_id, body.sku, body.stock)
    )
    return StockUnitIdResponse(unit_id=unit_id)


@stock_router.get("/{unit_id}")
async def get_stock_unit(unit_id: str) -> dict:
    return _unwrap(stock_service.get_stock_unit(unit_id))


@stock_router.put("/{unit_id}/adjust")
async def adjust_stock(unit_id: str, body: AdjustStockRequest) -> dict:
    new_stock = _unwrap(stock_service.adjust_stock(unit_id, body.new_stock, body.reason, body.adjusted_by))
    return {"unit_id": unit_id, "stock": new_stock}
