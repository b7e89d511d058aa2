"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    product_id: str | None = None
    variant_id: str | None = None
    sku: str | None = None
    title: str | None = None
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    customization: dict[str, Any] | None = None


class RefundItemSchema(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int | None = Field(default=None, ge=1)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    lines: list[OrderLineSchema] = Field(min_length=1)
    subtotal: float = Field(ge=0)
    shipping: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)
    total: float = Field(ge=0)
    currency: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "lines": [
                        {
                            "product_id": "hoodie",
                            "variant_id": "hoodie-m-navy",
                            "quantity": 2,
                            "unit_price": 45.0,
                            "customization": {"text": "Team Tigers"},
                        }
                    ],
                    "subtotal": 90.0,
                    "shipping": 8.0,
                    "tax": 2.0,
                    "total": 100.0,
                    "currency": "USD",
                }
            ]
        }
    }


class AdminActionRequest(BaseModel):
    action: str
    notes: str | None = None
    operator_id: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None


class ResubmitOrderRequest(BaseModel):
    customer_id: str


class CancelOrderRequest(BaseModel):
    reason: str
    cancelled_by: str = "customer"
    acting_user_id: str | None = None


class RecordPaymentRequest(BaseModel):
    provider: str
    capture_id: str
    amount: float = Field(ge=0)
    fee: float = Field(default=0.0, ge=0)
    transaction_id: str | None = None
    payment_method: str | None = None
    card_last4: str | None = None
    card_brand: str | None = None


class CreateLabelRequest(BaseModel):
    carrier: str
    service_level: str = "Standard"
    weight: float | None = None


# ---------------------------------------------------------------------------
# Refund Request Schemas
# ---------------------------------------------------------------------------
class CreateRefundRequest(BaseModel):
    order_id: str
    user_id: str
    reason: str
    amount: float | None = Field(default=None, gt=0)
    refund_type: str | None = None
    description: str | None = None
    items: list[RefundItemSchema] | None = None
    evidence_urls: list[str] | None = None
    refund_method: str | None = None


class StartReviewRequest(BaseModel):
    reviewer_id: str | None = None


class ApproveRefundRequest(BaseModel):
    operator_notes: str | None = None
    operator_id: str | None = None
    manual_capture_id: str | None = None


class RejectRefundRequest(BaseModel):
    reason: str
    reviewer_id: str | None = None


class CancelRefundRequest(BaseModel):
    acting_user_id: str | None = None
    is_admin: bool = False


# ---------------------------------------------------------------------------
# Stock Request Schemas
# ---------------------------------------------------------------------------
class RegisterStockUnitRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    sku: str | None = None
    stock: int = Field(default=0, ge=0)


class AdjustStockRequest(BaseModel):
    new_stock: int = Field(ge=0)
    reason: str
    adjusted_by: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class RefundIdResponse(BaseModel):
    refund_id: str


class StockUnitIdResponse(BaseModel):
    unit_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error_kind: str
    message: str
    details: dict[str, Any] = {}
