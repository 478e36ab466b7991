"""Pydantic schemas for payments."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from rentbill.models.payment import PaymentStatus


class CreatePaymentRequest(BaseModel):
    """Request payload for POST /api/payments."""

    invoice_id: int
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    slip_image_url: str | None = Field(None, max_length=500, description="Payment proof reference")
    payment_date: date | None = None


class ApprovePaymentRequest(BaseModel):
    """Request payload for PATCH /api/payments/{id}/approve."""

    status: Literal["approved"] = "approved"
    approved_by: int | None = None


class PaymentResponse(BaseModel):
    id: int
    invoice_id: int
    amount: Decimal
    slip_image_url: str | None = None
    payment_date: date
    status: PaymentStatus
    approved_by: int | None = None
    approved_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
