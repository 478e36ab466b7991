"""Pydantic schemas for billing previews, invoices and meter readings."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from rentbill.models.invoice import InvoiceItemType, InvoiceStatus

MONTH_YEAR_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class ReadingPair(BaseModel):
    """Water/electricity meter values or usage."""

    water: int
    elec: int


class RatesOut(BaseModel):
    water: Decimal
    elec: Decimal


class CostsOut(BaseModel):
    water: Decimal
    elec: Decimal
    rent: Decimal


class CalculateRequest(BaseModel):
    """Request payload for POST /api/billing/calculate."""

    room_id: int = Field(..., description="Room to bill")
    current_water: int = Field(..., ge=0, description="Current water meter reading")
    current_elec: int = Field(..., ge=0, description="Current electricity meter reading")
    month_year: str = Field(..., pattern=MONTH_YEAR_PATTERN, description="Billing period YYYY-MM")
    client_key: str | None = Field(None, description="Identifies the calling form instance")
    request_id: int | None = Field(None, ge=0, description="Increasing id of this preview request")


class CalculationResponse(BaseModel):
    """Preview of usage, costs and total. Amounts rounded to 2 places."""

    room_id: int
    month_year: str
    prev_readings: ReadingPair
    usage: ReadingPair
    rates: RatesOut
    costs: CostsOut
    total_amount: Decimal
    contract_id: int | None = None
    deposit: Decimal | None = None
    request_id: int | None = None
    stale: bool = Field(False, description="A newer preview request from the same client exists")


class CreateInvoiceRequest(BaseModel):
    """Request payload for POST /api/billing/create-invoice."""

    contract_id: int
    room_id: int
    month_year: str = Field(..., pattern=MONTH_YEAR_PATTERN)
    water_reading: int = Field(..., ge=0)
    elec_reading: int = Field(..., ge=0)
    recorded_by: int | None = Field(None, description="Staff user capturing the reading")
    deposit_amount: Decimal = Field(
        Decimal("0"), ge=0, decimal_places=2, description="Deposit top-up collected"
    )
    is_move_out: bool = Field(False, description="Issue a move-out settlement statement")
    cleaning_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    damage_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class InvoiceItemResponse(BaseModel):
    id: int
    item_type: InvoiceItemType
    description: str
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class InvoiceResponse(BaseModel):
    """Invoice with its line items."""

    id: int
    contract_id: int
    room_id: int
    meter_reading_id: int | None = None
    month_year: str
    total_amount: Decimal
    amount_due: Decimal
    status: InvoiceStatus
    issue_date: date
    due_date: date | None = None
    is_move_out: bool = False
    deposit_held: Decimal | None = None
    refund_amount: Decimal | None = None
    items: list[InvoiceItemResponse] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MoveOutSettlementResponse(BaseModel):
    """Deposit accounting shown with a move-out statement."""

    deposit: Decimal
    total_deductions: Decimal
    refund: Decimal
    tenant_owes: bool
    amount_owed: Decimal
    message: str


class CreateInvoiceResponse(InvoiceResponse):
    settlement: MoveOutSettlementResponse | None = None


class StatusUpdateRequest(BaseModel):
    status: InvoiceStatus


class BulkStatusRequest(BaseModel):
    invoice_ids: list[int] = Field(..., min_length=1)
    status: InvoiceStatus


class BulkFailure(BaseModel):
    invoice_id: int
    error: str


class BulkStatusResponse(BaseModel):
    """Per-id report of a bulk status update."""

    message: str
    status: InvoiceStatus
    updated_count: int
    succeeded: list[int]
    failed: list[BulkFailure]


class LateFeeResponse(BaseModel):
    invoice_id: int
    due_date: date
    days_late: int
    late_fee: Decimal


class ApplyLateFeeResponse(BaseModel):
    invoice: InvoiceResponse
    late_fee: LateFeeResponse


class MeterReadingCorrectionRequest(BaseModel):
    """Request payload for PATCH /api/billing/meter-reading/{id}."""

    water_reading: int = Field(..., ge=0)
    elec_reading: int = Field(..., ge=0)
    recorded_by: int | None = None


class MeterReadingResponse(BaseModel):
    id: int
    room_id: int
    month_year: str
    reading_date: date
    prev_water_reading: int
    prev_elec_reading: int
    water_reading: int
    elec_reading: int
    recorded_by: int | None = None

    model_config = ConfigDict(from_attributes=True)
