"""Billing API routes: previews, invoices, status, late fees and reading corrections."""

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from rentbill.api.deps import get_context
from rentbill.models.invoice import Invoice
from rentbill.schemas.billing import (
    ApplyLateFeeResponse,
    BulkFailure,
    BulkStatusRequest,
    BulkStatusResponse,
    CalculateRequest,
    CalculationResponse,
    CostsOut,
    CreateInvoiceRequest,
    CreateInvoiceResponse,
    InvoiceResponse,
    LateFeeResponse,
    MeterReadingCorrectionRequest,
    MeterReadingResponse,
    MoveOutSettlementResponse,
    RatesOut,
    ReadingPair,
    StatusUpdateRequest,
)
from rentbill.services.billing_engine import MONEY, ZERO, to_money
from rentbill.services.billing_service import BillingPreview, BillingService
from rentbill.services.context import RequestContext
from rentbill.services.db import get_db
from rentbill.services.invoice_service import InvoiceService
from rentbill.services.locale_service import format_amount
from rentbill.services.meter_reading_service import MeterReadingService
from rentbill.services.preview_sequencer import preview_sequencer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["billing"])


def _calculation_response(
    preview: BillingPreview,
    request_id: int | None = None,
    stale: bool = False,
) -> CalculationResponse:
    calc = preview.calculation
    return CalculationResponse(
        room_id=preview.room_id,
        month_year=preview.month_year,
        prev_readings=ReadingPair(**calc.prev_readings._asdict()),
        usage=ReadingPair(**calc.usage._asdict()),
        rates=RatesOut(water=to_money(calc.rates.water), elec=to_money(calc.rates.elec)),
        costs=CostsOut(
            water=to_money(calc.costs.water),
            elec=to_money(calc.costs.elec),
            rent=to_money(calc.costs.rent),
        ),
        total_amount=to_money(calc.total_amount),
        contract_id=preview.contract_id,
        deposit=to_money(preview.deposit) if preview.deposit is not None else None,
        request_id=request_id,
        stale=stale,
    )


def _settlement_response(invoice: Invoice) -> MoveOutSettlementResponse | None:
    if not invoice.is_move_out or invoice.refund_amount is None:
        return None
    refund = invoice.refund_amount
    tenant_owes = refund < 0
    if tenant_owes:
        message = (
            f"Tenant forfeits the deposit of {format_amount(invoice.deposit_held)} "
            f"and owes {format_amount(-refund)}"
        )
    else:
        message = f"Refund {format_amount(refund)} to tenant"
    return MoveOutSettlementResponse(
        deposit=to_money(invoice.deposit_held),
        total_deductions=to_money(invoice.total_amount),
        refund=to_money(refund),
        tenant_owes=tenant_owes,
        amount_owed=to_money(-refund) if tenant_owes else ZERO.quantize(MONEY),
        message=message,
    )


@router.get("/latest-reading/{room_id}", response_model=ReadingPair)
def get_latest_reading(
    room_id: int,
    month_year: str = Query(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    db: Session = Depends(get_db),
) -> ReadingPair:
    """Previous water/electricity readings a new reading for month_year starts from."""
    service = MeterReadingService(db)
    service.get_room(room_id)
    previous = service.get_previous_readings(room_id, month_year)
    return ReadingPair(water=previous.water, elec=previous.elec)


@router.post("/calculate", response_model=CalculationResponse)
def calculate(
    payload: CalculateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> CalculationResponse:
    """
    Preview a room's charges for a period. No data is written.

    When client_key and request_id are given, the response says whether a
    newer preview from the same client arrived meanwhile (stale=true).
    """
    track = payload.client_key is not None and payload.request_id is not None
    if track:
        preview_sequencer.begin(payload.client_key, payload.request_id)

    preview = BillingService(db, context).calculate(
        room_id=payload.room_id,
        current_water=payload.current_water,
        current_elec=payload.current_elec,
        month_year=payload.month_year,
    )

    stale = track and not preview_sequencer.is_current(payload.client_key, payload.request_id)
    return _calculation_response(preview, payload.request_id, stale)


@router.post(
    "/create-invoice",
    response_model=CreateInvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_invoice(
    payload: CreateInvoiceRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> CreateInvoiceResponse:
    """
    Record the period's meter reading and issue the invoice.

    Returns:
        201: Invoice with items (and the deposit settlement for move-outs)
        404: Unknown room or contract
        409: No active contract, or the period is already billed
        422: Invalid readings or amounts
    """
    if payload.recorded_by is not None:
        context = replace(context, actor_id=payload.recorded_by)

    invoice = BillingService(db, context).create_invoice(
        contract_id=payload.contract_id,
        room_id=payload.room_id,
        month_year=payload.month_year,
        water_reading=payload.water_reading,
        elec_reading=payload.elec_reading,
        recorded_by=payload.recorded_by,
        deposit_amount=payload.deposit_amount,
        move_out=payload.is_move_out,
        cleaning_fee=payload.cleaning_fee,
        damage_fee=payload.damage_fee,
    )
    response = CreateInvoiceResponse.model_validate(invoice)
    response.settlement = _settlement_response(invoice)
    return response


@router.get("", response_model=list[InvoiceResponse])
def list_invoices(
    status_filter: str | None = Query(None, alias="status"),
    month_year: str | None = Query(None),
    db: Session = Depends(get_db),
) -> list[InvoiceResponse]:
    """List invoices with optional status and period filters."""
    invoices = InvoiceService(db).list_invoices(status=status_filter, month_year=month_year)
    return [InvoiceResponse.model_validate(invoice) for invoice in invoices]


@router.patch("/bulk-status", response_model=BulkStatusResponse)
def bulk_update_status(
    payload: BulkStatusRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> BulkStatusResponse:
    """Set one status on many invoices; reports which ids succeeded and failed."""
    result = InvoiceService(db, context).bulk_update_status(payload.invoice_ids, payload.status)
    return BulkStatusResponse(
        message=f"Updated {result.updated_count} of {len(result.succeeded) + len(result.failed)} invoices",
        status=result.status,
        updated_count=result.updated_count,
        succeeded=result.succeeded,
        failed=[
            BulkFailure(invoice_id=invoice_id, error=error)
            for invoice_id, error in result.failed.items()
        ],
    )


@router.patch("/meter-reading/{reading_id}", response_model=MeterReadingResponse)
def correct_meter_reading(
    reading_id: int,
    payload: MeterReadingCorrectionRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> MeterReadingResponse:
    """Correct the current readings of a room's latest reading."""
    if payload.recorded_by is not None:
        context = replace(context, actor_id=payload.recorded_by)
    reading = MeterReadingService(db, context).correct_reading(
        reading_id,
        water_reading=payload.water_reading,
        elec_reading=payload.elec_reading,
    )
    return MeterReadingResponse.model_validate(reading)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)) -> InvoiceResponse:
    return InvoiceResponse.model_validate(InvoiceService(db).get_invoice(invoice_id))


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
def update_invoice_status(
    invoice_id: int,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> InvoiceResponse:
    """Staff override of an invoice status."""
    invoice = InvoiceService(db, context).update_status(invoice_id, payload.status)
    return InvoiceResponse.model_validate(invoice)


@router.get("/{invoice_id}/late-fee", response_model=LateFeeResponse | None)
def get_late_fee(
    invoice_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> LateFeeResponse | None:
    """Late fee currently owed on an invoice; null when it is not late."""
    fee = InvoiceService(db, context).compute_late_fee(invoice_id)
    if fee is None:
        return None
    return LateFeeResponse(invoice_id=invoice_id, **fee._asdict())


@router.post("/{invoice_id}/late-fee", response_model=ApplyLateFeeResponse)
def apply_late_fee(
    invoice_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> ApplyLateFeeResponse:
    """Add the late fee item to an overdue invoice (once)."""
    invoice, fee = InvoiceService(db, context).apply_late_fee(invoice_id)
    return ApplyLateFeeResponse(
        invoice=InvoiceResponse.model_validate(invoice),
        late_fee=LateFeeResponse(invoice_id=invoice_id, **fee._asdict()),
    )


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> Response:
    """Hard-delete an invoice and reverse its deposit movements. Irreversible.

    Returns:
        204: Deleted
        404: Unknown invoice
        409: The contract moved on and the deposit movements cannot be undone
    """
    InvoiceService(db, context).delete_invoice(invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
