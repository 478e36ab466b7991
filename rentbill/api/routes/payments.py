"""Payment API routes."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rentbill.api.deps import get_context
from rentbill.schemas.payments import ApprovePaymentRequest, CreatePaymentRequest, PaymentResponse
from rentbill.services.context import RequestContext
from rentbill.services.db import get_db
from rentbill.services.payment_service import PaymentService

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def record_payment(
    payload: CreatePaymentRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> PaymentResponse:
    """Record a payment (pending approval) for an invoice."""
    payment = PaymentService(db, context).record_payment(
        invoice_id=payload.invoice_id,
        amount=payload.amount,
        slip_image_url=payload.slip_image_url,
        payment_date=payload.payment_date,
    )
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=list[PaymentResponse])
def list_payments(
    invoice_id: int | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
) -> list[PaymentResponse]:
    payments = PaymentService(db).list_payments(invoice_id=invoice_id, status=status_filter)
    return [PaymentResponse.model_validate(payment) for payment in payments]


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: int, db: Session = Depends(get_db)) -> PaymentResponse:
    return PaymentResponse.model_validate(PaymentService(db).get_payment(payment_id))


@router.patch("/{payment_id}/approve", response_model=PaymentResponse)
def approve_payment(
    payment_id: int,
    payload: ApprovePaymentRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_context),
) -> PaymentResponse:
    """
    Approve a pending payment.

    Returns:
        200: Approved payment
        404: Unknown payment
        409: Payment already approved
        422: No approver given (body approved_by or X-Actor-Id header)
    """
    payment = PaymentService(db, context).approve_payment(payment_id, approver_id=payload.approved_by)
    return PaymentResponse.model_validate(payment)
