"""Service for tenant payments and their approval."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rentbill.errors import NotFoundError, StateError, ValidationError
from rentbill.models.invoice import Invoice, InvoiceStatus
from rentbill.models.payment import Payment, PaymentStatus
from rentbill.services.audit_service import AuditService
from rentbill.services.billing_engine import ZERO, money_amount, to_decimal
from rentbill.services.context import RequestContext

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for recording payments against invoices and approving them."""

    def __init__(self, db_session: Session, context: RequestContext | None = None):
        self.db = db_session
        self.context = context or RequestContext.system()

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def list_payments(
        self,
        invoice_id: int | None = None,
        status: PaymentStatus | str | None = None,
    ) -> list[Payment]:
        """List payments, newest first."""
        stmt = select(Payment)
        if invoice_id is not None:
            stmt = stmt.where(Payment.invoice_id == invoice_id)
        if status:
            try:
                stmt = stmt.where(Payment.status == PaymentStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid payment status '{status}'") from None
        stmt = stmt.order_by(Payment.payment_date.desc(), Payment.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def record_payment(
        self,
        invoice_id: int,
        amount: Decimal,
        slip_image_url: str | None = None,
        payment_date: date | None = None,
    ) -> Payment:
        """Record a pending payment for an invoice.

        Raises:
            ValidationError: If amount is not positive
            NotFoundError: If the invoice does not exist
            StateError: If the invoice is cancelled
        """
        amount = money_amount(amount, "Payment amount")
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")

        invoice = self.db.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        if invoice.status == InvoiceStatus.CANCELLED:
            raise StateError(f"Invoice {invoice_id} is cancelled and cannot be paid")

        payment = Payment(
            invoice_id=invoice_id,
            amount=amount,
            slip_image_url=slip_image_url,
            payment_date=payment_date or self.context.today(),
            status=PaymentStatus.PENDING,
        )
        try:
            self.db.add(payment)
            self.db.flush()
            AuditService.log(
                self.db,
                "payment",
                payment.id,
                "create",
                self.context.actor_id,
                {"invoice_id": invoice_id, "amount": str(amount)},
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to record payment for invoice %d", invoice_id, exc_info=True)
            raise

        self.db.refresh(payment)
        logger.info("Recorded payment %d of %s for invoice %d", payment.id, amount, invoice_id)
        return payment

    def approve_payment(self, payment_id: int, approver_id: int | None = None) -> Payment:
        """Approve a pending payment (one-way).

        When approved payments cover the amount due, an open invoice is
        marked paid.

        Raises:
            NotFoundError: If the payment does not exist
            ValidationError: If no approver is known
            StateError: If the payment is already approved
        """
        approver = approver_id if approver_id is not None else self.context.actor_id
        if approver is None:
            raise ValidationError("Approver is required")

        payment = self.get_payment(payment_id)
        if payment.status == PaymentStatus.APPROVED:
            raise StateError(f"Payment {payment_id} is already approved", code="already_approved")

        try:
            payment.status = PaymentStatus.APPROVED
            payment.approved_by = approver
            payment.approved_at = self.context.now()
            self.db.flush()

            invoice = payment.invoice
            paid_in_full = False
            if invoice.status in (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE):
                approved_total = self._approved_total(invoice.id)
                if approved_total >= invoice.amount_due:
                    invoice.status = InvoiceStatus.PAID
                    paid_in_full = True

            AuditService.log(
                self.db,
                "payment",
                payment.id,
                "approve",
                approver,
                {"invoice_id": invoice.id, "invoice_paid": paid_in_full},
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to approve payment %d", payment_id, exc_info=True)
            raise

        self.db.refresh(payment)
        logger.info(
            "Payment %d approved by %d%s",
            payment_id,
            approver,
            f"; invoice {invoice.id} paid" if paid_in_full else "",
        )
        return payment

    def _approved_total(self, invoice_id: int) -> Decimal:
        result = self.db.execute(
            select(func.sum(Payment.amount)).where(
                (Payment.invoice_id == invoice_id) & (Payment.status == PaymentStatus.APPROVED)
            )
        ).scalar()
        return to_decimal(result) if result is not None else ZERO


__all__ = ["PaymentService"]
