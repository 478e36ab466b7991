"""Invoice lifecycle: status transitions, late fees and deletion."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from rentbill.config import settings
from rentbill.errors import BillingError, ConflictError, NotFoundError, StateError, ValidationError
from rentbill.models.invoice import Invoice, InvoiceItem, InvoiceItemType, InvoiceStatus
from rentbill.models.meter_reading import MeterReading
from rentbill.services.audit_service import AuditService
from rentbill.services.billing_engine import LateFee, compute_late_fee, parse_month_year, sum_items
from rentbill.services.context import RequestContext
from rentbill.services.deposit_service import DepositService

logger = logging.getLogger(__name__)

# Invoices in these states can no longer become late
SETTLED_STATUSES = (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)


@dataclass
class BulkStatusResult:
    """Per-invoice outcome of a bulk status update."""

    status: InvoiceStatus
    succeeded: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def updated_count(self) -> int:
        return len(self.succeeded)


def coerce_status(value: InvoiceStatus | str) -> InvoiceStatus:
    """Convert a status name into InvoiceStatus.

    Raises:
        ValidationError: If the value is not a known status
    """
    if isinstance(value, InvoiceStatus):
        return value
    try:
        return InvoiceStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in InvoiceStatus)
        raise ValidationError(f"Invalid invoice status '{value}', expected one of: {allowed}") from None


def refresh_total(invoice: Invoice) -> Decimal:
    """Set total_amount to the exact sum of the invoice items."""
    invoice.total_amount = sum_items(item.amount for item in invoice.items)
    return invoice.total_amount


class InvoiceService:
    """Service owning invoice status and late-fee rules.

    Every status edge may be set manually by staff; pending -> overdue is the
    only transition the system makes on its own (mark_overdue_invoices,
    apply_late_fee).
    """

    def __init__(self, db_session: Session, context: RequestContext | None = None):
        self.db = db_session
        self.context = context or RequestContext.system()

    def get_invoice(self, invoice_id: int) -> Invoice:
        """Get invoice with items.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        stmt = (
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(Invoice.id == invoice_id)
        )
        invoice = self.db.execute(stmt).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def list_invoices(
        self,
        status: InvoiceStatus | str | None = None,
        month_year: str | None = None,
    ) -> list[Invoice]:
        """List invoices, newest period first, optionally filtered."""
        stmt = select(Invoice).options(selectinload(Invoice.items))
        if status:
            stmt = stmt.where(Invoice.status == coerce_status(status))
        if month_year:
            parse_month_year(month_year)
            stmt = stmt.where(Invoice.month_year == month_year)
        stmt = stmt.order_by(Invoice.month_year.desc(), Invoice.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def list_invoices_for_contract(self, contract_id: int) -> list[Invoice]:
        stmt = (
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(Invoice.contract_id == contract_id)
            .order_by(Invoice.month_year.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def update_status(self, invoice_id: int, new_status: InvoiceStatus | str) -> Invoice:
        """Set invoice status (staff override, any state to any state).

        Raises:
            NotFoundError: If the invoice does not exist
            ValidationError: If the status is unknown
        """
        status = coerce_status(new_status)
        invoice = self.get_invoice(invoice_id)
        old_status = invoice.status

        try:
            self._set_status(invoice, status)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to update status of invoice %d", invoice_id, exc_info=True)
            raise

        logger.info(
            "Invoice %d status %s -> %s (actor=%s)",
            invoice_id,
            old_status.value,
            status.value,
            self.context.actor_id,
        )
        return invoice

    def bulk_update_status(
        self,
        invoice_ids: list[int],
        new_status: InvoiceStatus | str,
    ) -> BulkStatusResult:
        """Apply one status to many invoices, each in its own transaction.

        A failing id does not stop the batch; the result says which ids were
        updated and why the others were not.

        Raises:
            ValidationError: If the id list is empty or the status is unknown
        """
        status = coerce_status(new_status)
        if not invoice_ids:
            raise ValidationError("No invoices selected")

        result = BulkStatusResult(status=status)
        for invoice_id in dict.fromkeys(invoice_ids):
            invoice = self.db.get(Invoice, invoice_id)
            if invoice is None:
                result.failed[invoice_id] = f"Invoice {invoice_id} not found"
                continue
            try:
                self._set_status(invoice, status)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error("Bulk status update failed for invoice %d: %s", invoice_id, e)
                result.failed[invoice_id] = "Failed to update invoice"
                continue
            result.succeeded.append(invoice_id)

        logger.info(
            "Bulk status %s: %d updated, %d failed",
            status.value,
            len(result.succeeded),
            len(result.failed),
        )
        return result

    def delete_invoice(self, invoice_id: int) -> None:
        """Hard-delete an invoice, its items, payments and the reading it was built from.

        Dropping the reading lets the period be billed again. Deposit movements
        booked with the invoice are reversed in the same transaction.

        Raises:
            NotFoundError: If the invoice does not exist
            StateError: If its deposit movements can no longer be reversed
        """
        invoice = self.get_invoice(invoice_id)
        snapshot = {
            "contract_id": invoice.contract_id,
            "room_id": invoice.room_id,
            "month_year": invoice.month_year,
            "total_amount": str(invoice.total_amount),
            "status": invoice.status.value,
        }

        try:
            reversed_entries = DepositService(self.db).reverse_for_invoice(invoice)
            if reversed_entries:
                snapshot["deposit_reversed"] = [
                    {"type": e.transaction_type.value, "amount": str(e.amount)} for e in reversed_entries
                ]
            reading = (
                self.db.get(MeterReading, invoice.meter_reading_id)
                if invoice.meter_reading_id is not None
                else None
            )
            self.db.delete(invoice)
            self.db.flush()
            if reading is not None:
                self.db.delete(reading)
            AuditService.log(
                self.db, "invoice", invoice_id, "delete", self.context.actor_id, snapshot
            )
            self.db.commit()
        except BillingError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to delete invoice %d", invoice_id, exc_info=True)
            raise

        logger.info("Deleted invoice %d (%s)", invoice_id, snapshot["month_year"])

    def compute_late_fee(self, invoice: Invoice | int) -> LateFee | None:
        """Late fee owed on an invoice today, or None if it is not late.

        Paid and cancelled invoices are never late.
        """
        if not isinstance(invoice, Invoice):
            invoice = self.get_invoice(invoice)
        if invoice.status in SETTLED_STATUSES:
            return None
        return compute_late_fee(
            invoice.month_year,
            self.context.today(),
            per_day=settings.late_fee_per_day,
            due_day=settings.invoice_due_day,
        )

    def apply_late_fee(self, invoice_id: int) -> tuple[Invoice, LateFee]:
        """Add a late_fee item to an overdue invoice and recompute its total.

        A pending invoice found late is moved to overdue.

        Raises:
            NotFoundError: If the invoice does not exist
            ConflictError: If the invoice already carries a late fee
            StateError: If the invoice is not late (or is paid/cancelled)
        """
        invoice = self.get_invoice(invoice_id)
        if invoice.items_of_type(InvoiceItemType.LATE_FEE):
            logger.warning("Late fee already applied to invoice %d", invoice_id)
            raise ConflictError(f"Late fee already applied to invoice {invoice_id}")

        fee = self.compute_late_fee(invoice)
        if fee is None:
            raise StateError(
                f"Invoice {invoice_id} is not overdue (status {invoice.status.value})",
                code="not_overdue",
            )

        try:
            invoice.items.append(
                InvoiceItem(
                    item_type=InvoiceItemType.LATE_FEE,
                    description=f"Late fee {fee.days_late} days after {fee.due_date.isoformat()}",
                    amount=fee.late_fee,
                )
            )
            refresh_total(invoice)
            if invoice.status == InvoiceStatus.PENDING:
                invoice.status = InvoiceStatus.OVERDUE
            AuditService.log(
                self.db,
                "invoice",
                invoice.id,
                "late_fee",
                self.context.actor_id,
                {"days_late": fee.days_late, "late_fee": str(fee.late_fee)},
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to apply late fee to invoice %d", invoice_id, exc_info=True)
            raise

        self.db.refresh(invoice)
        logger.info(
            "Applied late fee %s (%d days) to invoice %d, total now %s",
            fee.late_fee,
            fee.days_late,
            invoice_id,
            invoice.total_amount,
        )
        return invoice, fee

    def mark_overdue_invoices(self) -> list[int]:
        """Move pending invoices past their due date to overdue.

        Returns:
            IDs of invoices that changed status
        """
        pending = self.db.execute(
            select(Invoice).where(Invoice.status == InvoiceStatus.PENDING)
        ).scalars().all()

        marked = []
        try:
            for invoice in pending:
                if self.compute_late_fee(invoice) is not None:
                    self._set_status(invoice, InvoiceStatus.OVERDUE)
                    marked.append(invoice.id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Overdue sweep failed", exc_info=True)
            raise

        logger.info("Marked %d invoices overdue", len(marked))
        return marked

    def _set_status(self, invoice: Invoice, status: InvoiceStatus) -> None:
        old_status = invoice.status
        invoice.status = status
        AuditService.log(
            self.db,
            "invoice",
            invoice.id,
            "status",
            self.context.actor_id,
            {"from": old_status.value, "to": status.value},
        )


__all__ = ["InvoiceService", "BulkStatusResult", "coerce_status", "refresh_total", "SETTLED_STATUSES"]
