"""Payment ORM model for tenant payments against invoices."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentbill.models import Base, BaseModel


class PaymentStatus(str, Enum):
    """Approval status of a payment."""

    PENDING = "pending"
    APPROVED = "approved"


class Payment(Base, BaseModel):
    """Model representing a payment submitted for an invoice.

    A payment is approved at most once and never goes back to pending.
    """

    __tablename__ = "payments"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    slip_image_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Reference to the uploaded payment proof",
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    invoice: Mapped["Invoice"] = relationship(  # noqa: F821
        "Invoice",
        back_populates="payments",
    )

    __table_args__ = (Index("idx_payment_invoice_status", "invoice_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, invoice_id={self.invoice_id}, amount={self.amount}, "
            f"status={self.status})>"
        )


__all__ = ["Payment", "PaymentStatus"]
