"""Invoice and invoice line item ORM models."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentbill.models import Base, BaseModel


class InvoiceStatus(str, Enum):
    """Lifecycle status of an invoice."""

    PENDING = "pending"
    """Issued and awaiting payment"""

    PAID = "paid"
    """Settled (terminal)"""

    OVERDUE = "overdue"
    """Unpaid past the due date"""

    CANCELLED = "cancelled"
    """Voided by staff (terminal)"""


class InvoiceItemType(str, Enum):
    """Kinds of invoice line items."""

    RENT = "rent"
    WATER = "water"
    ELECTRIC = "electric"
    LATE_FEE = "late_fee"
    CLEANING = "cleaning"
    DAMAGE = "damage"
    OTHER = "other"


class Invoice(Base, BaseModel):
    """Model representing a monthly invoice for a contract.

    total_amount is kept equal to the sum of the item amounts by the services
    that add or change items. A move-out invoice is a settlement statement:
    deposit_held and refund_amount record the deposit math next to the items.
    """

    __tablename__ = "invoices"

    contract_id: Mapped[int] = mapped_column(
        ForeignKey("contracts.id"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[int] = mapped_column(
        ForeignKey("rooms.id"),
        nullable=False,
        index=True,
        comment="Denormalized from the contract for listing",
    )
    meter_reading_id: Mapped[int | None] = mapped_column(
        ForeignKey("meter_readings.id"),
        nullable=True,
        comment="Reading the utility items were computed from",
    )
    month_year: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        index=True,
        comment="Billing period key YYYY-MM",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus),
        nullable=False,
        default=InvoiceStatus.PENDING,
        index=True,
    )
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Move-out settlement
    is_move_out: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deposit_held: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Deposit on file at move-out",
    )
    refund_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Deposit minus deductions; negative when the tenant owes",
    )

    # Relationships
    contract: Mapped["Contract"] = relationship(  # noqa: F821
        "Contract",
        back_populates="invoices",
    )
    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )
    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("room_id", "month_year", name="uq_invoice_room_period"),
        Index("idx_invoice_status_period", "status", "month_year"),
    )

    def items_of_type(self, item_type: InvoiceItemType) -> list["InvoiceItem"]:
        return [item for item in self.items if item.item_type == item_type]

    @property
    def amount_due(self) -> Decimal:
        """What the tenant has to pay on this invoice.

        A move-out statement is paid from the deposit first; the tenant owes
        only the part of the total the deposit does not cover.
        """
        if not self.is_move_out:
            return self.total_amount
        uncovered = self.total_amount - (self.deposit_held or Decimal("0"))
        return max(uncovered, Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"<Invoice(id={self.id}, contract_id={self.contract_id}, month_year={self.month_year}, "
            f"total_amount={self.total_amount}, status={self.status})>"
        )


class InvoiceItem(Base, BaseModel):
    """One itemized component of an invoice total."""

    __tablename__ = "invoice_items"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_type: Mapped[InvoiceItemType] = mapped_column(
        SQLEnum(InvoiceItemType),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    def __repr__(self) -> str:
        return (
            f"<InvoiceItem(id={self.id}, invoice_id={self.invoice_id}, "
            f"item_type={self.item_type}, amount={self.amount})>"
        )


__all__ = ["Invoice", "InvoiceItem", "InvoiceItemType", "InvoiceStatus"]
