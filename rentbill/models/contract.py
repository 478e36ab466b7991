"""Lease contract ORM model."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentbill.models import Base, BaseModel


class Contract(Base, BaseModel):
    """Model representing a lease between a tenant and a room.

    Billing reads the active contract of a room to decide whether an invoice
    can be issued and which deposit is on file for move-out settlement.
    Contract creation and termination are owned by contract management,
    except for the deactivation that happens on a move-out statement.
    """

    __tablename__ = "contracts"

    room_id: Mapped[int] = mapped_column(
        ForeignKey("rooms.id"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    deposit: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Deposit currently held for this contract",
    )
    rent_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Monthly rent agreed in the contract",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )

    # Relationships
    room: Mapped["Room"] = relationship(  # noqa: F821
        "Room",
        back_populates="contracts",
    )
    tenant: Mapped["Tenant"] = relationship(  # noqa: F821
        "Tenant",
        back_populates="contracts",
    )
    invoices: Mapped[list["Invoice"]] = relationship(  # noqa: F821
        "Invoice",
        back_populates="contract",
    )
    deposit_transactions: Mapped[list["DepositTransaction"]] = relationship(  # noqa: F821
        "DepositTransaction",
        back_populates="contract",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_contract_room_active", "room_id", "is_active"),)

    def __repr__(self) -> str:
        return (
            f"<Contract(id={self.id}, room_id={self.room_id}, tenant_id={self.tenant_id}, "
            f"deposit={self.deposit}, is_active={self.is_active})>"
        )


__all__ = ["Contract"]
