"""Deposit ledger ORM model."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentbill.models import Base, BaseModel


class DepositTransactionType(str, Enum):
    """Kinds of deposit movements."""

    TOP_UP = "top_up"
    """Partial deposit collected together with a monthly invoice"""

    REFUND = "refund"
    """Deposit returned to the tenant at move-out"""

    FORFEIT = "forfeit"
    """Deposit kept to cover move-out deductions"""


class DepositTransaction(Base, BaseModel):
    """Ledger entry moving money into or out of a contract's deposit.

    Deposits are never billed as invoice items; they are tracked here.
    """

    __tablename__ = "deposit_transactions"

    contract_id: Mapped[int] = mapped_column(
        ForeignKey("contracts.id"),
        nullable=False,
        index=True,
    )
    invoice_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        comment="Invoice the movement was recorded with",
    )
    transaction_type: Mapped[DepositTransactionType] = mapped_column(
        SQLEnum(DepositTransactionType),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    contract: Mapped["Contract"] = relationship(  # noqa: F821
        "Contract",
        back_populates="deposit_transactions",
    )

    def __repr__(self) -> str:
        return (
            f"<DepositTransaction(id={self.id}, contract_id={self.contract_id}, "
            f"type={self.transaction_type}, amount={self.amount})>"
        )


__all__ = ["DepositTransaction", "DepositTransactionType"]
