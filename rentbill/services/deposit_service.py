"""Deposit ledger operations for contracts."""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from rentbill.errors import StateError, ValidationError
from rentbill.models.contract import Contract
from rentbill.models.deposit_transaction import DepositTransaction, DepositTransactionType
from rentbill.models.invoice import Invoice
from rentbill.services.billing_engine import ZERO, MoveOutSettlement, to_decimal

logger = logging.getLogger(__name__)


class DepositService:
    """Service for deposit movements.

    Methods only stage changes in the session; the calling service owns the
    transaction and commits together with the invoice.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def record_top_up(
        self,
        contract: Contract,
        amount: Decimal,
        invoice: Invoice | None = None,
    ) -> DepositTransaction:
        """Collect part of the deposit together with a monthly invoice.

        Raises:
            ValidationError: If amount is not positive
        """
        amount = to_decimal(amount, "Deposit amount")
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive")

        contract.deposit = to_decimal(contract.deposit or ZERO) + amount
        entry = DepositTransaction(
            contract=contract,
            invoice_id=invoice.id if invoice is not None else None,
            transaction_type=DepositTransactionType.TOP_UP,
            amount=amount,
            description=f"Deposit top-up for {invoice.month_year}" if invoice else "Deposit top-up",
        )
        self.db.add(entry)

        logger.info(
            "Deposit top-up %s for contract %d (held now %s)",
            amount,
            contract.id,
            contract.deposit,
        )
        return entry

    def record_settlement(
        self,
        contract: Contract,
        settlement: MoveOutSettlement,
        invoice: Invoice | None = None,
    ) -> list[DepositTransaction]:
        """Release the deposit at move-out: forfeit what covers deductions, refund the rest."""
        entries = []
        invoice_id = invoice.id if invoice is not None else None

        forfeited = min(settlement.deposit, settlement.total_deductions)
        if forfeited > 0:
            entries.append(
                DepositTransaction(
                    contract=contract,
                    invoice_id=invoice_id,
                    transaction_type=DepositTransactionType.FORFEIT,
                    amount=forfeited,
                    description="Deposit applied to move-out deductions",
                )
            )
        if settlement.amount_refunded > 0:
            entries.append(
                DepositTransaction(
                    contract=contract,
                    invoice_id=invoice_id,
                    transaction_type=DepositTransactionType.REFUND,
                    amount=settlement.amount_refunded,
                    description="Deposit refunded at move-out",
                )
            )

        self.db.add_all(entries)
        contract.deposit = ZERO

        logger.info(
            "Move-out settlement for contract %d: deposit=%s deductions=%s refund=%s",
            contract.id,
            settlement.deposit,
            settlement.total_deductions,
            settlement.refund,
        )
        return entries

    def reverse_for_invoice(self, invoice: Invoice) -> list[DepositTransaction]:
        """Undo the deposit movements booked with an invoice that is being deleted.

        Top-ups are taken back out of the deposit. A move-out statement puts
        the deposit held at move-out back on the contract and reopens it.
        The ledger rows of the invoice are removed.

        Raises:
            StateError: If the contract has moved on since (settled after the
                top-up, or the room already has a new active contract)
        """
        contract = invoice.contract
        entries = list(
            self.db.execute(
                select(DepositTransaction)
                .where(DepositTransaction.invoice_id == invoice.id)
                .order_by(DepositTransaction.id)
            ).scalars()
        )

        if invoice.is_move_out:
            successor = self.db.execute(
                select(Contract.id).where(
                    Contract.room_id == contract.room_id,
                    Contract.is_active == True,  # noqa: E712
                    Contract.id != contract.id,
                )
            ).first()
            if successor is not None:
                raise StateError(
                    f"Room {contract.room_id} has a new active contract; "
                    f"move-out statement {invoice.id} cannot be deleted",
                    code="contract_replaced",
                )
            contract.deposit = to_decimal(invoice.deposit_held or ZERO)
            contract.is_active = True
            contract.end_date = None
        else:
            topped_up = sum(
                (e.amount for e in entries if e.transaction_type == DepositTransactionType.TOP_UP),
                ZERO,
            )
            if topped_up > 0 and not contract.is_active:
                raise StateError(
                    f"Deposit of contract {contract.id} was settled at move-out; "
                    f"invoice {invoice.id} cannot be deleted",
                    code="deposit_settled",
                )
            contract.deposit = to_decimal(contract.deposit or ZERO) - topped_up

        for entry in entries:
            self.db.delete(entry)

        if entries or invoice.is_move_out:
            logger.info(
                "Reversed %d deposit movements of invoice %d; contract %d holds %s",
                len(entries),
                invoice.id,
                contract.id,
                contract.deposit,
            )
        return entries

    def list_transactions(self, contract_id: int) -> list[DepositTransaction]:
        stmt = (
            select(DepositTransaction)
            .where(DepositTransaction.contract_id == contract_id)
            .order_by(DepositTransaction.id)
        )
        return list(self.db.execute(stmt).scalars().all())


__all__ = ["DepositService"]
