"""Billing previews and invoice creation from meter readings."""

import logging
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rentbill.config import settings
from rentbill.errors import (
    BillingError,
    ConflictError,
    NoActiveContractError,
    NotFoundError,
    ValidationError,
)
from rentbill.models.contract import Contract
from rentbill.models.invoice import Invoice, InvoiceItem, InvoiceItemType, InvoiceStatus
from rentbill.services.audit_service import AuditService
from rentbill.services.billing_engine import (
    Calculation,
    MoveOutSettlement,
    Rates,
    Readings,
    calculate_charges,
    due_date_for,
    non_negative_amount,
    parse_month_year,
    settle_move_out,
    sum_items,
)
from rentbill.services.context import RequestContext
from rentbill.services.deposit_service import DepositService
from rentbill.services.meter_reading_service import MeterReadingService, utility_description

logger = logging.getLogger(__name__)


class BillingPreview(NamedTuple):
    """Side-effect-free preview of a period's charges for a room."""

    room_id: int
    month_year: str
    calculation: Calculation
    contract_id: int | None
    deposit: Decimal | None


class BillingService:
    """Service turning meter readings into invoices.

    calculate() is a pure read; create_invoice() persists the reading, the
    invoice and its items in one transaction.
    """

    def __init__(self, db_session: Session, context: RequestContext | None = None):
        self.db = db_session
        self.context = context or RequestContext.system()
        self.readings = MeterReadingService(db_session, self.context)
        self.deposits = DepositService(db_session)

    def get_active_contract(self, room_id: int) -> Contract | None:
        stmt = (
            select(Contract)
            .where(Contract.room_id == room_id, Contract.is_active == True)  # noqa: E712
            .order_by(Contract.start_date.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def calculate(
        self,
        room_id: int,
        current_water: int,
        current_elec: int,
        month_year: str,
    ) -> BillingPreview:
        """Preview usage, costs and total for a room and period.

        Works for rooms without an active contract; the preview then carries
        no contract or deposit.

        Raises:
            NotFoundError: If the room does not exist
            ValidationError: If the period is malformed or a reading regresses
        """
        parse_month_year(month_year)
        room = self.readings.get_room(room_id)
        previous = self.readings.get_previous_readings(room_id, month_year)

        calculation = calculate_charges(
            previous=previous,
            current=Readings(water=current_water, elec=current_elec),
            rates=Rates(water=room.water_rate, elec=room.elec_rate),
            base_rent=room.base_rent,
        )

        contract = self.get_active_contract(room_id)
        return BillingPreview(
            room_id=room_id,
            month_year=month_year,
            calculation=calculation,
            contract_id=contract.id if contract else None,
            deposit=contract.deposit if contract else None,
        )

    def create_invoice(
        self,
        contract_id: int,
        room_id: int,
        month_year: str,
        water_reading: int,
        elec_reading: int,
        recorded_by: int | None = None,
        deposit_amount: Decimal | int = 0,
        move_out: bool = False,
        cleaning_fee: Decimal | int = 0,
        damage_fee: Decimal | int = 0,
    ) -> Invoice:
        """Record the period's reading and issue the invoice for it.

        Items are always rent, water and electric (zero usage gives a zero
        row). A positive deposit_amount is booked on the deposit ledger, not
        as an item. With move_out, cleaning and damage items are added, the
        deposit is settled against the total and the contract is closed; the
        invoice is then a settlement statement, paid from the deposit unless
        the tenant still owes money.

        Raises:
            NotFoundError: Unknown room or contract
            NoActiveContractError: The room has no active contract
            ValidationError: Bad amounts, period or regressing readings
            ConflictError: The room already has a reading or invoice for the period
        """
        deposit_amount = non_negative_amount(deposit_amount, "Deposit amount")
        cleaning_fee = non_negative_amount(cleaning_fee, "Cleaning fee")
        damage_fee = non_negative_amount(damage_fee, "Damage fee")
        if move_out and deposit_amount > 0:
            raise ValidationError("A deposit top-up cannot be collected on a move-out statement")
        if not move_out and (cleaning_fee > 0 or damage_fee > 0):
            raise ValidationError("Cleaning and damage fees apply only to move-out statements")

        preview = self.calculate(room_id, water_reading, elec_reading, month_year)
        contract = self._resolve_contract(contract_id, room_id)
        if self._invoice_exists(room_id, month_year):
            raise ConflictError(f"Invoice for room {room_id} in {month_year} already exists")

        calculation = preview.calculation
        actor_id = recorded_by if recorded_by is not None else self.context.actor_id

        try:
            reading = self.readings.record_reading(
                room_id=room_id,
                month_year=month_year,
                previous=calculation.prev_readings,
                current=calculation.current_readings,
                recorded_by=actor_id,
            )

            items = [
                InvoiceItem(
                    item_type=InvoiceItemType.RENT,
                    description=f"Rent {month_year}",
                    amount=calculation.costs.rent,
                ),
                InvoiceItem(
                    item_type=InvoiceItemType.WATER,
                    description=utility_description(
                        "Water", calculation.usage.water, calculation.rates.water
                    ),
                    amount=calculation.costs.water,
                ),
                InvoiceItem(
                    item_type=InvoiceItemType.ELECTRIC,
                    description=utility_description(
                        "Electricity", calculation.usage.elec, calculation.rates.elec
                    ),
                    amount=calculation.costs.elec,
                ),
            ]

            settlement: MoveOutSettlement | None = None
            if move_out:
                settlement = settle_move_out(
                    calculation.total_amount, cleaning_fee, damage_fee, contract.deposit
                )
                items.append(
                    InvoiceItem(
                        item_type=InvoiceItemType.CLEANING,
                        description="Move-out cleaning",
                        amount=settlement.cleaning_fee,
                    )
                )
                items.append(
                    InvoiceItem(
                        item_type=InvoiceItemType.DAMAGE,
                        description="Move-out damages",
                        amount=settlement.damage_fee,
                    )
                )

            invoice = Invoice(
                contract_id=contract.id,
                room_id=room_id,
                meter_reading_id=reading.id,
                month_year=month_year,
                status=InvoiceStatus.PENDING,
                issue_date=self.context.today(),
                due_date=due_date_for(month_year, settings.invoice_due_day),
                items=items,
            )
            invoice.total_amount = sum_items(item.amount for item in items)

            if settlement is not None:
                invoice.is_move_out = True
                invoice.deposit_held = settlement.deposit
                invoice.refund_amount = settlement.refund
                if not settlement.tenant_owes:
                    invoice.status = InvoiceStatus.PAID

            self.db.add(invoice)
            self.db.flush()

            if settlement is not None:
                self.deposits.record_settlement(contract, settlement, invoice)
                contract.is_active = False
                contract.end_date = self.context.today()
            elif deposit_amount > 0:
                self.deposits.record_top_up(contract, deposit_amount, invoice)

            AuditService.log(
                self.db,
                "invoice",
                invoice.id,
                "create",
                actor_id,
                {
                    "month_year": month_year,
                    "total_amount": str(invoice.total_amount),
                    "move_out": move_out,
                    "deposit_amount": str(deposit_amount),
                },
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning("Duplicate billing for room %d in %s rejected", room_id, month_year)
            raise ConflictError(
                f"Invoice or reading for room {room_id} in {month_year} already exists"
            ) from None
        except (BillingError, SQLAlchemyError):
            self.db.rollback()
            raise

        self.db.refresh(invoice)
        logger.info(
            "Created %s %d for room %d %s: total=%s",
            "move-out statement" if move_out else "invoice",
            invoice.id,
            room_id,
            month_year,
            invoice.total_amount,
        )
        return invoice

    def _resolve_contract(self, contract_id: int, room_id: int) -> Contract:
        contract = self.db.get(Contract, contract_id)
        if contract is None:
            raise NotFoundError(f"Contract {contract_id} not found")
        if contract.room_id != room_id:
            raise ValidationError(f"Contract {contract_id} does not belong to room {room_id}")
        if not contract.is_active:
            raise NoActiveContractError(room_id)
        return contract

    def _invoice_exists(self, room_id: int, month_year: str) -> bool:
        stmt = select(Invoice.id).where(Invoice.room_id == room_id, Invoice.month_year == month_year)
        return self.db.execute(stmt).first() is not None


__all__ = ["BillingService", "BillingPreview"]
