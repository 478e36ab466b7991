"""Service for room meter readings: previous-reading lookup, capture and correction."""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rentbill.errors import ConflictError, NotFoundError, StateError
from rentbill.models.invoice import Invoice, InvoiceItemType, InvoiceStatus
from rentbill.models.meter_reading import MeterReading
from rentbill.models.room import Room
from rentbill.services.audit_service import AuditService
from rentbill.services.billing_engine import (
    Rates,
    Readings,
    calculate_charges,
    parse_month_year,
    sum_items,
    validate_reading,
)
from rentbill.services.context import RequestContext

logger = logging.getLogger(__name__)

OPEN_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)


class MeterReadingService:
    """Service for managing meter readings per room and billing period."""

    def __init__(self, db_session: Session, context: RequestContext | None = None):
        self.db = db_session
        self.context = context or RequestContext.system()

    def get_room(self, room_id: int) -> Room:
        """Get room by ID.

        Raises:
            NotFoundError: If the room does not exist
        """
        room = self.db.get(Room, room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    def get_reading(self, reading_id: int) -> MeterReading:
        reading = self.db.get(MeterReading, reading_id)
        if reading is None:
            raise NotFoundError(f"Meter reading {reading_id} not found")
        return reading

    def get_reading_for_period(self, room_id: int, month_year: str) -> MeterReading | None:
        stmt = select(MeterReading).where(
            MeterReading.room_id == room_id,
            MeterReading.month_year == month_year,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_previous_readings(self, room_id: int, month_year: str) -> Readings:
        """Get the readings a new reading for month_year starts from.

        Uses the current readings of the most recent earlier period recorded
        for the room; a room with no earlier reading starts from zero.

        Raises:
            ValidationError: If month_year is malformed
        """
        parse_month_year(month_year)
        stmt = (
            select(MeterReading)
            .where(
                MeterReading.room_id == room_id,
                MeterReading.month_year < month_year,
            )
            .order_by(MeterReading.month_year.desc())
            .limit(1)
        )
        previous = self.db.execute(stmt).scalar_one_or_none()
        if previous is None:
            return Readings(water=0, elec=0)
        return Readings(water=previous.water_reading, elec=previous.elec_reading)

    def list_readings(
        self,
        room_id: int | None = None,
        month_year: str | None = None,
    ) -> list[MeterReading]:
        """List readings, newest period first."""
        stmt = select(MeterReading)
        if room_id is not None:
            stmt = stmt.where(MeterReading.room_id == room_id)
        if month_year is not None:
            stmt = stmt.where(MeterReading.month_year == month_year)
        stmt = stmt.order_by(MeterReading.month_year.desc(), MeterReading.room_id)
        return list(self.db.execute(stmt).scalars().all())

    def record_reading(
        self,
        room_id: int,
        month_year: str,
        previous: Readings,
        current: Readings,
        recorded_by: int | None = None,
        reading_date: date | None = None,
    ) -> MeterReading:
        """Stage a new reading in the caller's transaction.

        Raises:
            ConflictError: If the room already has a reading for month_year
        """
        if self.get_reading_for_period(room_id, month_year) is not None:
            raise ConflictError(f"Meter reading for room {room_id} in {month_year} already exists")

        reading = MeterReading(
            room_id=room_id,
            month_year=month_year,
            reading_date=reading_date or self.context.today(),
            prev_water_reading=previous.water,
            prev_elec_reading=previous.elec,
            water_reading=current.water,
            elec_reading=current.elec,
            recorded_by=recorded_by if recorded_by is not None else self.context.actor_id,
        )
        self.db.add(reading)
        self.db.flush()
        return reading

    def correct_reading(
        self,
        reading_id: int,
        water_reading: int,
        elec_reading: int,
    ) -> MeterReading:
        """Revise the current readings of the latest reading for a room.

        Previous readings stay as recorded. If the invoice built from this
        reading is still open (pending/overdue), its water and electric items
        and its total are recomputed.

        Raises:
            NotFoundError: If the reading does not exist
            ValidationError: If a new value is below the previous reading
            StateError: If a later period already has a reading for the room
        """
        reading = self.get_reading(reading_id)
        validate_reading(water_reading, "Water reading")
        validate_reading(elec_reading, "Electricity reading")

        later = self.db.execute(
            select(MeterReading.id).where(
                MeterReading.room_id == reading.room_id,
                MeterReading.month_year > reading.month_year,
            )
        ).first()
        if later is not None:
            raise StateError(
                f"Reading {reading_id} ({reading.month_year}) is followed by a later reading "
                "and can no longer be corrected"
            )

        room = self.get_room(reading.room_id)
        calculation = calculate_charges(
            previous=Readings(water=reading.prev_water_reading, elec=reading.prev_elec_reading),
            current=Readings(water=water_reading, elec=elec_reading),
            rates=Rates(water=room.water_rate, elec=room.elec_rate),
            base_rent=room.base_rent,
        )

        old_values = {"water_reading": reading.water_reading, "elec_reading": reading.elec_reading}
        try:
            reading.water_reading = water_reading
            reading.elec_reading = elec_reading
            if self.context.actor_id is not None:
                reading.recorded_by = self.context.actor_id

            invoice = self.db.execute(
                select(Invoice).where(Invoice.meter_reading_id == reading.id)
            ).scalar_one_or_none()
            if invoice is not None:
                if invoice.status in OPEN_STATUSES and not invoice.is_move_out:
                    self._reprice_utilities(invoice, calculation)
                else:
                    logger.warning(
                        "Reading %d corrected but invoice %d is %s; invoice left unchanged",
                        reading.id,
                        invoice.id,
                        invoice.status.value,
                    )

            AuditService.log(
                self.db,
                "meter_reading",
                reading.id,
                "correct",
                self.context.actor_id,
                {
                    "before": old_values,
                    "after": {"water_reading": water_reading, "elec_reading": elec_reading},
                },
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to correct meter reading %d", reading_id, exc_info=True)
            raise

        self.db.refresh(reading)
        logger.info(
            "Corrected meter reading %d: water %s -> %s, elec %s -> %s",
            reading.id,
            old_values["water_reading"],
            water_reading,
            old_values["elec_reading"],
            elec_reading,
        )
        return reading

    def _reprice_utilities(self, invoice: Invoice, calculation) -> None:
        for item in invoice.items:
            if item.item_type == InvoiceItemType.WATER:
                item.amount = calculation.costs.water
                item.description = utility_description(
                    "Water", calculation.usage.water, calculation.rates.water
                )
            elif item.item_type == InvoiceItemType.ELECTRIC:
                item.amount = calculation.costs.elec
                item.description = utility_description(
                    "Electricity", calculation.usage.elec, calculation.rates.elec
                )
        invoice.total_amount = sum_items(item.amount for item in invoice.items)


def utility_description(label: str, usage: int, rate) -> str:
    """Line item text for a metered utility (e.g. 'Water 10 units x 18.00')."""
    return f"{label} {usage} units x {rate:.2f}"


__all__ = ["MeterReadingService", "utility_description", "OPEN_STATUSES"]
