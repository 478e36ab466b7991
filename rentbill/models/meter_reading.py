"""Meter reading ORM model: one water/electricity snapshot per room per period."""

from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentbill.models import Base, BaseModel


class MeterReading(Base, BaseModel):
    """Model representing the meter readings captured for a room in a period.

    Previous readings are copied from the prior period's current readings when
    the row is created and never change afterwards. Only the current readings
    may be revised by a correction edit.
    """

    __tablename__ = "meter_readings"

    room_id: Mapped[int] = mapped_column(
        ForeignKey("rooms.id"),
        nullable=False,
        index=True,
    )
    month_year: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        comment="Billing period key YYYY-MM",
    )
    reading_date: Mapped[date] = mapped_column(Date, nullable=False)

    prev_water_reading: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prev_elec_reading: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    water_reading: Mapped[int] = mapped_column(Integer, nullable=False)
    elec_reading: Mapped[int] = mapped_column(Integer, nullable=False)

    recorded_by: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Staff user who captured the reading",
    )

    room: Mapped["Room"] = relationship(  # noqa: F821
        "Room",
        back_populates="meter_readings",
    )

    __table_args__ = (
        UniqueConstraint("room_id", "month_year", name="uq_meter_reading_room_period"),
    )

    @property
    def water_usage(self) -> int:
        return self.water_reading - self.prev_water_reading

    @property
    def elec_usage(self) -> int:
        return self.elec_reading - self.prev_elec_reading

    def __repr__(self) -> str:
        return (
            f"<MeterReading(id={self.id}, room_id={self.room_id}, month_year={self.month_year}, "
            f"water={self.prev_water_reading}->{self.water_reading}, "
            f"elec={self.prev_elec_reading}->{self.elec_reading})>"
        )


__all__ = ["MeterReading"]
