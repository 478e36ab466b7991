"""Room ORM model holding the rate schedule the billing engine reads."""

from decimal import Decimal

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentbill.models import Base, BaseModel


class Room(Base, BaseModel):
    """Model representing a rentable room/house.

    Rates are maintained by room management; billing only reads them.
    """

    __tablename__ = "rooms"

    house_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="House or room number shown to staff",
    )
    building: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Building name",
    )

    # Rate schedule
    base_rent: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Rent per billing period",
    )
    water_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Price per water meter unit",
    )
    elec_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Price per electricity meter unit (kWh)",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )

    # Relationships
    contracts: Mapped[list["Contract"]] = relationship(  # noqa: F821
        "Contract",
        back_populates="room",
    )
    meter_readings: Mapped[list["MeterReading"]] = relationship(  # noqa: F821
        "MeterReading",
        back_populates="room",
    )

    def __repr__(self) -> str:
        return (
            f"<Room(id={self.id}, house_number={self.house_number}, base_rent={self.base_rent}, "
            f"water_rate={self.water_rate}, elec_rate={self.elec_rate})>"
        )


__all__ = ["Room"]
