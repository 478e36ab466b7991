"""Tenant ORM model."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentbill.models import Base, BaseModel


class Tenant(Base, BaseModel):
    """Model representing a person renting a room."""

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    contracts: Mapped[list["Contract"]] = relationship(  # noqa: F821
        "Contract",
        back_populates="tenant",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name})>"


__all__ = ["Tenant"]
