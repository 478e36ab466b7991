"""Billing audit trail ORM model."""

from typing import Any

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rentbill.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """One billing event: an invoice issued, a status changed, a reading corrected.

    entity_type/entity_id point at the affected row without a foreign key, so
    entries outlive deleted invoices and readings.
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[int | None] = mapped_column(
        nullable=True,
        comment="Staff user from the request context; NULL for scheduled jobs",
    )
    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (Index("idx_audit_entity", "entity_type", "entity_id"),)

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, {self.entity_type}:{self.entity_id}, "
            f"action={self.action}, actor_id={self.actor_id})>"
        )


__all__ = ["AuditLog"]
