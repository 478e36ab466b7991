"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from rentbill.models.audit_log import AuditLog  # noqa: E402
from rentbill.models.contract import Contract  # noqa: E402
from rentbill.models.deposit_transaction import (  # noqa: E402
    DepositTransaction,
    DepositTransactionType,
)
from rentbill.models.invoice import (  # noqa: E402
    Invoice,
    InvoiceItem,
    InvoiceItemType,
    InvoiceStatus,
)
from rentbill.models.meter_reading import MeterReading  # noqa: E402
from rentbill.models.payment import Payment, PaymentStatus  # noqa: E402
from rentbill.models.room import Room  # noqa: E402
from rentbill.models.tenant import Tenant  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "AuditLog",
    "Contract",
    "DepositTransaction",
    "DepositTransactionType",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
    "InvoiceStatus",
    "MeterReading",
    "Payment",
    "PaymentStatus",
    "Room",
    "Tenant",
]
