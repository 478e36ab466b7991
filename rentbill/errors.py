"""Billing error taxonomy shared by services and the HTTP layer."""

from fastapi import status


class BillingError(Exception):
    """Base application error.

    Carries a user-facing message, a stable machine code and the HTTP status
    the API answers with.
    """

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class ValidationError(BillingError):
    """Invalid input: meter regression, bad amount, malformed period."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, "validation_error", status.HTTP_422_UNPROCESSABLE_ENTITY)


class NotFoundError(BillingError):
    """Unknown room, contract, invoice, reading or payment."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, "not_found", status.HTTP_404_NOT_FOUND)


class ConflictError(BillingError):
    """Duplicate reading/invoice for a period or a second late fee."""

    def __init__(self, message: str = "Conflict"):
        super().__init__(message, "conflict", status.HTTP_409_CONFLICT)


class StateError(BillingError):
    """Operation not allowed in the current state of the record."""

    def __init__(self, message: str = "Invalid state", code: str = "invalid_state"):
        super().__init__(message, code, status.HTTP_409_CONFLICT)


class NoActiveContractError(StateError):
    """Room has no active contract, so no invoice can be issued for it."""

    def __init__(self, room_id: int):
        super().__init__(
            f"Room {room_id} has no active contract; cannot create an invoice",
            code="no_active_contract",
        )
        self.room_id = room_id


def error_response(error: BillingError) -> dict:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


__all__ = [
    "BillingError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StateError",
    "NoActiveContractError",
    "error_response",
]
