"""Contract-scoped billing routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentbill.errors import NotFoundError
from rentbill.models.contract import Contract
from rentbill.schemas.billing import InvoiceResponse
from rentbill.services.db import get_db
from rentbill.services.invoice_service import InvoiceService

router = APIRouter(prefix="/api/contracts", tags=["contracts"])


@router.get("/{contract_id}/invoices", response_model=list[InvoiceResponse])
def list_contract_invoices(contract_id: int, db: Session = Depends(get_db)) -> list[InvoiceResponse]:
    """Invoices issued under a contract, newest period first."""
    if db.get(Contract, contract_id) is None:
        raise NotFoundError(f"Contract {contract_id} not found")
    invoices = InvoiceService(db).list_invoices_for_contract(contract_id)
    return [InvoiceResponse.model_validate(invoice) for invoice in invoices]
