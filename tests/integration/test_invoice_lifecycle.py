"""Integration tests for invoice status transitions, late fees and deletion."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from rentbill.errors import ConflictError, NotFoundError, StateError, ValidationError
from rentbill.models import AuditLog, Invoice, InvoiceItemType, InvoiceStatus, MeterReading
from rentbill.services.billing_service import BillingService
from rentbill.services.context import RequestContext
from rentbill.services.deposit_service import DepositService
from rentbill.services.invoice_service import InvoiceService


@pytest.fixture
def march_invoice(db_session, context, billed_room):
    """Pending 3390 invoice for 2024-03 (due 2024-03-05)."""
    room, contract = billed_room
    return BillingService(db_session, context).create_invoice(
        contract.id, room.id, "2024-03", 110, 230
    )


class TestStatusUpdates:
    def test_update_status(self, db_session, context, march_invoice):
        invoice = InvoiceService(db_session, context).update_status(march_invoice.id, "paid")

        assert invoice.status == InvoiceStatus.PAID

    def test_any_edge_is_allowed(self, db_session, context, march_invoice):
        service = InvoiceService(db_session, context)
        service.update_status(march_invoice.id, InvoiceStatus.CANCELLED)

        invoice = service.update_status(march_invoice.id, InvoiceStatus.PENDING)

        assert invoice.status == InvoiceStatus.PENDING

    def test_status_change_is_audited(self, db_session, context, march_invoice):
        InvoiceService(db_session, context).update_status(march_invoice.id, "overdue")

        entry = db_session.execute(
            select(AuditLog).where(AuditLog.action == "status")
        ).scalar_one()
        assert entry.changes == {"from": "pending", "to": "overdue"}
        assert entry.actor_id == context.actor_id

    def test_unknown_status(self, db_session, context, march_invoice):
        with pytest.raises(ValidationError, match="Invalid invoice status"):
            InvoiceService(db_session, context).update_status(march_invoice.id, "refunded")

    def test_unknown_invoice(self, db_session, context):
        with pytest.raises(NotFoundError):
            InvoiceService(db_session, context).update_status(999, "paid")


class TestBulkStatus:
    def test_reports_per_invoice_outcome(self, db_session, context, march_invoice):
        result = InvoiceService(db_session, context).bulk_update_status(
            [march_invoice.id, 999, march_invoice.id], "paid"
        )

        assert result.status == InvoiceStatus.PAID
        assert result.succeeded == [march_invoice.id]
        assert list(result.failed) == [999]
        assert result.updated_count == 1
        assert db_session.get(Invoice, march_invoice.id).status == InvoiceStatus.PAID

    def test_empty_selection(self, db_session, context):
        with pytest.raises(ValidationError, match="No invoices selected"):
            InvoiceService(db_session, context).bulk_update_status([], "paid")


class TestLateFee:
    def test_compute_for_late_invoice(self, db_session, context, march_invoice):
        fee = InvoiceService(db_session, context).compute_late_fee(march_invoice.id)

        assert fee.days_late == 5
        assert fee.late_fee == Decimal("250")

    def test_not_late_on_due_date(self, db_session, march_invoice):
        # 23:59 on the 5th in Bangkok
        on_due_date = RequestContext.at(datetime(2024, 3, 5, 16, 59, tzinfo=timezone.utc))

        assert InvoiceService(db_session, on_due_date).compute_late_fee(march_invoice.id) is None

    def test_late_from_local_midnight_after_due_date(self, db_session, march_invoice):
        # Still the 5th in UTC, already the 6th in Bangkok
        next_day = RequestContext.at(datetime(2024, 3, 5, 17, 0, tzinfo=timezone.utc))

        fee = InvoiceService(db_session, next_day).compute_late_fee(march_invoice.id)

        assert fee.days_late == 1
        assert fee.late_fee == Decimal("50")

    def test_paid_invoice_is_never_late(self, db_session, context, march_invoice):
        service = InvoiceService(db_session, context)
        service.update_status(march_invoice.id, "paid")

        assert service.compute_late_fee(march_invoice.id) is None

    def test_apply_adds_item_and_recomputes_total(self, db_session, context, march_invoice):
        invoice, fee = InvoiceService(db_session, context).apply_late_fee(march_invoice.id)

        late_items = invoice.items_of_type(InvoiceItemType.LATE_FEE)
        assert len(late_items) == 1
        assert late_items[0].amount == Decimal("250")
        assert invoice.total_amount == Decimal("3640")
        assert invoice.total_amount == sum(item.amount for item in invoice.items)
        assert invoice.status == InvoiceStatus.OVERDUE
        assert fee.days_late == 5

    def test_second_application_is_rejected(self, db_session, context, march_invoice):
        service = InvoiceService(db_session, context)
        service.apply_late_fee(march_invoice.id)

        with pytest.raises(ConflictError, match="already applied"):
            service.apply_late_fee(march_invoice.id)

        invoice = service.get_invoice(march_invoice.id)
        assert len(invoice.items_of_type(InvoiceItemType.LATE_FEE)) == 1
        assert invoice.total_amount == Decimal("3640")

    def test_apply_to_invoice_not_yet_due(self, db_session, march_invoice):
        early = RequestContext.at(datetime(2024, 3, 2, tzinfo=timezone.utc), actor_id=1)

        with pytest.raises(StateError) as exc_info:
            InvoiceService(db_session, early).apply_late_fee(march_invoice.id)

        assert exc_info.value.code == "not_overdue"

    def test_apply_to_cancelled_invoice(self, db_session, context, march_invoice):
        service = InvoiceService(db_session, context)
        service.update_status(march_invoice.id, "cancelled")

        with pytest.raises(StateError):
            service.apply_late_fee(march_invoice.id)


class TestOverdueSweep:
    def test_marks_only_late_pending_invoices(self, db_session, context, billed_room):
        room, contract = billed_room
        billing = BillingService(db_session, context)
        late = billing.create_invoice(contract.id, room.id, "2024-03", 110, 230)
        not_due = billing.create_invoice(contract.id, room.id, "2024-04", 120, 240)

        marked = InvoiceService(db_session, context).mark_overdue_invoices()

        assert marked == [late.id]
        assert db_session.get(Invoice, late.id).status == InvoiceStatus.OVERDUE
        assert db_session.get(Invoice, not_due.id).status == InvoiceStatus.PENDING

    def test_sweep_is_repeatable(self, db_session, context, march_invoice):
        service = InvoiceService(db_session, context)
        service.mark_overdue_invoices()

        assert service.mark_overdue_invoices() == []


class TestQueries:
    def test_list_filters(self, db_session, context, march_invoice):
        service = InvoiceService(db_session, context)

        assert [i.id for i in service.list_invoices(status="pending")] == [march_invoice.id]
        assert service.list_invoices(status="paid") == []
        assert [i.id for i in service.list_invoices(month_year="2024-03")] == [march_invoice.id]
        assert service.list_invoices(month_year="2024-02") == []

    def test_list_for_contract(self, db_session, context, billed_room, march_invoice):
        _, contract = billed_room

        invoices = InvoiceService(db_session, context).list_invoices_for_contract(contract.id)

        assert [i.id for i in invoices] == [march_invoice.id]


class TestDeleteInvoice:
    def test_delete_removes_invoice_and_reading(self, db_session, context, march_invoice):
        reading_id = march_invoice.meter_reading_id

        InvoiceService(db_session, context).delete_invoice(march_invoice.id)

        assert db_session.get(Invoice, march_invoice.id) is None
        assert db_session.get(MeterReading, reading_id) is None
        entry = db_session.execute(select(AuditLog).where(AuditLog.action == "delete")).scalar_one()
        assert entry.changes["month_year"] == "2024-03"

    def test_period_can_be_billed_again(self, db_session, context, billed_room, march_invoice):
        room, contract = billed_room
        InvoiceService(db_session, context).delete_invoice(march_invoice.id)

        invoice = BillingService(db_session, context).create_invoice(
            contract.id, room.id, "2024-03", 115, 230
        )

        assert invoice.total_amount == Decimal("3480")

    def test_delete_unknown(self, db_session, context):
        with pytest.raises(NotFoundError):
            InvoiceService(db_session, context).delete_invoice(999)

    def test_delete_takes_back_deposit_top_up(self, db_session, context, billed_room):
        room, contract = billed_room
        billing = BillingService(db_session, context)
        invoice = billing.create_invoice(
            contract.id, room.id, "2024-03", 110, 230, deposit_amount=Decimal("1000")
        )
        assert contract.deposit == Decimal("11000")

        InvoiceService(db_session, context).delete_invoice(invoice.id)

        db_session.refresh(contract)
        assert contract.deposit == Decimal("10000")
        assert DepositService(db_session).list_transactions(contract.id) == []

        billing.create_invoice(contract.id, room.id, "2024-03", 110, 230, deposit_amount=Decimal("1000"))
        db_session.refresh(contract)
        assert contract.deposit == Decimal("11000")

    def test_delete_move_out_statement_reopens_contract(self, db_session, context, billed_room):
        room, contract = billed_room
        statement = BillingService(db_session, context).create_invoice(
            contract.id, room.id, "2024-03", 110, 230, move_out=True
        )
        assert not contract.is_active

        InvoiceService(db_session, context).delete_invoice(statement.id)

        db_session.refresh(contract)
        assert contract.is_active
        assert contract.end_date is None
        assert contract.deposit == Decimal("10000")
        assert DepositService(db_session).list_transactions(contract.id) == []
        entry = db_session.execute(select(AuditLog).where(AuditLog.action == "delete")).scalar_one()
        assert {r["type"] for r in entry.changes["deposit_reversed"]} == {"forfeit", "refund"}

    def test_top_up_settled_at_move_out_cannot_be_deleted(self, db_session, context, billed_room):
        room, contract = billed_room
        billing = BillingService(db_session, context)
        march = billing.create_invoice(
            contract.id, room.id, "2024-03", 110, 230, deposit_amount=Decimal("1000")
        )
        billing.create_invoice(contract.id, room.id, "2024-04", 120, 240, move_out=True)

        with pytest.raises(StateError) as exc_info:
            InvoiceService(db_session, context).delete_invoice(march.id)

        assert exc_info.value.code == "deposit_settled"
        assert db_session.get(Invoice, march.id) is not None
        db_session.refresh(contract)
        assert contract.deposit == Decimal("0")

    def test_move_out_of_replaced_contract_cannot_be_deleted(
        self, db_session, context, billed_room, make_contract
    ):
        room, contract = billed_room
        statement = BillingService(db_session, context).create_invoice(
            contract.id, room.id, "2024-03", 110, 230, move_out=True
        )
        make_contract(room)

        with pytest.raises(StateError) as exc_info:
            InvoiceService(db_session, context).delete_invoice(statement.id)

        assert exc_info.value.code == "contract_replaced"
        db_session.refresh(contract)
        assert not contract.is_active
