"""Create billing schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-11-09 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create billing tables."""
    op.create_table(
        'rooms',
        *_timestamps(),
        sa.Column('house_number', sa.String(50), nullable=False),
        sa.Column('building', sa.String(100), nullable=True),
        sa.Column('base_rent', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('water_rate', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('elec_rate', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('house_number'),
    )
    op.create_index('ix_rooms_is_active', 'rooms', ['is_active'])

    op.create_table(
        'tenants',
        *_timestamps(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'contracts',
        *_timestamps(),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('deposit', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('rent_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contracts_room_id', 'contracts', ['room_id'])
    op.create_index('ix_contracts_tenant_id', 'contracts', ['tenant_id'])
    op.create_index('ix_contracts_is_active', 'contracts', ['is_active'])
    op.create_index('idx_contract_room_active', 'contracts', ['room_id', 'is_active'])

    op.create_table(
        'meter_readings',
        *_timestamps(),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('month_year', sa.String(7), nullable=False),
        sa.Column('reading_date', sa.Date(), nullable=False),
        sa.Column('prev_water_reading', sa.Integer(), nullable=False),
        sa.Column('prev_elec_reading', sa.Integer(), nullable=False),
        sa.Column('water_reading', sa.Integer(), nullable=False),
        sa.Column('elec_reading', sa.Integer(), nullable=False),
        sa.Column('recorded_by', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_id', 'month_year', name='uq_meter_reading_room_period'),
    )
    op.create_index('ix_meter_readings_room_id', 'meter_readings', ['room_id'])

    op.create_table(
        'invoices',
        *_timestamps(),
        sa.Column('contract_id', sa.Integer(), nullable=False),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('meter_reading_id', sa.Integer(), nullable=True),
        sa.Column('month_year', sa.String(7), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column(
            'status',
            sa.Enum('PENDING', 'PAID', 'OVERDUE', 'CANCELLED', name='invoicestatus'),
            nullable=False,
        ),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('is_move_out', sa.Boolean(), nullable=False),
        sa.Column('deposit_held', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('refund_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.ForeignKeyConstraint(['contract_id'], ['contracts.id'], ),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ),
        sa.ForeignKeyConstraint(['meter_reading_id'], ['meter_readings.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_id', 'month_year', name='uq_invoice_room_period'),
    )
    op.create_index('ix_invoices_contract_id', 'invoices', ['contract_id'])
    op.create_index('ix_invoices_room_id', 'invoices', ['room_id'])
    op.create_index('ix_invoices_month_year', 'invoices', ['month_year'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('idx_invoice_status_period', 'invoices', ['status', 'month_year'])

    op.create_table(
        'invoice_items',
        *_timestamps(),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column(
            'item_type',
            sa.Enum(
                'RENT', 'WATER', 'ELECTRIC', 'LATE_FEE', 'CLEANING', 'DAMAGE', 'OTHER',
                name='invoiceitemtype',
            ),
            nullable=False,
        ),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])

    op.create_table(
        'payments',
        *_timestamps(),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('slip_image_url', sa.String(500), nullable=True),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', name='paymentstatus'), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_invoice_id', 'payments', ['invoice_id'])
    op.create_index('ix_payments_status', 'payments', ['status'])
    op.create_index('idx_payment_invoice_status', 'payments', ['invoice_id', 'status'])

    op.create_table(
        'deposit_transactions',
        *_timestamps(),
        sa.Column('contract_id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=True),
        sa.Column(
            'transaction_type',
            sa.Enum('TOP_UP', 'REFUND', 'FORFEIT', name='deposittransactiontype'),
            nullable=False,
        ),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(['contract_id'], ['contracts.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deposit_transactions_contract_id', 'deposit_transactions', ['contract_id'])

    op.create_table(
        'audit_logs',
        *_timestamps(),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_audit_entity', 'audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    """Drop billing tables."""
    op.drop_table('audit_logs')
    op.drop_table('deposit_transactions')
    op.drop_table('payments')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('meter_readings')
    op.drop_table('contracts')
    op.drop_table('tenants')
    op.drop_table('rooms')
