"""Initial schema - quotations, customers, follow-ups, audit logs

Revision ID: 001
Revises:
Create Date: 2025-10-12

WHY: Creates every table the quotation engine needs. Enums are stored as
short strings (non-native) so new statuses never need an ALTER TYPE.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    """
    Create customer reference tables, quotations and their history tables.

    WHY: Quotations reference customers but carry their own snapshot, so
    customer foreign keys are SET NULL on delete. History tables (versions,
    decisions, follow-ups) cascade with their quotation.
    """
    # Customer reference data
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_customers_id', 'customers', ['id'])
    op.create_index('ix_customers_company_name', 'customers', ['company_name'])

    op.create_table(
        'customer_locations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('location_name', sa.String(length=255), nullable=False),
        sa.Column('gstin', sa.String(length=20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_customer_locations_id', 'customer_locations', ['id'])
    op.create_index('ix_customer_locations_customer_id', 'customer_locations', ['customer_id'])

    op.create_table(
        'customer_contacts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['location_id'], ['customer_locations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_customer_contacts_id', 'customer_contacts', ['id'])
    op.create_index('ix_customer_contacts_location_id', 'customer_contacts', ['location_id'])

    # Quotations
    op.create_table(
        'quotations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quotation_no', sa.String(length=64), nullable=True, comment='Human-readable quotation number'),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('customer_location_id', sa.Integer(), nullable=True),
        sa.Column('customer_contact_id', sa.Integer(), nullable=True),
        sa.Column('customer_snapshot', sa.JSON(), nullable=True, comment='Immutable customer/location/contact copy'),
        sa.Column('salesperson_name', sa.String(length=255), nullable=True),
        sa.Column('quotation_date', sa.Date(), nullable=False, server_default=sa.text('CURRENT_DATE'), comment='Issue date; start of the validity window'),
        sa.Column('validity_days', sa.Integer(), nullable=False, server_default='30', comment='Validity window in days'),
        sa.Column('payment_terms', sa.String(length=255), nullable=True),
        sa.Column('terms', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('version', sa.String(length=20), nullable=False, server_default='0.1', comment='Decimal version string, bumped by 0.1 per content change'),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('discount_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('tax_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('grand_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('last_followup_at', sa.DateTime(), nullable=True),
        sa.Column('reissued_from_id', sa.Integer(), nullable=True),
        sa.Column('reissue_key', sa.String(length=128), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['customer_location_id'], ['customer_locations.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['customer_contact_id'], ['customer_contacts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reissued_from_id'], ['quotations.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('reissued_from_id', 'reissue_key', name='uq_quotations_reissue_key'),
        sa.PrimaryKeyConstraint('id')
    )
    # WHY: Listings filter by status/customer; numbering scans quotation_no by prefix
    op.create_index('ix_quotations_id', 'quotations', ['id'])
    op.create_index('ix_quotations_quotation_no', 'quotations', ['quotation_no'], unique=True)
    op.create_index('ix_quotations_customer_id', 'quotations', ['customer_id'])
    op.create_index('ix_quotations_status', 'quotations', ['status'])
    op.create_index('ix_quotations_reissued_from_id', 'quotations', ['reissued_from_id'])

    op.create_table(
        'quotation_versions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quotation_id', sa.Integer(), nullable=False),
        sa.Column('version_label', sa.String(length=20), nullable=False),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('discount_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('tax_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('grand_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('changed_by', sa.String(length=255), nullable=True),
        sa.Column('next_version', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['quotation_id'], ['quotations.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('quotation_id', 'version_label', name='uq_quotation_versions_label'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_quotation_versions_id', 'quotation_versions', ['id'])
    op.create_index('ix_quotation_versions_quotation_id', 'quotation_versions', ['quotation_id'])

    op.create_table(
        'quotation_decisions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quotation_id', sa.Integer(), nullable=False),
        sa.Column('decision', sa.String(length=10), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('decided_by', sa.String(length=255), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['quotation_id'], ['quotations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_quotation_decisions_id', 'quotation_decisions', ['id'])
    op.create_index('ix_quotation_decisions_quotation_id', 'quotation_decisions', ['quotation_id'], unique=True)

    op.create_table(
        'quotation_followups',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quotation_id', sa.Integer(), nullable=False),
        sa.Column('followup_type', sa.String(length=20), nullable=False, server_default='call'),
        sa.Column('followup_date', sa.Date(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('next_followup_date', sa.Date(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['quotation_id'], ['quotations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    # WHY: The due list scans open follow-ups by date
    op.create_index('ix_quotation_followups_id', 'quotation_followups', ['id'])
    op.create_index('ix_quotation_followups_quotation_id', 'quotation_followups', ['quotation_id'])
    op.create_index('ix_quotation_followups_followup_date', 'quotation_followups', ['followup_date'])
    op.create_index('ix_quotation_followups_is_completed', 'quotation_followups', ['is_completed'])

    # Audit trail (append-only)
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=40), nullable=False),
        sa.Column('resource_type', sa.String(length=100), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('request_id', sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_actor', 'audit_logs', ['actor'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_resource_type', 'audit_logs', ['resource_type'])
    op.create_index('ix_audit_logs_resource_id', 'audit_logs', ['resource_id'])
    op.create_index('ix_audit_logs_request_id', 'audit_logs', ['request_id'])


def downgrade() -> None:
    """
    Drop all tables in reverse dependency order.
    """
    op.drop_table('audit_logs')
    op.drop_table('quotation_followups')
    op.drop_table('quotation_decisions')
    op.drop_table('quotation_versions')
    op.drop_table('quotations')
    op.drop_table('customer_contacts')
    op.drop_table('customer_locations')
    op.drop_table('customers')
