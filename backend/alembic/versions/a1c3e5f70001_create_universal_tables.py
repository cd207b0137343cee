"""create universal tables

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-19 09:12:44.310562

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f70001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
    ]


def upgrade() -> None:
    """Create the universal tables used by procurement."""
    op.create_table(
        'core_entities',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_name', sa.String(length=255), nullable=False),
        sa.Column('entity_code', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_core_entities_organization_id', 'core_entities', ['organization_id'])
    op.create_index('ix_core_entities_org_type', 'core_entities', ['organization_id', 'entity_type'])

    op.create_table(
        'core_dynamic_data',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('entity_id', sa.String(length=36), nullable=False),
        sa.Column('field_name', sa.String(length=100), nullable=False),
        sa.Column('field_value', sa.Text(), nullable=True),
        sa.Column('field_type', sa.String(length=30), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['entity_id'], ['core_entities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entity_id', 'field_name', name='_dynamic_entity_field_uc'),
    )
    op.create_index('ix_core_dynamic_data_organization_id', 'core_dynamic_data', ['organization_id'])
    op.create_index('ix_core_dynamic_data_entity_id', 'core_dynamic_data', ['entity_id'])

    op.create_table(
        'core_relationships',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('parent_entity_id', sa.String(length=36), nullable=False),
        sa.Column('child_entity_id', sa.String(length=36), nullable=False),
        sa.Column('relationship_type', sa.String(length=100), nullable=False),
        sa.Column('relationship_data', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_core_relationships_organization_id', 'core_relationships', ['organization_id'])
    op.create_index('ix_core_relationships_parent_type', 'core_relationships', ['parent_entity_id', 'relationship_type'])

    op.create_table(
        'universal_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('transaction_type', sa.String(length=50), nullable=False),
        sa.Column('transaction_number', sa.String(length=50), nullable=True),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('workflow_status', sa.String(length=50), nullable=False),
        sa.Column('transaction_status', sa.String(length=50), nullable=False),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('procurement_metadata', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'transaction_type', 'transaction_number', name='_org_type_number_uc'),
    )
    op.create_index('ix_universal_transactions_organization_id', 'universal_transactions', ['organization_id'])
    op.create_index(
        'ix_universal_transactions_org_type_status',
        'universal_transactions',
        ['organization_id', 'transaction_type', 'workflow_status'],
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=True),
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('record_id', sa.String(), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])
    op.create_index('ix_audit_log_organization_id', 'audit_log', ['organization_id'])
    op.create_index('ix_audit_log_record_id', 'audit_log', ['record_id'])


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('universal_transactions')
    op.drop_table('core_relationships')
    op.drop_table('core_dynamic_data')
    op.drop_table('core_entities')
