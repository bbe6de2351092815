"""create orchestration tables

Revision ID: 3f9c1d2a7b80
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f9c1d2a7b80'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    ]


def upgrade() -> None:
    # Create data_lineage table
    op.create_table(
        'data_lineage',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('source_table', sa.String(length=100), nullable=False),
        sa.Column('source_id', sa.String(length=64), nullable=False),
        sa.Column('target_table', sa.String(length=100), nullable=False),
        sa.Column('target_id', sa.String(length=64), nullable=False),
        sa.Column('operation_type', sa.String(length=16), nullable=False),
        sa.Column('field_changes', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('transformation_rules', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('sync_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('conflict_data', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('resolved_by', sa.String(length=64), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_data_lineage_org_id', 'data_lineage', ['org_id'])
    op.create_index('ix_data_lineage_source_table', 'data_lineage', ['source_table'])
    op.create_index('ix_data_lineage_target_table', 'data_lineage', ['target_table'])
    op.create_index('ix_data_lineage_sync_status', 'data_lineage', ['sync_status'])
    op.create_index('ix_data_lineage_created_at', 'data_lineage', ['created_at'])

    # Create data_quality_metrics table
    op.create_table(
        'data_quality_metrics',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('table_name', sa.String(length=100), nullable=False),
        sa.Column('record_id', sa.String(length=64), nullable=False),
        sa.Column('quality_score', sa.Integer(), nullable=False),
        sa.Column('completeness_score', sa.Integer(), nullable=False),
        sa.Column('accuracy_score', sa.Integer(), nullable=False),
        sa.Column('consistency_score', sa.Integer(), nullable=False),
        sa.Column('validity_score', sa.Integer(), nullable=False),
        sa.Column('quality_issues', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('validation_rules', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('last_validated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quality_score BETWEEN 0 AND 100', name='ck_data_quality_metrics_quality_score'),
    )
    op.create_index('ix_data_quality_metrics_org_id', 'data_quality_metrics', ['org_id'])
    op.create_index('ix_data_quality_metrics_table_name', 'data_quality_metrics', ['table_name'])
    op.create_index('ix_data_quality_metrics_record_id', 'data_quality_metrics', ['record_id'])
    op.create_index('ix_data_quality_metrics_last_validated_at', 'data_quality_metrics', ['last_validated_at'])
    op.create_index('ix_data_quality_metrics_created_at', 'data_quality_metrics', ['created_at'])

    # Create sync_events table
    op.create_table(
        'sync_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('event_type', sa.String(length=150), nullable=False),
        sa.Column('source_module', sa.String(length=100), nullable=False),
        sa.Column('target_modules', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('event_data', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('sync_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('error_details', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sync_events_org_id', 'sync_events', ['org_id'])
    op.create_index('ix_sync_events_event_type', 'sync_events', ['event_type'])
    op.create_index('ix_sync_events_source_module', 'sync_events', ['source_module'])
    op.create_index('ix_sync_events_sync_status', 'sync_events', ['sync_status'])
    op.create_index('ix_sync_events_created_at', 'sync_events', ['created_at'])

    # Create data_validation_rules table
    op.create_table(
        'data_validation_rules',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('rule_name', sa.String(length=150), nullable=False),
        sa.Column('rule_type', sa.String(length=32), nullable=False),
        sa.Column('target_tables', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('target_fields', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('validation_logic', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('error_message', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('severity', sa.String(length=16), nullable=False, server_default='medium'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_data_validation_rules_org_id', 'data_validation_rules', ['org_id'])
    op.create_index('ix_data_validation_rules_rule_name', 'data_validation_rules', ['rule_name'])
    op.create_index('ix_data_validation_rules_rule_type', 'data_validation_rules', ['rule_type'])
    op.create_index('ix_data_validation_rules_is_active', 'data_validation_rules', ['is_active'])
    op.create_index('ix_data_validation_rules_created_at', 'data_validation_rules', ['created_at'])


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('data_validation_rules')
    op.drop_table('sync_events')
    op.drop_table('data_quality_metrics')
    op.drop_table('data_lineage')
