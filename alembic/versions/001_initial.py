"""Initial schema: connections, consents, governed metrics, envelopes

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Provider connections (encrypted tokens only)
    op.create_table(
        'source_connections',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(36), nullable=False),
        sa.Column('provider', sa.String(32), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('scopes', sa.JSON(), nullable=False),
        sa.Column('access_token_encrypted', sa.Text(), nullable=True),
        sa.Column('refresh_token_encrypted', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('owner_id', 'provider', name='uq_source_connections_owner_provider'),
    )
    op.create_index('ix_source_connections_owner_id', 'source_connections', ['owner_id'])

    # Consents
    op.create_table(
        'consents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(36), nullable=False),
        sa.Column('scope', sa.String(64), nullable=False),
        sa.Column('purpose', sa.String(64), nullable=False),
        sa.Column('granted', sa.Boolean(), nullable=False),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('consent_metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('owner_id', 'scope', 'purpose', name='uq_consents_owner_scope_purpose'),
    )
    op.create_index('ix_consents_owner_id', 'consents', ['owner_id'])

    # Daily metrics
    op.create_table(
        'daily_metrics',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(36), nullable=False),
        sa.Column('metric_date', sa.Date(), nullable=False),
        sa.Column('steps', sa.Integer(), nullable=True),
        sa.Column('calories_kcal', sa.Integer(), nullable=True),
        sa.Column('avg_hr_bpm', sa.Integer(), nullable=True),
        sa.Column('sleep_minutes', sa.Integer(), nullable=True),
        sa.Column('gym_minutes', sa.Integer(), nullable=True),
        sa.Column('badminton_minutes', sa.Integer(), nullable=True),
        sa.Column('swim_minutes', sa.Integer(), nullable=True),
        sa.Column('source', sa.String(64), nullable=False),
        sa.Column('confidence', sa.Integer(), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('owner_id', 'metric_date', name='uq_daily_metrics_owner_date'),
    )
    op.create_index('ix_daily_metrics_owner_id', 'daily_metrics', ['owner_id'])

    # Active hours
    op.create_table(
        'active_hours',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(36), nullable=False),
        sa.Column('active_date', sa.Date(), nullable=False),
        sa.Column('minutes_active', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(64), nullable=False),
        sa.Column('confidence', sa.Integer(), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('owner_id', 'active_date', name='uq_active_hours_owner_date'),
    )
    op.create_index('ix_active_hours_owner_id', 'active_hours', ['owner_id'])

    # Governance envelopes (append-only)
    op.create_table(
        'governance_envelopes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(36), nullable=False),
        sa.Column('purpose', sa.String(64), nullable=False),
        sa.Column('subject_table', sa.String(64), nullable=False),
        sa.Column('subject_key', sa.String(36), nullable=False),
        sa.Column('request_hash', sa.String(64), nullable=False),
        sa.Column('envelope', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_governance_envelopes_owner_id', 'governance_envelopes', ['owner_id'])
    op.create_index(
        'ix_governance_envelopes_subject', 'governance_envelopes', ['subject_table', 'subject_key']
    )


def downgrade() -> None:
    op.drop_index('ix_governance_envelopes_subject', 'governance_envelopes')
    op.drop_index('ix_governance_envelopes_owner_id', 'governance_envelopes')
    op.drop_table('governance_envelopes')

    op.drop_index('ix_active_hours_owner_id', 'active_hours')
    op.drop_table('active_hours')

    op.drop_index('ix_daily_metrics_owner_id', 'daily_metrics')
    op.drop_table('daily_metrics')

    op.drop_index('ix_consents_owner_id', 'consents')
    op.drop_table('consents')

    op.drop_index('ix_source_connections_owner_id', 'source_connections')
    op.drop_table('source_connections')
