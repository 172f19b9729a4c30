"""Add admin workflow columns and the intake_events audit trail.

Revision ID: 0002_add_admin_workflow
Revises: 0001_create_intake_requests
Create Date: 2026-01-26

Workflow columns are metadata only - ciphertext is never touched.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0002_add_admin_workflow'
down_revision: Union[str, None] = '0001_create_intake_requests'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # Workflow columns on intake_requests
    # ==========================================================================
    op.add_column('intake_requests', sa.Column('status', sa.String(20), server_default='new', nullable=False))
    op.add_column('intake_requests', sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True))
    op.add_column('intake_requests', sa.Column('note', sa.Text(), nullable=True))
    op.add_column('intake_requests', sa.Column('viewed_at', sa.DateTime(timezone=True), nullable=True))
    op.create_index('idx_intake_status', 'intake_requests', ['status'])

    # ==========================================================================
    # intake_events (append-only audit trail)
    # ==========================================================================
    op.create_table(
        'intake_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('intake_id', sa.String(64), nullable=False),
        sa.Column('event', sa.String(32), nullable=False),
        sa.Column('actor', sa.String(320), nullable=True),
        sa.Column('at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('meta', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True),
        sa.ForeignKeyConstraint(['intake_id'], ['intake_requests.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_intake_events_intake_id', 'intake_events', ['intake_id'])
    op.create_index('idx_intake_events_at', 'intake_events', ['at'])


def downgrade() -> None:
    op.drop_index('idx_intake_events_at', table_name='intake_events')
    op.drop_index('idx_intake_events_intake_id', table_name='intake_events')
    op.drop_table('intake_events')
    op.drop_index('idx_intake_status', table_name='intake_requests')
    op.drop_column('intake_requests', 'viewed_at')
    op.drop_column('intake_requests', 'note')
    op.drop_column('intake_requests', 'processed_at')
    op.drop_column('intake_requests', 'status')
