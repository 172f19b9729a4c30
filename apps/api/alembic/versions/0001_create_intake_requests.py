"""Create intake_requests table.

Revision ID: 0001_create_intake_requests
Revises:
Create Date: 2026-01-12

Stores encrypted submissions only - no plaintext ever exists server-side.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_create_intake_requests'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'intake_requests',
        sa.Column('id', sa.String(64), nullable=False),  # client content hash, lowercase hex
        sa.Column('version', sa.String(64), nullable=False),  # wire protocol version
        sa.Column('ciphertext', sa.Text(), nullable=False),  # verbatim from client
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ip_hash', sa.String(64), nullable=True),  # salted SHA-256
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('referrer', sa.String(1024), nullable=True),  # query/fragment stripped
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_intake_received_at', 'intake_requests', ['received_at'])


def downgrade() -> None:
    op.drop_index('idx_intake_received_at', table_name='intake_requests')
    op.drop_table('intake_requests')
