"""Create store_items and store_counters

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'store_items',
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('pk', sa.String(), nullable=False),
        sa.Column('sk', sa.String(), nullable=False),
        sa.Column('gsi1pk', sa.String(), nullable=True),
        sa.Column('gsi1sk', sa.String(), nullable=True),
        sa.Column('expire_at', sa.BigInteger(), nullable=True),
        sa.Column('attributes', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('table_name', 'pk', 'sk'),
    )
    op.create_index('ix_store_items_gsi1', 'store_items', ['table_name', 'gsi1pk', 'gsi1sk'])
    op.create_index('ix_store_items_expire_at', 'store_items', ['expire_at'])

    op.create_table(
        'store_counters',
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('pk', sa.String(), nullable=False),
        sa.Column('sk', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('value', sa.BigInteger(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('table_name', 'pk', 'sk', 'name'),
    )


def downgrade() -> None:
    op.drop_table('store_counters')
    op.drop_index('ix_store_items_expire_at', table_name='store_items')
    op.drop_index('ix_store_items_gsi1', table_name='store_items')
    op.drop_table('store_items')
