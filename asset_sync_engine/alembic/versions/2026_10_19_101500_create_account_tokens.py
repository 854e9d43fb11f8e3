"""create_account_tokens

Revision ID: 2026_10_19_101500
Revises:
Create Date: 2026-10-19 10:15:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '2026_10_19_101500'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE SCHEMA IF NOT EXISTS domain')
    op.create_table(
        'account_tokens',
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('account_address', sa.Text(), nullable=False),
        sa.Column('token_slug', sa.Text(), nullable=False),
        sa.Column('token_type', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('symbol', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('decimals', sa.Integer(), nullable=False),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('raw_balance', sa.Text(), nullable=False),
        sa.Column('price_usd', sa.Text(), nullable=True),
        sa.Column('price_usd_change_24h', sa.Text(), nullable=True),
        sa.Column('balance_usd', sa.Float(), nullable=False),
        sa.Column('synced_by_chain_at', sa.BigInteger(), nullable=True),
        sa.Column('manually_status_changed', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('chain_id', 'account_address', 'token_slug'),
        schema='domain',
    )
    op.create_index(
        'ix_account_tokens_account_type',
        'account_tokens',
        ['chain_id', 'account_address', 'token_type'],
        unique=False,
        schema='domain',
    )


def downgrade() -> None:
    op.drop_index('ix_account_tokens_account_type', table_name='account_tokens', schema='domain')
    op.drop_table('account_tokens', schema='domain')
