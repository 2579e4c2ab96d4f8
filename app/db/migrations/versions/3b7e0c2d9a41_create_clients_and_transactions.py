"""create_clients_and_transactions

Revision ID: 3b7e0c2d9a41
Revises:
Create Date: 2026-10-17 09:12:44.120733

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7e0c2d9a41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            'client_id',
            sa.String(length=255),
            nullable=False,
            comment='Opaque identifier supplied by the caller'
        ),
        sa.Column(
            'tanesco_number',
            sa.String(length=100),
            nullable=True,
            comment='Utility account reference; set once and never overwritten'
        ),
        sa.Column(
            'last_vend_date',
            sa.Date(),
            nullable=True,
            comment='UTC calendar date of the last successful vend'
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_clients_client_id', 'clients', ['client_id'], unique=True)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            'client_pk',
            sa.Integer(),
            nullable=False,
            comment='Reference to the owning client'
        ),
        sa.Column(
            'transaction_id',
            sa.String(length=255),
            nullable=False,
            comment='Transaction id supplied by the caller'
        ),
        sa.Column(
            'submeter_number',
            sa.String(length=100),
            nullable=False,
            comment='Meter code the token was issued for'
        ),
        sa.Column(
            'tanesco_number',
            sa.String(length=100),
            nullable=False,
            comment='Utility account reference on the request'
        ),
        sa.Column(
            'token_number',
            sa.String(length=255),
            nullable=False,
            comment='Token returned by STS'
        ),
        sa.Column(
            'amount',
            sa.Numeric(precision=18, scale=2),
            nullable=False,
            comment='Monetary amount requested'
        ),
        sa.Column(
            'units',
            sa.Numeric(precision=18, scale=3),
            nullable=False,
            comment='Unit quantity requested'
        ),
        sa.Column(
            'vend_type',
            sa.String(length=20),
            nullable=False,
            comment="Vend channel: 'upload' or 'manual'"
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "vend_type IN ('upload', 'manual')", name='ck_transactions_vend_type'
        ),
        sa.ForeignKeyConstraint(['client_pk'], ['clients.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_client_pk', 'transactions', ['client_pk'])
    op.create_index('ix_transactions_transaction_id', 'transactions', ['transaction_id'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])
    op.create_index(
        'idx_transaction_client_created', 'transactions', ['client_pk', 'created_at']
    )


def downgrade() -> None:
    op.drop_index('idx_transaction_client_created', table_name='transactions')
    op.drop_index('ix_transactions_created_at', table_name='transactions')
    op.drop_index('ix_transactions_transaction_id', table_name='transactions')
    op.drop_index('ix_transactions_client_pk', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_clients_client_id', table_name='clients')
    op.drop_table('clients')
