"""Create users, ledger_entries and contacts tables

Revision ID: 20260101_000001
Revises:
Create Date: 2026-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260101_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('encrypted_private_key', sa.Text(), nullable=False),
        sa.Column('key_salt', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index(
        'ix_users_wallet_address', 'users', ['wallet_address'], unique=True
    )

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('tx_hash', sa.String(length=66), nullable=False),
        sa.Column('perspective', sa.String(length=10), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('network', sa.String(length=32), nullable=False),
        sa.Column('from_address', sa.String(length=42), nullable=False),
        sa.Column('to_address', sa.String(length=42), nullable=False),
        sa.Column('value', sa.DECIMAL(precision=36, scale=18), nullable=False),
        sa.Column('value_wei', sa.String(length=78), nullable=False),
        sa.Column('token', sa.String(length=16), nullable=False),
        sa.Column('token_address', sa.String(length=42), nullable=True),
        sa.Column('gas_used', sa.BigInteger(), nullable=True),
        sa.Column('effective_gas_price', sa.String(length=78), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=True),
        sa.Column('block_hash', sa.String(length=66), nullable=True),
        sa.Column('confirmations', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'tx_hash', 'perspective',
            name='uq_ledger_user_hash_perspective'
        )
    )
    op.create_index(
        'ix_ledger_entries_user_id', 'ledger_entries', ['user_id'], unique=False
    )
    op.create_index(
        'ix_ledger_entries_wallet_address', 'ledger_entries',
        ['wallet_address'], unique=False
    )
    op.create_index(
        'ix_ledger_entries_tx_hash', 'ledger_entries', ['tx_hash'], unique=False
    )
    op.create_index(
        'ix_ledger_entries_network', 'ledger_entries', ['network'], unique=False
    )
    op.create_index(
        'ix_ledger_entries_status', 'ledger_entries', ['status'], unique=False
    )
    op.create_index(
        'ix_ledger_entries_created_at', 'ledger_entries',
        ['created_at'], unique=False
    )

    op.create_table(
        'contacts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('alias', sa.String(length=64), nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('favorite', sa.Boolean(), nullable=False),
        sa.Column(
            'total_sent', sa.DECIMAL(precision=36, scale=18),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'total_received', sa.DECIMAL(precision=36, scale=18),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'transaction_count', sa.Integer(),
            nullable=False, server_default='0'
        ),
        sa.Column('last_transaction_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'wallet_address', name='uq_contact_user_address'
        )
    )
    op.create_index('ix_contacts_user_id', 'contacts', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_contacts_user_id', table_name='contacts')
    op.drop_table('contacts')
    op.drop_index('ix_ledger_entries_created_at', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_status', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_network', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_tx_hash', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_wallet_address', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_user_id', table_name='ledger_entries')
    op.drop_table('ledger_entries')
    op.drop_index('ix_users_wallet_address', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
