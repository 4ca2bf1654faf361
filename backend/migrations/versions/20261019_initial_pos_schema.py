"""Initial POS schema: stores, devices, sessions, charges, events, receipts

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. Stores and users
2. POS devices and sessions (cash register shifts)
3. Connected charges (payment-provider mirror)
4. POS events (electronic journal), receipts and line corrections
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. STORES & USERS
    # ==========================================================================
    op.create_table('stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('tips_enabled', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stores', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stores_slug'), ['slug'], unique=False)

    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. DEVICES & SESSIONS
    # ==========================================================================
    op.create_table('pos_devices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('device_identifier', sa.String(length=255), nullable=False),
        sa.Column('device_name', sa.String(length=255), nullable=False),
        sa.Column('platform', sa.String(length=32), nullable=True),
        sa.Column('device_status', sa.String(length=32), nullable=False),
        sa.Column('last_seen_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('device_identifier'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('pos_devices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_pos_devices_store_id'), ['store_id'], unique=False)
        batch_op.create_index('ix_pos_devices_store_status', ['store_id', 'device_status'], unique=False)

    op.create_table('pos_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('pos_device_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('session_number', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('opening_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expected_cash', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('actual_cash', sa.Integer(), nullable=True),
        sa.Column('cash_difference', sa.Integer(), nullable=True),
        sa.Column('opening_notes', sa.Text(), nullable=True),
        sa.Column('closing_notes', sa.Text(), nullable=True),
        sa.Column('opening_data', sa.JSON(), nullable=True),
        sa.Column('closing_data', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['pos_device_id'], ['pos_devices.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('pos_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_pos_sessions_store_id'), ['store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_pos_sessions_pos_device_id'), ['pos_device_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_pos_sessions_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_pos_sessions_status'), ['status'], unique=False)
        batch_op.create_index('ix_pos_sessions_store_status', ['store_id', 'status'], unique=False)
        batch_op.create_index('ix_pos_sessions_store_opened', ['store_id', 'opened_at'], unique=False)

    # ==========================================================================
    # 3. CONNECTED CHARGES
    # ==========================================================================
    op.create_table('connected_charges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pos_session_id', sa.Integer(), nullable=True),
        sa.Column('stripe_charge_id', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('amount_refunded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='nok'),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('refunded', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=64), nullable=True),
        sa.Column('payment_code', sa.String(length=10), nullable=True),
        sa.Column('transaction_code', sa.String(length=10), nullable=True),
        sa.Column('article_group_code', sa.String(length=10), nullable=True),
        sa.Column('tip_amount', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['pos_session_id'], ['pos_sessions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stripe_charge_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('connected_charges', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_connected_charges_pos_session_id'), ['pos_session_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_connected_charges_status'), ['status'], unique=False)
        batch_op.create_index('ix_connected_charges_session_status', ['pos_session_id', 'status'], unique=False)

    # ==========================================================================
    # 4. EVENTS, RECEIPTS, LINE CORRECTIONS
    # ==========================================================================
    op.create_table('pos_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('pos_device_id', sa.Integer(), nullable=True),
        sa.Column('pos_session_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('related_charge_id', sa.Integer(), nullable=True),
        sa.Column('event_code', sa.String(length=10), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('event_data', sa.JSON(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['pos_device_id'], ['pos_devices.id'], ),
        sa.ForeignKeyConstraint(['pos_session_id'], ['pos_sessions.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['related_charge_id'], ['connected_charges.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('pos_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_pos_events_store_id'), ['store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_pos_events_related_charge_id'), ['related_charge_id'], unique=False)
        batch_op.create_index('ix_pos_events_store_occurred', ['store_id', 'occurred_at'], unique=False)
        batch_op.create_index('ix_pos_events_session_code', ['pos_session_id', 'event_code'], unique=False)

    op.create_table('receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('pos_session_id', sa.Integer(), nullable=True),
        sa.Column('charge_id', sa.Integer(), nullable=True),
        sa.Column('receipt_number', sa.String(length=64), nullable=False),
        sa.Column('receipt_type', sa.String(length=32), nullable=False),
        sa.Column('receipt_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['pos_session_id'], ['pos_sessions.id'], ),
        sa.ForeignKeyConstraint(['charge_id'], ['connected_charges.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('receipts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_receipts_store_id'), ['store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_pos_session_id'), ['pos_session_id'], unique=False)

    op.create_table('pos_line_corrections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pos_session_id', sa.Integer(), nullable=False),
        sa.Column('correction_type', sa.String(length=32), nullable=False),
        sa.Column('quantity_reduction', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_reduction', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['pos_session_id'], ['pos_sessions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('pos_line_corrections', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_pos_line_corrections_pos_session_id'), ['pos_session_id'], unique=False)


def downgrade():
    op.drop_table('pos_line_corrections')
    op.drop_table('receipts')
    op.drop_table('pos_events')
    op.drop_table('connected_charges')
    op.drop_table('pos_sessions')
    op.drop_table('pos_devices')
    op.drop_table('users')
    op.drop_table('stores')
