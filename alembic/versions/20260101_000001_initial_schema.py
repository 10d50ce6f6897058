"""initial schema

Revision ID: 000001_initial_schema
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '000001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.DECIMAL(12, 2)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _fk(column: str, target: str, ondelete: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint([column], [target], ondelete=ondelete)


def upgrade() -> None:
    op.create_table(
        'profiles',
        *_base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('avatar_url', sa.String(length=1024), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_blocked', sa.Boolean(), nullable=False),
        sa.Column(
            'is_activated',
            sa.Boolean(),
            nullable=False,
            comment='Doers and supervisors pass training before taking work',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index(
        'idx_profile_role_active', 'profiles', ['role', 'is_active'], unique=False
    )

    op.create_table(
        'projects',
        *_base_columns(),
        sa.Column('project_number', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('service_type', sa.String(length=30), nullable=False),
        sa.Column('word_count', sa.Integer(), nullable=True),
        sa.Column('page_count', sa.Integer(), nullable=True),
        sa.Column('complexity', sa.String(length=10), nullable=False),
        sa.Column('deadline', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('status_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supervisor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('doer_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('user_amount', MONEY, nullable=True),
        sa.Column('doer_payout', MONEY, nullable=True),
        sa.Column('supervisor_commission', MONEY, nullable=True),
        sa.Column('platform_fee', MONEY, nullable=True),
        sa.Column('revision_count', sa.Integer(), nullable=False),
        sa.Column('qc_feedback', sa.Text(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'word_count IS NULL OR word_count > 0',
            name='check_project_word_count_positive',
        ),
        sa.CheckConstraint(
            'page_count IS NULL OR page_count > 0',
            name='check_project_page_count_positive',
        ),
        _fk('client_id', 'profiles.id', 'CASCADE'),
        _fk('supervisor_id', 'profiles.id', 'SET NULL'),
        _fk('doer_id', 'profiles.id', 'SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_projects_project_number', 'projects', ['project_number'], unique=True
    )
    op.create_index('ix_projects_status', 'projects', ['status'], unique=False)
    op.create_index('ix_projects_client_id', 'projects', ['client_id'], unique=False)
    op.create_index(
        'ix_projects_supervisor_id', 'projects', ['supervisor_id'], unique=False
    )
    op.create_index('ix_projects_doer_id', 'projects', ['doer_id'], unique=False)
    op.create_index(
        'idx_project_status_deadline', 'projects', ['status', 'deadline'],
        unique=False,
    )

    op.create_table(
        'project_quotes',
        *_base_columns(),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('quoted_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('base_price', MONEY, nullable=False),
        sa.Column('urgency_fee', MONEY, nullable=False),
        sa.Column('complexity_fee', MONEY, nullable=False),
        sa.Column('discount_amount', MONEY, nullable=False),
        sa.Column('tax_amount', MONEY, nullable=False),
        sa.Column(
            'user_amount', MONEY, nullable=False,
            comment='Total the client pays (incl. tax)',
        ),
        sa.Column('doer_amount', MONEY, nullable=False),
        sa.Column('supervisor_amount', MONEY, nullable=False),
        sa.Column('platform_amount', MONEY, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint(
            'user_amount > 0', name='check_quote_user_amount_positive'
        ),
        sa.CheckConstraint(
            'doer_amount >= 0', name='check_quote_doer_amount_non_negative'
        ),
        _fk('project_id', 'projects.id', 'CASCADE'),
        _fk('quoted_by', 'profiles.id', 'SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_project_quotes_project_id', 'project_quotes', ['project_id'],
        unique=False,
    )
    op.create_index(
        'ix_project_quotes_status', 'project_quotes', ['status'], unique=False
    )

    op.create_table(
        'wallets',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('balance', MONEY, nullable=False),
        sa.Column(
            'locked_amount', MONEY, nullable=False,
            comment='Reserved by pending payout requests',
        ),
        sa.Column('total_credited', MONEY, nullable=False),
        sa.Column('total_debited', MONEY, nullable=False),
        sa.Column('total_withdrawn', MONEY, nullable=False),
        sa.CheckConstraint(
            'balance >= 0', name='check_wallet_balance_non_negative'
        ),
        sa.CheckConstraint(
            'locked_amount >= 0', name='check_wallet_locked_non_negative'
        ),
        sa.CheckConstraint(
            'locked_amount <= balance', name='check_wallet_locked_within_balance'
        ),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('profile_id'),
    )

    op.create_table(
        'wallet_transactions',
        *_base_columns(),
        sa.Column('wallet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('transaction_type', sa.String(length=30), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('balance_before', MONEY, nullable=False),
        sa.Column('balance_after', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('reference_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            'metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        sa.CheckConstraint('amount > 0', name='check_wallet_tx_amount_positive'),
        _fk('wallet_id', 'wallets.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_wallet_transactions_wallet_id', 'wallet_transactions', ['wallet_id'],
        unique=False,
    )
    op.create_index(
        'ix_wallet_transactions_reference_id', 'wallet_transactions',
        ['reference_id'], unique=False,
    )
    op.create_index(
        'idx_wallet_tx_wallet_created', 'wallet_transactions',
        ['wallet_id', 'created_at'], unique=False,
    )

    op.create_table(
        'payout_requests',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('wallet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.CheckConstraint('amount > 0', name='check_payout_amount_positive'),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        _fk('wallet_id', 'wallets.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_payout_requests_profile_id', 'payout_requests', ['profile_id'],
        unique=False,
    )
    op.create_index(
        'ix_payout_requests_status', 'payout_requests', ['status'], unique=False
    )

    op.create_table(
        'payments',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('purpose', sa.String(length=20), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('gateway_order_id', sa.String(length=64), nullable=True),
        sa.Column('gateway_payment_id', sa.String(length=64), nullable=True),
        sa.Column('idempotency_key', sa.String(length=64), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name='check_payment_amount_positive'),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        _fk('project_id', 'projects.id', 'SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('gateway_order_id'),
        sa.UniqueConstraint('gateway_payment_id'),
        sa.UniqueConstraint('idempotency_key'),
    )
    op.create_index(
        'ix_payments_profile_id', 'payments', ['profile_id'], unique=False
    )
    op.create_index(
        'ix_payments_project_id', 'payments', ['project_id'], unique=False
    )
    op.create_index('ix_payments_status', 'payments', ['status'], unique=False)

    op.create_table(
        'payment_methods',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('method_type', sa.String(length=10), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('card_last_four', sa.String(length=4), nullable=True),
        sa.Column('card_network', sa.String(length=30), nullable=True),
        sa.Column('card_type', sa.String(length=20), nullable=True),
        sa.Column('card_expiry', sa.String(length=7), nullable=True),
        sa.Column(
            'card_token_encrypted', sa.Text(), nullable=True,
            comment='Fernet-encrypted gateway card token',
        ),
        sa.Column('bank_name', sa.String(length=100), nullable=True),
        sa.Column('upi_id', sa.String(length=255), nullable=True),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_payment_methods_profile_id', 'payment_methods', ['profile_id'],
        unique=False,
    )
    op.create_index(
        'idx_payment_method_profile_default', 'payment_methods',
        ['profile_id', 'is_default'], unique=False,
    )

    op.create_table(
        'payment_retries',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('payment_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('operation', sa.String(length=30), nullable=False),
        sa.Column(
            'payload', postgresql.JSONB(astext_type=sa.Text()), nullable=False
        ),
        sa.Column('idempotency_key', sa.String(length=64), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('attempt_count', sa.Integer(), nullable=False),
        sa.Column('max_retries', sa.Integer(), nullable=False),
        sa.Column('next_retry_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('error_stack', sa.Text(), nullable=True),
        sa.Column('gateway_reference', sa.String(length=64), nullable=True),
        sa.Column('in_dlq', sa.Boolean(), nullable=False),
        sa.Column('resolved', sa.Boolean(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        _fk('payment_id', 'payments.id', 'SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_payment_retries_profile_id', 'payment_retries', ['profile_id'],
        unique=False,
    )
    op.create_index(
        'ix_payment_retries_idempotency_key', 'payment_retries',
        ['idempotency_key'], unique=False,
    )
    op.create_index(
        'idx_payment_retry_pending', 'payment_retries',
        ['resolved', 'in_dlq', 'next_retry_at'], unique=False,
    )

    op.create_table(
        'chat_rooms',
        *_base_columns(),
        sa.Column('room_type', sa.String(length=30), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        _fk('project_id', 'projects.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_chat_room_project_type', 'chat_rooms', ['project_id', 'room_type'],
        unique=False,
    )

    op.create_table(
        'chat_participants',
        *_base_columns(),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('participant_role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_read_at', sa.DateTime(timezone=True), nullable=True),
        _fk('room_id', 'chat_rooms.id', 'CASCADE'),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_id', 'profile_id', name='uq_chat_participant'),
    )
    op.create_index(
        'ix_chat_participants_room_id', 'chat_participants', ['room_id'],
        unique=False,
    )
    op.create_index(
        'ix_chat_participants_profile_id', 'chat_participants', ['profile_id'],
        unique=False,
    )

    op.create_table(
        'chat_messages',
        *_base_columns(),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message_type', sa.String(length=20), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('file_url', sa.String(length=1024), nullable=True),
        sa.Column('is_flagged', sa.Boolean(), nullable=False),
        sa.Column('flagged_reason', sa.Text(), nullable=True),
        sa.Column('flagged_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        _fk('room_id', 'chat_rooms.id', 'CASCADE'),
        _fk('sender_id', 'profiles.id', 'CASCADE'),
        _fk('flagged_by', 'profiles.id', 'SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_chat_messages_sender_id', 'chat_messages', ['sender_id'], unique=False
    )
    op.create_index(
        'ix_chat_messages_is_flagged', 'chat_messages', ['is_flagged'],
        unique=False,
    )
    op.create_index(
        'idx_chat_message_room_created', 'chat_messages',
        ['room_id', 'created_at'], unique=False,
    )

    op.create_table(
        'notifications',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('notification_type', sa.String(length=30), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('reference_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action_url', sa.String(length=1024), nullable=True),
        sa.Column('data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_notification_profile_read', 'notifications',
        ['profile_id', 'is_read'], unique=False,
    )

    op.create_table(
        'push_subscriptions',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('endpoint', sa.String(length=2048), nullable=False),
        sa.Column('p256dh', sa.String(length=255), nullable=False),
        sa.Column('auth', sa.String(length=255), nullable=False),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('last_success_at', sa.DateTime(timezone=True), nullable=True),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('endpoint'),
    )
    op.create_index(
        'ix_push_subscriptions_profile_id', 'push_subscriptions', ['profile_id'],
        unique=False,
    )

    op.create_table(
        'moderation_logs',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('original_content', sa.Text(), nullable=False),
        sa.Column('sanitized_content', sa.Text(), nullable=True),
        sa.Column(
            'violation_types', postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
        ),
        sa.Column(
            'violations', postgresql.JSONB(astext_type=sa.Text()), nullable=False
        ),
        sa.Column('severity', sa.String(length=10), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column(
            'counts_toward_limit', sa.Boolean(), server_default='true',
            nullable=False,
        ),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        _fk('project_id', 'projects.id', 'SET NULL'),
        _fk('room_id', 'chat_rooms.id', 'SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_moderation_logs_project_id', 'moderation_logs', ['project_id'],
        unique=False,
    )
    op.create_index(
        'idx_moderation_log_profile_created', 'moderation_logs',
        ['profile_id', 'created_at'], unique=False,
    )

    op.create_table(
        'activity_logs',
        *_base_columns(),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('action_category', sa.String(length=30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        _fk('profile_id', 'profiles.id', 'CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_activity_logs_action', 'activity_logs', ['action'], unique=False
    )
    op.create_index(
        'idx_activity_log_profile_created', 'activity_logs',
        ['profile_id', 'created_at'], unique=False,
    )

    op.create_table(
        'marketplace_listings',
        *_base_columns(),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('listing_type', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', MONEY, nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column(
            'image_urls', postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('reviewed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False),
        sa.CheckConstraint(
            'price IS NULL OR price >= 0',
            name='check_listing_price_non_negative',
        ),
        _fk('seller_id', 'profiles.id', 'CASCADE'),
        _fk('reviewed_by', 'profiles.id', 'SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_marketplace_listings_seller_id', 'marketplace_listings',
        ['seller_id'], unique=False,
    )
    op.create_index(
        'idx_listing_status_type', 'marketplace_listings',
        ['status', 'listing_type'], unique=False,
    )


def downgrade() -> None:
    for table in (
        'marketplace_listings',
        'activity_logs',
        'moderation_logs',
        'push_subscriptions',
        'notifications',
        'chat_messages',
        'chat_participants',
        'chat_rooms',
        'payment_retries',
        'payment_methods',
        'payments',
        'payout_requests',
        'wallet_transactions',
        'wallets',
        'project_quotes',
        'projects',
        'profiles',
    ):
        op.drop_table(table)
