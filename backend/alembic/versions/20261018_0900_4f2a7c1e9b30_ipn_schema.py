"""IPN schema: payments, ipn_config, ipn_logs, ipn_statistics, ipn_test_logs

Revision ID: 4f2a7c1e9b30
Revises: 
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4f2a7c1e9b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create IPN ingestion tables."""
    # Enable UUID extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Create enums
    op.execute("CREATE TYPE paymentstatus AS ENUM ('paid', 'partial', 'failed')")
    op.execute("CREATE TYPE ipnlogstatus AS ENUM ('received', 'processing', 'success', 'failed', 'retry')")
    op.execute("CREATE TYPE amountupdatepolicy AS ENUM ('replace', 'accumulate', 'retain')")

    # 1. Payments table (no dependencies)
    op.create_table(
        'payments',
        sa.Column('id', sa.UUID(), server_default=sa.text('uuid_generate_v4()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('reference_number', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=True),
        sa.Column('payment_date', sa.DateTime(), nullable=False),
        sa.Column('payment_method', sa.String(length=100), nullable=False),
        sa.Column('status', postgresql.ENUM(name='paymentstatus', create_type=False), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payments_id'), 'payments', ['id'])
    op.create_index(op.f('ix_payments_created_at'), 'payments', ['created_at'])
    op.create_index(op.f('ix_payments_reference_number'), 'payments', ['reference_number'])
    op.create_index(op.f('ix_payments_status'), 'payments', ['status'])

    # 2. IPN configuration (no dependencies)
    op.create_table(
        'ipn_config',
        sa.Column('id', sa.UUID(), server_default=sa.text('uuid_generate_v4()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('webhook_url', sa.String(length=2048), nullable=True),
        sa.Column('webhook_secret', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('retry_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('retry_delay_seconds', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('timeout_seconds', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('require_signature', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column(
            'amount_update_policy',
            postgresql.ENUM(name='amountupdatepolicy', create_type=False),
            nullable=False,
            server_default='replace',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ipn_config_id'), 'ipn_config', ['id'])
    op.create_index(op.f('ix_ipn_config_created_at'), 'ipn_config', ['created_at'])
    # At most one active configuration
    op.create_index(
        'uq_ipn_config_single_active',
        'ipn_config',
        ['is_active'],
        unique=True,
        postgresql_where=sa.text('is_active IS TRUE'),
    )

    # 3. IPN logs (depends on payments)
    op.create_table(
        'ipn_logs',
        sa.Column('id', sa.UUID(), server_default=sa.text('uuid_generate_v4()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('transaction_ref', sa.String(length=255), nullable=False),
        sa.Column('payment_id', sa.UUID(), nullable=True),
        sa.Column('request_payload', postgresql.JSONB(), nullable=False),
        sa.Column('raw_body', sa.Text(), nullable=False),
        sa.Column('response_payload', postgresql.JSONB(), nullable=True),
        sa.Column('signature', sa.String(length=512), nullable=True),
        sa.Column('signature_valid', sa.Boolean(), nullable=True),
        sa.Column(
            'status',
            postgresql.ENUM(name='ipnlogstatus', create_type=False),
            nullable=False,
            server_default='received',
        ),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('response_time_ms', sa.Integer(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ip_address', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ipn_logs_id'), 'ipn_logs', ['id'])
    op.create_index(op.f('ix_ipn_logs_created_at'), 'ipn_logs', ['created_at'])
    op.create_index(op.f('ix_ipn_logs_transaction_ref'), 'ipn_logs', ['transaction_ref'])
    op.create_index(op.f('ix_ipn_logs_payment_id'), 'ipn_logs', ['payment_id'])
    op.create_index(op.f('ix_ipn_logs_status'), 'ipn_logs', ['status'])
    # Redelivery and sweeper scans filter by status and age
    op.create_index('ix_ipn_logs_status_updated_at', 'ipn_logs', ['status', 'updated_at'])

    # 4. IPN statistics (no dependencies)
    op.create_table(
        'ipn_statistics',
        sa.Column('id', sa.UUID(), server_default=sa.text('uuid_generate_v4()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('total_received', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_success', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_failed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_retries', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_response_time_ms', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ipn_statistics_id'), 'ipn_statistics', ['id'])
    op.create_index(op.f('ix_ipn_statistics_created_at'), 'ipn_statistics', ['created_at'])
    op.create_index(op.f('ix_ipn_statistics_date'), 'ipn_statistics', ['date'], unique=True)

    # 5. IPN test logs (no dependencies)
    op.create_table(
        'ipn_test_logs',
        sa.Column('id', sa.UUID(), server_default=sa.text('uuid_generate_v4()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('test_type', sa.String(length=100), nullable=False),
        sa.Column('test_payload', postgresql.JSONB(), nullable=False),
        sa.Column('expected_result', sa.String(length=20), nullable=True),
        sa.Column('actual_result', sa.String(length=20), nullable=True),
        sa.Column('passed', sa.Boolean(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ipn_test_logs_id'), 'ipn_test_logs', ['id'])
    op.create_index(op.f('ix_ipn_test_logs_created_at'), 'ipn_test_logs', ['created_at'])
    op.create_index(op.f('ix_ipn_test_logs_test_type'), 'ipn_test_logs', ['test_type'])


def downgrade() -> None:
    """Drop IPN ingestion tables."""
    op.drop_table('ipn_test_logs')
    op.drop_table('ipn_statistics')
    op.drop_index('ix_ipn_logs_status_updated_at', table_name='ipn_logs')
    op.drop_table('ipn_logs')
    op.drop_index('uq_ipn_config_single_active', table_name='ipn_config')
    op.drop_table('ipn_config')
    op.drop_table('payments')

    op.execute('DROP TYPE IF EXISTS amountupdatepolicy')
    op.execute('DROP TYPE IF EXISTS ipnlogstatus')
    op.execute('DROP TYPE IF EXISTS paymentstatus')
