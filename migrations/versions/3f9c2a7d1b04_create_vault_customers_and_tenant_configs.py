"""create vault customers and tenant configs

Revision ID: 3f9c2a7d1b04
Revises:
Create Date: 2026-10-18 09:12:44.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1b04'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create paypal_vault_customers and paypal_tenant_configs tables."""
    op.create_table(
        'paypal_vault_customers',
        sa.Column(
            'tenant_id',
            sa.Text(),
            nullable=False,
            comment='Merchant platform API URL'
        ),
        sa.Column(
            'platform_user_id',
            sa.Text(),
            nullable=False,
            comment='Buyer id on the merchant platform'
        ),
        sa.Column(
            'processor_customer_id',
            sa.Text(),
            nullable=False,
            comment='PayPal vault customer id'
        ),
        sa.Column(
            'created_at',
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('tenant_id', 'platform_user_id', name='pk_paypal_vault_customers'),
    )

    # Reverse lookup from a PayPal customer (vault webhooks)
    op.create_index(
        'idx_paypal_vault_customers_customer',
        'paypal_vault_customers',
        ['tenant_id', 'processor_customer_id']
    )

    op.create_table(
        'paypal_tenant_configs',
        sa.Column('tenant_id', sa.Text(), nullable=False, comment='Merchant platform API URL'),
        sa.Column('client_id', sa.Text(), nullable=False),
        sa.Column('client_secret', sa.Text(), nullable=False),
        sa.Column(
            'environment',
            sa.String(length=16),
            server_default='SANDBOX',
            nullable=False,
            comment='SANDBOX or LIVE'
        ),
        sa.Column('merchant_id', sa.Text(), nullable=True),
        sa.Column('merchant_email', sa.Text(), nullable=True),
        sa.Column('webhook_id', sa.Text(), nullable=True),
        sa.Column('partner_fee_percent', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('soft_descriptor', sa.String(length=22), nullable=True),
        sa.Column(
            'platform_app_token',
            sa.Text(),
            nullable=True,
            comment='App token for reporting transaction events to the platform'
        ),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column(
            'created_at',
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.Column(
            'updated_at',
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('tenant_id', name='pk_paypal_tenant_configs'),
    )


def downgrade() -> None:
    """Drop paypal_tenant_configs and paypal_vault_customers tables."""
    op.drop_table('paypal_tenant_configs')
    op.drop_index('idx_paypal_vault_customers_customer', table_name='paypal_vault_customers')
    op.drop_table('paypal_vault_customers')
