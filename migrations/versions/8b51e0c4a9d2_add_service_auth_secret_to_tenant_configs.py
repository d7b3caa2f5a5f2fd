"""add service auth secret to tenant configs

Revision ID: 8b51e0c4a9d2
Revises: 3f9c2a7d1b04
Create Date: 2026-10-19 14:03:27.905116

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b51e0c4a9d2'
down_revision: Union[str, Sequence[str], None] = '3f9c2a7d1b04'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the shared secret the platform presents on order calls."""
    op.add_column(
        'paypal_tenant_configs',
        sa.Column(
            'service_auth_secret',
            sa.Text(),
            nullable=True,
            comment='Shared secret expected in X-Service-Auth; order calls are refused while unset',
        ),
    )


def downgrade() -> None:
    """Drop the service auth secret column."""
    op.drop_column('paypal_tenant_configs', 'service_auth_secret')
