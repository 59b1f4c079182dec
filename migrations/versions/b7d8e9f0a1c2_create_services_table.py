"""create services table

Revision ID: b7d8e9f0a1c2
Revises: a1c2e3f4b5d6
Create Date: 2024-05-01 10:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b7d8e9f0a1c2'
down_revision: Union[str, Sequence[str], None] = 'a1c2e3f4b5d6'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'services',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('price', sa.String(32), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(8), nullable=False, server_default='$'),
        sa.Column('billing_cycle', sa.String(16), nullable=False, server_default='monthly'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('days_remaining', sa.Integer(), nullable=False),
        sa.Column('icon', sa.String(50), nullable=False, server_default='cloud'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('renewal_link', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("billing_cycle IN ('monthly', 'yearly')", name='ck_services_billing_cycle'),
        sa.CheckConstraint("status IN ('active', 'expiring', 'expired')", name='ck_services_status'),
    )
    op.create_index('ix_services_user_id', 'services', ['user_id'])
    op.create_index('ix_services_user_expiry', 'services', ['user_id', 'expiry_date'])
    op.create_index('ix_services_user_status', 'services', ['user_id', 'status'])


def downgrade() -> None:
    op.drop_index('ix_services_user_status', table_name='services')
    op.drop_index('ix_services_user_expiry', table_name='services')
    op.drop_index('ix_services_user_id', table_name='services')
    op.drop_table('services')
