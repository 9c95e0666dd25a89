"""init schema

Revision ID: 3a91c0d2e7b4
Revises: 
Create Date: 2026-09-02 10:14:37.512093

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3a91c0d2e7b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('suc_sap', sa.String(length=50), nullable=False),
        sa.Column('sucursal', sa.String(length=255), nullable=True),
        sa.Column('format', sa.String(length=50), nullable=False),
        sa.Column('zona', sa.String(length=50), nullable=True),
        sa.Column('distrito', sa.String(length=50), nullable=True),
        sa.Column('estado', sa.String(length=50), nullable=False),
        sa.Column('municipio', sa.String(length=50), nullable=True),
        sa.Column('ciudad', sa.String(length=50), nullable=True),
        sa.Column('calle', sa.String(length=255), nullable=True),
        sa.Column('colonia', sa.String(length=100), nullable=True),
        sa.Column('cp', sa.String(length=10), nullable=True),
        sa.Column('lat', sa.Float(), nullable=True),
        sa.Column('lon', sa.Float(), nullable=True),
        sa.Column('first_seen', sa.Date(), nullable=False),
        sa.Column('last_seen', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('user_id', 'suc_sap', name='uq_stores_user_suc_sap'),
    )
    op.create_index('ix_stores_user_id', 'stores', ['user_id'])

    op.create_table(
        'growth_metrics',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('store_id', sa.Integer(), sa.ForeignKey('stores.id'), nullable=False),
        sa.Column('period', sa.Date(), nullable=False),
        sa.Column('year_comparison', sa.String(length=50), nullable=False),
        sa.Column('revenue_growth_pct', sa.Float(), nullable=True),
        sa.Column('orders_growth_pct', sa.Float(), nullable=True),
        sa.Column('ticket_growth_pct', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('store_id', 'period', 'year_comparison', name='uq_growth_store_period_comparison'),
    )
    op.create_index('ix_growth_metrics_store_id', 'growth_metrics', ['store_id'])

    op.create_table(
        'absolute_metrics',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('store_id', sa.Integer(), sa.ForeignKey('stores.id'), nullable=False),
        sa.Column('period', sa.Date(), nullable=False),
        sa.Column('ventas', sa.Float(), nullable=True),
        sa.Column('ordenes', sa.Integer(), nullable=True),
        sa.Column('tickets', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('store_id', 'period', name='uq_absolute_store_period'),
    )
    op.create_index('ix_absolute_metrics_store_id', 'absolute_metrics', ['store_id'])

    op.create_table(
        'upload_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('format_type', sa.String(length=20), nullable=False),
        sa.Column('period_month', sa.String(length=7), nullable=False),
        sa.Column('stores_imported', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('new_stores', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('existing_stores', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('closed_stores', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('metrics_imported', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_errors', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_upload_history_user_id', 'upload_history', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_upload_history_user_id', table_name='upload_history')
    op.drop_table('upload_history')
    op.drop_index('ix_absolute_metrics_store_id', table_name='absolute_metrics')
    op.drop_table('absolute_metrics')
    op.drop_index('ix_growth_metrics_store_id', table_name='growth_metrics')
    op.drop_table('growth_metrics')
    op.drop_index('ix_stores_user_id', table_name='stores')
    op.drop_table('stores')
