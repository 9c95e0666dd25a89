"""add mes to absolute_metrics

Revision ID: b57e19f4c2a8
Revises: 3a91c0d2e7b4
Create Date: 2026-09-15 18:02:11.730458

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b57e19f4c2a8'
down_revision: Union[str, None] = '3a91c0d2e7b4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:

    op.add_column('absolute_metrics', sa.Column('mes', sa.String(length=20), nullable=True))



def downgrade() -> None:

    op.drop_column('absolute_metrics', 'mes')
