"""add_region_sort_order

Revision ID: 8d41e6b0c2a5
Revises: 3f9c2a71d4e8
Create Date: 2026-10-18 09:12:47.530118

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8d41e6b0c2a5'
down_revision: Union[str, None] = '3f9c2a71d4e8'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        'regions',
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0',
                  comment='Creation sequence; regions imported together keep request order')
    )


def downgrade() -> None:
    op.drop_column('regions', 'sort_order')
