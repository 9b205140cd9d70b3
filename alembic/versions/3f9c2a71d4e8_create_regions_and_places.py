"""create_regions_and_places

Revision ID: 3f9c2a71d4e8
Revises:
Create Date: 2026-10-17 14:40:12.118302

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2a71d4e8'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Regions: map nodes with a directed adjacency list
    op.create_table(
        'regions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('subtitle', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('position_x', sa.Float(), nullable=False, server_default='0',
                  comment='Normalized map coordinate, 0-100'),
        sa.Column('position_y', sa.Float(), nullable=False, server_default='0',
                  comment='Normalized map coordinate, 0-100'),
        sa.Column('color', sa.String(length=100), nullable=False, server_default='',
                  comment='Display gradient class name'),
        sa.Column('key_locations', sa.JSON(), nullable=False),
        sa.Column('population', sa.String(length=200), nullable=False, server_default=''),
        sa.Column('threat', sa.String(length=200), nullable=False, server_default=''),
        sa.Column('connections', sa.JSON(), nullable=False,
                  comment='Directed adjacency list of region ids'),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('visibility_free_users', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('visibility_signed_in_users', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('visibility_premium_users', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_regions_name'), 'regions', ['name'], unique=False)

    # Places: owned by one region, removed with it
    op.create_table(
        'places',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('region_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('position_x', sa.Float(), nullable=False, server_default='0',
                  comment="Offset from the parent region's position"),
        sa.Column('position_y', sa.Float(), nullable=False, server_default='0',
                  comment="Offset from the parent region's position"),
        sa.Column('size', sa.String(length=10), nullable=False, server_default='medium'),
        sa.Column('importance', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('connections', sa.JSON(), nullable=False,
                  comment='Place ids within the same region'),
        sa.Column('routes', sa.JSON(), nullable=False,
                  comment='Directed route metadata: to, type, danger, description'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['region_id'], ['regions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_places_region_id'), 'places', ['region_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_places_region_id'), table_name='places')
    op.drop_table('places')
    op.drop_index(op.f('ix_regions_name'), table_name='regions')
    op.drop_table('regions')
