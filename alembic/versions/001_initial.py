"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_visibility = sa.Enum('PUBLIC', 'PRIVATE', name='user_visibility')
user_relationship_type = sa.Enum('FOLLOW', 'REQUEST', 'BLOCK', 'MUTE', name='user_relationship_type')


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('is_verified', sa.Boolean(), default=False),
        sa.Column('visibility', user_visibility, nullable=False, server_default='PUBLIC'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    # Directed relationship edges, one per (from, to, type)
    op.create_table(
        'user_relationships',
        sa.Column('from_id', sa.String(36), nullable=False),
        sa.Column('to_id', sa.String(36), nullable=False),
        sa.Column('type', user_relationship_type, nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['from_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['to_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('from_id', 'to_id', 'type'),
        sa.CheckConstraint('from_id <> to_id', name='ck_relationship_not_self'),
    )
    op.create_index('idx_relationship_to_type', 'user_relationships', ['to_id', 'type'])
    op.create_index('idx_relationship_from_type', 'user_relationships', ['from_id', 'type'])


def downgrade() -> None:
    op.drop_table('user_relationships')
    op.drop_table('users')
    user_relationship_type.drop(op.get_bind(), checkfirst=True)
    user_visibility.drop(op.get_bind(), checkfirst=True)
