"""Add two-factor version counter to admin users

Revision ID: 002_two_factor_version
Revises: 001_initial
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '002_two_factor_version'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('admin_users', sa.Column('two_factor_version', sa.Integer(), nullable=False, server_default='0'))


def downgrade() -> None:
    op.drop_column('admin_users', 'two_factor_version')
