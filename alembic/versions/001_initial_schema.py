"""
Initial schema - all WebShield tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ============== TABLES ==============

    # Users
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('password', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('plan', sa.String(20), nullable=False, server_default='Base'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    # Scans
    op.create_table('scans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(2048), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('scan_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('results', sa.JSON(), nullable=False),
        sa.Column('ai_advice', sa.Text(), nullable=True),
        sa.Column('report_url', sa.String(1024), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_scans_user_date', 'scans', ['user_id', 'scan_date'])

    # Compliance assessments
    op.create_table('compliance_assessments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('recommendations', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_compliance_user_created', 'compliance_assessments', ['user_id', 'created_at'])

    # Reports
    op.create_table('reports',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('scan_id', sa.Integer(), nullable=True),
        sa.Column('compliance_id', sa.Integer(), nullable=True),
        sa.Column('report_type', sa.String(20), nullable=False),
        sa.Column('file_path', sa.String(1024), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['scan_id'], ['scans.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['compliance_id'], ['compliance_assessments.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reports_user_created', 'reports', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_reports_user_created', table_name='reports')
    op.drop_table('reports')
    op.drop_index('ix_compliance_user_created', table_name='compliance_assessments')
    op.drop_table('compliance_assessments')
    op.drop_index('ix_scans_user_date', table_name='scans')
    op.drop_table('scans')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
