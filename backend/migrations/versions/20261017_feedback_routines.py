"""Feedback, routines and gateway bank code

Revision ID: 20261017_feedback_routines
Revises: 20261001_initial
Create Date: 2026-10-17

This migration adds:
1. Product feedback (content + 1-5 rating, staff can hide)
2. Skincare routines per skin type with ordered steps
3. orders.gateway_bank_code reported by the payment gateway
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_feedback_routines'
down_revision = '20261001_initial'
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. FEEDBACK
    # ==========================================================================
    op.create_table('feedback',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_feedback_rating_range'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('feedback', schema=None) as batch_op:
        batch_op.create_index('ix_feedback_account_id', ['account_id'], unique=False)
        batch_op.create_index('ix_feedback_product_visible', ['product_id', 'is_visible'], unique=False)

    # ==========================================================================
    # 2. ROUTINES
    # ==========================================================================
    op.create_table('routines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('skin_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['skin_id'], ['skins.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('routines', schema=None) as batch_op:
        batch_op.create_index('ix_routines_skin_id', ['skin_id'], unique=False)

    op.create_table('routine_steps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('routine_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.CheckConstraint('position >= 1', name='ck_routine_steps_position_positive'),
        sa.ForeignKeyConstraint(['routine_id'], ['routines.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('routine_id', 'position', name='uq_routine_steps_position'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('routine_steps', schema=None) as batch_op:
        batch_op.create_index('ix_routine_steps_routine_id', ['routine_id'], unique=False)

    # ==========================================================================
    # 3. ORDERS: GATEWAY BANK CODE
    # ==========================================================================
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.add_column(sa.Column('gateway_bank_code', sa.String(length=32), nullable=True))


def downgrade():
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.drop_column('gateway_bank_code')

    op.drop_table('routine_steps')
    op.drop_table('routines')
    op.drop_table('feedback')
