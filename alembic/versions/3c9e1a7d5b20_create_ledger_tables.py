"""create ledger tables

Revision ID: 3c9e1a7d5b20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c9e1a7d5b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('username', sa.String(length=100), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('first_name', sa.String(length=100), nullable=False),
    sa.Column('last_name', sa.String(length=100), nullable=False),
    sa.Column('bio', sa.Text(), nullable=True),
    sa.Column('profile_image', sa.Text(), nullable=True),
    sa.Column('role', sa.String(length=20), nullable=False),
    sa.Column('is_verified', sa.Boolean(), nullable=False, server_default='false'),
    sa.CheckConstraint("role IN ('student', 'educator')", name='ck_users_role'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('username'),
    sa.UniqueConstraint('email')
    )

    op.create_table('categories',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('image_url', sa.Text(), nullable=True),
    sa.Column('educator_count', sa.Integer(), nullable=False, server_default='0'),
    sa.CheckConstraint('educator_count >= 0', name='ck_categories_educator_count'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )

    op.create_table('educator_profiles',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('hourly_rate', sa.Float(), nullable=False),
    sa.Column('experience', sa.Text(), nullable=True),
    sa.Column('education', sa.Text(), nullable=True),
    sa.Column('specialties', sa.JSON(), nullable=False),
    sa.Column('availability', sa.JSON(), nullable=False),
    sa.Column('teaching_method', sa.Text(), nullable=True),
    sa.Column('video_introduction', sa.Text(), nullable=True),
    sa.CheckConstraint('hourly_rate > 0', name='ck_educator_profiles_hourly_rate'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id')
    )

    op.create_table('subjects',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('category_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('educator_subjects',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('educator_id', sa.Integer(), nullable=False),
    sa.Column('subject_id', sa.Integer(), nullable=False),
    sa.ForeignKeyConstraint(['educator_id'], ['educator_profiles.id']),
    sa.ForeignKeyConstraint(['subject_id'], ['subjects.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('educator_id', 'subject_id', name='uq_educator_subjects_pair')
    )

    op.create_table('sessions',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('educator_id', sa.Integer(), nullable=False),
    sa.Column('student_id', sa.Integer(), nullable=False),
    sa.Column('start_time', sa.DateTime(), nullable=False),
    sa.Column('end_time', sa.DateTime(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('total_price', sa.Float(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('payment_status', sa.String(length=20), nullable=False),
    sa.CheckConstraint('end_time > start_time', name='ck_sessions_time_order'),
    sa.CheckConstraint('total_price > 0', name='ck_sessions_total_price'),
    sa.CheckConstraint("status IN ('requested', 'confirmed', 'completed', 'cancelled')", name='ck_sessions_status'),
    sa.CheckConstraint("payment_status IN ('pending', 'paid', 'refunded')", name='ck_sessions_payment_status'),
    sa.ForeignKeyConstraint(['educator_id'], ['educator_profiles.id']),
    sa.ForeignKeyConstraint(['student_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('reviews',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('educator_id', sa.Integer(), nullable=False),
    sa.Column('student_id', sa.Integer(), nullable=False),
    sa.Column('session_id', sa.Integer(), nullable=True),
    sa.Column('rating', sa.Integer(), nullable=False),
    sa.Column('comment', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating'),
    sa.ForeignKeyConstraint(['educator_id'], ['educator_profiles.id']),
    sa.ForeignKeyConstraint(['student_id'], ['users.id']),
    sa.ForeignKeyConstraint(['session_id'], ['sessions.id']),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('testimonials',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('user_role', sa.String(length=100), nullable=False),
    sa.Column('is_visible', sa.Boolean(), nullable=False, server_default='true'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id')
    )

    # Create indexes for performance
    op.create_index('idx_subjects_category', 'subjects', ['category_id'], unique=False)
    op.create_index('idx_sessions_educator', 'sessions', ['educator_id'], unique=False)
    op.create_index('idx_sessions_student', 'sessions', ['student_id'], unique=False)
    op.create_index('idx_reviews_educator', 'reviews', ['educator_id'], unique=False)


def downgrade() -> None:
    # Drop indexes
    op.drop_index('idx_reviews_educator', table_name='reviews')
    op.drop_index('idx_sessions_student', table_name='sessions')
    op.drop_index('idx_sessions_educator', table_name='sessions')
    op.drop_index('idx_subjects_category', table_name='subjects')

    # Drop tables in reverse dependency order
    op.drop_table('testimonials')
    op.drop_table('reviews')
    op.drop_table('sessions')
    op.drop_table('educator_subjects')
    op.drop_table('subjects')
    op.drop_table('educator_profiles')
    op.drop_table('categories')
    op.drop_table('users')
