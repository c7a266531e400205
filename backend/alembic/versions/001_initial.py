"""Initial migration - create all tables

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(100), unique=True, nullable=False, index=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('is_admin', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime, nullable=True),
    )

    # Create categories table
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True, index=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('parent_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    # Create subcategories table
    op.create_table(
        'subcategories',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True, index=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    # Create tags table
    op.create_table(
        'tags',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('slug', sa.String(100), nullable=False, unique=True, index=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    # Create videos table
    op.create_table(
        'videos',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('youtube_id', sa.String(20), unique=True, nullable=False, index=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('thumbnail', sa.String(500), nullable=True),
        sa.Column('duration', sa.Integer, nullable=True),
        sa.Column('views', sa.Integer, nullable=False, server_default='0'),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=True, index=True),
        sa.Column('subcategory_id', sa.Integer, sa.ForeignKey('subcategories.id'), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    # Create video_tags join table
    op.create_table(
        'video_tags',
        sa.Column('video_id', sa.Integer, sa.ForeignKey('videos.id'), primary_key=True),
        sa.Column('tag_id', sa.Integer, sa.ForeignKey('tags.id'), primary_key=True),
    )

    # Create comments table
    op.create_table(
        'comments',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('video_id', sa.Integer, sa.ForeignKey('videos.id'), nullable=False, index=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    # Create ratings table
    op.create_table(
        'ratings',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('video_id', sa.Integer, sa.ForeignKey('videos.id'), nullable=False, index=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('score', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('video_id', 'user_id', name='uq_ratings_video_user'),
        sa.CheckConstraint('score BETWEEN 1 AND 5', name='ck_ratings_score_range'),
    )

    # Create activity_logs table
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False, index=True),
        sa.Column('entity_id', sa.Integer, nullable=True),
        sa.Column('details', sa.Text, nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('timestamp', sa.DateTime, server_default=sa.func.now(), index=True),
    )

    # Create watched_channels table
    op.create_table(
        'watched_channels',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('channel_id', sa.String(50), unique=True, nullable=False, index=True),
        sa.Column('frequency', sa.String(10), nullable=False, server_default='daily'),
        sa.Column('last_check', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('watched_channels')
    op.drop_table('activity_logs')
    op.drop_table('ratings')
    op.drop_table('comments')
    op.drop_table('video_tags')
    op.drop_table('videos')
    op.drop_table('tags')
    op.drop_table('subcategories')
    op.drop_table('categories')
    op.drop_table('users')
