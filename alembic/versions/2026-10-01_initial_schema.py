"""Initial schema: users, wallpapers, tags, forum and reports

Revision ID: wallnest_initial_001
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'wallnest_initial_001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True))
    return columns


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('users',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('username', sa.String(length=50), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=True),
    sa.Column('hashed_password', sa.String(length=255), nullable=False),
    sa.Column('full_name', sa.String(length=100), nullable=True),
    sa.Column('avatar_url', sa.String(length=500), nullable=True),
    sa.Column('bio', sa.Text(), nullable=True),
    sa.Column('role', sa.Enum('admin', 'user', name='user_role'), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id', name=op.f('users_pkey'))
    )
    op.create_index(op.f('users_id_idx'), 'users', ['id'], unique=False)
    op.create_index(op.f('users_username_idx'), 'users', ['username'], unique=True)
    op.create_index(op.f('users_email_idx'), 'users', ['email'], unique=True)

    op.create_table('tags',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=50), nullable=False),
    sa.Column('slug', sa.String(length=50), nullable=False),
    sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
    *_timestamps(updated=False),
    sa.CheckConstraint('usage_count >= 0', name=op.f('tags_usage_count_non_negative_check')),
    sa.PrimaryKeyConstraint('id', name=op.f('tags_pkey')),
    sa.UniqueConstraint('name', name=op.f('tags_name_key'))
    )
    op.create_index(op.f('tags_id_idx'), 'tags', ['id'], unique=False)
    op.create_index(op.f('tags_slug_idx'), 'tags', ['slug'], unique=True)

    op.create_table('wallpapers',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('title', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('file_url', sa.String(length=500), nullable=False),
    sa.Column('thumbnail_url', sa.String(length=500), nullable=True),
    sa.Column('file_size', sa.Integer(), nullable=False),
    sa.Column('width', sa.Integer(), nullable=False),
    sa.Column('height', sa.Integer(), nullable=False),
    sa.Column('format', sa.String(length=10), nullable=False),
    sa.Column('aspect_ratio', sa.Numeric(precision=6, scale=2), nullable=True),
    sa.Column('category', sa.String(length=20), nullable=False),
    sa.Column('status', sa.Integer(), nullable=False),
    sa.Column('is_featured', sa.Boolean(), nullable=False),
    sa.Column('uploader_id', sa.Integer(), nullable=False),
    sa.Column('view_count', sa.Integer(), server_default='0', nullable=False),
    sa.Column('like_count', sa.Integer(), server_default='0', nullable=False),
    sa.Column('favorite_count', sa.Integer(), server_default='0', nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['uploader_id'], ['users.id'], name=op.f('wallpapers_uploader_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name=op.f('wallpapers_pkey'))
    )
    op.create_index(op.f('wallpapers_id_idx'), 'wallpapers', ['id'], unique=False)
    op.create_index(op.f('wallpapers_category_idx'), 'wallpapers', ['category'], unique=False)
    op.create_index(op.f('wallpapers_status_idx'), 'wallpapers', ['status'], unique=False)
    op.create_index(op.f('wallpapers_uploader_id_idx'), 'wallpapers', ['uploader_id'], unique=False)

    op.create_table('wallpaper_tags',
    sa.Column('wallpaper_id', sa.Integer(), nullable=False),
    sa.Column('tag_id', sa.Integer(), nullable=False),
    *_timestamps(updated=False),
    sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], name=op.f('wallpaper_tags_tag_id_fkey'), ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['wallpaper_id'], ['wallpapers.id'], name=op.f('wallpaper_tags_wallpaper_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('wallpaper_id', 'tag_id', name=op.f('wallpaper_tags_pkey'))
    )
    op.create_index(op.f('wallpaper_tags_tag_id_idx'), 'wallpaper_tags', ['tag_id'], unique=False)

    for table, constraint in (('user_likes', 'uq_user_likes_user_wallpaper'),
                              ('user_favorites', 'uq_user_favorites_user_wallpaper')):
        op.create_table(table,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('wallpaper_id', sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f(f'{table}_user_id_fkey'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['wallpaper_id'], ['wallpapers.id'], name=op.f(f'{table}_wallpaper_id_fkey'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f(f'{table}_pkey')),
        sa.UniqueConstraint('user_id', 'wallpaper_id', name=constraint)
        )
        op.create_index(op.f(f'{table}_id_idx'), table, ['id'], unique=False)
        op.create_index(op.f(f'{table}_user_id_idx'), table, ['user_id'], unique=False)
        op.create_index(op.f(f'{table}_wallpaper_id_idx'), table, ['wallpaper_id'], unique=False)

    op.create_table('view_history',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('wallpaper_id', sa.Integer(), nullable=False),
    sa.Column('viewed_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('view_history_user_id_fkey'), ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['wallpaper_id'], ['wallpapers.id'], name=op.f('view_history_wallpaper_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name=op.f('view_history_pkey')),
    sa.UniqueConstraint('user_id', 'wallpaper_id', name='uq_view_history_user_wallpaper')
    )
    op.create_index(op.f('view_history_id_idx'), 'view_history', ['id'], unique=False)
    op.create_index(op.f('view_history_user_id_idx'), 'view_history', ['user_id'], unique=False)
    op.create_index(op.f('view_history_wallpaper_id_idx'), 'view_history', ['wallpaper_id'], unique=False)

    op.create_table('posts',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('summary', sa.String(length=500), nullable=True),
    sa.Column('thumbnail_url', sa.String(length=500), nullable=True),
    sa.Column('category', sa.String(length=30), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('author_id', sa.Integer(), nullable=False),
    sa.Column('tags', sa.String(length=500), nullable=True),
    sa.Column('is_pinned', sa.Boolean(), nullable=False),
    sa.Column('is_featured', sa.Boolean(), nullable=False),
    sa.Column('view_count', sa.Integer(), server_default='0', nullable=False),
    sa.Column('like_count', sa.Integer(), server_default='0', nullable=False),
    sa.Column('comment_count', sa.Integer(), server_default='0', nullable=False),
    sa.Column('last_comment_at', sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['author_id'], ['users.id'], name=op.f('posts_author_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name=op.f('posts_pkey'))
    )
    op.create_index(op.f('posts_id_idx'), 'posts', ['id'], unique=False)
    op.create_index(op.f('posts_category_idx'), 'posts', ['category'], unique=False)
    op.create_index(op.f('posts_status_idx'), 'posts', ['status'], unique=False)
    op.create_index(op.f('posts_author_id_idx'), 'posts', ['author_id'], unique=False)

    op.create_table('post_likes',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('post_id', sa.Integer(), nullable=False),
    *_timestamps(updated=False),
    sa.ForeignKeyConstraint(['post_id'], ['posts.id'], name=op.f('post_likes_post_id_fkey'), ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('post_likes_user_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name=op.f('post_likes_pkey')),
    sa.UniqueConstraint('user_id', 'post_id', name='uq_post_likes_user_post')
    )
    op.create_index(op.f('post_likes_id_idx'), 'post_likes', ['id'], unique=False)
    op.create_index(op.f('post_likes_user_id_idx'), 'post_likes', ['user_id'], unique=False)
    op.create_index(op.f('post_likes_post_id_idx'), 'post_likes', ['post_id'], unique=False)

    op.create_table('comments',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('post_id', sa.Integer(), nullable=False),
    sa.Column('author_id', sa.Integer(), nullable=False),
    sa.Column('parent_id', sa.Integer(), nullable=True),
    sa.Column('like_count', sa.Integer(), server_default='0', nullable=False),
    sa.Column('reply_count', sa.Integer(), server_default='0', nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['author_id'], ['users.id'], name=op.f('comments_author_id_fkey'), ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['parent_id'], ['comments.id'], name=op.f('comments_parent_id_fkey'), ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['post_id'], ['posts.id'], name=op.f('comments_post_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name=op.f('comments_pkey'))
    )
    op.create_index(op.f('comments_id_idx'), 'comments', ['id'], unique=False)
    op.create_index(op.f('comments_post_id_idx'), 'comments', ['post_id'], unique=False)
    op.create_index(op.f('comments_author_id_idx'), 'comments', ['author_id'], unique=False)
    op.create_index(op.f('comments_parent_id_idx'), 'comments', ['parent_id'], unique=False)

    op.create_table('comment_likes',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('comment_id', sa.Integer(), nullable=False),
    *_timestamps(updated=False),
    sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], name=op.f('comment_likes_comment_id_fkey'), ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('comment_likes_user_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name=op.f('comment_likes_pkey')),
    sa.UniqueConstraint('user_id', 'comment_id', name='uq_comment_likes_user_comment')
    )
    op.create_index(op.f('comment_likes_id_idx'), 'comment_likes', ['id'], unique=False)
    op.create_index(op.f('comment_likes_user_id_idx'), 'comment_likes', ['user_id'], unique=False)
    op.create_index(op.f('comment_likes_comment_id_idx'), 'comment_likes', ['comment_id'], unique=False)

    op.create_table('reports',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('target_type', sa.String(length=20), nullable=False),
    sa.Column('target_id', sa.Integer(), nullable=False),
    sa.Column('reason', sa.String(length=30), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('reviewed_by', sa.Integer(), nullable=True),
    sa.Column('review_note', sa.Text(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], name=op.f('reports_reviewed_by_fkey'), ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('reports_user_id_fkey'), ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name=op.f('reports_pkey')),
    sa.UniqueConstraint('user_id', 'target_type', 'target_id', name='uq_reports_user_target')
    )
    op.create_index(op.f('reports_id_idx'), 'reports', ['id'], unique=False)
    op.create_index(op.f('reports_user_id_idx'), 'reports', ['user_id'], unique=False)
    op.create_index(op.f('reports_reason_idx'), 'reports', ['reason'], unique=False)
    op.create_index(op.f('reports_status_idx'), 'reports', ['status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for table in ('reports', 'comment_likes', 'comments', 'post_likes', 'posts', 'view_history',
                  'user_favorites', 'user_likes', 'wallpaper_tags', 'wallpapers', 'tags', 'users'):
        op.drop_table(table)
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
