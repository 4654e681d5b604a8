"""create content vault tables

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c3e5f70001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_is_admin', 'users', ['is_admin'])

    op.create_table(
        'projects',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('free_video_limit', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('free_headshot_limit', sa.Integer(), nullable=True),
        sa.Column('additional_3_videos_price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='199.00'),
        sa.Column('all_content_price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='499.00'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_projects_owner_user_id', 'projects', ['owner_user_id'])

    op.create_table(
        'content_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('file_url', sa.String(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='25.00'),
        sa.Column('thumbnail_url', sa.String(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('aspect_ratio', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_content_items_id', 'content_items', ['id'])
    op.create_index('ix_content_items_project_id', 'content_items', ['project_id'])
    op.create_index('ix_content_items_owner_user_id', 'content_items', ['owner_user_id'])
    op.create_index('ix_content_items_type', 'content_items', ['type'])
    op.create_index('idx_content_items_project_type', 'content_items', ['project_id', 'type'])

    op.create_table(
        'project_entitlements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=False),
        sa.Column('has_additional_3_videos', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_all_remaining_content', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'project_id', name='uq_project_entitlements_user_project'),
    )
    op.create_index('ix_project_entitlements_id', 'project_entitlements', ['id'])
    op.create_index('ix_project_entitlements_user_id', 'project_entitlements', ['user_id'])
    op.create_index('ix_project_entitlements_project_id', 'project_entitlements', ['project_id'])

    op.create_table(
        'selections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=False),
        sa.Column('content_item_id', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(), nullable=False),
        sa.Column('selection_type', sa.String(), nullable=False, server_default='free'),
        sa.Column('selected_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.ForeignKeyConstraint(['content_item_id'], ['content_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'content_item_id', name='uq_selections_user_content_item'),
    )
    op.create_index('ix_selections_id', 'selections', ['id'])
    op.create_index('ix_selections_user_id', 'selections', ['user_id'])
    op.create_index('ix_selections_project_id', 'selections', ['project_id'])
    op.create_index('ix_selections_content_item_id', 'selections', ['content_item_id'])
    op.create_index('idx_selections_user_project_type', 'selections', ['user_id', 'project_id', 'content_type'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=True),
        sa.Column('content_item_id', sa.Integer(), nullable=True),
        sa.Column('package_type', sa.String(), nullable=True),
        sa.Column('external_payment_intent_id', sa.String(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='usd'),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.ForeignKeyConstraint(['content_item_id'], ['content_items.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_id', 'payments', ['id'])
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])
    op.create_index('ix_payments_project_id', 'payments', ['project_id'])
    op.create_index('ix_payments_content_item_id', 'payments', ['content_item_id'])
    op.create_index('ix_payments_external_payment_intent_id', 'payments', ['external_payment_intent_id'], unique=True)
    op.create_index('ix_payments_status', 'payments', ['status'])
    op.create_index('ix_payments_created_at', 'payments', ['created_at'])
    op.create_index('idx_payments_user_item_status', 'payments', ['user_id', 'content_item_id', 'status'])

    op.create_table(
        'payment_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider_event_id', sa.String(), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('payment_intent_id', sa.String(), nullable=True),
        sa.Column('outcome', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('provider_event_id', name='uq_payment_events_provider_event_id'),
    )
    op.create_index('ix_payment_events_id', 'payment_events', ['id'])
    op.create_index('ix_payment_events_provider_event_id', 'payment_events', ['provider_event_id'])
    op.create_index('ix_payment_events_event_type', 'payment_events', ['event_type'])
    op.create_index('ix_payment_events_payment_intent_id', 'payment_events', ['payment_intent_id'])
    op.create_index('ix_payment_events_created_at', 'payment_events', ['created_at'])

    op.create_table(
        'downloads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('content_item_id', sa.Integer(), nullable=False),
        sa.Column('downloaded_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['content_item_id'], ['content_items.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_downloads_id', 'downloads', ['id'])
    op.create_index('ix_downloads_user_id', 'downloads', ['user_id'])
    op.create_index('ix_downloads_content_item_id', 'downloads', ['content_item_id'])
    op.create_index('ix_downloads_downloaded_at', 'downloads', ['downloaded_at'])


def downgrade():
    op.drop_table('downloads')
    op.drop_table('payment_events')
    op.drop_table('payments')
    op.drop_table('selections')
    op.drop_table('project_entitlements')
    op.drop_table('content_items')
    op.drop_table('projects')
    op.drop_table('users')
