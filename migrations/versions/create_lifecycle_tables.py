"""Create users, tasks, offers and chat tables

Revision ID: create_lifecycle_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'create_lifecycle_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('default_zip_code', sa.String(length=10), nullable=True),
        sa.Column('stripe_account_id', sa.String(length=255), nullable=True, unique=True),
        sa.Column('payouts_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('zip_code', sa.String(length=10), nullable=False),
        sa.Column('area_description', sa.String(length=255), nullable=False),
        sa.Column('full_address', sa.String(length=500), nullable=False),
        sa.Column('price', sa.Numeric(12, 4), nullable=False),
        sa.Column('photos_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('confirmation_code', sa.String(length=12), nullable=False),
        sa.Column('poster_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('poster_name', sa.String(length=120), nullable=True),
        sa.Column('helper_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('helper_name', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='requested'),
        sa.Column('checkout_session_id', sa.String(length=255), nullable=True, unique=True),
        sa.Column('chosen_offer_id', sa.String(length=32), nullable=True),
        sa.Column('payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('charge_id', sa.String(length=255), nullable=True),
        sa.Column('platform_fee_amount', sa.Integer(), nullable=True),
        sa.Column('helper_amount', sa.Integer(), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('canceled_at', sa.DateTime(), nullable=True),
        sa.Column('disputed_at', sa.DateTime(), nullable=True),
        sa.Column('canceled_by', sa.String(length=10), nullable=True),
        sa.Column('dispute_reason', sa.Text(), nullable=True),
        sa.CheckConstraint('price > 0', name='ck_tasks_price_positive'),
        sa.CheckConstraint(
            "status IN ('requested', 'accepted', 'in_progress', 'completed', 'canceled', 'disputed')",
            name='ck_tasks_status'
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'released', 'refunded')",
            name='ck_tasks_payment_status'
        ),
        sa.CheckConstraint('(helper_id IS NULL) = (accepted_at IS NULL)', name='ck_tasks_helper_bound_on_accept'),
        sa.CheckConstraint("status != 'requested' OR helper_id IS NULL", name='ck_tasks_requested_unassigned'),
    )
    op.create_index('ix_tasks_category', 'tasks', ['category'])
    op.create_index('ix_tasks_zip_code', 'tasks', ['zip_code'])
    op.create_index('ix_tasks_poster_id', 'tasks', ['poster_id'])
    op.create_index('ix_tasks_helper_id', 'tasks', ['helper_id'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_checkout_session_id', 'tasks', ['checkout_session_id'])
    op.create_index('ix_tasks_created_at', 'tasks', ['created_at'])

    op.create_table(
        'offers',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('task_id', sa.String(length=32), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('helper_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('helper_name', sa.String(length=120), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('proposed_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('task_id', 'helper_id', name='unique_task_offer'),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'declined')", name='ck_offers_status'),
    )
    op.create_index('ix_offers_task_id', 'offers', ['task_id'])
    op.create_index('ix_offers_helper_id', 'offers', ['helper_id'])
    op.create_index(
        'uq_offers_one_accepted_per_task', 'offers', ['task_id'], unique=True,
        sqlite_where=sa.text("status = 'accepted'"),
        postgresql_where=sa.text("status = 'accepted'"),
    )

    op.create_table(
        'chat_threads',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('task_id', sa.String(length=32), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('poster_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('helper_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_chat_threads_task_id', 'chat_threads', ['task_id'], unique=True)
    op.create_index('ix_chat_threads_poster_id', 'chat_threads', ['poster_id'])
    op.create_index('ix_chat_threads_helper_id', 'chat_threads', ['helper_id'])

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('thread_id', sa.String(length=32), sa.ForeignKey('chat_threads.id'), nullable=False),
        sa.Column('sender_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('sender_name', sa.String(length=120), nullable=True),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('is_proof', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_chat_messages_thread_id', 'chat_messages', ['thread_id'])
    op.create_index('ix_chat_messages_sender_id', 'chat_messages', ['sender_id'])
    op.create_index('ix_chat_messages_created_at', 'chat_messages', ['created_at'])


def downgrade():
    op.drop_table('chat_messages')
    op.drop_table('chat_threads')
    op.drop_index('uq_offers_one_accepted_per_task', table_name='offers')
    op.drop_table('offers')
    op.drop_table('tasks')
    op.drop_table('users')
