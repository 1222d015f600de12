"""create tenants, users, signups and logins

Revision ID: c4e1a7d2b9f0
Revises:
Create Date: 2026-10-18

Tables:
  tenants  — one per customer account, created when a signup code is verified
  users    — belong to a tenant; email unique per tenant
  signups  — one-time-password signup attempts (tenant_id pre-allocated)
  logins   — one-time-password login attempts for existing users

signups/logins rows are never deleted: the 24-hour rate limit counts them, so
both tables carry a composite (email, created_at) index.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = 'c4e1a7d2b9f0'
down_revision = None
branch_labels = None
depends_on = None


def _attempt_columns() -> list:
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('one_time_password_hash', sa.String(), nullable=False),
        sa.Column('retry_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('resend_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('completed', sa.Boolean(), server_default='0', nullable=False),
        sa.Column('last_sent_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('valid_until', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('modified_at', sa.TIMESTAMP(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('name', sa.String(length=30), server_default='', nullable=False),
        sa.Column(
            'state',
            sa.Enum('trial', 'active', 'suspended', name='tenant_state'),
            server_default='trial',
            nullable=False,
        ),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('modified_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'tenant_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('tenants.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column(
            'role',
            sa.Enum('owner', 'admin', 'member', name='user_role'),
            server_default='member',
            nullable=False,
        ),
        sa.Column('email_confirmed', sa.Boolean(), server_default='0', nullable=False),
        sa.Column('first_name', sa.String(length=30), nullable=True),
        sa.Column('last_name', sa.String(length=30), nullable=True),
        sa.Column('title', sa.String(length=50), nullable=True),
        sa.Column('locale', sa.String(length=10), server_default='en-US', nullable=False),
        sa.Column('last_seen_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('modified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint('tenant_id', 'email', name='uq_users_tenant_email'),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'signups',
        *_attempt_columns(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
    )
    op.create_index('ix_signups_email_created_at', 'signups', ['email', 'created_at'])

    op.create_table(
        'logins',
        *_attempt_columns(),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'tenant_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('tenants.id', ondelete='CASCADE'),
            nullable=False,
        ),
    )
    op.create_index('ix_logins_email_created_at', 'logins', ['email', 'created_at'])
    op.create_index('ix_logins_user_id', 'logins', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_logins_user_id', table_name='logins')
    op.drop_index('ix_logins_email_created_at', table_name='logins')
    op.drop_table('logins')
    op.drop_index('ix_signups_email_created_at', table_name='signups')
    op.drop_table('signups')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_tenant_id', table_name='users')
    op.drop_table('users')
    op.drop_table('tenants')
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='tenant_state').drop(op.get_bind(), checkfirst=True)
