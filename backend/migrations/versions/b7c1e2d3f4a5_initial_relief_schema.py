"""initial relief schema

Revision ID: b7c1e2d3f4a5
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the help-request fulfillment schema:
- items: supply catalog
- organizations / memberships: responder identities (read-only inputs)
- pins: reported help requests (pending -> confirmed, deleted when fulfilled)
- pin_items: requested/remaining quantities per pin and item
- notifications: per-recipient fan-out records

pin_items.pin_id has no ON DELETE CASCADE: lines are removed explicitly
before their pin.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1e2d3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_items_name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('account_actor_id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_organizations_account_actor_id', 'organizations', ['account_actor_id'], unique=True)

    op.create_table(
        'memberships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('member_type', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_memberships_actor_status', 'memberships', ['actor_id', 'status'])
    op.create_index('ix_memberships_organization_id', 'memberships', ['organization_id'])

    op.create_table(
        'pins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('reporter_actor_id', sa.String(length=64), nullable=True),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('confirmed_by_membership_id', sa.Integer(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint("status IN ('pending', 'confirmed')", name='ck_pins_status'),
        sa.CheckConstraint("kind IN ('damage', 'shelter')", name='ck_pins_kind'),
        sa.ForeignKeyConstraint(['confirmed_by_membership_id'], ['memberships.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_pins_status_created', 'pins', ['status', 'created_at'])
    op.create_index('ix_pins_reporter_actor_id', 'pins', ['reporter_actor_id'])

    op.create_table(
        'pin_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pin_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('requested_qty', sa.Integer(), nullable=False),
        sa.Column('remaining_qty', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('requested_qty > 0', name='ck_pin_items_requested_positive'),
        sa.CheckConstraint('remaining_qty >= 0', name='ck_pin_items_remaining_nonnegative'),
        sa.CheckConstraint('remaining_qty <= requested_qty', name='ck_pin_items_remaining_le_requested'),
        sa.ForeignKeyConstraint(['pin_id'], ['pins.id']),
        sa.ForeignKeyConstraint(['item_id'], ['items.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_pin_items_pin_id', 'pin_items', ['pin_id'])
    op.create_index('ix_pin_items_item_id', 'pin_items', ['item_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipient_actor_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_notifications_recipient_actor_id', 'notifications', ['recipient_actor_id'])
    op.create_index('ix_notifications_recipient_read', 'notifications', ['recipient_actor_id', 'is_read'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('notifications')
    op.drop_table('pin_items')
    op.drop_table('pins')
    op.drop_table('memberships')
    op.drop_table('organizations')
    op.drop_table('items')
