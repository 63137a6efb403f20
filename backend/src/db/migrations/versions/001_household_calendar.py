"""Household calendar schema

Revision ID: 001_household_calendar
Revises:
Create Date: 2026-10-05

Creates the household calendar tables:
- households: tenant boundary with IANA timezone and legacy role names
- family_members: dynamic member records (optionally claiming a legacy role)
- family_events: recurring activities with weekly recurrence slots (JSONB)
- event_instances: per-date occurrence overrides, unique per (event, date)
- calendar_feeds: token-addressed iCalendar subscriptions (hash + prefix)
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_household_calendar'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column() -> sa.Column:
    return sa.Column(
        'uuid',
        postgresql.UUID(as_uuid=True).with_variant(sa.LargeBinary(16), 'sqlite'),
        nullable=False
    )


def _json_type():
    return postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), 'sqlite')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    """
    Create household calendar tables.

    All tables carry an internal integer id plus a UUIDv7 column exposed as
    a prefixed GUID (hsh_, mem_, evt_, ovr_, fed_).
    """
    op.create_table(
        'households',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('legacy_names', _json_type(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_households_uuid', 'households', ['uuid'], unique=True)

    op.create_table(
        'family_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('member_type', sa.String(length=20), nullable=False, server_default='kid'),
        sa.Column('legacy_role', sa.String(length=20), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['household_id'], ['households.id'],
            name='fk_family_members_household_id', ondelete='CASCADE'
        ),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('household_id', 'legacy_role', name='uq_family_members_legacy_role'),
    )
    op.create_index('ix_family_members_uuid', 'family_members', ['uuid'], unique=True)
    op.create_index('ix_family_members_household_id', 'family_members', ['household_id'])

    op.create_table(
        'family_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='other'),
        sa.Column('participants', _json_type(), nullable=False, server_default='[]'),
        sa.Column('recurrence_slots', _json_type(), nullable=False, server_default='[]'),
        sa.Column('transportation', _json_type(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('location', sa.String(length=500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['household_id'], ['households.id'],
            name='fk_family_events_household_id', ondelete='CASCADE'
        ),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_family_events_uuid', 'family_events', ['uuid'], unique=True)
    op.create_index('ix_family_events_household_id', 'family_events', ['household_id'])
    op.create_index(
        'idx_family_events_household_start', 'family_events', ['household_id', 'start_date']
    )

    op.create_table(
        'event_instances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('occurrence_date', sa.Date(), nullable=False),
        sa.Column('cancelled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('transportation', _json_type(), nullable=True),
        sa.Column('participants', _json_type(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['event_id'], ['family_events.id'],
            name='fk_event_instances_event_id', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['household_id'], ['households.id'],
            name='fk_event_instances_household_id', ondelete='CASCADE'
        ),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('event_id', 'occurrence_date', name='uq_event_instances_event_date'),
    )
    op.create_index('ix_event_instances_uuid', 'event_instances', ['uuid'], unique=True)
    op.create_index('ix_event_instances_event_id', 'event_instances', ['event_id'])
    op.create_index(
        'idx_event_instances_household_date', 'event_instances', ['household_id', 'occurrence_date']
    )

    op.create_table(
        'calendar_feeds',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('token_prefix', sa.String(length=8), nullable=False),
        sa.Column('filter_member', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_accessed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['household_id'], ['households.id'],
            name='fk_calendar_feeds_household_id', ondelete='CASCADE'
        ),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_calendar_feeds_uuid', 'calendar_feeds', ['uuid'], unique=True)
    op.create_index('ix_calendar_feeds_token_hash', 'calendar_feeds', ['token_hash'], unique=True)
    op.create_index('ix_calendar_feeds_household_id', 'calendar_feeds', ['household_id'])


def downgrade() -> None:
    """Drop household calendar tables in reverse dependency order."""
    op.drop_table('calendar_feeds')
    op.drop_table('event_instances')
    op.drop_table('family_events')
    op.drop_table('family_members')
    op.drop_table('households')
