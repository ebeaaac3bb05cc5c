"""create_gig_tables

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '20261019_01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    'user_status': ('active', 'pending', 'inactive'),
    'organization_type': ('Production', 'Sound', 'Lighting', 'Staging', 'Rentals', 'Venue', 'Act', 'Agency'),
    'user_role': ('Admin', 'Manager', 'Staff', 'Viewer'),
    'gig_status': ('DateHold', 'Proposed', 'Booked', 'Completed', 'Cancelled', 'Settled'),
    'assignment_status': ('Requested', 'Confirmed', 'Declined'),
    'bid_result': ('Accepted', 'Rejected', 'Pending'),
    'invitation_status': ('pending', 'accepted', 'expired', 'cancelled'),
}


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == 'postgresql'


def _enum(name: str):
    # Postgres types are created once up front; several tables share them.
    if _is_postgres():
        return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)
    return sa.Enum(*ENUMS[name], name=name)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _id():
    return sa.Column('id', sa.String(36), primary_key=True)


def _fk(column: str, target: str, nullable: bool = False, ondelete: str = 'CASCADE', **kw):
    return sa.Column(column, sa.String(36), sa.ForeignKey(target, ondelete=ondelete, **kw), nullable=nullable)


def upgrade() -> None:
    if _is_postgres():
        bind = op.get_bind()
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(), nullable=False, server_default=''),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('address_line1', sa.String(), nullable=True),
        sa.Column('address_line2', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('postal_code', sa.String(), nullable=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('role_hint', sa.String(), nullable=True),
        sa.Column('user_status', _enum('user_status'), nullable=False, server_default='active'),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_user_status', 'users', ['user_status'])

    op.create_table(
        'organizations',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', _enum('organization_type'), nullable=False),
        sa.Column('url', sa.String(), nullable=True),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('address_line1', sa.String(), nullable=True),
        sa.Column('address_line2', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('postal_code', sa.String(), nullable=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('allowed_domains', sa.String(), nullable=True),
        sa.Column('place_id', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_organizations_name', 'organizations', ['name'])
    op.create_index('ix_organizations_type', 'organizations', ['type'])

    op.create_table(
        'staff_roles',
        _id(),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'organization_members',
        _id(),
        _fk('organization_id', 'organizations.id'),
        _fk('user_id', 'users.id', onupdate='CASCADE'),
        sa.Column('role', _enum('user_role'), nullable=False),
        _fk('default_staff_role_id', 'staff_roles.id', nullable=True, ondelete='SET NULL'),
        *_timestamps(),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_org_member'),
    )
    op.create_index('ix_organization_members_organization_id', 'organization_members', ['organization_id'])
    op.create_index('ix_organization_members_user_id', 'organization_members', ['user_id'])

    op.create_table(
        'gigs',
        _id(),
        _fk('organization_id', 'organizations.id'),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('status', _enum('gig_status'), nullable=False, server_default='DateHold'),
        sa.Column('tags', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('start', sa.DateTime(), nullable=False),
        sa.Column('end', sa.DateTime(), nullable=False),
        sa.Column('timezone', sa.String(), nullable=False),
        sa.Column('amount_paid', sa.Numeric(10, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('parent_gig_id', 'gigs.id', nullable=True),
        sa.Column('hierarchy_depth', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('updated_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_gigs_organization_id', 'gigs', ['organization_id'])
    op.create_index('ix_gigs_status', 'gigs', ['status'])
    op.create_index('ix_gigs_start', 'gigs', ['start'])
    op.create_index('ix_gigs_parent_gig_id', 'gigs', ['parent_gig_id'])

    op.create_table(
        'gig_participants',
        _id(),
        _fk('gig_id', 'gigs.id'),
        _fk('organization_id', 'organizations.id'),
        sa.Column('role', _enum('organization_type'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_gig_participants_gig_id', 'gig_participants', ['gig_id'])
    op.create_index('ix_gig_participants_organization_id', 'gig_participants', ['organization_id'])

    op.create_table(
        'gig_status_history',
        _id(),
        _fk('gig_id', 'gigs.id'),
        sa.Column('from_status', _enum('gig_status'), nullable=True),
        sa.Column('to_status', _enum('gig_status'), nullable=False),
        sa.Column('changed_by', sa.String(36), nullable=True),
        sa.Column('changed_at', sa.DateTime(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_gig_status_history_gig_id', 'gig_status_history', ['gig_id'])

    op.create_table(
        'gig_staff_slots',
        _id(),
        _fk('gig_id', 'gigs.id'),
        _fk('organization_id', 'organizations.id', nullable=True),
        _fk('staff_role_id', 'staff_roles.id', ondelete='RESTRICT'),
        sa.Column('required_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_gig_staff_slots_gig_id', 'gig_staff_slots', ['gig_id'])
    op.create_index('ix_gig_staff_slots_organization_id', 'gig_staff_slots', ['organization_id'])

    op.create_table(
        'gig_staff_assignments',
        _id(),
        _fk('slot_id', 'gig_staff_slots.id'),
        _fk('user_id', 'users.id', onupdate='CASCADE'),
        sa.Column('status', _enum('assignment_status'), nullable=False, server_default='Requested'),
        sa.Column('rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('fee', sa.Numeric(10, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_gig_staff_assignments_slot_id', 'gig_staff_assignments', ['slot_id'])
    op.create_index('ix_gig_staff_assignments_user_id', 'gig_staff_assignments', ['user_id'])

    op.create_table(
        'gig_bids',
        _id(),
        _fk('gig_id', 'gigs.id'),
        _fk('organization_id', 'organizations.id'),
        sa.Column('date_given', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('result', _enum('bid_result'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('client_token', sa.String(64), nullable=True),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('gig_id', 'organization_id', 'client_token', name='uq_gig_bid_client_token'),
    )
    op.create_index('ix_gig_bids_gig_id', 'gig_bids', ['gig_id'])
    op.create_index('ix_gig_bids_organization_id', 'gig_bids', ['organization_id'])

    op.create_table(
        'assets',
        _id(),
        _fk('organization_id', 'organizations.id'),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('sub_category', sa.String(), nullable=True),
        sa.Column('manufacturer_model', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=True),
        sa.Column('serial_number', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('acquisition_date', sa.Date(), nullable=True),
        sa.Column('vendor', sa.String(), nullable=True),
        sa.Column('cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('replacement_value', sa.Numeric(10, 2), nullable=True),
        sa.Column('insurance_policy_added', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('updated_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_assets_organization_id', 'assets', ['organization_id'])

    op.create_table(
        'kits',
        _id(),
        _fk('organization_id', 'organizations.id'),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tags', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('updated_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_kits_organization_id', 'kits', ['organization_id'])
    op.create_index('ix_kits_category', 'kits', ['category'])

    op.create_table(
        'kit_assets',
        _id(),
        _fk('kit_id', 'kits.id'),
        _fk('asset_id', 'assets.id'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('kit_id', 'asset_id', name='uq_kit_asset'),
    )
    op.create_index('ix_kit_assets_kit_id', 'kit_assets', ['kit_id'])
    op.create_index('ix_kit_assets_asset_id', 'kit_assets', ['asset_id'])

    op.create_table(
        'gig_kit_assignments',
        _id(),
        _fk('organization_id', 'organizations.id'),
        _fk('gig_id', 'gigs.id'),
        _fk('kit_id', 'kits.id'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('assigned_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('gig_id', 'kit_id', name='uq_gig_kit'),
    )
    op.create_index('ix_gig_kit_assignments_organization_id', 'gig_kit_assignments', ['organization_id'])
    op.create_index('ix_gig_kit_assignments_gig_id', 'gig_kit_assignments', ['gig_id'])
    op.create_index('ix_gig_kit_assignments_kit_id', 'gig_kit_assignments', ['kit_id'])

    op.create_table(
        'invitations',
        _id(),
        _fk('organization_id', 'organizations.id'),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', _enum('user_role'), nullable=False),
        _fk('invited_by', 'users.id'),
        sa.Column('status', _enum('invitation_status'), nullable=False, server_default='pending'),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        _fk('accepted_by', 'users.id', nullable=True, ondelete='SET NULL'),
        *_timestamps(),
    )
    op.create_index('ix_invitations_organization_id', 'invitations', ['organization_id'])
    op.create_index('ix_invitations_email', 'invitations', ['email'])
    op.create_index('ix_invitations_status', 'invitations', ['status'])
    op.create_index('ix_invitations_token', 'invitations', ['token'], unique=True)


def downgrade() -> None:
    for table in (
        'invitations',
        'gig_kit_assignments',
        'kit_assets',
        'kits',
        'assets',
        'gig_bids',
        'gig_staff_assignments',
        'gig_staff_slots',
        'gig_status_history',
        'gig_participants',
        'gigs',
        'organization_members',
        'staff_roles',
        'organizations',
        'users',
    ):
        op.drop_table(table)
    if _is_postgres():
        for name in ENUMS:
            op.execute(f"DROP TYPE IF EXISTS {name}")
