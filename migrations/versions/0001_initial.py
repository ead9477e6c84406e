from alembic import op
import sqlalchemy as sa

revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

user_type = sa.Enum('musician', 'producer', 'studio', name='user_type')
project_status = sa.Enum('draft', 'open', 'in_progress', 'completed', 'cancelled', name='project_status')
invitation_status = sa.Enum('pending', 'accepted', 'declined', 'cancelled', name='invitation_status')
session_status = sa.Enum('scheduled', 'in_progress', 'completed', 'cancelled', name='session_status')
participant_status = sa.Enum('invited', 'confirmed', 'declined', 'completed', 'no_show', name='participant_status')
payment_status = sa.Enum('pending', 'completed', 'failed', 'refunded', name='payment_status')
recurrence_pattern = sa.Enum('daily', 'weekly', 'monthly', name='recurrence_pattern')

ENUMS = (
    user_type,
    project_status,
    invitation_status,
    session_status,
    participant_status,
    payment_status,
    recurrence_pattern,
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _fk(table, ondelete='CASCADE', nullable=False):
    return sa.Column(
        f'{table[:-1]}_id',
        sa.Integer(),
        sa.ForeignKey(f'{table}.id', ondelete=ondelete),
        nullable=nullable,
    )


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('user_type', user_type, nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('bio', sa.Text()),
        sa.Column('location', sa.String()),
        sa.Column('hourly_rate', sa.Numeric(10, 2)),
        sa.Column('profile_image_url', sa.String()),
        sa.Column('twofa_secret', sa.String()),
        *_timestamps(),
    )
    op.create_table(
        'musician_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('years_experience', sa.Integer(), server_default='0'),
        sa.Column('studio_experience', sa.Boolean(), server_default=sa.false()),
        sa.Column('remote_recording_capability', sa.Boolean(), server_default=sa.false()),
        sa.Column('portfolio_url', sa.String()),
        *_timestamps(),
    )
    op.create_table(
        'instruments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('category', sa.String(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        'genres',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        'musician_instruments',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('musician_profiles'),
        _fk('instruments'),
        sa.Column('proficiency_level', sa.Integer(), server_default='1'),
        *_timestamps(),
        sa.UniqueConstraint('musician_profile_id', 'instrument_id'),
        sa.CheckConstraint('proficiency_level BETWEEN 1 AND 5', name='ck_proficiency_level'),
    )
    op.create_table(
        'musician_genres',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('musician_profiles'),
        _fk('genres'),
        *_timestamps(),
        sa.UniqueConstraint('musician_profile_id', 'genre_id'),
    )
    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('creator_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', project_status, nullable=False, server_default='draft'),
        sa.Column('start_date', sa.Date()),
        sa.Column('end_date', sa.Date()),
        sa.Column('budget', sa.Numeric(10, 2)),
        *_timestamps(),
    )
    op.create_table(
        'project_genres',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('projects'),
        _fk('genres'),
        *_timestamps(),
        sa.UniqueConstraint('project_id', 'genre_id'),
    )
    op.create_table(
        'project_instruments',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('projects'),
        _fk('instruments'),
        sa.Column('requirements', sa.Text()),
        sa.Column('filled', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('project_id', 'instrument_id'),
    )
    op.create_table(
        'project_invitations',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('projects'),
        sa.Column('musician_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        _fk('instruments'),
        sa.Column('status', invitation_status, nullable=False, server_default='pending'),
        sa.Column('message', sa.Text()),
        sa.Column('rate', sa.Numeric(10, 2)),
        *_timestamps(),
        sa.UniqueConstraint('project_id', 'musician_id', 'instrument_id'),
    )
    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('projects'),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('location', sa.String()),
        sa.Column('status', session_status, nullable=False, server_default='scheduled'),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        'session_musicians',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('sessions'),
        sa.Column('musician_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        _fk('instruments'),
        sa.Column('status', participant_status, nullable=False, server_default='invited'),
        sa.Column('rate', sa.Numeric(10, 2)),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint('session_id', 'musician_id', 'instrument_id'),
    )
    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('sessions', ondelete='SET NULL', nullable=True),
        _fk('projects', ondelete='SET NULL', nullable=True),
        sa.Column('payer_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payee_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', payment_status, nullable=False, server_default='pending'),
        sa.Column('payment_method', sa.String()),
        sa.Column('transaction_id', sa.String()),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sender_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('recipient_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk('projects', ondelete='SET NULL', nullable=True),
        _fk('sessions', ondelete='SET NULL', nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('reviewer_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reviewee_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        _fk('projects', ondelete='SET NULL', nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint('reviewer_id', 'reviewee_id', 'project_id'),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_review_rating'),
    )
    op.create_table(
        'availability',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('users'),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recurrence_pattern', recurrence_pattern),
        sa.Column('recurrence_end_date', sa.Date()),
        *_timestamps(),
    )
    op.create_table(
        'auth_tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('token', sa.String(), nullable=False, unique=True, index=True),
        _fk('users'),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('kind', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        _fk('users', ondelete='SET NULL', nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('metadata', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade():
    for table in (
        'activity_logs',
        'notifications',
        'auth_tokens',
        'availability',
        'reviews',
        'messages',
        'payments',
        'session_musicians',
        'sessions',
        'project_invitations',
        'project_instruments',
        'project_genres',
        'projects',
        'musician_genres',
        'musician_instruments',
        'genres',
        'instruments',
        'musician_profiles',
        'users',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in ENUMS:
        enum.drop(bind, checkfirst=True)
