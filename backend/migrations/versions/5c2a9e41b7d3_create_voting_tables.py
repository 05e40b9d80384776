"""create host, participant, voting_session, vote and history_entry tables

Revision ID: 5c2a9e41b7d3
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e41b7d3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'host' not in existing_tables:
        op.create_table(
            'host',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_host_username', 'host', ['username'], unique=True)

    if 'participant' not in existing_tables:
        op.create_table(
            'participant',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('is_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('has_received_package', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('sort_order', sa.Integer(), nullable=True),
            sa.Column('last_voted_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )

    if 'voting_session' not in existing_tables:
        op.create_table(
            'voting_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('current_participant_id', sa.Integer(), sa.ForeignKey('participant.id'), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('candidate_restriction', sa.Text(), nullable=True),
            sa.Column('resolved_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_voting_session_is_active', 'voting_session', ['is_active'])

    if 'vote' not in existing_tables:
        op.create_table(
            'vote',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.Integer(), sa.ForeignKey('voting_session.id'), nullable=False),
            sa.Column('voted_for_participant_id', sa.Integer(), sa.ForeignKey('participant.id'), nullable=False),
            sa.Column('voter_token', sa.String(length=64), nullable=False),
            sa.Column('voter_name', sa.String(length=64), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('session_id', 'voter_token', name='uq_vote_session_voter'),
        )
        op.create_index('ix_vote_session_id', 'vote', ['session_id'])

    if 'history_entry' not in existing_tables:
        op.create_table(
            'history_entry',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('participant_id', sa.Integer(), nullable=True),
            sa.Column('package_owner_id', sa.Integer(), nullable=True),
            sa.Column('winner_id', sa.Integer(), nullable=True),
            sa.Column('leading_participant_id', sa.Integer(), nullable=True),
            sa.Column('locked_participant_id', sa.Integer(), nullable=True),
            sa.Column('results', sa.Text(), nullable=False),
            sa.Column('move_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('correct_voters', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        for column in ('participant_id', 'package_owner_id', 'leading_participant_id', 'locked_participant_id'):
            op.create_index(f'ix_history_entry_{column}', 'history_entry', [column])


def downgrade():
    op.drop_table('history_entry')
    op.drop_table('vote')
    op.drop_table('voting_session')
    op.drop_table('participant')
    op.drop_table('host')
