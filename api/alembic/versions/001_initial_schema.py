"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default='false'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Workspaces and memberships
    op.create_table(
        'workspaces',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_workspaces'),
    )

    op.create_table(
        'memberships',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='MEMBER'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='fk_memberships_user_id_users'),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE', name='fk_memberships_workspace_id_workspaces'),
        sa.PrimaryKeyConstraint('id', name='pk_memberships'),
        sa.UniqueConstraint('user_id', 'workspace_id', name='uq_memberships_user_workspace'),
        sa.CheckConstraint("role IN ('OWNER', 'ADMIN', 'MEMBER')", name='ck_memberships_valid_role'),
    )
    op.create_index('ix_memberships_user_id', 'memberships', ['user_id'])
    op.create_index('ix_memberships_workspace_id', 'memberships', ['workspace_id'])
    # Exactly one OWNER per workspace
    op.create_index(
        'uq_memberships_workspace_owner',
        'memberships',
        ['workspace_id'],
        unique=True,
        postgresql_where=sa.text("role = 'OWNER'"),
    )

    # Boards, private-board grants, lists
    op.create_table(
        'boards',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('visibility', sa.String(20), nullable=False, server_default='PUBLIC'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE', name='fk_boards_workspace_id_workspaces'),
        sa.PrimaryKeyConstraint('id', name='pk_boards'),
        sa.CheckConstraint("visibility IN ('PUBLIC', 'PRIVATE')", name='ck_boards_valid_visibility'),
    )
    op.create_index('ix_boards_workspace_id', 'boards', ['workspace_id'])

    op.create_table(
        'board_members',
        sa.Column('board_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['board_id'], ['boards.id'], ondelete='CASCADE', name='fk_board_members_board_id_boards'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='fk_board_members_user_id_users'),
        sa.PrimaryKeyConstraint('board_id', 'user_id', name='pk_board_members'),
    )

    op.create_table(
        'lists',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('board_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['board_id'], ['boards.id'], ondelete='CASCADE', name='fk_lists_board_id_boards'),
        sa.PrimaryKeyConstraint('id', name='pk_lists'),
    )
    op.create_index('ix_lists_board_id', 'lists', ['board_id'])

    # Cards and comments
    op.create_table(
        'cards',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('list_id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='TO_DO'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='MEDIUM'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('assignee_id', sa.UUID(), nullable=True),
        sa.Column('created_by', sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['list_id'], ['lists.id'], ondelete='CASCADE', name='fk_cards_list_id_lists'),
        sa.ForeignKeyConstraint(['assignee_id'], ['users.id'], ondelete='SET NULL', name='fk_cards_assignee_id_users'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL', name='fk_cards_created_by_users'),
        sa.PrimaryKeyConstraint('id', name='pk_cards'),
        sa.CheckConstraint(
            "status IN ('TO_DO', 'IN_PROGRESS', 'IN_REVIEW', 'DONE')",
            name='ck_cards_valid_card_status',
        ),
        sa.CheckConstraint("priority IN ('LOW', 'MEDIUM', 'HIGH')", name='ck_cards_valid_card_priority'),
    )
    op.create_index('ix_cards_list_id', 'cards', ['list_id'])

    op.create_table(
        'comments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('card_id', sa.UUID(), nullable=False),
        sa.Column('author_id', sa.UUID(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ondelete='CASCADE', name='fk_comments_card_id_cards'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='CASCADE', name='fk_comments_author_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_comments'),
    )
    op.create_index('ix_comments_card_id', 'comments', ['card_id'])

    # One-time tokens
    op.create_table(
        'email_verification_tokens',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('token', sa.String(6), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='fk_email_verification_tokens_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_email_verification_tokens'),
    )
    op.create_index('ix_email_verification_tokens_user_id', 'email_verification_tokens', ['user_id'])

    op.create_table(
        'password_reset_tokens',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='fk_password_reset_tokens_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_password_reset_tokens'),
        sa.UniqueConstraint('token_hash', name='uq_password_reset_tokens_token_hash'),
    )
    op.create_index('ix_password_reset_tokens_user_id', 'password_reset_tokens', ['user_id'])

    # Invitations
    op.create_table(
        'invites',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('invited_by', sa.UUID(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE', name='fk_invites_workspace_id_workspaces'),
        sa.ForeignKeyConstraint(['invited_by'], ['users.id'], ondelete='SET NULL', name='fk_invites_invited_by_users'),
        sa.PrimaryKeyConstraint('id', name='pk_invites'),
        sa.UniqueConstraint('workspace_id', 'email', name='uq_invites_workspace_email'),
        sa.CheckConstraint("role IN ('ADMIN', 'MEMBER')", name='ck_invites_valid_invite_role'),
    )
    op.create_index('ix_invites_workspace_id', 'invites', ['workspace_id'])
    op.create_index('ix_invites_token', 'invites', ['token'], unique=True)

    # Audit logs
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=True),
        sa.Column('actor_user_id', sa.UUID(), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('resource_type', sa.String(50), nullable=False),
        sa.Column('resource_id', sa.UUID(), nullable=True),
        sa.Column('ip', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('request_id', sa.String(36), nullable=True),
        sa.Column('details_json', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_logs_workspace_created', 'audit_logs', ['workspace_id', 'created_at'])
    op.create_index('ix_audit_logs_actor_created', 'audit_logs', ['actor_user_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('invites')
    op.drop_table('password_reset_tokens')
    op.drop_table('email_verification_tokens')
    op.drop_table('comments')
    op.drop_table('cards')
    op.drop_table('lists')
    op.drop_table('board_members')
    op.drop_table('boards')
    op.drop_table('memberships')
    op.drop_table('workspaces')
    op.drop_table('users')
