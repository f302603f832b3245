"""create team, card, deck_entry and game_config; seed config and default deck

Revision ID: 4c2a9d1e7b30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2a9d1e7b30'
down_revision = None
branch_labels = None
depends_on = None


DEFAULT_DECK = [
    (1, 'Apple', 'Quả táo'),
    (2, 'Dog', 'Con chó'),
    (3, 'Cat', 'Con mèo'),
    (4, 'House', 'Ngôi nhà'),
    (5, 'Book', 'Quyển sách'),
    (6, 'Water', 'Nước'),
    (7, 'Sun', 'Mặt trời'),
    (8, 'Moon', 'Mặt trăng'),
]


def upgrade():
    op.create_table(
        'team',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_team_name', 'team', ['name'], unique=True)
    op.create_index('ix_team_token', 'team', ['token'], unique=True)

    op.create_table(
        'card',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('team.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pair_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('side', sa.String(length=1), nullable=False),
        sa.Column('state', sa.String(length=16), nullable=False, server_default='hidden'),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.UniqueConstraint('team_id', 'position', name='uq_card_team_position'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_card_team_id', 'card', ['team_id'])

    deck = op.create_table(
        'deck_entry',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pair_id', sa.Integer(), nullable=False, unique=True),
        sa.Column('face_a', sa.Text(), nullable=False),
        sa.Column('face_b', sa.Text(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    config = op.create_table(
        'game_config',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('time_limit_sec', sa.Integer(), nullable=False, server_default='120'),
        sa.Column('match_points', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('miss_penalty', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('game_started', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('game_start_time', sa.BigInteger(), nullable=True),
        sa.CheckConstraint('id = 1', name='ck_game_config_singleton'),
    )

    op.bulk_insert(config, [{
        'id': 1,
        'time_limit_sec': 120,
        'match_points': 10,
        'miss_penalty': 2,
        'game_started': False,
    }])
    op.bulk_insert(deck, [
        {'pair_id': pair_id, 'face_a': face_a, 'face_b': face_b, 'enabled': True}
        for pair_id, face_a, face_b in DEFAULT_DECK
    ])


def downgrade():
    op.drop_table('game_config')
    op.drop_table('deck_entry')
    op.drop_index('ix_card_team_id', table_name='card')
    op.drop_table('card')
    op.drop_index('ix_team_token', table_name='team')
    op.drop_index('ix_team_name', table_name='team')
    op.drop_table('team')
