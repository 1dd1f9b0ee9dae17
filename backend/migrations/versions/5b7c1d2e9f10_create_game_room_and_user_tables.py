"""create game_room, user_profile and user_stats

Revision ID: 5b7c1d2e9f10
Revises:
Create Date: 2026-09-28 10:12:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7c1d2e9f10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'game_room',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('room_code', sa.String(length=6), nullable=False),
        sa.Column('player1_id', sa.String(length=64), nullable=True),
        sa.Column('player2_id', sa.String(length=64), nullable=True),
        sa.Column('player1_secret', sa.String(length=4), nullable=False, server_default=''),
        sa.Column('player2_secret', sa.String(length=4), nullable=False, server_default=''),
        sa.Column('player1_guesses', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('player2_guesses', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('player1_ready', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('player2_ready', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('current_turn', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('game_started', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('winner', sa.String(length=4), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('game_room') as batch_op:
        batch_op.create_index('ix_game_room_room_code', ['room_code'], unique=True)
        batch_op.create_index('ix_game_room_player1_id', ['player1_id'], unique=False)
        batch_op.create_index('ix_game_room_player2_id', ['player2_id'], unique=False)

    op.create_table(
        'user_profile',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=128), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table(
        'user_stats',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('total_games', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('games_won', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('games_lost', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('games_tied', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_guesses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('best_guess_count', sa.Integer(), nullable=True),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_played_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
    )


def downgrade():
    op.drop_table('user_stats')
    op.drop_table('user_profile')
    with op.batch_alter_table('game_room') as batch_op:
        batch_op.drop_index('ix_game_room_player2_id')
        batch_op.drop_index('ix_game_room_player1_id')
        batch_op.drop_index('ix_game_room_room_code')
    op.drop_table('game_room')
