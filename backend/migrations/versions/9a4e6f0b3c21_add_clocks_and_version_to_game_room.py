"""add per-player clocks and optimistic-lock version to game_room

Revision ID: 9a4e6f0b3c21
Revises: 5b7c1d2e9f10
Create Date: 2026-10-06 18:40:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9a4e6f0b3c21'
down_revision = '5b7c1d2e9f10'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('game_room')}
    with op.batch_alter_table('game_room') as batch_op:
        if 'player1_time_remaining' not in cols:
            batch_op.add_column(sa.Column('player1_time_remaining', sa.Integer(), nullable=False, server_default='300'))
        if 'player2_time_remaining' not in cols:
            batch_op.add_column(sa.Column('player2_time_remaining', sa.Integer(), nullable=False, server_default='300'))
        if 'current_turn_player' not in cols:
            batch_op.add_column(sa.Column('current_turn_player', sa.Integer(), nullable=True))
        if 'turn_started_at' not in cols:
            batch_op.add_column(sa.Column('turn_started_at', sa.Float(), nullable=True))
        if 'version' not in cols:
            batch_op.add_column(sa.Column('version', sa.Integer(), nullable=False, server_default='1'))
        batch_op.create_check_constraint('ck_game_room_current_turn_player', 'current_turn_player IN (1, 2)')
        batch_op.create_index('ix_game_room_code_version', ['room_code', 'version'], unique=False)


def downgrade():
    with op.batch_alter_table('game_room') as batch_op:
        batch_op.drop_index('ix_game_room_code_version')
        batch_op.drop_constraint('ck_game_room_current_turn_player', type_='check')
        batch_op.drop_column('version')
        batch_op.drop_column('turn_started_at')
        batch_op.drop_column('current_turn_player')
        batch_op.drop_column('player2_time_remaining')
        batch_op.drop_column('player1_time_remaining')
