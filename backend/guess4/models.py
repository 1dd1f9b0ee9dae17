from guess4 import db
from flask_login import UserMixin
from datetime import datetime, timezone
import json
from guess4.services.games.scoring import Guess
from guess4.services.games.clock import live_remaining


def utcnow():
    return datetime.now(timezone.utc)


class Identity(UserMixin):
    """Opaque caller identity handed over by the external sign-in provider."""

    def __init__(self, user_id):
        self.id = user_id


class UserProfile(db.Model):
    __tablename__ = 'user_profile'
    user_id = db.Column(db.String(64), primary_key=True)
    username = db.Column(db.String(64), nullable=False)
    display_name = db.Column(db.String(128), nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'username': self.username,
            'display_name': self.display_name,
        }


class UserStats(db.Model):
    __tablename__ = 'user_stats'
    user_id = db.Column(db.String(64), primary_key=True)
    total_games = db.Column(db.Integer, default=0, nullable=False)
    games_won = db.Column(db.Integer, default=0, nullable=False)
    games_lost = db.Column(db.Integer, default=0, nullable=False)
    games_tied = db.Column(db.Integer, default=0, nullable=False)
    total_guesses = db.Column(db.Integer, default=0, nullable=False)
    best_guess_count = db.Column(db.Integer, nullable=True)
    current_streak = db.Column(db.Integer, default=0, nullable=False)
    longest_streak = db.Column(db.Integer, default=0, nullable=False)
    last_played_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        total = self.total_games or 0
        return {
            'user_id': self.user_id,
            'total_games': total,
            'games_won': self.games_won,
            'games_lost': self.games_lost,
            'games_tied': self.games_tied,
            'total_guesses': self.total_guesses,
            'best_guess_count': self.best_guess_count,
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'win_rate': round(self.games_won * 100.0 / total, 1) if total else 0,
            'avg_guesses': round(self.total_guesses / total, 1) if total else 0,
            'last_played_at': self.last_played_at.isoformat() if self.last_played_at else None,
        }


class GameRoom(db.Model):
    __tablename__ = 'game_room'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    player1_id = db.Column(db.String(64), nullable=True, index=True)
    player2_id = db.Column(db.String(64), nullable=True, index=True)
    player1_secret = db.Column(db.String(4), nullable=False, default='')
    player2_secret = db.Column(db.String(4), nullable=False, default='')
    player1_guesses = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of guesses
    player2_guesses = db.Column(db.Text, nullable=False, default='[]')
    player1_ready = db.Column(db.Boolean, nullable=False, default=False)
    player2_ready = db.Column(db.Boolean, nullable=False, default=False)
    current_turn = db.Column(db.Integer, nullable=False, default=1)
    game_started = db.Column(db.Boolean, nullable=False, default=False)
    winner = db.Column(db.String(4), nullable=True)  # '1', '2' or 'tie'
    finished_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    # Clock baselines, only rewritten at turn boundaries
    player1_time_remaining = db.Column(db.Integer, nullable=False, default=300)
    player2_time_remaining = db.Column(db.Integer, nullable=False, default=300)
    current_turn_player = db.Column(db.Integer, nullable=True)
    turn_started_at = db.Column(db.Float, nullable=True)  # epoch seconds
    version = db.Column(db.Integer, nullable=False, default=1)

    def player_id(self, player):
        return self.player1_id if player == 1 else self.player2_id

    def secret(self, player):
        return (self.player1_secret if player == 1 else self.player2_secret) or ''

    def is_ready(self, player):
        return bool(self.player1_ready if player == 1 else self.player2_ready)

    def guesses(self, player):
        raw = self.player1_guesses if player == 1 else self.player2_guesses
        return [Guess.from_dict(g) for g in json.loads(raw or '[]')]

    def baseline(self, player):
        return self.player1_time_remaining if player == 1 else self.player2_time_remaining

    def player_number(self, user_id):
        if user_id is None:
            return None
        if self.player1_id == user_id:
            return 1
        if self.player2_id == user_id:
            return 2
        return None

    @property
    def winner_value(self):
        if self.winner in ('1', '2'):
            return int(self.winner)
        return self.winner

    @property
    def phase(self):
        if self.winner:
            return 'finished'
        if self.game_started:
            return 'active'
        if not self.player2_id:
            return 'waiting'
        return 'setup'

    def remaining(self, player, now=None):
        return live_remaining(
            self.baseline(player),
            self.turn_started_at,
            self.current_turn_player == player,
            bool(self.winner),
            now=now,
        )

    def to_dict(self, now=None):
        profiles = {}
        for n in (1, 2):
            uid = self.player_id(n)
            profile = db.session.get(UserProfile, uid) if uid else None
            profiles[n] = profile.to_dict() if profile else None

        return {
            'id': self.id,
            'room_code': self.room_code,
            'phase': self.phase,
            'player1_id': self.player1_id,
            'player2_id': self.player2_id,
            'player1_secret': self.player1_secret,
            'player2_secret': self.player2_secret,
            'player1_guesses': [g.to_dict() for g in self.guesses(1)],
            'player2_guesses': [g.to_dict() for g in self.guesses(2)],
            'player1_ready': self.player1_ready,
            'player2_ready': self.player2_ready,
            'current_turn': self.current_turn,
            'game_started': self.game_started,
            'winner': self.winner_value,
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'player1_time_remaining': self.remaining(1, now=now),
            'player2_time_remaining': self.remaining(2, now=now),
            'current_turn_player': self.current_turn_player,
            'turn_started_at': self.turn_started_at,
            'version': self.version,
            'player1_profile': profiles[1],
            'player2_profile': profiles[2],
        }
