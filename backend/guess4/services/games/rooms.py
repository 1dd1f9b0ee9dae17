"""Room lifecycle: waiting -> setup -> active -> finished.

Each operation reads the current row, computes the next state with the pure
helpers (scoring, clock, resolver) and applies it as one conditioned write.
Lost races come back as ``False``; invalid input and unmet preconditions
raise ``GameError`` subclasses.
"""

import json
import random
import time
from typing import Optional, Tuple

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from guess4 import db, socketio
from guess4.models import GameRoom
from . import clock
from .errors import (
    CodeCollision,
    GameNotActive,
    InvalidPlayer,
    InvalidTimeLimit,
    NotAuthorized,
    OpponentSecretNotSet,
    RoomFull,
    RoomNotFound,
    SecretAlreadySet,
)
from .guard import compare_and_delete, compare_and_set
from .resolver import other, resolve
from .scoring import make_guess, validate_guess, validate_secret
from .stats import finalize_room

ROOM_CODE_MIN = 100000
ROOM_CODE_MAX = 999999


def generate_room_code() -> str:
    return str(random.randint(ROOM_CODE_MIN, ROOM_CODE_MAX))


def notify_room(room_code: str, event: str = 'state_update') -> None:
    room = get_room(room_code)
    payload = {'room_code': room_code, 'version': room.version if room else None}
    socketio.emit(event, payload, to=f"room:{room_code}", namespace='/ws')


def _check_player(player) -> int:
    if isinstance(player, bool) or player not in (1, 2):
        raise InvalidPlayer()
    return player


def get_room(room_code: str) -> Optional[GameRoom]:
    return GameRoom.query.filter_by(room_code=room_code).first()


def _require_room(room_code: str) -> GameRoom:
    room = get_room(room_code)
    if not room:
        raise RoomNotFound()
    return room


def _authorize(room: GameRoom, player: int, user_id: Optional[str]) -> None:
    if user_id is not None and room.player_id(player) != user_id:
        raise NotAuthorized()


def _finalize(room_code: str) -> None:
    # The decisive write is already committed; a failed stats pass is retried
    # by the next leave on this room.
    try:
        finalize_room(room_code)
    except SQLAlchemyError:
        current_app.logger.exception(f"[stats-error] room={room_code} finalization failed")


def find_active_room(user_id: str) -> Optional[Tuple[GameRoom, int]]:
    room = (
        GameRoom.query.filter(
            or_(GameRoom.player1_id == user_id, GameRoom.player2_id == user_id),
            GameRoom.winner.is_(None),
        )
        .order_by(GameRoom.created_at.desc(), GameRoom.id.desc())
        .first()
    )
    if not room:
        return None
    return room, room.player_number(user_id)


def create_room(creator_id: Optional[str], time_limit: Optional[int] = None) -> GameRoom:
    cfg = current_app.config
    if time_limit is None:
        time_limit = int(cfg.get('DEFAULT_TIME_LIMIT_SEC', 300))
    low = int(cfg.get('MIN_TIME_LIMIT_SEC', 30))
    high = int(cfg.get('MAX_TIME_LIMIT_SEC', 3600))
    if isinstance(time_limit, bool) or not isinstance(time_limit, int) or not low <= time_limit <= high:
        raise InvalidTimeLimit(f'Time limit must be between {low} and {high} seconds')

    room = GameRoom(
        room_code=generate_room_code(),
        player1_id=creator_id,
        player1_secret='',
        player2_secret='',
        player1_guesses='[]',
        player2_guesses='[]',
        player1_ready=False,
        player2_ready=False,
        current_turn=1,
        game_started=False,
        player1_time_remaining=time_limit,
        player2_time_remaining=time_limit,
        version=1,
    )
    db.session.add(room)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.info(f"[create] code collision room={room.room_code}")
        raise CodeCollision()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    current_app.logger.info(f"[create] room={room.room_code} creator={creator_id} time_limit={time_limit}s")
    return room


def join_room(room_code: str, joiner_id: str) -> GameRoom:
    room = _require_room(room_code)
    if room.player2_id is not None and room.player2_id == joiner_id:
        return room
    if room.player2_id is not None or room.player1_id == joiner_id:
        raise RoomFull()
    # Two simultaneous joiners: only the one that still sees the slot empty wins
    if not compare_and_set(room_code, {'player2_id': joiner_id}, player2_id=None):
        _require_room(room_code)
        raise RoomFull()
    current_app.logger.info(f"[join] room={room_code} player2={joiner_id}")
    notify_room(room_code)
    return get_room(room_code)


def set_secret(room_code: str, player: int, secret: str, user_id: Optional[str] = None,
               now: Optional[float] = None) -> GameRoom:
    player = _check_player(player)
    secret = validate_secret(secret)
    room = _require_room(room_code)
    _authorize(room, player, user_id)
    if room.is_ready(player):
        raise SecretAlreadySet()

    ready = f'player{player}_ready'
    values = {f'player{player}_secret': secret, ready: True}
    if not compare_and_set(room_code, values, **{ready: False}):
        _require_room(room_code)
        raise SecretAlreadySet()
    current_app.logger.info(f"[secret] room={room_code} player={player} ready")
    notify_room(room_code)

    room = get_room(room_code)
    if room.player1_ready and room.player2_ready and not room.game_started:
        maybe_start(room_code, now=now)
    return get_room(room_code)


def maybe_start(room_code: str, now: Optional[float] = None) -> bool:
    """Start the game once both players are ready; safe to call repeatedly."""
    if now is None:
        now = time.time()
    started = compare_and_set(
        room_code,
        {
            'game_started': True,
            'current_turn': 1,
            'current_turn_player': 1,
            'turn_started_at': now,
        },
        game_started=False,
        player1_ready=True,
        player2_ready=True,
    )
    current_app.logger.info(f"[start] room={room_code} started={started}")
    if started:
        notify_room(room_code)
    return started


def submit_guess(room_code: str, player: int, number: str, user_id: Optional[str] = None,
                 expected_version: Optional[int] = None, now: Optional[float] = None) -> bool:
    """Score, settle clocks, resolve and write the next state in one go.

    The write is conditioned on the observed version and on it still being
    ``player``'s turn. ``expected_version`` is the version the client last
    saw; when omitted the freshly read one is used.
    """
    player = _check_player(player)
    number = validate_guess(number)
    room = _require_room(room_code)
    _authorize(room, player, user_id)
    if not room.game_started or room.winner:
        raise GameNotActive()
    opponent = other(player)
    secret = room.secret(opponent)
    if not secret:
        raise OpponentSecretNotSet()

    if now is None:
        now = time.time()
    guess = make_guess(number, secret)

    times = {1: room.player1_time_remaining, 2: room.player2_time_remaining}
    if room.turn_started_at is not None and room.current_turn_player == player:
        bonus = int(current_app.config.get('MOVE_BONUS_SEC', 5))
        times[player] = clock.settle_turn(times[player], room.turn_started_at, now, bonus)

    outcome = resolve(room.guesses(1), room.guesses(2), player, guess)
    decided = outcome.winner is not None
    values = {
        f'player{player}_guesses': json.dumps([g.to_dict() for g in outcome.guesses]),
        'player1_time_remaining': times[1],
        'player2_time_remaining': times[2],
        'current_turn': opponent,
        'current_turn_player': outcome.next_active_player,
        'turn_started_at': None if decided else now,
        'winner': str(outcome.winner) if decided else None,
    }
    observed = room.version if expected_version is None else expected_version
    accepted = compare_and_set(room_code, values, version=observed, current_turn=player)
    current_app.logger.info(
        f"[guess] room={room_code} player={player} version={observed} accepted={accepted} "
        f"positions={guess.correct_positions} digits={guess.correct_digits} winner={outcome.winner}"
    )
    if accepted:
        if decided:
            _finalize(room_code)
        notify_room(room_code)
    return accepted


def expire_on_timeout(room_code: str, expired_player: int, now: Optional[float] = None) -> bool:
    """Award the game to the opponent of the player whose clock ran out."""
    expired_player = _check_player(expired_player)
    _require_room(room_code)
    winner = other(expired_player)
    expired = compare_and_set(
        room_code,
        {
            'winner': str(winner),
            f'player{expired_player}_time_remaining': 0,
            'current_turn_player': None,
            'turn_started_at': None,
        },
        winner=None,
        current_turn_player=expired_player,
    )
    current_app.logger.info(f"[timeout] room={room_code} expired={expired_player} applied={expired}")
    if expired:
        _finalize(room_code)
        notify_room(room_code)
    return expired


def leave_room(room_code: str, user_id: Optional[str], player: int) -> bool:
    player = _check_player(player)
    room = _require_room(room_code)
    _authorize(room, player, user_id)

    if not room.game_started and not room.player2_id and player == 1:
        deleted = compare_and_delete(room_code, game_started=False, player2_id=None)
        current_app.logger.info(f"[leave] room={room_code} deleted={deleted}")
        if deleted:
            socketio.emit('room_closed', {'room_code': room_code}, to=f"room:{room_code}", namespace='/ws')
        return deleted

    if not room.game_started and room.player2_id and player == 2:
        cleared = compare_and_set(
            room_code,
            {'player2_id': None, 'player2_ready': False, 'player2_secret': ''},
            game_started=False,
            player2_id=room.player2_id,
        )
        current_app.logger.info(f"[leave] room={room_code} player2 cleared={cleared}")
        if cleared:
            notify_room(room_code)
        return cleared

    if room.game_started and not room.winner:
        winner = other(player)
        forfeited = compare_and_set(
            room_code,
            {'winner': str(winner), 'current_turn_player': None, 'turn_started_at': None},
            winner=None,
        )
        current_app.logger.info(f"[leave] room={room_code} forfeit by player={player} applied={forfeited}")
        # Losing the race means a winner was decided meanwhile; either way the game is over
        _finalize(room_code)
        if forfeited:
            notify_room(room_code)
        return True

    if room.winner:
        _finalize(room_code)
    return True
