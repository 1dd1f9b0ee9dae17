from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from guess4.services.games.errors import (
    ClockStillRunning,
    CodeCollision,
    GameError,
    InvalidGuess,
    InvalidPlayer,
    InvalidTimeLimit,
    NotAuthorized,
    RoomNotFound,
    StaleWrite,
)
from guess4.services.games.rooms import (
    create_room as svc_create_room,
    expire_on_timeout as svc_expire_on_timeout,
    get_room as svc_get_room,
    join_room as svc_join_room,
    leave_room as svc_leave_room,
    maybe_start as svc_maybe_start,
    set_secret as svc_set_secret,
    submit_guess as svc_submit_guess,
)


rooms = Blueprint('rooms', __name__)


@rooms.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@rooms.errorhandler(SQLAlchemyError)
def handle_storage_error(exc):
    current_app.logger.error(f"[storage-error] path={request.path} error={exc}")
    return jsonify({'error': 'Storage unavailable, please retry', 'kind': 'storage_error'}), 500


def _room_or_404(room_code):
    room = svc_get_room(room_code.strip())
    if not room:
        raise RoomNotFound()
    return room


def _parse_int(value, error):
    if value is None:
        return None
    if isinstance(value, bool):
        raise error
    try:
        return int(value)
    except (TypeError, ValueError):
        raise error


def _player_for(room, data):
    """Player number from the body, or the caller's own seat when omitted."""
    player = _parse_int(data.get('player'), InvalidPlayer())
    if player is None:
        player = room.player_number(current_user.id)
        if player is None:
            raise NotAuthorized()
    return player


def _state_payload(room):
    payload = room.to_dict()
    payload['move_bonus'] = int(current_app.config.get('MOVE_BONUS_SEC', 5))
    return payload


@rooms.route('/create', methods=['POST'])
@login_required
def create_room():
    data = request.get_json(silent=True) or {}
    time_limit = _parse_int(data.get('time_limit'), InvalidTimeLimit())
    attempts = max(1, int(current_app.config.get('CREATE_ROOM_ATTEMPTS', 5)))
    room = None
    for attempt in range(1, attempts + 1):
        try:
            room = svc_create_room(current_user.id, time_limit)
            break
        except CodeCollision:
            current_app.logger.info(f"[create] collision attempt={attempt}/{attempts}")
            if attempt == attempts:
                raise
    return jsonify({
        'message': 'Game room created! Share the code with your friend.',
        'room_code': room.room_code,
        'room': _state_payload(room),
    }), 201


@rooms.route('/join', methods=['POST'])
@login_required
def join_room():
    data = request.get_json(silent=True) or {}
    room_code = str(data.get('room_code') or '').strip()
    if not room_code:
        return jsonify({'error': 'Room code is required', 'kind': 'invalid_room_code'}), 400
    room = svc_join_room(room_code, current_user.id)
    return jsonify({
        'message': 'Joined game successfully!',
        'player': room.player_number(current_user.id),
        'room': _state_payload(room),
    })


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    room = _room_or_404(room_code)
    return jsonify(_state_payload(room))


@rooms.route('/<string:room_code>/secret', methods=['POST'])
@login_required
def set_secret(room_code):
    data = request.get_json(silent=True) or {}
    room = _room_or_404(room_code)
    player = _player_for(room, data)
    room = svc_set_secret(room.room_code, player, data.get('secret'), user_id=current_user.id)
    return jsonify({
        'message': 'Secret number set! Waiting for opponent...',
        'room': _state_payload(room),
    })


@rooms.route('/<string:room_code>/start', methods=['POST'])
@login_required
def start_game(room_code):
    room = _room_or_404(room_code)
    if room.player_number(current_user.id) is None:
        raise NotAuthorized()
    # Idempotent: a second caller just sees started=False and the live room
    started = svc_maybe_start(room.room_code)
    return jsonify({'started': started, 'room': _state_payload(svc_get_room(room.room_code))})


@rooms.route('/<string:room_code>/guess', methods=['POST'])
@login_required
def submit_guess(room_code):
    data = request.get_json(silent=True) or {}
    room = _room_or_404(room_code)
    player = _player_for(room, data)
    version = _parse_int(data.get('version'), InvalidGuess('Version must be an integer'))
    accepted = svc_submit_guess(
        room.room_code,
        player,
        data.get('number'),
        user_id=current_user.id,
        expected_version=version,
    )
    if not accepted:
        raise StaleWrite()
    room = svc_get_room(room.room_code)
    last = room.guesses(player)[-1]
    return jsonify({'guess': last.to_dict(), 'room': _state_payload(room)})


@rooms.route('/<string:room_code>/timeout', methods=['POST'])
@login_required
def expire_clock(room_code):
    data = request.get_json(silent=True) or {}
    room = _room_or_404(room_code)
    if room.player_number(current_user.id) is None:
        raise NotAuthorized()
    player = _parse_int(data.get('player'), InvalidPlayer())
    if player not in (1, 2):
        raise InvalidPlayer()
    # Clients detect the timeout; the server only confirms it from its own clock
    if not room.winner and room.current_turn_player == player and room.remaining(player) > 0:
        raise ClockStillRunning()
    expired = svc_expire_on_timeout(room.room_code, player)
    return jsonify({'expired': expired, 'room': _state_payload(svc_get_room(room.room_code))})


@rooms.route('/<string:room_code>/leave', methods=['POST'])
@login_required
def leave_room(room_code):
    data = request.get_json(silent=True) or {}
    room = _room_or_404(room_code)
    code = room.room_code
    player = _player_for(room, data)
    if not svc_leave_room(code, current_user.id, player):
        raise StaleWrite('Room changed while leaving. Please try again.')
    remaining = svc_get_room(code)
    return jsonify({'left': True, 'room': _state_payload(remaining) if remaining else None})
