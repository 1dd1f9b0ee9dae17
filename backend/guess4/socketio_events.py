from flask_socketio import join_room, leave_room, emit
from flask import current_app
from guess4 import socketio
from guess4.services.games.rooms import get_room


def _channel(room_code: str) -> str:
    return f"room:{room_code}"


def _room_code(data) -> str:
    # Clients may send the six-digit code as a JSON number
    if not isinstance(data, dict):
        return ''
    return str(data.get('room_code') or '').strip()


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # Channel membership is dropped by Socket.IO itself; room rows are untouched
    current_app.logger.debug('[ws] client disconnected')


def handle_join_game(data):
    """Subscribe to a room's updates and push its current state right away.

    Updates are delivered at least once and may arrive out of order, so the
    initial push carries the full row and later ones only its version.
    """
    room_code = _room_code(data)
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    channel = _channel(room_code)
    join_room(channel)
    emit('joined', {'room': channel})
    room = get_room(room_code)
    if room:
        emit('state_update', {'room_code': room_code, 'version': room.version, 'room': room.to_dict()})
    else:
        emit('error', {'message': 'Room not found', 'room_code': room_code})


def handle_leave_game(data):
    room_code = _room_code(data)
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    channel = _channel(room_code)
    leave_room(channel)
    emit('left', {'room': channel})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for namespace in ('/ws', '/') if testing else ('/ws',):
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
