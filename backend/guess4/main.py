from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from guess4 import db
from guess4.models import UserProfile, UserStats
from guess4.services.games.rooms import find_active_room
from guess4.services.games.stats import LEADERBOARD_ORDERS, leaderboard

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Guess4 game server!'})

@main.route('/me', methods=['GET'])
@login_required
def me():
    profile = db.session.get(UserProfile, current_user.id)
    stats = db.session.get(UserStats, current_user.id)
    return jsonify({
        'user_id': current_user.id,
        'profile': profile.to_dict() if profile else None,
        'stats': stats.to_dict() if stats else None,
    })

@main.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    """Store the display fields shown next to a player in room state."""
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    if not username or len(username) > 64:
        return jsonify({'error': 'Username is required (max 64 characters)'}), 400
    display_name = (data.get('display_name') or '').strip() or None
    if display_name and len(display_name) > 128:
        return jsonify({'error': 'Display name is too long'}), 400

    profile = db.session.get(UserProfile, current_user.id)
    if profile is None:
        profile = UserProfile(user_id=current_user.id, username=username)
    profile.username = username
    profile.display_name = display_name
    db.session.add(profile)
    db.session.commit()
    return jsonify(profile.to_dict())

@main.route('/rooms/active', methods=['GET'])
@login_required
def get_active_room():
    # Most recent undecided room the caller sits in, for reconnecting
    found = find_active_room(current_user.id)
    if not found:
        return jsonify({'room': None, 'player': None})
    room, player = found
    return jsonify({'room': room.to_dict(), 'player': player})

@main.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    order_by = request.args.get('order_by', 'games_won')
    if order_by not in LEADERBOARD_ORDERS:
        return jsonify({'error': f"order_by must be one of {', '.join(LEADERBOARD_ORDERS)}"}), 400
    limit = request.args.get('limit', 10, type=int)
    if not 1 <= limit <= 100:
        return jsonify({'error': 'limit must be between 1 and 100'}), 400
    return jsonify({'order_by': order_by, 'players': leaderboard(order_by, limit)})
