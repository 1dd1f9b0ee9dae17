from flask import current_app
from sqlalchemy import Float, cast
from sqlalchemy.exc import SQLAlchemyError

from guess4 import db
from guess4.models import GameRoom, UserProfile, UserStats, utcnow
from .guard import compare_and_set


def _blank_stats(user_id: str) -> UserStats:
    return UserStats(
        user_id=user_id,
        total_games=0,
        games_won=0,
        games_lost=0,
        games_tied=0,
        total_guesses=0,
        best_guess_count=None,
        current_streak=0,
        longest_streak=0,
    )


def _record(stats: UserStats, outcome: str, guess_count: int, played_at) -> None:
    stats.total_games += 1
    stats.total_guesses += guess_count
    stats.last_played_at = played_at
    if outcome == 'won':
        stats.games_won += 1
        if stats.best_guess_count is None or guess_count < stats.best_guess_count:
            stats.best_guess_count = guess_count
        stats.current_streak += 1
        stats.longest_streak = max(stats.longest_streak, stats.current_streak)
    elif outcome == 'lost':
        stats.games_lost += 1
        stats.current_streak = 0
    else:
        # A tie leaves the streak alone
        stats.games_tied += 1


def finalize_room(room_code: str) -> bool:
    """Fold a decided room into both players' stats, at most once.

    The room is claimed by setting ``finished_at`` conditioned on it still
    being empty; the stats rows are written in the same transaction.
    """
    room = GameRoom.query.filter_by(room_code=room_code).first()
    if not room or not room.winner or room.finished_at is not None:
        return False

    finished_at = utcnow()
    try:
        claimed = compare_and_set(
            room_code,
            {'finished_at': finished_at},
            commit=False,
            finished_at=None,
            winner=room.winner,
        )
        if not claimed:
            db.session.rollback()
            return False

        for player in (1, 2):
            user_id = room.player_id(player)
            if not user_id:
                continue
            if room.winner == 'tie':
                outcome = 'tied'
            elif room.winner == str(player):
                outcome = 'won'
            else:
                outcome = 'lost'
            stats = db.session.get(UserStats, user_id)
            if stats is None:
                stats = _blank_stats(user_id)
                db.session.add(stats)
            _record(stats, outcome, len(room.guesses(player)), finished_at)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(f"[stats] room={room_code} winner={room.winner} finalized")
    return True


LEADERBOARD_ORDERS = ('games_won', 'win_rate', 'longest_streak')


def leaderboard(order_by: str = 'games_won', limit: int = 10):
    """Players with at least one finished game, best first.

    Ties fall back to games won, then to the user id so pages are stable.
    """
    win_rate = cast(UserStats.games_won, Float) / UserStats.total_games
    primary = {
        'games_won': UserStats.games_won,
        'win_rate': win_rate,
        'longest_streak': UserStats.longest_streak,
    }.get(order_by, UserStats.games_won)

    rows = (
        db.session.query(UserStats, UserProfile)
        .outerjoin(UserProfile, UserProfile.user_id == UserStats.user_id)
        .filter(UserStats.total_games > 0)
        .order_by(primary.desc(), UserStats.games_won.desc(), UserStats.user_id)
        .limit(limit)
        .all()
    )
    entries = []
    for stats, profile in rows:
        entry = stats.to_dict()
        entry['username'] = profile.username if profile else None
        entry['display_name'] = profile.display_name if profile else None
        entries.append(entry)
    return entries
