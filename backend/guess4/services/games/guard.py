"""Conditioned single-row writes against ``game_room``.

Every mutation of a room goes through ``compare_and_set`` (or
``compare_and_delete``): one UPDATE/DELETE filtered by the room code plus
the caller's expectations. Zero affected rows means another writer got there
first; callers report that, they never retry it here.
"""

from typing import Any, Dict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from guess4 import db
from guess4.models import GameRoom


def _clauses(room_code: str, conditions: Dict[str, Any]):
    clauses = [GameRoom.room_code == room_code]
    for name, expected in conditions.items():
        column = getattr(GameRoom, name)
        if expected is None:
            clauses.append(column.is_(None))
        else:
            clauses.append(column == expected)
    return clauses


def compare_and_set(room_code: str, values: Dict[str, Any], *, commit: bool = True, **conditions) -> bool:
    """Apply ``values`` only if the row still matches ``conditions``.

    The version is bumped by the database expression itself so a stale
    client can never write back an old number. With ``commit=False`` the
    update joins the current transaction and the caller commits.
    """
    values = dict(values)
    values['version'] = GameRoom.version + 1
    try:
        affected = GameRoom.query.filter(*_clauses(room_code, conditions)).update(
            values, synchronize_session=False
        )
        if commit:
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[cas-error] room={room_code} error={exc}")
        raise
    applied = affected == 1
    if not applied:
        current_app.logger.info(f"[cas-miss] room={room_code} conditions={sorted(conditions)}")
    return applied


def compare_and_delete(room_code: str, **conditions) -> bool:
    try:
        affected = GameRoom.query.filter(*_clauses(room_code, conditions)).delete(
            synchronize_session=False
        )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[cas-error] room={room_code} delete error={exc}")
        raise
    return affected == 1
