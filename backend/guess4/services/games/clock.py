"""Chess-style clocks derived from a stored baseline.

Only the baseline and the moment the running clock started are persisted;
the live value is recomputed from wall-clock time on every read, so there is
no background ticker.
"""

import math
import time
from typing import Optional


def _elapsed(turn_started_at: float, now: float) -> int:
    return max(0, math.floor(now - turn_started_at))


def live_remaining(baseline: int, turn_started_at: Optional[float], is_active_player: bool,
                   game_ended: bool, now: Optional[float] = None) -> int:
    if game_ended or not is_active_player or turn_started_at is None:
        return baseline
    if now is None:
        now = time.time()
    return max(0, baseline - _elapsed(turn_started_at, now))


def settle_turn(baseline: int, turn_started_at: float, now: float, bonus_seconds: int) -> int:
    """New baseline for the player who just moved, increment included."""
    return max(0, baseline - _elapsed(turn_started_at, now)) + bonus_seconds
