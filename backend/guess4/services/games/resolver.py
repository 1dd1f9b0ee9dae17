from typing import List, NamedTuple, Optional, Union

from .scoring import Guess

Winner = Optional[Union[int, str]]

TIE = 'tie'


class Resolution(NamedTuple):
    winner: Winner
    next_active_player: Optional[int]
    guesses: List[Guess]  # acting player's list with the new guess appended


def other(player: int) -> int:
    return 2 if player == 1 else 1


def resolve(p1_guesses: List[Guess], p2_guesses: List[Guess], acting_player: int, guess: Guess) -> Resolution:
    """Decide the outcome of ``acting_player`` submitting ``guess``.

    Player 2 always closes a round, so a win is never announced while the
    opponent still has an equalizing turn. Solving on the same turn count is
    a tie.
    """
    own = p1_guesses if acting_player == 1 else p2_guesses
    opponent = p2_guesses if acting_player == 1 else p1_guesses
    updated = list(own) + [guess]
    opponent_solved = any(g.solved for g in opponent)

    winner: Winner = None
    if guess.solved:
        if acting_player == 1:
            if len(opponent) >= len(updated):
                winner = 1
        else:
            winner = TIE if opponent_solved else 2
    elif opponent_solved:
        winner = other(acting_player)

    next_active = None if winner is not None else other(acting_player)
    return Resolution(winner, next_active, updated)
