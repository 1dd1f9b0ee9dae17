from typing import Any, Dict, NamedTuple

from .errors import InvalidGuess, InvalidSecret

CODE_LENGTH = 4


class Score(NamedTuple):
    correct_digits: int
    correct_positions: int


class Guess(NamedTuple):
    number: str
    correct_digits: int
    correct_positions: int

    @property
    def solved(self) -> bool:
        return self.correct_positions == CODE_LENGTH

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'correct_digits': self.correct_digits,
            'correct_positions': self.correct_positions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Guess':
        return cls(str(data['number']), int(data['correct_digits']), int(data['correct_positions']))


def score(guess: str, secret: str) -> Score:
    """Score a guess against the opponent's secret.

    ``correct_digits`` counts every digit of the guess that occurs anywhere in
    the secret, so a repeated guess digit is counted each time it appears.
    """
    correct_positions = sum(1 for g, s in zip(guess, secret) if g == s)
    correct_digits = sum(1 for g in guess if g in secret)
    return Score(correct_digits, correct_positions)


def make_guess(number: str, secret: str) -> Guess:
    result = score(number, secret)
    return Guess(number, result.correct_digits, result.correct_positions)


def validate_secret(value) -> str:
    value = value if isinstance(value, str) else ''
    if len(value) != CODE_LENGTH:
        raise InvalidSecret('Must be exactly 4 digits')
    if not value.isdigit() or not value.isascii():
        raise InvalidSecret('Must contain only digits')
    if '0' in value:
        raise InvalidSecret('Cannot contain 0')
    if len(set(value)) != CODE_LENGTH:
        raise InvalidSecret('Cannot have repeating digits')
    return value


def validate_guess(value) -> str:
    # Zero and repeated digits are fine for guesses
    value = value if isinstance(value, str) else ''
    if len(value) != CODE_LENGTH:
        raise InvalidGuess('Must be exactly 4 digits')
    if not value.isdigit() or not value.isascii():
        raise InvalidGuess('Must contain only digits')
    return value
