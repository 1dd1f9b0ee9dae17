"""Error taxonomy for room operations.

Every error carries a short ``kind`` used by clients to pick a message and a
``status_code`` used by the HTTP layer. None of them is fatal to the process.
"""


class GameError(Exception):
    kind = 'game_error'
    status_code = 400
    default_message = 'Game error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


# Validation: rejected before touching storage

class InvalidSecret(GameError):
    kind = 'invalid_secret'
    default_message = 'Invalid secret number'


class InvalidGuess(GameError):
    kind = 'invalid_guess'
    default_message = 'Invalid guess'


class InvalidPlayer(GameError):
    kind = 'invalid_player'
    default_message = 'Player must be 1 or 2'


class InvalidTimeLimit(GameError):
    kind = 'invalid_time_limit'
    default_message = 'Time limit out of range'


# Preconditions

class RoomNotFound(GameError):
    kind = 'room_not_found'
    status_code = 404
    default_message = 'Room not found. Please check the code and try again.'


class RoomFull(GameError):
    kind = 'room_full'
    status_code = 409
    default_message = 'Unable to join room. It may be full or no longer available.'


class OpponentSecretNotSet(GameError):
    kind = 'opponent_secret_not_set'
    status_code = 409
    default_message = "Opponent hasn't set their secret yet. Please wait."


class NotAuthorized(GameError):
    kind = 'not_authorized'
    status_code = 403
    default_message = 'You are not that player in this room'


class GameNotActive(GameError):
    kind = 'game_not_active'
    status_code = 409
    default_message = 'The game is not in progress'


class SecretAlreadySet(GameError):
    kind = 'secret_already_set'
    status_code = 409
    default_message = 'Secret number already set'


class ClockStillRunning(GameError):
    kind = 'clock_still_running'
    status_code = 409
    default_message = 'That clock has not run out'


# Contention

class StaleWrite(GameError):
    kind = 'stale_write'
    status_code = 409
    default_message = 'Turn changed or conflict detected. Please try again.'


class CodeCollision(GameError):
    kind = 'code_collision'
    status_code = 503
    default_message = 'Room code already in use, please retry'
