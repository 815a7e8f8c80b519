"""Errors raised by the game services.

Each carries the HTTP status the API layer answers with; the message is
meant to be shown to the player as-is.
"""


class GameError(Exception):
    status_code = 400
    default_message = 'Could not complete the operation'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(GameError):
    status_code = 400
    default_message = 'Invalid data'


class InvalidCategories(ValidationError):
    default_message = 'Exactly 5 non-empty categories are required'


class NotFound(GameError):
    status_code = 404
    default_message = 'Not found'


class RoomNotFound(NotFound):
    default_message = 'Room not found'


class RoundNotFound(NotFound):
    default_message = 'Round not found'


class PlayerNotFound(NotFound):
    default_message = 'Player not found'


class AnswerNotFound(NotFound):
    default_message = 'Answer not found'


class Forbidden(GameError):
    status_code = 403
    default_message = 'Only the organizer can do that'


class PreconditionFailed(GameError):
    status_code = 409
    default_message = 'The game is not in the right state for that'


class InsufficientPlayers(PreconditionFailed):
    default_message = 'At least 2 players are required'


class RoomNotJoinable(PreconditionFailed):
    default_message = 'Game already in progress'


class InvalidState(PreconditionFailed):
    pass


class StoreError(GameError):
    status_code = 500
    default_message = 'Could not complete the operation'


class CreationError(StoreError):
    default_message = 'Could not create the room'
