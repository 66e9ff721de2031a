"""Error vocabulary shared by the card and game engine.

Construction, state and snapshot problems raise a ``GameError`` subclass.
Turn protocol problems are never raised: ``Game.flip_card`` returns them as a
failed ``FlipResult`` carrying one of the ``*_CODE`` constants below.
"""


NEGATIVE_POSITION = 'NEGATIVE_POSITION'
INVALID_POSITION = 'INVALID_POSITION'
GAME_COMPLETED = 'GAME_COMPLETED'
CARD_NOT_FLIPPABLE = 'CARD_NOT_FLIPPABLE'
TOO_MANY_FLIPPED = 'TOO_MANY_FLIPPED'

PROTOCOL_MESSAGES = {
    NEGATIVE_POSITION: 'Position cannot be negative',
    INVALID_POSITION: 'Invalid position',
    GAME_COMPLETED: 'Game already completed',
    CARD_NOT_FLIPPABLE: 'This card cannot be flipped',
    TOO_MANY_FLIPPED: 'Two cards already flipped. Wait for the result.',
}


class GameError(ValueError):
    code = 'GAME_ERROR'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'success': False, 'error_code': self.code, 'message': self.message}


class InvalidId(GameError):
    code = 'INVALID_ID'


class InvalidDifficulty(GameError):
    code = 'INVALID_DIFFICULTY'


class InvalidOwner(GameError):
    code = 'INVALID_OWNER'


class NotCompleted(GameError):
    code = 'NOT_COMPLETED'


class InvalidSnapshot(GameError):
    code = 'INVALID_SNAPSHOT'
