"""Rejections raised by the game services.

Every error here is recoverable: transports report it to the caller that
triggered it and carry on.
"""


class GameError(Exception):
    code = 'GameError'
    message = 'Game error'
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class GameNotActive(GameError):
    code = 'GameNotActive'
    message = 'Game is not active'
    status_code = 409


class InvalidToken(GameError):
    code = 'InvalidToken'
    message = 'Invalid token'
    status_code = 401


class RateLimited(GameError):
    code = 'RateLimited'
    message = 'Too fast'
    status_code = 429


class ResolutionInProgress(GameError):
    code = 'ResolutionInProgress'
    message = 'Wait for cards to flip back'
    status_code = 409


class CardNotFound(GameError):
    code = 'CardNotFound'
    message = 'Card not found'
    status_code = 404


class AlreadyMatched(GameError):
    code = 'AlreadyMatched'
    message = 'Already matched'
    status_code = 409


class AlreadyFlipped(GameError):
    code = 'AlreadyFlipped'
    message = 'Already flipped'
    status_code = 409


class TwoCardsOpen(GameError):
    code = 'TwoCardsOpen'
    message = 'Two cards already open'
    status_code = 409


class ValidationError(GameError):
    code = 'ValidationError'
    message = 'Invalid payload'
    status_code = 400


class StorageError(GameError):
    """Persistence failed; the operation was rolled back."""
    code = 'InternalError'
    message = 'Internal error'
    status_code = 500
