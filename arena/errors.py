"""Domain errors raised by the account and tournament services."""


class AppError(Exception):
    """Base application error class."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = None, status_code: int = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    default_message = "Validation failed"


class DuplicateIdentity(AppError):
    """Username, email or team name already taken."""
    default_message = "Username or Email already exists"


class InvalidCredentials(AppError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class InsufficientBalance(AppError):
    default_message = "Insufficient balance"


class TournamentFull(AppError):
    default_message = "Tournament full"


class AlreadyJoined(AppError):
    default_message = "Already joined"
