# app/services/errors.py
"""
Error taxonomy for commands.

Handlers raise these; CommandRouter.dispatch turns every CommandError
into a {success: False, message} result, so none of them reach the UI
as an exception.
"""


class CommandError(Exception):
    """Base class. `message` is safe to show to the user."""

    default_message = "Operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(CommandError):
    default_message = "Invalid credentials"


class Unauthorized(CommandError):
    default_message = "Unauthorized access"


class NotFound(CommandError):
    default_message = "Not found"


class ValidationError(CommandError):
    default_message = "Invalid input"


class OperationFailed(CommandError):
    default_message = "Operation failed"
