"""Exception hierarchy shared by the services and the HTTP layer.

Errors that carry an ``http_status`` are rendered by the API as
``{"error": message}`` with that status. The completion errors never reach
the HTTP layer: the response generator turns them into reply text.
"""

from typing import Optional


class ConvoBotError(Exception):
    """Base class for all application errors."""

    http_status: Optional[int] = None
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(ConvoBotError):
    http_status = 400
    default_message = "Bad request"


class NotFound(ConvoBotError):
    http_status = 404
    default_message = "Not found"


class InternalError(ConvoBotError):
    http_status = 500


class PersistenceError(ConvoBotError):
    """Storage backend failure after retries were exhausted."""

    http_status = 500
    default_message = "Storage backend failure"


class InvalidContext(ConvoBotError):
    """The response generator was called without a bot or a usable message."""

    default_message = "Invalid chat context provided"


# --- Completion service failures ---

class CompletionError(ConvoBotError):
    """Unclassified completion-service failure."""

    default_message = "Completion service failure"


class ServiceUnavailable(CompletionError):
    """Completion service missing, misconfigured or rejecting our credentials."""

    default_message = "Completion service unavailable"


class QuotaExceeded(CompletionError):
    default_message = "Completion service quota exhausted"


class ContentRejected(CompletionError):
    default_message = "Completion blocked by safety filters"
