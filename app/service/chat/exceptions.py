"""Errors raised by the chat pipeline."""


class ChatError(Exception):
    """Base exception for chat-related errors."""
    pass


class ValidationError(ChatError):
    """A required field is missing or malformed. Raised before any side effect."""
    pass


class NotFoundError(ChatError):
    """Unknown message id."""
    pass


class PersistenceError(ChatError):
    """The message store could not write a record."""
    pass


class GenerationFailure(ChatError):
    """The remote generator failed. Never escapes the response generator."""
    pass
