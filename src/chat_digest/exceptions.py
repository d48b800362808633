"""Unified exception hierarchy for chat-digest."""


class ChatDigestError(Exception):
    """Base exception for all chat-digest errors."""


# Configuration
class ConfigurationError(ChatDigestError):
    """Invalid or missing settings. Fatal at startup."""


# Retention buffer
class StorageError(ChatDigestError):
    """A buffer bucket could not be read or written."""


# Completion model
class ModelError(ChatDigestError):
    """Completion model call failed."""


class EmptyCompletionError(ModelError):
    """Completion model returned no text where text was required."""


# Transport
class DispatchError(ChatDigestError):
    """Failed to send a message through the chat transport."""
