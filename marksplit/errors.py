"""Exception hierarchy for marksplit."""

from __future__ import annotations


class MarksplitError(Exception):
    """Base class for all marksplit errors."""


class ConfigError(MarksplitError):
    """Configuration file could not be read or validated."""


class DeliveryError(MarksplitError):
    """A transport failed to deliver one message."""

    def __init__(self, message: str, status: int | None = None, retry_after: float | None = None):
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class MessageTooLongError(DeliveryError):
    """The transport rejected a message for exceeding its length limit."""


# Fragments a transport uses when content exceeds its message length limit
LENGTH_ERROR_MARKERS = (
    "Must be 2000 or fewer in length",
    "BASE_TYPE_MAX_LENGTH",
)
