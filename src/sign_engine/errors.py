"""Exception types raised by the gesture store and recognition engine.

No-match is not an error: ``recognize`` returns ``None`` for it.
"""


class SignEngineError(Exception):
    """Base class for all SignEngine errors."""
    pass


class InvalidSample(SignEngineError, ValueError):
    """Raised when landmark data or a pattern violates the caller contract.

    Examples: a hand that is not exactly 21 points, non-finite coordinates,
    or a pattern with zero samples submitted for storage.
    """
    pass


class PersistenceError(SignEngineError):
    """Raised when the durable storage slot cannot be read or written."""
    pass


class CorruptStorage(SignEngineError):
    """Raised when the persisted document exists but cannot be decoded."""
    pass
