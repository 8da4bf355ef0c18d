"""
Exception types raised by the escape-time engine.
"""


class InvalidRequestError(ValueError):
    """Raised when a request fails validation before any computation starts."""


class SequenceExhaustedError(LookupError):
    """Raised when an orbit cursor is read past the end of its buffer."""


class OrbitBufferFrozenError(RuntimeError):
    """Raised when appending to an orbit buffer after reading has begun."""


class ComputationCancelled(RuntimeError):
    """Raised when a caller requests cancellation between grid cells."""
