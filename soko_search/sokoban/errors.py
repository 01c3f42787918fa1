from __future__ import annotations


class SokobanError(Exception):
    """Base exception for Sokoban search errors."""


class InvalidLevelError(SokobanError, ValueError):
    """Raised when a level definition is invalid."""


class InvalidActionError(SokobanError, ValueError):
    """Raised when a direction cannot be parsed."""


class IllegalMoveError(SokobanError):
    """Raised when a replayed move violates Sokoban rules."""


class ReachabilityError(SokobanError, LookupError):
    """Raised when a path is requested to or through an unreachable square."""


class UnsupportedModeError(SokobanError, NotImplementedError):
    """Raised when an operation is not available in the state's search direction."""
