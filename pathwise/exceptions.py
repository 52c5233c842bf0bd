"""
Error taxonomy for the learning engine.

Invalid input fails fast before any state is touched. Missing history is
never an error: analytics return zeroed results instead.
"""

from __future__ import annotations


class PathwiseError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(PathwiseError, ValueError):
    """Raised when an event or argument is malformed."""


class InvalidQualityError(InvalidInputError):
    """Raised when a review quality rating is outside 0-5."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(f"Quality must be an integer between 0 and 5, got {quality!r}")


class InvalidTransitionError(InvalidInputError):
    """Raised when a learning path cannot move to the requested status."""

    def __init__(self, path_id: str, current: str, requested: str):
        self.path_id = path_id
        self.current = current
        self.requested = requested
        super().__init__(f"Learning path {path_id} cannot move from '{current}' to '{requested}'")


class NotFoundError(PathwiseError, LookupError):
    """Raised when an entity required by an operation does not exist."""


class PathNotFoundError(NotFoundError):
    """Raised when a learning path id is unknown."""

    def __init__(self, path_id: str):
        self.path_id = path_id
        super().__init__(f"Learning path not found: {path_id}")
