"""Error taxonomy for room and card operations."""

from __future__ import annotations


class BingoError(Exception):
    """Base class for every error raised by bingo_room."""


class ExhaustedError(BingoError):
    """Every number of the format has already been drawn."""


class CapacityExceeded(BingoError):
    """A player already holds the maximum number of cards."""


class PreconditionViolation(BingoError, ValueError):
    """Programmer error: malformed card, unknown format or wrong room state."""


class JoinRejected(BingoError):
    """The username is already taken by another player in the room."""


class NotHostError(BingoError):
    """A host-only action was attempted by another player."""


class RoomNotFound(BingoError):
    """No room is stored under the given code."""


class RoomExists(BingoError):
    """A room with the given code is already stored."""
