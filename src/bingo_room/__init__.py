"""Card generation, win evaluation and draw settlement for multiplayer bingo rooms."""

from .errors import (
    BingoError,
    CapacityExceeded,
    ExhaustedError,
    JoinRejected,
    NotHostError,
    PreconditionViolation,
    RoomExists,
    RoomNotFound,
)
from .evaluator import Evaluation, evaluate
from .game import DrawResult, draw_next, reset, settle
from .generator import generate
from .models import (
    Card,
    Card75,
    Card90,
    CardFormat,
    GameSettings,
    GameStatus,
    Player,
    Room,
    WinnerEntry,
    WinType,
)
from .version import __version__

__all__ = [
    "BingoError",
    "CapacityExceeded",
    "ExhaustedError",
    "JoinRejected",
    "NotHostError",
    "PreconditionViolation",
    "RoomExists",
    "RoomNotFound",
    "Evaluation",
    "evaluate",
    "DrawResult",
    "draw_next",
    "reset",
    "settle",
    "generate",
    "Card",
    "Card75",
    "Card90",
    "CardFormat",
    "GameSettings",
    "GameStatus",
    "Player",
    "Room",
    "WinnerEntry",
    "WinType",
    "__version__",
]
