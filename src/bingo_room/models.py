"""Value types for cards, players and rooms.

Every type here is a frozen dataclass. Operations in :mod:`bingo_room.game`
return new values built with :func:`dataclasses.replace` and never mutate the
ones they are given.

Cards are a tagged variant keyed by :class:`CardFormat`: :class:`Card75` is a
5x5 grid with a free centre, :class:`Card90` is a 3x9 ticket with one blank
slot per row. Each variant owns its own row/column math and validates its
shape on construction. Blank slots are ``None`` in ``cells``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple, Type

from .errors import PreconditionViolation

Cell = Optional[int]


class CardFormat(str, Enum):
    F75 = "75"
    F90 = "90"

    @property
    def max_number(self) -> int:
        return 75 if self is CardFormat.F75 else 90

    def full_range(self) -> range:
        return range(1, self.max_number + 1)


class WinType(str, Enum):
    LINE = "line"
    DOUBLE_LINE = "double_line"
    COLUMN = "column"
    DIAGONAL = "diagonal"
    CORNERS = "corners"
    FULL_HOUSE = "full_house"


class GameStatus(str, Enum):
    LOBBY = "lobby"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"


WIN_TYPE_LABELS: Dict[WinType, str] = {
    WinType.LINE: "Line",
    WinType.DOUBLE_LINE: "Double line",
    WinType.COLUMN: "Column",
    WinType.DIAGONAL: "Diagonal",
    WinType.CORNERS: "Four corners",
    WinType.FULL_HOUSE: "BINGO!",
}

# Win conditions each format can ever produce.
SUPPORTED_WIN_TYPES: Dict[CardFormat, FrozenSet[WinType]] = {
    CardFormat.F75: frozenset(WinType),
    CardFormat.F90: frozenset({WinType.FULL_HOUSE}),
}


@dataclass(frozen=True)
class Card:
    """Base of the card variants. Use :func:`card_class` or a subclass."""

    id: str
    cells: Tuple[Cell, ...]
    marked: Tuple[bool, ...] = ()
    is_winner: bool = False
    win_types: FrozenSet[WinType] = frozenset()
    almost_win: bool = False

    format: ClassVar[CardFormat]
    ROWS: ClassVar[int]
    COLS: ClassVar[int]

    def __post_init__(self) -> None:
        if type(self) is Card:
            raise PreconditionViolation("Card is abstract; use Card75 or Card90")
        object.__setattr__(self, "cells", tuple(self.cells))
        object.__setattr__(self, "win_types", frozenset(WinType(w) for w in self.win_types))
        if len(self.cells) != self.ROWS * self.COLS:
            raise PreconditionViolation(
                f"{self.format.value}-ball card needs {self.ROWS * self.COLS} cells, "
                f"got {len(self.cells)}"
            )
        if not self.marked:
            object.__setattr__(self, "marked", self.initial_marks())
        else:
            object.__setattr__(self, "marked", tuple(bool(m) for m in self.marked))
        if len(self.marked) != len(self.cells):
            raise PreconditionViolation("marked mask must be parallel to cells")
        self._validate()

    # -- shape -------------------------------------------------------------

    def cell(self, row: int, col: int) -> Cell:
        return self.cells[row * self.COLS + col]

    def rows(self) -> List[Tuple[Cell, ...]]:
        return [self.cells[r * self.COLS : (r + 1) * self.COLS] for r in range(self.ROWS)]

    def columns(self) -> List[Tuple[Cell, ...]]:
        return [tuple(self.cell(r, c) for r in range(self.ROWS)) for c in range(self.COLS)]

    @property
    def numbers(self) -> Tuple[int, ...]:
        """Populated values in row-major order."""
        return tuple(v for v in self.cells if v is not None)

    @classmethod
    def column_range(cls, col: int) -> range:
        raise NotImplementedError

    def initial_marks(self) -> Tuple[bool, ...]:
        raise NotImplementedError

    def _validate(self) -> None:
        raise NotImplementedError

    def _validate_columns(self) -> None:
        numbers = self.numbers
        if len(set(numbers)) != len(numbers):
            raise PreconditionViolation(f"card {self.id} repeats a number")
        for c, column in enumerate(self.columns()):
            allowed = self.column_range(c)
            for value in column:
                if value is not None and value not in allowed:
                    raise PreconditionViolation(
                        f"card {self.id}: {value} outside column {c} range "
                        f"[{allowed.start}, {allowed.stop - 1}]"
                    )

    # -- state -------------------------------------------------------------

    def reset(self) -> "Card":
        return replace(
            self,
            marked=self.initial_marks(),
            is_winner=False,
            win_types=frozenset(),
            almost_win=False,
        )


@dataclass(frozen=True)
class Card75(Card):
    """American 75-ball card: 5x5, column k holds numbers 15k+1..15k+15."""

    format: ClassVar[CardFormat] = CardFormat.F75
    ROWS: ClassVar[int] = 5
    COLS: ClassVar[int] = 5
    CENTER: ClassVar[int] = 12

    @classmethod
    def column_range(cls, col: int) -> range:
        return range(15 * col + 1, 15 * col + 16)

    def initial_marks(self) -> Tuple[bool, ...]:
        return tuple(i == self.CENTER for i in range(self.ROWS * self.COLS))

    def diagonals(self) -> List[Tuple[Cell, ...]]:
        main = tuple(self.cell(i, i) for i in range(5))
        anti = tuple(self.cell(i, 4 - i) for i in range(5))
        return [main, anti]

    def corners(self) -> Tuple[Cell, ...]:
        return (self.cell(0, 0), self.cell(0, 4), self.cell(4, 0), self.cell(4, 4))

    def _validate(self) -> None:
        blanks = [i for i, v in enumerate(self.cells) if v is None]
        if blanks != [self.CENTER]:
            raise PreconditionViolation(
                f"card {self.id}: 75-ball card must have exactly the centre free"
            )
        self._validate_columns()


@dataclass(frozen=True)
class Card90(Card):
    """90-ball ticket: 3x9, 24 numbers, one blank per row, columns ascending."""

    format: ClassVar[CardFormat] = CardFormat.F90
    ROWS: ClassVar[int] = 3
    COLS: ClassVar[int] = 9

    @classmethod
    def column_range(cls, col: int) -> range:
        if col == 0:
            return range(1, 10)
        if col == 8:
            return range(80, 91)
        return range(10 * col, 10 * col + 10)

    def initial_marks(self) -> Tuple[bool, ...]:
        return (False,) * (self.ROWS * self.COLS)

    def _validate(self) -> None:
        for r, row in enumerate(self.rows()):
            if sum(1 for v in row if v is None) != 1:
                raise PreconditionViolation(
                    f"card {self.id}: 90-ball row {r} must have exactly one blank"
                )
        self._validate_columns()
        for c, column in enumerate(self.columns()):
            values = [v for v in column if v is not None]
            if any(a >= b for a, b in zip(values, values[1:])):
                raise PreconditionViolation(
                    f"card {self.id}: column {c} is not ascending top-to-bottom"
                )


_CARD_CLASSES: Dict[CardFormat, Type[Card]] = {
    CardFormat.F75: Card75,
    CardFormat.F90: Card90,
}


def card_class(fmt: CardFormat | str) -> Type[Card]:
    try:
        return _CARD_CLASSES[CardFormat(fmt)]
    except ValueError as exc:
        raise PreconditionViolation(f"Unknown card format: {fmt!r}") from exc


@dataclass(frozen=True)
class WinnerEntry:
    player_id: str
    card_id: str
    win_type: WinType
    username: str = ""

    @property
    def key(self) -> Tuple[str, str, WinType]:
        return (self.player_id, self.card_id, self.win_type)


@dataclass(frozen=True)
class Player:
    id: str
    username: str
    is_host: bool = False
    cards: Tuple[Card, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "cards", tuple(self.cards))

    def card(self, card_id: str) -> Card:
        for card in self.cards:
            if card.id == card_id:
                return card
        raise PreconditionViolation(f"player {self.id} has no card {card_id}")


@dataclass(frozen=True)
class GameSettings:
    format: CardFormat = CardFormat.F75
    max_cards_per_player: int = 4
    win_conditions: FrozenSet[WinType] = frozenset({WinType.LINE, WinType.FULL_HOUSE})
    auto_mark: bool = True
    # seconds between automatic draws, 0 for manual
    ball_interval: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "format", CardFormat(self.format))
        object.__setattr__(
            self, "win_conditions", frozenset(WinType(w) for w in self.win_conditions)
        )
        if self.max_cards_per_player < 1:
            raise PreconditionViolation("max_cards_per_player must be >= 1")
        if self.ball_interval < 0:
            raise PreconditionViolation("ball_interval must be >= 0")


@dataclass(frozen=True)
class Room:
    code: str
    host_id: str
    settings: GameSettings = field(default_factory=GameSettings)
    status: GameStatus = GameStatus.LOBBY
    drawn_numbers: Tuple[int, ...] = ()
    last_drawn: Optional[int] = None
    players: Tuple[Player, ...] = ()
    winners: Tuple[WinnerEntry, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", GameStatus(self.status))
        object.__setattr__(self, "drawn_numbers", tuple(self.drawn_numbers))
        object.__setattr__(self, "players", tuple(self.players))
        object.__setattr__(self, "winners", tuple(self.winners))
        seen: Set[int] = set()
        for n in self.drawn_numbers:
            if not 1 <= n <= self.format.max_number:
                raise PreconditionViolation(
                    f"drawn number {n} outside 1..{self.format.max_number} in room {self.code}"
                )
            if n in seen:
                raise PreconditionViolation(f"number {n} drawn twice in room {self.code}")
            seen.add(n)

    @property
    def format(self) -> CardFormat:
        return self.settings.format

    def player(self, player_id: str) -> Player:
        for p in self.players:
            if p.id == player_id:
                return p
        raise PreconditionViolation(f"room {self.code} has no player {player_id}")

    def has_player(self, player_id: str) -> bool:
        return any(p.id == player_id for p in self.players)

    def available_numbers(self) -> List[int]:
        drawn = set(self.drawn_numbers)
        return [x for x in self.format.full_range() if x not in drawn]

    def cards(self) -> Iterable[Tuple[Player, Card]]:
        for p in self.players:
            for card in p.cards:
                yield p, card
