from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import pytest

from bingo_room.models import (
    Card,
    Card75,
    Card90,
    CardFormat,
    GameSettings,
    GameStatus,
    Player,
    Room,
    WinType,
)
from bingo_room.rng import RandomSource


class ScriptedDraws(RandomSource):
    """Random source whose choice() returns pre-set numbers in order."""

    def __init__(self, numbers: Iterable[int]):
        super().__init__(engine="scripted")
        self._numbers: List[int] = list(numbers)

    def choice(self, seq: Sequence[int]) -> int:
        value = self._numbers.pop(0)
        assert value in seq, f"{value} is not available"
        return value


def fixed_75_cells() -> tuple:
    # row r, column c holds 15c + r + 1; row 0 is 1, 16, 31, 46, 61
    cells = [15 * c + r + 1 for r in range(5) for c in range(5)]
    cells[12] = None
    return tuple(cells)


def fixed_90_cells() -> tuple:
    # blanks at (0,0), (1,4), (2,8); every column ascends by one per row
    blanks = {(0, 0), (1, 4), (2, 8)}
    cells = []
    for r in range(3):
        for c in range(9):
            cells.append(None if (r, c) in blanks else Card90.column_range(c).start + r)
    return tuple(cells)


@pytest.fixture
def scripted():
    return ScriptedDraws


@pytest.fixture
def card75() -> Card75:
    return Card75(id="card-a", cells=fixed_75_cells())


@pytest.fixture
def card90() -> Card90:
    return Card90(id="card-n", cells=fixed_90_cells())


@pytest.fixture
def make_room():
    def _make(
        players: Sequence[Player],
        *,
        fmt: CardFormat = CardFormat.F75,
        win_conditions: Iterable[WinType] = (WinType.LINE, WinType.FULL_HOUSE),
        status: GameStatus = GameStatus.PLAYING,
        drawn: Sequence[int] = (),
        max_cards: int = 4,
        auto_mark: bool = True,
    ) -> Room:
        settings = GameSettings(
            format=fmt,
            max_cards_per_player=max_cards,
            win_conditions=frozenset(win_conditions),
            auto_mark=auto_mark,
        )
        return Room(
            code="ROOM42",
            host_id=players[0].id if players else "host",
            settings=settings,
            status=status,
            drawn_numbers=tuple(drawn),
            players=tuple(players),
        )

    return _make


def player_with(*cards: Card, pid: str = "p1", username: Optional[str] = None) -> Player:
    return Player(id=pid, username=username or pid, cards=cards)


@pytest.fixture
def player():
    return player_with
