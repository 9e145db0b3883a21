"""Randomized card construction for the 75- and 90-ball formats."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import PreconditionViolation
from .models import Card, Card75, Card90, CardFormat, Cell
from .rng import PyRandomSource, RandomSource, card_id

logger = logging.getLogger(__name__)


def _shuffled_pool(values: range, rng: RandomSource) -> List[int]:
    pool = list(values)
    rng.shuffle(pool)
    return pool


def generate_75(rng: RandomSource) -> Card75:
    """Each column takes the first five of a shuffled 15-number range."""
    cells: List[Cell] = [None] * (Card75.ROWS * Card75.COLS)
    for col in range(Card75.COLS):
        pool = _shuffled_pool(Card75.column_range(col), rng)
        for row in range(Card75.ROWS):
            cells[row * Card75.COLS + col] = pool[row]
    cells[Card75.CENTER] = None
    return Card75(id=card_id(rng), cells=tuple(cells))


def generate_90(rng: RandomSource) -> Card90:
    """One random blank per row, other slots popped from shuffled column pools.

    Columns are sorted ascending afterwards with blanks left where they fell.
    """
    pools = [_shuffled_pool(Card90.column_range(c), rng) for c in range(Card90.COLS)]
    grid: List[List[Cell]] = []
    for _row in range(Card90.ROWS):
        blank = rng.randint(0, Card90.COLS - 1)
        grid.append([None if c == blank else pools[c].pop() for c in range(Card90.COLS)])

    for c in range(Card90.COLS):
        slots = [r for r in range(Card90.ROWS) if grid[r][c] is not None]
        ordered = sorted(grid[r][c] for r in slots)  # type: ignore[type-var]
        for r, value in zip(slots, ordered):
            grid[r][c] = value

    cells = tuple(v for row in grid for v in row)
    return Card90(id=card_id(rng), cells=cells)


_GENERATORS = {
    CardFormat.F75: generate_75,
    CardFormat.F90: generate_90,
}


def generate(fmt: CardFormat | str, rng: Optional[RandomSource] = None) -> Card:
    try:
        builder = _GENERATORS[CardFormat(fmt)]
    except ValueError as exc:
        raise PreconditionViolation(f"Unknown card format: {fmt!r}") from exc
    card = builder(rng or PyRandomSource())
    logger.debug("Generated %s-ball card %s", card.format.value, card.id)
    return card


def generate_many(
    fmt: CardFormat | str, count: int, rng: Optional[RandomSource] = None
) -> List[Card]:
    if count < 0:
        raise PreconditionViolation("count must be >= 0")
    source = rng or PyRandomSource()
    return [generate(fmt, source) for _ in range(count)]
