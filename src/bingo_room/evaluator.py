"""Win-condition evaluation for a single card against the drawn numbers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Collection, FrozenSet, Iterable, List, Set

from .errors import PreconditionViolation
from .models import Card, Card75, Card90, Cell, WinType


@dataclass(frozen=True)
class Evaluation:
    matched: FrozenSet[WinType]
    is_almost: bool

    @property
    def is_winner(self) -> bool:
        return bool(self.matched)


def _all_hit(cells: Iterable[Cell], drawn: AbstractSet[int]) -> bool:
    return all(v is None or v in drawn for v in cells)


def _patterns_75(card: Card75, drawn: AbstractSet[int]) -> Set[WinType]:
    hits: Set[WinType] = set()
    full_rows = sum(1 for row in card.rows() if _all_hit(row, drawn))
    if full_rows >= 1:
        hits.add(WinType.LINE)
    if full_rows >= 2:
        hits.add(WinType.DOUBLE_LINE)
    if any(_all_hit(col, drawn) for col in card.columns()):
        hits.add(WinType.COLUMN)
    if any(_all_hit(diag, drawn) for diag in card.diagonals()):
        hits.add(WinType.DIAGONAL)
    if _all_hit(card.corners(), drawn):
        hits.add(WinType.CORNERS)
    if _all_hit(card.cells, drawn):
        hits.add(WinType.FULL_HOUSE)
    return hits


def _patterns_90(card: Card90, drawn: AbstractSet[int]) -> Set[WinType]:
    # 90-ball play only recognises a completed ticket
    if _all_hit(card.numbers, drawn):
        return {WinType.FULL_HOUSE}
    return set()


def missing_numbers(card: Card, drawn: Collection[int]) -> List[int]:
    drawn_set = drawn if isinstance(drawn, (set, frozenset)) else set(drawn)
    return [v for v in card.numbers if v not in drawn_set]


def almost_win(card: Card, drawn: Collection[int]) -> bool:
    """Exactly one populated number is still undrawn."""
    return len(missing_numbers(card, drawn)) == 1


def evaluate(
    card: Card, drawn: Collection[int], enabled: Collection[WinType]
) -> Evaluation:
    drawn_set = frozenset(drawn)
    if isinstance(card, Card75):
        hits = _patterns_75(card, drawn_set)
    elif isinstance(card, Card90):
        hits = _patterns_90(card, drawn_set)
    else:
        raise PreconditionViolation(f"Unsupported card type: {type(card).__name__}")
    enabled_set = {WinType(w) for w in enabled}
    return Evaluation(
        matched=frozenset(h for h in hits if h in enabled_set),
        is_almost=almost_win(card, drawn_set),
    )

