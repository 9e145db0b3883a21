"""Room lifecycle and the draw-and-settle step.

Functions take a :class:`~bingo_room.models.Room` and return a new one. The
winners ledger is keyed by ``(player_id, card_id, win_type)`` and only ever
grows between resets; re-settling a room never appends an existing key.
Callers must serialize invocations per room (only the host draws).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Set, Tuple

from .errors import CapacityExceeded, ExhaustedError, JoinRejected, PreconditionViolation
from .evaluator import evaluate
from .generator import generate
from .models import Card, GameSettings, GameStatus, Player, Room, WinnerEntry, WinType
from .rng import PyRandomSource, RandomSource

logger = logging.getLogger(__name__)

_WIN_ORDER = {w: i for i, w in enumerate(WinType)}


@dataclass(frozen=True)
class DrawResult:
    room: Room
    number: int
    new_winners: Tuple[WinnerEntry, ...]


def _require_status(room: Room, *allowed: GameStatus) -> None:
    if room.status not in allowed:
        names = ", ".join(s.value for s in allowed)
        raise PreconditionViolation(
            f"room {room.code} is {room.status.value}; expected one of: {names}"
        )


def _replace_player(room: Room, player: Player) -> Room:
    players = tuple(player if p.id == player.id else p for p in room.players)
    return replace(room, players=players)


# -- lobby ---------------------------------------------------------------


def open_room(code: str, host: Player, settings: GameSettings) -> Room:
    host = replace(host, is_host=True)
    if len(host.cards) > settings.max_cards_per_player:
        raise CapacityExceeded(f"host holds more than {settings.max_cards_per_player} cards")
    room = Room(code=code, host_id=host.id, settings=settings)
    taken: Set[str] = set()
    for card in host.cards:
        _check_card(room, card, taken)
        taken.add(card.id)
    return replace(room, players=(host,))


def join(room: Room, player: Player) -> Room:
    """Add a player to a room that has not started; rejoining is a no-op."""
    _require_status(room, GameStatus.LOBBY)
    if room.has_player(player.id):
        return room
    if any(p.username == player.username for p in room.players):
        raise JoinRejected(f"username {player.username!r} is already in use in room {room.code}")
    if len(player.cards) > room.settings.max_cards_per_player:
        raise CapacityExceeded(
            f"player {player.id} holds more than {room.settings.max_cards_per_player} cards"
        )
    taken = {c.id for _p, c in room.cards()}
    for card in player.cards:
        _check_card(room, card, taken)
        taken.add(card.id)
    logger.debug("Player %s joined room %s", player.id, room.code)
    return replace(room, players=room.players + (replace(player, is_host=False),))


def _check_card(room: Room, card: Card, taken: Set[str]) -> None:
    if card.format is not room.format:
        raise PreconditionViolation(f"card {card.id} is not a {room.format.value}-ball card")
    if card.id in taken:
        raise PreconditionViolation(f"card id {card.id} already used in room {room.code}")


def attach_card(room: Room, player_id: str, card: Card) -> Room:
    player = room.player(player_id)
    limit = room.settings.max_cards_per_player
    if len(player.cards) >= limit:
        raise CapacityExceeded(f"player {player_id} already holds {limit} cards")
    _check_card(room, card, {c.id for _p, c in room.cards()})
    return _replace_player(room, replace(player, cards=player.cards + (card,)))


def add_card(
    room: Room, player_id: str, rng: Optional[RandomSource] = None
) -> Tuple[Room, Card]:
    """Generate a card in the room's format and give it to a player."""
    card = generate(room.format, rng or PyRandomSource())
    return attach_card(room, player_id, card), card


def mark_cell(room: Room, player_id: str, card_id: str, index: int) -> Room:
    """Mark one cell of a player's card; only drawn numbers can be marked."""
    player = room.player(player_id)
    card = player.card(card_id)
    if not 0 <= index < len(card.cells):
        raise PreconditionViolation(f"cell index {index} out of range for card {card_id}")
    value = card.cells[index]
    if value is None:
        raise PreconditionViolation(f"cell {index} of card {card_id} holds no number")
    if value not in room.drawn_numbers:
        raise PreconditionViolation(f"{value} has not been drawn in room {room.code}")
    marked = card.marked[:index] + (True,) + card.marked[index + 1 :]
    cards = tuple(replace(c, marked=marked) if c.id == card_id else c for c in player.cards)
    return _replace_player(room, replace(player, cards=cards))


# -- status transitions --------------------------------------------------


def start(room: Room) -> Room:
    _require_status(room, GameStatus.LOBBY, GameStatus.PAUSED)
    return replace(room, status=GameStatus.PLAYING)


def pause(room: Room) -> Room:
    _require_status(room, GameStatus.PLAYING)
    return replace(room, status=GameStatus.PAUSED)


def finish(room: Room) -> Room:
    return replace(room, status=GameStatus.FINISHED)


# -- draw and settle -----------------------------------------------------


def settle(room: Room) -> Tuple[Room, Tuple[WinnerEntry, ...]]:
    """Re-evaluate every card against the drawn numbers and extend the ledger."""
    drawn = frozenset(room.drawn_numbers)
    enabled = room.settings.win_conditions
    known: Set[Tuple[str, str, WinType]] = {w.key for w in room.winners}
    new_entries: List[WinnerEntry] = []
    players: List[Player] = []

    for player in room.players:
        cards: List[Card] = []
        for card in player.cards:
            result = evaluate(card, drawn, enabled)
            for win_type in sorted(result.matched, key=_WIN_ORDER.__getitem__):
                entry = WinnerEntry(player.id, card.id, win_type, player.username)
                if entry.key not in known:
                    known.add(entry.key)
                    new_entries.append(entry)
            cards.append(
                replace(
                    card,
                    is_winner=result.is_winner,
                    win_types=result.matched,
                    almost_win=result.is_almost,
                )
            )
        players.append(replace(player, cards=tuple(cards)))

    for entry in new_entries:
        logger.info(
            "Room %s: %s won %s on card %s",
            room.code,
            entry.username or entry.player_id,
            entry.win_type.value,
            entry.card_id,
        )
    settled = replace(room, players=tuple(players), winners=room.winners + tuple(new_entries))
    return settled, tuple(new_entries)


def _auto_mark(room: Room, number: int) -> Room:
    players = []
    for player in room.players:
        cards = []
        for card in player.cards:
            if number in card.cells:
                idx = card.cells.index(number)
                card = replace(card, marked=card.marked[:idx] + (True,) + card.marked[idx + 1 :])
            cards.append(card)
        players.append(replace(player, cards=tuple(cards)))
    return replace(room, players=tuple(players))


def draw_next(room: Room, rng: Optional[RandomSource] = None) -> DrawResult:
    """Draw one unused number uniformly at random and settle the room.

    Raises :class:`ExhaustedError` when every number has been drawn; the input
    room is never modified either way.
    """
    _require_status(room, GameStatus.PLAYING)
    available = room.available_numbers()
    if not available:
        raise ExhaustedError(f"all {room.format.max_number} numbers drawn in room {room.code}")

    number = (rng or PyRandomSource()).choice(available)
    drawn = replace(room, drawn_numbers=room.drawn_numbers + (number,), last_drawn=number)
    if room.settings.auto_mark:
        drawn = _auto_mark(drawn, number)
    logger.debug("Room %s drew %d (%d left)", room.code, number, len(available) - 1)

    settled, new_entries = settle(drawn)
    return DrawResult(room=settled, number=number, new_winners=new_entries)


def reset(room: Room) -> Room:
    """Back to the lobby with the same cards and numbers, no draws, no winners."""
    players = tuple(
        replace(p, cards=tuple(card.reset() for card in p.cards)) for p in room.players
    )
    return replace(
        room,
        status=GameStatus.LOBBY,
        drawn_numbers=(),
        last_drawn=None,
        winners=(),
        players=players,
    )
