"""Host-side glue between the room store and the game functions.

The coordinator reads the current room from the store, applies one game
operation and writes the result back. Drawing, starting, pausing, finishing
and resetting are host-only: the host is the single writer of the draw
sequence for a room.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from . import game
from .errors import NotHostError, RoomExists
from .models import Card, GameSettings, Player, Room
from .rng import PyRandomSource, RandomSource, room_code
from .store import InMemoryRoomStore

logger = logging.getLogger(__name__)


class Coordinator:
    def __init__(self, store: InMemoryRoomStore, rng: Optional[RandomSource] = None):
        self.store = store
        self.rng = rng or PyRandomSource()

    def _host_only(self, code: str, actor_id: str) -> Room:
        room = self.store.get(code)
        if room.host_id != actor_id:
            raise NotHostError(f"only the host of room {code} may do that")
        return room

    def create(self, host: Player, settings: GameSettings, attempts: int = 10) -> Room:
        """Open a room under a fresh random code."""
        for _ in range(attempts):
            code = room_code(self.rng)
            try:
                return self.store.create_room(code, host, settings)
            except RoomExists:
                logger.debug("Room code %s taken, retrying", code)
        raise RoomExists(f"no free room code after {attempts} attempts")

    def join(self, code: str, player: Player) -> Room:
        return self.store.join_room(code, player)

    def add_card(self, code: str, player_id: str) -> Tuple[Room, Card]:
        room, card = game.add_card(self.store.get(code), player_id, self.rng)
        return self.store.put(room), card

    def mark(self, code: str, player_id: str, card_id: str, index: int) -> Room:
        return self.store.put(game.mark_cell(self.store.get(code), player_id, card_id, index))

    def start(self, code: str, actor_id: str) -> Room:
        return self.store.put(game.start(self._host_only(code, actor_id)))

    def pause(self, code: str, actor_id: str) -> Room:
        return self.store.put(game.pause(self._host_only(code, actor_id)))

    def finish(self, code: str, actor_id: str) -> Room:
        return self.store.put(game.finish(self._host_only(code, actor_id)))

    def draw(self, code: str, actor_id: str) -> game.DrawResult:
        result = game.draw_next(self._host_only(code, actor_id), self.rng)
        stored = self.store.put(result.room)
        return game.DrawResult(room=stored, number=result.number, new_winners=result.new_winners)

    def reset(self, code: str, actor_id: str) -> Room:
        return self.store.put(game.reset(self._host_only(code, actor_id)))

    def watch(self, code: str, on_change: Callable[[Optional[Room]], None]) -> Callable[[], None]:
        return self.store.subscribe(code, on_change)
