"""In-memory room store.

Implements the four-call contract a hosted document store offers the game:
``create_room``, ``join_room``, ``subscribe`` and ``patch_room``. Writes are
serialized with a lock; subscribers are called after the write, outside it,
with the new room snapshot.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import fields, replace
from typing import Any, Callable, Dict, List, Optional

from . import game
from .errors import PreconditionViolation, RoomExists, RoomNotFound
from .models import GameSettings, Player, Room

logger = logging.getLogger(__name__)

Listener = Callable[[Optional[Room]], None]

_PATCHABLE = {f.name for f in fields(Room)} - {"code"}


class InMemoryRoomStore:
    def __init__(self) -> None:
        self._rooms: Dict[str, Room] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.Lock()

    def get(self, code: str) -> Room:
        with self._lock:
            return self._get(code)

    def _get(self, code: str) -> Room:
        try:
            return self._rooms[code]
        except KeyError:
            raise RoomNotFound(f"room {code} not found") from None

    def _notify(self, code: str, room: Optional[Room]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(code, ()))
        for listener in listeners:
            listener(room)

    def create_room(self, code: str, host: Player, settings: GameSettings) -> Room:
        room = game.open_room(code, host, settings)
        with self._lock:
            if code in self._rooms:
                raise RoomExists(f"room {code} already exists")
            self._rooms[code] = room
        logger.info("Created room %s (host %s, %s-ball)", code, host.id, settings.format.value)
        self._notify(code, room)
        return room

    def join_room(self, code: str, player: Player) -> Room:
        with self._lock:
            current = self._get(code)
            room = game.join(current, player)
            self._rooms[code] = room
        if room is not current:
            self._notify(code, room)
        return room

    def subscribe(self, code: str, on_change: Listener) -> Callable[[], None]:
        """Register ``on_change`` and call it once with the current snapshot.

        The returned callable unsubscribes; calling it twice is harmless.
        """
        with self._lock:
            self._listeners.setdefault(code, []).append(on_change)
            current = self._rooms.get(code)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(code)
                if listeners and on_change in listeners:
                    listeners.remove(on_change)
                    if not listeners:
                        del self._listeners[code]

        on_change(current)
        return unsubscribe

    def patch_room(self, code: str, **changes: Any) -> Room:
        unknown = set(changes) - _PATCHABLE
        if unknown:
            raise PreconditionViolation(f"cannot patch room fields: {sorted(unknown)}")
        with self._lock:
            room = replace(self._get(code), **changes)
            self._rooms[code] = room
        logger.debug("Patched room %s: %s", code, sorted(changes))
        self._notify(code, room)
        return room

    def put(self, room: Room) -> Room:
        """Replace the whole room value; used to persist a core operation's result."""
        changes = {name: getattr(room, name) for name in _PATCHABLE}
        return self.patch_room(room.code, **changes)

    def delete_room(self, code: str) -> None:
        with self._lock:
            self._get(code)
            del self._rooms[code]
        self._notify(code, None)
