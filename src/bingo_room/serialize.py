from __future__ import annotations

import json
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from .errors import PreconditionViolation
from .models import (
    Card,
    GameSettings,
    GameStatus,
    Player,
    Room,
    WinnerEntry,
    WinType,
    card_class,
)
from .uniqueness import card_hash, cards_hash


def ensure_parent(path: Path, *, mkdirs: bool) -> None:
    parent = path.parent
    if not parent.exists() and mkdirs:
        parent.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, data: object, *, mkdirs: bool, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        raise FileExistsError(
            f"Refusing to overwrite existing file without --force: {path}"
        )
    ensure_parent(path, mkdirs=mkdirs)
    text = json.dumps(data, ensure_ascii=True, sort_keys=True, indent=2)
    path.write_text(text + "\n", encoding="utf-8")


def read_json(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Top-level JSON in {path} must be an object")
    return data


def _sorted_wins(wins) -> List[str]:
    order = list(WinType)
    return [w.value for w in sorted(wins, key=order.index)]


def card_to_dict(card: Card) -> Dict[str, Any]:
    return {
        "id": card.id,
        "format": card.format.value,
        "cells": list(card.cells),
        "marked": list(card.marked),
        "is_winner": card.is_winner,
        "win_types": _sorted_wins(card.win_types),
        "almost_win": card.almost_win,
    }


def card_from_dict(data: Mapping[str, Any]) -> Card:
    try:
        cls = card_class(data["format"])
        return cls(
            id=str(data["id"]),
            cells=tuple(data["cells"]),
            marked=tuple(data.get("marked") or ()),
            is_winner=bool(data.get("is_winner", False)),
            win_types=frozenset(WinType(w) for w in data.get("win_types", ())),
            almost_win=bool(data.get("almost_win", False)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise PreconditionViolation(f"malformed card record: {exc}") from exc


def settings_to_dict(settings: GameSettings) -> Dict[str, Any]:
    return {
        "format": settings.format.value,
        "max_cards_per_player": settings.max_cards_per_player,
        "win_conditions": _sorted_wins(settings.win_conditions),
        "auto_mark": settings.auto_mark,
        "ball_interval": settings.ball_interval,
    }


def settings_from_dict(data: Mapping[str, Any]) -> GameSettings:
    return GameSettings(
        format=data.get("format", "75"),
        max_cards_per_player=int(data.get("max_cards_per_player", 4)),
        win_conditions=frozenset(WinType(w) for w in data.get("win_conditions", ("line", "full_house"))),
        auto_mark=bool(data.get("auto_mark", True)),
        ball_interval=int(data.get("ball_interval", 0)),
    )


def room_to_dict(room: Room) -> Dict[str, Any]:
    return {
        "code": room.code,
        "host_id": room.host_id,
        "status": room.status.value,
        "settings": settings_to_dict(room.settings),
        "drawn_numbers": list(room.drawn_numbers),
        "last_drawn": room.last_drawn,
        "players": [
            {
                "id": p.id,
                "username": p.username,
                "is_host": p.is_host,
                "cards": [card_to_dict(c) for c in p.cards],
            }
            for p in room.players
        ],
        "winners": [
            {
                "player_id": w.player_id,
                "username": w.username,
                "card_id": w.card_id,
                "win_type": w.win_type.value,
            }
            for w in room.winners
        ],
    }


def room_from_dict(data: Mapping[str, Any]) -> Room:
    try:
        players = tuple(
            Player(
                id=str(p["id"]),
                username=str(p["username"]),
                is_host=bool(p.get("is_host", False)),
                cards=tuple(card_from_dict(c) for c in p.get("cards", ())),
            )
            for p in data.get("players", ())
        )
        winners = tuple(
            WinnerEntry(
                player_id=str(w["player_id"]),
                card_id=str(w["card_id"]),
                win_type=WinType(w["win_type"]),
                username=str(w.get("username", "")),
            )
            for w in data.get("winners", ())
        )
        return Room(
            code=str(data["code"]),
            host_id=str(data["host_id"]),
            settings=settings_from_dict(data.get("settings", {})),
            status=GameStatus(data.get("status", GameStatus.LOBBY.value)),
            drawn_numbers=tuple(int(x) for x in data.get("drawn_numbers", ())),
            last_drawn=data.get("last_drawn"),
            players=players,
            winners=winners,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise PreconditionViolation(f"malformed room record: {exc}") from exc


def build_run_meta(
    *,
    app_version: str,
    params_hash: str,
    seed: int | None,
    rng_engine: str,
) -> Dict[str, object]:
    return {
        "app_version": app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "python_version": sys.version.split()[0],
        "platform": platform.system().lower(),
        "params_hash": params_hash,
        "seed": seed,
        "rng_engine": rng_engine,
        "hash_algorithm": "sha256",
    }


def emit_cards_json(
    path: Path,
    *,
    cards: Sequence[Card],
    run_meta: Dict[str, object],
    mkdirs: bool,
    overwrite: bool,
) -> None:
    entries = [dict(card_to_dict(c), card_hash=card_hash(c)) for c in cards]
    data = {
        "run_meta": run_meta,
        "cards": entries,
        "cards_hash": cards_hash(cards),
    }
    write_json(path, data, mkdirs=mkdirs, overwrite=overwrite)


def load_cards_json(path: Path) -> List[Card]:
    data = read_json(path)
    return [card_from_dict(entry) for entry in data.get("cards", [])]


def emit_report_json(
    path: Path, *, report: Dict[str, object], mkdirs: bool, overwrite: bool
) -> None:
    write_json(path, report, mkdirs=mkdirs, overwrite=overwrite)


def emit_room_json(path: Path, *, room: Room, mkdirs: bool, overwrite: bool) -> None:
    write_json(path, room_to_dict(room), mkdirs=mkdirs, overwrite=overwrite)
