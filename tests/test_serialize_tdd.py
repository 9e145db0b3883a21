from __future__ import annotations

from pathlib import Path

import pytest

from bingo_room.errors import PreconditionViolation
from bingo_room.game import settle
from bingo_room.models import Card75, WinType
from bingo_room.serialize import (
    card_from_dict,
    card_to_dict,
    emit_cards_json,
    load_cards_json,
    room_from_dict,
    room_to_dict,
)


def test_settled_room_survives_a_round_trip(card75, make_room, player):
    room = make_room([player(card75)], drawn=[1, 16, 31, 46, 61])
    settled, _ = settle(room)
    data = room_to_dict(settled)
    assert data["winners"] == [
        {"player_id": "p1", "username": "p1", "card_id": "card-a", "win_type": "line"}
    ]
    assert data["players"][0]["cards"][0]["cells"][12] is None
    assert room_from_dict(data) == settled


def test_card_record_uses_flat_arrays(card90):
    data = card_to_dict(card90)
    assert data["format"] == "90"
    assert len(data["cells"]) == 27
    assert len(data["marked"]) == 27
    assert data["win_types"] == []


def test_malformed_card_record_is_rejected(card75):
    data = card_to_dict(card75)
    data["cells"] = data["cells"][:-1]
    with pytest.raises(PreconditionViolation):
        card_from_dict(data)
    with pytest.raises(PreconditionViolation):
        card_from_dict({"format": "75"})


def test_win_types_are_written_in_a_stable_order(card75):
    won = Card75(
        id=card75.id,
        cells=card75.cells,
        win_types=frozenset({WinType.FULL_HOUSE, WinType.LINE, WinType.CORNERS}),
    )
    assert card_to_dict(won)["win_types"] == ["line", "corners", "full_house"]


def test_cards_json_refuses_overwrite(tmp_path: Path, card75):
    path = tmp_path / "out" / "cards.json"
    emit_cards_json(path, cards=[card75], run_meta={}, mkdirs=True, overwrite=False)
    assert load_cards_json(path) == [card75]
    with pytest.raises(FileExistsError):
        emit_cards_json(path, cards=[card75], run_meta={}, mkdirs=True, overwrite=False)
