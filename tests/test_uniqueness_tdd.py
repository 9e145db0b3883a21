from __future__ import annotations

from dataclasses import replace

from bingo_room.models import WinType
from bingo_room.uniqueness import card_hash, cards_hash, duplicate_layouts


def test_hash_ignores_id_and_play_state(card75):
    played = replace(card75, id="other", is_winner=True, win_types=frozenset({WinType.LINE}))
    assert card_hash(card75) == card_hash(played)
    assert card_hash(card75).startswith("sha256:")


def test_hashes_stable_and_distinct(card75, card90):
    assert card_hash(card75) != card_hash(card90)
    agg = cards_hash([card75, card90])
    assert agg.startswith("sha256:")
    assert agg == cards_hash([card75, card90])
    assert agg != cards_hash([card90, card75])


def test_duplicate_layouts_lists_later_copies(card75, card90):
    copy = replace(card75, id="copy")
    assert duplicate_layouts([card75, card90, copy]) == ["copy"]
