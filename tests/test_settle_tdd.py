from __future__ import annotations

from dataclasses import replace

import pytest

from bingo_room.errors import ExhaustedError, PreconditionViolation
from bingo_room.game import draw_next, reset, settle
from bingo_room.generator import generate
from bingo_room.models import CardFormat, GameStatus, WinnerEntry, WinType
from bingo_room.rng import create_rng

ROW0 = [1, 16, 31, 46, 61]


def test_drawing_a_row_records_one_line_win(card75, make_room, player, scripted):
    room = make_room([player(card75)])
    source = scripted(ROW0)
    new_entries = []
    for _ in ROW0:
        result = draw_next(room, source)
        room = result.room
        new_entries.extend(result.new_winners)

    card = room.player("p1").card("card-a")
    assert card.win_types == {WinType.LINE}
    assert card.is_winner is True
    assert new_entries == [WinnerEntry("p1", "card-a", WinType.LINE, "p1")]
    assert room.winners == tuple(new_entries)
    assert room.drawn_numbers == tuple(ROW0)
    assert room.last_drawn == 61


def test_same_draw_twice_gives_same_ledger(card75, make_room, player, scripted):
    room = make_room([player(card75)], drawn=ROW0[:4])
    first = draw_next(room, scripted([61]))
    second = draw_next(room, scripted([61]))
    assert first == second
    keys = [w.key for w in second.room.winners]
    assert len(keys) == len(set(keys)) == 1


def test_resettling_a_won_card_adds_nothing(card75, make_room, player, scripted):
    room = make_room([player(card75)], drawn=ROW0[:4])
    room = draw_next(room, scripted([61])).room
    again, new_entries = settle(room)
    assert new_entries == ()
    assert again.winners == room.winners


def test_existing_winner_only_appends_new_conditions(card75, make_room, player, scripted):
    room = make_room(
        [player(card75)],
        win_conditions={WinType.LINE, WinType.COLUMN},
        drawn=ROW0 + [2, 3, 4],
    )
    room, entries = settle(room)
    assert [e.win_type for e in entries] == [WinType.LINE]

    result = draw_next(room, scripted([5]))
    assert [e.win_type for e in result.new_winners] == [WinType.COLUMN]
    assert [w.win_type for w in result.room.winners] == [WinType.LINE, WinType.COLUMN]
    assert result.room.player("p1").card("card-a").win_types == {WinType.LINE, WinType.COLUMN}


def test_win_types_are_replaced_not_merged(card75, make_room, player):
    room = make_room([player(card75)], drawn=ROW0)
    settled, _ = settle(room)
    assert settled.player("p1").card("card-a").win_types == {WinType.LINE}
    narrowed = replace(settled, settings=replace(settled.settings, win_conditions=frozenset({WinType.FULL_HOUSE})))
    resettled, entries = settle(narrowed)
    card = resettled.player("p1").card("card-a")
    assert card.win_types == frozenset()
    assert card.is_winner is False
    # the ledger keeps what was already won
    assert resettled.winners == settled.winners
    assert entries == ()


def test_every_player_and_card_is_settled(card75, make_room, player):
    other = replace(card75, id="card-b")
    room = make_room([player(card75), player(other, pid="p2")], drawn=ROW0)
    settled, entries = settle(room)
    assert [(e.player_id, e.card_id) for e in entries] == [("p1", "card-a"), ("p2", "card-b")]


def test_draws_cover_the_range_then_exhaust(make_room, player):
    rng = create_rng("py_random", 3)
    card = generate(CardFormat.F90, rng)
    room = make_room([player(card)], fmt=CardFormat.F90, win_conditions={WinType.FULL_HOUSE})
    for _ in range(90):
        room = draw_next(room, rng).room
    assert sorted(room.drawn_numbers) == list(range(1, 91))
    assert room.player("p1").cards[0].win_types == {WinType.FULL_HOUSE}

    before = room
    with pytest.raises(ExhaustedError):
        draw_next(room, rng)
    assert room == before
    assert len(room.drawn_numbers) == 90


def test_exhausted_75(card75, make_room, player):
    room = make_room([player(card75)], drawn=range(1, 76))
    with pytest.raises(ExhaustedError):
        draw_next(room)


@pytest.mark.parametrize("status", [GameStatus.LOBBY, GameStatus.PAUSED, GameStatus.FINISHED])
def test_draw_requires_a_running_game(card75, make_room, player, status):
    room = make_room([player(card75)], status=status)
    with pytest.raises(PreconditionViolation):
        draw_next(room)


def test_auto_mark_follows_draws(card75, make_room, player, scripted):
    room = make_room([player(card75)])
    room = draw_next(room, scripted([16])).room
    card = room.player("p1").card("card-a")
    assert card.marked[1] is True
    assert sum(card.marked) == 2

    manual = make_room([player(card75)], auto_mark=False)
    manual = draw_next(manual, scripted([16])).room
    assert sum(manual.player("p1").card("card-a").marked) == 1


def test_almost_flag_is_tracked(card90, make_room, player, scripted):
    numbers = list(card90.numbers)
    room = make_room(
        [player(card90)], fmt=CardFormat.F90, win_conditions={WinType.FULL_HOUSE}, drawn=numbers[:-2]
    )
    room = draw_next(room, scripted([numbers[-2]])).room
    assert room.player("p1").cards[0].almost_win is True
    room = draw_next(room, scripted([numbers[-1]])).room
    card = room.player("p1").cards[0]
    assert card.almost_win is False
    assert card.is_winner is True


def test_reset_is_idempotent_and_keeps_cards(card75, make_room, player, scripted):
    room = make_room([player(card75)], drawn=ROW0[:4])
    played = draw_next(room, scripted([61])).room
    once = reset(played)
    twice = reset(once)
    assert once == twice
    assert once.status is GameStatus.LOBBY
    assert once.drawn_numbers == ()
    assert once.last_drawn is None
    assert once.winners == ()
    card = once.player("p1").card("card-a")
    assert card.cells == card75.cells
    assert card.id == card75.id
    assert card.is_winner is False
    assert card.win_types == frozenset()
    assert card.almost_win is False
    assert card.marked == card75.marked
