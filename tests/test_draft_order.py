import random
from collections import Counter
from types import SimpleNamespace

import pytest

from castaway_league.services.draft_order import DraftSlot, SnakeDraftOrder, assign_draft_positions


def test_four_teams_two_rounds_snakes_back() -> None:
    order = SnakeDraftOrder(4, 2)
    slots = list(order)
    assert [s.team_index for s in slots] == [0, 1, 2, 3, 3, 2, 1, 0]
    assert [s.overall_pick for s in slots] == list(range(1, 9))
    assert [s.round for s in slots] == [0, 0, 0, 0, 1, 1, 1, 1]
    assert len(order) == 8


def test_every_team_picks_once_per_round() -> None:
    order = SnakeDraftOrder(5, 3)
    counts = Counter(s.team_index for s in order)
    assert counts == {i: 3 for i in range(5)}


def test_iterating_twice_gives_the_same_sequence() -> None:
    order = SnakeDraftOrder(3, 4)
    assert list(order) == list(order)


def test_slot_for_pick_matches_iteration() -> None:
    order = SnakeDraftOrder(3, 3)
    for slot in order:
        assert order.slot_for_pick(slot.overall_pick) == slot
    assert order.slot_for_pick(0) is None
    assert order.slot_for_pick(10) is None
    assert order.slot_for_pick(4) == DraftSlot(team_index=2, round=1, overall_pick=4)


def test_zero_rounds_is_empty() -> None:
    assert list(SnakeDraftOrder(4, 0)) == []


def test_rejects_no_teams() -> None:
    with pytest.raises(ValueError):
        SnakeDraftOrder(0, 3)


def test_rejects_negative_rounds() -> None:
    with pytest.raises(ValueError):
        SnakeDraftOrder(3, -1)


def _teams(n: int) -> list[SimpleNamespace]:
    return [SimpleNamespace(id=i + 1, draft_order=None) for i in range(n)]


def test_assign_draft_positions_is_a_permutation() -> None:
    teams = _teams(6)
    assert assign_draft_positions(teams, random.Random(7)) is True
    assert sorted(t.draft_order for t in teams) == [1, 2, 3, 4, 5, 6]


def test_assign_draft_positions_only_happens_once() -> None:
    teams = _teams(4)
    assign_draft_positions(teams, random.Random(1))
    before = [t.draft_order for t in teams]

    assert assign_draft_positions(teams, random.Random(2)) is False
    assert [t.draft_order for t in teams] == before
