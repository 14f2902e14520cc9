import pytest

from castaway_league.core.errors import InsufficientBudget, ValidationError
from castaway_league.models.models import DraftMode
from castaway_league.services.budget import (
    check_bid, commit_bid, get_valuation, get_valuations, upsert_valuation,
)
from tests.factories import make_league, make_season, make_user


async def _auction_team(db, budget=50):
    alice = await make_user(db, "alice")
    season, cast = await make_season(db)
    league, teams = await make_league(db, season, alice, draft_mode=DraftMode.AUCTION, budget=budget)
    return teams[0], cast


async def test_bid_over_budget_leaves_budget_unchanged(db) -> None:
    team, _ = await _auction_team(db, budget=50)
    with pytest.raises(InsufficientBudget):
        await commit_bid(db, team, 60)
    await db.refresh(team)
    assert team.budget_remaining == 50


async def test_commit_bid_deducts(db) -> None:
    team, _ = await _auction_team(db, budget=50)
    assert await commit_bid(db, team, 20) == 30
    assert await commit_bid(db, team, 30) == 0
    with pytest.raises(InsufficientBudget):
        await commit_bid(db, team, 1)


async def test_negative_bid_is_invalid(db) -> None:
    team, _ = await _auction_team(db)
    with pytest.raises(ValidationError):
        check_bid(team, -1)


async def test_stale_balance_cannot_overspend(db) -> None:
    team, _ = await _auction_team(db, budget=50)
    await commit_bid(db, team, 40)
    # Pretend this copy was read before the first bid landed
    team.budget_remaining = 50
    with pytest.raises(InsufficientBudget):
        await commit_bid(db, team, 30)
    assert team.budget_remaining == 10


async def test_valuations_upsert_by_contestant(db) -> None:
    team, cast = await _auction_team(db)
    assert await get_valuation(db, team, cast[0].id) is None

    await upsert_valuation(db, team, cast[0].id, my_value=12, max_bid=15)
    updated = await upsert_valuation(db, team, cast[0].id, my_value=20)
    await upsert_valuation(db, team, cast[1].id, my_value=3)

    assert updated.my_value == 20
    assert updated.max_bid is None
    valuations = await get_valuations(db, team)
    assert [(v.contestant_id, v.my_value) for v in valuations] == [(cast[0].id, 20), (cast[1].id, 3)]
