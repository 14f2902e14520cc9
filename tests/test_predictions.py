from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from castaway_league.core.errors import AlreadyScored, Conflict, DeadlinePassed, Forbidden, NotFound, ValidationError
from castaway_league.models.models import Prediction
from castaway_league.services import predictions as predictions_service
from castaway_league.services.predictions import (
    get_episode_predictions, get_team_predictions, submit_predictions, team_lock_query,
)
from tests.factories import hours_from_now, identity_for, make_episode, make_league, make_season, make_user


async def _setup(db, deadline=None):
    alice = await make_user(db, "alice")
    bob = await make_user(db, "bob")
    season, cast = await make_season(db)
    league, teams = await make_league(db, season, alice, [bob], team_count=3)
    episode = await make_episode(db, season, 1, deadline=deadline)
    return alice, bob, season, cast, league, teams, episode


async def _stored(db, team):
    result = await db.execute(
        select(Prediction.contestant_id, Prediction.points_allocated)
        .where(Prediction.team_id == team.id)
        .order_by(Prediction.contestant_id)
    )
    return result.all()


async def test_valid_allocation_is_stored_exactly(db) -> None:
    alice, _, _, cast, league, teams, episode = await _setup(db)
    rows = await submit_predictions(
        db, identity_for(alice), league, episode, teams[0],
        [(cast[0].id, 6), (cast[1].id, 4), (cast[2].id, 0)],
    )
    assert len(rows) == 2
    assert all(r.locked_at is not None for r in rows)
    assert await _stored(db, teams[0]) == [(cast[0].id, 6), (cast[1].id, 4)]


async def test_resubmitting_replaces_the_whole_set(db) -> None:
    alice, _, _, cast, league, teams, episode = await _setup(db)
    await submit_predictions(db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 10)])
    await submit_predictions(
        db, identity_for(alice), league, episode, teams[0], [(cast[3].id, 5), (cast[4].id, 5)]
    )
    assert await _stored(db, teams[0]) == [(cast[3].id, 5), (cast[4].id, 5)]


@pytest.mark.parametrize("allocation", [[9], [6, 5], [], [0, 0]])
async def test_wrong_total_is_rejected_without_touching_rows(db, allocation) -> None:
    alice, _, _, cast, league, teams, episode = await _setup(db)
    await submit_predictions(db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 10)])

    with pytest.raises(ValidationError):
        await submit_predictions(
            db, identity_for(alice), league, episode, teams[0],
            [(cast[i].id, points) for i, points in enumerate(allocation)],
        )
    assert await _stored(db, teams[0]) == [(cast[0].id, 10)]


async def test_negative_and_repeated_entries_are_rejected(db) -> None:
    alice, _, _, cast, league, teams, episode = await _setup(db)
    with pytest.raises(ValidationError):
        await submit_predictions(
            db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 12), (cast[1].id, -2)]
        )
    with pytest.raises(ValidationError):
        await submit_predictions(
            db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 5), (cast[0].id, 5)]
        )


async def test_contestant_from_another_season_is_rejected(db) -> None:
    alice, _, _, _, league, teams, episode = await _setup(db)
    _, other_cast = await make_season(db, number=51)
    with pytest.raises(ValidationError):
        await submit_predictions(db, identity_for(alice), league, episode, teams[0], [(other_cast[0].id, 10)])


async def test_only_the_owner_can_submit(db) -> None:
    alice, bob, _, cast, league, teams, episode = await _setup(db)
    with pytest.raises(Forbidden):
        await submit_predictions(db, identity_for(bob), league, episode, teams[0], [(cast[0].id, 10)])
    # Unclaimed seat
    with pytest.raises(Forbidden):
        await submit_predictions(db, identity_for(alice), league, episode, teams[2], [(cast[0].id, 10)])


async def test_episode_from_another_season_is_not_found(db) -> None:
    alice, _, _, cast, league, teams, _ = await _setup(db)
    other_season, _ = await make_season(db, number=51)
    foreign = await make_episode(db, other_season, 1)
    with pytest.raises(NotFound):
        await submit_predictions(db, identity_for(alice), league, foreign, teams[0], [(cast[0].id, 10)])


async def test_deadline_is_strict(db) -> None:
    deadline = hours_from_now(1)
    alice, _, _, cast, league, teams, episode = await _setup(db, deadline=deadline)

    await submit_predictions(
        db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 10)], now=deadline
    )
    with pytest.raises(DeadlinePassed):
        await submit_predictions(
            db, identity_for(alice), league, episode, teams[0], [(cast[1].id, 10)],
            now=deadline + timedelta(seconds=1),
        )
    assert await _stored(db, teams[0]) == [(cast[0].id, 10)]


async def test_scored_episode_is_closed(db) -> None:
    alice, _, _, cast, league, teams, episode = await _setup(db)
    episode.is_scored = True
    await db.flush()
    with pytest.raises(AlreadyScored):
        await submit_predictions(db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 10)])


async def test_commissioner_sees_every_team_in_creation_order(db) -> None:
    alice, bob, _, cast, league, teams, episode = await _setup(db)
    await submit_predictions(db, identity_for(bob), league, episode, teams[1], [(cast[2].id, 10)])

    grouped = await get_episode_predictions(db, identity_for(alice), league, episode)
    assert [team.id for team, _ in grouped] == [t.id for t in teams]
    assert [len(rows) for _, rows in grouped] == [0, 1, 0]

    with pytest.raises(Forbidden):
        await get_episode_predictions(db, identity_for(bob), league, episode)


async def test_team_predictions_are_private(db) -> None:
    alice, bob, _, cast, league, teams, episode = await _setup(db)
    await submit_predictions(db, identity_for(alice), league, episode, teams[0], [(cast[2].id, 10)])

    own = await get_team_predictions(db, identity_for(alice), league, episode, teams[0])
    assert [(p.contestant_id, p.points_allocated) for p in own] == [(cast[2].id, 10)]
    with pytest.raises(Forbidden):
        await get_team_predictions(db, identity_for(bob), league, episode, teams[0])


def test_submissions_lock_the_team_row() -> None:
    sql = str(team_lock_query(7).compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" in sql


async def test_rows_written_by_a_concurrent_submission_raise_conflict(db, monkeypatch) -> None:
    alice, _, _, cast, league, teams, episode = await _setup(db)
    await submit_predictions(db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 10)])

    # The other request's rows landed after this one cleared the old set
    async def cleared_too_early(db, league, episode, team):
        return None

    monkeypatch.setattr(predictions_service, "_clear_predictions", cleared_too_early)
    with pytest.raises(Conflict):
        await submit_predictions(db, identity_for(alice), league, episode, teams[0], [(cast[0].id, 10)])

    assert await _stored(db, teams[0]) == [(cast[0].id, 10)]
