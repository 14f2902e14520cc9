from types import SimpleNamespace

import pytest

from castaway_league.core.errors import AlreadyScored, DeadlinePassed, Forbidden, ValidationError
from castaway_league.services.title_picks import HOST, resolve_title_pick, set_title_pick
from tests.factories import (
    hours_from_now, identity_for, make_episode, make_league, make_season, make_user,
)


def _pick(contestant_id=None, is_host_pick=False):
    return SimpleNamespace(contestant_id=contestant_id, is_host_pick=is_host_pick)


def _outcome(speaker=None, host=False):
    return SimpleNamespace(title_speaker_id=speaker, title_speaker_is_host=host)


def test_resolve_contestant_pick() -> None:
    assert resolve_title_pick(_pick(5), _outcome(speaker=5), 3) == 3
    assert resolve_title_pick(_pick(5), _outcome(speaker=6), 3) == 0


def test_resolve_host_pick() -> None:
    assert resolve_title_pick(_pick(is_host_pick=True), _outcome(host=True), 3) == 3
    assert resolve_title_pick(_pick(is_host_pick=True), _outcome(speaker=5), 3) == 0
    assert resolve_title_pick(_pick(5), _outcome(host=True), 3) == 0


def test_resolve_empty_pick_or_unknown_speaker() -> None:
    assert resolve_title_pick(_pick(), _outcome(speaker=5), 3) == 0
    assert resolve_title_pick(_pick(5), _outcome(), 3) == 0


async def test_set_title_pick_upserts(db) -> None:
    alice = await make_user(db, "alice")
    season, cast = await make_season(db)
    league, teams = await make_league(db, season, alice)
    episode = await make_episode(db, season, 1)

    pick = await set_title_pick(db, identity_for(alice), league, episode, cast[0].id)
    assert pick.contestant_id == cast[0].id
    assert pick.is_host_pick is False

    pick = await set_title_pick(db, identity_for(alice), league, episode, HOST)
    assert pick.contestant_id is None
    assert pick.is_host_pick is True

    pick = await set_title_pick(db, identity_for(alice), league, episode, None)
    assert pick.contestant_id is None
    assert pick.is_host_pick is False
    assert pick.team_id == teams[0].id


async def test_set_title_pick_rejects_closed_episodes(db) -> None:
    alice = await make_user(db, "alice")
    season, cast = await make_season(db)
    league, _ = await make_league(db, season, alice)

    late = await make_episode(db, season, 1, deadline=hours_from_now(-1))
    with pytest.raises(DeadlinePassed):
        await set_title_pick(db, identity_for(alice), league, late, HOST)

    scored = await make_episode(db, season, 2)
    scored.is_scored = True
    await db.flush()
    with pytest.raises(AlreadyScored):
        await set_title_pick(db, identity_for(alice), league, scored, HOST)


async def test_set_title_pick_requires_a_team_and_a_season_contestant(db) -> None:
    alice = await make_user(db, "alice")
    mallory = await make_user(db, "mallory")
    season, _ = await make_season(db)
    _, other_cast = await make_season(db, number=51)
    league, _ = await make_league(db, season, alice)
    episode = await make_episode(db, season, 1)

    with pytest.raises(Forbidden):
        await set_title_pick(db, identity_for(mallory), league, episode, HOST)
    with pytest.raises(ValidationError):
        await set_title_pick(db, identity_for(alice), league, episode, other_cast[0].id)
