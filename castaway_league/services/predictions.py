"""
Weekly prediction ledger.

A team spreads exactly ``prediction_points_budget`` points (10 by default)
over contestants it thinks will be voted out. Submitting again before the
deadline replaces the whole set; rows only ever exist as a complete,
validated set.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.config import get_settings
from castaway_league.core.errors import AlreadyScored, Conflict, DeadlinePassed, NotFound, ValidationError
from castaway_league.models.models import Contestant, Episode, League, Prediction, Team
from castaway_league.services.permissions import (
    Identity, require_commissioner_or_admin, require_team_owner, require_team_owner_or_commissioner,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def deadline_passed(episode: Episode, now: datetime) -> bool:
    """Strictly after the deadline. No deadline means never."""
    if episode.prediction_deadline is None:
        return False
    return as_utc(now) > as_utc(episode.prediction_deadline)


def ensure_episode_open(episode: Episode, now: datetime) -> None:
    if deadline_passed(episode, now):
        raise DeadlinePassed()
    if episode.is_scored:
        raise AlreadyScored()


def ensure_episode_in_league_season(league: League, episode: Episode) -> None:
    if episode.season_id != league.season_id:
        raise NotFound("Episode not found")


async def _season_contestant_ids(db: AsyncSession, season_id: int) -> set[int]:
    result = await db.execute(select(Contestant.id).where(Contestant.season_id == season_id))
    return set(result.scalars().all())


def _validate_allocations(allocations: Iterable[tuple[int, int]], valid_ids: set[int], budget: int) -> dict[int, int]:
    cleaned: dict[int, int] = {}
    seen: set[int] = set()
    for contestant_id, points in allocations:
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationError("Points must be non-negative whole numbers")
        if contestant_id not in valid_ids:
            raise ValidationError(f"Contestant {contestant_id} is not in this season")
        if contestant_id in seen:
            raise ValidationError(f"Contestant {contestant_id} appears more than once")
        seen.add(contestant_id)
        if points > 0:
            cleaned[contestant_id] = points

    total = sum(cleaned.values())
    if total != budget:
        raise ValidationError(f"Points must total exactly {budget} (got {total})")
    return cleaned


def team_lock_query(team_id: int):
    return select(Team.id).where(Team.id == team_id).with_for_update()


async def lock_team(db: AsyncSession, team: Team) -> None:
    """Row-lock the team until the transaction ends. A no-op on SQLite, which serializes writers anyway."""
    await db.execute(team_lock_query(team.id))


async def _clear_predictions(db: AsyncSession, league: League, episode: Episode, team: Team) -> None:
    await db.execute(
        delete(Prediction).where(
            Prediction.league_id == league.id,
            Prediction.episode_id == episode.id,
            Prediction.team_id == team.id,
        )
    )


async def submit_predictions(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    episode: Episode,
    team: Team,
    allocations: Iterable[tuple[int, int]],
    now: datetime | None = None,
) -> list[Prediction]:
    """
    Replace the team's predictions for an episode.

    Every check runs before anything is written: ownership, that the
    episode belongs to the league's season, the allocations themselves,
    the deadline, then the scored latch. The team row is locked, then the old
    rows are deleted and the new ones inserted in the caller's transaction.
    """
    require_team_owner(identity, team)
    if team.league_id != league.id:
        raise NotFound("Team not found")
    ensure_episode_in_league_season(league, episode)

    budget = get_settings().prediction_points_budget
    valid_ids = await _season_contestant_ids(db, league.season_id)
    cleaned = _validate_allocations(list(allocations), valid_ids, budget)

    now = now or utcnow()
    ensure_episode_open(episode, now)

    # Serializes concurrent submissions for this team; the loser then sees the winner's rows
    await lock_team(db, team)
    await _clear_predictions(db, league, episode, team)
    rows = [
        Prediction(
            league_id=league.id,
            episode_id=episode.id,
            team_id=team.id,
            contestant_id=contestant_id,
            points_allocated=points,
            points_earned=0,
            locked_at=now,
        )
        for contestant_id, points in sorted(cleaned.items())
    ]
    try:
        async with db.begin_nested():
            db.add_all(rows)
    except IntegrityError:
        raise Conflict("Predictions for this episode were changed by another request, try again")

    logger.info(
        "Team %d locked %d prediction(s) for league %d episode %d",
        team.id, len(rows), league.id, episode.episode_number,
    )
    return rows


async def get_team_predictions(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    episode: Episode,
    team: Team,
) -> list[Prediction]:
    require_team_owner_or_commissioner(identity, league, team)
    result = await db.execute(
        select(Prediction)
        .where(
            Prediction.league_id == league.id,
            Prediction.episode_id == episode.id,
            Prediction.team_id == team.id,
        )
        .order_by(Prediction.contestant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def get_episode_predictions(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    episode: Episode,
) -> list[tuple[Team, list[Prediction]]]:
    """Every team in creation order with its locked predictions; empty list if it hasn't submitted."""
    require_commissioner_or_admin(identity, league)
    ensure_episode_in_league_season(league, episode)

    teams_result = await db.execute(
        select(Team).where(Team.league_id == league.id).order_by(Team.id)
    )
    teams = teams_result.scalars().all()

    pred_result = await db.execute(
        select(Prediction)
        .where(Prediction.league_id == league.id, Prediction.episode_id == episode.id)
        .order_by(Prediction.team_id, Prediction.contestant_id)
        .execution_options(populate_existing=True)
    )
    by_team: dict[int, list[Prediction]] = {}
    for prediction in pred_result.scalars().all():
        by_team.setdefault(prediction.team_id, []).append(prediction)

    return [(team, by_team.get(team.id, [])) for team in teams]
