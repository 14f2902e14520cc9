"""
Title picks: each week a team may guess who speaks the line the episode is
named after. The guess is a contestant, the host, or nothing at all.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import dialect_insert
from castaway_league.core.errors import Forbidden, ValidationError
from castaway_league.models.models import Contestant, Episode, League, Team, TitlePick
from castaway_league.services.permissions import Identity, require_identity
from castaway_league.services.predictions import (
    ensure_episode_in_league_season, ensure_episode_open, utcnow,
)

logger = logging.getLogger(__name__)

HOST = "host"

TitleSelection = int | str | None


def resolve_title_pick(pick, outcome, points: int) -> int:
    """
    Points earned by one pick against the episode's title speaker.

    ``outcome`` needs ``title_speaker_id`` and ``title_speaker_is_host``. An
    empty pick, or an episode with no recorded speaker, earns nothing.
    """
    if pick.is_host_pick:
        return points if outcome.title_speaker_is_host else 0
    if pick.contestant_id is None or outcome.title_speaker_is_host:
        return 0
    return points if pick.contestant_id == outcome.title_speaker_id else 0


async def find_member_team(db: AsyncSession, league: League, user_id: int) -> Team | None:
    result = await db.execute(
        select(Team).where(Team.league_id == league.id, Team.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def set_title_pick(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    episode: Episode,
    selection: TitleSelection,
    now: datetime | None = None,
) -> TitlePick:
    identity = require_identity(identity)
    team = await find_member_team(db, league, identity.user_id)
    if team is None:
        raise Forbidden("You don't have a team in this league")
    ensure_episode_in_league_season(league, episode)

    is_host = selection == HOST
    contestant_id = None
    if selection is not None and not is_host:
        if isinstance(selection, str) or isinstance(selection, bool):
            raise ValidationError(f"Invalid title pick: {selection!r}")
        contestant = await db.get(Contestant, selection)
        if contestant is None or contestant.season_id != league.season_id:
            raise ValidationError(f"Contestant {selection} is not in this season")
        contestant_id = contestant.id

    ensure_episode_open(episode, now or utcnow())

    stmt = dialect_insert(db, TitlePick).values(
        league_id=league.id,
        episode_id=episode.id,
        team_id=team.id,
        contestant_id=contestant_id,
        is_host_pick=is_host,
        points_earned=0,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["league_id", "episode_id", "team_id"],
        set_={
            "contestant_id": stmt.excluded.contestant_id,
            "is_host_pick": stmt.excluded.is_host_pick,
            "points_earned": 0,
        },
    )
    await db.execute(stmt)
    logger.info("Team %d set title pick for episode %d", team.id, episode.episode_number)

    return await get_title_pick(db, league, episode, team)


async def get_title_pick(db: AsyncSession, league: League, episode: Episode, team: Team) -> TitlePick | None:
    result = await db.execute(
        select(TitlePick)
        .where(
            TitlePick.league_id == league.id,
            TitlePick.episode_id == episode.id,
            TitlePick.team_id == team.id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
