from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.errors import NotFound
from castaway_league.models.models import Contestant, Episode, League, Season, SeasonStatus, Team


async def get_active_season(db: AsyncSession) -> Season:
    """The season currently airing. Callers pass it down explicitly from here."""
    result = await db.execute(
        select(Season)
        .where(Season.status == SeasonStatus.ACTIVE)
        .order_by(Season.season_number.desc())
    )
    season = result.scalars().first()
    if season is None:
        raise NotFound("No active season")
    return season


async def get_season(db: AsyncSession, season_id: int) -> Season:
    season = await db.get(Season, season_id)
    if season is None:
        raise NotFound("Season not found")
    return season


async def get_episode(db: AsyncSession, season_id: int, episode_id: int) -> Episode:
    result = await db.execute(
        select(Episode).where(Episode.id == episode_id, Episode.season_id == season_id)
    )
    episode = result.scalar_one_or_none()
    if episode is None:
        raise NotFound("Episode not found")
    return episode


async def get_contestant(db: AsyncSession, season_id: int, contestant_id: int) -> Contestant:
    result = await db.execute(
        select(Contestant).where(Contestant.id == contestant_id, Contestant.season_id == season_id)
    )
    contestant = result.scalar_one_or_none()
    if contestant is None:
        raise NotFound("Contestant not found")
    return contestant


async def get_league(db: AsyncSession, league_id: int) -> League:
    league = await db.get(League, league_id)
    if league is None:
        raise NotFound("League not found")
    return league


async def get_team(db: AsyncSession, league: League, team_id: int) -> Team:
    result = await db.execute(
        select(Team).where(Team.id == team_id, Team.league_id == league.id)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise NotFound("Team not found")
    return team


async def get_episode_by_id(db: AsyncSession, episode_id: int) -> Episode:
    """Any season's episode; callers check it belongs where they expect."""
    episode = await db.get(Episode, episode_id)
    if episode is None:
        raise NotFound("Episode not found")
    return episode
