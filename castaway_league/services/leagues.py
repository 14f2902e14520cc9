import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.config import get_settings
from castaway_league.core.errors import Conflict, NotFound, ValidationError
from castaway_league.models.models import (
    Contestant, DraftMode, DraftStatus, Episode, League, Season, Team, User,
)
from castaway_league.services.invite_codes import allocate_invite_code, normalize_invite_code
from castaway_league.services.permissions import (
    Identity, require_commissioner_or_admin, require_identity, require_team_owner_or_commissioner,
)
from castaway_league.services.predictions import ensure_episode_in_league_season
from castaway_league.services.roster import calculate_roster_size
from castaway_league.services.scoring_rules import validate_overrides
from castaway_league.services.settlement import backfill_league

logger = logging.getLogger(__name__)


async def list_teams(db: AsyncSession, league: League) -> list[Team]:
    result = await db.execute(
        select(Team)
        .where(Team.league_id == league.id)
        .order_by(Team.id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def _invite_code_taken(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(League.id).where(League.invite_code == code))
    return result.scalar_one_or_none() is not None


async def create_league(
    db: AsyncSession,
    identity: Identity | None,
    season: Season,
    name: str,
    draft_mode: DraftMode,
    team_count: int,
    budget: int | None = None,
    team_name: str | None = None,
    scoring_config: dict | None = None,
) -> League:
    """
    Create a league plus all of its seats in one go.

    The commissioner's seat is claimed immediately; the other
    ``team_count - 1`` seats wait for someone with the invite code.
    """
    identity = require_identity(identity)
    name = (name or "").strip()
    if not name:
        raise ValidationError("League name is required")
    if team_count < 1:
        raise ValidationError("A league needs at least one team")

    draft_mode = DraftMode(draft_mode)
    if draft_mode == DraftMode.AUCTION:
        budget = get_settings().default_auction_budget if budget is None else budget
        if budget <= 0:
            raise ValidationError("Auction budget must be positive")
    else:
        budget = None

    overrides = validate_overrides(scoring_config or {})

    active_count = await db.scalar(
        select(func.count(Contestant.id)).where(
            Contestant.season_id == season.id,
            Contestant.is_active == True,
        )
    )
    sizing = calculate_roster_size(active_count, team_count)

    invite_code = await allocate_invite_code(lambda code: _invite_code_taken(db, code))

    league = League(
        season_id=season.id,
        name=name,
        commissioner_id=identity.user_id,
        draft_mode=draft_mode,
        draft_status=DraftStatus.PENDING,
        team_count=team_count,
        budget=budget,
        roster_size=sizing.roster_size,
        invite_code=invite_code,
        scoring_config=overrides,
    )
    db.add(league)
    await db.flush()

    if not team_name:
        user = await db.get(User, identity.user_id)
        team_name = f"{user.display_name}'s Team" if user else "Team 1"

    teams = [
        Team(
            league_id=league.id,
            user_id=identity.user_id if seat == 1 else None,
            name=team_name if seat == 1 else f"Team {seat}",
            budget_remaining=budget,
        )
        for seat in range(1, team_count + 1)
    ]
    db.add_all(teams)
    await db.flush()

    logger.info(
        "League %d created for season %d: %d teams, roster %d (%d left over), %s draft",
        league.id, season.season_number, team_count,
        sizing.roster_size, sizing.remainder, draft_mode.value,
    )
    return league


async def get_league_by_invite(db: AsyncSession, code: str) -> League:
    result = await db.execute(
        select(League).where(League.invite_code == normalize_invite_code(code))
    )
    league = result.scalar_one_or_none()
    if league is None:
        raise NotFound("No league with that invite code")
    return league


@dataclass
class InvitePreview:
    league: League
    season: Season
    open_seats: int
    can_join: bool


async def preview_invite(db: AsyncSession, code: str) -> InvitePreview:
    league = await get_league_by_invite(db, code)
    season = await db.get(Season, league.season_id)
    open_seats = await db.scalar(
        select(func.count(Team.id)).where(Team.league_id == league.id, Team.user_id.is_(None))
    )
    return InvitePreview(
        league=league,
        season=season,
        open_seats=open_seats,
        can_join=open_seats > 0 and DraftStatus(league.draft_status) != DraftStatus.COMPLETED,
    )


async def join_league(
    db: AsyncSession,
    identity: Identity | None,
    code: str,
    team_name: str | None = None,
) -> Team:
    identity = require_identity(identity)
    league = await get_league_by_invite(db, code)

    if DraftStatus(league.draft_status) == DraftStatus.COMPLETED:
        raise ValidationError("This league's draft is already finished")

    existing = await db.execute(
        select(Team.id).where(Team.league_id == league.id, Team.user_id == identity.user_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict("You already have a team in this league")

    seat_result = await db.execute(
        select(Team)
        .where(Team.league_id == league.id, Team.user_id.is_(None))
        .order_by(Team.id)
        .limit(1)
    )
    seat = seat_result.scalar_one_or_none()
    if seat is None:
        raise Conflict("This league is full")

    values = {"user_id": identity.user_id}
    if team_name and team_name.strip():
        values["name"] = team_name.strip()

    try:
        async with db.begin_nested():
            result = await db.execute(
                update(Team)
                .where(Team.id == seat.id, Team.user_id.is_(None))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
    except IntegrityError:
        raise Conflict("You already have a team in this league")
    if result.rowcount == 0:
        raise Conflict("That seat was just taken, try again")

    await db.refresh(seat)
    logger.info("User %d joined league %d as team %d", identity.user_id, league.id, seat.id)
    return seat


async def update_episode_deadline(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    episode: Episode,
    deadline: datetime | None,
) -> Episode:
    """Set or clear an episode's prediction deadline. Episodes are season-wide."""
    require_commissioner_or_admin(identity, league)
    ensure_episode_in_league_season(league, episode)
    episode.prediction_deadline = deadline
    await db.flush()
    logger.info("Episode %d deadline set to %s", episode.id, deadline)
    return episode


async def rename_team(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    team: Team,
    name: str,
) -> Team:
    if team.league_id != league.id:
        raise NotFound("Team not found")
    require_team_owner_or_commissioner(identity, league, team)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Team name is required")
    if len(name) > 100:
        raise ValidationError("Team name is too long")
    team.name = name
    await db.flush()
    return team


async def update_scoring_config(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    overrides: dict,
) -> League:
    """Replace the league's point overrides and re-settle everything already scored."""
    require_commissioner_or_admin(identity, league)
    league.scoring_config = validate_overrides(overrides)
    await db.flush()
    logger.info("League %d scoring config updated: %s", league.id, league.scoring_config)
    await backfill_league(db, league)
    return league
