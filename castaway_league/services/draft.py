"""
Draft state machine and pick acceptance.

    pending --> active --> completed

Starting the draft shuffles the seats once. Completing it backfills the
standings for every episode already scored, so a league that drafts late
still sees its roster's earlier points.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.errors import Conflict, NotFound, ValidationError
from castaway_league.models.models import (
    Contestant, DraftMode, DraftPick, DraftStatus, League, Team,
)
from castaway_league.services.budget import commit_bid
from castaway_league.services.draft_order import DraftSlot, SnakeDraftOrder, assign_draft_positions
from castaway_league.services.permissions import (
    Identity, require_commissioner_or_admin, require_team_owner_or_commissioner,
)
from castaway_league.services.settlement import backfill_league

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    (DraftStatus.PENDING, DraftStatus.ACTIVE),
    (DraftStatus.ACTIVE, DraftStatus.COMPLETED),
}


async def _league_teams(db: AsyncSession, league: League) -> list[Team]:
    result = await db.execute(select(Team).where(Team.league_id == league.id).order_by(Team.id))
    return result.scalars().all()


async def transition_draft(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    target: DraftStatus,
) -> League:
    require_commissioner_or_admin(identity, league)
    current = DraftStatus(league.draft_status)
    target = DraftStatus(target)

    if current == target:
        if target == DraftStatus.COMPLETED:
            # Re-running the backfill is harmless and repairs stale standings
            await backfill_league(db, league)
        return league

    if (current, target) not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Cannot move draft from {current.value} to {target.value}")

    if target == DraftStatus.ACTIVE:
        teams = await _league_teams(db, league)
        if assign_draft_positions(teams):
            logger.info("League %d: draft order assigned for %d teams", league.id, len(teams))

    league.draft_status = target
    await db.flush()
    logger.info("League %d draft %s -> %s", league.id, current.value, target.value)

    if target == DraftStatus.COMPLETED:
        await backfill_league(db, league)
    return league


async def make_pick(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    team: Team,
    contestant_id: int,
    amount_paid: int | None = None,
) -> DraftPick:
    if DraftStatus(league.draft_status) != DraftStatus.ACTIVE:
        raise ValidationError("Draft is not active")
    if team.league_id != league.id:
        raise NotFound("Team not found")
    identity = require_team_owner_or_commissioner(identity, league, team)

    contestant = await db.get(Contestant, contestant_id)
    if contestant is None or contestant.season_id != league.season_id:
        raise NotFound("Contestant not found in this season")

    existing = await db.execute(
        select(DraftPick.id).where(
            DraftPick.league_id == league.id,
            DraftPick.contestant_id == contestant_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict(f"{contestant.name} has already been drafted")

    roster_count = await db.scalar(
        select(func.count(DraftPick.id)).where(DraftPick.team_id == team.id)
    )
    if league.roster_size is not None and roster_count >= league.roster_size:
        raise ValidationError("Roster is full")

    if DraftMode(league.draft_mode) == DraftMode.AUCTION:
        if amount_paid is None:
            raise ValidationError("Auction picks need an amount paid")
        await commit_bid(db, team, amount_paid)
    else:
        amount_paid = None

    league_count = await db.scalar(
        select(func.count(DraftPick.id)).where(DraftPick.league_id == league.id)
    )
    pick_number = league_count + 1
    pick = DraftPick(
        league_id=league.id,
        team_id=team.id,
        contestant_id=contestant_id,
        round=(pick_number - 1) // league.team_count,
        pick_number=pick_number,
        amount_paid=amount_paid,
        is_commissioner_pick=team.user_id != identity.user_id,
    )
    try:
        async with db.begin_nested():
            db.add(pick)
    except IntegrityError:
        raise Conflict(f"{contestant.name} has already been drafted")

    logger.info(
        "League %d pick %d: team %d takes %s%s",
        league.id, pick_number, team.id, contestant.name,
        f" for {amount_paid}" if amount_paid is not None else "",
    )
    return pick


@dataclass
class DraftBoard:
    league: League
    teams: list[Team]
    picks: list[DraftPick]
    next_slot: DraftSlot | None
    next_team: Team | None


async def get_draft_board(db: AsyncSession, league: League) -> DraftBoard:
    """Teams in draft order, picks so far, and whose turn it is in a snake draft."""
    teams = await _league_teams(db, league)
    teams = sorted(teams, key=lambda t: (t.draft_order is None, t.draft_order or 0, t.id))

    picks_result = await db.execute(
        select(DraftPick).where(DraftPick.league_id == league.id).order_by(DraftPick.pick_number, DraftPick.id)
    )
    picks = picks_result.scalars().all()

    next_slot = None
    next_team = None
    if (
        DraftMode(league.draft_mode) == DraftMode.SNAKE
        and DraftStatus(league.draft_status) == DraftStatus.ACTIVE
        and teams
    ):
        order = SnakeDraftOrder(len(teams), league.roster_size or 0)
        next_slot = order.slot_for_pick(len(picks) + 1)
        if next_slot is not None:
            next_team = teams[next_slot.team_index]

    return DraftBoard(league=league, teams=teams, picks=picks, next_slot=next_slot, next_team=next_team)
