"""
Budget ledger for auction drafts, plus each team's private valuations.

Every team starts with ``budget_remaining = league.budget``. Spending goes
through ``commit_bid``, a single conditional UPDATE, so two concurrent bids
can't both pass against the same stale balance.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import dialect_insert
from castaway_league.core.errors import InsufficientBudget, ValidationError
from castaway_league.models.models import DraftValuation, Team

logger = logging.getLogger(__name__)


def check_bid(team: Team, amount: int) -> None:
    if amount < 0:
        raise ValidationError("Bid amount cannot be negative")
    if amount > (team.budget_remaining or 0):
        raise InsufficientBudget(
            f"Bid of {amount} exceeds remaining budget of {team.budget_remaining or 0}"
        )


async def commit_bid(db: AsyncSession, team: Team, amount: int) -> int:
    """Deduct ``amount`` from the team's budget. Returns the new balance."""
    check_bid(team, amount)

    result = await db.execute(
        update(Team)
        .where(Team.id == team.id, Team.budget_remaining >= amount)
        .values(budget_remaining=Team.budget_remaining - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Someone else spent it between our read and the update
        await db.refresh(team)
        raise InsufficientBudget(
            f"Bid of {amount} exceeds remaining budget of {team.budget_remaining or 0}"
        )

    await db.refresh(team)
    logger.info("Team %d spent %d, %d left", team.id, amount, team.budget_remaining)
    return team.budget_remaining


async def upsert_valuation(
    db: AsyncSession,
    team: Team,
    contestant_id: int,
    my_value: int,
    max_bid: int | None = None,
) -> DraftValuation:
    if my_value < 0 or (max_bid is not None and max_bid < 0):
        raise ValidationError("Valuations cannot be negative")

    stmt = dialect_insert(db, DraftValuation).values(
        league_id=team.league_id,
        team_id=team.id,
        contestant_id=contestant_id,
        my_value=my_value,
        max_bid=max_bid,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["league_id", "team_id", "contestant_id"],
        set_={"my_value": stmt.excluded.my_value, "max_bid": stmt.excluded.max_bid},
    )
    await db.execute(stmt)

    result = await db.execute(
        select(DraftValuation)
        .where(
            DraftValuation.team_id == team.id,
            DraftValuation.contestant_id == contestant_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_valuations(db: AsyncSession, team: Team) -> list[DraftValuation]:
    result = await db.execute(
        select(DraftValuation)
        .where(DraftValuation.team_id == team.id)
        .order_by(DraftValuation.contestant_id)
    )
    return result.scalars().all()


async def get_valuation(db: AsyncSession, team: Team, contestant_id: int) -> DraftValuation | None:
    result = await db.execute(
        select(DraftValuation).where(
            DraftValuation.team_id == team.id,
            DraftValuation.contestant_id == contestant_id,
        )
    )
    return result.scalar_one_or_none()
