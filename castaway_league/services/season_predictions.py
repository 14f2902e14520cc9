"""
Season-long bonus predictions: one free-text answer per team per question
("who wins?", "is there a tribe swap?"). Answers can be changed until the
season's first episode is scored. Grading sets ``points_earned`` on each
answer and pins it to the latest scored episode, whose standings row then
carries the points.
"""

import logging
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.config import get_settings
from castaway_league.core.database import dialect_insert
from castaway_league.core.errors import AlreadyScored, Forbidden, NotFound, ValidationError
from castaway_league.models.models import Episode, League, Season, SeasonPrediction, Team
from castaway_league.services.permissions import (
    Identity, is_commissioner_or_admin, require_admin, require_commissioner_or_admin, require_identity,
)
from castaway_league.services.predictions import utcnow
from castaway_league.services.settlement import (
    SeasonSettlementReport, backfill_league, latest_scored_episode, settle_season,
)
from castaway_league.services.title_picks import find_member_team

logger = logging.getLogger(__name__)


def normalize_category(raw: str | None) -> str:
    category = (raw or "").strip().lower()
    if not category:
        raise ValidationError("Category is required")
    if len(category) > 50:
        raise ValidationError("Category is too long")
    return category


def normalize_answer(raw: str | None) -> str | None:
    answer = (raw or "").strip()
    if len(answer) > 200:
        raise ValidationError("Answer is too long")
    return answer or None


def _check_points(points: int) -> int:
    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise ValidationError("Points must be a non-negative whole number")
    return points


async def season_predictions_locked(db: AsyncSession, season_id: int) -> bool:
    return await latest_scored_episode(db, season_id) is not None


async def _grading_episode(db: AsyncSession, season_id: int) -> Episode:
    latest = await latest_scored_episode(db, season_id)
    if latest is None:
        raise ValidationError("Season predictions can be graded once an episode has been scored")
    return latest


async def submit_season_prediction(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    category: str,
    answer: str | None,
    now: datetime | None = None,
) -> SeasonPrediction:
    """Set the caller's answer for one question, replacing any earlier answer and its grade."""
    identity = require_identity(identity)
    team = await find_member_team(db, league, identity.user_id)
    if team is None:
        raise Forbidden("You don't have a team in this league")
    category = normalize_category(category)
    answer = normalize_answer(answer)
    if await season_predictions_locked(db, league.season_id):
        raise AlreadyScored("Season predictions are locked once the first episode is scored")

    stmt = dialect_insert(db, SeasonPrediction).values(
        league_id=league.id,
        team_id=team.id,
        category=category,
        answer=answer,
        is_correct=None,
        points_earned=0,
        graded_episode_id=None,
        locked_at=now or utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["league_id", "team_id", "category"],
        set_={
            "answer": stmt.excluded.answer,
            "locked_at": stmt.excluded.locked_at,
            "is_correct": None,
            "points_earned": 0,
            "graded_episode_id": None,
        },
    )
    await db.execute(stmt)
    logger.info("Team %d answered season question %r in league %d", team.id, category, league.id)

    result = await db.execute(
        select(SeasonPrediction)
        .where(
            SeasonPrediction.league_id == league.id,
            SeasonPrediction.team_id == team.id,
            SeasonPrediction.category == category,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def list_season_predictions(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
) -> list[SeasonPrediction]:
    """
    The league's season answers, by team then category.

    Commissioners and admins see everything. Members see only their own team
    until answers lock, then everyone's.
    """
    identity = require_identity(identity)
    query = (
        select(SeasonPrediction)
        .where(SeasonPrediction.league_id == league.id)
        .order_by(SeasonPrediction.team_id, SeasonPrediction.category)
        .execution_options(populate_existing=True)
    )
    if not is_commissioner_or_admin(identity, league):
        team = await find_member_team(db, league, identity.user_id)
        if team is None:
            raise Forbidden("You don't have a team in this league")
        if not await season_predictions_locked(db, league.season_id):
            query = query.where(SeasonPrediction.team_id == team.id)
    result = await db.execute(query)
    return result.scalars().all()


async def _grade_category_rows(
    db: AsyncSession,
    league_ids: list[int],
    category: str,
    correct_answer: str,
    points: int,
    graded_episode: Episode,
) -> None:
    # A regrade keeps points on the episode they were first credited to
    graded_episode_id = func.coalesce(SeasonPrediction.graded_episode_id, graded_episode.id)
    matches = func.lower(SeasonPrediction.answer) == correct_answer.lower()
    scope = (SeasonPrediction.league_id.in_(league_ids), SeasonPrediction.category == category)

    await db.execute(
        update(SeasonPrediction)
        .where(*scope, matches)
        .values(is_correct=True, points_earned=points, graded_episode_id=graded_episode_id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(SeasonPrediction)
        .where(*scope, or_(SeasonPrediction.answer.is_(None), ~matches))
        .values(is_correct=False, points_earned=0, graded_episode_id=graded_episode_id)
        .execution_options(synchronize_session=False)
    )


async def grade_category(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    category: str,
    correct_answer: str,
    points: int | None = None,
) -> list[SeasonPrediction]:
    """Mark every answer to ``category`` in the league right or wrong, then re-settle the league."""
    require_commissioner_or_admin(identity, league)
    category = normalize_category(category)
    correct_answer = normalize_answer(correct_answer)
    if correct_answer is None:
        raise ValidationError("A correct answer is required")
    points = _check_points(get_settings().season_prediction_points if points is None else points)
    graded_episode = await _grading_episode(db, league.season_id)

    await _grade_category_rows(db, [league.id], category, correct_answer, points, graded_episode)
    logger.info("League %d graded season question %r: %r is worth %d", league.id, category, correct_answer, points)
    await backfill_league(db, league)

    result = await db.execute(
        select(SeasonPrediction)
        .where(SeasonPrediction.league_id == league.id, SeasonPrediction.category == category)
        .order_by(SeasonPrediction.team_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def grade_team_answer(
    db: AsyncSession,
    identity: Identity | None,
    league: League,
    team: Team,
    category: str,
    is_correct: bool | None,
    points_earned: int,
) -> SeasonPrediction:
    """Grade one team's answer by hand, for questions with no single right answer."""
    require_commissioner_or_admin(identity, league)
    if team.league_id != league.id:
        raise NotFound("Team not found")
    category = normalize_category(category)
    points_earned = _check_points(points_earned)

    result = await db.execute(
        select(SeasonPrediction).where(
            SeasonPrediction.league_id == league.id,
            SeasonPrediction.team_id == team.id,
            SeasonPrediction.category == category,
        )
    )
    answer = result.scalar_one_or_none()
    if answer is None:
        raise NotFound("That team hasn't answered this question")

    graded_episode = await _grading_episode(db, league.season_id)
    answer.is_correct = is_correct
    answer.points_earned = points_earned
    answer.graded_episode_id = answer.graded_episode_id or graded_episode.id
    await db.flush()

    await backfill_league(db, league)
    return answer


async def grade_category_for_season(
    db: AsyncSession,
    identity: Identity | None,
    season: Season,
    category: str,
    correct_answer: str,
    points: int | None = None,
) -> SeasonSettlementReport:
    """Admin grading of one question across every league in the season."""
    require_admin(identity)
    category = normalize_category(category)
    correct_answer = normalize_answer(correct_answer)
    if correct_answer is None:
        raise ValidationError("A correct answer is required")
    points = _check_points(get_settings().season_prediction_points if points is None else points)
    graded_episode = await _grading_episode(db, season.id)

    league_ids = (await db.execute(select(League.id).where(League.season_id == season.id))).scalars().all()
    if league_ids:
        await _grade_category_rows(db, list(league_ids), category, correct_answer, points, graded_episode)
    logger.info(
        "Season %d graded season question %r across %d league(s)",
        season.season_number, category, len(league_ids),
    )
    return await settle_season(db, season, graded_episode)
