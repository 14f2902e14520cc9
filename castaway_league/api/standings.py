from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import get_db
from castaway_league.schemas.scoring import (
    StandingRow, StandingsResponse, ScoringCategoryResponse,
)
from castaway_league.api.deps import get_identity
from castaway_league.services.permissions import Identity, require_commissioner_or_admin
from castaway_league.services.scoring_rules import (
    CATEGORY_BUCKETS, CATEGORY_LABELS, DEFAULT_POINTS, ScoringCategory, ScoringConfig,
)
from castaway_league.services.seasons import get_episode, get_league
from castaway_league.services.settlement import backfill_league, get_standings, settle_episode

router = APIRouter(prefix="/api/leagues/{league_id}", tags=["Standings"])


def _standings_response(league_id: int, episode, rows) -> StandingsResponse:
    return StandingsResponse(
        league_id=league_id,
        episode_id=episode.id if episode else None,
        episode_number=episode.episode_number if episode else None,
        standings=[StandingRow.model_validate(r) for r in rows],
    )


@router.get("/standings", response_model=StandingsResponse)
async def standings(
    league_id: int,
    episode_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    episode = await get_episode(db, league.season_id, episode_id) if episode_id else None
    rows = await get_standings(db, league, episode)
    if episode is None and rows:
        episode = await get_episode(db, league.season_id, rows[0].episode_id)
    return _standings_response(league.id, episode, rows)


@router.post("/episodes/{episode_id}/settle", response_model=StandingsResponse)
async def settle_league_episode(
    league_id: int,
    episode_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    require_commissioner_or_admin(identity, league)
    episode = await get_episode(db, league.season_id, episode_id)
    await settle_episode(db, league, episode)
    rows = await get_standings(db, league, episode)
    return _standings_response(league.id, episode, rows)


@router.post("/backfill", response_model=StandingsResponse)
async def backfill(
    league_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    require_commissioner_or_admin(identity, league)
    await backfill_league(db, league)
    rows = await get_standings(db, league)
    episode = await get_episode(db, league.season_id, rows[0].episode_id) if rows else None
    return _standings_response(league.id, episode, rows)


@router.get("/scoring-config", response_model=list[ScoringCategoryResponse])
async def scoring_config(
    league_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    config = ScoringConfig(league.scoring_config)
    return [
        ScoringCategoryResponse(
            category=category.value,
            label=CATEGORY_LABELS[category],
            bucket=CATEGORY_BUCKETS[category].value,
            default_points=DEFAULT_POINTS[category],
            points=config.points_for(category),
        )
        for category in ScoringCategory
    ]
