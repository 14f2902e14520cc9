from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from castaway_league.core.database import get_db
from castaway_league.core.errors import Conflict
from castaway_league.models.models import Episode
from castaway_league.schemas.episodes import EpisodeCreate, EpisodeUpdate, EpisodeResponse
from castaway_league.schemas.scoring import EpisodeResultsSubmit, SettlementReportResponse
from castaway_league.api.deps import get_identity, get_admin_identity
from castaway_league.services.episode_results import record_episode_results
from castaway_league.services.permissions import Identity
from castaway_league.services.seasons import get_episode, get_season
from castaway_league.services.settlement import settle_season

router = APIRouter(prefix="/api/seasons/{season_id}/episodes", tags=["Episodes"])


@router.post("", response_model=EpisodeResponse, status_code=201)
async def create_episode(
    season_id: int,
    body: EpisodeCreate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_admin_identity),
):
    await get_season(db, season_id)

    existing = await db.execute(
        select(Episode.id).where(
            Episode.season_id == season_id,
            Episode.episode_number == body.episode_number,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict(f"Episode {body.episode_number} already exists")

    episode = Episode(season_id=season_id, **body.model_dump())
    db.add(episode)
    await db.flush()
    await db.refresh(episode)
    return episode


@router.get("", response_model=list[EpisodeResponse])
async def list_episodes(
    season_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    result = await db.execute(
        select(Episode).where(Episode.season_id == season_id).order_by(Episode.episode_number)
    )
    return result.scalars().all()


@router.get("/{episode_id}", response_model=EpisodeResponse)
async def episode_detail(
    season_id: int,
    episode_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    return await get_episode(db, season_id, episode_id)


@router.patch("/{episode_id}", response_model=EpisodeResponse)
async def update_episode(
    season_id: int,
    episode_id: int,
    body: EpisodeUpdate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_admin_identity),
):
    episode = await get_episode(db, season_id, episode_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(episode, field, value)
    await db.flush()
    return episode


@router.post("/{episode_id}/results", response_model=SettlementReportResponse)
async def submit_results(
    season_id: int,
    episode_id: int,
    body: EpisodeResultsSubmit,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    season = await get_season(db, season_id)
    episode = await get_episode(db, season_id, episode_id)
    recorded = await record_episode_results(db, identity, season, episode, body)
    return SettlementReportResponse(
        episode_id=episode.id,
        events_recorded=recorded.events_recorded,
        settled_league_ids=recorded.settlement.settled_league_ids,
        failed=recorded.settlement.failed,
    )


@router.post("/{episode_id}/settle", response_model=SettlementReportResponse)
async def resettle_season(
    season_id: int,
    episode_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_admin_identity),
):
    """Re-run settlement for every league in the season. Safe to repeat."""
    season = await get_season(db, season_id)
    episode = await get_episode(db, season_id, episode_id)
    report = await settle_season(db, season, episode)
    return SettlementReportResponse(
        episode_id=report.episode_id,
        settled_league_ids=report.settled_league_ids,
        failed=report.failed,
    )
