from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from castaway_league.core.database import get_db
from castaway_league.core.errors import Conflict
from castaway_league.models.models import Season, Contestant, Episode, League
from castaway_league.schemas.seasons import (
    SeasonCreate, SeasonUpdate, SeasonResponse, SeasonDetailResponse,
)
from castaway_league.api.deps import get_identity, get_admin_identity
from castaway_league.services.permissions import Identity
from castaway_league.services.seasons import get_active_season, get_season

router = APIRouter(prefix="/api/seasons", tags=["Seasons"])


@router.post("", response_model=SeasonResponse, status_code=201)
async def create_season(
    body: SeasonCreate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_admin_identity),
):
    existing = await db.execute(select(Season.id).where(Season.season_number == body.season_number))
    if existing.scalar_one_or_none() is not None:
        raise Conflict(f"Season {body.season_number} already exists")

    season = Season(season_number=body.season_number, name=body.name, status=body.status)
    db.add(season)
    await db.flush()
    return season


@router.get("", response_model=list[SeasonResponse])
async def list_seasons(
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    result = await db.execute(select(Season).order_by(Season.season_number.desc()))
    return result.scalars().all()


@router.get("/active", response_model=SeasonResponse)
async def active_season(
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    return await get_active_season(db)


@router.get("/{season_id}", response_model=SeasonDetailResponse)
async def season_detail(
    season_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    season = await get_season(db, season_id)

    contestant_count = await db.scalar(
        select(func.count()).select_from(Contestant).where(Contestant.season_id == season_id)
    )
    active_count = await db.scalar(
        select(func.count()).select_from(Contestant)
        .where(Contestant.season_id == season_id, Contestant.is_active == True)
    )
    episode_count = await db.scalar(
        select(func.count()).select_from(Episode).where(Episode.season_id == season_id)
    )
    league_count = await db.scalar(
        select(func.count()).select_from(League).where(League.season_id == season_id)
    )

    return SeasonDetailResponse(
        id=season.id,
        season_number=season.season_number,
        name=season.name,
        status=season.status,
        contestant_count=contestant_count or 0,
        active_contestant_count=active_count or 0,
        episode_count=episode_count or 0,
        league_count=league_count or 0,
    )


@router.patch("/{season_id}", response_model=SeasonResponse)
async def update_season(
    season_id: int,
    body: SeasonUpdate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_admin_identity),
):
    season = await get_season(db, season_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(season, field, value)
    await db.flush()
    return season
