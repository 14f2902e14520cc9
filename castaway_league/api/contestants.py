from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from castaway_league.core.database import get_db
from castaway_league.core.errors import Conflict
from castaway_league.models.models import Contestant
from castaway_league.schemas.contestants import ContestantCreate, ContestantUpdate, ContestantResponse
from castaway_league.api.deps import get_identity, get_admin_identity
from castaway_league.services.permissions import Identity
from castaway_league.services.seasons import get_contestant, get_season

router = APIRouter(prefix="/api/seasons/{season_id}/contestants", tags=["Contestants"])


@router.post("", response_model=ContestantResponse, status_code=201)
async def add_contestant(
    season_id: int,
    body: ContestantCreate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_admin_identity),
):
    await get_season(db, season_id)

    existing = await db.execute(
        select(Contestant.id).where(Contestant.season_id == season_id, Contestant.name == body.name)
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict(f"{body.name} is already in this season")

    contestant = Contestant(season_id=season_id, is_active=True, **body.model_dump())
    db.add(contestant)
    await db.flush()
    return contestant


@router.get("", response_model=list[ContestantResponse])
async def list_contestants(
    season_id: int,
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    query = select(Contestant).where(Contestant.season_id == season_id)
    if active_only:
        query = query.where(Contestant.is_active == True)
    result = await db.execute(query.order_by(Contestant.tier, Contestant.suggested_value.desc(), Contestant.name))
    return result.scalars().all()


@router.patch("/{contestant_id}", response_model=ContestantResponse)
async def update_contestant(
    season_id: int,
    contestant_id: int,
    body: ContestantUpdate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_admin_identity),
):
    contestant = await get_contestant(db, season_id, contestant_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(contestant, field, value)
    await db.flush()
    return contestant
