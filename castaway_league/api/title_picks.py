from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import get_db
from castaway_league.core.errors import NotFound
from castaway_league.schemas.title_picks import TitlePickSet, TitlePickResponse
from castaway_league.api.deps import get_identity
from castaway_league.services import title_picks as title_pick_service
from castaway_league.services.permissions import Identity
from castaway_league.services.seasons import get_episode, get_league

router = APIRouter(
    prefix="/api/leagues/{league_id}/episodes/{episode_id}/title-pick", tags=["Title Picks"]
)


@router.put("", response_model=TitlePickResponse)
async def set_title_pick(
    league_id: int,
    episode_id: int,
    body: TitlePickSet,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    episode = await get_episode(db, league.season_id, episode_id)
    return await title_pick_service.set_title_pick(db, identity, league, episode, body.selection)


@router.get("", response_model=TitlePickResponse | None)
async def my_title_pick(
    league_id: int,
    episode_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    episode = await get_episode(db, league.season_id, episode_id)
    team = await title_pick_service.find_member_team(db, league, identity.user_id)
    if team is None:
        raise NotFound("You don't have a team in this league")
    return await title_pick_service.get_title_pick(db, league, episode, team)
