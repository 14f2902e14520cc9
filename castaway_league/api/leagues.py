from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from castaway_league.core.database import get_db
from castaway_league.models.models import League, Team
from castaway_league.schemas.episodes import DeadlineUpdate, EpisodeResponse
from castaway_league.schemas.leagues import (
    LeagueCreate, JoinLeague, TeamRename, ScoringConfigUpdate,
    LeagueResponse, LeagueDetailResponse, TeamResponse, InvitePreviewResponse,
)
from castaway_league.api.deps import get_identity
from castaway_league.services import leagues as league_service
from castaway_league.services.permissions import Identity
from castaway_league.services.seasons import get_episode, get_league, get_season, get_team

router = APIRouter(prefix="/api/leagues", tags=["Leagues"])


async def _league_detail(db: AsyncSession, league: League) -> LeagueDetailResponse:
    teams = await league_service.list_teams(db, league)
    return LeagueDetailResponse(
        **LeagueResponse.model_validate(league).model_dump(),
        teams=[TeamResponse.model_validate(t) for t in teams],
    )


@router.post("", response_model=LeagueDetailResponse, status_code=201)
async def create_league(
    body: LeagueCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    season = await get_season(db, body.season_id)
    league = await league_service.create_league(
        db,
        identity,
        season,
        name=body.name,
        draft_mode=body.draft_mode,
        team_count=body.team_count,
        budget=body.budget,
        team_name=body.team_name,
        scoring_config=body.scoring_config,
    )
    return await _league_detail(db, league)


@router.get("", response_model=list[LeagueResponse])
async def my_leagues(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    result = await db.execute(
        select(League)
        .join(Team, Team.league_id == League.id)
        .where(Team.user_id == identity.user_id)
        .order_by(League.id)
    )
    return result.scalars().all()


@router.get("/invite/{invite_code}", response_model=InvitePreviewResponse)
async def preview_invite(
    invite_code: str,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    preview = await league_service.preview_invite(db, invite_code)
    return InvitePreviewResponse(
        league_id=preview.league.id,
        league_name=preview.league.name,
        season_id=preview.season.id,
        season_name=preview.season.name,
        draft_mode=preview.league.draft_mode,
        draft_status=preview.league.draft_status,
        team_count=preview.league.team_count,
        open_seats=preview.open_seats,
        can_join=preview.can_join,
    )


@router.post("/join", response_model=TeamResponse)
async def join_league(
    body: JoinLeague,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return await league_service.join_league(db, identity, body.invite_code, body.team_name)


@router.get("/{league_id}", response_model=LeagueDetailResponse)
async def league_detail(
    league_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    return await _league_detail(db, league)


@router.patch("/{league_id}/teams/{team_id}", response_model=TeamResponse)
async def rename_team(
    league_id: int,
    team_id: int,
    body: TeamRename,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    team = await get_team(db, league, team_id)
    return await league_service.rename_team(db, identity, league, team, body.name)


@router.put("/{league_id}/scoring-config", response_model=LeagueResponse)
async def update_scoring_config(
    league_id: int,
    body: ScoringConfigUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    return await league_service.update_scoring_config(db, identity, league, body.scoring_config)


@router.patch("/{league_id}/episodes/{episode_id}/deadline", response_model=EpisodeResponse)
async def update_deadline(
    league_id: int,
    episode_id: int,
    body: DeadlineUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    episode = await get_episode(db, league.season_id, episode_id)
    return await league_service.update_episode_deadline(
        db, identity, league, episode, body.prediction_deadline
    )
