from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import get_db
from castaway_league.schemas.predictions import (
    PredictionSubmit, PredictionResponse, TeamPredictionsResponse,
)
from castaway_league.api.deps import get_identity
from castaway_league.services import predictions as prediction_service
from castaway_league.services.permissions import Identity
from castaway_league.services.seasons import get_episode, get_episode_by_id, get_league, get_team

router = APIRouter(
    prefix="/api/leagues/{league_id}/episodes/{episode_id}/predictions", tags=["Predictions"]
)


@router.put("", response_model=list[PredictionResponse])
async def submit_predictions(
    league_id: int,
    episode_id: int,
    body: PredictionSubmit,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    team = await get_team(db, league, body.team_id)
    episode = await get_episode_by_id(db, episode_id)
    return await prediction_service.submit_predictions(
        db,
        identity,
        league,
        episode,
        team,
        [(a.contestant_id, a.points) for a in body.allocations],
    )


@router.get("", response_model=list[TeamPredictionsResponse])
async def league_predictions(
    league_id: int,
    episode_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Commissioner view: every team, in the order they were created."""
    league = await get_league(db, league_id)
    episode = await get_episode(db, league.season_id, episode_id)
    grouped = await prediction_service.get_episode_predictions(db, identity, league, episode)
    return [
        TeamPredictionsResponse(
            team_id=team.id,
            team_name=team.name,
            predictions=[PredictionResponse.model_validate(p) for p in rows],
        )
        for team, rows in grouped
    ]


@router.get("/teams/{team_id}", response_model=list[PredictionResponse])
async def team_predictions(
    league_id: int,
    episode_id: int,
    team_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    team = await get_team(db, league, team_id)
    episode = await get_episode(db, league.season_id, episode_id)
    return await prediction_service.get_team_predictions(db, identity, league, episode, team)
