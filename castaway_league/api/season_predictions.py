from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import get_db
from castaway_league.schemas.scoring import SettlementReportResponse
from castaway_league.schemas.season_predictions import (
    CategoryGrade, SeasonPredictionResponse, SeasonPredictionSubmit, TeamAnswerGrade,
)
from castaway_league.api.deps import get_admin_identity, get_identity
from castaway_league.services import season_predictions as season_prediction_service
from castaway_league.services.permissions import Identity
from castaway_league.services.seasons import get_league, get_season, get_team

router = APIRouter(tags=["Season Predictions"])


@router.get("/api/leagues/{league_id}/season-predictions", response_model=list[SeasonPredictionResponse])
async def list_season_predictions(
    league_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    return await season_prediction_service.list_season_predictions(db, identity, league)


@router.put("/api/leagues/{league_id}/season-predictions", response_model=SeasonPredictionResponse)
async def submit_season_prediction(
    league_id: int,
    body: SeasonPredictionSubmit,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    return await season_prediction_service.submit_season_prediction(
        db, identity, league, body.category, body.answer
    )


@router.post("/api/leagues/{league_id}/season-predictions/grade", response_model=list[SeasonPredictionResponse])
async def grade_category(
    league_id: int,
    body: CategoryGrade,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    return await season_prediction_service.grade_category(
        db, identity, league, body.category, body.correct_answer, body.points
    )


@router.post(
    "/api/leagues/{league_id}/season-predictions/teams/{team_id}/grade",
    response_model=SeasonPredictionResponse,
)
async def grade_team_answer(
    league_id: int,
    team_id: int,
    body: TeamAnswerGrade,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    team = await get_team(db, league, team_id)
    return await season_prediction_service.grade_team_answer(
        db, identity, league, team, body.category, body.is_correct, body.points_earned
    )


@router.post("/api/seasons/{season_id}/season-predictions/grade", response_model=SettlementReportResponse)
async def grade_category_for_season(
    season_id: int,
    body: CategoryGrade,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_admin_identity),
):
    """Admin: grade one question in every league of the season."""
    season = await get_season(db, season_id)
    report = await season_prediction_service.grade_category_for_season(
        db, identity, season, body.category, body.correct_answer, body.points
    )
    return SettlementReportResponse(
        episode_id=report.episode_id,
        settled_league_ids=report.settled_league_ids,
        failed=report.failed,
    )
