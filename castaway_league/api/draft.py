from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import get_db
from castaway_league.schemas.draft import (
    DraftStatusUpdate, DraftPickCreate, DraftPickResponse, DraftBoardResponse, NextPick,
    ValuationUpsert, ValuationResponse,
)
from castaway_league.schemas.leagues import LeagueResponse, TeamResponse
from castaway_league.api.deps import get_identity
from castaway_league.services import budget, draft
from castaway_league.services.permissions import Identity, require_team_owner
from castaway_league.services.seasons import get_league, get_team

router = APIRouter(prefix="/api/leagues/{league_id}/draft", tags=["Draft"])


@router.patch("/status", response_model=LeagueResponse)
async def set_draft_status(
    league_id: int,
    body: DraftStatusUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    return await draft.transition_draft(db, identity, league, body.draft_status)


@router.post("/picks", response_model=DraftPickResponse, status_code=201)
async def make_pick(
    league_id: int,
    body: DraftPickCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    team = await get_team(db, league, body.team_id)
    return await draft.make_pick(db, identity, league, team, body.contestant_id, body.amount_paid)


@router.get("", response_model=DraftBoardResponse)
async def draft_board(
    league_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    board = await draft.get_draft_board(db, league)
    next_pick = None
    if board.next_slot is not None and board.next_team is not None:
        next_pick = NextPick(
            team_id=board.next_team.id,
            round=board.next_slot.round,
            overall_pick=board.next_slot.overall_pick,
        )
    return DraftBoardResponse(
        league_id=league.id,
        draft_status=league.draft_status,
        teams=[TeamResponse.model_validate(t) for t in board.teams],
        picks=[DraftPickResponse.model_validate(p) for p in board.picks],
        next_pick=next_pick,
    )


@router.get("/teams/{team_id}/valuations", response_model=list[ValuationResponse])
async def list_valuations(
    league_id: int,
    team_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    team = await get_team(db, league, team_id)
    require_team_owner(identity, team)
    return await budget.get_valuations(db, team)


@router.put("/teams/{team_id}/valuations", response_model=ValuationResponse)
async def save_valuation(
    league_id: int,
    team_id: int,
    body: ValuationUpsert,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    league = await get_league(db, league_id)
    team = await get_team(db, league, team_id)
    require_team_owner(identity, team)
    return await budget.upsert_valuation(db, team, body.contestant_id, body.my_value, body.max_bid)
