from pydantic import BaseModel, Field

from castaway_league.models.models import DraftStatus
from castaway_league.schemas.leagues import TeamResponse


class DraftStatusUpdate(BaseModel):
    draft_status: DraftStatus


class DraftPickCreate(BaseModel):
    team_id: int
    contestant_id: int
    amount_paid: int | None = Field(default=None, ge=0)


class DraftPickResponse(BaseModel):
    id: int
    league_id: int
    team_id: int
    contestant_id: int
    round: int | None
    pick_number: int | None
    amount_paid: int | None
    is_commissioner_pick: bool

    model_config = {"from_attributes": True}


class NextPick(BaseModel):
    team_id: int
    round: int
    overall_pick: int


class DraftBoardResponse(BaseModel):
    league_id: int
    draft_status: DraftStatus
    teams: list[TeamResponse]
    picks: list[DraftPickResponse]
    next_pick: NextPick | None = None


class ValuationUpsert(BaseModel):
    contestant_id: int
    my_value: int = Field(..., ge=0)
    max_bid: int | None = Field(default=None, ge=0)


class ValuationResponse(BaseModel):
    contestant_id: int
    my_value: int
    max_bid: int | None

    model_config = {"from_attributes": True}
