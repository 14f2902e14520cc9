from pydantic import BaseModel, Field

from castaway_league.models.models import DraftMode, DraftStatus


class LeagueCreate(BaseModel):
    season_id: int
    name: str = Field(..., min_length=1, max_length=100)
    draft_mode: DraftMode = DraftMode.SNAKE
    team_count: int = Field(..., ge=1)
    budget: int | None = Field(default=None, gt=0)
    team_name: str | None = Field(default=None, max_length=100)
    scoring_config: dict[str, int] = {}


class JoinLeague(BaseModel):
    invite_code: str = Field(..., min_length=1, max_length=12)
    team_name: str | None = Field(default=None, max_length=100)


class TeamRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ScoringConfigUpdate(BaseModel):
    scoring_config: dict[str, int]


class TeamResponse(BaseModel):
    id: int
    league_id: int
    user_id: int | None
    name: str
    budget_remaining: int | None
    draft_order: int | None

    model_config = {"from_attributes": True}


class LeagueResponse(BaseModel):
    id: int
    season_id: int
    name: str
    commissioner_id: int
    draft_mode: DraftMode
    draft_status: DraftStatus
    team_count: int
    budget: int | None
    roster_size: int | None
    invite_code: str
    scoring_config: dict

    model_config = {"from_attributes": True}


class LeagueDetailResponse(LeagueResponse):
    teams: list[TeamResponse] = []


class InvitePreviewResponse(BaseModel):
    league_id: int
    league_name: str
    season_id: int
    season_name: str
    draft_mode: DraftMode
    draft_status: DraftStatus
    team_count: int
    open_seats: int
    can_join: bool
