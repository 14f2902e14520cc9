from pydantic import BaseModel, Field

from castaway_league.models.models import SeasonStatus


class SeasonCreate(BaseModel):
    season_number: int = Field(..., gt=0)
    name: str = Field(..., max_length=100)
    status: SeasonStatus = SeasonStatus.UPCOMING


class SeasonUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    status: SeasonStatus | None = None


class SeasonResponse(BaseModel):
    id: int
    season_number: int
    name: str
    status: SeasonStatus

    model_config = {"from_attributes": True}


class SeasonDetailResponse(SeasonResponse):
    contestant_count: int = 0
    active_contestant_count: int = 0
    episode_count: int = 0
    league_count: int = 0
