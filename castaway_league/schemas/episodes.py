from pydantic import BaseModel, Field
from datetime import datetime


class EpisodeCreate(BaseModel):
    episode_number: int = Field(..., gt=0)
    title: str | None = Field(default=None, max_length=200)
    air_date: datetime | None = None
    prediction_deadline: datetime | None = None
    is_merge: bool = False
    is_finale: bool = False


class EpisodeUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    air_date: datetime | None = None
    is_merge: bool | None = None
    is_finale: bool | None = None


class DeadlineUpdate(BaseModel):
    prediction_deadline: datetime | None = None


class EpisodeResponse(BaseModel):
    id: int
    season_id: int
    episode_number: int
    title: str | None
    air_date: datetime | None
    prediction_deadline: datetime | None
    is_merge: bool
    is_finale: bool
    is_scored: bool
    title_speaker_id: int | None = None
    title_speaker_is_host: bool = False

    model_config = {"from_attributes": True}
