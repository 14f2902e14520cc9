from typing import Literal

from pydantic import BaseModel


class TitlePickSet(BaseModel):
    # A contestant id, "host", or null for no pick
    selection: int | Literal["host"] | None = None


class TitlePickResponse(BaseModel):
    id: int
    team_id: int
    episode_id: int
    contestant_id: int | None
    is_host_pick: bool
    points_earned: int

    model_config = {"from_attributes": True}
