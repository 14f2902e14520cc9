from pydantic import BaseModel
from datetime import datetime


class PredictionAllocation(BaseModel):
    contestant_id: int
    points: int


class PredictionSubmit(BaseModel):
    team_id: int
    allocations: list[PredictionAllocation]


class PredictionResponse(BaseModel):
    id: int
    team_id: int
    contestant_id: int
    points_allocated: int
    points_earned: int
    locked_at: datetime | None

    model_config = {"from_attributes": True}


class TeamPredictionsResponse(BaseModel):
    team_id: int
    team_name: str
    predictions: list[PredictionResponse]
