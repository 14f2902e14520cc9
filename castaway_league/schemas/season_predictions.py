from datetime import datetime

from pydantic import BaseModel


class SeasonPredictionSubmit(BaseModel):
    category: str
    answer: str | None = None


class SeasonPredictionResponse(BaseModel):
    id: int
    team_id: int
    category: str
    answer: str | None
    is_correct: bool | None
    points_earned: int
    graded_episode_id: int | None
    locked_at: datetime | None

    model_config = {"from_attributes": True}


class CategoryGrade(BaseModel):
    """Right answer for a question; matching is case-insensitive."""
    category: str
    correct_answer: str
    points: int | None = None  # Falls back to the configured default


class TeamAnswerGrade(BaseModel):
    category: str
    is_correct: bool | None = None
    points_earned: int = 0
