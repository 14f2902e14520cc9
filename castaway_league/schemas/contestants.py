from pydantic import BaseModel, Field


class ContestantCreate(BaseModel):
    name: str = Field(..., max_length=100)
    tribe: str | None = Field(default=None, max_length=100)
    tier: int = Field(default=1, ge=1)
    suggested_value: int = Field(default=0, ge=0)
    img_url: str | None = None


class ContestantUpdate(BaseModel):
    """Only draft value, tier and the active flag change once a season is set up."""
    tier: int | None = Field(default=None, ge=1)
    suggested_value: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class ContestantResponse(BaseModel):
    id: int
    season_id: int
    name: str
    tribe: str | None
    tier: int
    suggested_value: int
    is_active: bool
    img_url: str | None = None

    model_config = {"from_attributes": True}
