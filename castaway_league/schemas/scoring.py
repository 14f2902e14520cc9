from pydantic import BaseModel, Field


class EpisodeResultsSubmit(BaseModel):
    """Everything that happened in one episode. Tribe results name the tribe, not its members."""
    tribe_reward: list[str] = []
    tribe_immunity: list[str] = []
    second_place_immunity: list[str] = []
    individual_reward: list[int] = []
    individual_immunity: list[int] = []
    found_idol: list[int] = []
    successful_idol_play: list[int] = []
    votes_received: dict[int, int] = {}
    confessionals: dict[int, int] = {}
    advantage_played: list[int] = []
    voted_out: list[int] = []
    is_merge: bool = False
    is_finale: bool = False
    final_three: list[int] = []
    winner: int | None = None
    title_speaker_id: int | None = None
    title_speaker_is_host: bool = False


class SettlementReportResponse(BaseModel):
    episode_id: int | None
    events_recorded: int | None = None
    settled_league_ids: list[int] = []
    failed: dict[int, str] = {}


class StandingRow(BaseModel):
    team_id: int
    episode_id: int
    challenge_points: int
    milestone_points: int
    prediction_points: int
    title_pick_points: int
    season_prediction_points: int
    total_points: int
    cumulative_total: int
    rank: int | None

    model_config = {"from_attributes": True}


class StandingsResponse(BaseModel):
    league_id: int
    episode_id: int | None
    episode_number: int | None
    standings: list[StandingRow] = []


class ScoringCategoryResponse(BaseModel):
    category: str
    label: str
    bucket: str
    default_points: int
    points: int = Field(..., description="Effective points for the league")
