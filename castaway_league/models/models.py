from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text,
    UniqueConstraint, CheckConstraint, Enum as SAEnum, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from castaway_league.core.database import Base
import enum


# --- Enums ---

class SeasonStatus(str, enum.Enum):
    UPCOMING = "upcoming"     # Cast announced, not airing yet
    ACTIVE = "active"         # Season airing, scoring weekly
    COMPLETE = "complete"     # Season finished


class DraftMode(str, enum.Enum):
    SNAKE = "snake"
    AUCTION = "auction"


class DraftStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


# --- Models ---

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    password_hash = Column(String(200), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)  # Platform super-admin
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    teams = relationship("Team", back_populates="user")


class Season(Base):
    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, index=True)
    season_number = Column(Integer, unique=True, nullable=False)
    name = Column(String(100), nullable=False)  # e.g. "Season 50"
    status = Column(SAEnum(SeasonStatus), default=SeasonStatus.UPCOMING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    contestants = relationship("Contestant", back_populates="season", cascade="all, delete-orphan")
    episodes = relationship("Episode", back_populates="season", cascade="all, delete-orphan", order_by="Episode.episode_number")
    leagues = relationship("League", back_populates="season")


class Contestant(Base):
    __tablename__ = "contestants"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    name = Column(String(100), nullable=False)
    tribe = Column(String(100))
    tier = Column(Integer, default=1, nullable=False)  # Draft-value bucket, 1 = top
    suggested_value = Column(Integer, default=0, nullable=False)  # Baseline auction value
    is_active = Column(Boolean, default=True, nullable=False)  # False once voted out
    img_url = Column(Text)

    # Relationships
    season = relationship("Season", back_populates="contestants")

    __table_args__ = (
        UniqueConstraint("season_id", "name", name="uq_contestant_season_name"),
    )


class League(Base):
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    name = Column(String(100), nullable=False)
    commissioner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    draft_mode = Column(SAEnum(DraftMode), default=DraftMode.SNAKE, nullable=False)
    draft_status = Column(SAEnum(DraftStatus), default=DraftStatus.PENDING, nullable=False)
    team_count = Column(Integer, nullable=False)
    budget = Column(Integer)  # Auction only
    roster_size = Column(Integer)  # floor(active contestants / team_count)
    invite_code = Column(String(12), unique=True, nullable=False)
    scoring_config = Column(JSON, nullable=False, default=dict)  # category -> points overrides
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    season = relationship("Season", back_populates="leagues")
    teams = relationship("Team", back_populates="league", cascade="all, delete-orphan", order_by="Team.id")

    __table_args__ = (
        CheckConstraint("team_count >= 1", name="ck_league_team_count"),
    )


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"))  # Null = unclaimed seat
    name = Column(String(100), nullable=False)
    budget_remaining = Column(Integer)  # Auction only
    draft_order = Column(Integer)  # 1-based, assigned once when the draft starts
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    league = relationship("League", back_populates="teams")
    user = relationship("User", back_populates="teams")

    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_team_league_user"),
    )


class DraftPick(Base):
    __tablename__ = "draft_picks"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    contestant_id = Column(Integer, ForeignKey("contestants.id"), nullable=False)
    round = Column(Integer)
    pick_number = Column(Integer)
    amount_paid = Column(Integer)  # Auction only
    is_commissioner_pick = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("league_id", "contestant_id", name="uq_draft_pick_league_contestant"),
    )


class DraftValuation(Base):
    """A team's private pre-draft planning numbers. Never shown to other teams."""
    __tablename__ = "draft_valuations"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    contestant_id = Column(Integer, ForeignKey("contestants.id"), nullable=False)
    my_value = Column(Integer, default=0, nullable=False)
    max_bid = Column(Integer)

    __table_args__ = (
        UniqueConstraint("league_id", "team_id", "contestant_id", name="uq_draft_valuation"),
    )


class Episode(Base):
    __tablename__ = "episodes"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    title = Column(String(200))
    air_date = Column(DateTime(timezone=True))
    prediction_deadline = Column(DateTime(timezone=True))  # Null = no deadline
    is_merge = Column(Boolean, default=False, nullable=False)
    is_finale = Column(Boolean, default=False, nullable=False)
    is_scored = Column(Boolean, default=False, nullable=False)  # One-way latch
    title_speaker_id = Column(Integer, ForeignKey("contestants.id"))
    title_speaker_is_host = Column(Boolean, default=False, nullable=False)

    # Relationships
    season = relationship("Season", back_populates="episodes")

    __table_args__ = (
        UniqueConstraint("season_id", "episode_number", name="uq_episode_season_number"),
    )


class ScoringEvent(Base):
    """
    One raw result for one contestant in one episode, e.g. found an idol or
    received votes at tribal. Season-wide: every league in the season reads the
    same rows and prices them with its own scoring config at settlement time.

    ``category`` is stored as the raw string so a category this code doesn't
    know about is kept (and scores 0) instead of failing the insert.
    """
    __tablename__ = "scoring_events"

    id = Column(Integer, primary_key=True, index=True)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    contestant_id = Column(Integer, ForeignKey("contestants.id"), nullable=False)
    category = Column(String(50), nullable=False)
    count = Column(Integer, default=1, nullable=False)  # Repeat occurrences, e.g. votes received
    tribe = Column(String(100))  # Set when expanded from a tribe-level result
    note = Column(Text)


class Prediction(Base):
    """A team's points on one contestant for one episode. Rows exist only while locked in."""
    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    contestant_id = Column(Integer, ForeignKey("contestants.id"), nullable=False)
    points_allocated = Column(Integer, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)  # Derived by settlement
    locked_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("league_id", "episode_id", "team_id", "contestant_id", name="uq_prediction"),
        CheckConstraint("points_allocated > 0", name="ck_prediction_points_positive"),
    )


class TitlePick(Base):
    """Weekly side pick: who says the episode title. Either a contestant or the host."""
    __tablename__ = "title_picks"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    contestant_id = Column(Integer, ForeignKey("contestants.id"))
    is_host_pick = Column(Boolean, default=False, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)  # Derived by settlement

    __table_args__ = (
        UniqueConstraint("league_id", "episode_id", "team_id", name="uq_title_pick"),
    )


class SeasonPrediction(Base):
    """
    A team's answer to one season-long question, e.g. who wins. Open until the
    season's first episode is scored; graded by hand afterwards.
    """
    __tablename__ = "season_predictions"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    category = Column(String(50), nullable=False)
    answer = Column(String(200))
    is_correct = Column(Boolean)  # Null = not graded yet
    points_earned = Column(Integer, default=0, nullable=False)  # Set by grading
    graded_episode_id = Column(Integer, ForeignKey("episodes.id"))  # Standings row that carries the points
    locked_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("league_id", "team_id", "category", name="uq_season_prediction"),
    )


class TeamEpisodeScore(Base):
    """
    Materialized standings row. Always rewritten from scratch by settlement;
    never the source of truth for anything.
    """
    __tablename__ = "team_episode_scores"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    challenge_points = Column(Integer, default=0, nullable=False)
    milestone_points = Column(Integer, default=0, nullable=False)
    prediction_points = Column(Integer, default=0, nullable=False)
    title_pick_points = Column(Integer, default=0, nullable=False)
    season_prediction_points = Column(Integer, default=0, nullable=False)
    total_points = Column(Integer, default=0, nullable=False)
    cumulative_total = Column(Integer, default=0, nullable=False)
    rank = Column(Integer)

    __table_args__ = (
        UniqueConstraint("league_id", "episode_id", "team_id", name="uq_team_episode_score"),
    )
