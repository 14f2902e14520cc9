"""
Scoring categories and their default point values.

Each league stores only its overrides (``League.scoring_config``); anything it
doesn't override falls back to the defaults below. Events whose category isn't
in the enum are priced at 0 instead of raising, so an old or hand-entered row
can never break settlement.
"""

import enum
import logging

from castaway_league.core.errors import ValidationError

logger = logging.getLogger(__name__)


class ScoringCategory(str, enum.Enum):
    TRIBE_REWARD = "tribe_reward"
    TRIBE_IMMUNITY = "tribe_immunity"
    SECOND_PLACE_IMMUNITY = "second_place_immunity"
    INDIVIDUAL_REWARD = "individual_reward"
    INDIVIDUAL_IMMUNITY = "individual_immunity"
    VOTES_RECEIVED = "votes_received"
    FOUND_IDOL = "found_idol"
    SUCCESSFUL_IDOL_PLAY = "successful_idol_play"
    MERGE = "merge"
    FINAL_THREE = "final_three"
    WINNER = "winner"
    EPISODE_TITLE = "episode_title"
    VOTED_OUT = "voted_out"
    CONFESSIONAL = "confessional"
    ADVANTAGE = "advantage"


class ScoringBucket(str, enum.Enum):
    CHALLENGE = "challenge"
    MILESTONE = "milestone"
    OUTCOME = "outcome"  # Never roster points; drives predictions and title picks


DEFAULT_RULES = [
    {"category": ScoringCategory.TRIBE_REWARD, "label": "Tribe Reward Win", "points": 1, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.TRIBE_IMMUNITY, "label": "Tribe Immunity Win", "points": 2, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.SECOND_PLACE_IMMUNITY, "label": "Second Place Immunity", "points": 1, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.INDIVIDUAL_REWARD, "label": "Individual Reward Win", "points": 4, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.INDIVIDUAL_IMMUNITY, "label": "Individual Immunity Win", "points": 4, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.VOTES_RECEIVED, "label": "Votes Received at Tribal", "points": 1, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.FOUND_IDOL, "label": "Found Idol", "points": 5, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.SUCCESSFUL_IDOL_PLAY, "label": "Successful Idol Play", "points": 5, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.MERGE, "label": "Merge Bonus", "points": 5, "bucket": ScoringBucket.MILESTONE},
    {"category": ScoringCategory.FINAL_THREE, "label": "Final Three Bonus", "points": 10, "bucket": ScoringBucket.MILESTONE},
    {"category": ScoringCategory.WINNER, "label": "Winner Bonus", "points": 20, "bucket": ScoringBucket.MILESTONE},
    {"category": ScoringCategory.EPISODE_TITLE, "label": "Episode Title Pick", "points": 3, "bucket": ScoringBucket.OUTCOME},
    {"category": ScoringCategory.VOTED_OUT, "label": "Voted Out", "points": 0, "bucket": ScoringBucket.OUTCOME},
    # Off unless a league gives them a value
    {"category": ScoringCategory.CONFESSIONAL, "label": "Confessional Count", "points": 0, "bucket": ScoringBucket.CHALLENGE},
    {"category": ScoringCategory.ADVANTAGE, "label": "Advantage Used", "points": 0, "bucket": ScoringBucket.CHALLENGE},
]

DEFAULT_POINTS: dict[ScoringCategory, int] = {r["category"]: r["points"] for r in DEFAULT_RULES}
CATEGORY_BUCKETS: dict[ScoringCategory, ScoringBucket] = {r["category"]: r["bucket"] for r in DEFAULT_RULES}
CATEGORY_LABELS: dict[ScoringCategory, str] = {r["category"]: r["label"] for r in DEFAULT_RULES}

_missing = set(ScoringCategory) - set(DEFAULT_POINTS)
if _missing:
    raise RuntimeError(f"Scoring categories without a default: {sorted(c.value for c in _missing)}")


def parse_category(raw: str | ScoringCategory) -> ScoringCategory | None:
    """Map a stored category string onto the enum; None for anything unknown."""
    if isinstance(raw, ScoringCategory):
        return raw
    try:
        return ScoringCategory(raw)
    except ValueError:
        return None


class ScoringConfig:
    """A league's effective category -> points table."""

    def __init__(self, overrides: dict | None = None):
        self.points = dict(DEFAULT_POINTS)
        for key, value in (overrides or {}).items():
            category = parse_category(key)
            if category is None:
                logger.warning("Ignoring scoring override for unknown category %r", key)
                continue
            self.points[category] = int(value)

    def points_for(self, raw_category: str | ScoringCategory) -> int:
        category = parse_category(raw_category)
        if category is None:
            return 0
        return self.points[category]

    def bucket_for(self, raw_category: str | ScoringCategory) -> ScoringBucket | None:
        category = parse_category(raw_category)
        if category is None:
            return None
        return CATEGORY_BUCKETS[category]

    @property
    def title_pick_points(self) -> int:
        return self.points[ScoringCategory.EPISODE_TITLE]


def validate_overrides(overrides: dict) -> dict[str, int]:
    """Clean a league's submitted overrides. Unknown keys and non-integers are rejected."""
    cleaned = {}
    for key, value in overrides.items():
        category = parse_category(key)
        if category is None:
            raise ValidationError(f"Unknown scoring category: {key}")
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Points for {key} must be an integer")
        cleaned[category.value] = value
    return cleaned
