import pytest

from castaway_league.core.errors import ValidationError
from castaway_league.services.scoring_rules import (
    DEFAULT_POINTS, ScoringBucket, ScoringCategory, ScoringConfig, validate_overrides,
)


def test_every_category_has_a_default() -> None:
    assert set(DEFAULT_POINTS) == set(ScoringCategory)


def test_defaults() -> None:
    config = ScoringConfig()
    assert config.points_for("tribe_reward") == 1
    assert config.points_for("tribe_immunity") == 2
    assert config.points_for("individual_reward") == 4
    assert config.points_for("found_idol") == 5
    assert config.points_for("winner") == 20
    assert config.points_for("voted_out") == 0
    assert config.title_pick_points == 3


def test_overrides_replace_only_what_they_name() -> None:
    config = ScoringConfig({"found_idol": 8, "episode_title": 5})
    assert config.points_for(ScoringCategory.FOUND_IDOL) == 8
    assert config.title_pick_points == 5
    assert config.points_for("merge") == 5


def test_unknown_category_scores_zero() -> None:
    config = ScoringConfig({"made_fire": 7})
    assert config.points_for("made_fire") == 0
    assert config.bucket_for("made_fire") is None


def test_milestones() -> None:
    config = ScoringConfig()
    for category in ("merge", "final_three", "winner"):
        assert config.bucket_for(category) == ScoringBucket.MILESTONE
    assert config.bucket_for("votes_received") == ScoringBucket.CHALLENGE


def test_validate_overrides_rejects_unknown_categories() -> None:
    with pytest.raises(ValidationError):
        validate_overrides({"made_fire": 3})


def test_validate_overrides_rejects_non_integers() -> None:
    with pytest.raises(ValidationError):
        validate_overrides({"winner": "lots"})
    with pytest.raises(ValidationError):
        validate_overrides({"winner": True})


def test_validate_overrides_cleans_keys() -> None:
    assert validate_overrides({ScoringCategory.WINNER: 25}) == {"winner": 25}


def test_optional_categories_are_off_until_a_league_prices_them() -> None:
    assert ScoringConfig().points_for("confessional") == 0
    assert ScoringConfig().points_for("advantage") == 0
    config = ScoringConfig(validate_overrides({"confessional": 1, "advantage": 2}))
    assert config.points_for("confessional") == 1
    assert config.bucket_for("advantage") == ScoringBucket.CHALLENGE
