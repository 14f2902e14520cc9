from types import SimpleNamespace

from castaway_league.services.scoring_rules import ScoringConfig
from castaway_league.services.settlement import EpisodeOutcome, elimination_rule, settle_league

TEAMS = [10, 20, 30]
# contestant -> team
OWNERS = {1: 10, 2: 10, 3: 20, 4: 30}


def _event(episode_id, contestant_id, category, count=1):
    return SimpleNamespace(episode_id=episode_id, contestant_id=contestant_id, category=category, count=count)


def _prediction(pid, episode_id, team_id, contestant_id, points):
    return SimpleNamespace(
        id=pid, episode_id=episode_id, team_id=team_id, contestant_id=contestant_id, points_allocated=points,
    )


def _title_pick(pid, episode_id, team_id, contestant_id=None, is_host_pick=False):
    return SimpleNamespace(
        id=pid, episode_id=episode_id, team_id=team_id, contestant_id=contestant_id, is_host_pick=is_host_pick,
    )


def _row(settlement, episode_id, team_id):
    return next(r for r in settlement.rows if r.episode_id == episode_id and r.team_id == team_id)


def test_events_are_priced_and_attributed_to_the_drafting_team() -> None:
    outcomes = [EpisodeOutcome(episode_id=100, episode_number=1)]
    events = [
        _event(100, 1, "found_idol"),
        _event(100, 2, "votes_received", count=3),
        _event(100, 3, "merge"),
        _event(100, 9, "winner"),           # undrafted
        _event(100, 4, "made_fire"),        # unknown category
    ]
    settlement = settle_league(outcomes, TEAMS, OWNERS, events, [], [], ScoringConfig())

    assert _row(settlement, 100, 10).challenge_points == 5 + 3
    assert _row(settlement, 100, 20).milestone_points == 5
    assert _row(settlement, 100, 30).total_points == 0


def test_league_overrides_change_the_price() -> None:
    outcomes = [EpisodeOutcome(episode_id=100, episode_number=1)]
    events = [_event(100, 1, "found_idol")]
    settlement = settle_league(outcomes, TEAMS, OWNERS, events, [], [], ScoringConfig({"found_idol": 9}))
    assert _row(settlement, 100, 10).challenge_points == 9


def test_elimination_rule_pays_the_full_allocation() -> None:
    outcome = EpisodeOutcome(episode_id=100, episode_number=1, eliminated=frozenset({4}))
    assert elimination_rule(_prediction(1, 100, 10, 4, 7), outcome) == 7
    assert elimination_rule(_prediction(2, 100, 10, 3, 3), outcome) == 0


def test_predictions_and_title_picks_feed_their_own_columns() -> None:
    outcomes = [
        EpisodeOutcome(episode_id=100, episode_number=1, eliminated=frozenset({4}), title_speaker_is_host=True),
    ]
    predictions = [_prediction(1, 100, 20, 4, 6), _prediction(2, 100, 20, 1, 4)]
    picks = [_title_pick(1, 100, 10, is_host_pick=True), _title_pick(2, 100, 20, contestant_id=3)]

    settlement = settle_league(outcomes, TEAMS, OWNERS, [], predictions, picks, ScoringConfig())

    assert settlement.prediction_points == {1: 6, 2: 0}
    assert settlement.title_pick_points == {1: 3, 2: 0}
    assert _row(settlement, 100, 20).prediction_points == 6
    assert _row(settlement, 100, 10).title_pick_points == 3
    assert _row(settlement, 100, 10).total_points == 3


def test_cumulative_totals_and_ranks_with_ties_broken_by_team_id() -> None:
    outcomes = [
        EpisodeOutcome(episode_id=200, episode_number=2),
        EpisodeOutcome(episode_id=100, episode_number=1),
    ]
    events = [
        _event(100, 3, "tribe_immunity"),   # team 20 +2
        _event(100, 4, "tribe_immunity"),   # team 30 +2
        _event(200, 1, "individual_immunity"),  # team 10 +4
    ]
    settlement = settle_league(outcomes, TEAMS, OWNERS, events, [], [], ScoringConfig())

    ep1 = settlement.rows_for(100)
    assert [(r.team_id, r.cumulative_total, r.rank) for r in ep1] == [(20, 2, 1), (30, 2, 2), (10, 0, 3)]

    ep2 = settlement.rows_for(200)
    assert [(r.team_id, r.cumulative_total, r.rank) for r in ep2] == [(10, 4, 1), (20, 2, 2), (30, 2, 3)]


def test_rows_for_other_episodes_are_ignored() -> None:
    outcomes = [EpisodeOutcome(episode_id=100, episode_number=1)]
    events = [_event(999, 1, "winner")]
    predictions = [_prediction(1, 999, 10, 1, 10)]
    settlement = settle_league(outcomes, TEAMS, OWNERS, events, predictions, [], ScoringConfig())
    assert all(r.total_points == 0 for r in settlement.rows)
    assert settlement.prediction_points == {}


def test_recomputing_gives_identical_rows() -> None:
    outcomes = [
        EpisodeOutcome(episode_id=100, episode_number=1, eliminated=frozenset({2})),
        EpisodeOutcome(episode_id=200, episode_number=2, title_speaker_id=3),
    ]
    events = [_event(100, 1, "tribe_reward"), _event(200, 3, "found_idol"), _event(200, 4, "votes_received", 2)]
    predictions = [_prediction(1, 100, 30, 2, 10)]
    picks = [_title_pick(1, 200, 20, contestant_id=3)]

    first = settle_league(outcomes, TEAMS, OWNERS, events, predictions, picks, ScoringConfig())
    second = settle_league(outcomes, TEAMS, OWNERS, events, predictions, picks, ScoringConfig())
    assert first == second
    assert len(first.rows) == len(TEAMS) * 2


def test_custom_prediction_rule() -> None:
    outcomes = [EpisodeOutcome(episode_id=100, episode_number=1)]
    predictions = [_prediction(1, 100, 10, 1, 4)]

    def flat_two(prediction, outcome):
        return 2

    settlement = settle_league(outcomes, TEAMS, OWNERS, [], predictions, [], ScoringConfig(), rule=flat_two)
    assert _row(settlement, 100, 10).prediction_points == 2
