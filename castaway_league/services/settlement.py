"""
Scoring settlement: turns raw episode results into team standings.

``settle_league`` is pure. It takes every scored episode up to the one being
settled, the season's scoring events, the league's roster and its
predictions and title picks, and returns the standings rows plus the derived
``points_earned`` for each prediction and title pick. It never looks at
previously stored totals, so running it twice gives the same rows.

The async functions below load those inputs, call ``settle_league`` and
write the results back as upserts.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.database import dialect_insert
from castaway_league.core.errors import ValidationError
from castaway_league.models.models import (
    DraftPick, Episode, League, Prediction, ScoringEvent, Season, SeasonPrediction,
    Team, TeamEpisodeScore, TitlePick,
)
from castaway_league.services.scoring_rules import ScoringBucket, ScoringCategory, ScoringConfig
from castaway_league.services.title_picks import resolve_title_pick

logger = logging.getLogger(__name__)


# --- Pure core ---

@dataclass(frozen=True)
class EpisodeOutcome:
    """What happened in one scored episode, as far as predictions and title picks care."""
    episode_id: int
    episode_number: int
    eliminated: frozenset = frozenset()
    title_speaker_id: int | None = None
    title_speaker_is_host: bool = False


class EventLike(Protocol):
    episode_id: int
    contestant_id: int
    category: str
    count: int


class PredictionLike(Protocol):
    id: int
    episode_id: int
    team_id: int
    contestant_id: int
    points_allocated: int


class TitlePickLike(Protocol):
    id: int
    episode_id: int
    team_id: int
    contestant_id: int | None
    is_host_pick: bool


class SeasonPredictionLike(Protocol):
    """A graded season-long answer; its points land on the episode it was graded at."""
    team_id: int
    graded_episode_id: int | None
    points_earned: int


PredictionRule = Callable[[PredictionLike, EpisodeOutcome], int]


def elimination_rule(prediction: PredictionLike, outcome: EpisodeOutcome) -> int:
    """Full allocation if the contestant went home that episode, else nothing."""
    if prediction.contestant_id in outcome.eliminated:
        return prediction.points_allocated
    return 0


@dataclass
class TeamEpisodeTotals:
    team_id: int
    episode_id: int
    challenge_points: int = 0
    milestone_points: int = 0
    prediction_points: int = 0
    title_pick_points: int = 0
    season_prediction_points: int = 0
    total_points: int = 0
    cumulative_total: int = 0
    rank: int | None = None


@dataclass
class LeagueSettlement:
    rows: list[TeamEpisodeTotals] = field(default_factory=list)
    prediction_points: dict[int, int] = field(default_factory=dict)   # prediction id -> earned
    title_pick_points: dict[int, int] = field(default_factory=dict)   # title pick id -> earned

    def rows_for(self, episode_id: int) -> list[TeamEpisodeTotals]:
        return sorted((r for r in self.rows if r.episode_id == episode_id), key=lambda r: r.rank or 0)


def settle_league(
    outcomes: Iterable[EpisodeOutcome],
    team_ids: Iterable[int],
    owners: dict[int, int],
    events: Iterable[EventLike],
    predictions: Iterable[PredictionLike],
    title_picks: Iterable[TitlePickLike],
    config: ScoringConfig,
    rule: PredictionRule = elimination_rule,
    season_predictions: Iterable[SeasonPredictionLike] = (),
) -> LeagueSettlement:
    """
    Recompute a league's standings from scratch.

    ``outcomes`` are the scored episodes being settled. ``owners`` maps
    contestant id -> team id from the league's draft picks; events for
    contestants nobody drafted are ignored. ``events``, ``predictions``,
    ``title_picks`` and ``season_predictions`` may contain rows for other
    episodes; only those matching an outcome count. Season predictions
    arrive already graded and are credited as they are.
    """
    outcomes = sorted(outcomes, key=lambda o: o.episode_number)
    team_ids = sorted(set(team_ids))
    by_episode = {o.episode_id: o for o in outcomes}

    totals: dict[tuple[int, int], TeamEpisodeTotals] = {
        (o.episode_id, team_id): TeamEpisodeTotals(team_id=team_id, episode_id=o.episode_id)
        for o in outcomes
        for team_id in team_ids
    }
    settlement = LeagueSettlement()

    # 1. Roster points from scoring events
    for event in events:
        if event.episode_id not in by_episode:
            continue
        team_id = owners.get(event.contestant_id)
        row = totals.get((event.episode_id, team_id))
        if row is None:
            continue
        bucket = config.bucket_for(event.category)
        points = config.points_for(event.category) * (event.count or 1)
        if bucket == ScoringBucket.CHALLENGE:
            row.challenge_points += points
        elif bucket == ScoringBucket.MILESTONE:
            row.milestone_points += points

    # 2. Weekly predictions
    for prediction in predictions:
        outcome = by_episode.get(prediction.episode_id)
        if outcome is None:
            continue
        earned = rule(prediction, outcome)
        settlement.prediction_points[prediction.id] = earned
        row = totals.get((prediction.episode_id, prediction.team_id))
        if row is not None:
            row.prediction_points += earned

    # 3. Title picks
    for pick in title_picks:
        outcome = by_episode.get(pick.episode_id)
        if outcome is None:
            continue
        earned = resolve_title_pick(pick, outcome, config.title_pick_points)
        settlement.title_pick_points[pick.id] = earned
        row = totals.get((pick.episode_id, pick.team_id))
        if row is not None:
            row.title_pick_points += earned

    # 4. Graded season predictions
    for answer in season_predictions:
        if answer.graded_episode_id not in by_episode:
            continue
        row = totals.get((answer.graded_episode_id, answer.team_id))
        if row is not None:
            row.season_prediction_points += answer.points_earned or 0

    # 5. Running totals and ranks, episode by episode
    cumulative = {team_id: 0 for team_id in team_ids}
    for outcome in outcomes:
        episode_rows = [totals[(outcome.episode_id, team_id)] for team_id in team_ids]
        for row in episode_rows:
            row.total_points = (
                row.challenge_points + row.milestone_points
                + row.prediction_points + row.title_pick_points
                + row.season_prediction_points
            )
            cumulative[row.team_id] += row.total_points
            row.cumulative_total = cumulative[row.team_id]

        ranked = sorted(episode_rows, key=lambda r: (-r.cumulative_total, r.team_id))
        for position, row in enumerate(ranked, 1):
            row.rank = position
        settlement.rows.extend(episode_rows)

    return settlement


# --- Persistence ---

@dataclass
class SeasonSettlementReport:
    episode_id: int | None
    settled_league_ids: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)  # league id -> error


async def _load_scored_episodes(db: AsyncSession, season_id: int, through_number: int) -> list[Episode]:
    result = await db.execute(
        select(Episode)
        .where(
            Episode.season_id == season_id,
            Episode.is_scored == True,
            Episode.episode_number <= through_number,
        )
        .order_by(Episode.episode_number)
    )
    return result.scalars().all()


async def _load_events(db: AsyncSession, episode_ids: list[int]) -> list[ScoringEvent]:
    if not episode_ids:
        return []
    result = await db.execute(
        select(ScoringEvent).where(ScoringEvent.episode_id.in_(episode_ids)).order_by(ScoringEvent.id)
    )
    return result.scalars().all()


def build_outcomes(episodes: Iterable[Episode], events: Iterable[ScoringEvent]) -> list[EpisodeOutcome]:
    eliminated: dict[int, set[int]] = {}
    for event in events:
        if event.category == ScoringCategory.VOTED_OUT.value:
            eliminated.setdefault(event.episode_id, set()).add(event.contestant_id)

    return [
        EpisodeOutcome(
            episode_id=ep.id,
            episode_number=ep.episode_number,
            eliminated=frozenset(eliminated.get(ep.id, ())),
            title_speaker_id=ep.title_speaker_id,
            title_speaker_is_host=bool(ep.title_speaker_is_host),
        )
        for ep in episodes
    ]


async def _settle_league_through(
    db: AsyncSession,
    league: League,
    episodes: list[Episode],
    events: list[ScoringEvent],
    rule: PredictionRule,
) -> LeagueSettlement:
    episode_ids = [ep.id for ep in episodes]

    teams_result = await db.execute(select(Team.id).where(Team.league_id == league.id))
    team_ids = teams_result.scalars().all()

    picks_result = await db.execute(
        select(DraftPick.contestant_id, DraftPick.team_id).where(DraftPick.league_id == league.id)
    )
    owners = {contestant_id: team_id for contestant_id, team_id in picks_result.all()}

    predictions: list[Prediction] = []
    title_picks: list[TitlePick] = []
    season_predictions: list[SeasonPrediction] = []
    if episode_ids:
        pred_result = await db.execute(
            select(Prediction).where(
                Prediction.league_id == league.id,
                Prediction.episode_id.in_(episode_ids),
            )
        )
        predictions = pred_result.scalars().all()
        tp_result = await db.execute(
            select(TitlePick).where(
                TitlePick.league_id == league.id,
                TitlePick.episode_id.in_(episode_ids),
            )
        )
        title_picks = tp_result.scalars().all()
        sp_result = await db.execute(
            select(SeasonPrediction)
            .where(
                SeasonPrediction.league_id == league.id,
                SeasonPrediction.graded_episode_id.in_(episode_ids),
            )
            .execution_options(populate_existing=True)
        )
        season_predictions = sp_result.scalars().all()

    settlement = settle_league(
        build_outcomes(episodes, events),
        team_ids,
        owners,
        events,
        predictions,
        title_picks,
        ScoringConfig(league.scoring_config),
        rule,
        season_predictions,
    )

    if settlement.rows:
        stmt = dialect_insert(db, TeamEpisodeScore).values([
            {
                "league_id": league.id,
                "episode_id": row.episode_id,
                "team_id": row.team_id,
                "challenge_points": row.challenge_points,
                "milestone_points": row.milestone_points,
                "prediction_points": row.prediction_points,
                "title_pick_points": row.title_pick_points,
                "season_prediction_points": row.season_prediction_points,
                "total_points": row.total_points,
                "cumulative_total": row.cumulative_total,
                "rank": row.rank,
            }
            for row in settlement.rows
        ])
        stmt = stmt.on_conflict_do_update(
            index_elements=["league_id", "episode_id", "team_id"],
            set_={
                name: stmt.excluded[name]
                for name in (
                    "challenge_points", "milestone_points", "prediction_points",
                    "title_pick_points", "season_prediction_points", "total_points",
                    "cumulative_total", "rank",
                )
            },
        )
        await db.execute(stmt)

    # Derived values are overwritten, never added to
    for prediction in predictions:
        prediction.points_earned = settlement.prediction_points.get(prediction.id, 0)
    for pick in title_picks:
        pick.points_earned = settlement.title_pick_points.get(pick.id, 0)
    await db.flush()

    logger.info(
        "Settled league %d through %d episode(s), %d standings rows",
        league.id, len(episodes), len(settlement.rows),
    )
    return settlement


async def _settle_through(
    db: AsyncSession,
    league: League,
    latest: Episode,
    rule: PredictionRule,
) -> LeagueSettlement:
    episodes = await _load_scored_episodes(db, league.season_id, latest.episode_number)
    events = await _load_events(db, [ep.id for ep in episodes])
    return await _settle_league_through(db, league, episodes, events, rule)


async def settle_episode(
    db: AsyncSession,
    league: League,
    episode: Episode,
    rule: PredictionRule = elimination_rule,
) -> LeagueSettlement:
    """
    Recompute one league's standings for ``episode``, which must already be scored.

    Later scored episodes are settled along with it, since their cumulative
    totals carry this episode's points.
    """
    if not episode.is_scored:
        raise ValidationError(f"Episode {episode.episode_number} hasn't been scored yet")
    latest = await latest_scored_episode(db, league.season_id)
    return await _settle_through(db, league, latest, rule)


async def latest_scored_episode(db: AsyncSession, season_id: int) -> Episode | None:
    result = await db.execute(
        select(Episode)
        .where(Episode.season_id == season_id, Episode.is_scored == True)
        .order_by(Episode.episode_number.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def backfill_league(
    db: AsyncSession,
    league: League,
    rule: PredictionRule = elimination_rule,
) -> LeagueSettlement | None:
    """Settle every scored episode of the league's season. None when nothing has been scored yet."""
    latest = await latest_scored_episode(db, league.season_id)
    if latest is None:
        logger.info("League %d: no scored episodes to backfill", league.id)
        return None
    return await _settle_through(db, league, latest, rule)


async def settle_season(
    db: AsyncSession,
    season: Season,
    episode: Episode | None = None,
    rule: PredictionRule = elimination_rule,
) -> SeasonSettlementReport:
    """
    Settle every league in the season, each inside its own savepoint.

    Settles through the latest scored episode, so results recorded out of
    order still flow into later cumulative totals. A league that fails is
    rolled back to its savepoint, logged and reported; leagues already
    settled keep their rows.
    """
    latest = await latest_scored_episode(db, season.id)
    report = SeasonSettlementReport(episode_id=episode.id if episode else None)
    if latest is None:
        return report

    episodes = await _load_scored_episodes(db, season.id, latest.episode_number)
    events = await _load_events(db, [ep.id for ep in episodes])

    leagues_result = await db.execute(
        select(League).where(League.season_id == season.id).order_by(League.id)
    )
    for league in leagues_result.scalars().all():
        league_id = league.id
        try:
            async with db.begin_nested():
                await _settle_league_through(db, league, episodes, events, rule)
        except Exception as exc:
            logger.exception("Settlement failed for league %d", league_id)
            report.failed[league_id] = str(exc)
            continue
        report.settled_league_ids.append(league_id)

    logger.info(
        "Season %d settled through episode %d: %d league(s) ok, %d failed",
        season.season_number, latest.episode_number,
        len(report.settled_league_ids), len(report.failed),
    )
    return report


async def get_standings(db: AsyncSession, league: League, episode: Episode | None = None) -> list[TeamEpisodeScore]:
    """Standings rows for one episode (latest settled when omitted), best first."""
    if episode is None:
        latest_result = await db.execute(
            select(Episode)
            .join(TeamEpisodeScore, TeamEpisodeScore.episode_id == Episode.id)
            .where(TeamEpisodeScore.league_id == league.id)
            .order_by(Episode.episode_number.desc())
            .limit(1)
        )
        episode = latest_result.scalar_one_or_none()
        if episode is None:
            return []

    result = await db.execute(
        select(TeamEpisodeScore)
        .where(
            TeamEpisodeScore.league_id == league.id,
            TeamEpisodeScore.episode_id == episode.id,
        )
        .order_by(TeamEpisodeScore.rank, TeamEpisodeScore.team_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()
