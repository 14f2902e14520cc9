"""
Admin entry of what happened in an episode.

Results are recorded once per season, not per league: the events written
here are shared by every league, and each league prices them with its own
scoring config when it settles. Tribe-level results and the merge bonus are
expanded at recording time to the contestants still in the game when that
episode aired, judged by the season's voted-out events, so recording or
re-recording episodes in any order gives the same rows.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from castaway_league.core.errors import ValidationError
from castaway_league.models.models import Contestant, Episode, ScoringEvent, Season
from castaway_league.services.permissions import Identity, require_admin
from castaway_league.services.scoring_rules import ScoringCategory
from castaway_league.services.settlement import SeasonSettlementReport, settle_season

logger = logging.getLogger(__name__)


@dataclass
class RecordedResults:
    episode: Episode
    events_recorded: int
    settlement: SeasonSettlementReport


def _event(episode: Episode, contestant_id: int, category: ScoringCategory, count: int = 1,
           tribe: str | None = None, note: str | None = None) -> ScoringEvent:
    return ScoringEvent(
        episode_id=episode.id,
        contestant_id=contestant_id,
        category=category.value,
        count=count,
        tribe=tribe,
        note=note,
    )


async def _in_play_for(
    db: AsyncSession,
    season: Season,
    episode: Episode,
    contestants: dict[int, Contestant],
    previously_out_here: set[int],
) -> list[Contestant]:
    """
    Contestants still in the game when ``episode`` aired.

    Voted-out events from the season's other episodes decide it: out in an
    earlier episode means out, out in a later one means still in. Someone
    made inactive with no voted-out event anywhere (a quit entered by hand)
    stays out.
    """
    result = await db.execute(
        select(ScoringEvent.contestant_id, Episode.episode_number)
        .join(Episode, Episode.id == ScoringEvent.episode_id)
        .where(
            Episode.season_id == season.id,
            Episode.id != episode.id,
            ScoringEvent.category == ScoringCategory.VOTED_OUT.value,
        )
    )
    out_at: dict[int, int] = {}
    for contestant_id, number in result.all():
        out_at[contestant_id] = min(number, out_at.get(contestant_id, number))

    in_play = []
    for contestant in contestants.values():
        if contestant.id in out_at:
            if out_at[contestant.id] > episode.episode_number:
                in_play.append(contestant)
        elif contestant.is_active or contestant.id in previously_out_here:
            in_play.append(contestant)
    return in_play


async def record_episode_results(
    db: AsyncSession,
    identity: Identity | None,
    season: Season,
    episode: Episode,
    results,
) -> RecordedResults:
    require_admin(identity)
    if episode.season_id != season.id:
        raise ValidationError("Episode is not part of this season")

    contestants_result = await db.execute(
        select(Contestant).where(Contestant.season_id == season.id).order_by(Contestant.id)
    )
    contestants = {c.id: c for c in contestants_result.scalars().all()}

    individual_ids = [
        *results.found_idol, *results.successful_idol_play,
        *results.individual_reward, *results.individual_immunity,
        *results.votes_received.keys(), *results.voted_out, *results.final_three,
        *results.confessionals.keys(), *results.advantage_played,
    ]
    if results.winner is not None:
        individual_ids.append(results.winner)
    if results.title_speaker_id is not None:
        individual_ids.append(results.title_speaker_id)
    unknown = sorted({cid for cid in individual_ids if cid not in contestants})
    if unknown:
        raise ValidationError(f"Contestants not in this season: {unknown}")
    if any(votes < 0 for votes in results.votes_received.values()):
        raise ValidationError("Vote counts cannot be negative")
    if any(count < 0 for count in results.confessionals.values()):
        raise ValidationError("Confessional counts cannot be negative")
    if results.title_speaker_is_host and results.title_speaker_id is not None:
        raise ValidationError("Title speaker is either the host or a contestant, not both")

    tribes = {c.tribe for c in contestants.values() if c.tribe}
    unknown_tribes = sorted(
        {t for t in (*results.tribe_reward, *results.tribe_immunity, *results.second_place_immunity)
         if t not in tribes}
    )
    if unknown_tribes:
        raise ValidationError(f"Unknown tribes: {unknown_tribes}")

    # Undo eliminations from a previous entry of this episode
    previous = await db.execute(
        select(ScoringEvent.contestant_id).where(
            ScoringEvent.episode_id == episode.id,
            ScoringEvent.category == ScoringCategory.VOTED_OUT.value,
        )
    )
    previously_out_here = set(previous.scalars().all())
    for contestant_id in previously_out_here:
        if contestant_id in contestants and contestant_id not in results.voted_out:
            contestants[contestant_id].is_active = True

    await db.execute(delete(ScoringEvent).where(ScoringEvent.episode_id == episode.id))

    in_play = await _in_play_for(db, season, episode, contestants, previously_out_here)
    events: list[ScoringEvent] = []

    for category, tribe_names in (
        (ScoringCategory.TRIBE_REWARD, results.tribe_reward),
        (ScoringCategory.TRIBE_IMMUNITY, results.tribe_immunity),
        (ScoringCategory.SECOND_PLACE_IMMUNITY, results.second_place_immunity),
    ):
        for tribe in tribe_names:
            events.extend(_event(episode, c.id, category, tribe=tribe) for c in in_play if c.tribe == tribe)

    for category, ids in (
        (ScoringCategory.FOUND_IDOL, results.found_idol),
        (ScoringCategory.SUCCESSFUL_IDOL_PLAY, results.successful_idol_play),
        (ScoringCategory.INDIVIDUAL_REWARD, results.individual_reward),
        (ScoringCategory.INDIVIDUAL_IMMUNITY, results.individual_immunity),
        (ScoringCategory.FINAL_THREE, results.final_three),
        (ScoringCategory.ADVANTAGE, results.advantage_played),
        (ScoringCategory.VOTED_OUT, results.voted_out),
    ):
        events.extend(_event(episode, cid, category) for cid in ids)

    for cid, votes in results.votes_received.items():
        if votes > 0:
            events.append(_event(episode, cid, ScoringCategory.VOTES_RECEIVED, count=votes))
    for cid, count in results.confessionals.items():
        if count > 0:
            events.append(_event(episode, cid, ScoringCategory.CONFESSIONAL, count=count))

    if results.is_merge:
        events.extend(_event(episode, c.id, ScoringCategory.MERGE) for c in in_play)
    if results.winner is not None:
        events.append(_event(episode, results.winner, ScoringCategory.WINNER))

    db.add_all(events)

    if results.voted_out:
        await db.execute(
            update(Contestant)
            .where(Contestant.id.in_(results.voted_out))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )

    episode.is_merge = results.is_merge
    episode.is_finale = results.is_finale or bool(results.final_three) or results.winner is not None
    episode.title_speaker_id = results.title_speaker_id
    episode.title_speaker_is_host = results.title_speaker_is_host
    episode.is_scored = True  # Never cleared
    await db.flush()

    logger.info(
        "Season %d episode %d recorded: %d event(s), %d voted out",
        season.season_number, episode.episode_number, len(events), len(results.voted_out),
    )

    report = await settle_season(db, season, episode)
    return RecordedResults(episode=episode, events_recorded=len(events), settlement=report)
