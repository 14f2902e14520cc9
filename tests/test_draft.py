import pytest

from castaway_league.core.errors import Conflict, Forbidden, InsufficientBudget, NotFound, ValidationError
from castaway_league.models.models import DraftMode, DraftStatus, ScoringEvent
from castaway_league.services.draft import get_draft_board, make_pick, transition_draft
from castaway_league.services.settlement import get_standings
from tests.factories import identity_for, make_episode, make_league, make_season, make_user


async def _setup(db, **league_kwargs):
    alice = await make_user(db, "alice")
    bob = await make_user(db, "bob")
    season, cast = await make_season(db)
    league, teams = await make_league(db, season, alice, [bob], **league_kwargs)
    return alice, bob, season, cast, league, teams


async def test_only_the_commissioner_or_admin_can_move_the_draft(db) -> None:
    alice, bob, _, _, league, _ = await _setup(db)
    with pytest.raises(Forbidden):
        await transition_draft(db, identity_for(bob), league, DraftStatus.ACTIVE)

    admin = await make_user(db, "root", is_admin=True)
    await transition_draft(db, identity_for(admin), league, DraftStatus.ACTIVE)
    assert league.draft_status == DraftStatus.ACTIVE


async def test_starting_the_draft_assigns_positions_once(db) -> None:
    alice, _, _, _, league, teams = await _setup(db)
    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)
    positions = [t.draft_order for t in teams]
    assert sorted(positions) == [1, 2]

    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)
    assert [t.draft_order for t in teams] == positions


async def test_illegal_transitions(db) -> None:
    alice, _, _, _, league, _ = await _setup(db)
    with pytest.raises(ValidationError):
        await transition_draft(db, identity_for(alice), league, DraftStatus.COMPLETED)

    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)
    await transition_draft(db, identity_for(alice), league, DraftStatus.COMPLETED)
    with pytest.raises(ValidationError):
        await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)
    with pytest.raises(ValidationError):
        await transition_draft(db, identity_for(alice), league, DraftStatus.PENDING)


async def test_picks_need_an_active_draft(db) -> None:
    alice, _, _, cast, league, teams = await _setup(db)
    with pytest.raises(ValidationError):
        await make_pick(db, identity_for(alice), league, teams[0], cast[0].id)


async def test_snake_picks(db) -> None:
    alice, bob, _, cast, league, teams = await _setup(db, roster_size=2)
    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)

    first = await make_pick(db, identity_for(bob), league, teams[1], cast[0].id)
    assert (first.pick_number, first.round, first.is_commissioner_pick) == (1, 0, False)
    assert first.amount_paid is None

    with pytest.raises(Conflict):
        await make_pick(db, identity_for(alice), league, teams[0], cast[0].id)
    with pytest.raises(Forbidden):
        await make_pick(db, identity_for(bob), league, teams[0], cast[1].id)

    # Commissioner picking on bob's behalf
    second = await make_pick(db, identity_for(alice), league, teams[1], cast[1].id)
    assert second.is_commissioner_pick is True

    with pytest.raises(ValidationError):
        await make_pick(db, identity_for(bob), league, teams[1], cast[2].id)


async def test_pick_must_come_from_the_league_season(db) -> None:
    alice, _, _, _, league, teams = await _setup(db)
    _, other_cast = await make_season(db, number=51)
    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)
    with pytest.raises(NotFound):
        await make_pick(db, identity_for(alice), league, teams[0], other_cast[0].id)


async def test_auction_picks_spend_budget(db) -> None:
    alice, _, _, cast, league, teams = await _setup(db, draft_mode=DraftMode.AUCTION, budget=50)
    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)

    with pytest.raises(ValidationError):
        await make_pick(db, identity_for(alice), league, teams[0], cast[0].id)

    pick = await make_pick(db, identity_for(alice), league, teams[0], cast[0].id, amount_paid=30)
    assert pick.amount_paid == 30
    assert teams[0].budget_remaining == 20

    with pytest.raises(InsufficientBudget):
        await make_pick(db, identity_for(alice), league, teams[0], cast[1].id, amount_paid=21)
    assert teams[0].budget_remaining == 20


async def test_draft_board_shows_whose_turn_it_is(db) -> None:
    alice, bob, _, cast, league, teams = await _setup(db, roster_size=2)
    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)

    board = await get_draft_board(db, league)
    assert board.next_slot.overall_pick == 1
    first_team = board.next_team
    assert first_team.draft_order == 1

    await make_pick(db, identity_for(alice), league, first_team, cast[0].id)
    board = await get_draft_board(db, league)
    assert board.next_team.draft_order == 2
    assert len(board.picks) == 1


async def test_completing_a_late_draft_backfills_scored_episodes(db) -> None:
    alice, bob, season, cast, league, teams = await _setup(db)
    episodes = [await make_episode(db, season, n) for n in (1, 2, 3)]
    db.add_all([
        ScoringEvent(episode_id=episodes[0].id, contestant_id=cast[0].id, category="found_idol", count=1),
        ScoringEvent(episode_id=episodes[1].id, contestant_id=cast[5].id, category="tribe_immunity", count=1),
        ScoringEvent(episode_id=episodes[2].id, contestant_id=cast[0].id, category="votes_received", count=2),
    ])
    for episode in episodes:
        episode.is_scored = True
    await db.flush()

    await transition_draft(db, identity_for(alice), league, DraftStatus.ACTIVE)
    await make_pick(db, identity_for(alice), league, teams[0], cast[0].id)
    await make_pick(db, identity_for(bob), league, teams[1], cast[5].id)
    await transition_draft(db, identity_for(alice), league, DraftStatus.COMPLETED)

    by_team = {row.team_id: row for row in await get_standings(db, league, episodes[0])}
    assert by_team[teams[0].id].total_points == 5
    assert by_team[teams[1].id].total_points == 0

    by_team = {row.team_id: row for row in await get_standings(db, league, episodes[2])}
    assert by_team[teams[0].id].cumulative_total == 7
    assert by_team[teams[1].id].cumulative_total == 2
    assert by_team[teams[0].id].rank == 1

    # Asking again re-runs the backfill and changes nothing
    await transition_draft(db, identity_for(alice), league, DraftStatus.COMPLETED)
    again = {row.team_id: row.cumulative_total for row in await get_standings(db, league, episodes[2])}
    assert again == {teams[0].id: 7, teams[1].id: 2}
