"""
Draft order: snake pick sequence and the one-time random seat shuffle.
"""

import random
from typing import Iterator, NamedTuple, Sequence

from castaway_league.models.models import Team


class DraftSlot(NamedTuple):
    team_index: int      # 0-based position in draft order
    round: int           # 0-based
    overall_pick: int    # 1-based across the whole draft


class SnakeDraftOrder:
    """
    Snake pick sequence: even rounds run 0..n-1, odd rounds run n-1..0.

    Iterating twice yields the same sequence; nothing is materialized up front.
    """

    def __init__(self, num_teams: int, num_rounds: int):
        if num_teams < 1:
            raise ValueError("num_teams must be at least 1")
        if num_rounds < 0:
            raise ValueError("num_rounds must not be negative")
        self.num_teams = num_teams
        self.num_rounds = num_rounds

    def __len__(self) -> int:
        return self.num_teams * self.num_rounds

    def __iter__(self) -> Iterator[DraftSlot]:
        overall = 1
        for rnd in range(self.num_rounds):
            if rnd % 2 == 0:
                order = range(self.num_teams)
            else:
                order = range(self.num_teams - 1, -1, -1)
            for team_index in order:
                yield DraftSlot(team_index, rnd, overall)
                overall += 1

    def slot_for_pick(self, overall_pick: int) -> DraftSlot | None:
        """The slot for a 1-based pick number, or None once the draft is exhausted."""
        if overall_pick < 1 or overall_pick > len(self):
            return None
        rnd, offset = divmod(overall_pick - 1, self.num_teams)
        team_index = offset if rnd % 2 == 0 else self.num_teams - 1 - offset
        return DraftSlot(team_index, rnd, overall_pick)


def assign_draft_positions(teams: Sequence[Team], rng: random.Random | None = None) -> bool:
    """
    Give every team a random 1-based ``draft_order``.

    Uses ``random.shuffle`` (Fisher-Yates). Positions are only ever assigned
    once: if any team already has one, nothing changes and False is returned.
    """
    if any(t.draft_order is not None for t in teams):
        return False

    shuffled = list(teams)
    (rng or random.SystemRandom()).shuffle(shuffled)
    for position, team in enumerate(shuffled, 1):
        team.draft_order = position
    return True
