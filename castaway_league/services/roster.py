"""Roster sizing: how many contestants each team drafts."""

from typing import NamedTuple


class RosterSizing(NamedTuple):
    roster_size: int
    remainder: int


def calculate_roster_size(active_contestants: int, team_count: int) -> RosterSizing:
    """Split the active pool evenly across teams. Leftover contestants stay undrafted.

    ``team_count`` must be at least 1; league creation rejects anything else
    before it gets here.
    """
    return RosterSizing(
        roster_size=active_contestants // team_count,
        remainder=active_contestants % team_count,
    )
