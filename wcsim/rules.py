from __future__ import annotations

from typing import Optional

from wcsim.teams import HOST_GROUPS, Confederation, Group, Team

MAX_UEFA = 2
MAX_PER_CONFED = 1


def pinned_group(team: Team) -> Optional[str]:
    if not team.is_host:
        return None
    return HOST_GROUPS.get(team.id)


def host_lock_ok(team: Team, group_id: str) -> bool:
    pinned = pinned_group(team)
    return pinned is None or pinned == group_id


def is_valid_placement(team: Team, group: Group) -> bool:
    """
    True if `team` may sit in `group`: one team per pot, at most two UEFA
    teams and at most one team of any other confederation. The team itself
    is ignored if it already belongs to the group.
    """
    others = [t for t in group.teams if t.id != team.id]
    if any(t.pot == team.pot for t in others):
        return False

    confed = team.confederation
    if confed == Confederation.FIFA:
        return True

    count = sum(1 for t in others if t.confederation == confed)
    if confed == Confederation.UEFA:
        return count < MAX_UEFA
    return count < MAX_PER_CONFED


def is_valid_swap(team_a: Team, group_a: Group, team_b: Team, group_b: Group) -> bool:
    if team_a.pot != team_b.pot:
        return False
    if not host_lock_ok(team_a, group_b.id) or not host_lock_ok(team_b, group_a.id):
        return False
    if not is_valid_placement(team_a, group_b.without_team(team_b.id)):
        return False
    return is_valid_placement(team_b, group_a.without_team(team_a.id))
