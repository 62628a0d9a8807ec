from __future__ import annotations

import logging
from typing import FrozenSet, Sequence, Set, Tuple

import numpy as np

from wcsim.rng import shuffle
from wcsim.rules import is_valid_placement, pinned_group
from wcsim.teams import Group, Team

logger = logging.getLogger(__name__)

DEADLOCK = -1


def _candidates(team: Team, groups: Sequence[Group]) -> Tuple[int, ...]:
    pinned = pinned_group(team)
    if pinned is not None:
        return tuple(i for i, g in enumerate(groups) if g.id == pinned)
    return tuple(i for i, g in enumerate(groups) if is_valid_placement(team, g))


def can_complete_pot(
    remaining: Sequence[Team],
    groups: Sequence[Group],
    consumed: Set[int],
) -> bool:
    """
    Backtracking check that every team in `remaining` (in order) can take a
    distinct, individually valid group outside `consumed`. Hosts can only
    take their pinned group. Failed (position, consumed) states are cached,
    so the search stays small even when the answer is no.
    """
    candidates = [_candidates(t, groups) for t in remaining]
    failed: Set[Tuple[int, FrozenSet[int]]] = set()

    def assign(pos: int, used: FrozenSet[int]) -> bool:
        if pos == len(remaining):
            return True
        if (pos, used) in failed:
            return False
        for idx in candidates[pos]:
            if idx in used:
                continue
            if assign(pos + 1, used | {idx}):
                return True
        failed.add((pos, used))
        return False

    return assign(0, frozenset(consumed))


def find_safe_group_index(
    team: Team,
    pot_teams: Sequence[Team],
    team_index: int,
    groups: Sequence[Group],
    rng: np.random.Generator,
) -> int:
    """
    Pick a group for `team` that is valid now and leaves the rest of its pot
    placeable. Candidates are tried in a random order, first success wins.
    Returns DEADLOCK when no candidate keeps the pot completable.
    """
    remaining = list(pot_teams[team_index + 1 :])
    occupied = {i for i, g in enumerate(groups) if g.team_in_pot(team.pot) is not None}

    for idx in shuffle(range(len(groups)), rng):
        if idx in occupied or not is_valid_placement(team, groups[idx]):
            continue
        if can_complete_pot(remaining, groups, occupied | {idx}):
            logger.debug("Solver: %s -> Group %s", team.id, groups[idx].id)
            return idx
        logger.debug(
            "Solver: rejected Group %s for %s, pot %d could not be completed",
            groups[idx].id,
            team.id,
            team.pot,
        )
    return DEADLOCK
