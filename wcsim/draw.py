from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from wcsim.rng import make_rng, shuffle
from wcsim.rules import host_lock_ok, is_valid_placement, is_valid_swap, pinned_group
from wcsim.solver import DEADLOCK, find_safe_group_index
from wcsim.teams import (
    CONFEDERATION_LABELS,
    GROUP_IDS,
    HOST_GROUPS,
    Group,
    Team,
    empty_groups,
    group_index,
    load_teams,
    split_pots,
)

logger = logging.getLogger(__name__)


class DrawErrorKind(str, Enum):
    DEADLOCK = "deadlock"
    INVALID_MOVE = "invalid-move"
    INVALID_SWAP = "invalid-swap"


@dataclass(frozen=True)
class DrawError:
    kind: DrawErrorKind
    message: str
    team_id: Optional[str] = None
    pot: Optional[int] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Snapshot:
    pots: Tuple[Tuple[Team, ...], ...]
    groups: Tuple[Group, ...]
    pot_index: int
    team_index: int
    is_complete: bool


@dataclass(frozen=True)
class HistoryEntry:
    # Linked stack: each entry only references the previous one, and the
    # snapshot shares the immutable pots/groups of the state it came from.
    snapshot: Snapshot
    previous: Optional["HistoryEntry"] = None
    depth: int = 1


@dataclass(frozen=True)
class DrawState:
    pots: Tuple[Tuple[Team, ...], ...]
    groups: Tuple[Group, ...]
    pot_index: int = 0
    team_index: int = 0
    history: Optional[HistoryEntry] = None
    is_complete: bool = False
    error: Optional[DrawError] = None

    @property
    def current_team(self) -> Optional[Team]:
        if self.is_complete:
            return None
        return self.pots[self.pot_index][self.team_index]

    @property
    def placed_count(self) -> int:
        return sum(len(g) for g in self.groups)

    @property
    def history_depth(self) -> int:
        return self.history.depth if self.history else 0

    @property
    def is_deadlocked(self) -> bool:
        return self.error is not None and self.error.kind == DrawErrorKind.DEADLOCK

    def group(self, group_id: str) -> Group:
        return self.groups[group_index(self.groups, group_id)]

    def group_of(self, team_id: str) -> Optional[Group]:
        for g in self.groups:
            if g.find(team_id) is not None:
                return g
        return None

    def snapshot(self) -> Snapshot:
        return Snapshot(
            pots=self.pots,
            groups=self.groups,
            pot_index=self.pot_index,
            team_index=self.team_index,
            is_complete=self.is_complete,
        )


def _host_order(team: Team) -> int:
    return GROUP_IDS.index(HOST_GROUPS[team.id])


def reset_draw(
    teams: Optional[Sequence[Team]] = None,
    rng: Optional[np.random.Generator] = None,
    group_ids: Sequence[str] = GROUP_IDS,
) -> DrawState:
    """
    Fresh draw: hosts lead their pot in pinned-group order, every other team
    is shuffled within its pot.
    """
    teams = list(teams) if teams is not None else load_teams()
    rng = rng if rng is not None else make_rng()
    pots = split_pots(teams)
    for team in teams:
        pinned = pinned_group(team)
        if pinned is not None and pinned not in group_ids:
            raise ValueError(f"Host {team.id} is pinned to unknown group {pinned}")

    prepared: List[Tuple[Team, ...]] = []
    for pot in pots:
        hosts = sorted((t for t in pot if t.is_host), key=_host_order)
        others = shuffle([t for t in pot if not t.is_host], rng)
        prepared.append(tuple(hosts + others))
    return DrawState(pots=tuple(prepared), groups=empty_groups(group_ids))


def _next_cursor(
    pots: Sequence[Sequence[Team]], pot_index: int, team_index: int
) -> Tuple[int, int, bool]:
    nxt = team_index + 1
    if nxt < len(pots[pot_index]):
        return pot_index, nxt, False
    if pot_index >= len(pots) - 1:
        # Cursor stays on the last team once everything is placed.
        return pot_index, team_index, True
    return pot_index + 1, 0, False


def _push(state: DrawState) -> HistoryEntry:
    return HistoryEntry(
        snapshot=state.snapshot(),
        previous=state.history,
        depth=state.history_depth + 1,
    )


def _replace_groups(groups: Tuple[Group, ...], *changed: Group) -> Tuple[Group, ...]:
    by_id = {g.id: g for g in changed}
    return tuple(by_id.get(g.id, g) for g in groups)


def _place(
    state: DrawState,
    team: Team,
    idx: int,
    pots: Optional[Tuple[Tuple[Team, ...], ...]] = None,
) -> DrawState:
    pots = pots if pots is not None else state.pots
    target = state.groups[idx].with_team(team)
    pot_index, team_index, is_complete = _next_cursor(
        pots, state.pot_index, state.team_index
    )
    logger.debug("Pot%d: %s to Group %s", team.pot, team.name, target.id)
    if is_complete:
        logger.info("Draw complete: %d teams placed", state.placed_count + 1)
    return DrawState(
        pots=pots,
        groups=_replace_groups(state.groups, target),
        pot_index=pot_index,
        team_index=team_index,
        history=_push(state),
        is_complete=is_complete,
        error=None,
    )


def _fail(
    state: DrawState,
    kind: DrawErrorKind,
    message: str,
    team: Optional[Team] = None,
) -> DrawState:
    if kind == DrawErrorKind.DEADLOCK:
        logger.warning(message)
    else:
        logger.info(message)
    return replace(
        state,
        error=DrawError(
            kind=kind,
            message=message,
            team_id=team.id if team else None,
            pot=team.pot if team else None,
        ),
    )


def _reserved_for_host(state: DrawState, team: Team, group_id: str) -> Optional[Team]:
    """An unplaced host of the same pot that is locked to `group_id`, if any."""
    for t in state.pots[team.pot - 1]:
        if t.id == team.id or pinned_group(t) != group_id:
            continue
        if state.group_of(t.id) is None:
            return t
    return None


def process_next_team(
    state: DrawState, rng: Optional[np.random.Generator] = None
) -> DrawState:
    """
    Draw the team under the cursor. Hosts go straight to their pinned
    group, everyone else through the pot solver. A deadlock leaves groups
    and cursor untouched and blocks further draws until undo or reset.
    """
    if state.is_complete or state.is_deadlocked:
        return state
    rng = rng if rng is not None else make_rng()

    team = state.current_team
    pot = state.pots[state.pot_index]
    pinned = pinned_group(team)
    if pinned is not None:
        idx = group_index(state.groups, pinned)
    else:
        idx = find_safe_group_index(team, pot, state.team_index, state.groups, rng)

    if idx == DEADLOCK:
        return _fail(
            state,
            DrawErrorKind.DEADLOCK,
            f"Deadlock: Cannot place {team.name} in any group's "
            f"Pot {state.pot_index + 1} slot.",
            team,
        )
    return _place(state, team, idx)


def complete_draw(
    state: DrawState, rng: Optional[np.random.Generator] = None
) -> DrawState:
    """Keep drawing until the draw completes or deadlocks."""
    rng = rng if rng is not None else make_rng()
    while not state.is_complete:
        state = process_next_team(state, rng)
        if state.is_deadlocked:
            break
    return state


def move_team(
    state: DrawState,
    team_id: str,
    from_group_id: Optional[str],
    to_group_id: str,
) -> DrawState:
    """
    Manual override. Without a source group, picks an undrawn team of the
    active pot into `to_group_id` and advances the draw. With a source group,
    swaps with the same-pot occupant of the destination, or relocates the
    team when that slot is free; neither touches the cursor.
    """
    if state.is_deadlocked:
        return state
    to_idx = group_index(state.groups, to_group_id)
    if from_group_id is None:
        return _pick(state, team_id, to_idx)

    from_idx = group_index(state.groups, from_group_id)
    source = state.groups[from_idx]
    team = source.find(team_id)
    if team is None:
        raise ValueError(f"Team {team_id} is not in Group {from_group_id}")
    if from_idx == to_idx:
        return _fail(
            state,
            DrawErrorKind.INVALID_MOVE,
            f"{team.name} is already in Group {to_group_id}.",
            team,
        )

    target = state.groups[to_idx]
    occupant = target.team_in_pot(team.pot)
    if occupant is not None:
        return _swap(state, team, source, occupant, target)
    return _relocate(state, team, source, target)


def _pick(state: DrawState, team_id: str, to_idx: int) -> DrawState:
    if state.is_complete:
        return _fail(state, DrawErrorKind.INVALID_MOVE, "The draw is already complete.")

    pot = state.pots[state.pot_index]
    pos = next(
        (i for i in range(state.team_index, len(pot)) if pot[i].id == team_id), None
    )
    if pos is None:
        return _fail(
            state,
            DrawErrorKind.INVALID_MOVE,
            f"{team_id} is not waiting to be drawn from Pot {state.pot_index + 1}.",
        )
    team = pot[pos]
    target = state.groups[to_idx]

    error = _placement_error(state, team, target)
    if error:
        return _fail(state, DrawErrorKind.INVALID_MOVE, error, team)

    # The picked team takes the cursor slot so the cursor only ever passes
    # placed teams.
    rest = tuple(t for t in pot[state.team_index :] if t.id != team.id)
    new_pot = pot[: state.team_index] + (team,) + rest
    pots = state.pots[: state.pot_index] + (new_pot,) + state.pots[state.pot_index + 1 :]
    return _place(state, team, to_idx, pots=pots)


def _placement_error(state: DrawState, team: Team, target: Group) -> Optional[str]:
    pinned = pinned_group(team)
    if not host_lock_ok(team, target.id):
        return f"{team.name} is locked to Group {pinned}."
    if pinned is None:
        host = _reserved_for_host(state, team, target.id)
        if host is not None:
            return f"Group {target.id} is reserved for {host.name}."
    if target.team_in_pot(team.pot) is not None:
        return f"Group {target.id} already has a team from Pot {team.pot}."
    if pinned is None and not is_valid_placement(team, target):
        return "Placement invalid: Confederation rules violated."
    return None


def _swap(
    state: DrawState, team: Team, source: Group, occupant: Team, target: Group
) -> DrawState:
    if not is_valid_swap(team, source, occupant, target):
        return _fail(
            state,
            DrawErrorKind.INVALID_SWAP,
            f"Cannot swap {team.name} (Group {source.id}) with "
            f"{occupant.name} (Group {target.id}).",
            team,
        )
    new_source = source.without_team(team.id).with_team(occupant)
    new_target = target.without_team(occupant.id).with_team(team)
    logger.debug("Swap: %s <-> %s", team.name, occupant.name)
    return replace(
        state,
        groups=_replace_groups(state.groups, new_source, new_target),
        history=_push(state),
        error=None,
    )


def _relocate(state: DrawState, team: Team, source: Group, target: Group) -> DrawState:
    error = _placement_error(state, team, target)
    if error:
        return _fail(state, DrawErrorKind.INVALID_MOVE, error, team)
    logger.debug("Move: %s from Group %s to Group %s", team.name, source.id, target.id)
    return replace(
        state,
        groups=_replace_groups(
            state.groups, source.without_team(team.id), target.with_team(team)
        ),
        history=_push(state),
        error=None,
    )


def undo(state: DrawState) -> DrawState:
    if state.history is None:
        return state
    snap = state.history.snapshot
    return DrawState(
        pots=snap.pots,
        groups=snap.groups,
        pot_index=snap.pot_index,
        team_index=snap.team_index,
        history=state.history.previous,
        is_complete=snap.is_complete,
        error=None,
    )


def groups_frame(state: DrawState) -> pd.DataFrame:
    rows = []
    for group in state.groups:
        for team in sorted(group.teams, key=lambda t: t.pot):
            rows.append(
                {
                    "group": group.id,
                    "pot": team.pot,
                    "team_id": team.id,
                    "team": team.name,
                    "confederation": team.confederation.value,
                    "region": CONFEDERATION_LABELS[team.confederation],
                    "rank": team.rank,
                }
            )
    return pd.DataFrame(
        rows, columns=["group", "pot", "team_id", "team", "confederation", "region", "rank"]
    )
