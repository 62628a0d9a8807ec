from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from wcsim.match import simulate_match
from wcsim.rng import make_rng
from wcsim.teams import GROUP_SIZE, Confederation, Group, Team

QUALIFIERS_PER_GROUP = 2
BEST_THIRD_COUNT = 8


class Status(str, Enum):
    QUALIFIED = "qualified"
    BEST_THIRD = "best-third"
    ELIMINATED = "eliminated"


@dataclass(frozen=True)
class GroupStanding:
    team: Team
    group_id: str
    position: int = 0
    points: int = 0
    goals_for: int = 0
    goals_against: int = 0
    status: Status = Status.ELIMINATED

    @property
    def goals_diff(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def id(self) -> str:
        return self.team.id

    @property
    def name(self) -> str:
        return self.team.name

    @property
    def rank(self) -> int:
        return self.team.rank

    @property
    def pot(self) -> int:
        return self.team.pot

    @property
    def is_host(self) -> bool:
        return self.team.is_host

    @property
    def confederation(self) -> Confederation:
        return self.team.confederation


@dataclass(frozen=True)
class Standings:
    group_tables: Dict[str, List[GroupStanding]]
    best_thirds: List[GroupStanding]

    def table(self, group_id: str) -> List[GroupStanding]:
        return self.group_tables[group_id]

    def position(self, group_id: str, pos: int) -> Optional[GroupStanding]:
        table = self.group_tables.get(group_id)
        if not table or pos < 1 or pos > len(table):
            return None
        return table[pos - 1]

    def qualifiers(self) -> List[GroupStanding]:
        return [
            s
            for table in self.group_tables.values()
            for s in table
            if s.status != Status.ELIMINATED
        ]


def standing_sort_key(s: GroupStanding) -> Tuple[int, int, int, int, str]:
    # Points, goal difference, goals scored, then world ranking. The id only
    # settles teams that share a ranking as well.
    return (-s.points, -s.goals_diff, -s.goals_for, s.rank, s.id)


def sort_standings(entries: Iterable[GroupStanding]) -> List[GroupStanding]:
    return sorted(entries, key=standing_sort_key)


def _play_group(group: Group, rng: np.random.Generator) -> List[GroupStanding]:
    teams = list(group.teams)
    if len(teams) != GROUP_SIZE:
        raise ValueError(f"Group {group.id} must have {GROUP_SIZE} teams")

    table = pd.DataFrame(
        index=[t.id for t in teams],
        columns=["points", "gf", "ga", "w", "d", "l"],
        data=0,
    )
    for i in range(len(teams)):
        for j in range(i + 1, len(teams)):
            home = teams[i].id
            away = teams[j].id
            res = simulate_match(teams[i], teams[j], rng)
            table.loc[home, "points"] += res.points_a
            table.loc[away, "points"] += res.points_b
            table.loc[home, "gf"] += res.goals_a
            table.loc[home, "ga"] += res.goals_b
            table.loc[away, "gf"] += res.goals_b
            table.loc[away, "ga"] += res.goals_a
            if res.goals_a > res.goals_b:
                table.loc[home, "w"] += 1
                table.loc[away, "l"] += 1
            elif res.goals_a < res.goals_b:
                table.loc[away, "w"] += 1
                table.loc[home, "l"] += 1
            else:
                table.loc[home, "d"] += 1
                table.loc[away, "d"] += 1

    entries = [
        GroupStanding(
            team=t,
            group_id=group.id,
            points=int(table.loc[t.id, "points"]),
            goals_for=int(table.loc[t.id, "gf"]),
            goals_against=int(table.loc[t.id, "ga"]),
        )
        for t in teams
    ]
    return [
        replace(
            s,
            position=pos,
            status=Status.QUALIFIED if pos <= QUALIFIERS_PER_GROUP else Status.ELIMINATED,
        )
        for pos, s in enumerate(sort_standings(entries), start=1)
    ]


def calculate_group_standings(
    groups: Sequence[Group], rng: Optional[np.random.Generator] = None
) -> Standings:
    """
    Play every group as a single round robin and rank it. The eight best
    third-placed teams across all groups join the top two of each group.
    A fresh sample is drawn on every call.
    """
    rng = rng if rng is not None else make_rng()
    tables: Dict[str, List[GroupStanding]] = {}
    thirds: List[GroupStanding] = []
    for group in groups:
        ranked = _play_group(group, rng)
        tables[group.id] = ranked
        thirds.append(ranked[QUALIFIERS_PER_GROUP])

    best = sort_standings(thirds)[:BEST_THIRD_COUNT]
    best_thirds = [replace(s, status=Status.BEST_THIRD) for s in best]
    best_ids = {s.id for s in best_thirds}
    for group_id, table in tables.items():
        tables[group_id] = [
            replace(s, status=Status.BEST_THIRD) if s.id in best_ids else s
            for s in table
        ]
    return Standings(group_tables=tables, best_thirds=best_thirds)


def standings_frame(standings: Standings) -> pd.DataFrame:
    rows = []
    for group_id, table in standings.group_tables.items():
        for s in table:
            rows.append(
                {
                    "group": group_id,
                    "position": s.position,
                    "team_id": s.id,
                    "team": s.name,
                    "points": s.points,
                    "gf": s.goals_for,
                    "ga": s.goals_against,
                    "gd": s.goals_diff,
                    "status": s.status.value,
                }
            )
    return pd.DataFrame(rows)
