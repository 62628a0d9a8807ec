from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd

PACKAGE_DIR = Path(__file__).resolve().parent
REFERENCE_DATA_DIR = PACKAGE_DIR / "reference_data"
TEAMS_PATH = REFERENCE_DATA_DIR / "world_cup_2026_teams.csv"

GROUP_IDS = [chr(ord("A") + i) for i in range(12)]
POT_COUNT = 4
POT_SIZE = 12
GROUP_SIZE = 4

# Host nation -> the group it is locked into.
HOST_GROUPS = {
    "MEX": "A",
    "CAN": "B",
    "USA": "D",
}


class Confederation(str, Enum):
    UEFA = "UEFA"
    CONMEBOL = "CONMEBOL"
    CAF = "CAF"
    AFC = "AFC"
    CONCACAF = "CONCACAF"
    OFC = "OFC"
    # Inter-confederation play-off slot, exempt from confederation limits.
    FIFA = "FIFA"


CONFEDERATION_LABELS = {
    Confederation.UEFA: "Europe",
    Confederation.CONMEBOL: "South America",
    Confederation.CAF: "Africa",
    Confederation.AFC: "Asia",
    Confederation.CONCACAF: "N. America",
    Confederation.OFC: "Oceania",
    Confederation.FIFA: "Inter-Confed",
}


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    confederation: Confederation
    rank: int
    pot: int
    is_host: bool = False
    flag_code: str = ""


@dataclass(frozen=True)
class Group:
    """
    A group is a value: adding or removing a team returns a new Group, so
    draw states can share every group they did not touch.
    """

    id: str
    teams: Tuple[Team, ...] = ()

    def __len__(self) -> int:
        return len(self.teams)

    def __contains__(self, team: object) -> bool:
        return any(t.id == getattr(team, "id", None) for t in self.teams)

    def with_team(self, team: Team) -> "Group":
        return Group(self.id, self.teams + (team,))

    def without_team(self, team_id: str) -> "Group":
        return Group(self.id, tuple(t for t in self.teams if t.id != team_id))

    def team_in_pot(self, pot: int) -> Optional[Team]:
        for t in self.teams:
            if t.pot == pot:
                return t
        return None

    def find(self, team_id: str) -> Optional[Team]:
        for t in self.teams:
            if t.id == team_id:
                return t
        return None


def empty_groups(group_ids: Sequence[str] = GROUP_IDS) -> Tuple[Group, ...]:
    return tuple(Group(g) for g in group_ids)


def group_index(groups: Sequence[Group], group_id: str) -> int:
    for idx, g in enumerate(groups):
        if g.id == group_id:
            return idx
    raise ValueError(f"Unknown group: {group_id}")


def _parse_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    text = str(val).strip().lower()
    return text in {"1", "true", "yes", "y"}


def load_teams(path: Optional[Path] = None) -> List[Team]:
    path = Path(path) if path else TEAMS_PATH
    if not path.exists():
        raise FileNotFoundError(f"Missing teams file: {path}")
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    required = {"id", "name", "confederation", "rank", "pot", "is_host"}
    missing = required.difference(df.columns)
    if missing:
        raise ValueError(f"Teams file missing columns: {sorted(missing)}")
    if "flag_code" not in df.columns:
        df["flag_code"] = ""

    df["id"] = df["id"].str.strip()
    if df["id"].duplicated().any():
        dupes = df.loc[df["id"].duplicated(), "id"].unique().tolist()
        raise ValueError(f"Teams file contains duplicate ids: {sorted(dupes)}")
    df["rank"] = pd.to_numeric(df["rank"], errors="raise").astype(int)
    df["pot"] = pd.to_numeric(df["pot"], errors="raise").astype(int)
    df["is_host"] = df["is_host"].apply(_parse_bool)

    teams: List[Team] = []
    for row in df.itertuples(index=False):
        try:
            confed = Confederation(str(row.confederation).strip())
        except ValueError:
            raise ValueError(
                f"Unknown confederation for {row.id}: {row.confederation}"
            ) from None
        if row.rank < 1:
            raise ValueError(f"Rank must be positive for {row.id}")
        teams.append(
            Team(
                id=row.id,
                name=str(row.name).strip(),
                confederation=confed,
                rank=int(row.rank),
                pot=int(row.pot),
                is_host=bool(row.is_host),
                flag_code=str(row.flag_code).strip(),
            )
        )
    return teams


def split_pots(teams: Sequence[Team]) -> List[List[Team]]:
    """Group a roster by pot, checking the 4 x 12 shape the draw expects."""
    pots: List[List[Team]] = [[] for _ in range(POT_COUNT)]
    for team in teams:
        if not 1 <= team.pot <= POT_COUNT:
            raise ValueError(f"Invalid pot for {team.id}: {team.pot}")
        pots[team.pot - 1].append(team)
    for idx, pot in enumerate(pots, start=1):
        if len(pot) != POT_SIZE:
            raise ValueError(f"Pot {idx} has {len(pot)}/{POT_SIZE} teams")
    hosts = [t for t in teams if t.is_host]
    for host in hosts:
        if host.id not in HOST_GROUPS:
            raise ValueError(f"Host {host.id} has no pinned group")
    return pots
