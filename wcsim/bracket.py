from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from wcsim.match import simulate_winner
from wcsim.rng import make_rng
from wcsim.standings import GroupStanding, Standings, calculate_group_standings
from wcsim.teams import REFERENCE_DATA_DIR, Group

logger = logging.getLogger(__name__)

KNOCKOUT_MATCHES_PATH = REFERENCE_DATA_DIR / "world_cup_2026_knockout_matches.csv"


class Round(str, Enum):
    R32 = "R32"
    R16 = "R16"
    QF = "QF"
    SF = "SF"
    BRONZE = "Bronze"
    FINAL = "Final"


# Resolution order: a round only depends on rounds before it.
ROUND_ORDER = [Round.R32, Round.R16, Round.QF, Round.SF, Round.BRONZE, Round.FINAL]

ROUND_NAMES = {
    Round.R32: "Round of 32",
    Round.R16: "Round of 16",
    Round.QF: "Quarterfinal",
    Round.SF: "Semifinal",
    Round.BRONZE: "Third place",
    Round.FINAL: "Final",
}


class SourceKind(str, Enum):
    GROUP_WINNER = "Winner Group"
    GROUP_RUNNER_UP = "Runner-up Group"
    BEST_THIRD = "Best Third"
    MATCH_WINNER = "Winner Match"
    MATCH_LOSER = "Loser Match"


_SOURCE_PATTERNS = [
    (SourceKind.GROUP_WINNER, re.compile(r"^Winner Group ([A-Z])$")),
    (SourceKind.GROUP_RUNNER_UP, re.compile(r"^Runner-up Group ([A-Z])$")),
    (SourceKind.BEST_THIRD, re.compile(r"^Best Third (\d+)$")),
    (SourceKind.MATCH_WINNER, re.compile(r"^Winner Match (\d+)$")),
    (SourceKind.MATCH_LOSER, re.compile(r"^Loser Match (\d+)$")),
]


@dataclass(frozen=True)
class Source:
    kind: SourceKind
    ref: str

    @property
    def label(self) -> str:
        return f"{self.kind.value} {self.ref}"

    @property
    def upstream_match_id(self) -> Optional[str]:
        if self.kind in (SourceKind.MATCH_WINNER, SourceKind.MATCH_LOSER):
            return self.ref
        return None


def parse_source(label: str) -> Source:
    text = str(label).strip()
    for kind, pattern in _SOURCE_PATTERNS:
        m = pattern.match(text)
        if m:
            return Source(kind, m.group(1))
    raise ValueError(f"Unrecognized bracket source: {label}")


@dataclass(frozen=True)
class KnockoutFixture:
    match_id: str
    label: str
    round: Round
    home: Source
    away: Source
    next_match_id: Optional[str] = None


@dataclass(frozen=True)
class BracketMatch:
    id: str
    label: str
    round: Round
    home: Optional[GroupStanding]
    away: Optional[GroupStanding]
    winner_id: Optional[str] = None
    next_match_id: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.home is not None and self.away is not None

    @property
    def winner(self) -> Optional[GroupStanding]:
        if self.winner_id is None or not self.is_ready:
            return None
        return self.home if self.home.id == self.winner_id else self.away

    @property
    def loser(self) -> Optional[GroupStanding]:
        if self.winner_id is None or not self.is_ready:
            return None
        return self.away if self.home.id == self.winner_id else self.home


def load_topology(path: Optional[Path] = None) -> List[KnockoutFixture]:
    path = Path(path) if path else KNOCKOUT_MATCHES_PATH
    if not path.exists():
        raise FileNotFoundError(f"Missing knockout matches file: {path}")
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    required = {"match_id", "label", "round", "home", "away", "next_match_id"}
    missing = required.difference(df.columns)
    if missing:
        raise ValueError(f"Knockout matches file missing columns: {sorted(missing)}")
    for col in required:
        df[col] = df[col].str.strip()
    if df["match_id"].duplicated().any():
        dupes = df.loc[df["match_id"].duplicated(), "match_id"].unique().tolist()
        raise ValueError(
            f"Knockout matches file contains duplicate match_id values: {sorted(dupes)}"
        )

    fixtures: List[KnockoutFixture] = []
    seen = set()
    for row in df.itertuples(index=False):
        try:
            rnd = Round(row.round)
        except ValueError:
            raise ValueError(f"Unknown round for match {row.match_id}: {row.round}") from None
        home = parse_source(row.home)
        away = parse_source(row.away)
        for src in (home, away):
            upstream = src.upstream_match_id
            if upstream is not None and upstream not in seen:
                raise ValueError(
                    f"Match {row.match_id} depends on Match {upstream}, "
                    "which must be listed before it"
                )
        fixtures.append(
            KnockoutFixture(
                match_id=row.match_id,
                label=row.label or f"Match {row.match_id}",
                round=rnd,
                home=home,
                away=away,
                next_match_id=row.next_match_id or None,
            )
        )
        seen.add(row.match_id)

    for fx in fixtures:
        if fx.next_match_id is not None and fx.next_match_id not in seen:
            raise ValueError(
                f"Match {fx.match_id} feeds unknown match {fx.next_match_id}"
            )
    return fixtures


_default_topology: Optional[List[KnockoutFixture]] = None


def default_topology() -> List[KnockoutFixture]:
    global _default_topology
    if _default_topology is None:
        _default_topology = load_topology()
    return _default_topology


def _resolve(
    src: Source, standings: Standings, resolved: Mapping[str, BracketMatch]
) -> Optional[GroupStanding]:
    if src.kind == SourceKind.GROUP_WINNER:
        return standings.position(src.ref, 1)
    if src.kind == SourceKind.GROUP_RUNNER_UP:
        return standings.position(src.ref, 2)
    if src.kind == SourceKind.BEST_THIRD:
        idx = int(src.ref) - 1
        if 0 <= idx < len(standings.best_thirds):
            return standings.best_thirds[idx]
        return None
    upstream = resolved.get(src.ref)
    if upstream is None:
        return None
    if src.kind == SourceKind.MATCH_WINNER:
        return upstream.winner
    return upstream.loser


def generate_full_bracket(
    groups: Sequence[Group],
    overrides: Optional[Mapping[str, str]] = None,
    standings: Optional[Standings] = None,
    rng: Optional[np.random.Generator] = None,
    topology: Optional[Sequence[KnockoutFixture]] = None,
) -> List[BracketMatch]:
    """
    Project group tables and the override map (match id -> winner id) onto
    the knockout topology. Nothing is stored: every call rebuilds the whole
    tree, and a match whose upstream winner is unknown gets None for that side.
    """
    if standings is None:
        standings = calculate_group_standings(groups, rng)
    overrides = overrides or {}
    fixtures = topology if topology is not None else default_topology()

    resolved: Dict[str, BracketMatch] = {}
    matches: List[BracketMatch] = []
    for fx in fixtures:
        home = _resolve(fx.home, standings, resolved)
        away = _resolve(fx.away, standings, resolved)
        winner_id = overrides.get(fx.match_id)
        if winner_id is not None:
            participants = {s.id for s in (home, away) if s is not None}
            if home is None or away is None or winner_id not in participants:
                logger.debug(
                    "Ignoring override %s -> %s: not a participant", fx.match_id, winner_id
                )
                winner_id = None
        match = BracketMatch(
            id=fx.match_id,
            label=fx.label,
            round=fx.round,
            home=home,
            away=away,
            winner_id=winner_id,
            next_match_id=fx.next_match_id,
        )
        resolved[fx.match_id] = match
        matches.append(match)
    return matches


def auto_advance(
    groups: Sequence[Group],
    overrides: Optional[Mapping[str, str]] = None,
    standings: Optional[Standings] = None,
    rng: Optional[np.random.Generator] = None,
    topology: Optional[Sequence[KnockoutFixture]] = None,
) -> Dict[str, str]:
    """
    Simulate every undecided match round by round and return the new
    override map. Decided matches keep their winner.
    """
    rng = rng if rng is not None else make_rng()
    if standings is None:
        standings = calculate_group_standings(groups, rng)
    result = dict(overrides or {})

    for rnd in ROUND_ORDER:
        bracket = generate_full_bracket(groups, result, standings, topology=topology)
        for match in bracket:
            if match.round != rnd or match.winner_id is not None or not match.is_ready:
                continue
            result[match.id] = simulate_winner(match.home, match.away, rng)
        logger.debug("Auto-advance: %s resolved", ROUND_NAMES[rnd])
    return result


def champion(matches: Sequence[BracketMatch]) -> Optional[GroupStanding]:
    for match in matches:
        if match.round == Round.FINAL:
            return match.winner
    return None


def bracket_frame(matches: Sequence[BracketMatch]) -> pd.DataFrame:
    rows = []
    for m in matches:
        winner = m.winner
        rows.append(
            {
                "match_id": m.id,
                "label": m.label,
                "round": m.round.value,
                "home": m.home.id if m.home else None,
                "away": m.away.id if m.away else None,
                "winner": winner.id if winner else None,
                "next_match_id": m.next_match_id,
            }
        )
    return pd.DataFrame(rows)
