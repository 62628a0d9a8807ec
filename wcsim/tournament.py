from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from wcsim.bracket import (
    ROUND_NAMES,
    BracketMatch,
    Round,
    auto_advance,
    bracket_frame,
    champion,
    generate_full_bracket,
)
from wcsim.draw import DrawState, complete_draw, reset_draw
from wcsim.standings import Standings, calculate_group_standings
from wcsim.teams import GROUP_IDS, GROUP_SIZE, Group, Team, load_teams

logger = logging.getLogger(__name__)

STAGE_LABELS = {
    "Group": "1. Group",
    "Round of 32": "2. Round of 32",
    "Round of 16": "3. Round of 16",
    "Quarterfinal": "4. Quarterfinal",
    "Fourth place": "5. Fourth place",
    "Third place": "6. Third place",
    "Final": "7. Final",
    "Champion": "8. Champion",
}


class WorldCup2026:
    """
    One full tournament: the draw (unless groups are given), the group stage
    and the knockout bracket, all driven by a single random generator.
    """

    def __init__(
        self,
        teams: Optional[Sequence[Team]] = None,
        groups: Optional[Sequence[Group]] = None,
    ):
        self.draw_state: Optional[DrawState] = None
        self.standings: Optional[Standings] = None
        self.overrides: Dict[str, str] = {}
        self.matches: List[BracketMatch] = []
        self.champion: Optional[str] = None
        self.finished = False

        self._given_groups: Optional[Tuple[Group, ...]] = None
        if groups is not None:
            self.groups = tuple(groups)
            self._given_groups = self.groups
            if [g.id for g in self.groups] != GROUP_IDS:
                raise ValueError("WorldCup2026 requires groups A-L")
            for g in self.groups:
                if len(g) != GROUP_SIZE:
                    raise ValueError(f"Group {g.id} must have {GROUP_SIZE} teams")
            self.teams = [t for g in self.groups for t in g.teams]
            if len({t.id for t in self.teams}) != 48:
                raise ValueError("WorldCup2026 requires 48 unique teams across groups")
        else:
            self.groups = ()
            self.teams = list(teams) if teams is not None else load_teams()

    def simulate(self, random_state: Optional[int] = None) -> "WorldCup2026":
        rng = np.random.default_rng(random_state)
        self._simulate(rng)
        self.finished = True
        return self

    def _simulate(self, rng: np.random.Generator) -> None:
        if self._given_groups is None:
            state = complete_draw(reset_draw(self.teams, rng), rng)
            if state.error is not None:
                raise RuntimeError(str(state.error))
            self.draw_state = state
            self.groups = state.groups

        self.standings = calculate_group_standings(self.groups, rng)
        self.overrides = auto_advance(self.groups, {}, self.standings, rng)
        self.matches = generate_full_bracket(self.groups, self.overrides, self.standings)
        winner = champion(self.matches)
        self.champion = winner.id if winner else None
        logger.debug("Champion: %s", self.champion)

    def results_frame(self) -> pd.DataFrame:
        return bracket_frame(self.matches)

    def stage_of_elimination(self) -> Dict[str, str]:
        if not self.finished:
            return {}
        stages = {t.id: STAGE_LABELS["Group"] for t in self.teams}
        for match in self.matches:
            for side in (match.home, match.away):
                if side is not None:
                    name = ROUND_NAMES[match.round]
                    stages[side.id] = STAGE_LABELS.get(name, f"0.{name}")
        for match in self.matches:
            if match.round == Round.BRONZE and match.loser is not None:
                stages[match.loser.id] = STAGE_LABELS["Fourth place"]
        if self.champion:
            stages[self.champion] = STAGE_LABELS["Champion"]
        return stages


def stage_of_elimination(team_id: str, tournaments: Iterable[WorldCup2026]) -> pd.Series:
    stages = [t.stage_of_elimination().get(team_id, "0. Not entered") for t in tournaments]
    return pd.Series(stages, dtype=object).value_counts().sort_index()
