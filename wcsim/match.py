from __future__ import annotations

import math
from typing import NamedTuple, Optional, Tuple

import numpy as np
from scipy.special import expit

# Host nations play as if ranked this many places higher.
HOST_BONUS = 25
# 10 ** (gap / 100) odds: a 100-place gap gives the favourite ~0.91 strength.
RANK_SCALE = 100.0 / math.log(10.0)
BASE_GOALS = 1.3
GOAL_EXPONENT = 1.6
SHOOTOUT_SKILL_COEF = 0.5


class MatchResult(NamedTuple):
    points_a: int
    points_b: int
    goals_a: int
    goals_b: int


class KnockoutResult(NamedTuple):
    winner_id: str
    home_goals: int
    away_goals: int
    went_penalties: bool


def effective_rank(team) -> int:
    if getattr(team, "is_host", False):
        return max(1, team.rank - HOST_BONUS)
    return int(team.rank)


def strength(team_a, team_b) -> Tuple[float, float]:
    """Relative strengths of both sides on (0, 1); they sum to one."""
    s_a = float(expit((effective_rank(team_b) - effective_rank(team_a)) / RANK_SCALE))
    return s_a, 1.0 - s_a


def goal_rate(s: float) -> float:
    return BASE_GOALS * (s / 0.5) ** GOAL_EXPONENT


def match_points(goals_a: int, goals_b: int) -> Tuple[int, int]:
    if goals_a > goals_b:
        return 3, 0
    if goals_a < goals_b:
        return 0, 3
    return 1, 1


def simulate_match(team_a, team_b, rng: np.random.Generator) -> MatchResult:
    s_a, s_b = strength(team_a, team_b)
    goals_a = int(rng.poisson(goal_rate(s_a)))
    goals_b = int(rng.poisson(goal_rate(s_b)))
    points_a, points_b = match_points(goals_a, goals_b)
    return MatchResult(points_a, points_b, goals_a, goals_b)


def simulate_knockout_match(home, away, rng: np.random.Generator) -> KnockoutResult:
    res = simulate_match(home, away, rng)
    if res.goals_a != res.goals_b:
        winner = home if res.goals_a > res.goals_b else away
        return KnockoutResult(winner.id, res.goals_a, res.goals_b, False)

    skilldiff = (effective_rank(away) - effective_rank(home)) / RANK_SCALE
    p_home_pen = float(expit(SHOOTOUT_SKILL_COEF * skilldiff))
    winner = home if rng.random() < p_home_pen else away
    return KnockoutResult(winner.id, res.goals_a, res.goals_b, True)


def simulate_winner(home, away, rng: np.random.Generator) -> Optional[str]:
    if home is None or away is None:
        return None
    return simulate_knockout_match(home, away, rng).winner_id
