import pytest

from wcsim.draw import complete_draw, reset_draw
from wcsim.rng import make_rng
from wcsim.standings import calculate_group_standings
from wcsim.teams import Confederation, Team, load_teams


def make_team(
    team_id: str,
    confederation: Confederation = Confederation.UEFA,
    pot: int = 1,
    rank: int = 10,
    is_host: bool = False,
) -> Team:
    """Helper: a roster-independent team for rule-level tests."""
    return Team(
        id=team_id,
        name=team_id,
        confederation=confederation,
        rank=rank,
        pot=pot,
        is_host=is_host,
    )


@pytest.fixture(scope="session")
def teams():
    return load_teams()


@pytest.fixture
def fresh_state(teams):
    return reset_draw(teams, make_rng(11))


@pytest.fixture
def completed_state(teams):
    rng = make_rng(2024)
    return complete_draw(reset_draw(teams, rng), rng)


@pytest.fixture
def standings(completed_state):
    return calculate_group_standings(completed_state.groups, make_rng(5))
