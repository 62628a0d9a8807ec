from wcsim.bracket import (
    BracketMatch,
    Round,
    auto_advance,
    champion,
    generate_full_bracket,
    load_topology,
)
from wcsim.draw import (
    DrawError,
    DrawErrorKind,
    DrawState,
    complete_draw,
    move_team,
    process_next_team,
    reset_draw,
    undo,
)
from wcsim.match import simulate_match, simulate_winner
from wcsim.rng import make_rng, shuffle
from wcsim.rules import is_valid_placement, is_valid_swap
from wcsim.standings import GroupStanding, Standings, Status, calculate_group_standings
from wcsim.teams import GROUP_IDS, Confederation, Group, Team, load_teams
from wcsim.tournament import WorldCup2026
