import argparse
import logging
from pathlib import Path

import pandas as pd

from wcsim.bracket import bracket_frame
from wcsim.draw import groups_frame
from wcsim.standings import standings_frame
from wcsim.teams import load_teams
from wcsim.tournament import WorldCup2026, stage_of_elimination

logger = logging.getLogger("run_draw")


def parse_args():
    parser = argparse.ArgumentParser(description="Simulate the 2026 World Cup draw and tournament")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--runs", type=int, default=1, help="number of tournaments to simulate")
    parser.add_argument("--teams", type=Path, default=None, help="roster CSV (defaults to the bundled one)")
    parser.add_argument("--output-dir", type=Path, default=None, help="write groups/standings/bracket CSVs here")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    teams = load_teams(args.teams)

    if args.runs > 1:
        base = args.seed if args.seed is not None else 0
        tournaments = [WorldCup2026(teams).simulate(base + i) for i in range(args.runs)]
        champions = pd.Series([t.champion for t in tournaments]).value_counts()
        logger.info("Champions over %d runs:\n%s", args.runs, champions.head(10).to_string())
        for team in champions.index[:3]:
            logger.info("%s:\n%s", team, stage_of_elimination(team, tournaments).to_string())
        return

    wc = WorldCup2026(teams).simulate(args.seed)
    groups = groups_frame(wc.draw_state)
    for group, sub in groups.groupby("group"):
        logger.info("Group %s: %s", group, ", ".join(sub["team"]))
    logger.info("Champion: %s", wc.champion)

    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        groups.to_csv(args.output_dir / "groups.csv", index=False)
        standings_frame(wc.standings).to_csv(args.output_dir / "standings.csv", index=False)
        bracket_frame(wc.matches).to_csv(args.output_dir / "bracket.csv", index=False)
        logger.info("Results written to %s", args.output_dir)


if __name__ == "__main__":
    main()
