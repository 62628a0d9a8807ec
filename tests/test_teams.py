"""
Tests for the roster loader and group values.
"""

import pytest

from conftest import make_team
from wcsim.teams import (
    HOST_GROUPS,
    Confederation,
    Group,
    empty_groups,
    group_index,
    load_teams,
    split_pots,
)

HEADER = "id,name,confederation,rank,pot,is_host,flag_code\n"


class TestLoadTeams:
    def test_default_roster(self, teams):
        assert len(teams) == 48
        assert len({t.id for t in teams}) == 48
        hosts = {t.id for t in teams if t.is_host}
        assert hosts == set(HOST_GROUPS)
        assert all(t.pot == 1 for t in teams if t.is_host)
        assert sum(t.confederation == Confederation.FIFA for t in teams) == 2

    def test_pots(self, teams):
        pots = split_pots(teams)
        assert [len(p) for p in pots] == [12, 12, 12, 12]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_teams(tmp_path / "missing.csv")

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "teams.csv"
        path.write_text("id,name,rank\nESP,Spain,3\n")
        with pytest.raises(ValueError):
            load_teams(path)

    def test_duplicate_ids(self, tmp_path):
        path = tmp_path / "teams.csv"
        path.write_text(HEADER + "ESP,Spain,UEFA,3,1,false,es\nESP,Spain,UEFA,3,1,false,es\n")
        with pytest.raises(ValueError):
            load_teams(path)

    def test_unknown_confederation(self, tmp_path):
        path = tmp_path / "teams.csv"
        path.write_text(HEADER + "ESP,Spain,EUROPE,3,1,false,es\n")
        with pytest.raises(ValueError):
            load_teams(path)

    def test_flag_code_optional(self, tmp_path):
        path = tmp_path / "teams.csv"
        path.write_text("id,name,confederation,rank,pot,is_host\nMEX,Mexico,CONCACAF,15,1,yes\n")
        (team,) = load_teams(path)
        assert team.is_host
        assert team.flag_code == ""


class TestSplitPots:
    def test_short_pot(self, teams):
        with pytest.raises(ValueError):
            split_pots(teams[1:])

    def test_unpinned_host(self, teams):
        swapped = [
            make_team("ESP", pot=1, is_host=True) if t.id == "ESP" else t for t in teams
        ]
        with pytest.raises(ValueError):
            split_pots(swapped)


class TestGroup:
    def test_values(self):
        esp = make_team("ESP")
        group = Group("A").with_team(esp)
        assert len(group) == 1
        assert esp in group
        assert group.team_in_pot(1) == esp
        assert group.find("ESP") == esp
        assert len(group.without_team("ESP")) == 0
        assert len(Group("A")) == 0

    def test_group_index(self):
        groups = empty_groups()
        assert group_index(groups, "D") == 3
        with pytest.raises(ValueError):
            group_index(groups, "M")
