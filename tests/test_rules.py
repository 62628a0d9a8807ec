"""
Tests for the placement and swap rules.
"""

from itertools import combinations

from conftest import make_team
from wcsim.rules import host_lock_ok, is_valid_placement, is_valid_swap, pinned_group
from wcsim.teams import Confederation, Group


def _group(group_id, *teams):
    return Group(group_id, tuple(teams))


class TestIsValidPlacement:
    def test_empty_group_accepts_anyone(self):
        assert is_valid_placement(make_team("ESP"), Group("A"))

    def test_one_team_per_pot(self):
        group = _group("A", make_team("ARG", Confederation.CONMEBOL, pot=2))
        assert not is_valid_placement(make_team("JPN", Confederation.AFC, pot=2), group)

    def test_uefa_allows_two(self):
        group = _group("A", make_team("ESP", pot=1))
        assert is_valid_placement(make_team("CRO", pot=2), group)

    def test_uefa_rejects_third(self):
        group = _group("A", make_team("ESP", pot=1), make_team("CRO", pot=2))
        assert not is_valid_placement(make_team("NOR", pot=3), group)

    def test_other_confederations_allow_one(self):
        group = _group("A", make_team("ARG", Confederation.CONMEBOL, pot=1))
        assert not is_valid_placement(make_team("URU", Confederation.CONMEBOL, pot=2), group)
        assert is_valid_placement(make_team("MAR", Confederation.CAF, pot=2), group)

    def test_playoff_slot_exempt_from_confederation_limits(self):
        group = _group(
            "A",
            make_team("FPO1", Confederation.FIFA, pot=1),
            make_team("FPO2", Confederation.FIFA, pot=2),
        )
        assert is_valid_placement(make_team("FPO3", Confederation.FIFA, pot=3), group)

    def test_playoff_slot_still_needs_free_pot(self):
        group = _group("A", make_team("NZL", Confederation.OFC, pot=4))
        assert not is_valid_placement(make_team("FPO1", Confederation.FIFA, pot=4), group)

    def test_team_already_in_group_is_ignored(self):
        esp = make_team("ESP", pot=1)
        group = _group("A", esp, make_team("CRO", pot=2))
        assert is_valid_placement(esp, group)


class TestHostLock:
    def test_pinned_groups(self):
        assert pinned_group(make_team("MEX", Confederation.CONCACAF, is_host=True)) == "A"
        assert pinned_group(make_team("CAN", Confederation.CONCACAF, is_host=True)) == "B"
        assert pinned_group(make_team("USA", Confederation.CONCACAF, is_host=True)) == "D"

    def test_non_host_is_free(self):
        assert pinned_group(make_team("ESP")) is None
        assert host_lock_ok(make_team("ESP"), "K")

    def test_host_lock(self):
        mex = make_team("MEX", Confederation.CONCACAF, is_host=True)
        assert host_lock_ok(mex, "A")
        assert not host_lock_ok(mex, "C")


class TestIsValidSwap:
    def test_different_pots_rejected(self):
        a = make_team("ESP", pot=1)
        b = make_team("CRO", pot=2)
        assert not is_valid_swap(a, _group("C", a), b, _group("E", b))

    def test_host_cannot_leave_pinned_group(self):
        mex = make_team("MEX", Confederation.CONCACAF, is_host=True)
        esp = make_team("ESP", pot=1)
        assert not is_valid_swap(mex, _group("A", mex), esp, _group("C", esp))
        assert not is_valid_swap(esp, _group("C", esp), mex, _group("A", mex))

    def test_valid_swap(self):
        jpn = make_team("JPN", Confederation.AFC, pot=2)
        kor = make_team("KOR", Confederation.AFC, pot=2)
        group_c = _group("C", make_team("ESP", pot=1), jpn)
        group_e = _group("E", make_team("ARG", Confederation.CONMEBOL, pot=1), kor)
        assert is_valid_swap(jpn, group_c, kor, group_e)

    def test_swap_breaking_confederation_rule_rejected(self):
        col = make_team("COL", Confederation.CONMEBOL, pot=2)
        jpn = make_team("JPN", Confederation.AFC, pot=2)
        group_c = _group("C", make_team("ESP", pot=1), col)
        group_e = _group("E", make_team("ARG", Confederation.CONMEBOL, pot=1), jpn)
        assert not is_valid_swap(col, group_c, jpn, group_e)

    def test_symmetry_over_completed_draw(self, completed_state):
        placed = [(t, g) for g in completed_state.groups for t in g.teams]
        for (a, ga), (b, gb) in combinations(placed, 2):
            if a.pot != b.pot:
                continue
            assert is_valid_swap(a, ga, b, gb) == is_valid_swap(b, gb, a, ga)
