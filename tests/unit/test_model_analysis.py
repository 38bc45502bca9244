"""Tests for the offline analysis helpers."""
from __future__ import annotations

from aumos_gatekeeper.analysis import (
    analyze_patterns,
    flatten_group_members,
    group_contains_subject,
    group_depth,
)
from aumos_gatekeeper.models import Group, GroupRef


def _groups(*groups: Group) -> dict[str, Group]:
    return {g.id: g for g in groups}


class TestAnalyzePatterns:
    def test_counts_and_fields(self) -> None:
        analysis = analyze_patterns(
            ["billing.invoice.read", "billing.*", "*", "users.read", "read"]
        )
        assert analysis.wildcards == 2
        assert analysis.specific == 3
        assert analysis.services == {"billing"}
        assert analysis.resources == {"invoice", "billing", "users"}
        assert analysis.actions == {"read"}

    def test_to_dict_is_sorted(self) -> None:
        summary = analyze_patterns(["b.x", "a.y"]).to_dict()
        assert summary["resources"] == ["a", "b"]
        assert summary["actions"] == ["x", "y"]

    def test_custom_separator(self) -> None:
        analysis = analyze_patterns(["svc:res:act"], separator=":")
        assert analysis.services == {"svc"}

    def test_empty(self) -> None:
        assert analyze_patterns([]).to_dict()["wildcards"] == 0


class TestGroupHelpers:
    def test_flatten_nested_members(self) -> None:
        inner = Group(id="inner", name="Inner", members=["bob", "alice"])
        outer = Group(id="outer", name="Outer", members=["alice", GroupRef("inner")])
        groups = _groups(inner, outer)
        assert flatten_group_members(outer, groups) == ["alice", "bob"]

    def test_flatten_survives_cycle(self) -> None:
        a = Group(id="a", name="A", members=["alice", GroupRef("b")])
        b = Group(id="b", name="B", members=["bob", GroupRef("a")])
        assert flatten_group_members(a, _groups(a, b)) == ["alice", "bob"]

    def test_unknown_subgroup_ignored(self) -> None:
        group = Group(id="g", name="G", members=[GroupRef("ghost"), "carol"])
        assert flatten_group_members(group, _groups(group)) == ["carol"]

    def test_contains_subject(self) -> None:
        inner = Group(id="inner", name="Inner", members=["bob"])
        outer = Group(id="outer", name="Outer", members=[GroupRef("inner")])
        groups = _groups(inner, outer)
        assert group_contains_subject(outer, "bob", groups) is True
        assert group_contains_subject(outer, "eve", groups) is False

    def test_depth(self) -> None:
        leaf = Group(id="leaf", name="Leaf")
        mid = Group(id="mid", name="Mid", members=[GroupRef("leaf")])
        top = Group(id="top", name="Top", members=[GroupRef("mid"), GroupRef("leaf")])
        groups = _groups(leaf, mid, top)
        assert group_depth(leaf, groups) == 0
        assert group_depth(top, groups) == 2

    def test_depth_with_cycle(self) -> None:
        a = Group(id="a", name="A", members=[GroupRef("b")])
        b = Group(id="b", name="B", members=[GroupRef("a")])
        assert group_depth(a, _groups(a, b)) == 1
