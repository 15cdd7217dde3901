"""Tests for rpmtree.core.tree module."""

from __future__ import annotations

import pytest

from rpmtree.core.errors import InvalidModeError, UnknownPackageError
from rpmtree.core.resolver import Dependency
from rpmtree.core.tree import (
    Classification,
    DependencyNode,
    IgnoreSet,
    TraversalOptions,
    TraversalState,
    build_dependency_tree,
    traverse,
)


def _edges(events) -> list[tuple[str, str, Classification]]:
    return [
        (e.source, e.target.name, e.classification) for e in events if not e.is_root
    ]


def _no_ignore(**kwargs) -> TraversalOptions:
    return TraversalOptions(ignore=IgnoreSet(), **kwargs)


class TestIgnoreSet:
    """Tests for IgnoreSet."""

    def test_default_contains_base_system(self) -> None:
        ignore = IgnoreSet.default()
        assert ignore.matches("glibc")
        assert ignore.matches("bash")
        assert ignore.matches("lib64gcc1")
        assert ignore.matches("libstdc++6")
        assert not ignore.matches("perl")

    def test_from_names_splits_patterns(self) -> None:
        ignore = IgnoreSet.from_names(["perl", "python3-*"], defaults=False)
        assert ignore.names == {"perl"}
        assert ignore.patterns == {"python3-*"}
        assert not ignore.matches("glibc")

    def test_from_names_keeps_defaults(self) -> None:
        ignore = IgnoreSet.from_names(["perl"])
        assert ignore.matches("perl")
        assert ignore.matches("glibc")

    def test_wildcard_match(self) -> None:
        ignore = IgnoreSet(patterns={"lib*-devel"})
        assert ignore.matches("libfoo-devel")
        assert not ignore.matches("foo-devel")


class TestTraverse:
    """Tests for traverse."""

    def test_example_graph(self, example_source) -> None:
        events = list(traverse(["foo"], example_source, _no_ignore()))
        assert events[0].is_root
        assert events[0].target.name == "foo"
        assert _edges(events) == [
            ("foo", "bar", Classification.FRESH),
            ("bar", "baz", Classification.FRESH),
            ("foo", "baz", Classification.REVISITED),
        ]
        assert [(e.depth, e.is_last) for e in events[1:]] == [(1, False), (2, True), (1, True)]

    def test_each_package_queried_once(self, make_source) -> None:
        source = make_source(
            {
                "a": ["b", "c"],
                "b": ["d"],
                "c": ["d", "b"],
                "d": ["e"],
                "e": [],
                "z": ["d", "a"],
            }
        )
        list(traverse(["a", "z", "d"], source, _no_ignore()))
        for package in "abcdez":
            assert source.calls["requires", package] == 1

    def test_cycle_terminates(self, make_source) -> None:
        source = make_source({"A": ["B"], "B": ["C"], "C": ["A"]})
        events = list(traverse(["A"], source, _no_ignore()))
        assert _edges(events) == [
            ("A", "B", Classification.FRESH),
            ("B", "C", Classification.FRESH),
            ("C", "A", Classification.CYCLIC),
        ]

    def test_revisited_is_not_cyclic(self, make_source) -> None:
        source = make_source({"A": ["B", "C"], "B": [], "C": ["B"]})
        events = list(traverse(["A"], source, _no_ignore()))
        assert ("C", "B", Classification.REVISITED) in _edges(events)

    def test_max_depth_one(self, make_source) -> None:
        source = make_source({"foo": ["bar"], "bar": ["baz"], "baz": []})
        events = list(traverse(["foo"], source, _no_ignore(max_depth=1)))
        assert _edges(events) == [("foo", "bar", Classification.FRESH)]
        assert source.calls["requires", "bar"] == 0

    def test_max_depth_two(self, make_source) -> None:
        source = make_source({"a": ["b"], "b": ["c"], "c": ["d"], "d": []})
        events = list(traverse(["a"], source, _no_ignore(max_depth=2)))
        assert [t for _, t, _ in _edges(events)] == ["b", "c"]
        assert source.calls["requires", "c"] == 0

    def test_invalid_max_depth(self, example_source) -> None:
        with pytest.raises(InvalidModeError):
            traverse(["foo"], example_source, _no_ignore(max_depth=0))

    def test_ignore_exact_and_wildcard(self, make_source) -> None:
        source = make_source(
            {"app": ["glibc", "lib64gcc1", "perl", "python3-foo"], "glibc": [], "lib64gcc1": [],
             "perl": [], "python3-foo": []}
        )
        options = TraversalOptions(ignore=IgnoreSet.from_names(["python3-*"]))
        events = list(traverse(["app"], source, options))
        assert [t for _, t, _ in _edges(events)] == ["perl"]

    def test_ignore_applies_to_resolved_name(self, make_source) -> None:
        source = make_source({"app": ["/bin/sh"], "bash": []}, provides={"/bin/sh": ["bash"]})
        events = list(traverse(["app"], source, TraversalOptions()))
        assert _edges(events) == []

    def test_self_loop_suppressed(self, make_source) -> None:
        source = make_source({"X": ["X", "libx.so.1", "Y"], "Y": []}, provides={"libx.so.1": ["X"]})
        events = list(traverse(["X"], source, _no_ignore()))
        assert _edges(events) == [("X", "Y", Classification.FRESH)]

    def test_duplicate_provider_first_token_wins(self, make_source) -> None:
        source = make_source(
            {"foo": ["libbar.so.1", "bar", "bar[>= 2]"], "bar": []},
            provides={"libbar.so.1": ["bar"]},
        )
        events = list(traverse(["foo"], source, _no_ignore()))
        edges = [e for e in events if not e.is_root]
        assert len(edges) == 1
        assert edges[0].target.token == "libbar.so.1"
        assert edges[0].is_last

    def test_broken_dependency_emitted(self, make_source) -> None:
        source = make_source({"foo": ["missing[>= 1]", "bar"], "bar": []})
        events = list(traverse(["foo"], source, _no_ignore()))
        assert _edges(events) == [
            ("foo", "missing", Classification.BROKEN),
            ("foo", "bar", Classification.FRESH),
        ]
        assert events[1].target == Dependency(token="missing[>= 1]", provider=None)

    def test_internal_dependency_dropped(self, make_source) -> None:
        source = make_source({"foo": ["rpmlib(CompressedFileNames) <= 3.0.4-1", "bar"], "bar": []})
        events = list(traverse(["foo"], source, _no_ignore()))
        assert [t for _, t, _ in _edges(events)] == ["bar"]

    def test_order_preserved(self, make_source) -> None:
        source = make_source({"root": ["zeta", "alpha", "mid"], "zeta": [], "alpha": [], "mid": []})
        events = list(traverse(["root"], source, _no_ignore()))
        assert [t for _, t, _ in _edges(events)] == ["zeta", "alpha", "mid"]

    def test_later_root_sees_revisited(self, make_source) -> None:
        source = make_source({"a": ["c"], "b": ["c"], "c": ["d"], "d": []})
        events = list(traverse(["a", "b"], source, _no_ignore()))
        assert _edges(events) == [
            ("a", "c", Classification.FRESH),
            ("c", "d", Classification.FRESH),
            ("b", "c", Classification.REVISITED),
        ]
        assert [e.target.name for e in events if e.is_root] == ["a", "b"]

    def test_root_already_expanded_is_skipped(self, example_source) -> None:
        events = list(traverse(["foo", "bar"], example_source, _no_ignore()))
        assert [e.target.name for e in events if e.is_root] == ["foo"]

    def test_root_events_never_last(self, make_source) -> None:
        source = make_source({"a": ["b"], "b": []})
        events = list(traverse(["a", "b"], source, _no_ignore()))
        roots = [e for e in events if e.is_root]
        assert [r.target.name for r in roots] == ["a"]
        assert roots[0].is_last is False

    def test_state_invariants(self, make_source) -> None:
        source = make_source({"A": ["B"], "B": ["C"], "C": ["A"]})
        state = TraversalState()
        for _ in traverse(["A"], source, _no_ignore(), state=state):
            assert state.branch <= state.visited
        assert state.branch == set()
        assert state.visited == {"A", "B", "C"}

    def test_unknown_package_fails_before_queries(self, example_source) -> None:
        with pytest.raises(UnknownPackageError) as excinfo:
            traverse(["foo", "nope"], example_source, _no_ignore())
        assert excinfo.value.package == "nope"
        assert example_source.calls["requires", "foo"] == 0

    def test_build_requires(self, make_source) -> None:
        source = make_source({"foo": ["bar"], "bar": [], "gcc": []}, build_requires={"foo": ["gcc"]})
        events = list(traverse(["foo"], source, _no_ignore(build_requires=True)))
        assert [t for _, t, _ in _edges(events)] == ["gcc"]


class TestReverse:
    """Tests for reverse traversal."""

    def test_direct_whatrequires(self, make_source) -> None:
        source = make_source({"app": ["libfoo"], "tool": ["libfoo"], "libfoo": []})
        events = list(traverse(["libfoo"], source, _no_ignore(reverse=True)))
        assert _edges(events) == [
            ("libfoo", "app", Classification.FRESH),
            ("libfoo", "tool", Classification.FRESH),
        ]

    def test_via_provides(self, make_source) -> None:
        source = make_source(
            {"app": ["libfoo.so.1()(64bit)"], "tool": ["libfoo"], "libfoo": []},
            capabilities={"libfoo": ["libfoo = 1.0-1", "libfoo.so.1()(64bit)"]},
            reverse_via_provides=True,
        )
        events = list(traverse(["libfoo"], source, _no_ignore(reverse=True)))
        assert [t for _, t, _ in _edges(events)] == ["tool", "app"]
        assert source.calls["whatrequires", "libfoo.so.1()(64bit)"] == 1

    def test_reverse_build_requires_rejected(self, make_source) -> None:
        source = make_source({"foo": []}, supports_reverse_build_requires=False)
        with pytest.raises(InvalidModeError):
            traverse(["foo"], source, _no_ignore(reverse=True, build_requires=True))
        assert source.calls["exists", "foo"] == 0

    def test_reverse_build_requires_allowed(self, make_source) -> None:
        source = make_source({"gcc": [], "foo": []}, build_requires={"foo": ["gcc"]})
        events = list(traverse(["gcc"], source, _no_ignore(reverse=True, build_requires=True)))
        assert [t for _, t, _ in _edges(events)] == ["foo"]


class TestBuildDependencyTree:
    """Tests for build_dependency_tree."""

    def test_example_tree(self, example_source) -> None:
        trees = build_dependency_tree(traverse(["foo"], example_source, _no_ignore()))
        assert len(trees) == 1
        assert trees[0].to_dict() == {
            "name": "foo",
            "token": "foo",
            "status": "root",
            "children": [
                {
                    "name": "bar",
                    "token": "bar",
                    "status": "fresh",
                    "children": [
                        {"name": "baz", "token": "baz", "status": "fresh", "children": []}
                    ],
                },
                {"name": "baz", "token": "baz[>=1.0]", "status": "revisited", "children": []},
            ],
        }

    def test_forest(self, make_source) -> None:
        source = make_source({"a": [], "b": []})
        trees = build_dependency_tree(traverse(["a", "b"], source, _no_ignore()))
        assert [t.name for t in trees] == ["a", "b"]

    def test_node_defaults(self) -> None:
        node = DependencyNode(name="pkg", token="pkg", status="fresh")
        assert node.children == []
