"""Shared fixtures: an in-memory package source with query counters."""

from __future__ import annotations

from collections import Counter

import pytest

from rpmtree.core.parser import parse_token
from rpmtree.core.query import PackageSource


class FakeSource(PackageSource):
    """
    Package data held in dicts.

    requires maps package -> raw tokens. A token is provided by the package
    of the same name unless provides says otherwise. whatrequires is derived
    from requires.
    """

    name = "fake"

    def __init__(
        self,
        requires: dict[str, list[str]],
        *,
        provides: dict[str, list[str]] | None = None,
        capabilities: dict[str, list[str]] | None = None,
        build_requires: dict[str, list[str]] | None = None,
        reverse_via_provides: bool = False,
        supports_reverse_build_requires: bool = True,
    ) -> None:
        self.requires = requires
        self.provides = provides or {}
        self.capabilities = capabilities or {}
        self.build = build_requires or {}
        self.reverse_via_provides = reverse_via_provides
        self.supports_reverse_build_requires = supports_reverse_build_requires
        self.calls: Counter = Counter()

    def exists(self, package: str) -> bool:
        self.calls["exists", package] += 1
        return package in self.requires

    def list_requires(self, package: str, build_requires: bool = False) -> list[str]:
        self.calls["requires", package] += 1
        table = self.build if build_requires else self.requires
        return list(table.get(package, []))

    def list_whatrequires(self, capability: str, build_requires: bool = False) -> list[str]:
        self.calls["whatrequires", capability] += 1
        table = self.build if build_requires else self.requires
        return [
            pkg
            for pkg, tokens in table.items()
            if any(parse_token(t).name == capability for t in tokens)
        ]

    def list_provides(self, package: str) -> list[str]:
        self.calls["provides", package] += 1
        return list(self.capabilities.get(package, [package]))

    def whatprovides(self, token: str) -> list[str]:
        self.calls["whatprovides", token] += 1
        if token in self.provides:
            return list(self.provides[token])
        if token in self.requires:
            return [token]
        return []


@pytest.fixture
def make_source():
    """Factory for FakeSource instances."""
    return FakeSource


@pytest.fixture
def example_source() -> FakeSource:
    """foo requires bar and baz; bar requires baz."""
    return FakeSource({"foo": ["bar", "baz[>=1.0]"], "bar": ["baz"], "baz": []})
