"""Walk package dependency graphs and represent the result as a tree."""

from __future__ import annotations

import enum
import fnmatch
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from rpmtree.core.errors import InvalidModeError, UnknownPackageError
from rpmtree.core.parser import parse_token
from rpmtree.core.query import PackageSource
from rpmtree.core.resolver import Dependency, Resolver

logger = logging.getLogger(__name__)

# Base-system packages nearly everything depends on; hidden unless --all.
DEFAULT_IGNORE_NAMES = ("glibc", "bash", "systemd", "filesystem", "setup")
DEFAULT_IGNORE_PATTERNS = ("lib*gcc1", "lib*stdc++6")

_WILDCARD_CHARS = "*?["


@dataclass
class IgnoreSet:
    """Package names and shell-style patterns to leave out of the graph."""

    names: set[str] = field(default_factory=set)
    patterns: set[str] = field(default_factory=set)

    @classmethod
    def default(cls) -> IgnoreSet:
        return cls(set(DEFAULT_IGNORE_NAMES), set(DEFAULT_IGNORE_PATTERNS))

    @classmethod
    def from_names(cls, names: Iterable[str] = (), *, defaults: bool = True) -> IgnoreSet:
        """Build an ignore set; entries containing wildcard characters become patterns."""
        ignore = cls.default() if defaults else cls()
        for name in names:
            if any(c in name for c in _WILDCARD_CHARS):
                ignore.patterns.add(name)
            else:
                ignore.names.add(name)
        return ignore

    def matches(self, name: str) -> bool:
        if name in self.names:
            return True
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self.patterns)


class Classification(str, enum.Enum):
    """How an edge relates to what the traversal has already seen."""

    FRESH = "fresh"
    BROKEN = "broken"
    CYCLIC = "cyclic"
    REVISITED = "revisited"


@dataclass
class TraversalOptions:
    reverse: bool = False
    max_depth: int | None = None
    build_requires: bool = False
    ignore: IgnoreSet = field(default_factory=IgnoreSet.default)


@dataclass
class TraversalState:
    """
    Mutable state shared by every root of one traversal.

    visited holds every expanded package and is never shrunk; branch holds
    the packages on the path currently being expanded, so branch is always a
    subset of visited.
    """

    visited: set[str] = field(default_factory=set)
    branch: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class TraversalEvent:
    """
    One edge of the traversal, or a root (source is None, depth 0).

    depth is the depth of target; is_last tells whether this is the last
    edge emitted for source. It is always False on root events: whether a
    later root gets expanded is only known once the earlier ones are done.
    """

    source: str | None
    target: Dependency
    classification: Classification
    depth: int
    is_last: bool

    @property
    def is_root(self) -> bool:
        return self.source is None


class _Walker:
    def __init__(
        self,
        source: PackageSource,
        options: TraversalOptions,
        resolver: Resolver,
        state: TraversalState,
    ) -> None:
        self.source = source
        self.options = options
        self.resolver = resolver
        self.state = state

    def _reverse_names(self, package: str) -> list[str]:
        if self.source.reverse_via_provides:
            names: list[str] = []
            for capability in self.source.list_provides(package):
                names.extend(self.source.list_whatrequires(parse_token(capability).name))
            return names
        return self.source.list_whatrequires(package, build_requires=self.options.build_requires)

    def _raw_dependencies(self, package: str) -> list[Dependency]:
        if self.options.reverse:
            return [Dependency(token=n, provider=n) for n in self._reverse_names(package)]
        dependencies = []
        for token in self.source.list_requires(package, build_requires=self.options.build_requires):
            dependency = self.resolver.resolve(token)
            if dependency is not None:
                dependencies.append(dependency)
        return dependencies

    def edges(self, package: str) -> list[Dependency]:
        """Direct dependencies of package: ignored, self and duplicate providers removed."""
        seen: set[str] = set()
        edges = []
        for dependency in self._raw_dependencies(package):
            name = dependency.name
            if name == package or name in seen or self.options.ignore.matches(name):
                continue
            seen.add(name)
            edges.append(dependency)
        return edges

    def classify(self, dependency: Dependency) -> Classification:
        if dependency.provider is None:
            return Classification.BROKEN
        if dependency.provider in self.state.branch:
            return Classification.CYCLIC
        if dependency.provider in self.state.visited:
            return Classification.REVISITED
        return Classification.FRESH

    def expand(self, package: str, depth: int) -> Iterator[TraversalEvent]:
        self.state.visited.add(package)
        self.state.branch.add(package)
        try:
            edges = self.edges(package)
            max_depth = self.options.max_depth
            for i, dependency in enumerate(edges):
                classification = self.classify(dependency)
                yield TraversalEvent(
                    source=package,
                    target=dependency,
                    classification=classification,
                    depth=depth + 1,
                    is_last=i == len(edges) - 1,
                )
                if classification is Classification.FRESH and (
                    max_depth is None or depth + 1 < max_depth
                ):
                    yield from self.expand(dependency.name, depth + 1)
        finally:
            self.state.branch.discard(package)

    def walk(self, roots: list[str]) -> Iterator[TraversalEvent]:
        for root in roots:
            if root in self.state.visited:
                continue
            yield TraversalEvent(
                source=None,
                target=Dependency(token=root, provider=root),
                classification=Classification.FRESH,
                depth=0,
                is_last=False,
            )
            yield from self.expand(root, 0)
        logger.debug(
            "traversal done: %d packages expanded, resolver %s",
            len(self.state.visited),
            self.resolver.cache_info(),
        )


def check_options(source: PackageSource, options: TraversalOptions) -> None:
    """Reject unsupported option combinations before any query is made."""
    if options.max_depth is not None and options.max_depth < 1:
        raise InvalidModeError(f"max depth must be at least 1, got {options.max_depth}")
    if options.reverse and options.build_requires and not source.supports_reverse_build_requires:
        raise InvalidModeError(
            f"--reverse cannot be combined with --build-requires on the {source.name} "
            "database; use --urpmi-db"
        )


def traverse(
    roots: Iterable[str],
    source: PackageSource,
    options: TraversalOptions | None = None,
    *,
    resolver: Resolver | None = None,
    state: TraversalState | None = None,
) -> Iterator[TraversalEvent]:
    """
    Depth-first, pre-order walk of the dependency graph from roots.

    Options and roots are validated immediately; the returned iterator then
    queries the source lazily as it is consumed. Each package is expanded at
    most once across all roots. Edges to broken, cyclic or already expanded
    packages are still emitted but never expanded.

    Raises InvalidModeError or UnknownPackageError before anything is yielded.
    """
    options = options or TraversalOptions()
    roots = list(dict.fromkeys(roots))
    check_options(source, options)
    for root in roots:
        if not source.exists(root):
            raise UnknownPackageError(root)
    walker = _Walker(
        source,
        options,
        resolver or Resolver(source),
        state if state is not None else TraversalState(),
    )
    return walker.walk(roots)


@dataclass
class DependencyNode:
    """A node in the dependency tree: one package and the edges it emitted."""

    name: str
    token: str
    status: str
    children: list[DependencyNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize node to a JSON-friendly dict."""
        return {
            "name": self.name,
            "token": self.token,
            "status": self.status,
            "children": [c.to_dict() for c in self.children],
        }


def build_dependency_tree(events: Iterable[TraversalEvent]) -> list[DependencyNode]:
    """Collect traversal events into one DependencyNode tree per expanded root."""
    roots: list[DependencyNode] = []
    path: list[DependencyNode] = []
    for event in events:
        node = DependencyNode(
            name=event.target.name,
            token=event.target.token,
            status="root" if event.is_root else event.classification.value,
        )
        if event.is_root:
            roots.append(node)
            path = [node]
            continue
        del path[event.depth :]
        path[-1].children.append(node)
        path.append(node)
    return roots
