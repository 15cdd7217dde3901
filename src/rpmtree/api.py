"""Public API: use rpmtree from Python or from other tools."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from rpmtree.core.query import PackageSource, open_source
from rpmtree.core.tree import (
    DependencyNode,
    IgnoreSet,
    TraversalEvent,
    TraversalOptions,
    build_dependency_tree,
    traverse,
)
from rpmtree.render import dot_lines, mermaid_lines, tree_lines


def walk(
    packages: Iterable[str],
    *,
    reverse: bool = False,
    max_depth: int | None = None,
    build_requires: bool = False,
    ignore: Iterable[str] = (),
    show_all: bool = False,
    urpmi_db: bool = False,
    source: PackageSource | None = None,
) -> Iterator[TraversalEvent]:
    """
    Walk the dependency graph of one or more packages.

    Args:
        packages: Root package names, expanded in order.
        reverse: Follow "what requires me" instead of "what I require".
        max_depth: Optional maximum depth; None = unlimited.
        build_requires: Follow build requirements of source packages.
        ignore: Extra package names or shell patterns to leave out.
        show_all: If True, do not hide the default base-system packages.
        urpmi_db: Query urpmi media with urpmq instead of the rpm database.
        source: Explicit package source (overrides urpmi_db).

    Returns:
        Lazy iterator of TraversalEvent. Unknown packages and invalid option
        combinations raise before it is returned.
    """
    options = TraversalOptions(
        reverse=reverse,
        max_depth=max_depth,
        build_requires=build_requires,
        ignore=IgnoreSet.from_names(ignore, defaults=not show_all),
    )
    return traverse(packages, source or open_source(urpmi_db), options)


def build_tree(packages: Iterable[str], **kwargs) -> list[DependencyNode]:
    """Build one DependencyNode tree per expanded root. Takes the same keywords as walk()."""
    return build_dependency_tree(walk(packages, **kwargs))


def render_tree(packages: Iterable[str], **kwargs) -> str:
    """Tree text (rich markup) for packages. Takes the same keywords as walk()."""
    return "\n".join(tree_lines(walk(packages, **kwargs)))


def render_dot(packages: Iterable[str], *, mermaid: bool = False, **kwargs) -> str:
    """Graphviz DOT (or Mermaid) text for packages. Takes the same keywords as walk()."""
    reverse = kwargs.get("reverse", False)
    events = walk(packages, **kwargs)
    lines = mermaid_lines(events, reverse=reverse) if mermaid else dot_lines(events, reverse=reverse)
    return "\n".join(lines)
