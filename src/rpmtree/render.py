"""Render traversal events as an indented tree, a DOT graph or a Mermaid graph."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from rich.console import Console
from rich.markup import escape

from rpmtree.core.tree import Classification, TraversalEvent

STYLE_ROOT = "bold"
STYLE_BROKEN = "bold red"
STYLE_CYCLIC = "yellow"
STYLE_REVISITED = "green"

BRANCH = "├─ "
CORNER = "└─ "
PIPE = "│  "
BLANK = "   "


def _tree_label(event: TraversalEvent) -> str:
    if event.is_root:
        return f"[{STYLE_ROOT}]{escape(event.target.name)}[/]"
    if event.classification is Classification.BROKEN:
        return f"[{STYLE_BROKEN}]{escape(event.target.token)} (broken)[/]"
    if event.classification is Classification.CYCLIC:
        return f"[{STYLE_CYCLIC}]{escape(event.target.name)}...[/]"
    if event.classification is Classification.REVISITED:
        return f"[{STYLE_REVISITED}]{escape(event.target.name)}...[/]"
    return escape(event.target.name)


def tree_lines(events: Iterable[TraversalEvent]) -> Iterator[str]:
    """Yield one rich-markup line per event, with branch-drawing prefixes."""
    lasts: list[bool] = []
    for event in events:
        if event.is_root:
            lasts = []
            yield _tree_label(event)
            continue
        del lasts[event.depth - 1 :]
        prefix = "".join(BLANK if last else PIPE for last in lasts)
        connector = CORNER if event.is_last else BRANCH
        lasts.append(event.is_last)
        yield prefix + connector + _tree_label(event)


def print_tree(events: Iterable[TraversalEvent], console: Console | None = None) -> None:
    """Print the tree as events arrive. Styles are dropped when not on a terminal."""
    console = console or Console(highlight=False)
    for line in tree_lines(events):
        console.print(line, highlight=False, soft_wrap=True)


def _quote(name: str) -> str:
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


def dot_lines(
    events: Iterable[TraversalEvent],
    *,
    reverse: bool = False,
    name: str = "dependencies",
) -> Iterator[str]:
    """
    Yield a Graphviz digraph: one statement per edge, one red node per broken dependency.

    With reverse, edges point from the dependent package to the package it
    requires, as they do in forward mode.
    """
    yield f"digraph {_quote(name)} {{"
    yield "    rankdir=LR;"
    yield '    node [shape=box, style=rounded, fontname="sans-serif"];'
    broken: set[str] = set()
    for event in events:
        target = event.target.name
        if event.is_root:
            yield f'    {_quote(target)} [style="rounded,filled", fillcolor=lightblue];'
            continue
        if event.classification is Classification.BROKEN:
            target = event.target.token
            if target not in broken:
                broken.add(target)
                yield f"    {_quote(target)} [color=red, fontcolor=red];"
        tail, head = (target, event.source) if reverse else (event.source, target)
        yield f"    {_quote(tail)} -> {_quote(head)};"
    yield "}"


def _mermaid_id(name: str) -> str:
    """Convert a package name to a valid Mermaid node ID."""
    return "".join(c if c.isalnum() else "_" for c in name)


class _MermaidIds:
    """Stable, unique Mermaid IDs: names sanitizing to the same ID get a numeric suffix."""

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}
        self._taken: set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name in self._ids

    def get(self, name: str) -> str:
        if name in self._ids:
            return self._ids[name]
        base = node_id = _mermaid_id(name)
        n = 2
        while node_id in self._taken:
            node_id = f"{base}_{n}"
            n += 1
        self._ids[name] = node_id
        self._taken.add(node_id)
        return node_id


def mermaid_lines(events: Iterable[TraversalEvent], *, reverse: bool = False) -> Iterator[str]:
    """Yield a Mermaid flowchart with the same nodes and edges as dot_lines."""
    yield "graph LR"
    ids = _MermaidIds()

    def node(name: str) -> str:
        if name in ids:
            return ids.get(name)
        label = name.replace('"', "#quot;")
        return f'{ids.get(name)}["{label}"]'

    for event in events:
        target = event.target.name
        if event.is_root:
            yield f"    {node(target)}"
            yield f"    style {ids.get(target)} fill:lightblue"
            continue
        if event.classification is Classification.BROKEN:
            target = event.target.token
            first = target not in ids
            tail, head = (target, event.source) if reverse else (event.source, target)
            yield f"    {node(tail)} --> {node(head)}"
            if first:
                yield f"    style {ids.get(target)} stroke:red,color:red"
            continue
        tail, head = (target, event.source) if reverse else (event.source, target)
        yield f"    {node(tail)} --> {node(head)}"
