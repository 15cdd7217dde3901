"""Textual TUI for navigating RPM package dependency trees."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, LoadingIndicator, Static, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState
from rich.markup import escape

from rpmtree.core.query import PackageSource
from rpmtree.core.tree import (
    DependencyNode,
    TraversalEvent,
    TraversalOptions,
    build_dependency_tree,
    traverse,
)

# Limits to avoid huge trees and crashes
MAX_TREE_NODES = 2000
EXPAND_DEPTH_DEFAULT = 2

# Colors by edge status
COLOR_HEADER = "bold magenta"
COLOR_ROOT = "bold cyan"
COLOR_PKG = "white"
COLOR_BROKEN = "bold red"
COLOR_CYCLIC = "yellow"
COLOR_REVISITED = "green"
COLOR_STATS = "cyan"

STATUS_COLORS = {
    "root": COLOR_ROOT,
    "fresh": COLOR_PKG,
    "broken": COLOR_BROKEN,
    "cyclic": COLOR_CYCLIC,
    "revisited": COLOR_REVISITED,
}

STATUS_HELP = {
    "root": "root package",
    "fresh": "expanded here",
    "broken": "nothing provides this dependency",
    "cyclic": "already on the current path (cycle)",
    "revisited": "already expanded elsewhere in the tree",
}


def _count_nodes(node: Any) -> int:
    """Count nodes in tree (for cap)."""
    n = 1
    for c in getattr(node, "children", []):
        n += _count_nodes(c)
    return n


def _node_stats(node: Any) -> tuple[int, int, int]:
    """Return (direct_children, total_descendants, max_depth) for a node."""
    children = getattr(node, "children", []) or []
    direct = len(children)
    total = 0
    max_d = 0
    for c in children:
        sub_direct, sub_total, sub_depth = _node_stats(c)
        total += 1 + sub_total
        max_d = max(max_d, 1 + sub_depth)
    return direct, total, max_d


def _node_label(node: DependencyNode) -> str:
    """Markup label for a tree node, colored by status."""
    color = STATUS_COLORS.get(node.status, COLOR_PKG)
    if node.status == "broken":
        return f"[{color}]{escape(node.token)} (broken)[/]"
    if node.status in ("cyclic", "revisited"):
        return f"[{color}]{escape(node.name)}…[/]"
    return f"[{color}]{escape(node.name)}[/]"


def _populate_textual_tree(
    tn: TreeNode,
    node: DependencyNode,
    *,
    max_nodes: int = MAX_TREE_NODES,
    node_count: list[int] | None = None,
) -> None:
    """Recursively add DependencyNode children; cap total nodes."""
    if node_count is None:
        node_count = [0]
    for child in node.children:
        if node_count[0] >= max_nodes:
            tn.add_leaf(f"[dim]… truncated ({max_nodes} nodes max)[/]")
            return
        node_count[0] += 1
        if child.children:
            child_tn = tn.add(_node_label(child), expand=False)
            _populate_textual_tree(child_tn, child, max_nodes=max_nodes, node_count=node_count)
        else:
            child_tn = tn.add_leaf(_node_label(child))
        child_tn.data = child


def _expand_to_depth(tn: TreeNode, depth: int, current: int = 0) -> None:
    """Expand tree nodes up to given depth (0 = root only)."""
    if current >= depth:
        return
    tn.expand()
    for child in tn.children:
        _expand_to_depth(child, depth, current + 1)


class SearchScreen(ModalScreen[str | None]):
    """Modal to search for packages in the tree. Keyboard-only."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    SearchScreen {
        align: center middle;
        padding: 2 4;
    }
    SearchScreen #search_title {
        text-align: center;
        padding-bottom: 1;
    }
    SearchScreen #search_input {
        width: 60;
        margin: 1 0;
    }
    SearchScreen #search_hint {
        text-align: center;
        padding-top: 1;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(
                "[bold cyan]Search[/]\n\nType a package name or part of one.",
                id="search_title",
                markup=True,
            )
            yield Input(placeholder="package name...", id="search_input")
            yield Static(
                "[dim]Enter[/] = Search  ·  [dim]Escape[/] = Cancel\n"
                "[dim]After search: [bold]n[/bold] = next match, [bold]N[/bold] = previous[/]",
                id="search_hint",
                markup=True,
            )

    def on_mount(self) -> None:
        self.query_one("#search_input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        value = event.value.strip()
        self.dismiss(value if value else None)

    def action_cancel(self) -> None:
        self.dismiss(None)


class DepTreeApp(App[None]):
    """Terminal UI to explore the dependency forest of RPM packages."""

    TITLE = "rpmtree"
    BINDINGS = [
        Binding("/", "search", "Search"),
        Binding("n", "next_match", "Next match", show=False),
        Binding("N", "prev_match", "Prev match", show=False),
        Binding("d", "toggle_details", "Details"),
        Binding("e", "expand_all", "Expand all"),
        Binding("c", "collapse_all", "Collapse"),
        Binding("r", "refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
    ]

    DEFAULT_CSS = """
    #loading {
        height: 3;
        display: none;
    }
    #loading.loading {
        display: block;
    }
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def __init__(
        self,
        packages: list[str],
        *,
        source: PackageSource,
        options: TraversalOptions,
        events: Iterator[TraversalEvent] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        # Already validated by the caller; consumed by the first load only.
        self._pending_events = events
        self._packages = packages
        self._source = source
        self._options = options
        self._forest: list[DependencyNode] = []
        self._search_matches: list[TreeNode] = []
        self._search_index: int = 0
        self._details_visible: bool = True

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="loading"):
            yield LoadingIndicator()
        yield Tree("Dependencies", id="dep_tree")
        yield Static(
            "[dim]↑/↓[/] move  ·  [dim]Enter[/]/[dim]Space[/] select  ·  [dim]/[/] search",
            id="details",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = ("Reverse dependencies" if self._options.reverse else "Dependencies") + (
            " (build)" if self._options.build_requires else ""
        )
        self._start_load()

    def _start_load(self) -> None:
        """Query the package source in a background thread."""
        self.query_one("#loading").add_class("loading")
        self._set_details("[dim]Querying package dependencies...[/]")
        self.run_worker(self._load_worker, thread=True)

    def _load_worker(self) -> list[DependencyNode]:
        events = self._pending_events
        self._pending_events = None
        if events is None:
            events = traverse(self._packages, self._source, self._options)
        return build_dependency_tree(events)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Handle worker completion."""
        if event.state == WorkerState.SUCCESS:
            self.query_one("#loading").remove_class("loading")
            self._forest = event.worker.result
            self._show_forest()
        elif event.state == WorkerState.ERROR:
            self.query_one("#loading").remove_class("loading")
            self._set_details(f"[red]Error: {escape(str(event.worker.error))}[/]")

    def _clear_tree(self, tree: Tree) -> None:
        while tree.root.children:
            tree.root.children[0].remove()

    def _show_forest(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        tree.root.label = f"[{COLOR_HEADER}]{escape(', '.join(self._packages))}[/]"
        node_count = [0]
        for root in self._forest:
            root_tn = tree.root.add(_node_label(root), expand=True)
            root_tn.data = root
            _populate_textual_tree(root_tn, root, node_count=node_count)
        _expand_to_depth(tree.root, EXPAND_DEPTH_DEFAULT)
        total = sum(_count_nodes(root) for root in self._forest)
        self._set_details(
            f"[{COLOR_HEADER}]Dependency forest[/]\n\n"
            f"Roots: [{COLOR_STATS}]{len(self._forest)}[/]  ·  "
            f"Nodes: [{COLOR_STATS}]{total}[/]\n\n"
            f"[{COLOR_BROKEN}]broken[/]  ·  [{COLOR_CYCLIC}]cycle…[/]  ·  "
            f"[{COLOR_REVISITED}]already shown…[/]"
        )
        tree.focus()

    def _format_node(self, node: DependencyNode) -> str:
        direct, total_desc, max_depth = _node_stats(node)
        lines = [
            f"[{COLOR_HEADER}]Package[/]",
            f"  {_node_label(node)}",
            "",
            f"[{COLOR_HEADER}]Status[/]",
            f"  {STATUS_HELP.get(node.status, node.status)}",
        ]
        if node.token != node.name:
            lines += ["", f"[{COLOR_HEADER}]Required as[/]", f"  {escape(node.token)}"]
        lines += [
            "",
            f"[{COLOR_HEADER}]Stats[/]",
            f"  Direct dependencies:   [{COLOR_STATS}]{direct}[/]",
            f"  Total descendants:     [{COLOR_STATS}]{total_desc}[/]",
            f"  Max depth from here:   [{COLOR_STATS}]{max_depth}[/] [dim]levels[/]",
        ]
        return "\n".join(lines)

    def _set_details(self, text: str) -> None:
        self.query_one("#details", Static).update(text)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        node = event.node.data
        if isinstance(node, DependencyNode):
            self._set_details(self._format_node(node))

    def action_refresh(self) -> None:
        self._search_matches = []
        self._start_load()

    def action_expand_all(self) -> None:
        self.query_one("#dep_tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()

    def action_search(self) -> None:
        """Open search modal."""
        self.push_screen(SearchScreen(), self._on_search_done)

    def _on_search_done(self, query: str | None) -> None:
        if not query:
            return
        self._search_matches = []
        self._search_index = 0
        tree = self.query_one("#dep_tree", Tree)
        self._collect_matches(tree.root, query.lower())
        if not self._search_matches:
            self.notify(f"No matches for '{query}'", severity="warning", timeout=2)
            return
        self.notify(
            f"Found {len(self._search_matches)} match(es) for '{query}'",
            severity="information",
            timeout=2,
        )
        self._goto_match(0)

    def _collect_matches(self, node: TreeNode, query: str) -> None:
        """Recursively collect nodes whose package name matches the query."""
        data = node.data
        if isinstance(data, DependencyNode) and (
            query in data.name.lower() or query in data.token.lower()
        ):
            self._search_matches.append(node)
        for child in node.children:
            self._collect_matches(child, query)

    def _goto_match(self, index: int) -> None:
        """Navigate to and select a specific match."""
        if not self._search_matches:
            return
        self._search_index = index % len(self._search_matches)
        match_node = self._search_matches[self._search_index]
        parent = match_node.parent
        while parent is not None:
            parent.expand()
            parent = parent.parent
        tree = self.query_one("#dep_tree", Tree)
        tree.select_node(match_node)
        tree.scroll_to_node(match_node)
        self.notify(
            f"Match {self._search_index + 1}/{len(self._search_matches)}",
            severity="information",
            timeout=2,
        )

    def action_next_match(self) -> None:
        """Go to next search match."""
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index + 1)

    def action_prev_match(self) -> None:
        """Go to previous search match."""
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index - 1)

    def action_toggle_details(self) -> None:
        """Toggle visibility of the details panel."""
        self._details_visible = not self._details_visible
        details = self.query_one("#details", Static)
        details.styles.display = "block" if self._details_visible else "none"
