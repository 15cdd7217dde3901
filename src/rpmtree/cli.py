"""Command-line interface for rpmtree: dependency trees and graphs of RPM packages."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path

from rich.console import Console

from rpmtree.core.errors import RpmTreeError
from rpmtree.core.query import open_source
from rpmtree.core.tree import (
    IgnoreSet,
    TraversalEvent,
    TraversalOptions,
    build_dependency_tree,
    traverse,
)
from rpmtree.render import dot_lines, mermaid_lines, print_tree


def _split_ignore(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma-separated --ignore values."""
    names: list[str] = []
    for value in values or []:
        names.extend(n.strip() for n in value.split(",") if n.strip())
    return names


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {n}")
    return n


def _options(args: argparse.Namespace) -> TraversalOptions:
    return TraversalOptions(
        reverse=args.reverse,
        max_depth=args.max_depth,
        build_requires=args.build_requires,
        ignore=IgnoreSet.from_names(_split_ignore(args.ignore), defaults=not args.all),
    )


def _events(args: argparse.Namespace) -> Iterator[TraversalEvent]:
    """Validate arguments against the selected source and start the traversal."""
    source = open_source(urpmi_db=args.urpmi_db)
    return traverse(args.packages, source, _options(args))


def cmd_tree(args: argparse.Namespace) -> int:
    """Show the dependency tree of one or more packages."""
    events = _events(args)
    if args.json:
        trees = build_dependency_tree(events)
        print(json.dumps([t.to_dict() for t in trees], indent=2))
        return 0
    console = Console(force_terminal=True if args.color else None, highlight=False)
    print_tree(events, console)
    return 0


def _graph_lines(events: Iterable[TraversalEvent], args: argparse.Namespace) -> Iterator[str]:
    if args.format == "mermaid":
        return mermaid_lines(events, reverse=args.reverse)
    return dot_lines(events, reverse=args.reverse)


def cmd_dot(args: argparse.Namespace) -> int:
    """Write the dependency graph in DOT (Graphviz) or Mermaid format."""
    lines = _graph_lines(_events(args), args)
    if args.output:
        out_path = Path(args.output)
        with open(out_path, "w") as f:
            for line in lines:
                f.write(line + "\n")
        print(f"Graph written to: {out_path}", file=sys.stderr)
    else:
        for line in lines:
            print(line)
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from rpmtree.tui.app import DepTreeApp

    source = open_source(urpmi_db=args.urpmi_db)
    options = _options(args)
    # Fail before the screen is taken over.
    events = traverse(args.packages, source, options)
    app = DepTreeApp(args.packages, source=source, options=options, events=events)
    app.run()
    return 0


def _add_traversal_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "packages",
        nargs="+",
        metavar="package",
        help="Root package(s), expanded in the order given",
    )
    parser.add_argument(
        "--urpmi-db",
        action="store_true",
        help="Query urpmi media (urpmq) instead of the installed rpm database",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Do not hide base-system packages (glibc, bash, systemd, ...)",
    )
    parser.add_argument(
        "-r",
        "--reverse",
        action="store_true",
        help="Show what requires the package(s) instead of what they require",
    )
    parser.add_argument(
        "-b",
        "--build-requires",
        action="store_true",
        help="Follow build requirements of source packages",
    )
    parser.add_argument(
        "-d",
        "--max-depth",
        type=_positive_int,
        default=None,
        metavar="N",
        help="Maximum depth (default: unlimited)",
    )
    parser.add_argument(
        "-i",
        "--ignore",
        action="append",
        metavar="PKG",
        help="Package name or shell pattern to hide (repeatable, comma-separated)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the rpmtree CLI."""
    parser = argparse.ArgumentParser(
        prog="rpmtree",
        description="Explore RPM package dependencies from the command line.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every package query to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # rpmtree tree
    tree_parser = subparsers.add_parser(
        "tree",
        help="Show dependency tree for packages",
        description="Display the dependency tree of RPM packages, marking cycles and broken dependencies.",
    )
    _add_traversal_arguments(tree_parser)
    tree_parser.add_argument(
        "--color",
        action="store_true",
        help="Force colored output even when not writing to a terminal",
    )
    tree_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    tree_parser.set_defaults(func=cmd_tree)

    # rpmtree dot
    dot_parser = subparsers.add_parser(
        "dot",
        help="Generate a dependency graph (DOT/Mermaid format)",
        description="Generate a dependency graph for Graphviz or Mermaid.",
    )
    _add_traversal_arguments(dot_parser)
    dot_parser.add_argument(
        "-f",
        "--format",
        choices=["dot", "mermaid"],
        default="dot",
        help="Output format: dot (Graphviz) or mermaid (default: dot)",
    )
    dot_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    dot_parser.set_defaults(func=cmd_dot)

    # rpmtree tui
    tui_parser = subparsers.add_parser(
        "tui",
        help="Browse the dependency tree interactively",
        description="Start the interactive TUI for browsing package dependencies.",
    )
    _add_traversal_arguments(tui_parser)
    tui_parser.set_defaults(func=cmd_tui)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help(sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return args.func(args)
    except RpmTreeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
