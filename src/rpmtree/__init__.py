"""rpmtree: resolve and visualize RPM package dependency graphs (library, TUI, CLI)."""

from importlib.metadata import version, PackageNotFoundError

from rpmtree.api import (
    build_tree,
    render_dot,
    render_tree,
    walk,
)

__all__ = [
    "build_tree",
    "render_dot",
    "render_tree",
    "walk",
    "__version__",
]

try:
    __version__ = version("rpmtree")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package
