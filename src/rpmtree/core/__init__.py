"""Core library: token parsing, package queries, resolution and graph traversal."""

from rpmtree.core.errors import (
    InvalidModeError,
    MalformedTokenError,
    QueryError,
    RpmTreeError,
    UnknownPackageError,
)
from rpmtree.core.parser import ParsedToken, is_internal, parse_token
from rpmtree.core.query import PackageSource, RpmDatabaseSource, UrpmiSource, open_source
from rpmtree.core.resolver import Dependency, Resolver
from rpmtree.core.tree import (
    Classification,
    DependencyNode,
    IgnoreSet,
    TraversalEvent,
    TraversalOptions,
    TraversalState,
    build_dependency_tree,
    traverse,
)

__all__ = [
    "InvalidModeError",
    "MalformedTokenError",
    "QueryError",
    "RpmTreeError",
    "UnknownPackageError",
    "ParsedToken",
    "is_internal",
    "parse_token",
    "PackageSource",
    "RpmDatabaseSource",
    "UrpmiSource",
    "open_source",
    "Dependency",
    "Resolver",
    "Classification",
    "DependencyNode",
    "IgnoreSet",
    "TraversalEvent",
    "TraversalOptions",
    "TraversalState",
    "build_dependency_tree",
    "traverse",
]
