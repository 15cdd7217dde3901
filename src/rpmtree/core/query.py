"""Query package data from the live rpm database or from urpmi media (urpmq)."""

from __future__ import annotations

import logging
import os
import subprocess

from rpmtree.core.errors import QueryError

logger = logging.getLogger(__name__)

# Messages meaning "nothing found": a normal outcome, not a failure.
_NOT_FOUND_MARKERS = (
    "no package provides",
    "no package requires",
    "is not installed",
    "no package named",
    "unknown package",
    "no package found",
)

_NAME_FORMAT = "%{NAME}\\n"


def _unique_lines(text: str) -> list[str]:
    """Split command output into stripped, non-empty lines, keeping first occurrences."""
    return list(dict.fromkeys(line.strip() for line in text.splitlines() if line.strip()))


def run_query(command: list[str]) -> list[str]:
    """
    Run one query command and return its output lines.

    Returns an empty list when the command reports that nothing matched.
    Raises QueryError if the binary is missing or the command fails for
    any other reason.
    """
    logger.debug("running %s", " ".join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except OSError as e:
        raise QueryError(command, stderr=str(e)) from e
    if result.returncode == 0:
        return _unique_lines(result.stdout)
    message = f"{result.stdout}\n{result.stderr}".lower()
    if any(marker in message for marker in _NOT_FOUND_MARKERS):
        logger.debug("nothing found for %s", " ".join(command))
        return []
    raise QueryError(command, result.returncode, result.stderr)


class PackageSource:
    """
    The package-data queries the traversal needs.

    Subclasses shell out to a package manager. Every method returns a list
    in the order the tool reports it; an empty list means nothing matched.
    """

    name = "abstract"
    # True when reverse adjacency must be computed as provides -> whatrequires.
    reverse_via_provides = False
    supports_reverse_build_requires = True

    def exists(self, package: str) -> bool:
        raise NotImplementedError

    def list_requires(self, package: str, build_requires: bool = False) -> list[str]:
        raise NotImplementedError

    def list_whatrequires(self, capability: str, build_requires: bool = False) -> list[str]:
        raise NotImplementedError

    def list_provides(self, package: str) -> list[str]:
        raise NotImplementedError

    def whatprovides(self, token: str) -> list[str]:
        raise NotImplementedError


class UrpmiSource(PackageSource):
    """Repository metadata of the configured urpmi media, queried with urpmq."""

    name = "urpmi"

    def __init__(self, urpmq: str | None = None) -> None:
        self.urpmq = urpmq or os.environ.get("RPMTREE_URPMQ", "urpmq")

    def _query(self, *args: str, build_requires: bool = False) -> list[str]:
        command = [self.urpmq]
        if build_requires:
            command.append("--src")
        command.extend(args)
        return run_query(command)

    def exists(self, package: str) -> bool:
        return bool(self._query(package))

    def list_requires(self, package: str, build_requires: bool = False) -> list[str]:
        return self._query("--requires", package, build_requires=build_requires)

    def list_whatrequires(self, capability: str, build_requires: bool = False) -> list[str]:
        return self._query("--whatrequires", capability, build_requires=build_requires)

    def list_provides(self, package: str) -> list[str]:
        return self._query("--provides", package)

    def whatprovides(self, token: str) -> list[str]:
        return self._query("--whatprovides", token)


class RpmDatabaseSource(PackageSource):
    """
    The rpm database of the running system.

    Build requirements only exist in source packages, so those are read from
    the source media through urpmq. Reverse adjacency is computed from what a
    package provides; rpm has no reverse build-requires relation.
    """

    name = "rpm"
    reverse_via_provides = True
    supports_reverse_build_requires = False

    def __init__(self, rpm: str | None = None, urpmq: str | None = None) -> None:
        self.rpm = rpm or os.environ.get("RPMTREE_RPM", "rpm")
        self._media = UrpmiSource(urpmq)

    def _query(self, *args: str) -> list[str]:
        return run_query([self.rpm, "-q", *args])

    def exists(self, package: str) -> bool:
        return bool(self._query("--qf", _NAME_FORMAT, package))

    def list_requires(self, package: str, build_requires: bool = False) -> list[str]:
        if build_requires:
            return self._media.list_requires(package, build_requires=True)
        return self._query("--requires", package)

    def list_whatrequires(self, capability: str, build_requires: bool = False) -> list[str]:
        return self._query("--qf", _NAME_FORMAT, "--whatrequires", capability)

    def list_provides(self, package: str) -> list[str]:
        return self._query("--provides", package)

    def whatprovides(self, token: str) -> list[str]:
        return self._query("--qf", _NAME_FORMAT, "--whatprovides", token)


def open_source(urpmi_db: bool = False) -> PackageSource:
    """Select the package-data source once, at startup."""
    return UrpmiSource() if urpmi_db else RpmDatabaseSource()
