"""Errors raised by rpmtree. Broken dependencies are data, not errors."""

from __future__ import annotations


class RpmTreeError(Exception):
    """Base class for fatal rpmtree errors."""


class UnknownPackageError(RpmTreeError):
    """A root package does not exist in the selected data source."""

    def __init__(self, package: str) -> None:
        super().__init__(f"Package not found: {package}")
        self.package = package


class InvalidModeError(RpmTreeError):
    """Unsupported combination of reverse / build-requires / data source."""


class QueryError(RpmTreeError):
    """An external query command failed (missing binary, unexpected exit, bad output)."""

    def __init__(self, command: list[str], returncode: int | None = None, stderr: str = "") -> None:
        cmd = " ".join(command)
        if returncode is None:
            message = f"could not run '{cmd}': {stderr}" if stderr else f"could not run '{cmd}'"
        else:
            message = f"'{cmd}' failed with exit code {returncode}"
            if stderr.strip():
                message += f": {stderr.strip()}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class MalformedTokenError(RpmTreeError, ValueError):
    """A query tool reported a dependency line with no package name in it."""

    def __init__(self, token: str) -> None:
        super().__init__(f"malformed dependency token: {token!r}")
        self.token = token
