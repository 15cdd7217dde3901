"""Parse raw dependency tokens as reported by rpm and urpmq."""

from __future__ import annotations

import re
from dataclasses import dataclass

from rpmtree.core.errors import MalformedTokenError

# Capabilities in this namespace describe rpm itself, never a package.
INTERNAL_PREFIXES = ("rpmlib(",)

# "name[>= 1.0]" (urpmq) or "name >= 1.0" (rpm): the constraint starts at the
# first bracket, or at whitespace followed by a comparison operator.
_CONSTRAINT_START = re.compile(r"\[|\s+[<>=!]")


@dataclass(frozen=True)
class ParsedToken:
    """A dependency token split into its parts."""

    name: str
    constraint: str
    alternatives: tuple[str, ...]


def _split_constraint(text: str) -> tuple[str, str]:
    match = _CONSTRAINT_START.search(text)
    if match is None:
        return text.strip(), ""
    return text[: match.start()].strip(), text[match.start() :].strip()


def parse_token(token: str) -> ParsedToken:
    """
    Split a raw dependency token into base name, version constraint and alternatives.

    "pkgA|pkgB[>= 2]" gives alternatives ("pkgA", "pkgB") and name "pkgA": the
    first alternative is always the one used. The constraint is kept only for
    display; it plays no part in resolution.

    Raises MalformedTokenError (a ValueError) when no package name is found.
    """
    text = token.strip()
    if not text:
        raise MalformedTokenError(token)
    alternatives: list[str] = []
    constraint = ""
    for i, part in enumerate(text.split("|")):
        name, part_constraint = _split_constraint(part)
        if not name:
            continue
        if i == 0:
            constraint = part_constraint
        alternatives.append(name)
    if not alternatives:
        raise MalformedTokenError(token)
    return ParsedToken(name=alternatives[0], constraint=constraint, alternatives=tuple(alternatives))


def is_internal(name: str) -> bool:
    """True if name lives in rpm's reserved namespace (e.g. rpmlib(PayloadIsXz))."""
    return name.startswith(INTERNAL_PREFIXES)
