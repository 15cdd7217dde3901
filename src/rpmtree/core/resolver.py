"""Resolve raw dependency tokens to the packages that provide them."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rpmtree.core.parser import is_internal, parse_token
from rpmtree.core.query import PackageSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    """A dependency token and the package providing it (None when broken)."""

    token: str
    provider: str | None

    @property
    def broken(self) -> bool:
        return self.provider is None

    @property
    def name(self) -> str:
        """Provider name, or the bare token name when nothing provides it."""
        if self.provider is not None:
            return self.provider
        return parse_token(self.token).name


class Resolver:
    """
    Memoizing token -> Dependency resolution for one run.

    Identical tokens are resolved with a single whatprovides query. The
    cache is never invalidated: repository state is assumed not to change
    while a run is in progress.
    """

    def __init__(self, source: PackageSource) -> None:
        self.source = source
        self._cache: dict[str, Dependency | None] = {}
        self.hits = 0
        self.misses = 0

    def resolve(self, token: str) -> Dependency | None:
        """
        Return the Dependency for token, or None if it is an rpm-internal one.

        A token nothing provides still yields a Dependency, with provider None.
        """
        if token in self._cache:
            self.hits += 1
            return self._cache[token]
        self.misses += 1
        dependency = self._resolve(token)
        self._cache[token] = dependency
        return dependency

    def _resolve(self, token: str) -> Dependency | None:
        parsed = parse_token(token)
        if is_internal(parsed.name):
            logger.debug("discarding internal dependency %s", token)
            return None
        providers = self.source.whatprovides(parsed.name)
        if not providers:
            logger.debug("nothing provides %s", token)
            return Dependency(token=token, provider=None)
        provider = providers[0]
        if is_internal(provider):
            return None
        if len(providers) > 1:
            logger.debug("%s provided by %s; using %s", token, ", ".join(providers), provider)
        return Dependency(token=token, provider=provider)

    def cache_info(self) -> dict[str, int]:
        """Cache statistics, for diagnostics."""
        return {"hits": self.hits, "misses": self.misses, "size": len(self._cache)}
