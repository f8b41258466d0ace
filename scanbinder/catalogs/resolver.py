"""
Catalog Resolver.

Dispatches a candidate name to the right catalog adapter.

Dispatch policies:
- Explicit domain: query only that domain's adapter
- Auto: classify the name, query only the classified adapter
  (optionally falling back to exhaustive on a miss, see auto_fallback)
- Exhaustive: try every adapter in EXHAUSTIVE_ORDER, first match wins

The resolver never inspects catalog response shapes; that is the
adapters' concern.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum

from scanbinder.catalogs.base import CatalogAdapter
from scanbinder.models.card import (
    EXHAUSTIVE_ORDER,
    CanonicalCardRecord,
    GameDomain,
    parse_game_domain,
)
from scanbinder.services.game_classifier import classify_game

logger = logging.getLogger(__name__)


class LookupMode(str, Enum):
    """Dispatch policies that do not name a single domain."""

    AUTO = "auto"
    EXHAUSTIVE = "exhaustive"


LookupTarget = GameDomain | LookupMode

_MODE_ALIASES: dict[str, LookupMode] = {
    "": LookupMode.AUTO,
    "auto": LookupMode.AUTO,
    "exhaustive": LookupMode.EXHAUSTIVE,
    "all": LookupMode.EXHAUSTIVE,
}


def parse_lookup_target(value: str | None) -> LookupTarget:
    """
    Parse a user-supplied domain or mode.

    None and "auto" mean classify-then-lookup; "all"/"exhaustive" mean
    try every catalog; anything else must name a domain.

    Raises:
        ValueError: If the value is neither a mode nor a domain
    """
    if value is None:
        return LookupMode.AUTO
    key = value.strip().lower()
    if key in _MODE_ALIASES:
        return _MODE_ALIASES[key]
    return parse_game_domain(key)


class CatalogResolver:
    """Resolves candidate names to canonical card records."""

    def __init__(
        self,
        adapters: Mapping[GameDomain, CatalogAdapter],
        *,
        auto_fallback: bool = False,
        classifier: Callable[[str], GameDomain] = classify_game,
    ) -> None:
        """
        Args:
            adapters: One adapter per domain
            auto_fallback: If True, an auto lookup that misses its
                classified catalog goes on to the exhaustive search
            classifier: Name -> domain guess used by the auto policy
        """
        missing = [d.value for d in EXHAUSTIVE_ORDER if d not in adapters]
        if missing:
            raise ValueError(f"Missing catalog adapters for: {missing}")

        self._adapters = dict(adapters)
        self._auto_fallback = auto_fallback
        self._classifier = classifier

    async def resolve(self, card_name: str, domain: GameDomain) -> CanonicalCardRecord | None:
        """Query only the given domain's adapter."""
        return await self._adapters[domain].resolve(card_name)

    async def resolve_auto(self, card_name: str) -> CanonicalCardRecord | None:
        """
        Classify the name and query only that domain's adapter.

        With auto_fallback enabled, a miss continues with resolve_exhaustive.
        """
        domain = self._classifier(card_name)
        logger.debug("Classified '%s' as %s", card_name, domain.value)

        record = await self.resolve(card_name, domain)
        if record is None and self._auto_fallback:
            logger.info("No %s match for '%s', trying all catalogs", domain.value, card_name)
            return await self.resolve_exhaustive(card_name)
        return record

    async def resolve_exhaustive(self, card_name: str) -> CanonicalCardRecord | None:
        """Try every adapter in fixed order, returning the first match."""
        for domain in EXHAUSTIVE_ORDER:
            record = await self._adapters[domain].resolve(card_name)
            if record is not None:
                return record
        return None

    async def lookup(
        self, card_name: str, target: LookupTarget = LookupMode.AUTO
    ) -> CanonicalCardRecord | None:
        """Resolve one name with the given domain or dispatch mode."""
        if target is LookupMode.AUTO:
            return await self.resolve_auto(card_name)
        if target is LookupMode.EXHAUSTIVE:
            return await self.resolve_exhaustive(card_name)
        return await self.resolve(card_name, target)

    async def resolve_many(
        self, card_names: Sequence[str], target: LookupTarget = LookupMode.AUTO
    ) -> list[CanonicalCardRecord | None]:
        """
        Resolve candidates concurrently.

        Results line up with card_names. A failure for one candidate is
        logged and reported as None without cancelling the others.
        """
        results = await asyncio.gather(
            *(self.lookup(name, target) for name in card_names),
            return_exceptions=True,
        )

        records: list[CanonicalCardRecord | None] = []
        for name, result in zip(card_names, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Lookup for '%s' failed: %s", name, result)
                records.append(None)
            else:
                records.append(result)
        return records
