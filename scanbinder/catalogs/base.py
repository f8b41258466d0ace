"""
Catalog adapter interface and the generic JSON adapter.

Every external catalog is reached through the same capability:

    resolve(name) -> CanonicalCardRecord | None

Catalog-specific response shapes are described by a CatalogSpec (query
URLs and params, where the result list lives, and ordered fallback paths
for each field). JsonCatalogAdapter runs one control flow for all of them.

INVARIANTS:
1. An adapter never raises on lookup failure: it logs and returns None
2. Prices are never negative; a missing price is 0
3. The record name is never empty (falls back to the queried name)
"""

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from scanbinder.models.card import CanonicalCardRecord, GameDomain
from scanbinder.models.failure import CatalogLookupError
from scanbinder.services.http_retry import request_with_retry

logger = logging.getLogger(__name__)

# A path into nested JSON: dict keys and list indexes
FieldPath = tuple[str | int, ...]

UNKNOWN_SET = "Unknown Set"


@runtime_checkable
class CatalogAdapter(Protocol):
    """Resolves a card name against one external catalog."""

    domain: GameDomain

    async def resolve(self, card_name: str) -> CanonicalCardRecord | None:
        """Return the best match, or None when not found or on failure."""
        ...


def get_path(data: Any, path: FieldPath) -> Any:
    """
    Follow a path through nested dicts and lists.

    Returns None as soon as a step is missing or of the wrong type.
    """
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def _to_price(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        price = float(value)
    elif isinstance(value, str):
        try:
            price = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(price):
        return None
    return price


def normalize_price(card: Any, paths: Sequence[FieldPath]) -> float:
    """
    First positive price along the fallback chain, else 0.

    Numeric strings are accepted ("0.25"). Zero, negative and
    unparseable values fall through to the next path.
    """
    for path in paths:
        price = _to_price(get_path(card, path))
        if price is not None and price > 0:
            return price
    return 0.0


def first_text(card: Any, paths: Sequence[FieldPath]) -> str | None:
    """First non-empty value along the paths, as a string."""
    for path in paths:
        value = get_path(card, path)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


@dataclass(frozen=True)
class CatalogQuery:
    """
    One way of searching a catalog.

    results_path points at the result list. An empty path means the
    response body is itself the single matching card.
    """

    url: str
    build_params: Callable[[str], dict[str, Any]]
    results_path: FieldPath = ()
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogSpec:
    """
    Field map describing one catalog family.

    Queries are tried in order until one returns a match.
    """

    domain: GameDomain
    queries: tuple[CatalogQuery, ...]
    name_paths: tuple[FieldPath, ...] = (("name",),)
    set_paths: tuple[FieldPath, ...] = ()
    set_default: str = UNKNOWN_SET
    price_paths: tuple[FieldPath, ...] = ()
    image_paths: tuple[FieldPath, ...] = ()
    image_builder: Callable[[dict[str, Any]], str | None] | None = None
    rarity_paths: tuple[FieldPath, ...] = ()
    rarity_default: str | None = None
    number_paths: tuple[FieldPath, ...] = ()

    def to_record(self, card: dict[str, Any], queried_name: str) -> CanonicalCardRecord:
        """Normalize one catalog result into a canonical record."""
        if self.image_builder is not None:
            image_url = self.image_builder(card) or ""
        else:
            image_url = first_text(card, self.image_paths) or ""

        return CanonicalCardRecord(
            name=first_text(card, self.name_paths) or queried_name,
            set_name=first_text(card, self.set_paths) or self.set_default,
            price=normalize_price(card, self.price_paths),
            image_url=image_url,
            domain=self.domain,
            rarity=first_text(card, self.rarity_paths) or self.rarity_default,
            card_number=first_text(card, self.number_paths),
        )


class JsonCatalogAdapter:
    """
    Catalog adapter driven by a CatalogSpec.

    Pass an httpx.AsyncClient to share connections; otherwise a client is
    created per lookup.
    """

    def __init__(
        self,
        spec: CatalogSpec,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        retries: int = 1,
        backoff: float = 0.5,
    ) -> None:
        self.spec = spec
        self.domain = spec.domain
        self._client = client
        self._timeout = timeout
        self._retries = retries
        self._backoff = backoff

    def __repr__(self) -> str:
        return f"<JsonCatalogAdapter(domain={self.domain.value})>"

    async def resolve(self, card_name: str) -> CanonicalCardRecord | None:
        """
        Look up a card name, trying each configured query in order.

        Returns None when no query finds a match. Failures are logged and
        treated as not found.
        """
        name = card_name.strip()
        if not name:
            return None

        if self._client is not None:
            return await self._resolve_with(self._client, name)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._resolve_with(client, name)

    async def _resolve_with(
        self, client: httpx.AsyncClient, name: str
    ) -> CanonicalCardRecord | None:
        for query in self.spec.queries:
            try:
                record = await self._run_query(client, query, name)
            except CatalogLookupError as e:
                logger.warning("%s (%s)", e.message, e.detail)
                continue
            if record is not None:
                logger.info("Resolved '%s' via %s catalog", name, self.domain.value)
                return record

        logger.info("No %s catalog match for '%s'", self.domain.value, name)
        return None

    async def _run_query(
        self, client: httpx.AsyncClient, query: CatalogQuery, name: str
    ) -> CanonicalCardRecord | None:
        """
        Run one query and normalize the first result.

        Returns None on an empty result list.

        Raises:
            CatalogLookupError: On network failure, non-2xx status, invalid
                JSON or an unexpected response shape
        """
        domain = self.domain.value
        try:
            response = await request_with_retry(
                client,
                "GET",
                query.url,
                retries=self._retries,
                backoff=self._backoff,
                params=query.build_params(name),
                headers=dict(query.headers),
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise CatalogLookupError(
                domain, name, f"HTTP {e.response.status_code} from {query.url}"
            ) from e
        except httpx.RequestError as e:
            raise CatalogLookupError(domain, name, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise CatalogLookupError(domain, name, "invalid JSON") from e

        results = get_path(data, query.results_path) if query.results_path else data
        if results is None:
            return None
        if isinstance(results, list):
            if not results:
                return None
            card = results[0]
        else:
            card = results

        if not isinstance(card, dict):
            raise CatalogLookupError(domain, name, f"unexpected result type {type(card).__name__}")

        try:
            return self.spec.to_record(card, name)
        except (TypeError, ValueError) as e:
            raise CatalogLookupError(domain, name, f"could not normalize result: {e}") from e
