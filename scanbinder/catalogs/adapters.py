"""
Catalog field maps for the six supported card families.

Each family is a CatalogSpec; the control flow lives in JsonCatalogAdapter.

Catalogs:
- mtg: Scryfall (fuzzy named lookup, then exact-name search)
- pokemon: Pokemon TCG API (optional X-Api-Key)
- yugioh: YGOPRODeck
- baseball / basketball: Sports Card Database search
- marvel: Marvel Comics characters API (no pricing)
"""

from typing import Any

import httpx

from scanbinder.catalogs.base import CatalogAdapter, CatalogQuery, CatalogSpec, JsonCatalogAdapter
from scanbinder.config import Settings
from scanbinder.models.card import GameDomain

SCRYFALL_API_BASE = "https://api.scryfall.com"
POKEMON_TCG_API_BASE = "https://api.pokemontcg.io/v2"
YUGIOH_API_BASE = "https://db.ygoprodeck.com/api/v7"
SPORTS_CARD_API_BASE = "https://www.sportscarddatabase.com/api"
MARVEL_API_BASE = "https://gateway.marvel.com/v1/public"

USER_AGENT = "ScanBinder/1.0"


def _marvel_thumbnail(card: dict[str, Any]) -> str | None:
    """Marvel splits image URLs into path and extension."""
    thumbnail = card.get("thumbnail")
    if not isinstance(thumbnail, dict):
        return None
    path = thumbnail.get("path")
    extension = thumbnail.get("extension")
    if not path or not extension:
        return None
    return f"{path}.{extension}"


def mtg_spec() -> CatalogSpec:
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    return CatalogSpec(
        domain=GameDomain.MTG,
        queries=(
            CatalogQuery(
                url=f"{SCRYFALL_API_BASE}/cards/named",
                build_params=lambda name: {"fuzzy": name},
                headers=headers,
            ),
            CatalogQuery(
                url=f"{SCRYFALL_API_BASE}/cards/search",
                build_params=lambda name: {"q": f'name:"{name}"'},
                results_path=("data",),
                headers=headers,
            ),
        ),
        set_paths=(("set_name",),),
        price_paths=(("prices", "usd"), ("prices", "usd_foil")),
        image_paths=(
            ("image_uris", "normal"),
            ("image_uris", "small"),
            # Double-faced cards carry images per face
            ("card_faces", 0, "image_uris", "normal"),
            ("card_faces", 0, "image_uris", "small"),
        ),
        rarity_paths=(("rarity",),),
        number_paths=(("collector_number",),),
    )


def pokemon_spec(api_key: str = "") -> CatalogSpec:
    headers = {"X-Api-Key": api_key} if api_key else {}
    return CatalogSpec(
        domain=GameDomain.POKEMON,
        queries=(
            CatalogQuery(
                url=f"{POKEMON_TCG_API_BASE}/cards",
                build_params=lambda name: {"q": f'name:"{name}"', "pageSize": 1},
                results_path=("data",),
                headers=headers,
            ),
        ),
        set_paths=(("set", "name"),),
        price_paths=(
            ("cardmarket", "prices", "averageSellPrice"),
            ("cardmarket", "prices", "lowPrice"),
        ),
        image_paths=(("images", "large"), ("images", "small")),
        rarity_paths=(("rarity",),),
        number_paths=(("number",),),
    )


def yugioh_spec() -> CatalogSpec:
    return CatalogSpec(
        domain=GameDomain.YUGIOH,
        queries=(
            CatalogQuery(
                url=f"{YUGIOH_API_BASE}/cardinfo.php",
                build_params=lambda name: {"fname": name},
                results_path=("data",),
            ),
        ),
        set_paths=(("card_sets", 0, "set_name"),),
        price_paths=(
            ("card_prices", 0, "cardmarket_price"),
            ("card_prices", 0, "tcgplayer_price"),
        ),
        image_paths=(("card_images", 0, "image_url"), ("card_images", 0, "image_url_small")),
        rarity_paths=(("card_sets", 0, "set_rarity"),),
        number_paths=(("card_sets", 0, "set_code"),),
    )


def sports_spec(domain: GameDomain) -> CatalogSpec:
    """Baseball and basketball share one catalog, filtered by sport."""
    if domain not in (GameDomain.BASEBALL, GameDomain.BASKETBALL):
        raise ValueError(f"Not a sports domain: {domain.value}")

    sport = domain.value
    return CatalogSpec(
        domain=domain,
        queries=(
            CatalogQuery(
                url=f"{SPORTS_CARD_API_BASE}/search",
                build_params=lambda name: {"q": name, "sport": sport, "limit": 1},
                results_path=("results",),
            ),
        ),
        name_paths=(("player_name",),),
        set_paths=(("set_name",),),
        price_paths=(("estimated_value",),),
        image_paths=(("image_url",),),
        rarity_paths=(("parallel_type",),),
        rarity_default="Base",
        number_paths=(("card_number",),),
    )


def marvel_spec(api_key: str = "demo", hash_: str = "demo", ts: str = "1") -> CatalogSpec:
    return CatalogSpec(
        domain=GameDomain.MARVEL,
        queries=(
            CatalogQuery(
                url=f"{MARVEL_API_BASE}/characters",
                build_params=lambda name: {"name": name, "apikey": api_key, "hash": hash_, "ts": ts},
                results_path=("data", "results"),
            ),
        ),
        set_default="Marvel Comics",
        image_builder=_marvel_thumbnail,
        rarity_default="Common",
        number_paths=(("id",),),
    )


def build_catalog_specs(config: Settings) -> dict[GameDomain, CatalogSpec]:
    """Field maps for every domain, with credentials from settings."""
    return {
        GameDomain.MTG: mtg_spec(),
        GameDomain.POKEMON: pokemon_spec(config.pokemon_tcg_api_key),
        GameDomain.YUGIOH: yugioh_spec(),
        GameDomain.BASEBALL: sports_spec(GameDomain.BASEBALL),
        GameDomain.BASKETBALL: sports_spec(GameDomain.BASKETBALL),
        GameDomain.MARVEL: marvel_spec(config.marvel_api_key, config.marvel_hash, config.marvel_ts),
    }


def build_adapters(
    config: Settings, client: httpx.AsyncClient | None = None
) -> dict[GameDomain, CatalogAdapter]:
    """One JsonCatalogAdapter per domain, sharing the optional client."""
    return {
        domain: JsonCatalogAdapter(
            spec,
            client=client,
            timeout=config.catalog_timeout,
            retries=config.max_retries,
            backoff=config.retry_backoff,
        )
        for domain, spec in build_catalog_specs(config).items()
    }
