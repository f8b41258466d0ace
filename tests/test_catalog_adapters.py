"""Tests for catalog adapters and field-map normalization."""

import httpx
import pytest
import respx

from scanbinder.catalogs.adapters import (
    MARVEL_API_BASE,
    POKEMON_TCG_API_BASE,
    SCRYFALL_API_BASE,
    SPORTS_CARD_API_BASE,
    YUGIOH_API_BASE,
    build_adapters,
    marvel_spec,
    mtg_spec,
    pokemon_spec,
    sports_spec,
    yugioh_spec,
)
from scanbinder.catalogs.base import (
    CatalogAdapter,
    JsonCatalogAdapter,
    get_path,
    normalize_price,
)
from scanbinder.config import Settings
from scanbinder.models.card import EXHAUSTIVE_ORDER, GameDomain

SCRYFALL_NAMED = f"{SCRYFALL_API_BASE}/cards/named"
SCRYFALL_SEARCH = f"{SCRYFALL_API_BASE}/cards/search"
POKEMON_CARDS = f"{POKEMON_TCG_API_BASE}/cards"
YUGIOH_CARDINFO = f"{YUGIOH_API_BASE}/cardinfo.php"
SPORTS_SEARCH = f"{SPORTS_CARD_API_BASE}/search"
MARVEL_CHARACTERS = f"{MARVEL_API_BASE}/characters"


def _adapter(spec) -> JsonCatalogAdapter:
    return JsonCatalogAdapter(spec, retries=0, backoff=0)


class TestGetPath:
    def test_nested_dicts_and_lists(self) -> None:
        data = {"card_sets": [{"set_name": "LOB"}]}

        assert get_path(data, ("card_sets", 0, "set_name")) == "LOB"

    def test_missing_steps_return_none(self) -> None:
        data = {"card_sets": []}

        assert get_path(data, ("card_sets", 0, "set_name")) is None
        assert get_path(data, ("nope",)) is None
        assert get_path("text", ("key",)) is None


class TestNormalizePrice:
    def test_first_positive_value_wins(self) -> None:
        card = {"prices": {"usd": None, "usd_foil": "12.50"}}

        assert normalize_price(card, [("prices", "usd"), ("prices", "usd_foil")]) == 12.5

    def test_zero_falls_through(self) -> None:
        card = {"a": 0, "b": 3}

        assert normalize_price(card, [("a",), ("b",)]) == 3.0

    def test_negative_and_garbage_become_zero(self) -> None:
        card = {"a": -5, "b": "n/a", "c": True}

        assert normalize_price(card, [("a",), ("b",), ("c",)]) == 0.0

    def test_no_paths(self) -> None:
        assert normalize_price({"price": 10}, []) == 0.0


class TestMtgAdapter:
    @respx.mock
    async def test_fuzzy_lookup(self) -> None:
        respx.get(SCRYFALL_NAMED, params={"fuzzy": "black lotus"}).mock(
            return_value=httpx.Response(
                200,
                json={
                    "name": "Black Lotus",
                    "set_name": "Limited Edition Alpha",
                    "prices": {"usd": None, "usd_foil": None},
                    "image_uris": {"normal": "https://img.scryfall/lotus.jpg"},
                    "rarity": "rare",
                    "collector_number": "232",
                },
            )
        )

        record = await _adapter(mtg_spec()).resolve("black lotus")

        assert record is not None
        assert record.name == "Black Lotus"
        assert record.set_name == "Limited Edition Alpha"
        assert record.price == 0.0
        assert record.image_url == "https://img.scryfall/lotus.jpg"
        assert record.domain == GameDomain.MTG
        assert record.rarity == "rare"
        assert record.card_number == "232"

    @respx.mock
    async def test_falls_back_to_search(self) -> None:
        respx.get(SCRYFALL_NAMED).mock(return_value=httpx.Response(404, json={"object": "error"}))
        search = respx.get(SCRYFALL_SEARCH).mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "name": "Delver of Secrets // Insectile Aberration",
                            "set_name": "Innistrad",
                            "prices": {"usd": "0.25"},
                            "card_faces": [{"image_uris": {"normal": "https://img/front.jpg"}}],
                        }
                    ]
                },
            )
        )

        record = await _adapter(mtg_spec()).resolve("Delver of Secrets")

        assert search.called
        assert search.calls.last.request.url.params["q"] == 'name:"Delver of Secrets"'
        assert record is not None
        assert record.price == 0.25
        assert record.image_url == "https://img/front.jpg"

    @respx.mock
    async def test_not_found_anywhere(self) -> None:
        respx.get(SCRYFALL_NAMED).mock(return_value=httpx.Response(404))
        respx.get(SCRYFALL_SEARCH).mock(return_value=httpx.Response(200, json={"data": []}))

        assert await _adapter(mtg_spec()).resolve("Not A Card") is None

    async def test_blank_name_skips_request(self) -> None:
        with respx.mock(assert_all_called=False) as mock:
            route = mock.get(SCRYFALL_NAMED)

            assert await _adapter(mtg_spec()).resolve("   ") is None
            assert not route.called


class TestPokemonAdapter:
    @respx.mock
    async def test_lookup_with_api_key(self) -> None:
        route = respx.get(POKEMON_CARDS).mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "name": "Charizard",
                            "number": "4",
                            "rarity": "Rare Holo",
                            "set": {"name": "Base"},
                            "cardmarket": {"prices": {"averageSellPrice": 0, "lowPrice": 199.5}},
                            "images": {"small": "https://img/small.png"},
                        }
                    ]
                },
            )
        )

        record = await _adapter(pokemon_spec("secret")).resolve("Charizard")

        request = route.calls.last.request
        assert request.headers["X-Api-Key"] == "secret"
        assert request.url.params["q"] == 'name:"Charizard"'
        assert request.url.params["pageSize"] == "1"
        assert record is not None
        assert record.set_name == "Base"
        assert record.price == 199.5
        assert record.image_url == "https://img/small.png"
        assert record.card_number == "4"

    @respx.mock
    async def test_no_key_no_header(self) -> None:
        route = respx.get(POKEMON_CARDS).mock(return_value=httpx.Response(200, json={"data": []}))

        assert await _adapter(pokemon_spec()).resolve("Pikachu") is None
        assert "X-Api-Key" not in route.calls.last.request.headers

    @respx.mock
    async def test_missing_set_defaults(self) -> None:
        respx.get(POKEMON_CARDS).mock(
            return_value=httpx.Response(200, json={"data": [{"name": "Pikachu"}]})
        )

        record = await _adapter(pokemon_spec()).resolve("Pikachu")

        assert record is not None
        assert record.set_name == "Unknown Set"
        assert record.price == 0.0
        assert record.image_url == ""


class TestYugiohAdapter:
    @respx.mock
    async def test_lookup(self) -> None:
        route = respx.get(YUGIOH_CARDINFO).mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "name": "Blue-Eyes White Dragon",
                            "card_sets": [
                                {
                                    "set_name": "Legend of Blue Eyes White Dragon",
                                    "set_code": "LOB-001",
                                    "set_rarity": "Ultra Rare",
                                }
                            ],
                            "card_prices": [
                                {"cardmarket_price": "0.00", "tcgplayer_price": "3.10"}
                            ],
                            "card_images": [{"image_url": "https://img/bewd.jpg"}],
                        }
                    ]
                },
            )
        )

        record = await _adapter(yugioh_spec()).resolve("Blue-Eyes")

        assert route.calls.last.request.url.params["fname"] == "Blue-Eyes"
        assert record is not None
        assert record.set_name == "Legend of Blue Eyes White Dragon"
        assert record.price == 3.1
        assert record.rarity == "Ultra Rare"
        assert record.card_number == "LOB-001"

    @respx.mock
    async def test_error_payload_is_not_found(self) -> None:
        """YGOPRODeck answers unknown names with 400 and an error body."""
        respx.get(YUGIOH_CARDINFO).mock(
            return_value=httpx.Response(400, json={"error": "No card matching your query"})
        )

        assert await _adapter(yugioh_spec()).resolve("Nothing") is None


class TestSportsAdapter:
    @respx.mock
    async def test_basketball_filter(self) -> None:
        route = respx.get(SPORTS_SEARCH).mock(
            return_value=httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "player_name": "Michael Jordan",
                            "set_name": "1986 Fleer",
                            "estimated_value": 1500,
                            "card_number": "57",
                        }
                    ]
                },
            )
        )

        record = await _adapter(sports_spec(GameDomain.BASKETBALL)).resolve("Michael Jordan")

        params = route.calls.last.request.url.params
        assert params["sport"] == "basketball"
        assert params["limit"] == "1"
        assert record is not None
        assert record.name == "Michael Jordan"
        assert record.domain == GameDomain.BASKETBALL
        assert record.price == 1500.0
        assert record.rarity == "Base"

    @respx.mock
    async def test_missing_player_name_uses_query(self) -> None:
        respx.get(SPORTS_SEARCH).mock(
            return_value=httpx.Response(200, json={"results": [{"estimated_value": "n/a"}]})
        )

        record = await _adapter(sports_spec(GameDomain.BASEBALL)).resolve("Babe Ruth")

        assert record is not None
        assert record.name == "Babe Ruth"
        assert record.price == 0.0

    def test_rejects_non_sports_domain(self) -> None:
        with pytest.raises(ValueError):
            sports_spec(GameDomain.MTG)


class TestMarvelAdapter:
    @respx.mock
    async def test_lookup_has_no_price(self) -> None:
        route = respx.get(MARVEL_CHARACTERS).mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": {
                        "results": [
                            {
                                "id": 1009610,
                                "name": "Spider-Man",
                                "thumbnail": {"path": "https://img/spidey", "extension": "jpg"},
                            }
                        ]
                    }
                },
            )
        )

        record = await _adapter(marvel_spec("key", "hash", "7")).resolve("Spider-Man")

        params = route.calls.last.request.url.params
        assert (params["apikey"], params["hash"], params["ts"]) == ("key", "hash", "7")
        assert record is not None
        assert record.price == 0.0
        assert record.set_name == "Marvel Comics"
        assert record.image_url == "https://img/spidey.jpg"
        assert record.rarity == "Common"
        assert record.card_number == "1009610"

    @respx.mock
    async def test_missing_thumbnail(self) -> None:
        respx.get(MARVEL_CHARACTERS).mock(
            return_value=httpx.Response(200, json={"data": {"results": [{"name": "Thor"}]}})
        )

        record = await _adapter(marvel_spec()).resolve("Thor")

        assert record is not None
        assert record.image_url == ""


class TestAdapterFailures:
    @respx.mock
    async def test_server_error_is_not_found(self) -> None:
        respx.get(YUGIOH_CARDINFO).mock(return_value=httpx.Response(500))

        assert await _adapter(yugioh_spec()).resolve("Exodia") is None

    @respx.mock
    async def test_network_error_is_not_found(self) -> None:
        respx.get(YUGIOH_CARDINFO).mock(side_effect=httpx.ConnectError("offline"))

        assert await _adapter(yugioh_spec()).resolve("Exodia") is None

    @respx.mock
    async def test_invalid_json_is_not_found(self) -> None:
        respx.get(YUGIOH_CARDINFO).mock(return_value=httpx.Response(200, content=b"oops"))

        assert await _adapter(yugioh_spec()).resolve("Exodia") is None

    @respx.mock
    async def test_unexpected_shape_is_not_found(self) -> None:
        respx.get(YUGIOH_CARDINFO).mock(return_value=httpx.Response(200, json={"data": ["x"]}))

        assert await _adapter(yugioh_spec()).resolve("Exodia") is None

    @respx.mock
    async def test_retries_then_succeeds(self) -> None:
        route = respx.get(YUGIOH_CARDINFO).mock(
            side_effect=[
                httpx.ConnectError("blip"),
                httpx.Response(200, json={"data": [{"name": "Exodia the Forbidden One"}]}),
            ]
        )
        adapter = JsonCatalogAdapter(yugioh_spec(), retries=1, backoff=0)

        record = await adapter.resolve("Exodia")

        assert route.call_count == 2
        assert record is not None
        assert record.name == "Exodia the Forbidden One"


class TestBuildAdapters:
    def test_one_adapter_per_domain(self) -> None:
        adapters = build_adapters(Settings(pokemon_tcg_api_key="k"))

        assert set(adapters) == set(EXHAUSTIVE_ORDER)
        for domain, adapter in adapters.items():
            assert isinstance(adapter, CatalogAdapter)
            assert adapter.domain == domain

    @respx.mock
    async def test_shared_client_is_used(self) -> None:
        respx.get(POKEMON_CARDS).mock(
            return_value=httpx.Response(200, json={"data": [{"name": "Pikachu"}]})
        )

        async with httpx.AsyncClient() as client:
            adapters = build_adapters(Settings(max_retries=0), client)
            record = await adapters[GameDomain.POKEMON].resolve("Pikachu")

        assert record is not None
        assert record.domain == GameDomain.POKEMON
