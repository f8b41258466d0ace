"""Tests for the card scanning pipeline."""

import pytest
from fakes import FakeRecognition, fake_adapters, make_image_bytes, make_record

from scanbinder.catalogs.resolver import CatalogResolver, LookupMode
from scanbinder.config import Settings
from scanbinder.models.card import BoundingBox, GameDomain
from scanbinder.models.failure import ImageProcessingError, RecognitionServiceError
from scanbinder.services.scanner import CardScanner, ImageLimits, build_scanner
from scanbinder.vision.recognition import LocalizedObject, RecognitionResult, WebEntity


def _scanner(
    result: RecognitionResult,
    records: dict | None = None,
    calls: list | None = None,
    limits: ImageLimits | None = None,
) -> tuple[CardScanner, FakeRecognition]:
    recognition = FakeRecognition(result)
    resolver = CatalogResolver(fake_adapters(records, calls))
    return CardScanner(recognition, resolver, limits), recognition  # type: ignore[arg-type]


class TestDetectCards:
    async def test_resolves_candidates_in_order(self, card_image: bytes) -> None:
        lotus = make_record("Black Lotus", price=50000.0)
        pikachu = make_record("Pikachu", GameDomain.POKEMON, price=2.0)
        scanner, _ = _scanner(
            RecognitionResult(text_annotations=["Pikachu\n60 HP\nBlack Lotus\nMox Nothing"]),
            {GameDomain.MTG: {"Black Lotus": lotus}, GameDomain.POKEMON: {"Pikachu": pikachu}},
        )

        result = await scanner.detect_cards(card_image)

        assert result.candidates == ["Pikachu", "Black Lotus", "Mox Nothing"]
        assert [d.card for d in result.cards] == [pikachu, lotus]
        assert result.unresolved == ["Mox Nothing"]
        assert all(d.confidence == 0.85 for d in result.cards)
        assert len({d.id for d in result.cards}) == 2

    async def test_no_text_returns_empty_result(self, card_image: bytes) -> None:
        calls: list = []
        scanner, _ = _scanner(RecognitionResult(), calls=calls)

        result = await scanner.detect_cards(card_image)

        assert result.candidates == []
        assert result.cards == []
        assert calls == []

    async def test_explicit_domain(self, card_image: bytes) -> None:
        calls: list = []
        scanner, _ = _scanner(
            RecognitionResult(text_annotations=["Charizard"]), calls=calls
        )

        await scanner.detect_cards(card_image, GameDomain.MARVEL)

        assert calls == [(GameDomain.MARVEL, "Charizard")]

    async def test_exhaustive_mode(self, card_image: bytes) -> None:
        calls: list = []
        scanner, _ = _scanner(RecognitionResult(text_annotations=["Charizard"]), calls=calls)

        await scanner.detect_cards(card_image, LookupMode.EXHAUSTIVE)

        assert len(calls) == 6

    async def test_bounding_boxes_from_card_objects(self) -> None:
        image = make_image_bytes(width=400, height=200)
        lotus = make_record("Black Lotus")
        objects = [
            LocalizedObject("Person", 0.9, 0.0, 0.0, 1.0, 1.0),
            LocalizedObject("Rectangle", 0.8, 0.25, 0.5, 0.5, 0.25),
        ]
        scanner, _ = _scanner(
            RecognitionResult(text_annotations=["Black Lotus"], objects=objects),
            {GameDomain.MTG: {"Black Lotus": lotus}},
        )

        result = await scanner.detect_cards(image)

        assert result.cards[0].bounding_box == BoundingBox(x=100, y=100, width=200, height=50)

    async def test_unresolved_candidate_keeps_box_alignment(self) -> None:
        image = make_image_bytes(width=400, height=200)
        lotus = make_record("Black Lotus")
        objects = [
            LocalizedObject("Card", 0.9, 0.0, 0.0, 0.5, 0.5),
            LocalizedObject("Card", 0.9, 0.5, 0.5, 0.5, 0.5),
        ]
        scanner, _ = _scanner(
            RecognitionResult(text_annotations=["Mox Nothing\nBlack Lotus"], objects=objects),
            {GameDomain.MTG: {"Black Lotus": lotus}},
        )

        result = await scanner.detect_cards(image)

        assert result.unresolved == ["Mox Nothing"]
        assert result.cards[0].bounding_box == BoundingBox(x=200, y=100, width=200, height=100)

    async def test_default_box_without_objects(self, card_image: bytes) -> None:
        lotus = make_record("Black Lotus")
        scanner, _ = _scanner(
            RecognitionResult(text_annotations=["Black Lotus"]),
            {GameDomain.MTG: {"Black Lotus": lotus}},
        )

        result = await scanner.detect_cards(card_image)

        assert result.cards[0].bounding_box == BoundingBox()

    async def test_image_limits_applied(self) -> None:
        scanner, recognition = _scanner(
            RecognitionResult(), limits=ImageLimits(max_dimension=100)
        )

        await scanner.detect_cards(make_image_bytes(width=400, height=200))

        assert (recognition.images[0].width, recognition.images[0].height) == (100, 50)

    async def test_max_dimension_override(self) -> None:
        scanner, recognition = _scanner(RecognitionResult())

        await scanner.detect_cards(make_image_bytes(width=400, height=200), max_dimension=200)

        assert recognition.images[0].width == 200

    async def test_bad_image_stops_scan(self) -> None:
        scanner, recognition = _scanner(RecognitionResult())

        with pytest.raises(ImageProcessingError):
            await scanner.detect_cards(b"not an image")

        assert recognition.images == []

    async def test_recognition_failure_propagates(self, card_image: bytes) -> None:
        recognition = FakeRecognition(error=RecognitionServiceError("quota"))
        scanner = CardScanner(recognition, CatalogResolver(fake_adapters()))  # type: ignore[arg-type]

        with pytest.raises(RecognitionServiceError):
            await scanner.detect_cards(card_image)


class TestRecognizeCard:
    async def test_uses_web_entity(self, card_image: bytes) -> None:
        charizard = make_record("Charizard", GameDomain.POKEMON, price=300.0)
        calls: list = []
        scanner, _ = _scanner(
            RecognitionResult(
                text_annotations=["HP 120\nFire"],
                web_entities=[WebEntity("Charizard", 0.95)],
            ),
            {GameDomain.POKEMON: {"Charizard": charizard}},
            calls,
        )

        detected = await scanner.recognize_card(card_image)

        assert detected is not None
        assert detected.card == charizard
        assert detected.confidence == 0.9
        assert calls == [(GameDomain.POKEMON, "Charizard")]

    async def test_no_name_found(self, card_image: bytes) -> None:
        calls: list = []
        scanner, _ = _scanner(RecognitionResult(text_annotations=["123\nHP"]), calls=calls)

        assert await scanner.recognize_card(card_image) is None
        assert calls == []

    async def test_no_catalog_match(self, card_image: bytes) -> None:
        scanner, _ = _scanner(RecognitionResult(text_annotations=["Black Lotus"]))

        assert await scanner.recognize_card(card_image) is None


class TestBuildScanner:
    def test_wires_from_settings(self) -> None:
        config = Settings(max_image_dimension=512, jpeg_quality=70, auto_fallback_exhaustive=True)

        resolver, scanner = build_scanner(config)

        assert isinstance(resolver, CatalogResolver)
        assert isinstance(scanner, CardScanner)
