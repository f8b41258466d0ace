"""
Card scanning pipeline.

    image bytes -> preprocess -> recognize -> candidate names
                -> catalog lookup (concurrent) -> detected cards

Image and recognition failures stop the scan and propagate. Catalog
failures only drop the affected candidate.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from scanbinder.catalogs.adapters import build_adapters
from scanbinder.catalogs.resolver import CatalogResolver, LookupMode, LookupTarget
from scanbinder.config import (
    DETECTION_CONFIDENCE,
    MAX_CANDIDATE_NAMES,
    RECOGNITION_CONFIDENCE,
    Settings,
)
from scanbinder.models.card import BoundingBox, DetectedCard
from scanbinder.services.name_extraction import (
    extract_best_card_name,
    extract_candidate_names,
    lines_from_annotations,
)
from scanbinder.vision.preprocessing import PreparedImage, preprocess_image
from scanbinder.vision.recognition import LocalizedObject, RecognitionClient

logger = logging.getLogger(__name__)

# Object labels the vision service uses for card-shaped things
CARD_OBJECT_LABELS = frozenset({"Rectangle", "Card"})


@dataclass(frozen=True)
class ImageLimits:
    """Preprocessing bounds applied to every scan."""

    max_dimension: int = 1024
    quality: int = 80
    max_bytes: int = 4 * 1024 * 1024


@dataclass
class ScanResult:
    """Outcome of one multi-card scan."""

    candidates: list[str] = field(default_factory=list)
    cards: list[DetectedCard] = field(default_factory=list)
    # Candidates for which no catalog returned a match
    unresolved: list[str] = field(default_factory=list)


def _card_boxes(objects: Sequence[LocalizedObject], image: PreparedImage) -> list[BoundingBox]:
    """Pixel boxes of card-like objects, in service order."""
    return [
        BoundingBox(
            x=obj.x * image.width,
            y=obj.y * image.height,
            width=obj.width * image.width,
            height=obj.height * image.height,
        )
        for obj in objects
        if obj.name in CARD_OBJECT_LABELS
    ]


class CardScanner:
    """Runs the identification pipeline over captured images."""

    def __init__(
        self,
        recognition: RecognitionClient,
        resolver: CatalogResolver,
        limits: ImageLimits | None = None,
    ) -> None:
        self._recognition = recognition
        self._resolver = resolver
        self._limits = limits or ImageLimits()

    def prepare(self, image_bytes: bytes, max_dimension: int | None = None) -> PreparedImage:
        """Preprocess with the configured limits. Raises ImageProcessingError."""
        return preprocess_image(
            image_bytes,
            max_dimension=max_dimension or self._limits.max_dimension,
            quality=self._limits.quality,
            max_bytes=self._limits.max_bytes,
        )

    async def detect_cards(
        self,
        image_bytes: bytes,
        target: LookupTarget = LookupMode.AUTO,
        *,
        max_dimension: int | None = None,
    ) -> ScanResult:
        """
        Find every identifiable card in a photo.

        Args:
            image_bytes: Raw captured image
            target: Domain to search, or a dispatch mode
            max_dimension: Override for the longest-edge cap

        Returns:
            ScanResult with the candidate names and the cards resolved
            from them, in candidate order

        Raises:
            ImageProcessingError: If the image is unreadable
            RecognitionServiceError: If the vision service call fails
        """
        image = self.prepare(image_bytes, max_dimension)
        recognized = await self._recognition.annotate_for_detection(image)

        candidates = extract_candidate_names(
            lines_from_annotations(recognized.text_annotations), MAX_CANDIDATE_NAMES
        )
        if not candidates:
            logger.info("No candidate card names in image")
            return ScanResult()

        records = await self._resolver.resolve_many(candidates, target)
        boxes = _card_boxes(recognized.objects, image)

        cards: list[DetectedCard] = []
        unresolved: list[str] = []
        # Boxes pair with candidates by position, so a miss does not shift later boxes
        for index, (name, record) in enumerate(zip(candidates, records, strict=True)):
            if record is None:
                unresolved.append(name)
                continue
            box = boxes[index] if index < len(boxes) else BoundingBox()
            detected = DetectedCard(card=record, confidence=DETECTION_CONFIDENCE, bounding_box=box)
            cards.append(detected)

        logger.info("Scan resolved %d of %d candidates", len(cards), len(candidates))
        return ScanResult(candidates=candidates, cards=cards, unresolved=unresolved)

    async def recognize_card(
        self, image_bytes: bytes, *, max_dimension: int | None = None
    ) -> DetectedCard | None:
        """
        Identify the single card in a close-up photo.

        Returns None when no likely name is found or no catalog matches.

        Raises:
            ImageProcessingError: If the image is unreadable
            RecognitionServiceError: If the vision service call fails
        """
        image = self.prepare(image_bytes, max_dimension)
        recognized = await self._recognition.annotate_for_recognition(image)

        card_name = extract_best_card_name(recognized.text_annotations, recognized.web_entities)
        if card_name is None:
            logger.info("No likely card name in image")
            return None

        record = await self._resolver.resolve_auto(card_name)
        if record is None:
            return None
        return DetectedCard(card=record, confidence=RECOGNITION_CONFIDENCE)


def build_scanner(
    config: Settings, client: httpx.AsyncClient | None = None
) -> tuple[CatalogResolver, CardScanner]:
    """Wire the catalog resolver and scanner from settings."""
    resolver = CatalogResolver(
        build_adapters(config, client),
        auto_fallback=config.auto_fallback_exhaustive,
    )
    recognition = RecognitionClient(
        config.google_vision_api_key,
        timeout=config.recognition_timeout,
        retries=config.max_retries,
        backoff=config.retry_backoff,
        client=client,
    )
    limits = ImageLimits(
        max_dimension=config.max_image_dimension,
        quality=config.jpeg_quality,
        max_bytes=config.max_image_bytes,
    )
    return resolver, CardScanner(recognition, resolver, limits)
