"""
Scan API endpoints.

Runs the identification pipeline over uploaded photos:
- /scan/detect: every card in a photo of one or more cards
- /scan/recognize: the single card in a close-up photo
- /scan/lookup: resolve a typed name without an image

Detected cards are not stored here. The client accepts them through
POST /collection.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from scanbinder.catalogs.resolver import CatalogResolver, LookupTarget, parse_lookup_target
from scanbinder.config import settings
from scanbinder.db.database import get_session
from scanbinder.db.operations import get_settings
from scanbinder.models.card import CanonicalCardRecord, DetectedCard, GameDomain
from scanbinder.services.scanner import CardScanner

router = APIRouter(prefix="/scan", tags=["scan"])


class CardRecordResponse(BaseModel):
    """Card metadata returned by a catalog."""

    name: str
    set_name: str
    price: float = Field(..., ge=0)
    image_url: str = ""
    domain: GameDomain
    rarity: str | None = None
    card_number: str | None = None

    @classmethod
    def from_record(cls, record: CanonicalCardRecord) -> "CardRecordResponse":
        return cls(
            name=record.name,
            set_name=record.set_name,
            price=record.price,
            image_url=record.image_url,
            domain=record.domain,
            rarity=record.rarity,
            card_number=record.card_number,
        )


class BoundingBoxResponse(BaseModel):
    x: float
    y: float
    width: float
    height: float


class DetectedCardResponse(BaseModel):
    """A resolved card awaiting accept or skip."""

    id: str
    confidence: float = Field(..., ge=0, le=1)
    card: CardRecordResponse
    bounding_box: BoundingBoxResponse

    @classmethod
    def from_detected(cls, detected: DetectedCard) -> "DetectedCardResponse":
        box = detected.bounding_box
        return cls(
            id=detected.id,
            confidence=detected.confidence,
            card=CardRecordResponse.from_record(detected.card),
            bounding_box=BoundingBoxResponse(
                x=box.x, y=box.y, width=box.width, height=box.height
            ),
        )


class DetectResponse(BaseModel):
    """Response model for multi-card detection."""

    candidates: list[str] = Field(
        default_factory=list,
        description="Names read from the photo, in reading order",
    )
    cards: list[DetectedCardResponse] = Field(default_factory=list)
    unresolved: list[str] = Field(
        default_factory=list,
        description="Candidates no catalog matched",
    )


class RecognizeResponse(BaseModel):
    """Response model for single-card recognition."""

    card: DetectedCardResponse | None = Field(
        default=None,
        description="The identified card, or null when nothing matched",
    )


class LookupResponse(BaseModel):
    """Response model for a name lookup."""

    query: str
    target: str
    card: CardRecordResponse | None = None


def get_scanner(request: Request) -> CardScanner:
    """Dependency returning the application's scanner."""
    scanner: CardScanner = request.app.state.scanner
    return scanner


def get_resolver(request: Request) -> CatalogResolver:
    """Dependency returning the application's catalog resolver."""
    resolver: CatalogResolver = request.app.state.resolver
    return resolver


def _parse_target(domain: str | None) -> LookupTarget:
    try:
        return parse_lookup_target(domain)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e


async def _scan_dimension(session: AsyncSession) -> int:
    """Longest-edge cap chosen by the user's scan quality setting."""
    app_settings = await get_settings(session)
    if app_settings.high_quality_scan:
        return settings.max_image_dimension
    return settings.low_quality_image_dimension


async def _read_image(image: UploadFile) -> bytes:
    content = await image.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded image is empty",
        )
    return content


@router.post("/detect", response_model=DetectResponse)
async def detect_cards(
    image: Annotated[UploadFile, File(description="Photo of one or more cards")],
    scanner: Annotated[CardScanner, Depends(get_scanner)],
    session: Annotated[AsyncSession, Depends(get_session)],
    domain: Annotated[
        str | None,
        Form(description="Game domain, 'auto' (default) or 'all'"),
    ] = None,
) -> DetectResponse:
    """
    Detect every identifiable card in a photo.

    Each candidate name is resolved concurrently. A catalog failure only
    drops that candidate; an unreadable image (422) or a vision service
    failure (503) fails the whole scan.
    """
    target = _parse_target(domain)
    content = await _read_image(image)
    max_dimension = await _scan_dimension(session)

    result = await scanner.detect_cards(content, target, max_dimension=max_dimension)

    return DetectResponse(
        candidates=result.candidates,
        cards=[DetectedCardResponse.from_detected(card) for card in result.cards],
        unresolved=result.unresolved,
    )


@router.post("/recognize", response_model=RecognizeResponse)
async def recognize_card(
    image: Annotated[UploadFile, File(description="Close-up photo of one card")],
    scanner: Annotated[CardScanner, Depends(get_scanner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RecognizeResponse:
    """
    Identify the single card in a close-up photo.

    Returns card=null when no likely name is read or no catalog matches.
    """
    content = await _read_image(image)
    max_dimension = await _scan_dimension(session)

    detected = await scanner.recognize_card(content, max_dimension=max_dimension)
    if detected is None:
        return RecognizeResponse()
    return RecognizeResponse(card=DetectedCardResponse.from_detected(detected))


@router.get("/lookup", response_model=LookupResponse)
async def lookup_card(
    name: Annotated[str, Query(min_length=1, description="Card name to resolve")],
    resolver: Annotated[CatalogResolver, Depends(get_resolver)],
    domain: Annotated[
        str | None,
        Query(description="Game domain, 'auto' (default) or 'all'"),
    ] = None,
) -> LookupResponse:
    """Resolve a typed card name against the catalogs."""
    target = _parse_target(domain)
    record = await resolver.lookup(name.strip(), target)

    return LookupResponse(
        query=name,
        target=target.value,
        card=CardRecordResponse.from_record(record) if record else None,
    )
