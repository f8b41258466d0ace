"""
Collection interchange format.

Serializes a collection to JSON for backup and reads it back.
The document shape matches what the mobile app exports:

    {
      "exportDate": "2024-05-01T12:00:00+00:00",
      "totalCards": 2,
      "cards": [
        {"id": "...", "name": "Black Lotus", "set": "Alpha", "price": 50000,
         "image": "https://...", "confidence": 0.95, "dateAdded": "...",
         "condition": "NM", "quantity": 1, "notes": null, "tags": []}
      ]
    }

Parsing validates the whole document before returning anything, so a
caller can reject bad input before touching the store.
"""

import json
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from scanbinder.models.card import GameDomain
from scanbinder.models.collection import CollectionEntry
from scanbinder.models.failure import ImportFormatError


class ExportedCard(BaseModel):
    """One card in the interchange document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    set_name: str = Field(default="Unknown Set", alias="set")
    price: float = Field(default=0.0, ge=0)
    image_url: str | None = Field(default=None, alias="image")
    confidence: float = Field(default=1.0, ge=0, le=1)
    date_added: datetime = Field(..., alias="dateAdded")
    condition: str | None = None
    quantity: int = Field(default=1, ge=1)
    notes: str | None = None
    tags: list[str] | None = None
    domain: GameDomain | None = Field(default=None, alias="game")
    rarity: str | None = None
    card_number: str | None = Field(default=None, alias="cardNumber")

    def to_entry(self) -> CollectionEntry:
        return CollectionEntry(
            id=self.id,
            name=self.name,
            set_name=self.set_name,
            price=self.price,
            image_url=self.image_url or "",
            date_added=self.date_added,
            domain=self.domain,
            rarity=self.rarity,
            card_number=self.card_number,
            confidence=self.confidence,
            quantity=self.quantity,
            condition=self.condition,
            notes=self.notes,
            tags=list(self.tags or []),
        )

    @classmethod
    def from_entry(cls, entry: CollectionEntry) -> "ExportedCard":
        return cls(
            id=entry.id,
            name=entry.name,
            set_name=entry.set_name,
            price=entry.price,
            image_url=entry.image_url,
            confidence=entry.confidence,
            date_added=entry.date_added,
            condition=entry.condition,
            quantity=entry.quantity,
            notes=entry.notes,
            tags=list(entry.tags),
            domain=entry.domain,
            rarity=entry.rarity,
            card_number=entry.card_number,
        )


class CollectionExport(BaseModel):
    """The whole interchange document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    export_date: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="exportDate"
    )
    total_cards: int = Field(default=0, ge=0, alias="totalCards")
    cards: list[ExportedCard] = Field(default_factory=list)


def serialize_collection(
    entries: list[CollectionEntry], exported_at: datetime | None = None
) -> str:
    """
    Serialize entries to the interchange JSON format.

    Args:
        entries: Collection entries to export
        exported_at: Export timestamp, defaults to now (UTC)

    Returns:
        Pretty-printed JSON text
    """
    document = CollectionExport(
        export_date=exported_at or datetime.now(UTC),
        total_cards=len(entries),
        cards=[ExportedCard.from_entry(entry) for entry in entries],
    )
    return json.dumps(document.model_dump(mode="json", by_alias=True), indent=2)


def parse_collection_export(text: str) -> list[CollectionEntry]:
    """
    Parse and validate an interchange document.

    Args:
        text: JSON text produced by serialize_collection (or the mobile app)

    Returns:
        Collection entries in document order

    Raises:
        ImportFormatError: If the text is not valid JSON, does not match the
            document shape, or repeats an id
    """
    if not text or not text.strip():
        raise ImportFormatError("Import data is empty")

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Invalid JSON: {e.msg} (line {e.lineno})") from e

    if not isinstance(raw, dict):
        raise ImportFormatError("Import data must be a JSON object with a 'cards' list")

    try:
        document = CollectionExport.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ImportFormatError(
            f"{e.error_count()} invalid field(s); first at {location}: {first['msg']}"
        ) from e

    seen: set[str] = set()
    for card in document.cards:
        if card.id in seen:
            raise ImportFormatError(f"Duplicate card id: {card.id}")
        seen.add(card.id)

    return [card.to_entry() for card in document.cards]
