from dataclasses import dataclass, field
from datetime import datetime

from scanbinder.models.card import CanonicalCardRecord, DetectedCard, GameDomain


@dataclass
class CollectionEntry:
    """
    An owned card in the user's collection.

    Entries are keyed by id. Several entries may share a name and set
    when the user tracks copies separately.
    """

    id: str
    name: str
    set_name: str
    price: float
    image_url: str
    date_added: datetime
    domain: GameDomain | None = None
    rarity: str | None = None
    card_number: str | None = None
    confidence: float = 1.0
    quantity: int = 1
    condition: str | None = None
    notes: str | None = None
    tags: list[str] = field(default_factory=list)

    def total_value(self) -> float:
        """Value of all copies in this entry."""
        return self.price * self.quantity

    @classmethod
    def from_detected(cls, detected: DetectedCard, date_added: datetime) -> "CollectionEntry":
        """Promote an accepted detected card into an entry."""
        card = detected.card
        return cls(
            id=detected.id,
            name=card.name,
            set_name=card.set_name,
            price=card.price,
            image_url=card.image_url,
            date_added=date_added,
            domain=card.domain,
            rarity=card.rarity,
            card_number=card.card_number,
            confidence=detected.confidence,
        )

    def to_record(self) -> CanonicalCardRecord:
        """Card metadata of this entry, without ownership fields."""
        return CanonicalCardRecord(
            name=self.name,
            set_name=self.set_name,
            price=self.price,
            image_url=self.image_url,
            domain=self.domain or GameDomain.MTG,
            rarity=self.rarity,
            card_number=self.card_number,
        )


@dataclass
class CollectionStats:
    """Aggregate view over a collection."""

    total_cards: int = 0
    total_value: float = 0.0
    unique_cards: int = 0
    most_valuable: CollectionEntry | None = None
    recent_additions: list[CollectionEntry] = field(default_factory=list)

    @classmethod
    def from_entries(cls, entries: list[CollectionEntry], recent: int = 5) -> "CollectionStats":
        """
        Compute stats from a list of entries.

        Most valuable is the highest price; on equal prices the lowest id wins.
        Recent additions are the newest `recent` entries by date added.
        """
        if not entries:
            return cls()

        most_valuable = min(entries, key=lambda e: (-e.price, e.id))
        newest_first = sorted(entries, key=lambda e: (e.date_added, e.id), reverse=True)

        return cls(
            total_cards=sum(e.quantity for e in entries),
            total_value=sum(e.total_value() for e in entries),
            unique_cards=len(entries),
            most_valuable=most_valuable,
            recent_additions=newest_first[:recent],
        )
