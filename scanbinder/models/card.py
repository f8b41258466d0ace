"""
Card Models.

Catalog-agnostic card data produced by the identification pipeline.

INVARIANTS:
- CanonicalCardRecord always has a name and a domain
- CanonicalCardRecord price is never negative
- DetectedCard confidence is within [0, 1]
- All models are frozen (immutable after construction)
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum


class GameDomain(str, Enum):
    """Catalog family a card name is looked up against."""

    MTG = "mtg"
    POKEMON = "pokemon"
    YUGIOH = "yugioh"
    BASEBALL = "baseball"
    BASKETBALL = "basketball"
    MARVEL = "marvel"


# Order used when every catalog is tried in turn
EXHAUSTIVE_ORDER: tuple[GameDomain, ...] = (
    GameDomain.MTG,
    GameDomain.POKEMON,
    GameDomain.YUGIOH,
    GameDomain.BASEBALL,
    GameDomain.BASKETBALL,
    GameDomain.MARVEL,
)

_DOMAIN_ALIASES: dict[str, GameDomain] = {
    "magic": GameDomain.MTG,
    "yu-gi-oh": GameDomain.YUGIOH,
    "comic": GameDomain.MARVEL,
}


def parse_game_domain(value: str) -> GameDomain:
    """
    Parse a domain name or alias, case-insensitive.

    Raises:
        ValueError: If the value names no known domain
    """
    key = value.strip().lower()
    if key in _DOMAIN_ALIASES:
        return _DOMAIN_ALIASES[key]
    try:
        return GameDomain(key)
    except ValueError:
        valid = sorted(d.value for d in GameDomain)
        raise ValueError(f"Unknown game domain: {value}. Must be one of {valid}") from None


@dataclass(frozen=True, slots=True)
class CanonicalCardRecord:
    """
    Normalized result of resolving a name against one catalog.

    Attributes:
        name: Display name from the catalog
        set_name: Set or collection label ("Unknown Set" when missing)
        price: Market price, currency-agnostic, 0 when the catalog has none
        image_url: Image reference, empty string when missing
        domain: Catalog family that produced this record
        rarity: Rarity label (optional)
        card_number: External card or catalog number (optional)
    """

    name: str
    set_name: str
    price: float
    image_url: str
    domain: GameDomain
    rarity: str | None = None
    card_number: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Card record name must not be empty")
        if self.price < 0:
            raise ValueError(f"Card record price must not be negative, got {self.price}")


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Location of a card in the scanned image, in pixels."""

    x: float = 0
    y: float = 0
    width: float = 100
    height: float = 140


def generate_card_id() -> str:
    """Generate a unique identifier for a detected card."""
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class DetectedCard:
    """
    A resolved card found during one scan session.

    Promoted to a collection entry when the user accepts it,
    discarded when the user skips it.
    """

    card: CanonicalCardRecord
    confidence: float
    id: str = field(default_factory=generate_card_id)
    bounding_box: BoundingBox = field(default_factory=BoundingBox)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")
