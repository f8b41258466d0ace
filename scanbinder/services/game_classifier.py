"""
Game classification from a card name.

Keyword lists are checked in a fixed priority order and the first match
wins. A name matching both basketball and Marvel keywords is basketball.
Names matching nothing default to Magic: The Gathering.
"""

from scanbinder.models.card import GameDomain

# Order matters - checked by priority (first match wins)
GAME_KEYWORDS: tuple[tuple[GameDomain, tuple[str, ...]], ...] = (
    (GameDomain.POKEMON, ("pikachu", "charizard", "pokemon")),
    (GameDomain.YUGIOH, ("blue-eyes", "dark magician", "exodia")),
    (
        GameDomain.BASEBALL,
        ("babe ruth", "mickey mantle", "mike trout", "baseball", "mlb", "topps", "bowman"),
    ),
    (
        GameDomain.BASKETBALL,
        (
            "michael jordan",
            "lebron james",
            "kobe bryant",
            "basketball",
            "nba",
            "panini",
            "upper deck",
        ),
    ),
    (
        GameDomain.MARVEL,
        ("spider-man", "iron man", "captain america", "thor", "hulk", "marvel", "avengers"),
    ),
)

DEFAULT_DOMAIN = GameDomain.MTG


def classify_game(card_name: str) -> GameDomain:
    """
    Guess which catalog a card name belongs to.

    Args:
        card_name: Candidate card name

    Returns:
        The first domain whose keywords appear in the name (case-insensitive),
        or MTG when none do.
    """
    name = card_name.lower()

    for domain, keywords in GAME_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return domain

    return DEFAULT_DOMAIN
