"""
Candidate card-name extraction from OCR text.

A precision-biased line filter: it keeps lines that look like a printed
card title and drops numbers, short all-caps labels and noise. Real card
names that do not fit the shape are missed.

Detection order is preserved and the result is truncated, never re-ranked.
"""

import re
from collections.abc import Iterable, Sequence

from scanbinder.config import MAX_CANDIDATE_NAMES
from scanbinder.vision.recognition import WebEntity

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 50

# All-caps lines shorter than this are treated as labels ("HP", "TRAINER")
SHORT_CAPS_LENGTH = 10

# Web entities scoring at or below this are ignored
WEB_ENTITY_MIN_SCORE = 0.7

DIGITS_ONLY = re.compile(r"^\d+$")
CAPS_ONLY = re.compile(r"^[A-Z\s]+$")
# "Black", "Black Lotus", "Charizard Base Set": line opens with a title-case word
TITLE_CASE_START = re.compile(r"^[A-Z][a-z]+")
# Whole string is one or more title-case words separated by whitespace
TITLE_CASE_WORDS = re.compile(r"^[A-Z][a-z]+(\s+[A-Z][a-z]+)*$")


def lines_from_annotations(text_annotations: Sequence[str]) -> list[str]:
    """
    Split the full-text annotation into lines.

    The first annotation holds all detected text; the rest are
    per-word boxes and are ignored here.
    """
    if not text_annotations:
        return []
    return text_annotations[0].split("\n")


def _is_candidate_line(line: str) -> bool:
    if len(line) < MIN_NAME_LENGTH or len(line) > MAX_NAME_LENGTH:
        return False
    if DIGITS_ONLY.match(line):
        return False
    if CAPS_ONLY.match(line) and len(line) < SHORT_CAPS_LENGTH:
        return False
    return TITLE_CASE_START.match(line) is not None


def extract_candidate_names(
    lines: Iterable[str], limit: int = MAX_CANDIDATE_NAMES
) -> list[str]:
    """
    Filter OCR lines down to likely card names.

    Args:
        lines: Raw text lines in detection order
        limit: Maximum number of candidates returned

    Returns:
        Up to `limit` trimmed lines, in their original order

    Example:
        >>> extract_candidate_names(["123", "ALL CAPS", "Black Lotus", "x"])
        ['Black Lotus']
    """
    candidates: list[str] = []
    for line in lines:
        trimmed = line.strip()
        if _is_candidate_line(trimmed):
            candidates.append(trimmed)
    return candidates[:limit]


def is_likely_card_name(text: str) -> bool:
    """True if the whole text is a run of title-case words of plausible length."""
    if len(text) < MIN_NAME_LENGTH or len(text) > MAX_NAME_LENGTH:
        return False
    return TITLE_CASE_WORDS.match(text) is not None


def extract_best_card_name(
    text_annotations: Sequence[str], web_entities: Sequence[WebEntity]
) -> str | None:
    """
    Pick one name for single-card recognition.

    Web entities above the score threshold are tried first, in service
    order; OCR lines are the fallback.
    """
    for entity in web_entities:
        if entity.score > WEB_ENTITY_MIN_SCORE and is_likely_card_name(entity.description):
            return entity.description

    for line in lines_from_annotations(text_annotations):
        trimmed = line.strip()
        if is_likely_card_name(trimmed):
            return trimmed

    return None
