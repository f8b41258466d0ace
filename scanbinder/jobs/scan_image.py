"""
Scan an image file from the command line.

Runs multi-card detection on a photo and prints each identified card.
With --save, the identified cards are added to the collection.

    python -m scanbinder.jobs.scan_image photo.jpg --domain pokemon --save
"""

import argparse
import asyncio
import logging
from pathlib import Path

import httpx

from scanbinder.catalogs.resolver import LookupTarget, parse_lookup_target
from scanbinder.config import settings
from scanbinder.db.database import Database
from scanbinder.db.operations import add_detected_card
from scanbinder.services.scanner import ScanResult, build_scanner

logger = logging.getLogger(__name__)


def format_result(result: ScanResult) -> str:
    """Human-readable summary of a scan."""
    if not result.candidates:
        return "No card names found in image."

    lines = [f"Found {len(result.cards)} of {len(result.candidates)} candidates:"]
    for detected in result.cards:
        card = detected.card
        lines.append(
            f"  {card.name} [{card.domain.value}] {card.set_name} ${card.price:.2f}"
        )
    for name in result.unresolved:
        lines.append(f"  (no match) {name}")
    return "\n".join(lines)


async def run_scan(image_path: Path, target: LookupTarget, save: bool = False) -> ScanResult:
    """Detect cards in an image file and optionally store them."""
    content = image_path.read_bytes()

    async with httpx.AsyncClient(timeout=settings.catalog_timeout) as client:
        _resolver, scanner = build_scanner(settings, client)
        result = await scanner.detect_cards(content, target)

    if save and result.cards:
        database = Database(settings.database_url, echo=settings.debug)
        try:
            await database.init_db()
            async with database.session() as session:
                for detected in result.cards:
                    await add_detected_card(session, detected)
            logger.info("Saved %d cards to the collection", len(result.cards))
        finally:
            await database.close()

    return result


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Identify the cards in a photo.")
    parser.add_argument("image", type=Path, help="Path to the image file")
    parser.add_argument(
        "--domain",
        default=None,
        help="Game domain (mtg, pokemon, yugioh, baseball, basketball, marvel), "
        "'auto' (default) or 'all'",
    )
    parser.add_argument("--save", action="store_true", help="Add identified cards to the collection")
    args = parser.parse_args(argv)

    try:
        target = parse_lookup_target(args.domain)
    except ValueError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    result = asyncio.run(run_scan(args.image, target, save=args.save))
    print(format_result(result))


if __name__ == "__main__":
    main()
