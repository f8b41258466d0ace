"""
Database CRUD operations.

Provides async functions for creating, reading, updating, and deleting
collection entries, collection queries, export/import, and the settings
record. Every function takes the session it runs in; the caller owns the
transaction boundary.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from scanbinder.config import RECENT_ADDITIONS_LIMIT
from scanbinder.models.app_settings import SETTINGS_KEY, AppSettings
from scanbinder.models.card import DetectedCard, GameDomain
from scanbinder.models.collection import CollectionEntry, CollectionStats
from scanbinder.models.db import AppSettingDB, CollectionEntryDB
from scanbinder.models.failure import EntryNotFoundError
from scanbinder.parsers.collection_export import parse_collection_export, serialize_collection

logger = logging.getLogger(__name__)

# Fields a user may change on an existing entry
EDITABLE_FIELDS = frozenset(
    {"name", "set_name", "price", "condition", "quantity", "notes", "tags"}
)


# --- Conversion ---


def entry_to_model(row: CollectionEntryDB) -> CollectionEntry:
    """Convert a database row to a domain model."""
    domain = None
    if row.domain:
        try:
            domain = GameDomain(row.domain)
        except ValueError:
            logger.warning("Entry %s has unknown domain %r", row.id, row.domain)

    return CollectionEntry(
        id=row.id,
        name=row.name,
        set_name=row.set_name,
        price=row.price,
        image_url=row.image_url or "",
        date_added=row.date_added,
        domain=domain,
        rarity=row.rarity,
        card_number=row.card_number,
        confidence=row.confidence,
        quantity=row.quantity,
        condition=row.condition,
        notes=row.notes,
        tags=list(row.tags or []),
    )


def _entry_to_row(entry: CollectionEntry) -> CollectionEntryDB:
    return CollectionEntryDB(
        id=entry.id,
        name=entry.name,
        set_name=entry.set_name,
        price=entry.price,
        image_url=entry.image_url,
        domain=entry.domain.value if entry.domain else None,
        rarity=entry.rarity,
        card_number=entry.card_number,
        confidence=entry.confidence,
        date_added=entry.date_added,
        condition=entry.condition,
        quantity=entry.quantity,
        notes=entry.notes,
        tags=list(entry.tags),
    )


# --- Entry Operations ---


async def add_entry(session: AsyncSession, entry: CollectionEntry) -> CollectionEntry:
    """
    Insert or replace an entry by id.

    Returns the stored entry.
    """
    if entry.quantity < 1:
        raise ValueError(f"Quantity must be positive, got {entry.quantity}")

    row = await session.merge(_entry_to_row(entry))
    await session.flush()
    return entry_to_model(row)


async def add_detected_card(
    session: AsyncSession,
    detected: DetectedCard,
    added_at: datetime | None = None,
) -> CollectionEntry:
    """Accept a detected card into the collection with quantity 1."""
    entry = CollectionEntry.from_detected(detected, added_at or datetime.now(UTC))
    return await add_entry(session, entry)


async def get_entry_row(session: AsyncSession, entry_id: str) -> CollectionEntryDB | None:
    """Get an entry row by id, or None if not found."""
    return await session.get(CollectionEntryDB, entry_id)


async def get_entry(session: AsyncSession, entry_id: str) -> CollectionEntry:
    """
    Get an entry by id.

    Raises EntryNotFoundError if no entry has this id.
    """
    row = await get_entry_row(session, entry_id)
    if row is None:
        raise EntryNotFoundError(entry_id)
    return entry_to_model(row)


async def list_entries(session: AsyncSession) -> list[CollectionEntry]:
    """All entries, newest first."""
    result = await session.execute(
        select(CollectionEntryDB).order_by(
            CollectionEntryDB.date_added.desc(), CollectionEntryDB.id.desc()
        )
    )
    return [entry_to_model(row) for row in result.scalars().all()]


async def update_entry(
    session: AsyncSession, entry_id: str, **changes: Any
) -> CollectionEntry:
    """
    Apply user edits to an entry.

    Only EDITABLE_FIELDS may be changed. Fields passed as None are left
    untouched except notes and condition, which None clears.

    Raises:
        EntryNotFoundError: If no entry has this id
        ValueError: If a field is not editable or a value is invalid
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be edited: {sorted(unknown)}")

    row = await get_entry_row(session, entry_id)
    if row is None:
        raise EntryNotFoundError(entry_id)

    quantity = changes.get("quantity")
    if quantity is not None and quantity < 1:
        raise ValueError(f"Quantity must be positive, got {quantity}")
    price = changes.get("price")
    if price is not None and price < 0:
        raise ValueError(f"Price must not be negative, got {price}")

    for field_name, value in changes.items():
        if value is None and field_name not in ("notes", "condition"):
            continue
        if field_name == "tags":
            value = list(value)
        setattr(row, field_name, value)

    await session.flush()
    return entry_to_model(row)


async def delete_entry(session: AsyncSession, entry_id: str) -> bool:
    """
    Delete an entry.

    Returns True if deleted, False if not found.
    """
    row = await get_entry_row(session, entry_id)
    if row is None:
        return False

    await session.delete(row)
    await session.flush()
    return True


async def clear_entries(session: AsyncSession) -> int:
    """
    Delete every entry.

    Returns the number of deleted records.
    """
    result = await session.execute(delete(CollectionEntryDB))
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount)  # type: ignore[attr-defined]


# --- Queries ---


async def search_entries(session: AsyncSession, query: str) -> list[CollectionEntry]:
    """
    Case-insensitive substring search over name, set and notes.

    An empty query returns the whole collection. Newest first.
    """
    query = query.strip()
    if not query:
        return await list_entries(session)

    pattern = f"%{query.lower()}%"
    result = await session.execute(
        select(CollectionEntryDB)
        .where(
            or_(
                func.lower(CollectionEntryDB.name).like(pattern),
                func.lower(CollectionEntryDB.set_name).like(pattern),
                func.lower(CollectionEntryDB.notes).like(pattern),
            )
        )
        .order_by(CollectionEntryDB.date_added.desc(), CollectionEntryDB.id.desc())
    )
    return [entry_to_model(row) for row in result.scalars().all()]


async def get_entries_by_set(session: AsyncSession, set_name: str) -> list[CollectionEntry]:
    """Entries whose set matches exactly, ordered by name."""
    result = await session.execute(
        select(CollectionEntryDB)
        .where(CollectionEntryDB.set_name == set_name)
        .order_by(CollectionEntryDB.name, CollectionEntryDB.id)
    )
    return [entry_to_model(row) for row in result.scalars().all()]


async def get_unique_sets(session: AsyncSession) -> list[str]:
    """Distinct set names in the collection, sorted."""
    result = await session.execute(
        select(CollectionEntryDB.set_name).distinct().order_by(CollectionEntryDB.set_name)
    )
    return list(result.scalars().all())


async def get_collection_stats(
    session: AsyncSession, recent: int = RECENT_ADDITIONS_LIMIT
) -> CollectionStats:
    """Aggregate stats over the whole collection."""
    entries = await list_entries(session)
    return CollectionStats.from_entries(entries, recent=recent)


# --- Export / Import ---


async def export_collection(
    session: AsyncSession, exported_at: datetime | None = None
) -> str:
    """Serialize every entry, newest first, to the interchange format."""
    entries = await list_entries(session)
    return serialize_collection(entries, exported_at)


async def import_collection(session: AsyncSession, text: str) -> list[CollectionEntry]:
    """
    Replace the collection with the contents of an export.

    The document is validated completely before anything is deleted.
    Delete and insert run in the session's transaction, so a rollback
    discards both.

    Raises:
        ImportFormatError: If the document is malformed (store unchanged)
    """
    entries = parse_collection_export(text)

    removed = await clear_entries(session)
    session.add_all([_entry_to_row(entry) for entry in entries])
    await session.flush()

    logger.info("Imported %d entries, replaced %d", len(entries), removed)
    return entries


# --- Settings ---


async def get_settings(session: AsyncSession) -> AppSettings:
    """Stored settings, or defaults when nothing is stored."""
    row = await session.get(AppSettingDB, SETTINGS_KEY)
    if row is None:
        return AppSettings()
    return AppSettings.model_validate(row.value)


async def save_settings(session: AsyncSession, app_settings: AppSettings) -> AppSettings:
    """Persist the settings record."""
    value = app_settings.model_dump(by_alias=True)
    row = await session.get(AppSettingDB, SETTINGS_KEY)
    if row is None:
        session.add(AppSettingDB(key=SETTINGS_KEY, value=value))
    else:
        row.value = value
    await session.flush()
    return app_settings
