"""
Collection API endpoints.

CRUD, queries, stats and backup for the owned-card collection.
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession

from scanbinder.db.database import get_session
from scanbinder.db.operations import (
    add_detected_card,
    clear_entries,
    delete_entry,
    export_collection,
    get_collection_stats,
    get_entries_by_set,
    get_entry,
    get_unique_sets,
    import_collection,
    list_entries,
    search_entries,
    update_entry,
)
from scanbinder.models.card import CanonicalCardRecord, DetectedCard, GameDomain, generate_card_id
from scanbinder.models.collection import CollectionEntry

# Trimmed before the length check, so whitespace-only text is rejected
NonBlankText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

router = APIRouter(prefix="/collection", tags=["collection"])


class EntryResponse(BaseModel):
    """Response model for one collection entry."""

    id: str
    name: str
    set_name: str
    price: float
    image_url: str = ""
    date_added: datetime
    domain: GameDomain | None = None
    rarity: str | None = None
    card_number: str | None = None
    confidence: float = 1.0
    quantity: int = 1
    condition: str | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: CollectionEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            name=entry.name,
            set_name=entry.set_name,
            price=entry.price,
            image_url=entry.image_url,
            date_added=entry.date_added,
            domain=entry.domain,
            rarity=entry.rarity,
            card_number=entry.card_number,
            confidence=entry.confidence,
            quantity=entry.quantity,
            condition=entry.condition,
            notes=entry.notes,
            tags=list(entry.tags),
        )


class CollectionResponse(BaseModel):
    """Response model for a list of entries."""

    entries: list[EntryResponse] = Field(default_factory=list)
    total_cards: int = Field(default=0, description="Sum of quantities")
    unique_cards: int = Field(default=0, description="Number of entries")


def _collection_response(entries: list[CollectionEntry]) -> CollectionResponse:
    return CollectionResponse(
        entries=[EntryResponse.from_entry(e) for e in entries],
        total_cards=sum(e.quantity for e in entries),
        unique_cards=len(entries),
    )


class AcceptCardRequest(BaseModel):
    """Request model for accepting a detected card into the collection."""

    id: str | None = Field(
        default=None,
        description="Detected card id; a new id is generated when omitted",
    )
    name: NonBlankText
    set_name: NonBlankText = "Unknown Set"
    price: float = Field(default=0.0, ge=0)
    image_url: str = ""
    domain: GameDomain = Field(default=GameDomain.MTG)
    rarity: str | None = None
    card_number: str | None = None
    confidence: float = Field(default=1.0, ge=0, le=1)


class EntryUpdateRequest(BaseModel):
    """Request model for editing an entry. Omitted fields are unchanged."""

    name: NonBlankText | None = None
    set_name: NonBlankText | None = None
    price: float | None = Field(default=None, ge=0)
    condition: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    notes: str | None = None
    tags: list[str] | None = None


class SetsResponse(BaseModel):
    sets: list[str] = Field(default_factory=list)


class CollectionStatsResponse(BaseModel):
    """Response model for collection statistics."""

    total_cards: int = 0
    total_value: float = 0.0
    unique_cards: int = 0
    most_valuable: EntryResponse | None = None
    recent_additions: list[EntryResponse] = Field(default_factory=list)


class CollectionImportRequest(BaseModel):
    """Request model for restoring a collection from an export."""

    text: str = Field(
        ...,
        description="JSON document produced by GET /collection/export",
    )


class ImportResponse(BaseModel):
    cards_imported: int
    total_cards: int = Field(..., description="Sum of quantities after import")


class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    deleted: int = Field(..., description="Number of entries removed")
    message: str = ""


@router.get("", response_model=CollectionResponse)
async def get_collection(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionResponse:
    """All entries, newest first."""
    return _collection_response(await list_entries(session))


@router.post("", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def accept_card(
    request: AcceptCardRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> EntryResponse:
    """
    Accept a detected card into the collection.

    Posting the same id again replaces the stored entry.
    """
    detected = DetectedCard(
        card=CanonicalCardRecord(
            name=request.name,
            set_name=request.set_name,
            price=request.price,
            image_url=request.image_url,
            domain=request.domain,
            rarity=request.rarity,
            card_number=request.card_number,
        ),
        confidence=request.confidence,
        id=request.id or generate_card_id(),
    )
    entry = await add_detected_card(session, detected)
    return EntryResponse.from_entry(entry)


@router.delete("", response_model=DeleteResponse)
async def clear_collection(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """
    Delete every entry.

    This is irreversible. Export first to keep a backup.
    """
    removed = await clear_entries(session)
    return DeleteResponse(deleted=removed, message=f"Removed {removed} cards.")


@router.get("/search", response_model=CollectionResponse)
async def search_collection(
    session: Annotated[AsyncSession, Depends(get_session)],
    q: Annotated[str, Query(description="Matches name, set or notes")] = "",
) -> CollectionResponse:
    """Case-insensitive search. An empty query returns everything."""
    return _collection_response(await search_entries(session, q))


@router.get("/sets", response_model=SetsResponse)
async def list_sets(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SetsResponse:
    """Distinct set names, sorted."""
    return SetsResponse(sets=await get_unique_sets(session))


@router.get("/sets/{set_name}", response_model=CollectionResponse)
async def get_set(
    set_name: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionResponse:
    """Entries in one set, ordered by name."""
    return _collection_response(await get_entries_by_set(session, set_name))


@router.get("/stats", response_model=CollectionStatsResponse)
async def get_stats(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionStatsResponse:
    """Totals, the most valuable entry and the most recent additions."""
    stats = await get_collection_stats(session)
    return CollectionStatsResponse(
        total_cards=stats.total_cards,
        total_value=stats.total_value,
        unique_cards=stats.unique_cards,
        most_valuable=EntryResponse.from_entry(stats.most_valuable)
        if stats.most_valuable
        else None,
        recent_additions=[EntryResponse.from_entry(e) for e in stats.recent_additions],
    )


@router.get("/export")
async def export_user_collection(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> Response:
    """Download the collection as an interchange JSON document."""
    text = await export_collection(session)
    filename = f"card-collection-{datetime.now(UTC):%Y-%m-%d}.json"
    return Response(
        content=text,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_user_collection(
    request: CollectionImportRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ImportResponse:
    """
    Replace the collection with an exported document.

    The document is validated before anything is deleted. A malformed
    document fails with 400 and leaves the collection unchanged.
    """
    entries = await import_collection(session, request.text)
    return ImportResponse(
        cards_imported=len(entries),
        total_cards=sum(e.quantity for e in entries),
    )


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_collection_entry(
    entry_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> EntryResponse:
    """One entry by id. 404 if missing."""
    return EntryResponse.from_entry(await get_entry(session, entry_id))


@router.patch("/{entry_id}", response_model=EntryResponse)
async def edit_collection_entry(
    entry_id: str,
    request: EntryUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> EntryResponse:
    """
    Edit an entry.

    Only the fields present in the body change. Sending null for notes or
    condition clears them.
    """
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update",
        )

    try:
        entry = await update_entry(session, entry_id, **changes)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from e
    return EntryResponse.from_entry(entry)


@router.delete("/{entry_id}", response_model=DeleteResponse)
async def delete_collection_entry(
    entry_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """Delete one entry. Deleting a missing id is not an error."""
    deleted = await delete_entry(session, entry_id)

    if deleted:
        message = "Card removed from your collection."
    else:
        message = "No card found to delete."

    return DeleteResponse(deleted=int(deleted), message=message)
