"""Tests for collection store operations."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from fakes import make_record
from sqlalchemy.ext.asyncio import AsyncSession

from scanbinder.db.database import Database
from scanbinder.db.operations import (
    add_detected_card,
    add_entry,
    clear_entries,
    delete_entry,
    export_collection,
    get_collection_stats,
    get_entries_by_set,
    get_entry,
    get_settings,
    get_unique_sets,
    import_collection,
    list_entries,
    save_settings,
    search_entries,
    update_entry,
)
from scanbinder.models.app_settings import AppSettings
from scanbinder.models.card import DetectedCard, GameDomain
from scanbinder.models.collection import CollectionEntry
from scanbinder.models.failure import EntryNotFoundError, ImportFormatError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _entry(
    id: str,
    name: str,
    set_name: str = "Alpha",
    price: float = 1.0,
    minutes: int = 0,
    **kwargs,
) -> CollectionEntry:
    return CollectionEntry(
        id=id,
        name=name,
        set_name=set_name,
        price=price,
        image_url="",
        date_added=NOW + timedelta(minutes=minutes),
        **kwargs,
    )


@pytest.fixture
async def populated(session: AsyncSession) -> AsyncSession:
    await add_entry(session, _entry("1", "Black Lotus", "Alpha", 50000.0, 0, notes="grail"))
    await add_entry(session, _entry("2", "Mox Pearl", "Alpha", 4000.0, 1))
    await add_entry(session, _entry("3", "Charizard", "Base", 300.0, 2, domain=GameDomain.POKEMON))
    await add_entry(session, _entry("4", "Sol Ring", "Commander", 2.0, 3, quantity=4))
    await session.commit()
    return session


class TestEntryOperations:
    async def test_add_and_get(self, session: AsyncSession) -> None:
        await add_entry(session, _entry("1", "Black Lotus", tags=["power"]))
        await session.commit()

        entry = await get_entry(session, "1")

        assert entry.name == "Black Lotus"
        assert entry.tags == ["power"]
        assert entry.quantity == 1

    async def test_add_detected_card(self, session: AsyncSession) -> None:
        detected = DetectedCard(
            card=make_record("Charizard", GameDomain.POKEMON, price=300.0), confidence=0.85
        )

        entry = await add_detected_card(session, detected, added_at=NOW)
        await session.commit()

        assert entry.id == detected.id
        stored = await get_entry(session, detected.id)
        assert stored.domain == GameDomain.POKEMON
        assert stored.confidence == 0.85
        assert stored.quantity == 1

    async def test_add_same_id_replaces(self, session: AsyncSession) -> None:
        await add_entry(session, _entry("1", "Black Lotus", price=1.0))
        await add_entry(session, _entry("1", "Black Lotus", price=2.0))
        await session.commit()

        entries = await list_entries(session)

        assert len(entries) == 1
        assert entries[0].price == 2.0

    async def test_add_rejects_zero_quantity(self, session: AsyncSession) -> None:
        with pytest.raises(ValueError):
            await add_entry(session, _entry("1", "Black Lotus", quantity=0))

    async def test_get_missing(self, session: AsyncSession) -> None:
        with pytest.raises(EntryNotFoundError) as exc_info:
            await get_entry(session, "nope")

        assert exc_info.value.status_code == 404

    async def test_list_newest_first(self, populated: AsyncSession) -> None:
        entries = await list_entries(populated)

        assert [e.id for e in entries] == ["4", "3", "2", "1"]

    async def test_update_fields(self, populated: AsyncSession) -> None:
        entry = await update_entry(
            populated, "2", quantity=2, condition="LP", notes="binder page 3", tags=["power"]
        )

        assert entry.quantity == 2
        assert entry.condition == "LP"
        assert entry.notes == "binder page 3"
        assert entry.tags == ["power"]

    async def test_update_none_clears_notes_only(self, populated: AsyncSession) -> None:
        entry = await update_entry(populated, "1", notes=None, name=None)

        assert entry.notes is None
        assert entry.name == "Black Lotus"

    async def test_update_rejects_non_editable_field(self, populated: AsyncSession) -> None:
        with pytest.raises(ValueError, match="cannot be edited"):
            await update_entry(populated, "1", id="other")

    async def test_update_rejects_bad_quantity(self, populated: AsyncSession) -> None:
        with pytest.raises(ValueError):
            await update_entry(populated, "1", quantity=0)

    async def test_update_missing(self, session: AsyncSession) -> None:
        with pytest.raises(EntryNotFoundError):
            await update_entry(session, "nope", notes="x")

    async def test_delete(self, populated: AsyncSession) -> None:
        assert await delete_entry(populated, "1") is True
        assert await delete_entry(populated, "1") is False

        assert [e.id for e in await list_entries(populated)] == ["4", "3", "2"]

    async def test_clear(self, populated: AsyncSession) -> None:
        removed = await clear_entries(populated)
        await populated.commit()

        assert removed == 4
        assert await list_entries(populated) == []


class TestQueries:
    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("lotus", ["1"]),
            ("ALPHA", ["2", "1"]),
            ("GRAIL", ["1"]),
            ("r", ["4", "3", "2", "1"]),
            ("zzz", []),
        ],
    )
    async def test_search(self, populated: AsyncSession, query: str, expected: list[str]) -> None:
        results = await search_entries(populated, query)

        assert [e.id for e in results] == expected

    async def test_empty_search_returns_all(self, populated: AsyncSession) -> None:
        assert len(await search_entries(populated, "  ")) == 4

    async def test_entries_by_set_ordered_by_name(self, populated: AsyncSession) -> None:
        results = await get_entries_by_set(populated, "Alpha")

        assert [e.name for e in results] == ["Black Lotus", "Mox Pearl"]

    async def test_entries_by_set_is_exact(self, populated: AsyncSession) -> None:
        assert await get_entries_by_set(populated, "alpha") == []

    async def test_unique_sets(self, populated: AsyncSession) -> None:
        assert await get_unique_sets(populated) == ["Alpha", "Base", "Commander"]

    async def test_stats(self, populated: AsyncSession) -> None:
        stats = await get_collection_stats(populated)

        assert stats.total_cards == 7
        assert stats.unique_cards == 4
        assert stats.total_value == pytest.approx(54308.0)
        assert stats.most_valuable is not None
        assert stats.most_valuable.id == "1"
        assert [e.id for e in stats.recent_additions] == ["4", "3", "2", "1"]

    async def test_stats_recent_limit(self, populated: AsyncSession) -> None:
        stats = await get_collection_stats(populated, recent=2)

        assert [e.id for e in stats.recent_additions] == ["4", "3"]

    async def test_stats_empty(self, session: AsyncSession) -> None:
        stats = await get_collection_stats(session)

        assert stats.total_cards == 0
        assert stats.most_valuable is None


class TestExportImport:
    async def test_export_document(self, populated: AsyncSession) -> None:
        data = json.loads(await export_collection(populated, exported_at=NOW))

        assert data["totalCards"] == 4
        assert [c["id"] for c in data["cards"]] == ["4", "3", "2", "1"]
        assert data["cards"][0]["quantity"] == 4

    async def test_export_then_import_is_identity(self, populated: AsyncSession) -> None:
        before = await list_entries(populated)
        text = await export_collection(populated)

        await import_collection(populated, text)
        await populated.commit()

        assert await list_entries(populated) == before

    async def test_import_replaces_not_merges(self, populated: AsyncSession) -> None:
        cards = [
            {"id": f"new-{i}", "name": f"Card {i}", "dateAdded": f"2024-06-0{i}T00:00:00"}
            for i in range(1, 4)
        ]
        text = json.dumps({"exportDate": "2024-06-05T00:00:00", "totalCards": 3, "cards": cards})

        imported = await import_collection(populated, text)
        await populated.commit()

        assert len(imported) == 3
        assert {e.id for e in await list_entries(populated)} == {"new-1", "new-2", "new-3"}

    async def test_malformed_import_leaves_store_unchanged(self, populated: AsyncSession) -> None:
        before = await list_entries(populated)

        with pytest.raises(ImportFormatError):
            await import_collection(populated, '{"cards": [{"id": "x"}]}')

        assert await list_entries(populated) == before

    async def test_import_rolls_back_with_session(self, database: Database) -> None:
        async with database.session() as session:
            await add_entry(session, _entry("1", "Black Lotus"))

        with pytest.raises(ImportFormatError):
            async with database.session() as session:
                await import_collection(session, "not json")

        async with database.session() as session:
            assert [e.id for e in await list_entries(session)] == ["1"]


class TestSettingsOperations:
    async def test_defaults_when_nothing_stored(self, session: AsyncSession) -> None:
        assert await get_settings(session) == AppSettings()

    async def test_save_and_reload(self, session: AsyncSession) -> None:
        await save_settings(session, AppSettings(dark_mode=True, high_quality_scan=False))
        await session.commit()

        loaded = await get_settings(session)

        assert loaded.dark_mode is True
        assert loaded.high_quality_scan is False

    async def test_save_overwrites(self, session: AsyncSession) -> None:
        await save_settings(session, AppSettings(dark_mode=True))
        await save_settings(session, AppSettings(dark_mode=False, notifications=False))
        await session.commit()

        loaded = await get_settings(session)

        assert loaded.dark_mode is False
        assert loaded.notifications is False
