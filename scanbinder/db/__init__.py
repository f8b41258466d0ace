from scanbinder.db.database import Database, get_database, get_session
from scanbinder.db.operations import (
    add_detected_card,
    add_entry,
    clear_entries,
    delete_entry,
    entry_to_model,
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

__all__ = [
    "Database",
    "add_detected_card",
    "add_entry",
    "clear_entries",
    "delete_entry",
    "entry_to_model",
    "export_collection",
    "get_collection_stats",
    "get_database",
    "get_entries_by_set",
    "get_entry",
    "get_session",
    "get_settings",
    "get_unique_sets",
    "import_collection",
    "list_entries",
    "save_settings",
    "search_entries",
    "update_entry",
]
