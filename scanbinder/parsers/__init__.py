from scanbinder.parsers.collection_export import (
    CollectionExport,
    ExportedCard,
    parse_collection_export,
    serialize_collection,
)

__all__ = [
    "CollectionExport",
    "ExportedCard",
    "parse_collection_export",
    "serialize_collection",
]
