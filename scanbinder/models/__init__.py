from scanbinder.models.app_settings import SETTINGS_KEY, AppSettings
from scanbinder.models.card import (
    EXHAUSTIVE_ORDER,
    BoundingBox,
    CanonicalCardRecord,
    DetectedCard,
    GameDomain,
    generate_card_id,
    parse_game_domain,
)
from scanbinder.models.collection import CollectionEntry, CollectionStats
from scanbinder.models.failure import (
    UNKNOWN_FAILURE_MESSAGE,
    ApiResponse,
    CatalogLookupError,
    EntryNotFoundError,
    FailureDetail,
    FailureKind,
    ImageProcessingError,
    ImportFormatError,
    KnownError,
    OutcomeType,
    RecognitionServiceError,
    create_known_failure,
    create_unknown_failure,
    finalize_response,
)

__all__ = [
    "AppSettings",
    "ApiResponse",
    "BoundingBox",
    "CanonicalCardRecord",
    "CatalogLookupError",
    "CollectionEntry",
    "CollectionStats",
    "DetectedCard",
    "EXHAUSTIVE_ORDER",
    "EntryNotFoundError",
    "FailureDetail",
    "FailureKind",
    "GameDomain",
    "ImageProcessingError",
    "ImportFormatError",
    "KnownError",
    "OutcomeType",
    "RecognitionServiceError",
    "SETTINGS_KEY",
    "UNKNOWN_FAILURE_MESSAGE",
    "create_known_failure",
    "create_unknown_failure",
    "finalize_response",
    "generate_card_id",
    "parse_game_domain",
]
