"""
Failure classification and the unified response envelope.

Errors from the scan pipeline, the catalog lookups and the collection
store reach the client as an ApiResponse with one of three outcomes:

- success: the request did what was asked
- known_failure: a KnownError subclass says what went wrong
- unknown_failure: anything else, reported with a fixed message

INVARIANT: No raw 500 errors may reach the client.

KnownError subclasses carry their classification as class attributes:

- ImageProcessingError: the photo cannot be decoded, stop this scan
- RecognitionServiceError: vision call failed, retryable, no partial result
- CatalogLookupError: one catalog failed, adapters log it and report a miss
- ImportFormatError: bad interchange document, collection untouched
- EntryNotFoundError: unknown collection entry id
"""

from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """What kind of thing failed."""

    INVALID_IMAGE = "invalid_image"
    INVALID_IMPORT = "invalid_import"
    NOT_FOUND = "not_found"
    SERVICE_UNAVAILABLE = "service_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Explanation attached to every non-success response."""

    kind: FailureKind
    message: str = Field(..., description="Explanation shown to the user")
    detail: str | None = Field(default=None, description="Technical detail, if any")
    suggestion: str | None = Field(default=None, description="What the user can do next")
    retryable: bool = False


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope shared by every failure path."""

    outcome: OutcomeType
    data: T | None = None
    failure: FailureDetail | None = None

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        retryable: bool = False,
    ) -> "ApiResponse[Any]":
        failure = FailureDetail(
            kind=kind, message=message, detail=detail, suggestion=suggestion, retryable=retryable
        )
        return cls(outcome=OutcomeType.KNOWN_FAILURE, failure=failure)


class KnownError(Exception):
    """
    A failure the service can explain.

    Subclasses set kind, status_code, message and suggestion; callers
    pass only the detail.
    """

    kind: ClassVar[FailureKind] = FailureKind.UNKNOWN
    status_code: int = 400
    message: str = "The request failed."
    suggestion: ClassVar[str | None] = None
    retryable: ClassVar[bool] = False

    def __init__(self, detail: str | None = None, message: str | None = None):
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(self.message)

    def to_response(self) -> ApiResponse[Any]:
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            retryable=self.retryable,
        )


class ImageProcessingError(KnownError):
    """The captured image could not be decoded or re-encoded."""

    kind = FailureKind.INVALID_IMAGE
    status_code = 422
    message = "The image could not be processed."
    suggestion = "Retake the photo or choose a different image."


class RecognitionServiceError(KnownError):
    """The vision service call failed on network, auth or quota."""

    kind = FailureKind.SERVICE_UNAVAILABLE
    status_code = 503
    message = "Failed to detect cards in image."
    suggestion = "Check your connection and try again."
    retryable = True

    def __init__(self, detail: str | None = None, status_code: int = 503):
        self.status_code = status_code
        super().__init__(detail)


class CatalogLookupError(KnownError):
    """One catalog adapter failed for one name."""

    kind = FailureKind.EXTERNAL_API_ERROR
    status_code = 502
    retryable = True

    def __init__(self, domain: str, card_name: str, detail: str | None = None):
        self.domain = domain
        self.card_name = card_name
        super().__init__(detail, message=f"Catalog lookup failed for '{card_name}' ({domain}).")


class ImportFormatError(KnownError):
    """The interchange document is malformed."""

    kind = FailureKind.INVALID_IMPORT
    status_code = 400
    message = "The collection file could not be imported."
    suggestion = "Use a file produced by the collection export."


class EntryNotFoundError(KnownError):
    """No collection entry has the requested id."""

    kind = FailureKind.NOT_FOUND
    status_code = 404
    message = "Card not found in your collection."

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"No entry with id '{entry_id}'")


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================
#
# Exception handlers build failure responses only through
# create_known_failure and create_unknown_failure, which check the
# envelope shape before it is rendered.
#
# =============================================================================

UNKNOWN_FAILURE_MESSAGE = "I failed and I don't know why. Try simplifying the request or retrying."
UNKNOWN_FAILURE_SUGGESTION = "If this persists, please report the issue."


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Check the envelope shape before a response leaves the service.

    Raises:
        ValueError: If a success carries failure details, or a failure lacks them
    """
    is_success = response.outcome == OutcomeType.SUCCESS
    if is_success and response.failure is not None:
        raise ValueError("Success response must not have failure details")
    if not is_success and response.failure is None:
        raise ValueError(f"{response.outcome.value} response must have failure details")

    return response


def create_known_failure(error: KnownError) -> ApiResponse[Any]:
    """Finalized envelope for a KnownError."""
    return finalize_response(error.to_response())


def create_unknown_failure(exception: Exception, include_type: bool = True) -> ApiResponse[Any]:
    """
    Finalized envelope for an unclassified exception.

    The message is always the standard one; at most the exception type
    name is exposed, never its text.
    """
    failure = FailureDetail(
        kind=FailureKind.UNKNOWN,
        message=UNKNOWN_FAILURE_MESSAGE,
        detail=type(exception).__name__ if include_type else None,
        suggestion=UNKNOWN_FAILURE_SUGGESTION,
    )
    return finalize_response(ApiResponse(outcome=OutcomeType.UNKNOWN_FAILURE, failure=failure))
