"""
Google Cloud Vision recognition client.

Submits an encoded image to the images:annotate endpoint and returns the
raw text lines, localized objects and web entities.

API: https://cloud.google.com/vision/docs/reference/rest/v1/images/annotate
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from scanbinder.models.failure import RecognitionServiceError
from scanbinder.services.http_retry import request_with_retry
from scanbinder.vision.preprocessing import PreparedImage

logger = logging.getLogger(__name__)

VISION_API_URL = "https://vision.googleapis.com/v1/images:annotate"

TEXT_DETECTION = "TEXT_DETECTION"
OBJECT_LOCALIZATION = "OBJECT_LOCALIZATION"
WEB_DETECTION = "WEB_DETECTION"

# Feature sets for the two scan modes
DETECTION_FEATURES: tuple[tuple[str, int], ...] = (
    (TEXT_DETECTION, 50),
    (OBJECT_LOCALIZATION, 10),
)
RECOGNITION_FEATURES: tuple[tuple[str, int], ...] = (
    (WEB_DETECTION, 5),
    (TEXT_DETECTION, 10),
)


@dataclass(frozen=True)
class LocalizedObject:
    """
    An object located in the image.

    Box coordinates are normalized to [0, 1] relative to image size.
    """

    name: str
    score: float
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass(frozen=True)
class WebEntity:
    """A web entity the service associates with the image."""

    description: str
    score: float


@dataclass
class RecognitionResult:
    """
    Raw recognition output.

    text_annotations follows the service convention: the first element is
    the full concatenated text, the rest are individual words or lines.
    An empty result means nothing was recognized; it is not an error.
    """

    text_annotations: list[str] = field(default_factory=list)
    objects: list[LocalizedObject] = field(default_factory=list)
    web_entities: list[WebEntity] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.text_annotations or self.objects or self.web_entities)


def build_annotate_request(
    image: PreparedImage, features: tuple[tuple[str, int], ...]
) -> dict[str, Any]:
    """Build the images:annotate JSON body for one image."""
    return {
        "requests": [
            {
                "image": {"content": image.base64()},
                "features": [
                    {"type": feature_type, "maxResults": max_results}
                    for feature_type, max_results in features
                ],
            }
        ]
    }


def _parse_object(raw: dict[str, Any]) -> LocalizedObject:
    vertices = raw.get("boundingPoly", {}).get("normalizedVertices", [])
    xs = [float(v.get("x", 0.0)) for v in vertices]
    ys = [float(v.get("y", 0.0)) for v in vertices]
    if xs and ys:
        x, y = min(xs), min(ys)
        width, height = max(xs) - x, max(ys) - y
    else:
        x = y = width = height = 0.0

    return LocalizedObject(
        name=str(raw.get("name", "")),
        score=float(raw.get("score", 0.0)),
        x=x,
        y=y,
        width=width,
        height=height,
    )


def parse_annotate_response(data: dict[str, Any]) -> RecognitionResult:
    """
    Parse an images:annotate response body.

    Raises:
        RecognitionServiceError: If the per-image response carries an error
    """
    responses = data.get("responses") or []
    if not responses:
        return RecognitionResult()

    first = responses[0] or {}
    error = first.get("error")
    if error:
        raise RecognitionServiceError(
            f"Vision API error {error.get('code', '?')}: {error.get('message', 'unknown')}",
            status_code=502,
        )

    text_annotations = [
        str(annotation["description"])
        for annotation in first.get("textAnnotations", [])
        if annotation.get("description")
    ]
    objects = [_parse_object(obj) for obj in first.get("localizedObjectAnnotations", [])]
    web_entities = [
        WebEntity(description=str(entity["description"]), score=float(entity.get("score", 0.0)))
        for entity in (first.get("webDetection") or {}).get("webEntities", [])
        if entity.get("description")
    ]

    return RecognitionResult(
        text_annotations=text_annotations,
        objects=objects,
        web_entities=web_entities,
    )


class RecognitionClient:
    """
    Client for the vision service.

    Pass an httpx.AsyncClient to share connections; otherwise a client is
    created per call.
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 15.0,
        retries: int = 1,
        backoff: float = 0.5,
        client: httpx.AsyncClient | None = None,
        url: str = VISION_API_URL,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._retries = retries
        self._backoff = backoff
        self._client = client
        self._url = url

    async def annotate(
        self, image: PreparedImage, features: tuple[tuple[str, int], ...]
    ) -> RecognitionResult:
        """
        Annotate one image with the requested features.

        Raises:
            RecognitionServiceError: On missing key, network failure,
                timeout, non-2xx status, or malformed response
        """
        if not self._api_key:
            raise RecognitionServiceError("Vision API key is not configured", status_code=503)

        body = build_annotate_request(image, features)

        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Vision API returned HTTP %d", e.response.status_code)
            raise RecognitionServiceError(
                f"Vision API returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            logger.error("Vision API timed out after %.1fs", self._timeout)
            raise RecognitionServiceError(f"Vision API timed out after {self._timeout}s") from e
        except httpx.RequestError as e:
            logger.error("Vision API request failed: %s", e)
            raise RecognitionServiceError(f"Vision API request failed: {e}") from e
        except ValueError as e:
            raise RecognitionServiceError("Vision API returned invalid JSON") from e

        if not isinstance(data, dict):
            raise RecognitionServiceError("Vision API returned an unexpected body")

        result = parse_annotate_response(data)
        logger.info(
            "Recognized %d text annotations, %d objects, %d web entities",
            len(result.text_annotations),
            len(result.objects),
            len(result.web_entities),
        )
        return result

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
        return await request_with_retry(
            client,
            "POST",
            self._url,
            retries=self._retries,
            backoff=self._backoff,
            params={"key": self._api_key},
            json=body,
            timeout=self._timeout,
        )

    async def annotate_for_detection(self, image: PreparedImage) -> RecognitionResult:
        """Text detection plus object localization, for multi-card scans."""
        return await self.annotate(image, DETECTION_FEATURES)

    async def annotate_for_recognition(self, image: PreparedImage) -> RecognitionResult:
        """Web entities plus text detection, for single-card recognition."""
        return await self.annotate(image, RECOGNITION_FEATURES)
