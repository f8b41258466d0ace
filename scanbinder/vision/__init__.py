from scanbinder.vision.preprocessing import PreparedImage, preprocess_image
from scanbinder.vision.recognition import (
    LocalizedObject,
    RecognitionClient,
    RecognitionResult,
    WebEntity,
)

__all__ = [
    "LocalizedObject",
    "PreparedImage",
    "RecognitionClient",
    "RecognitionResult",
    "WebEntity",
    "preprocess_image",
]
