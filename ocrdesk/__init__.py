"""
ocrdesk - pluggable OCR backends

여러 OCR 엔진(Tesseract, RapidOCR, PaddleOCR)을 하나의 수명 주기와 결과
형태로 묶는다. Models are fetched on first initialization.
"""

from .config import OcrSettings
from .errors import (
    DownloadError,
    ImageLoadError,
    InitError,
    NotInitializedError,
    OcrDeskError,
    RecognitionError,
)
from .ocr import (
    Backend,
    EngineRegistry,
    EngineState,
    RecognitionResult,
    TextBlock,
    build_default_registry,
)

__version__ = "0.1.0"

__all__ = [
    "OcrSettings",
    "OcrDeskError",
    "DownloadError",
    "InitError",
    "NotInitializedError",
    "ImageLoadError",
    "RecognitionError",
    "Backend",
    "EngineRegistry",
    "EngineState",
    "RecognitionResult",
    "TextBlock",
    "build_default_registry",
]
