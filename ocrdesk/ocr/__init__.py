"""
OCR Backend System

핵심 설계:
- 백엔드 독립적 인터페이스 (OcrDriver)
- 플러그인 레지스트리 (EngineRegistry)
- 표준화된 출력 (RecognitionResult, TextBlock)
"""

from .interface import (
    BackendDescriptor,
    BlockType,
    EngineState,
    InitResult,
    OcrDriver,
    ParsedOutput,
    RecognitionResult,
    TextBlock,
)
from .lifecycle import Backend
from .registry import EngineRegistry, build_default_registry
from .runner import BackendTaskRunner, initialize_async, recognize_async

__all__ = [
    "BackendDescriptor",
    "BlockType",
    "EngineState",
    "InitResult",
    "OcrDriver",
    "ParsedOutput",
    "RecognitionResult",
    "TextBlock",
    "Backend",
    "EngineRegistry",
    "build_default_registry",
    "BackendTaskRunner",
    "initialize_async",
    "recognize_async",
]
