"""
OCR Engine Interface (추상화 계층)

모든 OCR 백엔드는 OcrDriver 를 구현하고, 결과는 RecognitionResult 하나의
형태로 정규화된다.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from importlib.util import find_spec
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..assets.store import AssetSpec
from ..base import BBox, Coord, order_quad, rotated_rect_points
from ..config import DEFAULT_CONFIDENCE


# =============================================================================
# Text blocks (표준 출력 단위)
# =============================================================================

class BlockType(str, Enum):
    """Granularity of a recognized unit"""
    PARAGRAPH = "paragraph"
    LINE = "line"
    WORD = "word"


@dataclass
class TextBlock:
    """
    One recognized unit

    box_points is always four corners in top-left, top-right,
    bottom-right, bottom-left order; bounding_box is derived from them.
    """
    text: str
    confidence: float
    box_points: List[Coord]
    block_type: BlockType = BlockType.LINE

    def __post_init__(self):
        self.text = self.text.strip()
        if not self.text:
            raise ValueError("TextBlock text must be non-empty")
        if len(self.box_points) != 4:
            raise ValueError(f"TextBlock needs 4 box points, got {len(self.box_points)}")
        self.confidence = min(1.0, max(0.0, float(self.confidence)))

    @property
    def bounding_box(self) -> BBox:
        """Axis-aligned envelope of box_points"""
        return BBox.envelope(self.box_points)

    @property
    def confidence_percent(self) -> str:
        return f"{self.confidence * 100:.1f}%"

    @property
    def bounding_box_str(self) -> str:
        box = self.bounding_box
        return f"[{box.x}, {box.y}, {box.width}, {box.height}]"

    @classmethod
    def from_rect(
        cls,
        text: str,
        x: int,
        y: int,
        width: int,
        height: int,
        confidence: float = DEFAULT_CONFIDENCE,
        block_type: BlockType = BlockType.WORD,
    ) -> "TextBlock":
        return cls(text, confidence, BBox.from_cv2_rect(x, y, width, height).corners(), block_type)

    @classmethod
    def from_points(
        cls,
        text: str,
        points: Sequence[Coord],
        confidence: float = DEFAULT_CONFIDENCE,
        block_type: BlockType = BlockType.LINE,
    ) -> "TextBlock":
        return cls(text, confidence, order_quad(list(points)), block_type)

    @classmethod
    def from_rotated_rect(
        cls,
        text: str,
        center: tuple,
        size: tuple,
        angle: float,
        confidence: float = DEFAULT_CONFIDENCE,
        block_type: BlockType = BlockType.LINE,
    ) -> "TextBlock":
        return cls(text, confidence, rotated_rect_points(center, size, angle), block_type)


# =============================================================================
# Recognition result (표준 결과)
# =============================================================================

@dataclass
class RecognitionResult:
    """
    Outcome of one recognize() call

    success=False always carries an error and no text/blocks;
    success=True never carries an error. Use ok() / fail().
    """
    success: bool
    engine_name: str
    text: str = ""
    blocks: List[TextBlock] = field(default_factory=list)
    elapsed_ms: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None
    skipped_regions: int = 0

    def __post_init__(self):
        self.elapsed_ms = max(0, int(self.elapsed_ms))
        if self.success:
            if self.error is not None:
                raise ValueError("successful result cannot carry an error")
            self.text = self.text.strip()
        else:
            if not self.error:
                raise ValueError("failed result needs an error description")
            if self.text or self.blocks:
                raise ValueError("failed result cannot carry text or blocks")

    @property
    def region_count(self) -> int:
        return len(self.blocks)

    @property
    def average_confidence(self) -> float:
        if not self.blocks:
            return 0.0
        return sum(b.confidence for b in self.blocks) / len(self.blocks)

    @classmethod
    def ok(
        cls,
        engine_name: str,
        text: str,
        blocks: List[TextBlock],
        elapsed_ms: int,
        skipped_regions: int = 0,
    ) -> "RecognitionResult":
        return cls(
            success=True,
            engine_name=engine_name,
            text=text,
            blocks=list(blocks),
            elapsed_ms=elapsed_ms,
            skipped_regions=skipped_regions,
        )

    @classmethod
    def fail(
        cls,
        engine_name: str,
        error: str,
        *,
        kind: Optional[str] = None,
        elapsed_ms: int = 0,
    ) -> "RecognitionResult":
        return cls(
            success=False,
            engine_name=engine_name,
            error=error,
            error_kind=kind,
            elapsed_ms=elapsed_ms,
        )


# =============================================================================
# Lifecycle metadata
# =============================================================================

class EngineState(str, Enum):
    """Backend lifecycle state"""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class BackendDescriptor:
    """Registry entry: metadata only, never touches native resources"""
    name: str
    description: str
    requires_online_model: bool
    state: EngineState
    available: bool = True
    enable_preprocessing: bool = False

    @property
    def is_initialized(self) -> bool:
        return self.state is EngineState.READY

    @property
    def display_name(self) -> str:
        return f"{self.name} - {self.description}"


@dataclass
class InitResult:
    """Returned by a successful initialize()"""
    engine_name: str
    state: EngineState
    already_initialized: bool = False
    asset_paths: Dict[str, Path] = field(default_factory=dict)


@dataclass
class ParsedOutput:
    """
    Native output after normalization, before timing/wrapping

    separator joins block texts when the engine gives no full text of its
    own. skipped counts native regions that could not be parsed.
    """
    blocks: List[TextBlock] = field(default_factory=list)
    skipped: int = 0
    separator: str = "\n"
    text: Optional[str] = None


# =============================================================================
# OCR Driver Interface (백엔드별 전략)
# =============================================================================

class OcrDriver(ABC):
    """
    One OCR technology

    Drivers hold configuration only. The native handle is created by
    create_handle() and owned by the Backend that calls it; drivers never
    keep a reference to it.
    """

    #: importable module that must exist for the driver to work
    native_module: str = ""
    #: directory under the asset root holding this driver's files
    asset_dir_name: str = ""
    requires_online_model: bool = False
    enable_preprocessing: bool = False

    @abstractmethod
    def name(self) -> str:
        """엔진 이름"""
        pass

    @abstractmethod
    def description(self) -> str:
        """사람이 읽는 설명"""
        pass

    def required_assets(self) -> List[AssetSpec]:
        """Files that must exist under the asset directory before create_handle()"""
        return []

    def is_available(self) -> bool:
        """Native library importable (checked without importing it)"""
        if not self.native_module:
            return True
        try:
            return find_spec(self.native_module) is not None
        except (ImportError, ValueError):
            return False

    @abstractmethod
    def create_handle(self, asset_paths: Dict[str, Path]) -> Any:
        """
        Build the native engine

        Args:
            asset_paths: asset_id -> resolved local path for required_assets()

        Returns:
            Opaque native handle
        """
        pass

    @abstractmethod
    def run(self, handle: Any, image: np.ndarray) -> ParsedOutput:
        """Recognize a decoded BGR (or preprocessed grayscale) image"""
        pass

    def release_handle(self, handle: Any) -> None:
        """Free native resources; default closes handles that expose close()"""
        close = getattr(handle, "close", None)
        if callable(close):
            close()


