"""
PaddleOCR Plugin

paddleocr downloads and caches its own models on first construction, so
no assets are declared here and the backend is flagged as needing network
access.
"""

from pathlib import Path
from typing import Any, Dict

import cv2
import numpy as np

from ..config import DEFAULT_PADDLE_LANG
from .interface import OcrDriver, ParsedOutput
from .parser import parse_paddle_output


class PaddleOcrDriver(OcrDriver):
    """PaddleOCR 플러그인 (온라인 모델, 정확도 높음)"""

    native_module = "paddleocr"
    requires_online_model = True

    def __init__(self, lang: str = DEFAULT_PADDLE_LANG, use_angle_cls: bool = True):
        self.lang = lang
        self.use_angle_cls = use_angle_cls

    def name(self) -> str:
        return "PaddleOCR"

    def description(self) -> str:
        return "PaddleOCR Chinese/English models - high accuracy"

    def create_handle(self, asset_paths: Dict[str, Path]) -> Any:
        from paddleocr import PaddleOCR

        return PaddleOCR(use_angle_cls=self.use_angle_cls, lang=self.lang)

    def run(self, handle: Any, image: np.ndarray) -> ParsedOutput:
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        raw = handle.ocr(image)
        return parse_paddle_output(raw, image.shape)
