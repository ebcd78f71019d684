"""
RapidOCR Plugin

ONNX PP-OCR models run through rapidocr_onnxruntime. Detection,
recognition and direction-classification models plus the character
dictionary are fetched into RapidOCR/ on first use. Output is one line
block per detected polygon with the engine's own score.
"""

from pathlib import Path
from typing import Any, Dict, List

import cv2
import numpy as np

from ..assets.store import AssetSpec
from ..config import DEFAULT_RAPIDOCR_URL
from .interface import BlockType, OcrDriver, ParsedOutput
from .parser import parse_polygon_regions

# asset_id -> (relative path, release file name)
RAPIDOCR_MODELS = {
    "det_model": ("det_models/ch_PP-OCRv5_mobile_det.onnx", "ch_PP-OCRv5_mobile_det.onnx"),
    "rec_model": ("rec_models/ch_PP-OCRv5_rec_mobile_infer.onnx", "ch_PP-OCRv5_rec_mobile_infer.onnx"),
    "cls_model": ("cls_models/ch_ppocr_mobile_v2.0_cls_infer.onnx", "ch_ppocr_mobile_v2.0_cls_infer.onnx"),
    "rec_keys": ("dict/ppocr_keys_v1.txt", "ppocr_keys_v1.txt"),
}


class RapidOcrDriver(OcrDriver):
    """RapidOCR 플러그인 (오프라인, ONNX)"""

    native_module = "rapidocr_onnxruntime"
    asset_dir_name = "RapidOCR"

    def __init__(self, models_url: str = DEFAULT_RAPIDOCR_URL, enable_preprocessing: bool = True):
        self.models_url = models_url.rstrip("/")
        self.enable_preprocessing = enable_preprocessing

    def name(self) -> str:
        return "RapidOCR"

    def description(self) -> str:
        if self.enable_preprocessing:
            return "RapidOCR PP-OCR v5 - preprocessing enabled"
        return "RapidOCR PP-OCR v5 - basic mode"

    def required_assets(self) -> List[AssetSpec]:
        return [
            AssetSpec(asset_id, relative, f"{self.models_url}/{filename}")
            for asset_id, (relative, filename) in RAPIDOCR_MODELS.items()
        ]

    def create_handle(self, asset_paths: Dict[str, Path]) -> Any:
        from rapidocr_onnxruntime import RapidOCR

        return RapidOCR(
            det_model_path=str(asset_paths["det_model"]),
            rec_model_path=str(asset_paths["rec_model"]),
            cls_model_path=str(asset_paths["cls_model"]),
            rec_keys_path=str(asset_paths["rec_keys"]),
        )

    def run(self, handle: Any, image: np.ndarray) -> ParsedOutput:
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        # (None, None) when nothing was detected
        result, _elapse = handle(image)
        return parse_polygon_regions(result, BlockType.LINE)
