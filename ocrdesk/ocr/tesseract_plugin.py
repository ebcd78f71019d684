"""
Tesseract OCR Plugin

pytesseract drives the tesseract binary; the "handle" is the validated
language/config pair the binary is called with. Word-level blocks with
Tesseract's own confidences (0-100 scaled to 0-1).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import cv2
import numpy as np

from ..assets.store import AssetSpec
from ..config import DEFAULT_TESSDATA_URL, DEFAULT_TESSERACT_LANG
from .interface import OcrDriver, ParsedOutput
from .parser import parse_tesseract_tsv


@dataclass
class TesseractHandle:
    lang: str
    config: str
    version: str


class TesseractDriver(OcrDriver):
    """
    Tesseract OCR 플러그인 (무료, 빠름, 정확도 중간)

    Also backs the "OpenCV + Tesseract" variant: same tessdata directory,
    preprocessing on and a fixed page segmentation mode.
    """

    native_module = "pytesseract"
    asset_dir_name = "tessdata"

    def __init__(
        self,
        lang: str = DEFAULT_TESSERACT_LANG,
        tessdata_url: str = DEFAULT_TESSDATA_URL,
        enable_preprocessing: bool = False,
        psm: Optional[int] = None,
        display_name: str = "Tesseract OCR",
    ):
        self.lang = lang
        self.tessdata_url = tessdata_url.rstrip("/")
        self.enable_preprocessing = enable_preprocessing
        self.psm = psm
        self._display_name = display_name

    @property
    def languages(self) -> List[str]:
        return [code for code in self.lang.split("+") if code]

    def name(self) -> str:
        return self._display_name

    def description(self) -> str:
        if self.psm is None and not self.enable_preprocessing:
            return "Open-source OCR engine - multi-language recognition"
        if self.enable_preprocessing:
            return "Tesseract with OpenCV preprocessing"
        return "Tesseract - basic mode"

    def required_assets(self) -> List[AssetSpec]:
        return [
            AssetSpec(
                asset_id=f"{code}.traineddata",
                relative_path=f"{code}.traineddata",
                url=f"{self.tessdata_url}/{code}.traineddata",
            )
            for code in self.languages
        ]

    def _config(self, tessdata_dir: Optional[Path]) -> str:
        parts = []
        if tessdata_dir is not None:
            parts.append(f'--tessdata-dir "{tessdata_dir}"')
        if self.psm is not None:
            parts.append(f"--psm {self.psm}")
        return " ".join(parts)

    def create_handle(self, asset_paths: Dict[str, Path]) -> TesseractHandle:
        import pytesseract

        tessdata_dir = None
        if asset_paths:
            tessdata_dir = Path(next(iter(asset_paths.values()))).resolve().parent
        config = self._config(tessdata_dir)

        # raises TesseractNotFoundError when the binary is missing
        version = str(pytesseract.get_tesseract_version())

        installed = set(pytesseract.get_languages(config=config))
        missing = [code for code in self.languages if code not in installed]
        if missing:
            raise RuntimeError(
                f"tesseract cannot load language(s) {', '.join(missing)} from {tessdata_dir}"
            )
        return TesseractHandle(lang=self.lang, config=config, version=version)

    def run(self, handle: TesseractHandle, image: np.ndarray) -> ParsedOutput:
        import pytesseract

        # pytesseract expects RGB
        if image.ndim == 2:
            image_rgb = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
        else:
            image_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

        tsv = pytesseract.image_to_data(
            image_rgb,
            lang=handle.lang,
            config=handle.config,
            output_type=pytesseract.Output.STRING,
        )
        return parse_tesseract_tsv(tsv)

    def release_handle(self, handle: TesseractHandle) -> None:
        # nothing native stays loaded between calls
        pass
