"""ocrdesk 기본 설정

Module-level defaults plus an environment-backed settings object.
Values in a local ``.env`` file are picked up through python-dotenv.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Used by backends that cannot report a confidence of their own
DEFAULT_CONFIDENCE = 0.9

DEFAULT_ASSET_DIR = "models"
DEFAULT_CHUNK_SIZE = 8192
DEFAULT_DOWNLOAD_TIMEOUT = 600  # seconds, whole download
DEFAULT_CONNECT_TIMEOUT = 30
DEFAULT_PROGRESS_MILESTONE = 1024 * 1024  # unknown Content-Length

DEFAULT_TESSERACT_LANG = "chi_sim+eng"
DEFAULT_TESSDATA_URL = "https://github.com/tesseract-ocr/tessdata/raw/main"
DEFAULT_RAPIDOCR_URL = "https://github.com/RapidAI/RapidOCR/releases/download/v1.3.0"
DEFAULT_PADDLE_LANG = "ch"

TRUTHY_VALUES = {"1", "true", "yes", "on"}

__all__ = [
    "DEFAULT_CONFIDENCE",
    "DEFAULT_ASSET_DIR",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_DOWNLOAD_TIMEOUT",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_PROGRESS_MILESTONE",
    "DEFAULT_TESSERACT_LANG",
    "DEFAULT_TESSDATA_URL",
    "DEFAULT_RAPIDOCR_URL",
    "DEFAULT_PADDLE_LANG",
    "OcrSettings",
]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUTHY_VALUES


@dataclass
class OcrSettings:
    """Runtime configuration shared by the registry, backends and fetcher"""

    asset_dir: Path = Path(DEFAULT_ASSET_DIR)
    download_timeout: int = DEFAULT_DOWNLOAD_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    tesseract_lang: str = DEFAULT_TESSERACT_LANG
    tessdata_url: str = DEFAULT_TESSDATA_URL
    rapidocr_url: str = DEFAULT_RAPIDOCR_URL
    paddle_lang: str = DEFAULT_PADDLE_LANG
    enable_preprocessing: bool = True

    def __post_init__(self):
        self.asset_dir = Path(self.asset_dir)
        if self.download_timeout <= 0:
            raise ValueError(f"download_timeout must be positive, got {self.download_timeout}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "OcrSettings":
        """Build settings from OCRDESK_* environment variables (and .env)"""
        load_dotenv(env_file)
        return cls(
            asset_dir=Path(os.getenv("OCRDESK_ASSET_DIR") or DEFAULT_ASSET_DIR),
            download_timeout=_env_int("OCRDESK_DOWNLOAD_TIMEOUT", DEFAULT_DOWNLOAD_TIMEOUT),
            chunk_size=_env_int("OCRDESK_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            tesseract_lang=os.getenv("OCRDESK_TESSERACT_LANG") or DEFAULT_TESSERACT_LANG,
            tessdata_url=(os.getenv("OCRDESK_TESSDATA_URL") or DEFAULT_TESSDATA_URL).rstrip("/"),
            rapidocr_url=(os.getenv("OCRDESK_RAPIDOCR_URL") or DEFAULT_RAPIDOCR_URL).rstrip("/"),
            paddle_lang=os.getenv("OCRDESK_PADDLE_LANG") or DEFAULT_PADDLE_LANG,
            enable_preprocessing=_env_bool("OCRDESK_PREPROCESS", True),
        )
