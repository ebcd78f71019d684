"""
OCR Engine Registry (플러그인 등록 시스템)

Holds the backends a consumer can pick from, in registration order.
Listing only reads metadata; native engines are created when a backend
is initialized, never by the registry.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ..assets.fetcher import AssetFetcher
from ..assets.store import AssetStore
from ..config import OcrSettings
from .interface import BackendDescriptor, EngineState, OcrDriver
from .lifecycle import Backend
from .paddle_plugin import PaddleOcrDriver
from .rapidocr_plugin import RapidOcrDriver
from .tesseract_plugin import TesseractDriver

logger = logging.getLogger(__name__)


class EngineRegistry:
    """
    OCR 엔진 레지스트리

    At most one backend is "active" at a time: activate() disposes the
    previous one before handing out the next.
    """

    def __init__(self, store: AssetStore, fetcher: AssetFetcher):
        self.store = store
        self.fetcher = fetcher
        self._backends: Dict[str, Backend] = {}
        self._active: Optional[Backend] = None
        self._lock = threading.Lock()

    def register(self, driver: OcrDriver) -> Backend:
        """
        새 OCR 엔진 등록

        Raises:
            ValueError: a backend with the same name is already registered
        """
        backend = Backend(driver, self.store, self.fetcher)
        with self._lock:
            if backend.name in self._backends:
                raise ValueError(f"backend already registered: {backend.name}")
            self._backends[backend.name] = backend
        logger.info("[Registry] registered OCR backend: %s", backend.name)
        return backend

    def get(self, name: str) -> Backend:
        """
        Raises:
            KeyError: no backend with that name
        """
        try:
            return self._backends[name]
        except KeyError:
            known = ", ".join(self._backends) or "none"
            raise KeyError(f"unknown OCR backend {name!r} (registered: {known})") from None

    def __contains__(self, name: str) -> bool:
        return name in self._backends

    def __len__(self) -> int:
        return len(self._backends)

    def names(self) -> List[str]:
        return list(self._backends)

    def list_backends(self) -> List[BackendDescriptor]:
        """Metadata for every backend, in registration order"""
        return [backend.describe() for backend in self._backends.values()]

    def is_available(self, name: str) -> bool:
        return name in self._backends and self._backends[name].driver.is_available()

    def list_available(self) -> List[str]:
        return [name for name, backend in self._backends.items() if backend.driver.is_available()]

    @property
    def active(self) -> Optional[Backend]:
        return self._active

    def activate(self, name: str) -> Backend:
        """
        Make name the active backend

        The previously active backend, if different, is disposed first. A
        disposed backend is replaced by a fresh instance of the same driver
        so it can be initialized again.
        """
        with self._lock:
            backend = self.get(name)
            previous = self._active
            if previous is not None and previous is not backend:
                logger.info("[Registry] disposing %s before activating %s", previous.name, name)
                previous.dispose()
                self._backends[previous.name] = Backend(previous.driver, self.store, self.fetcher)
            if backend.state is EngineState.DISPOSED:
                backend = Backend(backend.driver, self.store, self.fetcher)
                self._backends[name] = backend
            self._active = backend
            return backend

    def dispose_all(self) -> None:
        with self._lock:
            for backend in self._backends.values():
                backend.dispose()
            self._active = None


def build_default_registry(
    settings: Optional[OcrSettings] = None,
    fetcher: Optional[AssetFetcher] = None,
) -> EngineRegistry:
    """Registry with every built-in backend, PaddleOCR first"""
    settings = settings or OcrSettings.from_env()
    fetcher = fetcher or AssetFetcher(
        timeout=settings.download_timeout,
        chunk_size=settings.chunk_size,
    )
    registry = EngineRegistry(AssetStore(settings.asset_dir), fetcher)

    registry.register(PaddleOcrDriver(lang=settings.paddle_lang))
    registry.register(TesseractDriver(
        lang=settings.tesseract_lang,
        tessdata_url=settings.tessdata_url,
    ))
    registry.register(TesseractDriver(
        lang=settings.tesseract_lang,
        tessdata_url=settings.tessdata_url,
        enable_preprocessing=settings.enable_preprocessing,
        psm=6,
        display_name="OpenCV + Tesseract",
    ))
    registry.register(RapidOcrDriver(
        models_url=settings.rapidocr_url,
        enable_preprocessing=settings.enable_preprocessing,
    ))
    return registry
