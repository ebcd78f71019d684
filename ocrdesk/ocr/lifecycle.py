"""
Backend lifecycle

Backend wraps one OcrDriver and owns its native handle. State changes go
through VALID_TRANSITIONS:

    UNINITIALIZED → INITIALIZING → READY
                               └→ FAILED → INITIALIZING (retry)
    any state → DISPOSED (terminal)

The handle slot is non-empty only while READY. Every public call takes the
backend's lock, so the native handle is never used by two calls at once.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from ..assets.fetcher import AssetFetcher, AssetProgress
from ..assets.store import AssetSpec, AssetStore
from ..errors import (
    DownloadError,
    ImageLoadError,
    InitError,
    NotInitializedError,
    RecognitionError,
)
from ..preprocess import load_image, preprocess
from .interface import (
    BackendDescriptor,
    EngineState,
    InitResult,
    OcrDriver,
    RecognitionResult,
)
from .parser import resolve_text

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str], None]


# ============================================================================
# 상태 전환 검증
# ============================================================================

VALID_TRANSITIONS = {
    EngineState.UNINITIALIZED: {EngineState.INITIALIZING, EngineState.DISPOSED},
    EngineState.INITIALIZING: {EngineState.READY, EngineState.FAILED, EngineState.DISPOSED},
    EngineState.READY: {EngineState.DISPOSED},
    EngineState.FAILED: {EngineState.INITIALIZING, EngineState.DISPOSED},
    EngineState.DISPOSED: set(),
}


def is_valid_transition(old: EngineState, new: EngineState) -> bool:
    return new in VALID_TRANSITIONS.get(old, set())


def is_terminal(state: EngineState) -> bool:
    return state is EngineState.DISPOSED


def _silent(_message: str) -> None:
    pass


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


# ============================================================================
# Backend
# ============================================================================

class Backend:
    """
    One OCR technology behind the common contract

    Args:
        driver: the technology-specific strategy
        store: where assets live
        fetcher: downloads assets the store reports missing
    """

    def __init__(self, driver: OcrDriver, store: AssetStore, fetcher: AssetFetcher):
        self.driver = driver
        self._store = store
        self._fetcher = fetcher
        self._state = EngineState.UNINITIALIZED
        self._handle: Any = None
        self._asset_paths: Dict[str, Path] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"<Backend {self.name!r} state={self._state.value}>"

    def __enter__(self) -> "Backend":
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # metadata
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.driver.name()

    @property
    def description(self) -> str:
        return self.driver.description()

    @property
    def requires_online_model(self) -> bool:
        return self.driver.requires_online_model

    @property
    def enable_preprocessing(self) -> bool:
        return self.driver.enable_preprocessing

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is EngineState.READY

    @property
    def asset_dir(self) -> Path:
        return self._store.backend_dir(self.driver.asset_dir_name)

    def describe(self) -> BackendDescriptor:
        return BackendDescriptor(
            name=self.name,
            description=self.description,
            requires_online_model=self.requires_online_model,
            state=self._state,
            available=self.driver.is_available(),
            enable_preprocessing=self.enable_preprocessing,
        )

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def _transition(self, new: EngineState) -> None:
        old = self._state
        if not is_valid_transition(old, new):
            raise RuntimeError(f"{self.name}: invalid transition {old.value} -> {new.value}")
        logger.info("%s: %s -> %s", self.name, old.value, new.value)
        self._state = new

    def initialize(self, progress: Optional[ProgressFn] = None) -> InitResult:
        """
        Fetch missing assets and build the native engine

        progress receives zero or more human-readable messages, possibly on
        the calling worker thread. Calling this while READY is a no-op.
        An exception raised by progress before the engine is built fails
        the initialization like any other setup error. The final
        "initialized" message is sent after the state is READY, so an
        exception raised there propagates unchanged and the backend stays
        READY.

        Raises:
            InitError: asset download or engine construction failed (state
                becomes FAILED and initialize() may be called again), or the
                backend was disposed
        """
        report = progress or _silent
        with self._lock:
            if self._state is EngineState.DISPOSED:
                raise InitError(self.name, "backend has been disposed")
            if self._state is EngineState.READY:
                report(f"{self.name} already initialized")
                return InitResult(
                    self.name,
                    self._state,
                    already_initialized=True,
                    asset_paths=dict(self._asset_paths),
                )

            self._transition(EngineState.INITIALIZING)
            try:
                report(f"Initializing {self.name}...")
                asset_paths = self._acquire_assets(report)
                report(f"Loading {self.name}...")
                handle = self._construct(asset_paths)
            except InitError as exc:
                logger.error("%s", exc)
                self._transition(EngineState.FAILED)
                raise
            except Exception as exc:
                logger.exception("%s: unexpected initialization failure", self.name)
                self._transition(EngineState.FAILED)
                raise InitError(self.name, str(exc) or type(exc).__name__, cause=exc) from exc

            self._handle = handle
            self._asset_paths = asset_paths
            self._transition(EngineState.READY)

        mode = " (preprocessing enabled)" if self.enable_preprocessing else ""
        report(f"✓ {self.name} initialized{mode}")
        return InitResult(self.name, EngineState.READY, asset_paths=dict(asset_paths))

    def _acquire_assets(self, report: ProgressFn) -> Dict[str, Path]:
        dir_name = self.driver.asset_dir_name
        items = self._store.resolve_all(self.driver.required_assets(), dir_name)

        def forward(event: AssetProgress) -> None:
            report(event.message)

        try:
            self._fetcher.ensure_assets(items, forward)
        except DownloadError as exc:
            spec, path = next((s, p) for s, p in items if s.asset_id == exc.asset_id)
            raise InitError(
                self.name,
                str(exc),
                cause=exc,
                remediation=_manual_download_hint(spec, path),
            ) from exc
        return {spec.asset_id: path for spec, path in items}

    def _construct(self, asset_paths: Dict[str, Path]) -> Any:
        try:
            return self.driver.create_handle(asset_paths)
        except Exception as exc:
            raise InitError(
                self.name,
                f"could not create engine: {exc}",
                cause=exc,
                remediation=self._construction_hint(asset_paths),
            ) from exc

    def _construction_hint(self, asset_paths: Dict[str, Path]) -> str:
        lines = ["To fix:"]
        if self.driver.native_module:
            lines.append(f"1. Make sure the '{self.driver.native_module}' package is installed")
        else:
            lines.append("1. Make sure the native engine is installed")
        if asset_paths:
            lines.append(f"2. Check the model files in {self.asset_dir}:")
            lines.extend(f"   - {path}" for path in asset_paths.values())
        elif self.requires_online_model:
            lines.append("2. Check the network connection; this engine downloads its own models")
        return "\n".join(lines)

    def dispose(self) -> None:
        """Release the native handle; later calls are no-ops"""
        with self._lock:
            if self._state is EngineState.DISPOSED:
                return
            handle, self._handle = self._handle, None
            self._transition(EngineState.DISPOSED)
            if handle is not None:
                self.driver.release_handle(handle)

    # ------------------------------------------------------------------
    # recognition
    # ------------------------------------------------------------------

    def recognize(self, image_path: Union[str, Path]) -> RecognitionResult:
        """
        Recognize text in an image file

        Never raises for recognition-time problems: not being READY, an
        unreadable image and native failures all come back as a failed
        RecognitionResult, and the backend stays usable.
        """
        with self._lock:
            start = time.perf_counter()
            try:
                handle = self._require_ready()
                image = load_image(image_path)
                parsed, text = self._run(handle, image)
            except (NotInitializedError, ImageLoadError, RecognitionError) as exc:
                logger.warning("%s: recognition of %s failed: %s", self.name, image_path, exc)
                return RecognitionResult.fail(
                    self.name,
                    exc.args[0],
                    kind=exc.kind,
                    elapsed_ms=_elapsed_ms(start),
                )

            result = RecognitionResult.ok(
                self.name,
                text,
                parsed.blocks,
                _elapsed_ms(start),
                skipped_regions=parsed.skipped,
            )

        if parsed.skipped:
            logger.warning("%s: %d region(s) could not be parsed", self.name, parsed.skipped)
        logger.info(
            "%s: %d region(s) in %d ms from %s",
            self.name, result.region_count, result.elapsed_ms, image_path,
        )
        return result

    def _require_ready(self) -> Any:
        if self._state is not EngineState.READY or self._handle is None:
            raise NotInitializedError(
                f"{self.name} is not initialized (state: {self._state.value}); call initialize() first"
            )
        return self._handle

    def _run(self, handle: Any, image):
        try:
            if self.enable_preprocessing:
                image = preprocess(image)
            parsed = self.driver.run(handle, image)
            return parsed, resolve_text(parsed)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            raise RecognitionError(f"Recognition error: {message}", cause=exc) from exc


def _manual_download_hint(spec: AssetSpec, path: Path) -> str:
    return (
        "Manual download:\n"
        f"1. Open: {spec.url}\n"
        f"2. Save the file as: {path}"
    )
