"""
Background execution for the blocking backend calls

initialize() can spend minutes downloading models and recognize() blocks on
the native engine, so UI-style consumers run both off their own thread:

- asyncio callers await initialize_async / recognize_async
- callback-style callers submit to BackendTaskRunner, which reports
  progress and exactly one terminal outcome per task
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .interface import InitResult, RecognitionResult
from .lifecycle import Backend, ProgressFn

logger = logging.getLogger(__name__)

DoneFn = Callable[[Any], None]
ErrorFn = Callable[[BaseException], None]


# =============================================================================
# asyncio
# =============================================================================

async def initialize_async(backend: Backend, progress: Optional[ProgressFn] = None) -> InitResult:
    """Run backend.initialize in a worker thread; progress fires on that thread"""
    return await asyncio.to_thread(backend.initialize, progress)


async def recognize_async(backend: Backend, image_path: Union[str, Path]) -> RecognitionResult:
    return await asyncio.to_thread(backend.recognize, image_path)


# =============================================================================
# Callback style
# =============================================================================

class BackendTaskRunner:
    """
    Thread pool wrapper delivering outcomes by callback

    For every submitted task exactly one of on_done(result) or
    on_error(exc) is called, on the worker thread.
    """

    def __init__(self, max_workers: int = 1):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ocrdesk")

    def __enter__(self) -> "BackendTaskRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def submit_initialize(
        self,
        backend: Backend,
        on_done: DoneFn,
        on_error: ErrorFn,
        on_progress: Optional[ProgressFn] = None,
    ) -> Future:
        return self._submit(lambda: backend.initialize(on_progress), on_done, on_error)

    def submit_recognize(
        self,
        backend: Backend,
        image_path: Union[str, Path],
        on_done: DoneFn,
        on_error: ErrorFn,
    ) -> Future:
        return self._submit(lambda: backend.recognize(image_path), on_done, on_error)

    def _submit(self, work: Callable[[], Any], on_done: DoneFn, on_error: ErrorFn) -> Future:
        def task() -> Any:
            try:
                result = work()
            except Exception as exc:
                logger.warning("background task failed: %s", exc)
                on_error(exc)
                return None
            on_done(result)
            return result

        return self._executor.submit(task)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
