"""ocrdesk 예외 정의

Setup failures (DownloadError, InitError) propagate out of
``Backend.initialize``. Recognition-time failures (NotInitializedError,
ImageLoadError, RecognitionError) are raised inside the backend and turned
into failed RecognitionResult objects before they reach the caller.
"""

from __future__ import annotations

from typing import Optional


class OcrDeskError(RuntimeError):
    """Base class for every ocrdesk error"""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{super().__str__()} (cause={self.cause})"
        return super().__str__()


class DownloadError(OcrDeskError):
    """Fetching a model/language asset failed (transport, status, checksum, timeout)"""

    def __init__(self, asset_id: str, url: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Download of {asset_id} from {url} failed{detail}", cause=cause)
        self.asset_id = asset_id
        self.url = url

    def __str__(self) -> str:
        # cause is already part of the message
        return self.args[0]


class InitError(OcrDeskError):
    """Backend could not reach READY; calling initialize() again is allowed"""

    def __init__(
        self,
        engine_name: str,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        remediation: str = "",
    ):
        full = f"{engine_name} initialization failed: {message}"
        if remediation:
            full = f"{full}\n\n{remediation}"
        super().__init__(full, cause=cause)
        self.engine_name = engine_name
        self.remediation = remediation

    def __str__(self) -> str:
        return self.args[0]


class NotInitializedError(OcrDeskError):
    """recognize() called while the backend is not READY"""

    kind = "not_initialized"


class ImageLoadError(OcrDeskError):
    """Image could not be decoded or is empty"""

    kind = "image_load"


class RecognitionError(OcrDeskError):
    """Native recognizer raised during a recognize() call"""

    kind = "recognition"
