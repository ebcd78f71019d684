"""
Asset Fetcher

Streams a missing model/language file from its declared URL into a
``.part`` file next to the target and renames it into place only after
the whole body arrived (and matched its checksum, when one is declared).
A failed or timed-out download never leaves anything at the final path.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import requests

from ..config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DOWNLOAD_TIMEOUT,
    DEFAULT_PROGRESS_MILESTONE,
)
from ..errors import DownloadError
from .store import AssetSpec

logger = logging.getLogger(__name__)

_MB = 1024.0 * 1024.0


class ProgressStage(str, Enum):
    FOUND = "found"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"


@dataclass(frozen=True)
class AssetProgress:
    """Progress event for one asset"""
    asset_id: str
    stage: ProgressStage
    bytes_read: int = 0
    total_bytes: Optional[int] = None

    @property
    def percent(self) -> Optional[float]:
        if not self.total_bytes:
            return None
        return min(100.0, self.bytes_read / self.total_bytes * 100)

    @property
    def message(self) -> str:
        if self.stage is ProgressStage.FOUND:
            return f"Found {self.asset_id}"
        if self.stage is ProgressStage.COMPLETED:
            return f"✓ {self.asset_id} downloaded"
        if self.bytes_read == 0:
            return f"Downloading {self.asset_id}..."
        if self.total_bytes:
            return (
                f"Downloading {self.asset_id}... "
                f"{self.bytes_read / _MB:.1f}MB / {self.total_bytes / _MB:.1f}MB ({self.percent:.1f}%)"
            )
        return f"Downloading {self.asset_id}... {self.bytes_read / _MB:.1f}MB"

    def __str__(self) -> str:
        return self.message


ProgressCallback = Callable[[AssetProgress], None]


def _content_length(response) -> Optional[int]:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


class AssetFetcher:
    """
    Downloads assets over HTTP(S) with a wall-clock timeout

    Args:
        session: requests.Session (or anything with a compatible get())
        timeout: overall seconds allowed for one asset
        chunk_size: bytes per read/progress report
        connect_timeout: per-connect / per-read stall limit handed to requests
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        milestone: int = DEFAULT_PROGRESS_MILESTONE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session = session or requests.Session()
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.connect_timeout = connect_timeout
        self.milestone = milestone
        self._clock = clock

    def ensure_asset(
        self,
        asset_id: str,
        local_path: Path | str,
        url: str,
        progress: Optional[ProgressCallback] = None,
        sha256: Optional[str] = None,
    ) -> Path:
        """
        Make sure local_path exists, downloading it from url if needed

        Raises:
            DownloadError: transport/status failure, checksum mismatch or timeout
        """
        local_path = Path(local_path)
        if local_path.exists():
            logger.debug("asset %s already present at %s", asset_id, local_path)
            self._emit(progress, AssetProgress(asset_id, ProgressStage.FOUND))
            return local_path

        local_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = local_path.with_name(local_path.name + ".part")
        logger.info("downloading %s from %s", asset_id, url)
        self._emit(progress, AssetProgress(asset_id, ProgressStage.DOWNLOADING))

        try:
            bytes_read = self._download(asset_id, url, temp_path, progress, sha256)
            os.replace(temp_path, local_path)
        except Exception as exc:
            temp_path.unlink(missing_ok=True)
            logger.warning("download of %s failed: %s", asset_id, exc)
            raise DownloadError(asset_id, url, exc) from exc

        logger.info("saved %s (%d bytes) to %s", asset_id, bytes_read, local_path)
        self._emit(
            progress,
            AssetProgress(asset_id, ProgressStage.COMPLETED, bytes_read, bytes_read or None),
        )
        return local_path

    def ensure_assets(
        self,
        items: Iterable[Tuple[AssetSpec, Path]],
        progress: Optional[ProgressCallback] = None,
    ) -> List[Path]:
        """Fetch sequentially; the first failure stops the remaining assets"""
        paths = []
        for spec, path in items:
            paths.append(self.ensure_asset(spec.asset_id, path, spec.url, progress, spec.sha256))
        return paths

    def _download(
        self,
        asset_id: str,
        url: str,
        temp_path: Path,
        progress: Optional[ProgressCallback],
        sha256: Optional[str],
    ) -> int:
        deadline = self._clock() + self.timeout
        digest = hashlib.sha256() if sha256 else None
        bytes_read = 0

        with self._session.get(
            url,
            stream=True,
            timeout=(self.connect_timeout, self.connect_timeout),
        ) as response:
            response.raise_for_status()
            total = _content_length(response)
            next_milestone = self.milestone

            with temp_path.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if self._clock() > deadline:
                        raise TimeoutError(f"download exceeded {self.timeout}s")
                    if not chunk:
                        continue
                    handle.write(chunk)
                    bytes_read += len(chunk)
                    if digest is not None:
                        digest.update(chunk)

                    if total:
                        self._emit(
                            progress,
                            AssetProgress(asset_id, ProgressStage.DOWNLOADING, min(bytes_read, total), total),
                        )
                    elif bytes_read >= next_milestone:
                        self._emit(progress, AssetProgress(asset_id, ProgressStage.DOWNLOADING, bytes_read))
                        next_milestone += self.milestone

        if total is not None and bytes_read < total:
            raise IOError(f"incomplete body: got {bytes_read} of {total} bytes")
        if digest is not None and digest.hexdigest().lower() != sha256.lower():
            raise ValueError(f"checksum mismatch: expected {sha256}, got {digest.hexdigest()}")
        return bytes_read

    @staticmethod
    def _emit(progress: Optional[ProgressCallback], event: AssetProgress) -> None:
        logger.debug("%s", event.message)
        if progress is not None:
            progress(event)
