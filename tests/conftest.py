"""
Shared fixtures: fake HTTP session, fake OCR driver, test images
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest
import requests

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ocrdesk.assets.fetcher import AssetFetcher
from ocrdesk.assets.store import AssetSpec, AssetStore
from ocrdesk.ocr.interface import BlockType, OcrDriver, ParsedOutput, TextBlock
from ocrdesk.ocr.lifecycle import Backend


# =============================================================================
# HTTP fakes
# =============================================================================

class FakeResponse:
    """Just enough of requests.Response for a streamed download"""

    def __init__(self, chunks=(), status=200, content_length=None, fail_after=None):
        self.chunks = list(chunks)
        self.status_code = status
        self.headers = {}
        if content_length is not None:
            self.headers["Content-Length"] = str(content_length)
        self.fail_after = fail_after
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def iter_content(self, chunk_size=1):
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise requests.ConnectionError("connection reset by peer")
            yield chunk


class FakeSession:
    """Records get() calls and hands out queued responses by URL"""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def get(self, url, stream=False, timeout=None):
        self.calls.append(url)
        if url not in self.responses:
            raise requests.ConnectionError(f"no route to {url}")
        return self.responses[url]


# =============================================================================
# OCR driver fake
# =============================================================================

class FakeHandle:
    def __init__(self, asset_paths):
        self.asset_paths = asset_paths
        self.closed = False
        self.calls = 0

    def close(self):
        self.closed = True


class FakeDriver(OcrDriver):
    """
    Configurable driver: assets, construction failure and per-call
    outputs or exceptions
    """

    def __init__(
        self,
        display_name="Fake OCR",
        assets=None,
        outputs=None,
        construct_error=None,
        enable_preprocessing=False,
        requires_online_model=False,
    ):
        self._display_name = display_name
        self.assets = list(assets or [])
        self.outputs = list(outputs or [])
        self.construct_error = construct_error
        self.enable_preprocessing = enable_preprocessing
        self.requires_online_model = requires_online_model
        self.created = 0
        self.released = []
        self.seen_images = []

    def name(self):
        return self._display_name

    def description(self):
        return "fake engine for tests"

    def required_assets(self):
        return self.assets

    def create_handle(self, asset_paths):
        self.created += 1
        if self.construct_error is not None:
            raise self.construct_error
        return FakeHandle(asset_paths)

    def run(self, handle, image):
        handle.calls += 1
        self.seen_images.append(image)
        if not self.outputs:
            return ParsedOutput()
        output = self.outputs.pop(0)
        if isinstance(output, BaseException):
            raise output
        return output

    def release_handle(self, handle):
        self.released.append(handle)
        super().release_handle(handle)


def hello_output():
    return ParsedOutput(blocks=[
        TextBlock.from_rect("hello", 5, 5, 40, 12, confidence=0.8, block_type=BlockType.WORD),
        TextBlock.from_rect("world", 50, 5, 40, 12, confidence=0.6, block_type=BlockType.WORD),
    ], separator=" ")


# =============================================================================
# fixtures
# =============================================================================

@pytest.fixture
def asset_root(tmp_path):
    return tmp_path / "models"


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def fetcher(session):
    return AssetFetcher(session=session, timeout=60, chunk_size=4)


@pytest.fixture
def make_backend(asset_root, fetcher):
    def _make(driver):
        return Backend(driver, AssetStore(asset_root), fetcher)
    return _make


@pytest.fixture
def eng_asset():
    return AssetSpec("eng", "eng.dat", "http://example/eng.dat")


@pytest.fixture
def white_image(tmp_path):
    """100x50 blank white PNG"""
    path = tmp_path / "white.png"
    cv2.imwrite(str(path), np.full((50, 100, 3), 255, dtype=np.uint8))
    return path


@pytest.fixture
def text_image(tmp_path):
    """Dark text-like bars on white"""
    image = np.full((60, 200, 3), 255, dtype=np.uint8)
    cv2.rectangle(image, (10, 20), (80, 35), (0, 0, 0), -1)
    cv2.rectangle(image, (100, 20), (180, 35), (0, 0, 0), -1)
    path = tmp_path / "text.png"
    cv2.imwrite(str(path), image)
    return path
