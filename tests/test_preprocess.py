"""
Image loading and the grayscale -> median -> Otsu pipeline
"""

import cv2
import numpy as np
import pytest
from PIL import Image

from ocrdesk.errors import ImageLoadError
from ocrdesk.preprocess import binarize, load_image, preprocess, to_grayscale


def _dark_text_on_light():
    image = np.full((40, 120, 3), 230, dtype=np.uint8)
    cv2.rectangle(image, (10, 10), (50, 25), (20, 20, 20), -1)
    return image


class TestLoadImage:
    def test_loads_png_as_bgr(self, white_image):
        image = load_image(white_image)
        assert image.shape == (50, 100, 3)
        assert image.dtype == np.uint8

    def test_non_ascii_path(self, tmp_path):
        path = tmp_path / "图片.png"
        ok, encoded = cv2.imencode(".png", np.zeros((10, 10, 3), dtype=np.uint8))
        assert ok
        encoded.tofile(str(path))
        assert load_image(path).shape == (10, 10, 3)

    def test_gif_decoded_through_pillow(self, tmp_path):
        path = tmp_path / "frame.gif"
        Image.new("RGB", (30, 20), (255, 0, 0)).save(path)
        image = load_image(path)
        assert image.shape == (20, 30, 3)
        # BGR order: red lands in the last channel
        assert image[5, 5, 2] > 200
        assert image[5, 5, 0] < 50

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageLoadError, match="cannot load image"):
            load_image(tmp_path / "nope.png")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.png"
        path.write_bytes(b"")
        with pytest.raises(ImageLoadError):
            load_image(path)

    def test_not_an_image(self, tmp_path):
        path = tmp_path / "notes.png"
        path.write_bytes(b"this is not an image")
        with pytest.raises(ImageLoadError) as exc_info:
            load_image(path)
        assert exc_info.value.kind == "image_load"


class TestGrayscale:
    def test_bgr(self):
        assert to_grayscale(np.zeros((5, 6, 3), dtype=np.uint8)).shape == (5, 6)

    def test_bgra(self):
        assert to_grayscale(np.zeros((5, 6, 4), dtype=np.uint8)).shape == (5, 6)

    def test_gray_copy(self):
        gray = np.zeros((5, 6), dtype=np.uint8)
        out = to_grayscale(gray)
        out[0, 0] = 255
        assert gray[0, 0] == 0

    def test_unsupported(self):
        with pytest.raises(ValueError):
            to_grayscale(np.zeros((5, 6, 2), dtype=np.uint8))


class TestPreprocess:
    def test_input_not_modified(self):
        image = _dark_text_on_light()
        before = image.copy()
        preprocess(image)
        assert np.array_equal(image, before)

    def test_output_is_binary_single_channel(self):
        out = preprocess(_dark_text_on_light())
        assert out.ndim == 2
        assert set(np.unique(out)) <= {0, 255}

    def test_dark_on_light_polarity(self):
        out = preprocess(_dark_text_on_light())
        assert out[0, 0] == 255      # background
        assert out[17, 30] == 0      # text

    def test_light_on_dark_flipped_to_same_polarity(self):
        out = preprocess(255 - _dark_text_on_light())
        assert out[0, 0] == 255
        assert out[17, 30] == 0

    def test_white_image_stays_white(self):
        out = preprocess(np.full((50, 100, 3), 255, dtype=np.uint8))
        assert np.all(out == 255)

    def test_empty_image(self):
        with pytest.raises(ValueError):
            preprocess(np.zeros((0, 0, 3), dtype=np.uint8))

    def test_binarize_majority_white(self):
        gray = np.zeros((10, 10), dtype=np.uint8)
        gray[0:2, :] = 255
        out = binarize(gray)
        assert cv2.countNonZero(out) * 2 >= out.size
