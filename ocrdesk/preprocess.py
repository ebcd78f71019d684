"""
Image loading and preprocessing

load_image() decodes a file into a BGR array. preprocess() is the fixed
grayscale -> median blur -> Otsu threshold pipeline backends may run
before recognition.
"""

from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageLoadError

MEDIAN_KERNEL = 3


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """
    Decode an image file into a BGR array

    np.fromfile + cv2.imdecode reads non-ASCII paths that cv2.imread
    cannot open on Windows.

    Raises:
        ImageLoadError: file missing, unreadable, undecodable or empty
    """
    path = Path(image_path)
    if not path.is_file():
        raise ImageLoadError(f"cannot load image: {path} does not exist")

    try:
        data = np.fromfile(str(path), dtype=np.uint8)
    except OSError as exc:
        raise ImageLoadError(f"cannot load image: {path}", cause=exc) from exc
    if data.size == 0:
        raise ImageLoadError(f"cannot load image: {path} is empty")

    try:
        image = cv2.imdecode(data, cv2.IMREAD_COLOR)
    except cv2.error as exc:
        raise ImageLoadError(f"cannot load image: {path}", cause=exc) from exc

    if image is None:
        # GIF and some TIFF variants are not decodable by OpenCV
        image = _load_with_pillow(path)
    if image.size == 0:
        raise ImageLoadError(f"cannot load image: {path} is empty")
    return image


def _load_with_pillow(path: Path) -> np.ndarray:
    try:
        with Image.open(path) as img:
            rgb = np.array(img.convert("RGB"))
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageLoadError(f"cannot load image: {path} is not a decodable image", cause=exc) from exc
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Single-channel copy of a BGR, BGRA or already-gray image"""
    if image.ndim == 2:
        return image.copy()
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0].copy()
    raise ValueError(f"unsupported image shape: {image.shape}")


def denoise(gray: np.ndarray, kernel: int = MEDIAN_KERNEL) -> np.ndarray:
    """Median filter; removes salt-and-pepper noise before thresholding"""
    return cv2.medianBlur(gray, kernel)


def binarize(gray: np.ndarray) -> np.ndarray:
    """
    Otsu global threshold, background white and text black

    The majority color after thresholding is taken as background, so
    light-on-dark scans come out with the same polarity as dark-on-light.
    """
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    if cv2.countNonZero(binary) * 2 < binary.size:
        binary = cv2.bitwise_not(binary)
    return binary


def preprocess(image: np.ndarray) -> np.ndarray:
    """
    grayscale -> denoise -> binarize

    Pure: the input array is never modified and the returned array never
    shares memory with it.
    """
    if image is None or image.size == 0:
        raise ValueError("cannot preprocess an empty image")
    if image.dtype != np.uint8:
        image = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    gray = to_grayscale(image)
    return binarize(denoise(gray))
