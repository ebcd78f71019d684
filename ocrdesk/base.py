"""
Base geometry types

Points, quadrilaterals and axis-aligned envelopes shared by every
OCR backend.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class Coord:
    """2D coordinate in image space"""
    x: int
    y: int

    def to_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True)
class BBox:
    """Axis-aligned box defined by top-left corner and dimensions"""
    top_left: Coord
    width: int
    height: int

    @property
    def x(self) -> int:
        return self.top_left.x

    @property
    def y(self) -> int:
        return self.top_left.y

    def bottom_right(self) -> Coord:
        """Get bottom-right coordinate"""
        return Coord(
            self.top_left.x + self.width,
            self.top_left.y + self.height
        )

    def center(self) -> Coord:
        """Get center coordinate"""
        return Coord(
            self.top_left.x + self.width // 2,
            self.top_left.y + self.height // 2
        )

    def to_cv2_rect(self) -> Tuple[int, int, int, int]:
        """Convert to OpenCV rect format (x, y, w, h)"""
        return (self.x, self.y, self.width, self.height)

    def corners(self) -> List[Coord]:
        """Four corners: top-left, top-right, bottom-right, bottom-left"""
        br = self.bottom_right()
        return [
            self.top_left,
            Coord(br.x, self.top_left.y),
            br,
            Coord(self.top_left.x, br.y),
        ]

    @staticmethod
    def from_cv2_rect(x: int, y: int, w: int, h: int) -> 'BBox':
        """Create from OpenCV rect format"""
        return BBox(Coord(x, y), max(0, w), max(0, h))

    @staticmethod
    def envelope(points: Iterable[Coord]) -> 'BBox':
        """Min/max envelope of arbitrary points"""
        pts = list(points)
        if not pts:
            raise ValueError("envelope needs at least one point")
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        min_x, min_y = min(xs), min(ys)
        return BBox(Coord(min_x, min_y), max(xs) - min_x, max(ys) - min_y)


def to_coord(point: Sequence[float]) -> Coord:
    """Round an (x, y) pair of any numeric type to a Coord"""
    if len(point) < 2:
        raise ValueError(f"point needs two values, got {point!r}")
    return Coord(int(round(float(point[0]))), int(round(float(point[1]))))


def order_quad(points: Sequence[Coord]) -> List[Coord]:
    """
    Put four corners into top-left, top-right, bottom-right, bottom-left order

    Native engines emit polygons starting from arbitrary corners
    (cv2.boxPoints starts bottom-left). Corners are sorted clockwise (in
    image coordinates) around the centroid, starting from the smallest
    x+y; ties such as a 45 degree diamond go to the leftmost corner.
    """
    if len(points) != 4:
        raise ValueError(f"quadrilateral needs 4 points, got {len(points)}")
    if len(set(points)) != 4:
        # repeated corners have no winding; keep native order
        return list(points)
    cx = sum(p.x for p in points) / 4.0
    cy = sum(p.y for p in points) / 4.0
    clockwise = sorted(points, key=lambda p: math.atan2(p.y - cy, p.x - cx))
    start = min(range(4), key=lambda i: (clockwise[i].x + clockwise[i].y, clockwise[i].x))
    return clockwise[start:] + clockwise[:start]


def rotated_rect_points(
    center: Tuple[float, float],
    size: Tuple[float, float],
    angle: float,
) -> List[Coord]:
    """Corners of an OpenCV rotated rect ((cx, cy), (w, h), angle)"""
    raw = cv2.boxPoints(((float(center[0]), float(center[1])),
                         (float(size[0]), float(size[1])),
                         float(angle)))
    return order_quad([to_coord(p) for p in np.asarray(raw)])
