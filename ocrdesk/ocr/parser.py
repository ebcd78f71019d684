"""
OCR Result Parser

네이티브 출력 → TextBlock 정규화

Every backend returns a different shape: Tesseract TSV box-line records,
RapidOCR polygon/score triples and two generations of PaddleOCR output
(some texts arrive without geometry). The helpers here turn each of them
into ParsedOutput. A region that cannot be parsed is counted in
ParsedOutput.skipped, never dropped without trace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from statistics import median
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..base import BBox, Coord, to_coord
from ..config import DEFAULT_CONFIDENCE
from .interface import BlockType, ParsedOutput, TextBlock

logger = logging.getLogger(__name__)

TSV_COLUMNS = 12
WORD_LEVEL = 5


# =============================================================================
# Geometry
# =============================================================================

def _is_number(value: Any) -> bool:
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


def region_points(geometry: Any) -> List[Coord]:
    """
    Four corner points from whatever geometry a native engine produced

    Accepts:
        - four (x, y) points (list, tuple or ndarray)
        - an (x, y, w, h) rectangle
        - a flat list of 8 numbers

    Raises:
        ValueError: shape not recognized
    """
    if geometry is None:
        raise ValueError("region has no geometry")
    if hasattr(geometry, "tolist"):
        geometry = geometry.tolist()
    if isinstance(geometry, dict):
        if all(k in geometry for k in ("x", "y", "width", "height")):
            geometry = (geometry["x"], geometry["y"], geometry["width"], geometry["height"])
        else:
            raise ValueError(f"unsupported geometry keys: {sorted(geometry)}")

    items = list(geometry)

    if len(items) == 4 and all(_is_number(v) for v in items):
        x, y, w, h = (int(round(float(v))) for v in items)
        return BBox.from_cv2_rect(x, y, w, h).corners()

    if len(items) == 8 and all(_is_number(v) for v in items):
        items = [items[i:i + 2] for i in range(0, 8, 2)]

    if len(items) == 4:
        return [to_coord(p) for p in items]

    raise ValueError(f"unsupported geometry: {geometry!r}")


def _is_rotated_rect(geometry: Any) -> bool:
    """OpenCV ((cx, cy), (w, h), angle) triple"""
    return (
        isinstance(geometry, (list, tuple))
        and len(geometry) == 3
        and not _is_number(geometry[0])
        and _is_number(geometry[2])
    )


def block_from_geometry(
    text: str,
    confidence: float,
    geometry: Any,
    block_type: BlockType = BlockType.LINE,
) -> TextBlock:
    """TextBlock from a rotated rect or anything region_points() accepts"""
    if _is_rotated_rect(geometry):
        center, size, angle = geometry
        return TextBlock.from_rotated_rect(text, center, size, angle, confidence, block_type)
    return TextBlock.from_points(text, region_points(geometry), confidence, block_type)


def full_image_points(image_shape: Sequence[int]) -> List[Coord]:
    """Quadrilateral covering the whole image (for text-only output)"""
    height, width = int(image_shape[0]), int(image_shape[1])
    return BBox(Coord(0, 0), width, height).corners()


def _confidence(raw: Any, default: float = DEFAULT_CONFIDENCE) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if value != value:  # NaN
        return default
    return value


# =============================================================================
# Reading order
# =============================================================================

def sort_reading_order(blocks: List[TextBlock]) -> List[TextBlock]:
    """
    Top-to-bottom lines, left-to-right within a line

    Blocks whose vertical centers are within half the median block height
    are treated as one line.
    """
    if len(blocks) < 2:
        return list(blocks)

    heights = [max(1, b.bounding_box.height) for b in blocks]
    tolerance = max(1.0, median(heights) / 2)

    by_y = sorted(blocks, key=lambda b: (b.bounding_box.center().y, b.bounding_box.x))
    lines: List[List[TextBlock]] = []
    line_y = None
    for block in by_y:
        cy = block.bounding_box.center().y
        if line_y is None or abs(cy - line_y) > tolerance:
            lines.append([block])
            line_y = cy
        else:
            lines[-1].append(block)

    ordered = []
    for line in lines:
        ordered.extend(sorted(line, key=lambda b: b.bounding_box.x))
    return ordered


def join_text(blocks: Iterable[TextBlock], separator: str = "\n") -> str:
    return separator.join(b.text for b in blocks).strip()


def resolve_text(parsed: ParsedOutput) -> str:
    """Engine-supplied full text if any, otherwise blocks joined"""
    if parsed.text is not None:
        return parsed.text.strip()
    return join_text(parsed.blocks, parsed.separator)


# =============================================================================
# Tesseract TSV box-line records
# =============================================================================

@dataclass
class BoxRecord:
    """One tokenized word row: (text, x, y, w, h) plus confidence and line key"""
    text: str
    x: int
    y: int
    width: int
    height: int
    confidence: float
    line_key: Tuple[int, int, int, int]


def tokenize_tsv_row(row: str) -> Optional[BoxRecord]:
    """
    Split one image_to_data TSV row on whitespace

    Columns: level page block par line word left top width height conf text.

    Returns:
        BoxRecord for a word row, None for structural or blank rows

    Raises:
        ValueError: row is a word row but its numeric fields do not parse
    """
    tokens = row.split(maxsplit=TSV_COLUMNS - 1)
    if not tokens:
        return None
    if tokens[0] != str(WORD_LEVEL):
        if not tokens[0].isdigit():
            raise ValueError(f"bad level field: {tokens[0]!r}")
        return None
    if len(tokens) < TSV_COLUMNS - 1:
        raise ValueError(f"truncated word row: {row!r}")
    if len(tokens) == TSV_COLUMNS - 1:
        return None  # word row without text

    page, block, par, line = (int(t) for t in tokens[1:5])
    x, y, w, h = (int(t) for t in tokens[6:10])
    conf = float(tokens[10])
    text = tokens[11].strip()
    if not text:
        return None
    if w < 0 or h < 0:
        raise ValueError(f"negative size in row: {row!r}")
    # Tesseract reports -1 for rows it has no score for
    confidence = DEFAULT_CONFIDENCE if conf < 0 else conf / 100.0
    return BoxRecord(text, x, y, w, h, confidence, (page, block, par, line))


def parse_tesseract_tsv(tsv: str) -> ParsedOutput:
    """
    image_to_data TSV → word blocks

    Full text keeps Tesseract's own layout: words of one line joined by a
    space, lines by a newline.
    """
    rows = tsv.splitlines()
    if rows and rows[0].startswith("level"):
        rows = rows[1:]

    blocks: List[TextBlock] = []
    lines: dict = {}
    skipped = 0
    for row in rows:
        if not row.strip():
            continue
        try:
            record = tokenize_tsv_row(row)
        except ValueError as exc:
            skipped += 1
            logger.debug("skipping unparsable tesseract row: %s", exc)
            continue
        if record is None:
            continue
        blocks.append(TextBlock.from_rect(
            record.text,
            record.x,
            record.y,
            record.width,
            record.height,
            confidence=record.confidence,
            block_type=BlockType.WORD,
        ))
        lines.setdefault(record.line_key, []).append(record.text)

    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    return ParsedOutput(blocks=blocks, skipped=skipped, separator=" ", text=text)


# =============================================================================
# Polygon regions (RapidOCR / PaddleOCR legacy)
# =============================================================================

def parse_polygon_regions(
    items: Optional[Iterable[Any]],
    block_type: BlockType = BlockType.LINE,
) -> ParsedOutput:
    """
    [[points, text, score], ...] → line blocks in reading order

    Also accepts PaddleOCR's legacy [points, (text, score)] pairs.
    """
    blocks: List[TextBlock] = []
    skipped = 0
    for item in items or []:
        try:
            points, text, score = _unpack_region(item)
            if not text:
                raise ValueError("empty text")
            blocks.append(block_from_geometry(text, _confidence(score), points, block_type))
        except (ValueError, TypeError, IndexError) as exc:
            skipped += 1
            logger.debug("skipping region %r: %s", item, exc)

    return ParsedOutput(blocks=sort_reading_order(blocks), skipped=skipped, separator="\n")


def _unpack_region(item: Any) -> Tuple[Any, str, Any]:
    if isinstance(item, dict):
        points = _first_present(item, "box", "points", "bbox")
        text = _first_present(item, "text", "label")
        score = item.get("score", item.get("confidence"))
        return points, str(text or "").strip(), score

    if not isinstance(item, (list, tuple)) or len(item) < 2:
        raise ValueError(f"unrecognized region shape: {type(item).__name__}")

    points, second = item[0], item[1]
    if isinstance(second, (list, tuple)):
        text = second[0] if second else ""
        score = second[1] if len(second) > 1 else None
    else:
        text = second
        score = item[2] if len(item) > 2 else None
    return points, str(text or "").strip(), score


# =============================================================================
# PaddleOCR (dict per page / legacy nested lists)
# =============================================================================

def parse_paddle_output(raw: Any, image_shape: Sequence[int]) -> ParsedOutput:
    """
    Normalize either PaddleOCR output generation

    Newer releases return one dict per page with rec_texts / rec_scores /
    rec_polys; older ones return [[ [points, (text, score)], ... ]]. Texts
    without any polygon get the full image extent.
    """
    if not raw:
        return ParsedOutput(separator="\n")

    if isinstance(raw, list) and raw and isinstance(raw[0], dict):
        regions = []
        text_only: List[Tuple[str, Any]] = []
        skipped = 0
        for page in raw:
            texts = _as_list(page.get("rec_texts"))
            scores = _as_list(page.get("rec_scores"))
            polys = page.get("rec_polys")
            if polys is None:
                polys = page.get("dt_polys")
            polys = _as_list(polys)
            for i, text in enumerate(texts):
                score = scores[i] if i < len(scores) else None
                if i < len(polys):
                    regions.append([polys[i], text, score])
                elif str(text or "").strip():
                    text_only.append((str(text).strip(), score))
                else:
                    skipped += 1
        parsed = parse_polygon_regions(regions)
        for text, score in text_only:
            parsed.blocks.append(TextBlock(
                text, _confidence(score), full_image_points(image_shape), BlockType.PARAGRAPH
            ))
        parsed.skipped += skipped
        return parsed

    # legacy: either a flat region list or one region list per page
    # (None for pages without text)
    regions = []
    for entry in raw:
        if entry is None:
            continue
        if _is_region(entry) or not isinstance(entry, (list, tuple)):
            regions.append(entry)
        else:
            regions.extend(entry)
    return parse_polygon_regions(regions)


def _as_list(value: Any) -> list:
    """None -> [], ndarray or any sequence -> list (arrays have no truth value)"""
    if value is None:
        return []
    return list(value)


def _first_present(mapping: dict, *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _is_region(item: Any) -> bool:
    """[points, (text, score)] or [points, text, score], as opposed to a page list"""
    if not isinstance(item, (list, tuple)) or len(item) < 2:
        return False
    second = item[1]
    if isinstance(second, str):
        return True
    return isinstance(second, (list, tuple)) and bool(second) and isinstance(second[0], str)


