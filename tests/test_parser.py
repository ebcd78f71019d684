"""
Native output normalization: Tesseract TSV, polygon regions, PaddleOCR
"""

import numpy as np
import pytest

from ocrdesk.base import Coord
from ocrdesk.config import DEFAULT_CONFIDENCE
from ocrdesk.ocr.interface import BlockType, ParsedOutput, TextBlock
from ocrdesk.ocr.parser import (
    block_from_geometry,
    parse_paddle_output,
    parse_polygon_regions,
    parse_tesseract_tsv,
    region_points,
    resolve_text,
    sort_reading_order,
    tokenize_tsv_row,
)

TSV_HEADER = "level\tpage_num\tblock_num\tpar_num\tline_num\tword_num\tleft\ttop\twidth\theight\tconf\ttext"


def _tsv(*rows):
    return "\n".join([TSV_HEADER, *rows]) + "\n"


class TestTokenizeTsvRow:
    def test_word_row(self):
        record = tokenize_tsv_row("5\t1\t1\t1\t1\t1\t10\t20\t30\t12\t91.5\tHello")
        assert record.text == "Hello"
        assert (record.x, record.y, record.width, record.height) == (10, 20, 30, 12)
        assert record.confidence == pytest.approx(0.915)
        assert record.line_key == (1, 1, 1, 1)

    def test_structural_row(self):
        assert tokenize_tsv_row("4\t1\t1\t1\t1\t0\t10\t20\t300\t12\t-1\t") is None

    def test_unknown_confidence_uses_default(self):
        record = tokenize_tsv_row("5\t1\t1\t1\t1\t1\t0\t0\t5\t5\t-1\tx")
        assert record.confidence == DEFAULT_CONFIDENCE

    def test_text_with_spaces_kept(self):
        record = tokenize_tsv_row("5\t1\t1\t1\t1\t1\t0\t0\t5\t5\t80\ta b")
        assert record.text == "a b"

    def test_malformed_numbers(self):
        with pytest.raises(ValueError):
            tokenize_tsv_row("5\t1\t1\t1\t1\t1\tten\t0\t5\t5\t80\tx")

    def test_bad_level(self):
        with pytest.raises(ValueError):
            tokenize_tsv_row("word\t1")


class TestParseTesseractTsv:
    def test_words_and_lines(self):
        tsv = _tsv(
            "1\t1\t0\t0\t0\t0\t0\t0\t200\t100\t-1\t",
            "5\t1\t1\t1\t1\t1\t10\t10\t40\t12\t95\tHello",
            "5\t1\t1\t1\t1\t2\t60\t10\t40\t12\t90\tworld",
            "5\t1\t1\t1\t2\t1\t10\t40\t50\t12\t85\tsecond",
        )
        parsed = parse_tesseract_tsv(tsv)
        assert [b.text for b in parsed.blocks] == ["Hello", "world", "second"]
        assert all(b.block_type is BlockType.WORD for b in parsed.blocks)
        assert parsed.text == "Hello world\nsecond"
        assert parsed.skipped == 0

    def test_bad_rows_counted(self):
        tsv = _tsv(
            "5\t1\t1\t1\t1\t1\t10\t10\t40\t12\t95\tok",
            "5\t1\t1\t1\t1\t2\tbad\t10\t40\t12\t95\tbroken",
            "5\t1\t1",
        )
        parsed = parse_tesseract_tsv(tsv)
        assert [b.text for b in parsed.blocks] == ["ok"]
        assert parsed.skipped == 2

    def test_empty_output(self):
        parsed = parse_tesseract_tsv(_tsv())
        assert parsed.blocks == []
        assert resolve_text(parsed) == ""


class TestRegionPoints:
    def test_four_points(self):
        assert region_points([[0, 0], [10, 0], [10, 5], [0, 5]])[2] == Coord(10, 5)

    def test_ndarray_points(self):
        pts = np.array([[0.4, 0.6], [10.2, 0], [10, 5], [0, 5]], dtype=np.float32)
        assert region_points(pts)[0] == Coord(0, 1)

    def test_rect(self):
        assert region_points((10, 20, 30, 40)) == [Coord(10, 20), Coord(40, 20), Coord(40, 60), Coord(10, 60)]

    def test_flat_eight(self):
        assert region_points([0, 0, 10, 0, 10, 5, 0, 5])[1] == Coord(10, 0)

    def test_dict_rect(self):
        assert region_points({"x": 1, "y": 2, "width": 3, "height": 4})[2] == Coord(4, 6)

    def test_unsupported(self):
        with pytest.raises(ValueError):
            region_points([[0, 0], [1, 1]])
        with pytest.raises(ValueError):
            region_points(None)


class TestBlockFromGeometry:
    def test_rotated_rect(self):
        block = block_from_geometry("r", 0.7, ((50, 25), (100, 50), 0))
        assert block.bounding_box.to_cv2_rect() == (0, 0, 100, 50)
        assert block.confidence == pytest.approx(0.7)

    def test_points_reordered(self):
        block = block_from_geometry("p", 0.9, [[0, 50], [0, 0], [100, 0], [100, 50]])
        assert block.box_points[0] == Coord(0, 0)
        assert block.box_points[2] == Coord(100, 50)


class TestPolygonRegions:
    def test_dict_regions_with_numpy_box(self):
        items = [{"box": np.array([[0, 0], [20, 0], [20, 10], [0, 10]]), "text": "abc", "score": 0.8}]
        parsed = parse_polygon_regions(items)
        assert parsed.blocks[0].text == "abc"
        assert parsed.skipped == 0

    def test_rapidocr_triples(self):
        items = [
            [[[10, 40], [90, 40], [90, 55], [10, 55]], "second", 0.8],
            [[[10, 10], [90, 10], [90, 25], [10, 25]], "first", 0.95],
        ]
        parsed = parse_polygon_regions(items)
        assert [b.text for b in parsed.blocks] == ["first", "second"]
        assert parsed.blocks[0].confidence == pytest.approx(0.95)
        assert resolve_text(parsed) == "first\nsecond"

    def test_paddle_legacy_pairs(self):
        items = [[[[0, 0], [20, 0], [20, 10], [0, 10]], ("abc", 0.7)]]
        parsed = parse_polygon_regions(items)
        assert parsed.blocks[0].text == "abc"
        assert parsed.blocks[0].confidence == pytest.approx(0.7)

    def test_missing_score_uses_default(self):
        parsed = parse_polygon_regions([[[[0, 0], [20, 0], [20, 10], [0, 10]], "abc"]])
        assert parsed.blocks[0].confidence == DEFAULT_CONFIDENCE

    def test_bad_regions_skipped_and_counted(self):
        items = [
            [[[0, 0], [20, 0], [20, 10], [0, 10]], "good", 0.9],
            [[[0, 0], [20, 0]], "two points", 0.9],
            [[[0, 20], [20, 20], [20, 30], [0, 30]], "   ", 0.9],
            "garbage",
        ]
        parsed = parse_polygon_regions(items)
        assert [b.text for b in parsed.blocks] == ["good"]
        assert parsed.skipped == 3

    def test_none_result(self):
        parsed = parse_polygon_regions(None)
        assert parsed.blocks == []
        assert parsed.skipped == 0


class TestPaddleOutput:
    def test_dict_format(self):
        raw = [{
            "rec_texts": ["top", "bottom"],
            "rec_scores": [0.99, 0.88],
            "rec_polys": [
                np.array([[5, 5], [60, 5], [60, 20], [5, 20]]),
                np.array([[5, 40], [60, 40], [60, 55], [5, 55]]),
            ],
        }]
        parsed = parse_paddle_output(raw, (100, 200, 3))
        assert [b.text for b in parsed.blocks] == ["top", "bottom"]
        assert parsed.blocks[1].confidence == pytest.approx(0.88)

    def test_numpy_scores_and_polys(self):
        raw = [{
            "rec_texts": ["hello", "world"],
            "rec_scores": np.array([0.98, 0.91]),
            "rec_polys": np.array([
                [[5, 5], [60, 5], [60, 20], [5, 20]],
                [[5, 40], [60, 40], [60, 55], [5, 55]],
            ], dtype=np.int16),
        }]
        parsed = parse_paddle_output(raw, (100, 100, 3))
        assert [b.text for b in parsed.blocks] == ["hello", "world"]
        assert parsed.blocks[0].confidence == pytest.approx(0.98)
        assert parsed.skipped == 0

    def test_numpy_texts_without_polys(self):
        raw = [{"rec_texts": np.array(["a", "b"]), "rec_scores": np.array([0.5, 0.6])}]
        parsed = parse_paddle_output(raw, (10, 20, 3))
        assert [b.text for b in parsed.blocks] == ["a", "b"]

    def test_text_without_polygon_gets_full_image(self):
        raw = [{"rec_texts": ["orphan"], "rec_scores": [0.5]}]
        parsed = parse_paddle_output(raw, (100, 200, 3))
        block = parsed.blocks[0]
        assert block.block_type is BlockType.PARAGRAPH
        assert block.bounding_box.to_cv2_rect() == (0, 0, 200, 100)

    def test_legacy_pages(self):
        raw = [[
            [[[0, 0], [20, 0], [20, 10], [0, 10]], ("a", 0.9)],
            [[[30, 0], [50, 0], [50, 10], [30, 10]], ("b", 0.8)],
        ]]
        parsed = parse_paddle_output(raw, (50, 60, 3))
        assert resolve_text(parsed) == "a\nb"

    def test_legacy_empty_page(self):
        parsed = parse_paddle_output([None], (50, 60, 3))
        assert parsed.blocks == []

    def test_nothing(self):
        assert parse_paddle_output(None, (50, 60, 3)).blocks == []


class TestReadingOrder:
    def test_rows_then_columns(self):
        blocks = [
            TextBlock.from_rect("c", 10, 50, 20, 10),
            TextBlock.from_rect("b", 60, 12, 20, 10),
            TextBlock.from_rect("a", 10, 10, 20, 10),
        ]
        assert [b.text for b in sort_reading_order(blocks)] == ["a", "b", "c"]

    def test_engine_text_wins(self):
        parsed = ParsedOutput(blocks=[TextBlock.from_rect("x", 0, 0, 1, 1)], text=" full text \n")
        assert resolve_text(parsed) == "full text"
