"""
Unit tests for the validation gate and the extractor.
"""

import io
from unittest.mock import patch

import pytest
from PIL import Image

from design_extractor import extraction
from design_extractor.exceptions import EncodingError
from design_extractor.extraction import extract_designs, filter_regions, rejection_reason
from design_extractor.models import EnhancedRegion


def _region(x=10, y=10, w=50, h=50, confidence=0.8, category="logo", category_confidence=0.5):
    return EnhancedRegion(
        x=x, y=y, width=w, height=h, confidence=confidence,
        category=category, category_confidence=category_confidence,
    )


class TestValidationGate:
    def test_accepts_good_region(self):
        assert rejection_reason(_region(), 200, 200) is None

    @pytest.mark.parametrize("region, reason", [
        (_region(x=180), "outside image bounds"),
        (_region(x=-1), "outside image bounds"),
        (_region(w=19), "too small"),
        (_region(h=19), "too small"),
        (_region(x=0, w=161), "covers most of the image"),
        (_region(confidence=0.29), "low detection confidence"),
        (_region(category_confidence=0.19), "low category confidence"),
    ])
    def test_rejections(self, region, reason):
        assert rejection_reason(region, 200, 200) == reason

    def test_boundary_values_pass(self):
        assert rejection_reason(_region(x=0, w=160, confidence=0.3, category_confidence=0.2), 200, 200) is None

    def test_unclassified_region_not_gated_on_category(self):
        assert rejection_reason(_region(category=None, category_confidence=None), 200, 200) is None

    def test_sorted_by_confidence_stably(self):
        a = _region(confidence=0.5, category="a")
        b = _region(confidence=0.9, category="b")
        c = _region(confidence=0.5, category="c")
        rejected = _region(w=5, confidence=1.0, category="d")
        accepted = filter_regions([a, b, rejected, c], 200, 200)
        assert [r.category for r in accepted] == ["b", "a", "c"]


class TestExtractor:
    def test_png_with_exact_dimensions(self, red_square_canvas):
        designs = extract_designs(red_square_canvas, [_region(49, 49, 102, 102)])
        assert len(designs) == 1
        design = designs[0]
        assert (design.x, design.y, design.width, design.height) == (49, 49, 102, 102)
        assert design.content_type == "image/png"
        image = Image.open(io.BytesIO(design.image_bytes))
        assert image.format == "PNG"
        assert image.size == (102, 102)

    def test_out_of_bounds_region_is_clamped(self, red_square_canvas):
        design = extract_designs(red_square_canvas, [_region(170, 170, 50, 50)])[0]
        assert (design.x, design.y, design.width, design.height) == (170, 170, 30, 30)
        assert Image.open(io.BytesIO(design.image_bytes)).size == (30, 30)

    def test_ids_follow_output_order(self, red_square_canvas):
        designs = extract_designs(red_square_canvas, [_region(0, 0, 30, 30), _region(60, 60, 30, 30)])
        assert [d.id for d in designs] == ["design_1", "design_2"]

    def test_carries_category_and_confidence(self, red_square_canvas):
        design = extract_designs(red_square_canvas, [_region(confidence=0.7, category="icon")])[0]
        assert design.category == "icon"
        assert design.confidence == 0.7

    def test_encoding_failure_skips_only_that_region(self, red_square_canvas):
        with patch.object(extraction, "encode_png", side_effect=[EncodingError("disk full"), b"png"]):
            designs = extract_designs(red_square_canvas, [_region(0, 0, 30, 30), _region(60, 60, 30, 30)])
        assert len(designs) == 1
        assert designs[0].id == "design_1"
        assert designs[0].x == 60

    def test_to_dict_omits_bytes(self, red_square_canvas):
        info = extract_designs(red_square_canvas, [_region()])[0].to_dict()
        assert "image_bytes" not in info
        assert info["size_bytes"] > 0
