"""
Unit tests for heuristic region detection.

Covers the edge, color and texture strategies on synthetic canvases, the
uniform-image guarantee, determinism, and isolation of a failing strategy.
"""

from unittest.mock import patch

import numpy as np

from conftest import RED_SQUARE_BOX, make_canvas
from design_extractor.detection import heuristic
from design_extractor.detection.heuristic import (
    detect_color_regions,
    detect_edge_regions,
    detect_regions,
    detect_texture_regions,
    dominant_colors,
)
from design_extractor.detection.merge import iou
from design_extractor.imaging import PixelBuffer
from design_extractor.models import DetectionSource


class TestEdgeDetection:
    def test_uniform_image_has_no_edge_regions(self, uniform_canvas):
        assert detect_edge_regions(uniform_canvas) == []

    def test_red_square_found_once(self, red_square_canvas):
        regions = detect_edge_regions(red_square_canvas)
        assert len(regions) == 1
        assert iou(regions[0].box, RED_SQUARE_BOX) >= 0.8

    def test_red_square_box_hugs_the_outline(self, red_square_canvas):
        """Sobel responds on both sides of the boundary, one pixel outside the square."""
        assert detect_edge_regions(red_square_canvas)[0].box == (49, 49, 102, 102)

    def test_label_confidence_and_source(self, red_square_canvas):
        region = detect_edge_regions(red_square_canvas)[0]
        assert region.label == "edge_detected"
        assert region.confidence == heuristic.EDGE_CONFIDENCE
        assert region.source == DetectionSource.HEURISTIC

    def test_small_shape_is_ignored(self):
        canvas = make_canvas(60, 60)
        canvas[20:24, 20:24] = (0, 0, 0)
        assert detect_edge_regions(PixelBuffer.from_array(canvas)) == []

    def test_density_floor_rejects_sparse_boxes(self, red_square_canvas):
        assert detect_edge_regions(red_square_canvas, min_edge_density=0.5) == []


class TestColorDetection:
    def test_dominant_colors_are_bin_centres(self, red_square_canvas):
        """Red covers 25% of samples, below the background share, so only white is dominant."""
        assert dominant_colors(red_square_canvas.rgb) == [(240, 240, 240)]

    def test_two_dominant_colors(self):
        canvas = make_canvas(100, 100)
        canvas[:, 50:] = (0, 0, 0)
        colors = dominant_colors(canvas)
        assert sorted(colors) == [(16, 16, 16), (240, 240, 240)]

    def test_red_square_found(self, red_square_canvas):
        regions = detect_color_regions(red_square_canvas)
        assert [r.box for r in regions] == [RED_SQUARE_BOX]
        assert regions[0].label == "color_detected"
        assert regions[0].confidence == heuristic.COLOR_CONFIDENCE

    def test_uniform_image_is_all_background(self, uniform_canvas):
        assert detect_color_regions(uniform_canvas) == []

    def test_low_contrast_shape_rejected(self):
        canvas = make_canvas(200, 200, (200, 200, 200))
        canvas[50:150, 50:150] = (150, 200, 200)  # far in RGB, close in intensity
        assert detect_color_regions(PixelBuffer.from_array(canvas)) == []


class TestTextureDetection:
    def test_uniform_image_has_no_texture(self, uniform_canvas):
        assert detect_texture_regions(uniform_canvas) == []

    def test_red_square_outline_is_textured(self, red_square_canvas):
        regions = detect_texture_regions(red_square_canvas)
        assert [r.box for r in regions] == [(49, 49, 102, 102)]
        assert regions[0].label == "texture_detected"

    def test_noise_patch_found(self):
        rng = np.random.default_rng(7)
        canvas = make_canvas(120, 120, (128, 128, 128))
        canvas[30:70, 40:90] = rng.integers(0, 256, size=(40, 50, 1), dtype=np.uint8)
        regions = detect_texture_regions(PixelBuffer.from_array(canvas))
        assert len(regions) == 1
        x, y, w, h = regions[0].box
        assert 38 <= x <= 40 and 28 <= y <= 30
        assert w >= 50 and h >= 40


class TestDetectRegions:
    def test_union_of_strategies_in_order(self, red_square_canvas):
        labels = [r.label for r in detect_regions(red_square_canvas)]
        assert labels == ["edge_detected", "color_detected", "texture_detected"]

    def test_deterministic(self, red_square_canvas):
        assert detect_regions(red_square_canvas) == detect_regions(red_square_canvas)

    def test_regions_within_image(self, red_square_canvas):
        for region in detect_regions(red_square_canvas):
            assert region.fits_within(red_square_canvas.width, red_square_canvas.height)

    def test_failing_strategy_contributes_nothing(self, red_square_canvas):
        with patch.object(heuristic, "detect_color_regions", side_effect=RuntimeError("boom")):
            labels = [r.label for r in detect_regions(red_square_canvas)]
        assert labels == ["edge_detected", "texture_detected"]
