"""
Unit tests for embedding providers and category classification.
"""

from unittest.mock import MagicMock

import numpy as np
import pytest

from conftest import make_canvas
from design_extractor.classification import (
    DesignClassifier,
    EmbeddingProvider,
    FeatureEmbedder,
    SeededEmbeddingProvider,
    best_category,
    block_scores,
    color_features,
    edge_features,
    score_categories,
    texture_features,
)
from design_extractor.imaging import PixelBuffer
from design_extractor.models import EnhancedRegion, PipelineSettings

VOCABULARY = [
    "logo", "text", "graphic design", "illustration", "pattern",
    "symbol", "icon", "artwork", "brand", "decoration",
]


def _shell(x, y, w, h, confidence=0.8):
    return EnhancedRegion(x=x, y=y, width=w, height=h, confidence=confidence, detection_method="heuristic")


class TestFeatureBlocks:
    def test_color_histograms_of_pure_red(self):
        features = color_features(PixelBuffer.from_array(make_canvas(8, 8, (255, 0, 0))))
        assert features.shape == (64,)
        assert features[15] == 1.0  # R
        assert features[16] == 1.0  # G bin 0
        assert features[32] == 1.0  # B bin 0
        assert features[48 + 5] == 1.0  # intensity 85
        assert features.sum() == pytest.approx(4.0)

    def test_texture_of_uniform_image(self):
        features = texture_features(PixelBuffer.from_array(make_canvas(10, 10)))
        assert features.shape == (32,)
        assert not features[:8].any()  # no neighbour is ever brighter
        assert features[8] == 1.0 and features[16] == 1.0 and features[24] == 1.0

    def test_edge_block_empty_without_edges(self):
        assert not edge_features(PixelBuffer.from_array(make_canvas(10, 10))).any()

    def test_edge_block_counts_strong_gradients(self):
        canvas = make_canvas(10, 10, (0, 0, 0))
        canvas[:, 5:] = (255, 255, 255)
        features = edge_features(PixelBuffer.from_array(canvas))
        assert features.shape == (16,)
        assert features[:8].sum() == pytest.approx(features[8:].sum())
        assert features[:8].sum() == pytest.approx(16 / 64)

    def test_tiny_image_has_empty_texture_and_edges(self):
        tiny = PixelBuffer.from_array(make_canvas(2, 2))
        assert not texture_features(tiny).any()
        assert not edge_features(tiny).any()


class TestFeatureEmbedder:
    def test_unit_length_and_padding(self, red_square_canvas):
        embedding = FeatureEmbedder(512).embed(red_square_canvas)
        assert embedding.shape == (512,)
        assert np.linalg.norm(embedding) == pytest.approx(1.0)
        assert not embedding[112:].any()

    def test_deterministic(self, sprite):
        embedder = FeatureEmbedder()
        np.testing.assert_array_equal(embedder.embed(sprite), embedder.embed(sprite))

    def test_rejects_too_small_dimension(self):
        with pytest.raises(ValueError):
            FeatureEmbedder(64)


class TestSeededEmbeddingProvider:
    def test_deterministic_and_unit(self, sprite):
        provider = SeededEmbeddingProvider(seed=1, dimension=128)
        first = provider.embed(sprite)
        np.testing.assert_array_equal(first, provider.embed(sprite))
        assert first.shape == (128,)
        assert np.linalg.norm(first) == pytest.approx(1.0)

    def test_seed_and_content_change_vector(self, sprite, red_square_canvas):
        a = SeededEmbeddingProvider(seed=1).embed(sprite)
        assert not np.array_equal(a, SeededEmbeddingProvider(seed=2).embed(sprite))
        assert not np.array_equal(a, SeededEmbeddingProvider(seed=1).embed(red_square_canvas))

    def test_is_an_embedding_provider(self):
        assert isinstance(SeededEmbeddingProvider(), EmbeddingProvider)


class TestCategoryScoring:
    def test_block_scores_of_unit_vector(self):
        vector = np.zeros(512)
        vector[0] = 0.6
        vector[64] = -0.8
        scores = block_scores(vector)
        assert scores["color"] == pytest.approx(0.06)
        assert scores["texture"] == pytest.approx(0.16)
        assert scores["edge"] == 0.0

    def test_block_scores_are_capped(self):
        vector = np.zeros(512)
        vector[96:112] = 0.25
        assert block_scores(vector)["edge"] == 1.0

    def test_formulas_and_baseline(self):
        vector = np.zeros(512)
        vector[0:64] = 0.125
        scores = score_categories(vector, VOCABULARY)
        assert list(scores) == VOCABULARY
        assert scores["logo"] == pytest.approx(0.64)
        assert scores["graphic design"] == pytest.approx(0.6)
        assert scores["illustration"] == pytest.approx(0.56)
        assert scores["pattern"] == 0.0
        assert scores["artwork"] == pytest.approx(0.1)
        assert scores["brand"] == pytest.approx(0.1)

    def test_concentrated_vector_loses_to_baseline(self):
        vector = np.zeros(512)
        vector[0] = 1.0
        scores = score_categories(vector, VOCABULARY)
        assert scores["logo"] == pytest.approx(0.08)
        assert best_category(scores) == ("artwork", pytest.approx(0.1))

    def test_edge_heavy_vector_is_text(self):
        vector = np.zeros(512)
        vector[96:112] = 0.25
        assert best_category(score_categories(vector, VOCABULARY)) == ("text", pytest.approx(0.9))

    def test_unknown_vocabulary_scores_baseline(self):
        vector = np.zeros(512)
        vector[0] = 1.0
        assert score_categories(vector, ["mascot"]) == {"mascot": pytest.approx(0.1)}

    def test_ties_go_to_earlier_category(self):
        assert best_category({"brand": 0.1, "artwork": 0.1}) == ("brand", 0.1)

    def test_empty_scores_raise(self):
        with pytest.raises(ValueError):
            best_category({})


class TestDesignClassifier:
    def test_red_square_scores_as_pattern(self, red_square_canvas, settings):
        """Three histogram-like texture features outweigh the four color histograms after the divisors."""
        classifier = DesignClassifier(settings=settings)
        region = classifier.classify(red_square_canvas, [_shell(49, 49, 102, 102)])[0]
        scores = region.metadata["category_scores"]
        assert region.category == "pattern"
        assert 0.2 < region.category_confidence < 0.25
        assert 0.1 < scores["logo"] < scores["pattern"]
        assert np.linalg.norm(region.embedding) == pytest.approx(1.0)
        assert region.metadata["crop_box"] == [49, 49, 102, 102]
        assert set(region.metadata["category_scores"]) == set(settings.category_vocabulary)

    def test_does_not_mutate_input(self, red_square_canvas, settings):
        shell = _shell(49, 49, 102, 102)
        DesignClassifier(settings=settings).classify(red_square_canvas, [shell])
        assert shell.category is None and shell.metadata == {}

    def test_out_of_bounds_box_is_clamped(self, red_square_canvas, settings):
        classifier = DesignClassifier(SeededEmbeddingProvider(), settings)
        region = classifier.classify_region(red_square_canvas, _shell(180, -10, 50, 50))
        assert region.metadata["crop_box"] == [180, 0, 20, 50]

    def test_embedder_sees_classifier_input_size(self, red_square_canvas):
        embedder = MagicMock(spec=EmbeddingProvider)
        embedder.embed.return_value = np.eye(1, 512).ravel()
        settings = PipelineSettings.from_config(classifier_input_size=48)
        DesignClassifier(embedder, settings).classify(red_square_canvas, [_shell(0, 0, 30, 30)])
        assert embedder.embed.call_args[0][0].size == (48, 48)

    def test_failed_region_is_skipped(self, red_square_canvas, settings):
        embedder = MagicMock(spec=EmbeddingProvider)
        embedder.embed.side_effect = [RuntimeError("boom"), np.eye(1, 512).ravel()]
        regions = [_shell(0, 0, 30, 30), _shell(100, 100, 30, 30)]
        classified = DesignClassifier(embedder, settings).classify(red_square_canvas, regions)
        assert [r.box for r in classified] == [(100, 100, 30, 30)]
