"""
Unit tests for the configuration loader and pipeline settings.
"""

import pytest
from pydantic import ValidationError

from design_extractor import config
from design_extractor.models import PipelineSettings


class TestConfigLoader:
    def test_get_nested_value(self):
        assert config.get("heuristic", "edge", "min_size") == 10

    def test_missing_key_names_dotted_path(self):
        with pytest.raises(RuntimeError, match="heuristic.edge.nope"):
            config.get("heuristic", "edge", "nope")

    def test_get_section_is_a_copy(self):
        section = config.get_section("quality", "weights")
        section["dimension"] = 99
        assert config.get("quality", "weights", "dimension") == 0.2

    def test_get_section_rejects_scalars(self):
        with pytest.raises(RuntimeError):
            config.get_section("pipeline", "input_size")

    def test_heuristic_table_holds_only_strategy_tables(self):
        assert set(config.get_section("heuristic")) == {"edge", "color", "texture"}

    def test_classifier_block_divisors(self):
        assert config.get_section("classifier", "block_divisors") == {"color": 10.0, "texture": 5.0, "edge": 3.0}

    def test_load_config_missing_file(self, tmp_path):
        with pytest.raises(RuntimeError, match="not found"):
            config.load_config(tmp_path / "missing.toml")

    def test_load_config_parses_file(self, tmp_path):
        path = tmp_path / "alt.toml"
        path.write_text('[pipeline]\ninput_size = 320\n')
        assert config.lookup(config.load_config(path), "pipeline", "input_size") == 320

    def test_require_env(self, monkeypatch):
        monkeypatch.setenv("DESIGN_EXTRACTOR_TEST_VAR", "value")
        assert config.require_env("DESIGN_EXTRACTOR_TEST_VAR") == "value"
        monkeypatch.delenv("DESIGN_EXTRACTOR_TEST_VAR")
        with pytest.raises(RuntimeError):
            config.require_env("DESIGN_EXTRACTOR_TEST_VAR")


class TestPipelineSettings:
    def test_defaults_match_config(self):
        settings = PipelineSettings.from_config()
        assert settings.confidence_threshold == 0.5
        assert settings.nms_threshold == 0.4
        assert settings.input_size == 640
        assert settings.dedup_iou_threshold == 0.5
        assert settings.merge_nms_threshold == 0.3
        assert settings.category_vocabulary == PipelineSettings().category_vocabulary
        assert settings.model_path is None

    def test_overrides(self):
        settings = PipelineSettings.from_config(input_size=320, class_names=["logo"])
        assert settings.input_size == 320
        assert settings.class_names == ["logo"]

    def test_model_path_from_env(self, monkeypatch):
        monkeypatch.setenv("DESIGN_EXTRACTOR_MODEL_PATH", "/models/detector.onnx")
        assert PipelineSettings.from_config().model_path == "/models/detector.onnx"

    @pytest.mark.parametrize("field, value", [
        ("confidence_threshold", 1.5),
        ("nms_threshold", -0.1),
        ("input_size", 0),
        ("embedding_dim", 64),
        ("category_vocabulary", []),
        ("category_vocabulary", ["logo", "logo"]),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            PipelineSettings(**{field: value})
