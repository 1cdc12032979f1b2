"""
Shared test fixtures for the design extraction test suite.
"""

from typing import Callable, List, Optional

import numpy as np
import pytest

from design_extractor.detection import InferenceSession
from design_extractor.imaging import PixelBuffer
from design_extractor.models import PipelineSettings

WHITE = (255, 255, 255)
RED = (255, 0, 0)

# Ground truth for the red-square canvas
RED_SQUARE_BOX = (50, 50, 100, 100)


def make_canvas(width: int, height: int, color=WHITE) -> np.ndarray:
    """Solid RGB canvas as a (height, width, 3) uint8 array."""
    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    canvas[:, :] = color
    return canvas


def make_detector_output(boxes: List[tuple], scores: List[tuple]) -> np.ndarray:
    """Build a [1, 4+C, N] tensor from (cx, cy, w, h) boxes and per-class score tuples."""
    columns = [list(box) + list(score) for box, score in zip(boxes, scores)]
    return np.array(columns, dtype=np.float64).T[np.newaxis]


@pytest.fixture(autouse=True)
def no_model_env(monkeypatch):
    """Keep a developer's model path out of the tests."""
    monkeypatch.delenv("DESIGN_EXTRACTOR_MODEL_PATH", raising=False)


@pytest.fixture
def red_square_canvas() -> PixelBuffer:
    """100x100 opaque red square at (50, 50) on a 200x200 white canvas."""
    canvas = make_canvas(200, 200)
    x, y, w, h = RED_SQUARE_BOX
    canvas[y:y + h, x:x + w] = RED
    return PixelBuffer.from_array(canvas)


@pytest.fixture
def uniform_canvas() -> PixelBuffer:
    """200x200 solid gray canvas."""
    return PixelBuffer.from_array(make_canvas(200, 200, (120, 120, 120)))


@pytest.fixture
def sprite() -> PixelBuffer:
    """100x100 RGBA image: transparent background around an opaque 60x60 gradient."""
    data = np.zeros((100, 100, 4), dtype=np.uint8)
    ramp = np.linspace(0, 255, 60, dtype=np.uint8)
    data[20:80, 20:80, 0] = ramp[np.newaxis, :]
    data[20:80, 20:80, 1] = ramp[:, np.newaxis]
    data[20:80, 20:80, 2] = 128
    data[20:80, 20:80, 3] = 255
    return PixelBuffer(data)


@pytest.fixture
def settings() -> PipelineSettings:
    """Config-backed settings with a small learned-detector input size."""
    return PipelineSettings.from_config(input_size=64)


@pytest.fixture
def session_factory() -> Callable[..., InferenceSession]:
    """Build sessions whose infer() returns a fixed tensor, or whose loader fails."""

    def factory(output: Optional[np.ndarray] = None, fail: bool = False) -> InferenceSession:
        def loader():
            if fail:
                raise RuntimeError("model weights missing")
            return lambda tensor: output

        return InferenceSession(loader=loader, model_path="stub.onnx")

    return factory


@pytest.fixture
def failed_session(session_factory) -> InferenceSession:
    session = session_factory(fail=True)
    session.initialize()
    return session
