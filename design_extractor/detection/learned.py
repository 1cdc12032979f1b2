"""
Learned-detector adapter.

The detector itself is an external capability: a loader produces an
`infer(tensor) -> tensor` callable (by default backed by onnxruntime).
This module owns the shared session around it, the input preprocessing,
and decoding of the YOLO-style `[1, 4+C, N]` output into Regions.

When no model is configured, or loading fails, the session is FAILED and
detection yields no regions; the pipeline continues heuristic-only.
"""

import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
from PIL import Image

from design_extractor.exceptions import InferenceUnavailableError
from design_extractor.imaging import PixelBuffer
from design_extractor.logging_config import get_logger
from design_extractor.models import DetectionSource, PipelineSettings, Region, SessionState

from .merge import non_maximum_suppression

logger = get_logger(__name__)

InferFn = Callable[[np.ndarray], np.ndarray]
Loader = Callable[[], InferFn]


def onnx_loader(model_path: str) -> Loader:
    """
    Build a loader that opens an ONNX model with onnxruntime.

    onnxruntime is imported only when the loader runs, so it is needed only
    by deployments that actually ship a model (the "onnx" extra).
    """

    def load() -> InferFn:
        path = Path(model_path)
        if not path.exists():
            raise FileNotFoundError(f"Model file not found: {path}")

        import onnxruntime as ort

        session = ort.InferenceSession(str(path), providers=["CPUExecutionProvider"])
        input_name = session.get_inputs()[0].name

        def infer(tensor: np.ndarray) -> np.ndarray:
            return session.run(None, {input_name: tensor})[0]

        return infer

    return load


class InferenceSession:
    """
    Process-wide handle on the external detector.

    State machine: UNINITIALIZED -> READY | FAILED. The loader runs at most
    once (double-checked under a lock); a FAILED session is not retried until
    reset() re-arms it. Calls to run() are serialized because the underlying
    runtime is not assumed to be thread-safe.
    """

    def __init__(
        self,
        loader: Optional[Loader] = None,
        model_path: Optional[str] = None,
    ):
        self._loader = loader
        self._model_path = model_path
        self._state = SessionState.UNINITIALIZED
        self._infer: Optional[InferFn] = None
        self._error: Optional[str] = None
        self._init_lock = threading.Lock()
        self._run_lock = threading.Lock()

    @classmethod
    def from_model_path(cls, model_path: Optional[str]) -> "InferenceSession":
        """Session over an ONNX model file, or an unconfigured session if path is None."""
        if not model_path:
            return cls(loader=None)
        return cls(loader=onnx_loader(model_path), model_path=model_path)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY

    def initialize(self) -> SessionState:
        """Run the loader if it has not run yet. Returns the resulting state."""
        if self._state != SessionState.UNINITIALIZED:
            return self._state

        with self._init_lock:
            if self._state != SessionState.UNINITIALIZED:
                return self._state

            if self._loader is None:
                self._error = "no model configured"
                self._state = SessionState.FAILED
                logger.info("No learned-detector model configured; using heuristic detection only")
                return self._state

            try:
                self._infer = self._loader()
                self._state = SessionState.READY
                logger.info(f"Inference session ready (model={self._model_path})")
            except Exception as e:
                self._infer = None
                self._error = str(e)
                self._state = SessionState.FAILED
                logger.error(f"Inference session initialization failed: {e}")

        return self._state

    def reset(self) -> None:
        """Return to UNINITIALIZED so the next initialize() runs the loader again."""
        with self._init_lock:
            self._infer = None
            self._error = None
            self._state = SessionState.UNINITIALIZED
        logger.info("Inference session reset")

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run inference. Raises InferenceUnavailableError unless the session is READY."""
        with self._run_lock:
            infer = self._infer
            if self._state != SessionState.READY or infer is None:
                raise InferenceUnavailableError(f"Inference session is {self._state.value}")
            return np.asarray(infer(tensor))

    def describe(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "model_path": self._model_path,
            "error": self._error,
        }


def preprocess(buffer: PixelBuffer, input_size: int) -> np.ndarray:
    """Bilinear-resize RGB to a square input, scale to [0, 1], layout [1, 3, S, S]."""
    image = buffer.to_image().convert("RGB").resize((input_size, input_size), Image.BILINEAR)
    array = np.asarray(image, dtype=np.float32) / 255.0
    array = array.transpose(2, 0, 1)  # HWC -> CHW
    return np.ascontiguousarray(array[np.newaxis])


def decode_output(
    output: np.ndarray,
    image_width: int,
    image_height: int,
    confidence_threshold: float,
    class_names: Sequence[str] = (),
    default_label: str = "design",
) -> List[Region]:
    """
    Decode a `[1, 4+C, N]` detector output into Regions in image pixels.

    Rows 0-3 hold normalized center-x, center-y, width, height; rows 4.. hold
    per-class scores. A candidate is kept when its best class score exceeds
    the threshold. Candidates with non-finite values, and boxes that fall
    outside the image or have no area, are logged and skipped.

    Args:
        output: Raw output tensor
        image_width, image_height: Size of the original image
        confidence_threshold: Minimum best-class score (exclusive)
        class_names: Label per class index; missing entries use default_label
        default_label: Label when no class name is available

    Returns:
        List of Region objects with source LEARNED

    Raises:
        ValueError: If the tensor does not have shape [1, 4+C, N] with C >= 1
    """
    output = np.asarray(output, dtype=np.float64)
    if output.ndim != 3 or output.shape[0] != 1 or output.shape[1] < 5:
        raise ValueError(
            f"Expected detector output of shape [1, 4+C, N] with C >= 1, got {list(output.shape)}"
        )

    predictions = output[0]
    boxes = predictions[:4]
    scores = predictions[4:]
    class_ids = scores.argmax(axis=0)
    best_scores = scores.max(axis=0)

    regions = []
    for i in range(predictions.shape[1]):
        score = float(best_scores[i])
        if not np.isfinite(score) or not np.isfinite(boxes[:, i]).all():
            logger.warning(f"Dropping learned candidate {i}: non-finite box or score")
            continue
        if score <= confidence_threshold:
            continue

        cx, cy, w, h = (float(v) for v in boxes[:, i])
        x = int((cx - w / 2) * image_width)
        y = int((cy - h / 2) * image_height)
        width = int(w * image_width)
        height = int(h * image_height)

        if (
            x < 0 or y < 0 or width <= 0 or height <= 0
            or x + width > image_width or y + height > image_height
        ):
            logger.warning(
                f"Dropping learned box ({x}, {y}, {width}, {height}): "
                f"empty or outside {image_width}x{image_height} image"
            )
            continue

        class_id = int(class_ids[i])
        label = class_names[class_id] if class_id < len(class_names) else default_label
        regions.append(Region(
            x=x, y=y, width=width, height=height,
            confidence=min(1.0, score),
            label=label,
            source=DetectionSource.LEARNED,
        ))

    return regions


class LearnedDetector:
    """Runs the shared session over one image and decodes the result."""

    def __init__(self, session: InferenceSession, settings: Optional[PipelineSettings] = None):
        self.session = session
        self.settings = settings or PipelineSettings.from_config()

    def detect(self, buffer: PixelBuffer) -> List[Region]:
        """Learned candidates for one image, or [] when the detector is unavailable."""
        if self.session.initialize() != SessionState.READY:
            logger.debug(f"Learned detection skipped: session {self.session.state.value}")
            return []

        settings = self.settings
        try:
            output = self.session.run(preprocess(buffer, settings.input_size))
            regions = decode_output(
                output,
                buffer.width,
                buffer.height,
                settings.confidence_threshold,
                settings.class_names,
                settings.default_label,
            )
        except InferenceUnavailableError as e:
            logger.warning(f"Learned detection skipped: {e}")
            return []
        except Exception as e:
            logger.error(f"Learned detection failed: {e}", exc_info=True)
            return []

        kept = non_maximum_suppression(regions, settings.nms_threshold)
        logger.info(f"Learned detection found {len(kept)} regions ({len(regions)} before NMS)")
        return kept

    def describe(self) -> Dict[str, Any]:
        """Model information: session state plus the thresholds in use."""
        return {
            **self.session.describe(),
            "input_size": self.settings.input_size,
            "confidence_threshold": self.settings.confidence_threshold,
            "nms_threshold": self.settings.nms_threshold,
            "class_names": list(self.settings.class_names),
        }
