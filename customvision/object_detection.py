"""
Object Detection Module
=======================

Postprocessing for CustomVision's exported object detection model:
decode the raw output tensor, then suppress overlapping predictions.

The detector can optionally own an ONNX model; without one it still
postprocesses tensors produced by any external inference engine.

References:
- YOLO9000: https://arxiv.org/abs/1612.08242
- Azure Custom Vision: https://learn.microsoft.com/azure/ai-services/custom-vision-service/
"""

import logging
import numpy as np
from typing import List, Optional, Sequence

from .config import (
    DetectorConfig,
    DEFAULT_MAX_DETECTIONS,
    DEFAULT_PROBABILITY_THRESHOLD,
    DEFAULT_IOU_THRESHOLD,
)
from .decoder import ANCHORS, decode_boxes
from .inference import OnnxModelRunner
from .suppression import Prediction, suppress_non_maximum

LOGGER = logging.getLogger(__name__)


class ObjectDetection:
    """
    Object detector for CustomVision YOLO-style models.

    Pipeline per frame:
    1. (optional) run the ONNX model on a 416x416 BGR frame
    2. decode boxes, objectness and class probabilities from the grid
    3. greedy class-aware non-maximum suppression

    Every call builds its own working buffers, so one instance can serve
    several threads as long as each passes its own tensor.
    """

    def __init__(
        self,
        labels: Sequence[str],
        max_detections: int = DEFAULT_MAX_DETECTIONS,
        probability_threshold: float = DEFAULT_PROBABILITY_THRESHOLD,
        iou_threshold: float = DEFAULT_IOU_THRESHOLD,
        anchors: Sequence[float] = ANCHORS
    ):
        """
        Initialize the detector.

        Args:
            labels: Class names in model output order
            max_detections: Maximum number of predictions to return
            probability_threshold: Minimum class probability
            iou_threshold: Overlap above which same-class boxes are suppressed
            anchors: Anchor table the model was trained with
        """
        self.config = DetectorConfig(
            labels=labels,
            max_detections=max_detections,
            probability_threshold=probability_threshold,
            iou_threshold=iou_threshold,
            anchors=anchors
        )
        self._runner: Optional[OnnxModelRunner] = None

    @classmethod
    def from_config(cls, config: DetectorConfig) -> "ObjectDetection":
        return cls(
            labels=config.labels,
            max_detections=config.max_detections,
            probability_threshold=config.probability_threshold,
            iou_threshold=config.iou_threshold,
            anchors=config.anchors if config.anchors is not None else ANCHORS
        )

    @property
    def labels(self) -> Sequence[str]:
        return self.config.labels

    @property
    def anchors(self) -> Sequence[float]:
        return self.config.anchors

    @property
    def has_model(self) -> bool:
        return self._runner is not None

    def init(self, model_path: str) -> None:
        """Load the ONNX model used by predict_image()."""
        self.init_runner(OnnxModelRunner.from_file(model_path))

    def init_runner(self, runner: OnnxModelRunner) -> None:
        self._runner = runner

    def predict_image(self, image: np.ndarray) -> List[Prediction]:
        """
        Detect objects in a BGR frame with the loaded model.

        Raises:
            RuntimeError: If no model has been loaded
        """
        if self._runner is None:
            raise RuntimeError("No model loaded; call init() first")
        return self.postprocess(self._runner.run(image))

    def postprocess(self, output: np.ndarray) -> List[Prediction]:
        """
        Turn a raw output tensor into final predictions.

        Args:
            output: Raw tensor of shape [1, A * (5 + C), H, W]

        Returns:
            Predictions, most confident first
        """
        candidates = decode_boxes(output, None, self.config)
        predictions = suppress_non_maximum(candidates, self.config)
        LOGGER.debug("Detected %d objects", len(predictions))
        return predictions
