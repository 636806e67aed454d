"""
CustomVision Object Detection Postprocessing
============================================

Decodes the raw output tensor of a CustomVision-exported YOLO detector
into bounding boxes and removes overlapping duplicates with greedy,
class-aware non-maximum suppression.

The core works on plain numpy arrays, so it can be driven by any inference
runtime (or by synthetic tensors in tests).

References:
- YOLO9000: Redmon & Farhadi, https://arxiv.org/abs/1612.08242
- Azure Custom Vision ONNX export: https://learn.microsoft.com/azure/ai-services/custom-vision-service/export-your-model
"""

from .geometry import BoundingBox, logistic, calculate_iou
from .config import DetectorConfig
from .decoder import ANCHORS, Candidate, ModelMismatchError, decode_boxes
from .suppression import Prediction, suppress_non_maximum
from .object_detection import ObjectDetection

__version__ = "1.0.0"

__all__ = [
    "ANCHORS",
    "BoundingBox",
    "Candidate",
    "DetectorConfig",
    "ModelMismatchError",
    "ObjectDetection",
    "Prediction",
    "calculate_iou",
    "decode_boxes",
    "logistic",
    "suppress_non_maximum",
]
