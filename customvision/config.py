"""
Detector Configuration Module
=============================

Handles loading and validation of the detector parameters: class labels,
detection limit and the probability / IOU thresholds.
Supports JSON configuration files and CustomVision's exported labels.txt.

References:
- Custom Vision export: https://learn.microsoft.com/azure/ai-services/custom-vision-service/export-your-model
"""

import json
import numbers
from dataclasses import dataclass, field
from typing import Optional, List, Sequence
from pathlib import Path


DEFAULT_MAX_DETECTIONS = 20
DEFAULT_PROBABILITY_THRESHOLD = 0.1
DEFAULT_IOU_THRESHOLD = 0.45


@dataclass(frozen=True)
class DetectorConfig:
    """
    Parameters of the decode + suppression pipeline.

    Attributes:
        labels: Class names in model output order
        max_detections: Upper bound on returned predictions
        probability_threshold: Minimum class probability, in (0, 1)
        iou_threshold: Overlap above which same-class boxes are suppressed, in (0, 1)
        anchors: Optional anchor table override (flat width/height pairs)

    Set once when the detector is built and never changed afterwards.
    """
    labels: Sequence[str]
    max_detections: int = DEFAULT_MAX_DETECTIONS
    probability_threshold: float = DEFAULT_PROBABILITY_THRESHOLD
    iou_threshold: float = DEFAULT_IOU_THRESHOLD
    anchors: Optional[Sequence[float]] = field(default=None)

    def __post_init__(self):
        if isinstance(self.labels, str):
            raise ValueError("labels must be a sequence of class names, not a single string")
        try:
            object.__setattr__(self, "labels", tuple(self.labels))
        except TypeError as e:
            raise ValueError(f"labels must be a sequence of class names: {e}") from e
        if not all(isinstance(label, str) for label in self.labels):
            raise ValueError("labels must all be strings")
        if self.anchors is not None:
            try:
                anchors = tuple(float(a) for a in self.anchors)
            except (TypeError, ValueError) as e:
                raise ValueError(f"anchors must be a list of numbers: {e}") from e
            object.__setattr__(self, "anchors", anchors)

        if len(self.labels) == 0:
            raise ValueError("labels must contain at least one class name")
        if isinstance(self.max_detections, bool) or not isinstance(self.max_detections, numbers.Integral):
            raise ValueError(f"max_detections must be an integer, got {self.max_detections!r}")
        for name in ("probability_threshold", "iou_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ValueError(f"{name} must be a number, got {value!r}")
        if self.max_detections < 1:
            raise ValueError(f"max_detections must be >= 1, got {self.max_detections}")
        if not 0.0 < self.probability_threshold < 1.0:
            raise ValueError(
                f"probability_threshold must be in (0, 1), got {self.probability_threshold}"
            )
        if not 0.0 < self.iou_threshold < 1.0:
            raise ValueError(f"iou_threshold must be in (0, 1), got {self.iou_threshold}")
        if self.anchors is not None and (len(self.anchors) == 0 or len(self.anchors) % 2):
            raise ValueError("anchors must hold a non-empty list of (width, height) pairs")

    @property
    def num_classes(self) -> int:
        return len(self.labels)


def load_labels(labels_path: str) -> List[str]:
    """
    Load class labels from a text file with one label per line.

    Blank lines are ignored.

    Raises:
        FileNotFoundError: If the labels file doesn't exist
        ValueError: If the file contains no labels
    """
    path = Path(labels_path)
    if not path.exists():
        raise FileNotFoundError(f"Labels file not found: {labels_path}")

    with open(path, 'r', encoding='utf-8') as f:
        labels = [line.strip() for line in f if line.strip()]

    if not labels:
        raise ValueError(f"Labels file is empty: {labels_path}")
    return labels


def load_config_from_json(config_path: str) -> DetectorConfig:
    """
    Load detector configuration from a JSON file.

    The JSON file should contain:
    - labels: list of class names, or
    - labels_file: path to a labels.txt (relative to the JSON file)
    - max_detections, probability_threshold, iou_threshold (optional)
    - anchors: flat list of anchor width/height pairs (optional)

    Args:
        config_path: Path to the JSON configuration file

    Returns:
        DetectorConfig with loaded parameters

    Raises:
        FileNotFoundError: If config (or referenced labels) file doesn't exist
        ValueError: If config file is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Detector config must be a JSON object")

    if 'labels' in data:
        labels = data['labels']
        if not isinstance(labels, list) or not all(isinstance(l, str) for l in labels):
            raise ValueError("labels must be a list of strings")
    elif 'labels_file' in data:
        if not isinstance(data['labels_file'], str):
            raise ValueError("labels_file must be a path string")
        labels = load_labels(str(path.parent / data['labels_file']))
    else:
        raise ValueError("Missing required field in config: labels (or labels_file)")

    anchors = data.get('anchors')
    if anchors is not None and not isinstance(anchors, list):
        raise ValueError("anchors must be a list of numbers")

    # Type and range checks happen in DetectorConfig
    return DetectorConfig(
        labels=labels,
        max_detections=data.get('max_detections', DEFAULT_MAX_DETECTIONS),
        probability_threshold=data.get('probability_threshold', DEFAULT_PROBABILITY_THRESHOLD),
        iou_threshold=data.get('iou_threshold', DEFAULT_IOU_THRESHOLD),
        anchors=anchors,
    )


def create_default_config(
    labels: Sequence[str],
    max_detections: int = DEFAULT_MAX_DETECTIONS,
    probability_threshold: float = DEFAULT_PROBABILITY_THRESHOLD,
    iou_threshold: float = DEFAULT_IOU_THRESHOLD
) -> DetectorConfig:
    """
    Create a detector configuration with the CustomVision defaults
    (20 detections, probability 0.1, IOU 0.45).
    """
    return DetectorConfig(
        labels=labels,
        max_detections=max_detections,
        probability_threshold=probability_threshold,
        iou_threshold=iou_threshold
    )


def save_config_to_json(config: DetectorConfig, output_path: str) -> None:
    """
    Save detector configuration to a JSON file.

    Args:
        config: DetectorConfig object to save
        output_path: Path for the output JSON file
    """
    data = {
        'labels': list(config.labels),
        'max_detections': config.max_detections,
        'probability_threshold': config.probability_threshold,
        'iou_threshold': config.iou_threshold,
    }
    if config.anchors is not None:
        data['anchors'] = list(config.anchors)

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=4)
