"""
Box Decoder Module
==================

Turns the raw output tensor of a CustomVision YOLO-style detector into
candidate bounding boxes with per-class probabilities.

Output layout (channel-first):
    [1, num_anchors * (5 + num_classes), grid_height, grid_width]

Each anchor owns a contiguous block of channels:
    tx, ty, tw, th, objectness, class_0 ... class_{C-1}

References:
- YOLO9000: Better, Faster, Stronger, https://arxiv.org/abs/1612.08242
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import DetectorConfig
from .geometry import BoundingBox, logistic

LOGGER = logging.getLogger(__name__)

# Anchor (width, height) pairs baked into CustomVision exported models,
# in grid-cell units.
ANCHORS = (0.573, 0.677, 1.87, 2.06, 3.34, 5.47, 7.88, 3.53, 9.77, 9.17)

# tx, ty, tw, th, objectness
BOX_FIELDS = 5


class ModelMismatchError(AssertionError):
    """
    The output tensor does not match the anchor table or label list.

    This is a wiring bug (decoder paired with an incompatible model), not a
    runtime data condition, so it is never retried or silenced.
    """


@dataclass
class Candidate:
    """
    A decoded box and its class probabilities.

    Attributes:
        box: Bounding box in normalized coordinates
        probabilities: Objectness-scaled class probabilities, shape (num_classes,)

    The probability array is a working buffer owned by one decode call;
    suppression zeroes entries of it in place.
    """
    box: BoundingBox
    probabilities: np.ndarray

    @property
    def max_probability(self) -> float:
        return float(self.probabilities.max())


def _check_shape(shape: Sequence[int], anchors: Sequence[float], num_labels: int):
    """Validate tensor shape against anchors and labels, return (A, C, H, W)."""
    if len(shape) != 4:
        raise ModelMismatchError(f"The model output has unexpected shape {tuple(shape)}")
    if shape[0] != 1:
        raise ModelMismatchError(f"The batch size must be 1, got {shape[0]}")
    if len(anchors) == 0 or len(anchors) % 2 != 0:
        raise ModelMismatchError("Anchor table must hold (width, height) pairs")

    num_anchors = len(anchors) // 2
    channels, height, width = shape[1], shape[2], shape[3]
    if channels % num_anchors != 0:
        raise ModelMismatchError(
            f"{channels} output channels cannot be split across {num_anchors} anchors"
        )

    num_classes = channels // num_anchors - BOX_FIELDS
    if num_classes != num_labels:
        raise ModelMismatchError(
            f"Model predicts {num_classes} classes but {num_labels} labels were given"
        )
    return num_anchors, num_classes, height, width


def resolve_anchors(
    anchors: Optional[Sequence[float]],
    config: DetectorConfig
) -> Sequence[float]:
    """Pick the anchor table: explicit argument, then config.anchors, then ANCHORS."""
    if anchors is None:
        return config.anchors if config.anchors is not None else ANCHORS
    if config.anchors is not None and tuple(float(a) for a in anchors) != config.anchors:
        raise ValueError("anchors argument conflicts with config.anchors")
    return anchors


def softmax(logits: np.ndarray) -> np.ndarray:
    """
    Row-wise softmax with the max subtracted before exponentiating.

    Args:
        logits: Array of shape (N, num_classes)

    Returns:
        Probabilities of the same shape, each row summing to 1
    """
    shifted = np.exp(logits - logits.max(axis=-1, keepdims=True))
    return shifted / shifted.sum(axis=-1, keepdims=True)


def decode_boxes(
    tensor: np.ndarray,
    anchors: Optional[Sequence[float]],
    config: DetectorConfig
) -> List[Candidate]:
    """
    Decode candidate boxes from a raw detector output tensor.

    For every grid cell (rows top to bottom, columns left to right) and every
    anchor in table order:
        cx = (logistic(tx) + grid_x) / grid_width
        cy = (logistic(ty) + grid_y) / grid_height
        w  = exp(tw) * anchor_w / grid_width
        h  = exp(th) * anchor_h / grid_height
        probs = softmax(class_logits) * logistic(objectness)

    Candidates whose best class probability does not exceed
    config.probability_threshold are dropped. The returned order is the
    iteration order above, which suppression relies on to break ties.

    Args:
        tensor: Raw output, shape [1, A * (5 + C), H, W]
        anchors: Flat anchor table (w0, h0, w1, h1, ...). None selects
            config.anchors, or ANCHORS when the config has none
        config: Detector configuration

    Returns:
        List of Candidate in decode order

    Raises:
        ModelMismatchError: If the tensor shape does not fit anchors/labels
        ValueError: If anchors and config.anchors are both given and differ
    """
    anchors = resolve_anchors(anchors, config)
    tensor = np.asarray(tensor)
    num_anchors, num_classes, height, width = _check_shape(
        tensor.shape, anchors, config.num_classes
    )

    # [A, 5 + C, H, W] -> [H, W, A, 5 + C] -> rows in (y, x, anchor) order
    values = tensor[0].astype(np.float64).reshape(
        num_anchors, BOX_FIELDS + num_classes, height, width
    )
    rows = values.transpose(2, 3, 0, 1).reshape(-1, BOX_FIELDS + num_classes)

    grid_y, grid_x, anchor_idx = np.meshgrid(
        np.arange(height), np.arange(width), np.arange(num_anchors), indexing='ij'
    )
    grid_x = grid_x.ravel()
    grid_y = grid_y.ravel()
    anchor_table = np.asarray(anchors, dtype=np.float64).reshape(num_anchors, 2)
    anchor_w = anchor_table[anchor_idx.ravel(), 0]
    anchor_h = anchor_table[anchor_idx.ravel(), 1]

    center_x = (logistic(rows[:, 0]) + grid_x) / width
    center_y = (logistic(rows[:, 1]) + grid_y) / height
    with np.errstate(over='ignore'):
        box_w = np.exp(rows[:, 2]) * anchor_w / width
        box_h = np.exp(rows[:, 3]) * anchor_h / height
    left = center_x - box_w / 2
    top = center_y - box_h / 2

    objectness = logistic(rows[:, 4])
    probabilities = softmax(rows[:, BOX_FIELDS:]) * objectness[:, np.newaxis]

    keep = np.flatnonzero(probabilities.max(axis=1) > config.probability_threshold)
    candidates = [
        Candidate(
            box=BoundingBox(float(left[i]), float(top[i]), float(box_w[i]), float(box_h[i])),
            probabilities=probabilities[i].copy()
        )
        for i in keep
    ]

    LOGGER.debug(
        "Decoded %d candidates from %dx%d grid with %d anchors",
        len(candidates), height, width, num_anchors
    )
    return candidates
