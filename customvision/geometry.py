"""
Geometry Helpers
================

Bounding boxes in normalized image coordinates, the numerically stable
logistic function and Intersection over Union (IOU).

References:
- Logistic function: https://en.wikipedia.org/wiki/Logistic_function
- IOU: https://en.wikipedia.org/wiki/Jaccard_index
"""

import numpy as np
from dataclasses import dataclass
from typing import Sequence, Tuple, Union


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box in normalized image coordinates.

    Attributes:
        left: X coordinate of the top-left corner (0-1)
        top: Y coordinate of the top-left corner (0-1)
        width: Box width as a fraction of image width
        height: Box height as a fraction of image height

    Values are 0..1 by construction of the decoder but not enforced; boxes
    near the image border may extend slightly outside.
    """
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        """Center point (x, y) of the box."""
        return (self.left + 0.5 * self.width, self.top + 0.5 * self.height)

    def to_pixels(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        """
        Convert to an integer pixel rectangle clipped to the image.

        Args:
            image_width: Image width in pixels
            image_height: Image height in pixels

        Returns:
            Tuple of (x, y, width, height) in pixels
        """
        x1 = int(round(max(0.0, self.left) * image_width))
        y1 = int(round(max(0.0, self.top) * image_height))
        x2 = int(round(min(1.0, self.right) * image_width))
        y2 = int(round(min(1.0, self.bottom) * image_height))
        return (x1, y1, max(0, x2 - x1), max(0, y2 - y1))

    def as_array(self) -> np.ndarray:
        return np.array([self.left, self.top, self.width, self.height], dtype=np.float64)


def logistic(x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Numerically stable logistic (sigmoid) function.

    Positive inputs use 1 / (1 + exp(-x)) and the rest use
    exp(x) / (1 + exp(x)), so exp() is only ever called with a
    non-positive argument and cannot overflow.

    Args:
        x: Scalar or array of logits

    Returns:
        float for scalar input, otherwise an array of the same shape
    """
    values = np.asarray(x, dtype=np.float64)
    flat = np.atleast_1d(values)
    result = np.empty_like(flat)

    positive = flat > 0
    result[positive] = 1.0 / (1.0 + np.exp(-flat[positive]))
    e = np.exp(flat[~positive])
    result[~positive] = e / (1.0 + e)

    if values.ndim == 0:
        return float(result[0])
    return result.reshape(values.shape)


def calculate_iou(box0: BoundingBox, box1: BoundingBox) -> float:
    """
    Calculate Intersection over Union for two bounding boxes.

    Intersection width and height are clamped to zero for disjoint boxes.
    When the union area is zero (both boxes are degenerate, zero-area
    boxes) the IOU is defined as 0.0 instead of dividing by zero.

    Args:
        box0: First box
        box1: Second box

    Returns:
        IOU in [0, 1]
    """
    x1 = max(box0.left, box1.left)
    y1 = max(box0.top, box1.top)
    x2 = min(box0.right, box1.right)
    y2 = min(box0.bottom, box1.bottom)
    w = max(0.0, x2 - x1)
    h = max(0.0, y2 - y1)

    intersection = w * h
    union = box0.area + box1.area - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def iou_against(box: BoundingBox, boxes: np.ndarray) -> np.ndarray:
    """
    Vectorized IOU of one box against an (N, 4) array of
    [left, top, width, height] rows, with the same zero-union convention
    as calculate_iou().
    """
    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    left, top, width, height = boxes[:, 0], boxes[:, 1], boxes[:, 2], boxes[:, 3]

    x1 = np.maximum(box.left, left)
    y1 = np.maximum(box.top, top)
    x2 = np.minimum(box.right, left + width)
    y2 = np.minimum(box.bottom, top + height)
    w = np.maximum(0.0, x2 - x1)
    h = np.maximum(0.0, y2 - y1)

    intersection = w * h
    union = box.area + width * height - intersection

    iou = np.zeros(len(boxes), dtype=np.float64)
    valid = union > 0
    iou[valid] = intersection[valid] / union[valid]
    return iou


def boxes_to_array(boxes: Sequence[BoundingBox]) -> np.ndarray:
    """Stack boxes into an (N, 4) float array."""
    if len(boxes) == 0:
        return np.zeros((0, 4), dtype=np.float64)
    return np.stack([b.as_array() for b in boxes])
