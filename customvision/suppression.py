"""
Non-Maximum Suppression Module
==============================

Greedy, class-aware non-maximum suppression over decoded candidates.

References:
- Neubeck & Van Gool, "Efficient Non-Maximum Suppression", ICPR 2006
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .config import DetectorConfig
from .decoder import Candidate
from .geometry import BoundingBox, boxes_to_array, iou_against

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    """
    A final detection.

    Attributes:
        probability: Objectness-scaled class probability
        class_name: Label of the winning class
        bounding_box: Box in normalized image coordinates
    """
    probability: float
    class_name: str
    bounding_box: BoundingBox

    @property
    def center(self) -> Tuple[float, float]:
        """Normalized center of the box, used to project labels into the scene."""
        return self.bounding_box.center

    def to_dict(self) -> Dict[str, Any]:
        box = self.bounding_box
        return {
            'probability': self.probability,
            'tagName': self.class_name,
            'boundingBox': {
                'left': box.left,
                'top': box.top,
                'width': box.width,
                'height': box.height,
            },
        }


def suppress_non_maximum(
    candidates: Sequence[Candidate],
    config: DetectorConfig
) -> List[Prediction]:
    """
    Remove overlapping candidates and return the top predictions.

    Repeatedly takes the candidate holding the highest remaining class
    probability (first in decode order on ties), emits it, and zeroes that
    class for the winner and for every candidate overlapping it by more than
    config.iou_threshold. Other classes of an overlapping candidate stay
    intact, so it may still win later under a different label.

    Candidate probability arrays are modified in place.

    Args:
        candidates: Output of decode_boxes()
        config: Detector configuration

    Returns:
        Predictions sorted by descending probability, at most
        config.max_detections long
    """
    predictions: List[Prediction] = []
    if len(candidates) == 0:
        return predictions

    boxes = boxes_to_array([c.box for c in candidates])
    max_probs = np.array([c.max_probability for c in candidates], dtype=np.float64)

    while len(predictions) < config.max_detections:
        index = int(np.argmax(max_probs))
        best = max_probs[index]
        if best < config.probability_threshold:
            break

        winner = candidates[index]
        max_class = int(np.argmax(winner.probabilities))
        predictions.append(Prediction(
            probability=float(best),
            class_name=config.labels[max_class],
            bounding_box=winner.box
        ))

        overlapping = np.flatnonzero(iou_against(winner.box, boxes) > config.iou_threshold)
        # The winner is always retired, even when its own box is degenerate.
        for i in set(overlapping.tolist()) | {index}:
            candidates[i].probabilities[max_class] = 0.0
            max_probs[i] = candidates[i].probabilities.max()

    LOGGER.debug(
        "Kept %d of %d candidates after suppression", len(predictions), len(candidates)
    )
    return predictions
