"""
Visualization Module
====================

Debug overlay of predictions on a 2D frame.

References:
- OpenCV drawing functions: https://docs.opencv.org/4.x/dc/da5/tutorial_py_drawing_functions.html
"""

import cv2
import numpy as np
from typing import List

from .suppression import Prediction


def draw_predictions(
    image: np.ndarray,
    predictions: List[Prediction],
    show_probability: bool = True
) -> np.ndarray:
    """
    Draw prediction boxes and labels on an image.

    Args:
        image: Input image (will be copied)
        predictions: Predictions with normalized boxes
        show_probability: Whether to append the probability to the label

    Returns:
        Image with drawn predictions
    """
    output = image.copy()
    height, width = output.shape[:2]

    for prediction in predictions:
        x, y, w, h = prediction.bounding_box.to_pixels(width, height)
        p = min(max(prediction.probability, 0.0), 1.0)

        # Color based on probability (green = high, blue = low)
        color = (int((1 - p) * 255), int(p * 255), 0)

        cv2.rectangle(output, (x, y), (x + w, y + h), color, 2)

        cx, cy = prediction.center
        cv2.circle(output, (int(cx * width), int(cy * height)), 4, color, -1)

        label = prediction.class_name
        if show_probability:
            label = f"{label} {prediction.probability:.2f}"

        (text_w, text_h), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        text_y = max(y, text_h + 4)
        cv2.rectangle(output, (x, text_y - text_h - 4), (x + text_w, text_y), color, -1)
        cv2.putText(
            output, label,
            (x, text_y - 2),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5,
            (255, 255, 255), 1
        )

    return output
