#!/usr/bin/env python3
"""
CustomVision Object Detection - Main Entry Point
================================================

Runs a CustomVision-exported YOLO model on an image, or postprocesses a raw
output tensor saved with numpy, and prints the resulting predictions.

Usage:
    python main.py --model model.onnx --labels labels.txt --image photo.jpg
    python main.py --tensor model_output.npy --config detector.json --json

References:
- Azure Custom Vision export: https://learn.microsoft.com/azure/ai-services/custom-vision-service/export-your-model
- ONNX Runtime: https://onnxruntime.ai/
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

import cv2
import numpy as np

from customvision.config import (
    DetectorConfig,
    load_config_from_json,
    load_labels,
    create_default_config,
)
from customvision.object_detection import ObjectDetection
from customvision.suppression import Prediction
from customvision.visualization import draw_predictions


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="CustomVision object detection postprocessing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Full pipeline on an image
    python main.py --model model.onnx --labels labels.txt --image photo.jpg

    # Save an annotated copy
    python main.py --model model.onnx --labels labels.txt --image photo.jpg --output out.png

    # Postprocess a tensor produced by another inference engine
    python main.py --tensor output.npy --config detector.json --json
        """,
    )

    # Input sources
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("--image", type=str, help="Path to input image")
    input_group.add_argument(
        "--tensor", type=str, help="Path to a raw output tensor (.npy)"
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Path to ONNX model (required when using --image)",
    )

    # Configuration
    config_group = parser.add_mutually_exclusive_group(required=True)
    config_group.add_argument("--labels", type=str, help="Path to labels.txt")
    config_group.add_argument(
        "--config", type=str, help="Path to detector configuration JSON file"
    )
    parser.add_argument("--max-detections", type=int, help="Maximum predictions")
    parser.add_argument(
        "--probability-threshold", type=float, help="Minimum class probability"
    )
    parser.add_argument(
        "--iou-threshold", type=float, help="IOU above which boxes are suppressed"
    )

    # Output
    parser.add_argument(
        "--json", action="store_true", help="Print predictions as JSON"
    )
    parser.add_argument(
        "--output", type=str, help="Save annotated image (only with --image)"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging"
    )

    return parser.parse_args(argv)


def setup_config(args) -> DetectorConfig:
    """Load detector configuration and apply command line overrides."""
    if args.config:
        config = load_config_from_json(args.config)
    else:
        config = create_default_config(load_labels(args.labels))

    overrides = {
        "max_detections": args.max_detections,
        "probability_threshold": args.probability_threshold,
        "iou_threshold": args.iou_threshold,
    }
    values = {
        "labels": config.labels,
        "max_detections": config.max_detections,
        "probability_threshold": config.probability_threshold,
        "iou_threshold": config.iou_threshold,
        "anchors": config.anchors,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return DetectorConfig(**values)


def format_predictions(predictions: List[Prediction], as_json: bool) -> str:
    """Render predictions for the terminal."""
    if as_json:
        return json.dumps({"predictions": [p.to_dict() for p in predictions]}, indent=2)

    if not predictions:
        return "No objects detected"

    lines = []
    for i, p in enumerate(predictions):
        box = p.bounding_box
        cx, cy = p.center
        lines.append(
            f"{i + 1:2d}. {p.class_name:<20s} {p.probability:6.3f}  "
            f"box=({box.left:.3f}, {box.top:.3f}, {box.width:.3f}, {box.height:.3f})  "
            f"center=({cx:.3f}, {cy:.3f})"
        )
    return "\n".join(lines)


def run_tensor(detector: ObjectDetection, tensor_path: str) -> List[Prediction]:
    """Postprocess a tensor saved with numpy.save()."""
    tensor = np.load(tensor_path)
    return detector.postprocess(tensor)


def run_image(detector: ObjectDetection, args) -> List[Prediction]:
    """Run the ONNX model on an image file, optionally saving an overlay."""
    image = cv2.imread(args.image)
    if image is None:
        raise FileNotFoundError(f"Could not read image: {args.image}")

    detector.init(args.model)
    predictions = detector.predict_image(image)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(output_path), draw_predictions(image, predictions))
        print(f"Saved annotated image to {output_path}")

    return predictions


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.image and not args.model:
        print("Error: --model is required when using --image")
        return 1
    if args.output and not args.image:
        print("Error: --output requires --image")
        return 1

    try:
        config = setup_config(args)
        detector = ObjectDetection.from_config(config)

        if args.tensor:
            predictions = run_tensor(detector, args.tensor)
        else:
            predictions = run_image(detector, args)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        print(f"Error: {e}")
        return 1

    print(format_predictions(predictions, args.json))
    return 0


if __name__ == "__main__":
    sys.exit(main())
