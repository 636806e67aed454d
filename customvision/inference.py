"""
ONNX Inference Module
=====================

Thin wrapper around ONNX Runtime that produces the raw output tensor
consumed by the decoder. Kept separate so the postprocessing core never
depends on an inference runtime.

CustomVision exported models expect a 416x416 BGR image with pixel values
in 0-255, laid out as [1, 3, 416, 416].

References:
- ONNX Runtime Python API: https://onnxruntime.ai/docs/api/python/api_summary.html
- OpenCV resize: https://docs.opencv.org/4.x/da/d54/group__imgproc__transform.html
"""

import logging
import cv2
import numpy as np
from pathlib import Path

# Try to import ONNX Runtime for model inference
try:
    import onnxruntime as ort
    ONNX_AVAILABLE = True
except ImportError:
    ONNX_AVAILABLE = False

LOGGER = logging.getLogger(__name__)

DEFAULT_INPUT_SIZE = 416


def preprocess_image(image: np.ndarray, input_size: int = DEFAULT_INPUT_SIZE) -> np.ndarray:
    """
    Convert a BGR frame into the model input blob.

    Args:
        image: Input image (BGR, HxWx3, uint8)
        input_size: Square model input size in pixels

    Returns:
        float32 array of shape [1, 3, input_size, input_size]
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an HxWx3 BGR image, got shape {image.shape}")

    resized = cv2.resize(image, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    blob = resized.astype(np.float32)
    blob = np.transpose(blob, (2, 0, 1))  # HWC to CHW
    return np.expand_dims(blob, axis=0)


class OnnxModelRunner:
    """
    Runs a single-input, single-output ONNX detector on the CPU.

    A pre-built session may be injected (anything exposing get_inputs(),
    get_outputs() and run()), which is how tests drive it without a model.
    """

    def __init__(self, session, input_size: int = DEFAULT_INPUT_SIZE):
        inputs = session.get_inputs()
        outputs = session.get_outputs()
        if len(inputs) != 1:
            raise ValueError(f"The number of inputs must be 1, got {len(inputs)}")
        if len(outputs) != 1:
            raise ValueError(f"The number of outputs must be 1, got {len(outputs)}")

        self._session = session
        self.input_name = inputs[0].name
        self.output_name = outputs[0].name
        self.input_size = input_size

    @classmethod
    def from_file(cls, model_path: str, input_size: int = DEFAULT_INPUT_SIZE) -> "OnnxModelRunner":
        """
        Open an ONNX model file.

        Raises:
            RuntimeError: If onnxruntime is not installed
            FileNotFoundError: If the model file doesn't exist
        """
        if not ONNX_AVAILABLE:
            raise RuntimeError("ONNX Runtime not available. Install with: pip install onnxruntime")

        path = Path(model_path)
        if not path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        LOGGER.info("Loading ONNX model from %s", path)
        session = ort.InferenceSession(str(path), providers=['CPUExecutionProvider'])
        return cls(session, input_size=input_size)

    def run(self, image: np.ndarray) -> np.ndarray:
        """
        Run the model on a BGR frame.

        Returns:
            Raw output tensor of shape [1, channels, grid_h, grid_w]
        """
        blob = preprocess_image(image, self.input_size)
        outputs = self._session.run([self.output_name], {self.input_name: blob})
        return np.asarray(outputs[0])

