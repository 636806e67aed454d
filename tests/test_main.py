"""
Tests for the command line entry point.
"""

import json
import cv2
import numpy as np
from pathlib import Path
from types import SimpleNamespace

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from customvision.inference import OnnxModelRunner


class FakeSession:
    """Returns a fixed output tensor instead of running a model."""

    def __init__(self, output):
        self.output = output

    def get_inputs(self):
        return [SimpleNamespace(name="data")]

    def get_outputs(self):
        return [SimpleNamespace(name="model_outputs0")]

    def run(self, output_names, feeds):
        return [self.output]


def write_inputs(tmp_path):
    tensor = np.full((1, 35, 13, 13), -20.0, dtype=np.float32)
    # cell (4, 5), anchor 0: tx, ty, tw, th, objectness, cup, plate
    for k, v in enumerate([0.0, 0.0, 0.0, 0.0, 20.0, 0.0, 5.0]):
        tensor[0, k, 5, 4] = v
    tensor_path = tmp_path / "output.npy"
    np.save(tensor_path, tensor)

    labels_path = tmp_path / "labels.txt"
    labels_path.write_text("cup\nplate\n")
    return tensor_path, labels_path


class TestMain:
    """Tests for main()."""

    def test_tensor_json_output(self, tmp_path, capsys):
        tensor_path, labels_path = write_inputs(tmp_path)

        code = main.main(["--tensor", str(tensor_path), "--labels", str(labels_path), "--json"])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["predictions"]) == 1
        assert data["predictions"][0]["tagName"] == "plate"
        assert data["predictions"][0]["probability"] > 0.99

    def test_tensor_text_output(self, tmp_path, capsys):
        tensor_path, labels_path = write_inputs(tmp_path)

        code = main.main(["--tensor", str(tensor_path), "--labels", str(labels_path)])

        assert code == 0
        assert "plate" in capsys.readouterr().out

    def test_threshold_override(self, tmp_path, capsys):
        tensor_path, labels_path = write_inputs(tmp_path)

        code = main.main([
            "--tensor", str(tensor_path), "--labels", str(labels_path),
            "--probability-threshold", "0.999999",
        ])

        assert code == 0
        assert "No objects detected" in capsys.readouterr().out

    def test_config_file(self, tmp_path, capsys):
        tensor_path, _ = write_inputs(tmp_path)
        config_path = tmp_path / "detector.json"
        config_path.write_text(json.dumps({"labels": ["cup", "plate"], "max_detections": 1}))

        code = main.main(["--tensor", str(tensor_path), "--config", str(config_path), "--json"])

        assert code == 0
        assert len(json.loads(capsys.readouterr().out)["predictions"]) == 1

    def test_missing_labels_file(self, tmp_path, capsys):
        tensor_path, _ = write_inputs(tmp_path)

        code = main.main(["--tensor", str(tensor_path), "--labels", str(tmp_path / "nope.txt")])

        assert code == 1
        assert "Error" in capsys.readouterr().out

    def test_image_requires_model(self, tmp_path, capsys):
        _, labels_path = write_inputs(tmp_path)

        code = main.main(["--image", "photo.jpg", "--labels", str(labels_path)])

        assert code == 1

    def test_output_requires_image(self, tmp_path, capsys):
        tensor_path, labels_path = write_inputs(tmp_path)

        code = main.main([
            "--tensor", str(tensor_path), "--labels", str(labels_path),
            "--output", str(tmp_path / "annotated.png"),
        ])

        assert code == 1
        assert "--output requires --image" in capsys.readouterr().out
        assert not (tmp_path / "annotated.png").exists()

    def test_image_with_annotated_output(self, tmp_path, capsys, monkeypatch):
        tensor_path, labels_path = write_inputs(tmp_path)
        tensor = np.load(tensor_path)

        def fake_init(detector, model_path):
            detector.init_runner(OnnxModelRunner(FakeSession(tensor)))

        monkeypatch.setattr(main.ObjectDetection, "init", fake_init)

        image_path = tmp_path / "photo.png"
        cv2.imwrite(str(image_path), np.zeros((240, 320, 3), dtype=np.uint8))
        output_path = tmp_path / "out" / "annotated.png"

        code = main.main([
            "--image", str(image_path), "--model", "model.onnx",
            "--labels", str(labels_path), "--output", str(output_path),
        ])

        assert code == 0
        out = capsys.readouterr().out
        assert "Saved annotated image" in out
        assert "plate" in out
        annotated = cv2.imread(str(output_path))
        assert annotated is not None
        assert annotated.shape == (240, 320, 3)
        assert annotated.any()

    def test_unreadable_image(self, tmp_path, capsys):
        _, labels_path = write_inputs(tmp_path)

        code = main.main([
            "--image", str(tmp_path / "missing.png"), "--model", "model.onnx",
            "--labels", str(labels_path),
        ])

        assert code == 1

    def test_config_with_wrong_field_type(self, tmp_path, capsys):
        tensor_path, _ = write_inputs(tmp_path)
        config_path = tmp_path / "detector.json"
        config_path.write_text(json.dumps({"labels": ["cup", "plate"], "max_detections": None}))

        code = main.main(["--tensor", str(tensor_path), "--config", str(config_path)])

        assert code == 1
        assert "Error" in capsys.readouterr().out
