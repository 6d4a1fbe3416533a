import importlib.util
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import cv2
import numpy as np

from fakes import FakeBackend, transposed_output


SCRIPT = Path(__file__).resolve().parents[1] / "Scripts" / "detect_image.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("detect_image_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestDetectImageScript(unittest.TestCase):
    def setUp(self) -> None:
        self.script = _load_script()
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

        self.image = self.root / "street.png"
        ok, buf = cv2.imencode(".png", np.zeros((720, 1280, 3), dtype=np.uint8))
        assert ok
        self.image.write_bytes(buf.tobytes())

        self.model = self.root / "model.onnx"
        self.model.write_bytes(b"onnx")
        self.classes = self.root / "three.names"
        self.classes.write_text("cat\ndog\nbird\n", encoding="utf-8")

        backend = FakeBackend(transposed_output([(100, 215, 100, 50, 1, 0.9)], num_classes=3))
        patcher = mock.patch.object(self.script, "onnxruntime_factory", lambda providers=None: (lambda path: backend))
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _argv(self, *extra: str):
        return ["--image", str(self.image), "--model", str(self.model), "--classes", str(self.classes), *extra]

    def test_writes_annotated_jpeg(self) -> None:
        out = self.root / "out.jpg"
        with mock.patch("builtins.print"):
            code = self.script.main(self._argv("--out", str(out)))
        self.assertEqual(code, 0)
        self.assertTrue(out.read_bytes().startswith(b"\xff\xd8"))

    def test_bad_config_file_returns_1(self) -> None:
        config = self.root / "c.json"
        config.write_text(json.dumps({"bogus": 1}), encoding="utf-8")
        with self.assertLogs("detect_image", level="ERROR") as logs:
            code = self.script.main(self._argv("--config", str(config)))
        self.assertEqual(code, 1)
        self.assertIn("bogus", logs.output[0])

    def test_out_of_range_threshold_returns_1(self) -> None:
        with self.assertLogs("detect_image", level="ERROR"):
            self.assertEqual(self.script.main(self._argv("--conf", "2")), 1)

    def test_class_list_mismatch_returns_1(self) -> None:
        self.classes.write_text("cat\ndog\n", encoding="utf-8")
        with self.assertLogs("detect_image", level="ERROR"):
            self.assertEqual(self.script.main(self._argv()), 1)

    def test_small_imgsz_is_a_usage_error(self) -> None:
        with mock.patch("sys.stderr"), self.assertRaises(SystemExit) as ctx:
            self.script.main(self._argv("--imgsz", "16"))
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
