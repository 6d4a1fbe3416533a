import unittest

import numpy as np

from detect_kit.nms import NMSConfig, iou, nms, nms_indices
from detect_kit.types import Detection


def _det(x0, y0, x1, y1, conf, cls=0) -> Detection:
    return Detection(x0=x0, y0=y0, x1=x1, y1=y1, confidence=conf, class_id=cls, class_name=f"c{cls}")


class TestIoU(unittest.TestCase):
    def test_identical_boxes(self) -> None:
        a = _det(10, 10, 50, 50, 0.9)
        self.assertAlmostEqual(iou(a, a), 1.0)

    def test_disjoint_boxes(self) -> None:
        self.assertEqual(iou(_det(0, 0, 10, 10, 0.9), _det(20, 20, 30, 30, 0.9)), 0.0)

    def test_touching_edges(self) -> None:
        self.assertEqual(iou(_det(0, 0, 10, 10, 0.9), _det(10, 0, 20, 10, 0.9)), 0.0)

    def test_zero_union(self) -> None:
        self.assertEqual(iou(_det(5, 5, 5, 5, 0.9), _det(5, 5, 5, 5, 0.8)), 0.0)

    def test_known_overlap(self) -> None:
        a = _det(10, 10, 50, 50, 0.9)
        b = _det(12, 12, 52, 52, 0.8)
        self.assertAlmostEqual(iou(a, b), 1444.0 / 1756.0)
        self.assertAlmostEqual(iou(a, b), iou(b, a))

    def test_bounds(self) -> None:
        rng = np.random.default_rng(0)
        for _ in range(200):
            x0, y0 = rng.uniform(0, 100, size=2)
            x1, y1 = x0 + rng.uniform(0, 50), y0 + rng.uniform(0, 50)
            u0, v0 = rng.uniform(0, 100, size=2)
            u1, v1 = u0 + rng.uniform(0, 50), v0 + rng.uniform(0, 50)
            value = iou(_det(x0, y0, x1, y1, 0.5), _det(u0, v0, u1, v1, 0.5))
            self.assertGreaterEqual(value, 0.0)
            self.assertLessEqual(value, 1.0)


class TestNMS(unittest.TestCase):
    def test_overlapping_same_class_keeps_best(self) -> None:
        dets = [_det(12, 12, 52, 52, 0.8, 3), _det(10, 10, 50, 50, 0.9, 3)]
        kept = nms(dets, NMSConfig(iou_threshold=0.45))
        self.assertEqual(len(kept), 1)
        self.assertAlmostEqual(kept[0].confidence, 0.9)

    def test_classes_never_suppress_each_other(self) -> None:
        dets = [_det(10, 10, 50, 50, 0.9, 1), _det(10, 10, 50, 50, 0.8, 2)]
        kept = nms(dets, NMSConfig(iou_threshold=0.0))
        self.assertEqual([d.class_id for d in kept], [1, 2])

    def test_threshold_is_strict(self) -> None:
        a = _det(10, 10, 50, 50, 0.9)
        b = _det(12, 12, 52, 52, 0.8)
        kept = nms([a, b], NMSConfig(iou_threshold=iou(a, b)))
        self.assertEqual(len(kept), 2)

    def test_chain_is_greedy(self) -> None:
        # a suppresses b; c overlaps b but not a, so c survives
        a = _det(0, 0, 10, 10, 0.9)
        b = _det(4, 0, 14, 10, 0.8)
        c = _det(8, 0, 18, 10, 0.7)
        kept = nms([a, b, c], NMSConfig(iou_threshold=0.3))
        self.assertEqual([d.confidence for d in kept], [0.9, 0.7])

    def test_ties_keep_insertion_order(self) -> None:
        first = _det(0, 0, 10, 10, 0.5)
        second = _det(1, 1, 11, 11, 0.5)
        kept = nms([first, second], NMSConfig(iou_threshold=0.3))
        self.assertEqual(kept, [first])

    def test_idempotent(self) -> None:
        rng = np.random.default_rng(7)
        dets = []
        for _ in range(60):
            x0, y0 = rng.uniform(0, 200, size=2)
            w, h = rng.uniform(5, 60, size=2)
            dets.append(_det(x0, y0, x0 + w, y0 + h, float(rng.uniform(0.1, 1.0)), int(rng.integers(0, 4))))
        cfg = NMSConfig(iou_threshold=0.45)
        once = nms(dets, cfg)
        self.assertEqual(nms(once, cfg), once)

    def test_sorted_by_confidence(self) -> None:
        dets = [_det(0, 0, 10, 10, 0.3, 0), _det(100, 100, 110, 110, 0.7, 1), _det(50, 50, 60, 60, 0.5, 0)]
        kept = nms(dets)
        self.assertEqual([d.confidence for d in kept], [0.7, 0.5, 0.3])

    def test_max_detections(self) -> None:
        dets = [_det(i * 20, 0, i * 20 + 10, 10, 0.5 + i / 100.0) for i in range(10)]
        kept = nms(dets, NMSConfig(max_detections=3))
        self.assertEqual(len(kept), 3)
        self.assertAlmostEqual(kept[0].confidence, 0.59)

    def test_empty(self) -> None:
        self.assertEqual(nms([]), [])
        self.assertEqual(nms_indices(np.zeros((0, 4)), np.zeros((0,)), 0.5).size, 0)


if __name__ == "__main__":
    unittest.main()
