import unittest

import numpy as np

from detect_kit.errors import ImageError
from detect_kit.letterbox import letterbox, map_point, unmap_boxes, unmap_point


class TestLetterbox(unittest.TestCase):
    def test_wide_image_into_square(self) -> None:
        img = np.zeros((720, 1280, 3), dtype=np.uint8)
        lb = letterbox(img, new_shape=(640, 640))
        self.assertEqual(lb.image.shape, (640, 640, 3))
        self.assertAlmostEqual(lb.ratio, 0.5)
        self.assertEqual(lb.pad_x, 0)
        self.assertEqual(lb.pad_y, 140)
        # 140 rows of padding above and below 360 rows of content
        self.assertTrue(np.all(lb.image[:140] == 114))
        self.assertTrue(np.all(lb.image[140:500] == 0))
        self.assertTrue(np.all(lb.image[500:] == 114))

    def test_odd_padding_remainder_goes_to_trailing_side(self) -> None:
        img = np.zeros((51, 100, 3), dtype=np.uint8)
        lb = letterbox(img, new_shape=(64, 64))
        # ratio 0.64 -> 64x33 content, 31 rows of padding split 15 / 16
        self.assertEqual(lb.image.shape, (64, 64, 3))
        self.assertEqual(lb.pad_y, 15)
        self.assertTrue(np.all(lb.image[14] == 114))
        self.assertTrue(np.all(lb.image[15] == 0))
        self.assertTrue(np.all(lb.image[47] == 0))
        self.assertTrue(np.all(lb.image[48] == 114))

    def test_half_pixel_content_size_rounds_up(self) -> None:
        # ratio 0.5 makes 101 columns 50.5 wide -> 51 columns, 49 of padding split 24 / 25
        img = np.zeros((200, 101, 3), dtype=np.uint8)
        lb = letterbox(img, new_shape=(100, 100))
        self.assertAlmostEqual(lb.ratio, 0.5)
        self.assertEqual(lb.pad_x, 24)
        self.assertTrue(np.all(lb.image[:, 23] == 114))
        self.assertTrue(np.all(lb.image[:, 24] == 0))
        self.assertTrue(np.all(lb.image[:, 74] == 0))
        self.assertTrue(np.all(lb.image[:, 75] == 114))

    def test_non_square_target_and_custom_color(self) -> None:
        img = np.full((300, 300, 3), 255, dtype=np.uint8)
        lb = letterbox(img, new_shape=(320, 256), color=(0, 0, 0))
        self.assertEqual(lb.image.shape, (256, 320, 3))
        self.assertEqual((lb.target_width, lb.target_height), (320, 256))
        self.assertEqual(lb.pad_x, 32)
        self.assertEqual(lb.pad_y, 0)
        self.assertTrue(np.all(lb.image[:, :32] == 0))

    def test_zero_sized_image_fails(self) -> None:
        with self.assertRaises(ImageError):
            letterbox(np.zeros((0, 10, 3), dtype=np.uint8))
        with self.assertRaises(ImageError):
            letterbox(np.zeros((10, 0, 3), dtype=np.uint8))

    def test_point_roundtrip_through_unmap(self) -> None:
        cases = [((720, 1280), (640, 640)), ((500, 300), (640, 640)), ((17, 641), (320, 256)), ((64, 64), (640, 480))]
        for (h, w), target in cases:
            lb = letterbox(np.zeros((h, w, 3), dtype=np.uint8), new_shape=target)
            for x, y in [(0.0, 0.0), (w - 1.0, h - 1.0), (w / 3.0, h / 2.0)]:
                mx, my = map_point(x, y, lb)
                ux, uy = unmap_point(mx, my, lb)
                self.assertAlmostEqual(ux, x, places=6)
                self.assertAlmostEqual(uy, y, places=6)


class TestUnmapBoxes(unittest.TestCase):
    def setUp(self) -> None:
        self.lb = letterbox(np.zeros((720, 1280, 3), dtype=np.uint8), new_shape=(640, 640))

    def test_subtracts_padding_and_divides_by_ratio(self) -> None:
        out = unmap_boxes(np.array([[50.0, 190.0, 150.0, 240.0]]), self.lb)
        np.testing.assert_allclose(out, [[100.0, 100.0, 300.0, 200.0]])

    def test_clamps_to_image_bounds(self) -> None:
        out = unmap_boxes(np.array([[-20.0, 100.0, 700.0, 600.0]]), self.lb)
        np.testing.assert_allclose(out, [[0.0, 0.0, 1279.0, 719.0]])

    def test_orders_corners(self) -> None:
        out = unmap_boxes(np.array([[150.0, 240.0, 50.0, 190.0]]), self.lb)
        np.testing.assert_allclose(out, [[100.0, 100.0, 300.0, 200.0]])

    def test_empty(self) -> None:
        self.assertEqual(unmap_boxes(np.zeros((0, 4)), self.lb).shape, (0, 4))


if __name__ == "__main__":
    unittest.main()
