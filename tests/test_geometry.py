import unittest

from tests._test_path import SRC  # noqa: F401

from photosheet.core.geometry import center_crop, clamp_rect, fit_aspect, get_target_aspect
from photosheet.core.models import Mode, Orientation, Rect

TOL = 1e-4


class TestTargetAspect(unittest.TestCase):
    def test_german_id_ignores_orientation(self):
        for orientation in Orientation:
            with self.subTest(orientation=orientation):
                self.assertEqual(get_target_aspect(Mode.GERMAN_ID, orientation), 35 / 45)

    def test_friend_by_orientation(self):
        self.assertEqual(get_target_aspect(Mode.FRIEND, Orientation.PORTRAIT), 2 / 3)
        self.assertEqual(get_target_aspect(Mode.FRIEND, Orientation.LANDSCAPE), 3 / 2)


class TestClampRect(unittest.TestCase):
    def test_inside_rect_unchanged(self):
        r = Rect(10, 20, 100, 150)
        self.assertEqual(clamp_rect(r, 1000, 1000), r)

    def test_negative_origin_moved_in(self):
        r = clamp_rect(Rect(-50, -10, 100, 150), 1000, 1000)
        self.assertEqual((r.x, r.y, r.width, r.height), (0, 0, 100, 150))

    def test_overflow_moved_back(self):
        r = clamp_rect(Rect(950, 900, 100, 150), 1000, 1000)
        self.assertEqual((r.x, r.y), (900, 850))
        self.assertEqual((r.width, r.height), (100, 150))

    def test_oversized_rect_shrunk_then_positioned(self):
        r = clamp_rect(Rect(-100, 500, 3000, 4000), 1000, 1500)
        self.assertEqual((r.x, r.y, r.width, r.height), (0, 0, 1000, 1500))

    def test_oversized_in_one_dimension(self):
        r = clamp_rect(Rect(300, -20, 2000, 100), 1000, 1500)
        self.assertEqual((r.x, r.y, r.width, r.height), (0, 0, 1000, 100))


class TestCenterCrop(unittest.TestCase):
    def test_matching_aspect_uses_whole_image(self):
        r = center_crop(1200, 1800, 2 / 3)
        self.assertAlmostEqual(r.x, 0)
        self.assertAlmostEqual(r.y, 0)
        self.assertAlmostEqual(r.width, 1200)
        self.assertAlmostEqual(r.height, 1800)

    def test_wide_image_constrained_on_height(self):
        r = center_crop(4000, 1000, 2 / 3)
        self.assertAlmostEqual(r.height, 1000)
        self.assertAlmostEqual(r.width, 2000 / 3)
        self.assertAlmostEqual(r.x, (4000 - 2000 / 3) / 2)
        self.assertAlmostEqual(r.y, 0)

    def test_tall_image_constrained_on_width(self):
        r = center_crop(1000, 4000, 3 / 2)
        self.assertAlmostEqual(r.width, 1000)
        self.assertAlmostEqual(r.height, 2000 / 3)
        self.assertAlmostEqual(r.y, (4000 - 2000 / 3) / 2)

    def test_aspect_and_bounds_hold_across_shapes(self):
        sizes = [(640, 480), (480, 640), (1000, 1000), (3000, 2000), (123, 4567), (4032, 3024), (50, 51)]
        aspects = [2 / 3, 3 / 2, 35 / 45, 1.0]
        for w, h in sizes:
            for aspect in aspects:
                with self.subTest(w=w, h=h, aspect=aspect):
                    r = center_crop(w, h, aspect)
                    self.assertAlmostEqual(r.width / r.height, aspect, delta=TOL)
                    self.assertGreaterEqual(r.x, -1e-9)
                    self.assertGreaterEqual(r.y, -1e-9)
                    self.assertLessEqual(r.right, w + 1e-9)
                    self.assertLessEqual(r.bottom, h + 1e-9)
                    # largest: touches the image on at least one axis
                    self.assertTrue(abs(r.width - w) < 1e-6 or abs(r.height - h) < 1e-6)


class TestFitAspect(unittest.TestCase):
    def test_fit(self):
        self.assertEqual(fit_aspect(1000, 1000, 0.5), (500, 1000))
        w, h = fit_aspect(1000, 1000, 2.0)
        self.assertEqual((w, h), (1000, 500))
