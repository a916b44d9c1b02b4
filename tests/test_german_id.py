import unittest
from dataclasses import FrozenInstanceError

from tests._test_path import SRC  # noqa: F401

from photosheet.core.models import FaceBox, Rect
from photosheet.validation.german_id import (
    GERMAN_ID_CHECKLIST,
    NO_FACE_WARNING,
    format_warnings_text,
    get_german_id_warnings,
)
from photosheet.validation.report import IdWarningResult

CROP = Rect(0, 0, 350, 450)
GOOD_TILE_PX = 600


def _face(height=315.0, eyes_ratio=0.40, center_x=175.0, eyes=True) -> FaceBox:
    width = 240.0
    eyes_y = CROP.y + eyes_ratio * CROP.height if eyes else None
    return FaceBox.from_bounds("face-0", center_x - width / 2, 60, width, height, eyes_y=eyes_y)


class TestGermanIdWarnings(unittest.TestCase):
    def test_on_target_face_has_no_warnings(self):
        result = get_german_id_warnings(_face(), CROP, GOOD_TILE_PX)
        self.assertEqual(result.warnings, ())
        self.assertFalse(result.checks_unavailable)
        self.assertTrue(result.passed)

    def test_no_face(self):
        result = get_german_id_warnings(None, CROP, 100)
        self.assertEqual(result.warnings, (NO_FACE_WARNING,))
        self.assertTrue(result.checks_unavailable)
        self.assertFalse(result.passed)

    def test_head_too_small(self):
        result = get_german_id_warnings(_face(height=0.50 * 450), CROP, GOOD_TILE_PX)
        self.assertEqual(result.warnings, ("Head too small (target ~70%).",))

    def test_head_too_large(self):
        result = get_german_id_warnings(_face(height=0.80 * 450), CROP, GOOD_TILE_PX)
        self.assertEqual(result.warnings, ("Head too large (target ~70%).",))

    def test_head_ratio_limits_inclusive(self):
        for ratio in (0.62, 0.78):
            with self.subTest(ratio=ratio):
                face = _face(height=ratio * 450)
                self.assertEqual(get_german_id_warnings(face, CROP, GOOD_TILE_PX).warnings, ())

    def test_eye_tiers(self):
        cases = [
            (0.30, "Eyes too high."),
            (0.55, "Eyes too low."),
            (0.36, "Eyes outside preferred band."),
            (0.47, "Eyes outside preferred band."),
        ]
        for ratio, expected in cases:
            with self.subTest(ratio=ratio):
                result = get_german_id_warnings(_face(eyes_ratio=ratio), CROP, GOOD_TILE_PX)
                self.assertEqual(result.warnings, (expected,))

    def test_eye_hard_limits_fall_through_to_soft_warning(self):
        for ratio in (0.35, 0.50):
            with self.subTest(ratio=ratio):
                result = get_german_id_warnings(_face(eyes_ratio=ratio), CROP, GOOD_TILE_PX)
                self.assertEqual(result.warnings, ("Eyes outside preferred band.",))

    def test_eye_check_skipped_without_landmarks(self):
        result = get_german_id_warnings(_face(eyes=False), CROP, GOOD_TILE_PX)
        self.assertEqual(result.warnings, ())

    def test_eyes_relative_to_crop_top(self):
        crop = Rect(100, 1000, 350, 450)
        face = FaceBox.from_bounds("f", 155, 1060, 240, 315, eyes_y=1000 + 0.41 * 450)
        self.assertEqual(get_german_id_warnings(face, crop, GOOD_TILE_PX).warnings, ())

    def test_off_center(self):
        result = get_german_id_warnings(_face(center_x=175 + 0.10 * 350), CROP, GOOD_TILE_PX)
        self.assertEqual(result.warnings, ("Face off-center.",))
        result = get_german_id_warnings(_face(center_x=175 - 0.05 * 350), CROP, GOOD_TILE_PX)
        self.assertEqual(result.warnings, ())

    def test_low_resolution(self):
        result = get_german_id_warnings(_face(), CROP, 499)
        self.assertEqual(result.warnings, ("Low resolution for ID print (tile height under 500px).",))
        self.assertEqual(get_german_id_warnings(_face(), CROP, 500).warnings, ())

    def test_warnings_in_check_order(self):
        face = _face(height=0.5 * 450, eyes_ratio=0.2, center_x=300)
        result = get_german_id_warnings(face, CROP, 300)
        self.assertEqual(
            result.warnings,
            (
                "Head too small (target ~70%).",
                "Eyes too high.",
                "Face off-center.",
                "Low resolution for ID print (tile height under 500px).",
            ),
        )


class TestIdWarningResult(unittest.TestCase):
    def test_frozen(self):
        r = IdWarningResult(warnings=(), checks_unavailable=False)
        with self.assertRaises(FrozenInstanceError):
            r.checks_unavailable = True  # type: ignore[misc]


class TestFormatWarningsText(unittest.TestCase):
    def test_pass(self):
        txt = format_warnings_text(get_german_id_warnings(_face(), CROP, GOOD_TILE_PX))
        self.assertIn("German ID Photo Check", txt)
        self.assertIn("Overall: PASS", txt)
        for item in GERMAN_ID_CHECKLIST:
            self.assertIn(item, txt)

    def test_warn(self):
        txt = format_warnings_text(get_german_id_warnings(_face(height=200), CROP, GOOD_TILE_PX))
        self.assertIn("Overall: WARN", txt)
        self.assertIn("Head too small", txt)

    def test_unavailable(self):
        txt = format_warnings_text(get_german_id_warnings(None, CROP, GOOD_TILE_PX))
        self.assertIn("Overall: UNAVAILABLE", txt)
        self.assertIn(NO_FACE_WARNING, txt)
