import importlib
import tempfile
import unittest
from pathlib import Path
from unittest import skipIf
from unittest.mock import patch

import numpy as np
from PIL import Image

from tests._test_path import SRC  # noqa: F401

from photosheet.core.layout import compute_layout, get_sheet_metrics
from photosheet.core.models import Mode, Orientation, Rect
from photosheet.core.settings import AppSettings


def _load_compositor():
    try:
        return importlib.import_module("photosheet.render.compositor")
    except Exception:
        return None


c = _load_compositor()
SKIP_REASON = "compositor dependencies (cv2) not available"


def _two_tone(w=100, h=150) -> Image.Image:
    """Left half red, right half blue."""
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, : w // 2] = [255, 0, 0]
    arr[:, w // 2 :] = [0, 0, 255]
    return Image.fromarray(arr, "RGB")


def _small_layout(spacing_mm=10.0, margin_mm=0.0):
    # 200x300 sheet at 1 px/mm keeps the numbers readable
    return compute_layout(200, 300, 2, 2, spacing_mm=spacing_mm, margin_mm=margin_mm, px_per_mm=1, tile_aspect=2 / 3)


@skipIf(c is None, SKIP_REASON)
class TestRenderSheet(unittest.TestCase):
    def setUp(self):
        self.red = Image.new("RGB", (100, 150), (255, 0, 0))
        self.full = Rect(0, 0, 100, 150)

    def test_no_canvas_is_noop(self):
        self.assertIsNone(c.render_sheet(None, self.red, self.full, _small_layout(), True))

    def test_tiles_filled_and_background_white(self):
        canvas = Image.new("RGB", (200, 300), (0, 0, 0))
        out = c.render_sheet(canvas, self.red, self.full, _small_layout(), cut_guides=False)
        self.assertIs(out, canvas)
        arr = np.asarray(canvas)
        for tile in _small_layout().tile_rects:
            r, g, b = arr[int(tile.center_y), int(tile.center_x)]
            self.assertGreater(r, 240)
            self.assertLess(g, 15)
            self.assertLess(b, 15)
        # gap between rows, no guides -> white
        self.assertEqual(tuple(arr[150, 10]), (255, 255, 255))

    def test_cut_guides_drawn_in_gaps(self):
        canvas = Image.new("RGB", (200, 300), (255, 255, 255))
        c.render_sheet(canvas, self.red, self.full, _small_layout(), cut_guides=True)
        arr = np.asarray(canvas)
        # row guide at y=150, column guide at x=100 (middle of the 10px gaps)
        for y, x in ((150, 10), (20, 100)):
            px = arr[y, x]
            with self.subTest(y=y, x=x):
                self.assertTrue(all(150 < int(v) < 255 for v in px))
                self.assertEqual(int(px[0]), int(px[1]))

    def test_crop_region_is_what_gets_drawn(self):
        src = _two_tone()
        blue_crop = Rect(50, 0, 50, 75)
        canvas = Image.new("RGB", (200, 300))
        c.render_sheet(canvas, src, blue_crop, _small_layout(), cut_guides=False)
        tile = _small_layout().tile_rects[3]
        r, g, b = np.asarray(canvas)[int(tile.center_y), int(tile.center_x)]
        self.assertLess(r, 15)
        self.assertGreater(b, 240)

    def test_only_crop_region_is_converted(self):
        src = Image.new("L", (400, 600), 128)
        converted_sizes = []
        original_convert = Image.Image.convert

        def spy(img, *args, **kwargs):
            converted_sizes.append(img.size)
            return original_convert(img, *args, **kwargs)

        with patch.object(Image.Image, "convert", autospec=True, side_effect=spy):
            tile = c.render_tile_preview(src, Rect(100, 100, 70, 90), 140, Mode.FRIEND, show_overlay=False)

        self.assertNotIn((400, 600), converted_sizes)
        self.assertIn((70, 90), converted_sizes)
        self.assertEqual(tile.mode, "RGB")
        for v in tile.getpixel((70, 90)):
            self.assertAlmostEqual(v, 128, delta=2)

    def test_render_sheet_image_uses_sheet_size(self):
        metrics = get_sheet_metrics(True)
        layout = compute_layout(metrics.width_px, metrics.height_px, 2, 3, 1, 0, metrics.px_per_mm, 3 / 2)
        sheet = c.render_sheet_image(self.red, self.full, layout, metrics, cut_guides=True)
        self.assertEqual(sheet.size, (3000, 2000))
        self.assertEqual(sheet.mode, "RGB")

    def test_new_sheet_canvas_white(self):
        canvas = c.new_sheet_canvas(get_sheet_metrics(False))
        self.assertEqual(canvas.size, (2000, 3000))
        self.assertEqual(canvas.getpixel((0, 0)), (255, 255, 255))


@skipIf(c is None, SKIP_REASON)
class TestTilePreview(unittest.TestCase):
    def setUp(self):
        self.src = Image.new("RGB", (100, 150), (200, 50, 50))
        self.crop = Rect(0, 0, 70, 90)

    def test_size_follows_crop_aspect(self):
        tile = c.render_tile_preview(self.src, self.crop, 140, Mode.FRIEND, show_overlay=True)
        self.assertEqual(tile.size, (140, 180))

    def test_overlay_only_in_german_mode(self):
        plain = c.render_tile_preview(self.src, self.crop, 140, Mode.GERMAN_ID, show_overlay=False)
        friend = c.render_tile_preview(self.src, self.crop, 140, Mode.FRIEND, show_overlay=True)
        overlay = c.render_tile_preview(self.src, self.crop, 140, Mode.GERMAN_ID, show_overlay=True)
        eye_band = (10, int(180 * 0.41))
        self.assertEqual(plain.getpixel(eye_band), friend.getpixel(eye_band))
        self.assertNotEqual(plain.getpixel(eye_band), overlay.getpixel(eye_band))


@skipIf(c is None, SKIP_REASON)
class TestExport(unittest.TestCase):
    def test_save_sheet_jpeg(self):
        sheet = Image.new("RGB", (200, 300), (255, 255, 255))
        with tempfile.TemporaryDirectory() as d:
            out = c.save_sheet_jpeg(sheet, Path(d) / "sheet.jpg", 0.9)
            self.assertTrue(out.exists())
            with Image.open(out) as img:
                self.assertEqual(img.format, "JPEG")
                self.assertEqual(img.size, (200, 300))

    def test_default_export_name(self):
        self.assertEqual(c.default_export_name(AppSettings()), "friendbook_5x2_2x3.jpg")
        self.assertEqual(
            c.default_export_name(AppSettings(orientation=Orientation.LANDSCAPE, rows=4, columns=1)),
            "friendbook_4x1_3x2.jpg",
        )
        self.assertEqual(
            c.default_export_name(AppSettings(rows=2, columns=2).with_mode(Mode.GERMAN_ID)),
            "germanid_2x2_35x45.jpg",
        )
