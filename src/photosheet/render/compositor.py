from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image, ImageDraw

from photosheet.core.models import LayoutResult, Mode, Orientation, Rect, SheetMetrics
from photosheet.core.settings import AppSettings
from photosheet.validation.german_id import (
    CENTER_TOLERANCE,
    EYES_PREFERRED_MAX,
    EYES_PREFERRED_MIN,
    HEAD_RATIO_MAX,
    HEAD_RATIO_MIN,
)

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)
GUIDE_RGBA = (0, 0, 0, 64)  # black at 25% opacity
GUIDE_WIDTH = 1


def new_sheet_canvas(metrics: SheetMetrics) -> Image.Image:
    return Image.new("RGB", (int(metrics.width_px), int(metrics.height_px)), WHITE)


def _crop_box(crop: Rect, img_w: int, img_h: int) -> Tuple[int, int, int, int]:
    """Integer pixel box covering `crop`, kept inside the image and at least 1px."""
    left = min(max(0, int(math.floor(crop.x))), img_w - 1)
    top = min(max(0, int(math.floor(crop.y))), img_h - 1)
    right = min(img_w, max(left + 1, int(math.ceil(crop.right))))
    bottom = min(img_h, max(top + 1, int(math.ceil(crop.bottom))))
    return left, top, right, bottom


def _scaled_crop(image: Image.Image, crop: Rect, size: Tuple[int, int]) -> Image.Image:
    """Cut `crop` out of `image` and resize it to `size` (w, h)."""
    box = _crop_box(crop, image.width, image.height)
    # Only the crop region is copied out of the source
    region = np.ascontiguousarray(np.array(image.crop(box).convert("RGB")))

    # Area averaging when shrinking, Lanczos when enlarging
    shrinking = size[0] < region.shape[1]
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LANCZOS4
    scaled = cv2.resize(region, size, interpolation=interpolation)
    return Image.fromarray(scaled)


def render_sheet(
    canvas: Optional[Image.Image],
    image: Image.Image,
    crop_rect: Rect,
    layout: LayoutResult,
    cut_guides: bool,
) -> Optional[Image.Image]:
    """
    Draw the crop into every tile of `layout` on `canvas`, in place.

    The canvas is cleared to white first. Cut guides are stroked over the tiles
    when enabled. Returns the canvas, or None when there is no canvas to draw on.
    """
    if canvas is None:
        logger.warning("No drawing surface; sheet not rendered.")
        return None

    sheet_w, sheet_h = canvas.size
    canvas.paste(WHITE, (0, 0, sheet_w, sheet_h))

    if layout.tile_rects:
        tile_size = (max(1, int(round(layout.tile_width))), max(1, int(round(layout.tile_height))))
        tile = _scaled_crop(image, crop_rect, tile_size)
        for rect in layout.tile_rects:
            canvas.paste(tile, (int(round(rect.x)), int(round(rect.y))))

    if cut_guides and layout.guide_lines:
        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        for line in layout.guide_lines:
            draw.line([(line.x1, line.y1), (line.x2, line.y2)], fill=GUIDE_RGBA, width=GUIDE_WIDTH)
        composed = Image.alpha_composite(canvas.convert("RGBA"), overlay).convert("RGB")
        canvas.paste(composed)

    logger.debug(
        "Rendered %d tile(s) of %.1fx%.1f px on %dx%d sheet.",
        len(layout.tile_rects), layout.tile_width, layout.tile_height, sheet_w, sheet_h,
    )
    return canvas


def render_sheet_image(
    image: Image.Image,
    crop_rect: Rect,
    layout: LayoutResult,
    metrics: SheetMetrics,
    cut_guides: bool,
) -> Image.Image:
    canvas = new_sheet_canvas(metrics)
    render_sheet(canvas, image, crop_rect, layout, cut_guides)
    return canvas


def _draw_id_overlay(tile: Image.Image) -> Image.Image:
    """Bands for head size, eye line and centering tolerance over a single tile."""
    w, h = tile.size
    overlay = Image.new("RGBA", tile.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    # Head band: face box bottom lands here when the head ratio is within limits
    head_top = h * (1 - HEAD_RATIO_MAX)
    head_bottom = h * (1 - HEAD_RATIO_MIN)
    draw.rectangle([0, head_top, w, head_bottom], fill=(37, 99, 235, 46))

    eye_top = h * EYES_PREFERRED_MIN
    eye_bottom = h * EYES_PREFERRED_MAX
    draw.rectangle([0, eye_top, w, eye_bottom], fill=(16, 185, 129, 46))

    cx = w / 2.0
    tol = w * CENTER_TOLERANCE
    draw.rectangle([cx - tol, 0, cx + tol, h], fill=(255, 255, 255, 20))
    draw.line([(cx, 0), (cx, h)], fill=(255, 255, 255, 153), width=1)
    draw.rectangle([0, 0, w - 1, h - 1], outline=(255, 255, 255, 191), width=1)

    return Image.alpha_composite(tile.convert("RGBA"), overlay).convert("RGB")


def render_tile_preview(
    image: Image.Image,
    crop_rect: Rect,
    width: int,
    mode: Mode,
    show_overlay: bool,
) -> Image.Image:
    """One tile at `width` px, with the ID guidance overlay in German ID mode."""
    aspect = crop_rect.aspect or 1.0
    size = (max(1, int(width)), max(1, int(round(width / aspect))))
    tile = _scaled_crop(image, crop_rect, size)
    if Mode(mode) is Mode.GERMAN_ID and show_overlay:
        tile = _draw_id_overlay(tile)
    return tile


def save_sheet_jpeg(sheet: Image.Image, path: Union[str, Path], quality: float) -> Path:
    """Encode as JPEG. `quality` is a fraction in [0.6, 1.0]."""
    q = int(round(min(1.0, max(0.0, quality)) * 100))
    q = min(100, max(1, q))
    out = Path(path)
    sheet.convert("RGB").save(out, format="JPEG", quality=q, optimize=True)
    logger.info("Saved sheet %dx%d to %s (quality %d).", sheet.width, sheet.height, out, q)
    return out


def default_export_name(settings: AppSettings) -> str:
    mode = Mode(settings.mode)
    if mode is Mode.GERMAN_ID:
        label = "35x45"
    elif Orientation(settings.orientation) is Orientation.PORTRAIT:
        label = "2x3"
    else:
        label = "3x2"
    prefix = "friendbook" if mode is Mode.FRIEND else "germanid"
    return f"{prefix}_{settings.rows}x{settings.columns}_{label}.jpg"
