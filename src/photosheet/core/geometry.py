from __future__ import annotations

from typing import Tuple

from photosheet.core.models import Mode, Orientation, Rect

GERMAN_ID_ASPECT = 35 / 45
FRIEND_PORTRAIT_ASPECT = 2 / 3
FRIEND_LANDSCAPE_ASPECT = 3 / 2


def get_target_aspect(mode: Mode, orientation: Orientation) -> float:
    """Width / height of a tile. German ID photos are always 35x45 mm portrait."""
    if Mode(mode) is Mode.GERMAN_ID:
        return GERMAN_ID_ASPECT
    if Orientation(orientation) is Orientation.PORTRAIT:
        return FRIEND_PORTRAIT_ASPECT
    return FRIEND_LANDSCAPE_ASPECT


def clamp_rect(rect: Rect, image_width: float, image_height: float) -> Rect:
    """
    Return `rect` shrunk to fit the image and then moved fully inside it.

    Width/height are capped first, so the result is inside the image even when
    the input was larger than the image in either dimension.
    """
    width = min(rect.width, image_width)
    height = min(rect.height, image_height)
    x = min(max(0.0, rect.x), image_width - width)
    y = min(max(0.0, rect.y), image_height - height)
    return Rect(x=x, y=y, width=width, height=height)


def fit_aspect(image_width: float, image_height: float, aspect: float) -> Tuple[float, float]:
    """Largest (width, height) with the given aspect that fits in the image."""
    width = min(image_width, image_height * aspect)
    return width, width / aspect


def center_crop(image_width: float, image_height: float, aspect: float) -> Rect:
    """Largest rectangle of `aspect` centered in the image (fallback when no face is known)."""
    width, height = fit_aspect(image_width, image_height, aspect)
    return Rect(
        x=(image_width - width) / 2.0,
        y=(image_height - height) / 2.0,
        width=width,
        height=height,
    )
