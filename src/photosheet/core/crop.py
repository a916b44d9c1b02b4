from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from photosheet.core.geometry import center_crop, clamp_rect, fit_aspect
from photosheet.core.models import AutoCropOptions, FaceBox, Rect, policy_for

logger = logging.getLogger(__name__)

# Eye line estimate below the face box top when the detector gave no eye landmarks.
EYE_LINE_ESTIMATE = 0.35

MIN_ZOOM = 0.4
MAX_ZOOM = 2.0
MIN_CROP_WIDTH_PX = 40.0
MIN_CROP_WIDTH_FRACTION = 0.1

# Penalty per pixel of distance from the image center when ranking faces.
FACE_DISTANCE_WEIGHT = 50.0


def select_best_face(
    faces: Sequence[FaceBox],
    image_width: float,
    image_height: float,
) -> Optional[FaceBox]:
    """
    Pick the default face to anchor the crop on: large and close to the image center.

    Returns None for an empty sequence. Ties keep detector order.
    """
    if not faces:
        return None

    cx = image_width / 2.0
    cy = image_height / 2.0

    def score(face: FaceBox) -> float:
        dist = math.hypot(face.center_x - cx, face.center_y - cy)
        return face.width * face.height - dist * FACE_DISTANCE_WEIGHT

    return max(faces, key=score)


def auto_crop_from_face(
    image_width: float,
    image_height: float,
    face: Optional[FaceBox],
    options: AutoCropOptions,
) -> Rect:
    """
    Derive the initial crop for an uploaded image.

    With a face, the crop is sized so the face box fills the mode's head ratio,
    centered horizontally on the face, and placed so the eye line sits at the
    mode's eye-line ratio. Oversized crops are scaled down uniformly so the
    aspect survives. Without a face (or with an empty face box), the largest
    centered crop is used.
    """
    if face is None or face.width <= 0 or face.height <= 0:
        return center_crop(image_width, image_height, options.aspect)

    policy = policy_for(options.mode)
    crop_height = face.height / policy.head_ratio
    crop_width = crop_height * options.aspect

    scale = min(image_width / crop_width, image_height / crop_height, 1.0)
    crop_width *= scale
    crop_height *= scale

    eyes_y = face.eyes_y if face.eyes_y is not None else face.y + face.height * EYE_LINE_ESTIMATE
    crop = Rect(
        x=face.center_x - crop_width / 2.0,
        y=eyes_y - crop_height * policy.eye_line_ratio,
        width=crop_width,
        height=crop_height,
    )
    logger.debug("Auto crop for face %s (scale %.3f): %s", face.id, scale, crop)
    return clamp_rect(crop, image_width, image_height)


def move_crop(
    rect: Rect,
    delta_x: float,
    delta_y: float,
    image_width: float,
    image_height: float,
) -> Rect:
    """Translate the crop and keep it inside the image. Size is unchanged."""
    moved = Rect(x=rect.x + delta_x, y=rect.y + delta_y, width=rect.width, height=rect.height)
    return clamp_rect(moved, image_width, image_height)


def zoom_crop(
    rect: Rect,
    zoom_factor: float,
    image_width: float,
    image_height: float,
    aspect: float,
) -> Rect:
    """
    Zoom the crop about its center.

    zoom_factor > 1 zooms in (smaller crop), < 1 zooms out. The factor is
    clamped to [0.4, 2.0]; the crop never gets narrower than
    max(40px, 10% of the image width) and never larger than the largest
    aspect-correct rectangle that fits the image.
    """
    zoom = min(max(zoom_factor, MIN_ZOOM), MAX_ZOOM)
    new_width = rect.width / zoom
    new_height = new_width / aspect

    min_width = max(MIN_CROP_WIDTH_PX, image_width * MIN_CROP_WIDTH_FRACTION)
    if new_width < min_width:
        new_width = min_width
        new_height = new_width / aspect

    if new_width > image_width or new_height > image_height:
        new_width, new_height = fit_aspect(image_width, image_height, aspect)

    zoomed = Rect(
        x=rect.center_x - new_width / 2.0,
        y=rect.center_y - new_height / 2.0,
        width=new_width,
        height=new_height,
    )
    return clamp_rect(zoomed, image_width, image_height)
