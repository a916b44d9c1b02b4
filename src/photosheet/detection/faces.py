from __future__ import annotations

import logging
from typing import Any, List, Optional

import numpy as np
from PIL import Image

from photosheet.core.models import FaceBox

logger = logging.getLogger(__name__)

# MediaPipe is optional at import time; without it every detection fails and
# callers fall back to a centered crop.
try:
    import mediapipe as mp  # type: ignore
except Exception:
    mp = None

# MediaPipe Face Detection keypoint order: right eye, left eye, nose tip, mouth, right ear, left ear.
_RIGHT_EYE = 0
_LEFT_EYE = 1


class FaceDetectionError(Exception):
    """Raised when the face detector is unavailable or fails."""
    pass


def _detection_to_face(detection: Any, index: int, img_w: int, img_h: int) -> FaceBox:
    """Convert one MediaPipe detection (relative coords) to a FaceBox in pixels."""
    loc = detection.location_data
    bbox = loc.relative_bounding_box
    x = bbox.xmin * img_w
    y = bbox.ymin * img_h
    w = bbox.width * img_w
    h = bbox.height * img_h

    eyes_y: Optional[float] = None
    keypoints = list(getattr(loc, "relative_keypoints", None) or [])
    if len(keypoints) > _LEFT_EYE:
        eyes_y = (keypoints[_RIGHT_EYE].y + keypoints[_LEFT_EYE].y) / 2.0 * img_h

    scores = list(getattr(detection, "score", None) or [])
    score = float(scores[0]) if scores else None

    return FaceBox.from_bounds(f"face-{index}", x, y, w, h, eyes_y=eyes_y, score=score)


def detect_faces(img_rgb: Image.Image, min_confidence: float = 0.5) -> List[FaceBox]:
    """
    Detect faces with MediaPipe Face Detection (full-range model).

    Returns an empty list when no face is found. Raises FaceDetectionError if
    the detector is missing or crashes.
    """
    if mp is None:
        raise FaceDetectionError("mediapipe is not installed; face detection unavailable.")

    rgb = np.ascontiguousarray(np.array(img_rgb.convert("RGB")))
    h, w = rgb.shape[:2]

    try:
        with mp.solutions.face_detection.FaceDetection(
            model_selection=1,
            min_detection_confidence=min_confidence,
        ) as detector:
            results = detector.process(rgb)
    except Exception as e:
        raise FaceDetectionError(f"Face detection failed: {e}") from e

    detections = results.detections or []
    faces = [_detection_to_face(d, i, w, h) for i, d in enumerate(detections)]
    logger.info("Detected %d face(s) in %dx%d image.", len(faces), w, h)
    return faces
