from __future__ import annotations

from typing import List, Optional

from photosheet.core.models import FaceBox, Rect
from photosheet.validation.report import IdWarningResult

HEAD_RATIO_MIN = 0.62
HEAD_RATIO_MAX = 0.78
EYES_RATIO_MIN = 0.35
EYES_RATIO_MAX = 0.50
EYES_PREFERRED_MIN = 0.38
EYES_PREFERRED_MAX = 0.45
CENTER_TOLERANCE = 0.08
MIN_TILE_HEIGHT_PX = 500

NO_FACE_WARNING = "No face detected, biometric checks unavailable."

GERMAN_ID_CHECKLIST = (
    "Neutral expression, mouth closed.",
    "Even lighting, no shadows on face.",
    "No head covering or tinted glasses.",
    "Plain, light-colored background.",
)


def get_german_id_warnings(
    face: Optional[FaceBox],
    crop: Rect,
    tile_height_px: float,
) -> IdWarningResult:
    """
    Check a crop against the German biometric passport photo guidance.

    Results are best-effort heuristics for user guidance, not an official
    acceptance check. Every check runs independently and may add a warning.
    """
    if face is None:
        return IdWarningResult(warnings=(NO_FACE_WARNING,), checks_unavailable=True)

    warnings: List[str] = []

    # Head size
    head_ratio = face.height / crop.height
    if head_ratio < HEAD_RATIO_MIN:
        warnings.append("Head too small (target ~70%).")
    if head_ratio > HEAD_RATIO_MAX:
        warnings.append("Head too large (target ~70%).")

    # Eye line: hard limits first, then the preferred band
    if face.eyes_y is not None:
        eyes_ratio = (face.eyes_y - crop.y) / crop.height
        if eyes_ratio < EYES_RATIO_MIN:
            warnings.append("Eyes too high.")
        elif eyes_ratio > EYES_RATIO_MAX:
            warnings.append("Eyes too low.")
        elif eyes_ratio < EYES_PREFERRED_MIN or eyes_ratio > EYES_PREFERRED_MAX:
            warnings.append("Eyes outside preferred band.")

    # Centering
    offset = abs(face.center_x - crop.center_x)
    if offset / crop.width > CENTER_TOLERANCE:
        warnings.append("Face off-center.")

    # Print resolution
    if tile_height_px < MIN_TILE_HEIGHT_PX:
        warnings.append("Low resolution for ID print (tile height under 500px).")

    return IdWarningResult(warnings=tuple(warnings), checks_unavailable=False)


def format_warnings_text(result: IdWarningResult) -> str:
    lines: List[str] = []
    lines.append("German ID Photo Check")
    lines.append("-" * 21)
    if result.checks_unavailable:
        overall = "UNAVAILABLE"
    else:
        overall = "PASS" if result.passed else "WARN"
    lines.append(f"Overall: {overall}")
    lines.append("")
    for w in result.warnings:
        lines.append(f"⚠ {w}")
    if not result.warnings:
        lines.append("✅ No geometric issues found.")
    lines.append("")
    lines.append("Also check manually:")
    for item in GERMAN_ID_CHECKLIST:
        lines.append(f"- {item}")
    return "\n".join(lines)
