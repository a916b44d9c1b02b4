from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Mode(str, Enum):
    FRIEND = "friend"
    GERMAN_ID = "german"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle in pixel coordinates.

    Used both for the crop (source-image pixels) and for tiles (sheet pixels).
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2.0

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height else 0.0


@dataclass(frozen=True)
class FaceBox:
    """
    A face returned by the detector.

    x, y, width, height:
        Bounding box in source-image pixels.
    center_x, center_y:
        Center of the bounding box.
    eyes_y:
        Eye-line y coordinate, when the detector reported eye landmarks.
    score:
        Detector confidence, if known.
    """
    id: str
    x: float
    y: float
    width: float
    height: float
    center_x: float
    center_y: float
    eyes_y: Optional[float] = None
    score: Optional[float] = None

    @staticmethod
    def from_bounds(
        face_id: str,
        x: float,
        y: float,
        width: float,
        height: float,
        eyes_y: Optional[float] = None,
        score: Optional[float] = None,
    ) -> "FaceBox":
        return FaceBox(
            id=face_id,
            x=x,
            y=y,
            width=width,
            height=height,
            center_x=x + width / 2.0,
            center_y=y + height / 2.0,
            eyes_y=eyes_y,
            score=score,
        )

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height


@dataclass(frozen=True)
class ModePolicy:
    """
    Framing constants for one mode.

    head_ratio:
        Fraction of crop height the face box should occupy.
    eye_line_ratio:
        Fraction of crop height (from the top) where the eye line should sit.
    biometric_checks:
        Whether the German ID compliance checks apply.
    """
    head_ratio: float
    eye_line_ratio: float
    biometric_checks: bool


_POLICIES = {
    Mode.FRIEND: ModePolicy(head_ratio=0.60, eye_line_ratio=0.38, biometric_checks=False),
    Mode.GERMAN_ID: ModePolicy(head_ratio=0.70, eye_line_ratio=0.40, biometric_checks=True),
}


def policy_for(mode: Mode) -> ModePolicy:
    return _POLICIES[Mode(mode)]


@dataclass(frozen=True)
class AutoCropOptions:
    mode: Mode
    aspect: float


@dataclass(frozen=True)
class SheetMetrics:
    """Physical print profile: pixel size at a fixed pixel-per-millimeter density."""
    width_px: int
    height_px: int
    px_per_mm: float

    @property
    def width_mm(self) -> float:
        return self.width_px / self.px_per_mm

    @property
    def height_mm(self) -> float:
        return self.height_px / self.px_per_mm


@dataclass(frozen=True)
class GuideLine:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class LayoutResult:
    """
    Tile grid computed for one sheet.

    tile_rects are in row-major order (row 0 first, columns left to right).
    """
    tile_rects: Tuple[Rect, ...]
    tile_width: float
    tile_height: float
    cell_width: float
    cell_height: float
    spacing_px: float
    margin_px: float
    guide_lines: Tuple[GuideLine, ...]
