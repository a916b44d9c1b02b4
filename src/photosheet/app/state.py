from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

from photosheet.core import crop as crop_ops
from photosheet.core.geometry import get_target_aspect
from photosheet.core.layout import get_sheet_metrics, layout_for_settings
from photosheet.core.models import AutoCropOptions, FaceBox, LayoutResult, Rect, SheetMetrics, policy_for
from photosheet.core.settings import AppSettings
from photosheet.validation.german_id import get_german_id_warnings
from photosheet.validation.report import IdWarningResult

if TYPE_CHECKING:  # avoid importing Pillow at module import time
    from PIL import Image

logger = logging.getLogger(__name__)

NO_FACE_MESSAGE = "No face detected. Using centered crop."
DETECTION_FAILED_MESSAGE = "Face detection failed, using centered crop."


@dataclass
class AppState:
    """
    Mutable state for a single editing session.

    The crop rect is replaced on every edit, never mutated. Layout and ID
    warnings are recomputed from the current inputs whenever they are asked for.
    """
    # Input
    input_path: Optional[str] = None
    original_pil: Optional["Image.Image"] = None

    # Faces
    faces: List[FaceBox] = field(default_factory=list)
    selected_face_id: Optional[str] = None

    # Crop
    crop_rect: Optional[Rect] = None
    auto_crop_rect: Optional[Rect] = None

    # User settings (persisted outside the session)
    settings: AppSettings = field(default_factory=AppSettings)

    status_message: Optional[str] = None

    def reset(self) -> None:
        """Clear the session (used by a Reset button). Settings are kept."""
        self.input_path = None
        self.original_pil = None
        self.faces = []
        self.selected_face_id = None
        self.crop_rect = None
        self.auto_crop_rect = None
        self.status_message = None

    # ---------- Derived values ----------

    @property
    def image_size(self) -> Optional[Tuple[int, int]]:
        if self.original_pil is None:
            return None
        return self.original_pil.width, self.original_pil.height

    @property
    def aspect(self) -> float:
        return get_target_aspect(self.settings.mode, self.settings.orientation)

    @property
    def sheet_metrics(self) -> SheetMetrics:
        return get_sheet_metrics(self.settings.rotate_paper)

    @property
    def selected_face(self) -> Optional[FaceBox]:
        for face in self.faces:
            if face.id == self.selected_face_id:
                return face
        return None

    def layout(self) -> LayoutResult:
        return layout_for_settings(self.settings)

    def id_warnings(self) -> Optional[IdWarningResult]:
        """German ID checks for the current crop; None outside German ID mode or without a crop."""
        if self.crop_rect is None or not policy_for(self.settings.mode).biometric_checks:
            return None
        return get_german_id_warnings(self.selected_face, self.crop_rect, self.layout().tile_height)

    # ---------- Transitions ----------

    def set_image(self, path: Optional[str], pil: "Image.Image") -> None:
        """A new upload invalidates faces and crop; the crop starts centered."""
        self.input_path = path
        self.original_pil = pil
        self.faces = []
        self.selected_face_id = None
        self.status_message = None
        self.recompute_auto_crop()

    def set_faces(self, faces: Sequence[FaceBox]) -> None:
        self.faces = list(faces)
        size = self.image_size
        best = crop_ops.select_best_face(self.faces, *size) if size else None
        self.selected_face_id = best.id if best else None
        self.status_message = None if self.faces else NO_FACE_MESSAGE
        self.recompute_auto_crop()

    def detection_failed(self) -> None:
        logger.warning("Face detection failed for %s; falling back to centered crop.", self.input_path)
        self.faces = []
        self.selected_face_id = None
        self.status_message = DETECTION_FAILED_MESSAGE
        self.recompute_auto_crop()

    def select_face(self, face_id: Optional[str]) -> None:
        self.selected_face_id = face_id
        self.recompute_auto_crop()

    def apply_settings(self, settings: AppSettings) -> None:
        """Adopt new settings; a mode or aspect change re-derives the auto crop."""
        settings = settings.clamped()
        old_aspect = self.aspect
        old_mode = self.settings.mode
        self.settings = settings
        if settings.mode != old_mode or self.aspect != old_aspect:
            self.recompute_auto_crop()

    def recompute_auto_crop(self) -> None:
        size = self.image_size
        if size is None:
            self.crop_rect = None
            self.auto_crop_rect = None
            return
        rect = crop_ops.auto_crop_from_face(
            size[0],
            size[1],
            self.selected_face,
            AutoCropOptions(mode=self.settings.mode, aspect=self.aspect),
        )
        self.crop_rect = rect
        self.auto_crop_rect = rect

    def move_crop(self, delta_x: float, delta_y: float) -> None:
        size = self.image_size
        if self.crop_rect is None or size is None:
            return
        self.crop_rect = crop_ops.move_crop(self.crop_rect, delta_x, delta_y, size[0], size[1])

    def zoom_crop(self, zoom_factor: float) -> None:
        size = self.image_size
        if self.crop_rect is None or size is None:
            return
        self.crop_rect = crop_ops.zoom_crop(self.crop_rect, zoom_factor, size[0], size[1], self.aspect)

    def reset_crop(self) -> None:
        if self.auto_crop_rect is not None:
            self.crop_rect = self.auto_crop_rect
