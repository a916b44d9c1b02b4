#!/usr/bin/env python3
"""
photo_sheet.py

Build a print-ready 10x15 cm sheet of identical photos from one portrait:
- Detects faces (MediaPipe Face Detection) and picks the most central, largest one
- Derives a crop framed for the mode (friend book 2:3 / 3:2, or German ID 35x45)
- Lays out a rows x columns grid with spacing, optional safe margin and cut guides
- Saves the sheet as a 2000x3000 (or rotated 3000x2000) JPEG

Usage:
  python photo_sheet.py --input /path/in.jpg
  python photo_sheet.py -i in.jpg -o sheet.jpg --mode german --rows 2 --columns 2
  python photo_sheet.py -i in.jpg --rows 4 --columns 2 --orientation landscape --rotate-paper
  python photo_sheet.py -i in.jpg --no-detect --margin-mm 3 --no-guides

Notes:
- The German ID checks are heuristics for user guidance; always verify the final photo
  against the official requirements of the issuing office.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from photosheet.app.image_io import load_image_rgb
from photosheet.core.crop import auto_crop_from_face, select_best_face
from photosheet.core.geometry import get_target_aspect
from photosheet.core.layout import get_sheet_metrics, layout_for_settings
from photosheet.core.models import AutoCropOptions, FaceBox, LayoutResult, Mode, Orientation, Rect, policy_for
from photosheet.core.settings import AppSettings, load_settings
from photosheet.detection.faces import FaceDetectionError, detect_faces
from photosheet.logging_config import setup_logging
from photosheet.render.compositor import default_export_name, render_sheet_image, save_sheet_jpeg
from photosheet.validation.german_id import format_warnings_text, get_german_id_warnings
from photosheet.validation.report import IdWarningResult

logger = logging.getLogger("photosheet.cli")


@dataclass(frozen=True)
class SheetResult:
    crop_rect: Rect
    face: Optional[FaceBox]
    layout: LayoutResult
    id_warnings: Optional[IdWarningResult]
    output_path: Path


def _find_face(pil, detect: bool) -> Optional[FaceBox]:
    """Best face in the image, or None (no face, detection disabled, or detector failure)."""
    if not detect:
        return None
    try:
        faces = detect_faces(pil)
    except FaceDetectionError as e:
        logger.warning("%s Using centered crop.", e)
        return None
    face = select_best_face(faces, pil.width, pil.height)
    if face is None:
        logger.warning("No face detected. Using centered crop.")
    return face


def make_photo_sheet(
    input_path: str,
    output_path: str,
    settings: AppSettings,
    detect: bool = True,
) -> SheetResult:
    """
    Process input image and save a sheet at the fixed print resolution.

    Args:
      input_path: path to input image
      output_path: path to write the JPEG sheet
      settings: grid/mode settings (clamped before use)
      detect: if False, skip face detection and use a centered crop
    """
    settings = settings.clamped()
    pil = load_image_rgb(input_path)

    aspect = get_target_aspect(settings.mode, settings.orientation)
    face = _find_face(pil, detect)
    crop = auto_crop_from_face(pil.width, pil.height, face, AutoCropOptions(mode=settings.mode, aspect=aspect))

    metrics = get_sheet_metrics(settings.rotate_paper)
    layout = layout_for_settings(settings)
    sheet = render_sheet_image(pil, crop, layout, metrics, settings.cut_guides)
    out = save_sheet_jpeg(sheet, output_path, settings.quality)

    warnings = None
    if policy_for(settings.mode).biometric_checks:
        warnings = get_german_id_warnings(face, crop, layout.tile_height)

    return SheetResult(crop_rect=crop, face=face, layout=layout, id_warnings=warnings, output_path=out)


def _settings_from_args(args: argparse.Namespace) -> AppSettings:
    settings = load_settings(args.settings) if args.settings else AppSettings()
    if args.mode is not None:
        settings = settings.with_mode(Mode(args.mode))

    changes = {}
    if args.rows is not None:
        changes["rows"] = args.rows
    if args.columns is not None:
        changes["columns"] = args.columns
    if args.orientation is not None:
        changes["orientation"] = Orientation(args.orientation)
    if args.rotate_paper:
        changes["rotate_paper"] = True
    if args.margin_mm is not None:
        changes["safe_margin_enabled"] = True
        changes["safe_margin_mm"] = args.margin_mm
    if args.spacing_mm is not None:
        changes["spacing_mm"] = args.spacing_mm
    if args.no_guides:
        changes["cut_guides"] = False
    if args.quality is not None:
        changes["quality"] = args.quality
    return replace(settings, **changes).clamped()


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Generate a print-ready sheet of identical photos from one portrait.")
    p.add_argument("--input", "-i", required=True, help="Path to input image (jpg/png/etc.)")
    p.add_argument("--output", "-o", help="Path to output JPEG (default: name derived from the settings)")
    p.add_argument("--mode", choices=[m.value for m in Mode], help="friend (2:3 tiles) or german (35x45 ID)")
    p.add_argument("--rows", type=int, help="Tile rows (1–10)")
    p.add_argument("--columns", type=int, help="Tile columns (1–4)")
    p.add_argument("--orientation", choices=[o.value for o in Orientation], help="Tile orientation (friend mode)")
    p.add_argument("--rotate-paper", action="store_true", help="Use the landscape sheet (3000x2000)")
    p.add_argument("--margin-mm", type=float, help="Enable a safe margin of this many mm")
    p.add_argument("--spacing-mm", type=float, help="Gap between tiles in mm")
    p.add_argument("--no-guides", action="store_true", help="Do not draw cut guides")
    p.add_argument("--quality", type=float, help="JPEG quality 0.6–1.0")
    p.add_argument("--no-detect", action="store_true", help="Skip face detection; use a centered crop")
    p.add_argument("--settings", help="Load defaults from a settings JSON file")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = _settings_from_args(args)
        output = args.output or default_export_name(settings)
        result = make_photo_sheet(
            input_path=args.input,
            output_path=output,
            settings=settings,
            detect=not args.no_detect,
        )
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if result.id_warnings is not None:
        print(format_warnings_text(result.id_warnings))

    print(f"Saved: {result.output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
