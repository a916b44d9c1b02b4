from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from photosheet.core.models import Mode, Orientation

logger = logging.getLogger(__name__)

MIN_ROWS, MAX_ROWS = 1, 10
MIN_COLUMNS, MAX_COLUMNS = 1, 4
MIN_QUALITY, MAX_QUALITY = 0.6, 1.0


def default_settings_path() -> Path:
    return Path.home() / ".photosheet" / "settings.json"


@dataclass(frozen=True)
class AppSettings:
    """
    User settings for building a sheet.

    rows, columns:
        Tile grid, clamped to [1, 10] x [1, 4].
    orientation:
        Tile orientation in friend mode. German ID is always portrait.
    rotate_paper:
        Use the landscape sheet profile.
    safe_margin_enabled / safe_margin_mm:
        Blank border around the grid (only applied when enabled).
    spacing_mm:
        Gap between neighboring tiles.
    quality:
        JPEG quality as a fraction in [0.6, 1.0].
    """
    mode: Mode = Mode.FRIEND
    rows: int = 5
    columns: int = 2
    orientation: Orientation = Orientation.PORTRAIT
    rotate_paper: bool = False
    safe_margin_enabled: bool = False
    safe_margin_mm: float = 2.0
    spacing_mm: float = 1.0
    cut_guides: bool = True
    quality: float = 0.9
    show_id_overlay: bool = True

    @property
    def margin_mm(self) -> float:
        return self.safe_margin_mm if self.safe_margin_enabled else 0.0

    def clamped(self) -> "AppSettings":
        mode = Mode(self.mode)
        orientation = Orientation.PORTRAIT if mode is Mode.GERMAN_ID else Orientation(self.orientation)
        return replace(
            self,
            mode=mode,
            orientation=orientation,
            rows=min(MAX_ROWS, max(MIN_ROWS, int(self.rows))),
            columns=min(MAX_COLUMNS, max(MIN_COLUMNS, int(self.columns))),
            spacing_mm=max(0.0, float(self.spacing_mm)),
            safe_margin_mm=max(0.0, float(self.safe_margin_mm)),
            quality=min(MAX_QUALITY, max(MIN_QUALITY, float(self.quality))),
        )

    def with_mode(self, mode: Mode) -> "AppSettings":
        """Switch mode and apply that mode's print defaults."""
        mode = Mode(mode)
        german = mode is Mode.GERMAN_ID
        return replace(
            self,
            mode=mode,
            orientation=Orientation.PORTRAIT if german else self.orientation,
            spacing_mm=0.0 if german else 1.0,
            cut_guides=not german,
            show_id_overlay=True if german else self.show_id_overlay,
        ).clamped()

    def to_dict(self) -> dict[str, Any]:
        raw = asdict(self)
        raw["mode"] = Mode(self.mode).value
        raw["orientation"] = Orientation(self.orientation).value
        return raw

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "AppSettings":
        """Merge a flat record over the defaults. Unknown keys and bad values are ignored."""
        defaults = AppSettings()
        values: dict[str, Any] = {}
        for f in fields(AppSettings):
            if f.name not in raw:
                continue
            value = _coerce(raw[f.name], getattr(defaults, f.name))
            if value is None:
                logger.warning("Ignoring invalid setting %s=%r", f.name, raw[f.name])
                continue
            values[f.name] = value
        return replace(defaults, **values).clamped()


def _coerce(value: Any, default: Any) -> Any:
    if isinstance(default, Mode):
        try:
            return Mode(value)
        except ValueError:
            return None
    if isinstance(default, Orientation):
        try:
            return Orientation(value)
        except ValueError:
            return None
    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    # bool is an int subclass; reject it for numeric fields
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    if isinstance(default, int):
        return int(value)
    return float(value)


def load_settings(path: Optional[Union[str, Path]] = None) -> AppSettings:
    """Load settings from JSON; a missing or unreadable file yields the defaults."""
    p = Path(path) if path is not None else default_settings_path()
    if not p.exists():
        return AppSettings()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Could not read settings from %s (%s); using defaults.", p, e)
        return AppSettings()
    if not isinstance(raw, dict):
        logger.warning("Settings file %s is not a JSON object; using defaults.", p)
        return AppSettings()
    return AppSettings.from_dict(raw)


def save_settings(settings: AppSettings, path: Optional[Union[str, Path]] = None) -> Path:
    p = Path(path) if path is not None else default_settings_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    logger.debug("Saved settings to %s", p)
    return p
