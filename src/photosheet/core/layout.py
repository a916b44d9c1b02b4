from __future__ import annotations

from typing import TYPE_CHECKING, List

from photosheet.core.geometry import get_target_aspect
from photosheet.core.models import GuideLine, LayoutResult, Rect, SheetMetrics

if TYPE_CHECKING:
    from photosheet.core.settings import AppSettings

# Print profile: 10x15 cm photo paper at 3000x2000 px.
BASE_LONG_EDGE_PX = 3000
BASE_SHORT_EDGE_PX = 2000
BASE_LONG_EDGE_MM = 150


def get_sheet_metrics(rotate_paper: bool) -> SheetMetrics:
    """Portrait sheet by default; `rotate_paper` swaps the axes."""
    width_px = BASE_LONG_EDGE_PX if rotate_paper else BASE_SHORT_EDGE_PX
    height_px = BASE_SHORT_EDGE_PX if rotate_paper else BASE_LONG_EDGE_PX
    return SheetMetrics(width_px=width_px, height_px=height_px, px_per_mm=BASE_LONG_EDGE_PX / BASE_LONG_EDGE_MM)


def compute_layout(
    sheet_width: float,
    sheet_height: float,
    rows: int,
    columns: int,
    spacing_mm: float,
    margin_mm: float,
    px_per_mm: float,
    tile_aspect: float,
) -> LayoutResult:
    """
    Lay out `rows` x `columns` tiles of `tile_aspect` over the sheet.

    The sheet minus margins and inter-cell spacing is split into equal cells;
    each tile is the largest tile of the target aspect that fits a cell and is
    centered in it. Guide lines run through the middle of each inter-cell gap,
    rows first, then columns.

    Callers pass settings already clamped (rows >= 1, columns >= 1).
    """
    spacing_px = max(0.0, spacing_mm) * px_per_mm
    margin_px = max(0.0, margin_mm) * px_per_mm

    usable_width = max(1.0, sheet_width - margin_px * 2 - (columns - 1) * spacing_px)
    usable_height = max(1.0, sheet_height - margin_px * 2 - (rows - 1) * spacing_px)

    cell_width = usable_width / columns
    cell_height = usable_height / rows

    tile_width = min(cell_width, cell_height * tile_aspect)
    tile_height = tile_width / tile_aspect

    tiles: List[Rect] = []
    for row in range(rows):
        for col in range(columns):
            cell_x = margin_px + col * (cell_width + spacing_px)
            cell_y = margin_px + row * (cell_height + spacing_px)
            tiles.append(
                Rect(
                    x=cell_x + (cell_width - tile_width) / 2.0,
                    y=cell_y + (cell_height - tile_height) / 2.0,
                    width=tile_width,
                    height=tile_height,
                )
            )

    guides: List[GuideLine] = []
    for row in range(1, rows):
        line_y = margin_px + row * cell_height + (row - 1) * spacing_px + spacing_px / 2.0
        guides.append(GuideLine(x1=margin_px, y1=line_y, x2=sheet_width - margin_px, y2=line_y))

    for col in range(1, columns):
        line_x = margin_px + col * cell_width + (col - 1) * spacing_px + spacing_px / 2.0
        guides.append(GuideLine(x1=line_x, y1=margin_px, x2=line_x, y2=sheet_height - margin_px))

    return LayoutResult(
        tile_rects=tuple(tiles),
        tile_width=tile_width,
        tile_height=tile_height,
        cell_width=cell_width,
        cell_height=cell_height,
        spacing_px=spacing_px,
        margin_px=margin_px,
        guide_lines=tuple(guides),
    )


def layout_for_settings(settings: "AppSettings") -> LayoutResult:
    metrics = get_sheet_metrics(settings.rotate_paper)
    return compute_layout(
        sheet_width=metrics.width_px,
        sheet_height=metrics.height_px,
        rows=settings.rows,
        columns=settings.columns,
        spacing_mm=settings.spacing_mm,
        margin_mm=settings.margin_mm,
        px_per_mm=metrics.px_per_mm,
        tile_aspect=get_target_aspect(settings.mode, settings.orientation),
    )
