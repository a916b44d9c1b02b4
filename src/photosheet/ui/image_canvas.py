from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Callable, Optional, Sequence, Tuple

from PIL import Image, ImageOps, ImageTk

from photosheet.core.models import FaceBox, Rect


class ImageCanvas(ttk.Frame):
    """
    Canvas showing a PIL image scaled down (or up) to fit, centered.

    After every redraw the placement is kept in ``_view`` as
    (offset_x, offset_y, scale) so subclasses can map between canvas and
    image pixels.
    """

    def __init__(self, master, *, bg: str = "#f3f3f3", placeholder: str = "No image loaded"):
        super().__init__(master)
        self._canvas = tk.Canvas(self, highlightthickness=0, bg=bg)
        self._canvas.pack(fill="both", expand=True)

        self._pil: Optional[Image.Image] = None
        self._photo: Optional[ImageTk.PhotoImage] = None
        self._view: Optional[Tuple[int, int, float]] = None

        self._placeholder_id = self._canvas.create_text(
            12, 12, anchor="nw", text=placeholder, fill="#555", font=("TkDefaultFont", 11)
        )
        self._canvas.bind("<Configure>", lambda _evt: self._redraw())

    def set_image(self, pil: Optional[Image.Image]) -> None:
        self._pil = pil
        self._redraw()

    def clear(self) -> None:
        self.set_image(None)

    def _redraw(self) -> None:
        self._canvas.delete("img")
        self._view = None
        if self._pil is None:
            self._canvas.itemconfigure(self._placeholder_id, state="normal")
            self._after_redraw()
            return
        self._canvas.itemconfigure(self._placeholder_id, state="hidden")

        box_w = self._canvas.winfo_width()
        box_h = self._canvas.winfo_height()
        if box_w <= 2 or box_h <= 2:  # not mapped yet
            return

        shown = ImageOps.contain(self._pil, (box_w, box_h), Image.LANCZOS)
        self._photo = ImageTk.PhotoImage(shown)
        ox = (box_w - shown.width) // 2
        oy = (box_h - shown.height) // 2
        self._canvas.create_image(ox, oy, anchor="nw", image=self._photo, tags=("img",))
        self._view = (ox, oy, shown.width / self._pil.width)
        self._after_redraw()

    def _after_redraw(self) -> None:
        pass


class CropCanvas(ImageCanvas):
    """
    Source image with face boxes and the crop rectangle drawn on top.

    Click on a face box selects it, drag moves the crop, mouse wheel zooms.
    Callbacks receive values in source-image pixels.
    """

    def __init__(
        self,
        master,
        *,
        on_select_face: Callable[[str], None],
        on_move: Callable[[float, float], None],
        on_zoom: Callable[[float], None],
        bg: str = "#f3f3f3",
    ):
        super().__init__(master, bg=bg)
        self._on_select_face = on_select_face
        self._on_move = on_move
        self._on_zoom = on_zoom

        self._faces: Sequence[FaceBox] = ()
        self._selected_id: Optional[str] = None
        self._crop: Optional[Rect] = None

        self._drag_last: Optional[Tuple[int, int]] = None
        self._dragged = False

        self._canvas.bind("<ButtonPress-1>", self._on_press)
        self._canvas.bind("<B1-Motion>", self._on_drag)
        self._canvas.bind("<ButtonRelease-1>", self._on_release)
        self._canvas.bind("<MouseWheel>", self._on_wheel)
        self._canvas.bind("<Button-4>", lambda e: self._on_zoom(1.12))  # X11 wheel up
        self._canvas.bind("<Button-5>", lambda e: self._on_zoom(0.88))  # X11 wheel down

    def set_overlays(self, faces: Sequence[FaceBox], selected_id: Optional[str], crop: Optional[Rect]) -> None:
        self._faces = faces
        self._selected_id = selected_id
        self._crop = crop
        self._draw_overlays()

    def clear(self) -> None:
        self._faces = ()
        self._selected_id = None
        self._crop = None
        super().clear()

    def _after_redraw(self) -> None:
        self._draw_overlays()

    def _to_canvas(self, x: float, y: float) -> Tuple[float, float]:
        ox, oy, s = self._view  # type: ignore[misc]
        return ox + x * s, oy + y * s

    def _to_image(self, cx: float, cy: float) -> Tuple[float, float]:
        ox, oy, s = self._view  # type: ignore[misc]
        return (cx - ox) / s, (cy - oy) / s

    def _draw_overlays(self) -> None:
        self._canvas.delete("overlay")
        if self._pil is None or self._view is None:
            return

        for face in self._faces:
            x0, y0 = self._to_canvas(face.x, face.y)
            x1, y1 = self._to_canvas(face.x + face.width, face.y + face.height)
            color = "#2563eb" if face.id == self._selected_id else "#9ca3af"
            self._canvas.create_rectangle(x0, y0, x1, y1, outline=color, width=2, tags=("overlay",))

        if self._crop is not None:
            x0, y0 = self._to_canvas(self._crop.x, self._crop.y)
            x1, y1 = self._to_canvas(self._crop.right, self._crop.bottom)
            self._canvas.create_rectangle(x0, y0, x1, y1, outline="#f59e0b", width=2, dash=(6, 3), tags=("overlay",))

    def _on_press(self, evt) -> None:
        self._drag_last = (evt.x, evt.y)
        self._dragged = False

    def _on_drag(self, evt) -> None:
        if self._drag_last is None or self._view is None:
            return
        scale = self._view[2]
        dx = (evt.x - self._drag_last[0]) / scale
        dy = (evt.y - self._drag_last[1]) / scale
        self._drag_last = (evt.x, evt.y)
        self._dragged = True
        self._on_move(dx, dy)

    def _on_release(self, evt) -> None:
        was_drag = self._dragged
        self._drag_last = None
        self._dragged = False
        if was_drag or self._view is None:
            return
        ix, iy = self._to_image(evt.x, evt.y)
        for face in self._faces:
            if face.contains(ix, iy):
                self._on_select_face(face.id)
                return

    def _on_wheel(self, evt) -> None:
        self._on_zoom(1.12 if evt.delta > 0 else 0.88)
