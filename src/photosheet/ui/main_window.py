from __future__ import annotations

import logging
import os
import threading
import traceback
import tkinter as tk
from dataclasses import replace
from tkinter import filedialog, messagebox, ttk

from photosheet.app.image_io import load_image_rgb
from photosheet.app.state import AppState
from photosheet.core.models import Mode, Orientation
from photosheet.core.settings import MAX_COLUMNS, MAX_ROWS, load_settings, save_settings
from photosheet.detection.faces import detect_faces
from photosheet.logging_config import setup_logging
from photosheet.render.compositor import (
    default_export_name,
    render_sheet_image,
    render_tile_preview,
    save_sheet_jpeg,
)
from photosheet.ui.image_canvas import CropCanvas, ImageCanvas
from photosheet.validation.german_id import GERMAN_ID_CHECKLIST, format_warnings_text

logger = logging.getLogger(__name__)

TILE_PREVIEW_WIDTH = 360
SHEET_PREVIEW_SCALE = 0.25
SHEET_REFRESH_DELAY_MS = 200


class PhotoSheetApp(ttk.Frame):
    """PhotoSheet GUI: upload, adjust crop, preview tile and sheet, save."""

    def __init__(self, master: tk.Tk, state: AppState):
        super().__init__(master)
        self.master = master
        self.state = state
        self._sheet_job: str | None = None

        self._build_style()
        self._build_layout()
        self._bind_shortcuts()

        self._sync_ui_from_settings()
        self._set_buttons_initial_state()
        self.set_status("Ready.")

    # ---------- UI construction ----------

    def _build_style(self) -> None:
        style = ttk.Style(self.master)
        if "clam" in style.theme_names():
            style.theme_use("clam")

    def _build_layout(self) -> None:
        self.pack(fill="both", expand=True)

        # Top toolbar
        toolbar = ttk.Frame(self, padding=(10, 8))
        toolbar.pack(side="top", fill="x")

        self.btn_upload = ttk.Button(toolbar, text="Upload", command=self.on_upload)
        self.btn_reset_crop = ttk.Button(toolbar, text="Reset crop", command=self.on_reset_crop)
        self.btn_save = ttk.Button(toolbar, text="Save sheet", command=self.on_save)
        self.btn_copy_report = ttk.Button(toolbar, text="Copy ID report", command=self.on_copy_report)
        self.btn_reset = ttk.Button(toolbar, text="Reset", command=self.on_reset)

        self.btn_upload.pack(side="left")
        ttk.Separator(toolbar, orient="vertical").pack(side="left", fill="y", padx=8)
        self.btn_reset_crop.pack(side="left")
        self.btn_save.pack(side="left", padx=(6, 0))
        self.btn_copy_report.pack(side="left", padx=(6, 0))
        self.btn_reset.pack(side="left", padx=(12, 0))

        self.progress = ttk.Progressbar(toolbar, mode="indeterminate", length=120)
        self.progress.pack(side="right")

        # Main split area
        main = ttk.PanedWindow(self, orient="horizontal")
        main.pack(side="top", fill="both", expand=True, padx=10, pady=(0, 10))

        # Left pane: source + crop
        left = ttk.Frame(main)
        main.add(left, weight=1)

        lf_orig = ttk.LabelFrame(left, text="Photo (drag to move, wheel to zoom, click a face to select)", padding=8)
        lf_orig.pack(fill="both", expand=True)

        self.crop_canvas = CropCanvas(
            lf_orig,
            on_select_face=self.on_select_face,
            on_move=self.on_move_crop,
            on_zoom=self.on_zoom_crop,
        )
        self.crop_canvas.pack(fill="both", expand=True)

        self.original_meta = ttk.Label(lf_orig, text="No file loaded.")
        self.original_meta.pack(side="bottom", anchor="w", pady=(6, 0))

        # Right pane: Notebook
        right = ttk.Frame(main)
        main.add(right, weight=1)

        nb = ttk.Notebook(right)
        nb.pack(fill="both", expand=True)

        # Tile tab
        tab_tile = ttk.Frame(nb, padding=8)
        nb.add(tab_tile, text="Tile")
        tab_tile.columnconfigure(0, weight=1)
        tab_tile.rowconfigure(0, weight=1)

        self.tile_canvas = ImageCanvas(tab_tile, placeholder="Preview appears after upload.")
        self.tile_canvas.grid(row=0, column=0, sticky="nsew")

        self.warnings_list = tk.Listbox(tab_tile, height=6)
        self.warnings_list.grid(row=1, column=0, sticky="ew", pady=(8, 0))

        # Sheet tab
        tab_sheet = ttk.Frame(nb, padding=8)
        nb.add(tab_sheet, text="Sheet")
        self.sheet_canvas = ImageCanvas(tab_sheet, bg="#d1d5db", placeholder="Preview appears after upload.")
        self.sheet_canvas.pack(fill="both", expand=True)
        self.sheet_meta = ttk.Label(tab_sheet, text="")
        self.sheet_meta.pack(side="bottom", anchor="w", pady=(6, 0))

        # Settings tab
        tab_settings = ttk.Frame(nb, padding=8)
        nb.add(tab_settings, text="Settings")
        self._build_settings(tab_settings)

        # Status bar
        status = ttk.Frame(self, padding=(10, 6))
        status.pack(side="bottom", fill="x")

        self.status_var = tk.StringVar(value="Ready.")
        self.status_label = ttk.Label(status, textvariable=self.status_var)
        self.status_label.pack(side="left")

    def _build_settings(self, settings: ttk.Frame) -> None:
        s = self.state.settings
        settings.columnconfigure(1, weight=1)

        ttk.Label(settings, text="Mode:").grid(row=0, column=0, sticky="w", pady=3)
        self.var_mode = tk.StringVar(value=Mode(s.mode).value)
        mode_row = ttk.Frame(settings)
        mode_row.grid(row=0, column=1, sticky="w", pady=3)
        ttk.Radiobutton(mode_row, text="Friend book", value=Mode.FRIEND.value,
                        variable=self.var_mode, command=self.on_mode_change).pack(side="left")
        ttk.Radiobutton(mode_row, text="German ID (35x45)", value=Mode.GERMAN_ID.value,
                        variable=self.var_mode, command=self.on_mode_change).pack(side="left", padx=(8, 0))

        ttk.Label(settings, text="Rows:").grid(row=1, column=0, sticky="w", pady=3)
        self.var_rows = tk.IntVar(value=s.rows)
        ttk.Spinbox(settings, from_=1, to=MAX_ROWS, textvariable=self.var_rows, width=6,
                    command=self.on_settings_change).grid(row=1, column=1, sticky="w", pady=3)

        ttk.Label(settings, text="Columns:").grid(row=2, column=0, sticky="w", pady=3)
        self.var_columns = tk.IntVar(value=s.columns)
        ttk.Spinbox(settings, from_=1, to=MAX_COLUMNS, textvariable=self.var_columns, width=6,
                    command=self.on_settings_change).grid(row=2, column=1, sticky="w", pady=3)

        ttk.Label(settings, text="Orientation:").grid(row=3, column=0, sticky="w", pady=3)
        self.var_orientation = tk.StringVar(value=Orientation(s.orientation).value)
        self.combo_orientation = ttk.Combobox(
            settings, textvariable=self.var_orientation, state="readonly", width=12,
            values=[o.value for o in Orientation],
        )
        self.combo_orientation.grid(row=3, column=1, sticky="w", pady=3)
        self.combo_orientation.bind("<<ComboboxSelected>>", lambda e: self.on_settings_change())

        self.var_rotate = tk.BooleanVar(value=s.rotate_paper)
        ttk.Checkbutton(settings, text="Rotate paper (landscape sheet)", variable=self.var_rotate,
                        command=self.on_settings_change).grid(row=4, column=0, columnspan=2, sticky="w", pady=3)

        self.var_margin_on = tk.BooleanVar(value=s.safe_margin_enabled)
        ttk.Checkbutton(settings, text="Safe margin (mm):", variable=self.var_margin_on,
                        command=self.on_settings_change).grid(row=5, column=0, sticky="w", pady=3)
        self.var_margin = tk.DoubleVar(value=s.safe_margin_mm)
        ttk.Spinbox(settings, from_=0, to=20, increment=0.5, textvariable=self.var_margin, width=6,
                    command=self.on_settings_change).grid(row=5, column=1, sticky="w", pady=3)

        ttk.Label(settings, text="Spacing (mm):").grid(row=6, column=0, sticky="w", pady=3)
        self.var_spacing = tk.DoubleVar(value=s.spacing_mm)
        ttk.Spinbox(settings, from_=0, to=10, increment=0.5, textvariable=self.var_spacing, width=6,
                    command=self.on_settings_change).grid(row=6, column=1, sticky="w", pady=3)

        self.var_guides = tk.BooleanVar(value=s.cut_guides)
        ttk.Checkbutton(settings, text="Cut guides", variable=self.var_guides,
                        command=self.on_settings_change).grid(row=7, column=0, columnspan=2, sticky="w", pady=3)

        self.var_overlay = tk.BooleanVar(value=s.show_id_overlay)
        ttk.Checkbutton(settings, text="Show ID overlay", variable=self.var_overlay,
                        command=self.on_settings_change).grid(row=8, column=0, columnspan=2, sticky="w", pady=3)

        ttk.Label(settings, text="JPEG quality:").grid(row=9, column=0, sticky="w", pady=3)
        self.var_quality = tk.DoubleVar(value=s.quality)
        ttk.Spinbox(settings, from_=0.6, to=1.0, increment=0.05, textvariable=self.var_quality, width=6,
                    command=self.on_settings_change).grid(row=9, column=1, sticky="w", pady=3)

        self.btn_apply = ttk.Button(settings, text="Apply", command=self.on_settings_change)
        self.btn_apply.grid(row=10, column=0, sticky="w", pady=(8, 0))

    def _bind_shortcuts(self) -> None:
        self.master.bind_all("<Control-o>", lambda e: self.on_upload())
        self.master.bind_all("<Command-o>", lambda e: self.on_upload())

        self.master.bind_all("<Control-s>", lambda e: self.on_save())
        self.master.bind_all("<Command-s>", lambda e: self.on_save())

    # ---------- Utilities ----------

    def set_status(self, text: str) -> None:
        self.status_var.set(text)

    def set_busy(self, busy: bool, message: str | None = None) -> None:
        if message:
            self.set_status(message)
        if busy:
            self.progress.start(12)
        else:
            self.progress.stop()

    def _set_buttons_initial_state(self) -> None:
        self.btn_reset_crop.state(["disabled"])
        self.btn_save.state(["disabled"])
        self.btn_copy_report.state(["disabled"])

    def _sync_buttons(self) -> None:
        if self.state.crop_rect is not None:
            self.btn_reset_crop.state(["!disabled"])
            self.btn_save.state(["!disabled"])
        else:
            self.btn_reset_crop.state(["disabled"])
            self.btn_save.state(["disabled"])

        if self.state.id_warnings() is not None:
            self.btn_copy_report.state(["!disabled"])
        else:
            self.btn_copy_report.state(["disabled"])

    def _settings_from_ui(self):
        # AppSettings is frozen -> replace() to update
        s = self.state.settings
        try:
            s = replace(s, rows=int(self.var_rows.get()), columns=int(self.var_columns.get()))
        except (tk.TclError, ValueError):
            pass
        try:
            s = replace(s, safe_margin_mm=float(self.var_margin.get()), spacing_mm=float(self.var_spacing.get()))
        except (tk.TclError, ValueError):
            pass
        try:
            s = replace(s, quality=float(self.var_quality.get()))
        except (tk.TclError, ValueError):
            pass
        return replace(
            s,
            orientation=Orientation(self.var_orientation.get()),
            rotate_paper=bool(self.var_rotate.get()),
            safe_margin_enabled=bool(self.var_margin_on.get()),
            cut_guides=bool(self.var_guides.get()),
            show_id_overlay=bool(self.var_overlay.get()),
        ).clamped()

    def _sync_ui_from_settings(self) -> None:
        s = self.state.settings
        self.var_mode.set(Mode(s.mode).value)
        self.var_rows.set(s.rows)
        self.var_columns.set(s.columns)
        self.var_orientation.set(Orientation(s.orientation).value)
        self.var_rotate.set(s.rotate_paper)
        self.var_margin_on.set(s.safe_margin_enabled)
        self.var_margin.set(s.safe_margin_mm)
        self.var_spacing.set(s.spacing_mm)
        self.var_guides.set(s.cut_guides)
        self.var_overlay.set(s.show_id_overlay)
        self.var_quality.set(s.quality)
        german = Mode(s.mode) is Mode.GERMAN_ID
        self.combo_orientation.state(["disabled"] if german else ["!disabled"])

    def _persist_settings(self) -> None:
        try:
            save_settings(self.state.settings)
        except OSError as e:
            logger.warning("Could not save settings: %s", e)

    def _refresh(self) -> None:
        """Redraw everything derived from the session: overlays, tile, warnings, sheet."""
        st = self.state
        pil = st.original_pil
        self.crop_canvas.set_overlays(st.faces, st.selected_face_id, st.crop_rect)

        self.warnings_list.delete(0, "end")
        if pil is None or st.crop_rect is None:
            self.tile_canvas.clear()
            self.sheet_canvas.clear()
            self.sheet_meta.configure(text="")
            self._sync_buttons()
            return

        s = st.settings
        self.tile_canvas.set_image(
            render_tile_preview(pil, st.crop_rect, TILE_PREVIEW_WIDTH, s.mode, s.show_id_overlay)
        )

        warnings = st.id_warnings()
        if warnings is not None:
            for w in warnings.warnings:
                self.warnings_list.insert("end", f"⚠ {w}")
            for item in GERMAN_ID_CHECKLIST:
                self.warnings_list.insert("end", f"• {item}")

        self._sync_buttons()

        # Full-resolution sheet is expensive; coalesce bursts of drag/zoom events
        if self._sheet_job is not None:
            self.after_cancel(self._sheet_job)
        self._sheet_job = self.after(SHEET_REFRESH_DELAY_MS, self._refresh_sheet)

    def _refresh_sheet(self) -> None:
        self._sheet_job = None
        st = self.state
        if st.original_pil is None or st.crop_rect is None:
            return
        layout = st.layout()
        metrics = st.sheet_metrics
        sheet = render_sheet_image(st.original_pil, st.crop_rect, layout, metrics, st.settings.cut_guides)
        preview_size = (
            max(1, int(metrics.width_px * SHEET_PREVIEW_SCALE)),
            max(1, int(metrics.height_px * SHEET_PREVIEW_SCALE)),
        )
        self.sheet_canvas.set_image(sheet.resize(preview_size))
        self.sheet_meta.configure(
            text=f"{metrics.width_px}x{metrics.height_px}px   "
                 f"Tile {layout.tile_width:.0f}x{layout.tile_height:.0f}px   "
                 f"{len(layout.tile_rects)} tiles"
        )

    # ---------- Upload + detection ----------

    def on_upload(self) -> None:
        path = filedialog.askopenfilename(
            title="Select a photo",
            filetypes=[
                ("Image files", "*.jpg *.jpeg *.png *.bmp *.tif *.tiff *.webp"),
                ("All files", "*.*"),
            ],
        )
        if not path:
            return

        try:
            pil = load_image_rgb(path)
        except Exception as e:
            messagebox.showerror("Upload failed", f"Could not open image.\n\n{e}")
            self.set_status("Upload failed.")
            return

        self.state.set_image(path, pil)
        self.crop_canvas.set_image(pil)
        self.original_meta.configure(text=f"File: {os.path.basename(path)}   Size: {pil.width}x{pil.height}")
        self._refresh()

        self.btn_upload.state(["disabled"])
        self.set_busy(True, "Detecting faces…")

        def worker() -> None:
            faces = None
            err: Exception | None = None
            try:
                faces = detect_faces(pil)
            except Exception as e:
                err = e
                logger.debug("Detection traceback:\n%s", traceback.format_exc())

            def finish_on_ui_thread() -> None:
                self.set_busy(False)
                self.btn_upload.state(["!disabled"])
                # A newer upload replaced this image; drop the stale result
                if self.state.original_pil is not pil:
                    return
                if err is not None:
                    self.state.detection_failed()
                else:
                    self.state.set_faces(faces or [])
                self._refresh()
                self.set_status(self.state.status_message or f"Found {len(self.state.faces)} face(s).")

            self.master.after(0, finish_on_ui_thread)

        threading.Thread(target=worker, daemon=True).start()

    # ---------- Crop editing ----------

    def on_select_face(self, face_id: str) -> None:
        self.state.select_face(face_id)
        self._refresh()
        self.set_status(f"Selected {face_id}.")

    def on_move_crop(self, dx: float, dy: float) -> None:
        self.state.move_crop(dx, dy)
        self._refresh()

    def on_zoom_crop(self, factor: float) -> None:
        self.state.zoom_crop(factor)
        self._refresh()

    def on_reset_crop(self) -> None:
        self.state.reset_crop()
        self._refresh()
        self.set_status("Crop reset to auto crop.")

    # ---------- Settings ----------

    def on_mode_change(self) -> None:
        settings = self._settings_from_ui().with_mode(Mode(self.var_mode.get()))
        self.state.apply_settings(settings)
        self._sync_ui_from_settings()
        self._persist_settings()
        self._refresh()

    def on_settings_change(self) -> None:
        self.state.apply_settings(self._settings_from_ui())
        self._sync_ui_from_settings()
        self._persist_settings()
        self._refresh()

    # ---------- Report + export ----------

    def on_copy_report(self) -> None:
        warnings = self.state.id_warnings()
        if warnings is None:
            messagebox.showinfo("No report", "ID checks run in German ID mode after upload.")
            return

        text = format_warnings_text(warnings)
        self.master.clipboard_clear()
        self.master.clipboard_append(text)
        self.set_status("Copied ID report.")

    def on_save(self) -> None:
        st = self.state
        if st.original_pil is None or st.crop_rect is None:
            messagebox.showwarning("Not ready", "Upload a photo first.")
            return

        path = filedialog.asksaveasfilename(
            title="Save sheet",
            defaultextension=".jpg",
            initialfile=default_export_name(st.settings),
            filetypes=[("JPEG", "*.jpg *.jpeg")],
        )
        if not path:
            return

        try:
            sheet = render_sheet_image(st.original_pil, st.crop_rect, st.layout(), st.sheet_metrics,
                                       st.settings.cut_guides)
            save_sheet_jpeg(sheet, path, st.settings.quality)
        except Exception as e:
            messagebox.showerror("Save failed", f"{e}\n\n{traceback.format_exc()}".strip())
            self.set_status("Save failed.")
            return

        self.set_status(f"Saved {os.path.basename(path)}.")

    def on_reset(self) -> None:
        self.state.reset()
        self.crop_canvas.clear()
        self.original_meta.configure(text="No file loaded.")
        self._refresh()
        self._set_buttons_initial_state()
        self.set_status("Reset complete.")


def run() -> None:
    setup_logging()

    root = tk.Tk()
    root.title("PhotoSheet")
    root.geometry("1200x760")
    root.minsize(900, 600)

    state = AppState(settings=load_settings())
    PhotoSheetApp(root, state)

    root.mainloop()
