"""Виджет просмотра: исходник, результат кодирования или оба рядом.

Принципы:
- SRP: отвечает только за представление и интеракции с изображением.
- Чистый код: чёткое разделение публичного API и внутренних обработчиков событий.
"""
from __future__ import annotations

from typing import Callable, Optional, Tuple

import customtkinter as ctk
import tkinter as tk
from PIL import Image, ImageTk

VIEW_MODES = ("Оригинал", "Результат", "2-up")
_GAP = 16


class ImageViewer(ctk.CTkFrame):
    """Канва с режимами «оригинал», «результат» и side-by-side."""
    def __init__(self, master: ctk.CTk | tk.Misc, **kwargs) -> None:
        super().__init__(master, **kwargs)
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        self._canvas = tk.Canvas(self, highlightthickness=0, bg=self._get_canvas_bg())
        self._canvas.grid(row=0, column=0, sticky="nsew")

        self._before: Optional[Image.Image] = None
        self._after: Optional[Image.Image] = None
        self._tk_images: list[ImageTk.PhotoImage] = []

        self._mode: str = "2-up"
        self._scale_factor: float = 1.0
        self._image_top_left: Optional[Tuple[int, int]] = None
        self._pan_start: Optional[Tuple[int, int, int, int]] = None

        self.on_zoom_change: Optional[Callable[[int], None]] = None

        self._canvas.bind("<Configure>", lambda _e: self._render())
        self._canvas.bind("<MouseWheel>", self._on_mouse_wheel)      # Windows/macOS
        self._canvas.bind("<Button-4>", self._on_mouse_wheel_linux)  # Linux scroll up
        self._canvas.bind("<Button-5>", self._on_mouse_wheel_linux)  # Linux scroll down
        self._canvas.bind("<ButtonPress-1>", self._on_pan_start)
        self._canvas.bind("<B1-Motion>", self._on_pan_move)
        self._canvas.bind("<ButtonRelease-1>", self._on_pan_end)

    # ---- Public API ----
    def set_images(self, before: Optional[Image.Image], after: Optional[Image.Image]) -> None:
        """Устанавливает пару изображений и масштабирует их по размеру окна."""
        self._before = before
        self._after = after
        self.set_zoom_to_fit()

    def clear(self) -> None:
        self.set_images(None, None)

    def set_mode(self, mode: str) -> None:
        """Режим: 'Оригинал' | 'Результат' | '2-up'."""
        self._mode = mode if mode in VIEW_MODES else "2-up"
        self.set_zoom_to_fit()

    def set_zoom_to_fit(self) -> None:
        self._scale_factor = self._fit_scale()
        self._image_top_left = None
        self._render()

    def set_zoom_percent(self, zoom_percent: int) -> None:
        self._scale_factor = max(0.1, min(4.0, zoom_percent / 100.0))
        self._render()

    def get_zoom_percent(self) -> int:
        return int(round(self._scale_factor * 100))

    # ---- Internals ----
    def _logical_size(self) -> Optional[Tuple[int, int]]:
        # both panes share the result's geometry; the preview is stretched to it
        ref = self._after if self._after is not None else self._before
        return ref.size if ref is not None else None

    def _panes(self) -> list[Image.Image]:
        if self._mode == "Оригинал":
            return [img for img in (self._before,) if img is not None]
        if self._mode == "Результат":
            shown = self._after if self._after is not None else self._before
            return [shown] if shown is not None else []
        return [img for img in (self._before, self._after) if img is not None]

    def _fit_scale(self) -> float:
        size = self._logical_size()
        panes = len(self._panes())
        if size is None or panes == 0:
            return 1.0
        canvas_w = max(1, int(self._canvas.winfo_width()))
        canvas_h = max(1, int(self._canvas.winfo_height()))
        content_w = size[0] * panes + _GAP * (panes - 1)
        return max(0.1, min(4.0, canvas_w / content_w, canvas_h / size[1]))

    def _render(self) -> None:
        self._canvas.delete("all")
        self._tk_images = []
        size = self._logical_size()
        panes = self._panes()
        if size is None or not panes:
            return

        canvas_w = int(self._canvas.winfo_width())
        canvas_h = int(self._canvas.winfo_height())
        scaled_w = max(1, int(size[0] * self._scale_factor))
        scaled_h = max(1, int(size[1] * self._scale_factor))
        content_w = scaled_w * len(panes) + _GAP * (len(panes) - 1)

        if self._image_top_left is None:
            x = (canvas_w - content_w) // 2 if content_w <= canvas_w else 0
            y = (canvas_h - scaled_h) // 2 if scaled_h <= canvas_h else 0
            self._image_top_left = (x, y)
        ox, oy = self._image_top_left

        for i, img in enumerate(panes):
            tk_img = ImageTk.PhotoImage(img.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS))
            self._tk_images.append(tk_img)
            self._canvas.create_image(ox + i * (scaled_w + _GAP), oy, image=tk_img, anchor="nw")

    def _get_canvas_bg(self) -> str:
        return "#1f1f1f" if ctk.get_appearance_mode().lower() == "dark" else "#f2f2f2"

    # ---- Mouse wheel zoom ----
    def _on_mouse_wheel(self, event: tk.Event) -> None:
        if event.delta:
            self._zoom_by(1.1 if event.delta > 0 else 1.0 / 1.1)

    def _on_mouse_wheel_linux(self, event: tk.Event) -> None:
        self._zoom_by(1.1 if getattr(event, "num", None) == 4 else 1.0 / 1.1)

    def _zoom_by(self, factor: float) -> None:
        if self._logical_size() is None:
            return
        new_scale = max(0.1, min(4.0, self._scale_factor * factor))
        if abs(new_scale - self._scale_factor) < 1e-6:
            return
        self._scale_factor = new_scale
        self._image_top_left = None  # recenter
        self._render()
        if self.on_zoom_change:
            self.on_zoom_change(self.get_zoom_percent())

    # ---- Panning ----
    def _on_pan_start(self, event: tk.Event) -> None:
        if self._image_top_left is None:
            return
        ox, oy = self._image_top_left
        self._pan_start = (event.x, event.y, ox, oy)

    def _on_pan_move(self, event: tk.Event) -> None:
        if self._pan_start is None:
            return
        sx, sy, ox, oy = self._pan_start
        self._image_top_left = (ox + event.x - sx, oy + event.y - sy)
        self._render()

    def _on_pan_end(self, _event: tk.Event) -> None:
        self._pan_start = None
