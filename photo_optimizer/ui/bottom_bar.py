from __future__ import annotations

from typing import Callable, Optional, Tuple

import customtkinter as ctk

from photo_optimizer.config import EncoderSettings
from photo_optimizer.ui.image_viewer import VIEW_MODES


class BottomBar(ctk.CTkFrame):
    def __init__(self, master: ctk.CTk, settings: EncoderSettings, **kwargs) -> None:
        super().__init__(master, height=64, **kwargs)

        # callbacks
        self.on_view_mode_change: Optional[Callable[[str], None]] = None
        self.on_zoom_change: Optional[Callable[[int], None]] = None
        self.on_zoom_fit: Optional[Callable[[], None]] = None

        # layout
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(2, weight=1)  # slider stretches

        # View mode
        self._view_menu = ctk.CTkOptionMenu(self, values=list(VIEW_MODES), command=self._on_view_mode)
        self._view_menu.set("2-up")
        self._view_menu.grid(row=0, column=0, padx=(10, 6), pady=8, sticky="w")

        # Zoom controls
        self._fit_btn = ctk.CTkButton(self, text="Fit", width=48, command=self._on_fit)
        self._fit_btn.grid(row=0, column=1, padx=6, pady=8, sticky="w")
        self._zoom_value = ctk.StringVar(value="100%")
        self._zoom_slider = ctk.CTkSlider(self, from_=10, to=400, number_of_steps=390, command=self._on_slider_change)
        self._zoom_slider.set(100)
        self._zoom_slider.grid(row=0, column=2, padx=6, pady=8, sticky="ew")
        self._zoom_value_label = ctk.CTkLabel(self, textvariable=self._zoom_value, width=48, anchor="w")
        self._zoom_value_label.grid(row=0, column=3, padx=(6, 12), pady=8, sticky="w")

        # Encoder settings
        ctk.CTkLabel(self, text="Макс. сторона, px").grid(row=0, column=4, padx=(6, 4), pady=8, sticky="e")
        self._max_dim_val = ctk.StringVar(value=str(settings.max_dimension))
        ctk.CTkEntry(self, textvariable=self._max_dim_val, width=64).grid(row=0, column=5, padx=(0, 8), pady=8)
        ctk.CTkLabel(self, text="Бюджет, КБ").grid(row=0, column=6, padx=(6, 4), pady=8, sticky="e")
        self._target_kb_val = ctk.StringVar(value=str(settings.target_max_bytes // 1000))
        ctk.CTkEntry(self, textvariable=self._target_kb_val, width=64).grid(row=0, column=7, padx=(0, 8), pady=8)

        # Status line
        self._status_val = ctk.StringVar(value="")
        self._status_label = ctk.CTkLabel(self, textvariable=self._status_val, anchor="w")
        self._status_label.grid(row=1, column=0, columnspan=8, padx=10, pady=(0, 6), sticky="ew")

    # public API (sync from controller)
    def get_encoder_params(self) -> Tuple[int, int]:
        """Возвращает (max_dimension, target_max_bytes); бросает ValueError на мусорном вводе."""
        max_dim = int(self._max_dim_val.get().strip())
        target_kb = int(self._target_kb_val.get().strip())
        return max_dim, target_kb * 1000

    def set_zoom_percent(self, percent: int) -> None:
        self._zoom_slider.set(percent)
        self._zoom_value.set(f"{percent}%")

    def set_status(self, text: str, error: bool = False) -> None:
        self._status_val.set(text)
        self._status_label.configure(text_color="#d03b3b" if error else ("gray10", "gray90"))

    # events
    def _on_view_mode(self, value: str) -> None:
        if self.on_view_mode_change:
            self.on_view_mode_change(value)

    def _on_fit(self) -> None:
        if self.on_zoom_fit:
            self.on_zoom_fit()

    def _on_slider_change(self, value: float) -> None:
        percent = int(round(value))
        self._zoom_value.set(f"{percent}%")
        if self.on_zoom_change:
            self.on_zoom_change(percent)
