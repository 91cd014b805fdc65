"""Контроллер приложения: оркестрация UI и сервисов.

SOLID:
- SRP: класс управляет связями между UI и сервисами (без логики кодирования).
- DIP: зависит от сервисов как от ролей; конкретные реализации инкапсулированы.
Clean Code:
- Обработчики компактны; тяжёлая логика вынесена в сервисы.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from tkinter import filedialog, TclError
from typing import Optional

import customtkinter as ctk
from loguru import logger
from PIL import Image

from photo_optimizer.errors import ImageOptimizerError
from photo_optimizer.models.image_model import QueueItem
from photo_optimizer.services.export_service import format_bytes
from photo_optimizer.services.queue_service import QueueService
from photo_optimizer.ui.bottom_bar import BottomBar
from photo_optimizer.ui.image_viewer import ImageViewer
from photo_optimizer.ui.sidebar import Sidebar


@dataclass
class AppController:
    """Связывает элементы UI с прикладной логикой.

    Ответственности:
    - Инициализация и бинд событий (UI -> контроллер).
    - Управление очередью через `QueueService` (добавление, порядок, обработка, экспорт).
    - Показ выбранного элемента: исходник и результат в `ImageViewer`.
    """
    viewer: ImageViewer
    sidebar: Sidebar
    bottom: BottomBar
    window: ctk.CTk
    queue: QueueService = field(default_factory=QueueService)

    _selected_id: Optional[str] = None

    def bind_events(self) -> None:
        """Регистрирует обработчики событий между UI-компонентами."""
        self.sidebar.on_add_files = self._handle_add_files
        self.sidebar.on_optimize_all = self._handle_optimize_all
        self.sidebar.on_export = self._handle_export
        self.sidebar.on_clear = self._handle_clear
        self.sidebar.on_select = self._handle_select
        self.sidebar.on_move_up = self._handle_move_up
        self.sidebar.on_remove = self._handle_remove
        self.sidebar.on_caption_change = self._handle_caption_change

        self.viewer.on_zoom_change = self.bottom.set_zoom_percent
        self.bottom.on_view_mode_change = self._handle_view_mode_change
        self.bottom.on_zoom_change = self.viewer.set_zoom_percent
        self.bottom.on_zoom_fit = self._handle_zoom_fit

    # ---- Handlers ----
    def _handle_add_files(self) -> None:
        try:
            paths = filedialog.askopenfilenames(
                title="Выберите изображения",
                filetypes=(
                    ("Images", "*.png *.jpg *.jpeg *.bmp *.gif *.tiff *.webp"),
                    ("All files", "*.*"),
                ),
            )
        except TclError:
            # Silent fail if dialog cannot open
            return
        if not paths:
            return
        added = self.queue.add_files(paths)
        self.sidebar.set_items(self.queue.items)
        self.bottom.set_status(f"Добавлено файлов: {len(added)}")

    def _handle_optimize_all(self) -> None:
        try:
            max_dim, target_bytes = self.bottom.get_encoder_params()
            self.queue.encoder.settings = self.queue.encoder.settings.with_overrides(
                max_dimension=max_dim, target_max_bytes=target_bytes
            )
        except ValueError as exc:
            self.bottom.set_status(f"Некорректные параметры: {exc}", error=True)
            return

        pending = [it for it in self.queue.items if it.status in ("ready", "error")]
        if not pending:
            self.bottom.set_status("Нет файлов для обработки")
            return
        self.sidebar.set_busy(True)
        self.bottom.set_status(f"Оптимизация {len(pending)} файл(ов)…")
        try:
            processed = self.queue.process_all(on_update=self._on_item_update)
        finally:
            self.sidebar.set_busy(False)
        failed = sum(1 for it in processed if it.status == "error")
        if failed:
            self.bottom.set_status(f"Готово, ошибок: {failed}", error=True)
        else:
            self.bottom.set_status("Готово ✅")
        if self._selected_id is None and processed:
            self._handle_select(processed[0].id)

    def _handle_export(self) -> None:
        if not any(it.status == "done" for it in self.queue.items):
            self.bottom.set_status("Нечего сохранять: сначала оптимизируйте файлы")
            return
        try:
            out_dir = filedialog.askdirectory(title="Папка для сохранения")
        except TclError:
            return
        if not out_dir:
            return
        self.sidebar.set_busy(True)
        try:
            written = self.queue.export_all(out_dir, on_update=self._on_item_update)
        finally:
            self.sidebar.set_busy(False)
        total = sum(p.stat().st_size for p in written)
        self.bottom.set_status(f"Сохранено {len(written)} файл(ов), {format_bytes(total)} → {out_dir}")

    def _handle_clear(self) -> None:
        # viewer drops its references before the queue closes the previews
        self.viewer.clear()
        self.queue.clear()
        self._selected_id = None
        self.sidebar.set_items([])
        self.sidebar.set_item_info(None)
        self.bottom.set_status("")

    def _handle_select(self, item_id: str) -> None:
        item = self.queue.get(item_id)
        if item is None:
            return
        self._selected_id = item_id
        self.sidebar.set_item_info(item)
        before = item.source.pil_image if item.source is not None else None
        after = None
        if item.result is not None:
            try:
                after = self._decode_result(item)
            except ImageOptimizerError as exc:
                self.bottom.set_status(str(exc), error=True)
        self.viewer.set_images(before, after)
        self.bottom.set_zoom_percent(self.viewer.get_zoom_percent())

    def _handle_move_up(self, item_id: str) -> None:
        ids = [it.id for it in self.queue.items]
        if item_id not in ids:
            return
        index = ids.index(item_id)
        if index == 0:
            return
        self.queue.move(item_id, ids[index - 1])
        self.sidebar.set_items(self.queue.items)

    def _handle_remove(self, item_id: str) -> None:
        if self._selected_id == item_id:
            self._selected_id = None
            self.sidebar.set_item_info(None)
            self.viewer.clear()
        if not self.queue.remove(item_id):
            return
        self.sidebar.set_items(self.queue.items)

    def _handle_caption_change(self, item_id: str, caption: str) -> None:
        self.queue.set_caption(item_id, caption)

    def _handle_view_mode_change(self, mode: str) -> None:
        self.viewer.set_mode(mode)
        self.bottom.set_zoom_percent(self.viewer.get_zoom_percent())

    def _handle_zoom_fit(self) -> None:
        self.viewer.set_zoom_to_fit()
        self.bottom.set_zoom_percent(self.viewer.get_zoom_percent())

    # ---- Helpers ----
    def _on_item_update(self, item: QueueItem) -> None:
        self.sidebar.update_item(item)
        if item.id == self._selected_id:
            self.sidebar.set_item_info(item)
        # keep the window responsive between sequential encodes
        self.window.update_idletasks()

    def _decode_result(self, item: QueueItem) -> Image.Image:
        try:
            with Image.open(BytesIO(item.result.data)) as img:
                return img.convert("RGBA")
        except OSError as exc:
            logger.error(f"[AppController] Не удалось показать результат {item.name}: {exc}")
            raise ImageOptimizerError(f"Не удалось показать результат: {item.name}") from exc
