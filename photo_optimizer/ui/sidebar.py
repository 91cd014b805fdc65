"""Боковая панель: очередь файлов, действия над ней и информация о выбранном элементе.

Принципы:
- SRP: управляет только UI очереди, не содержит алгоритмов.
- ISP: события наружу через `on_*`, состояние внутрь через `set_*`.
"""
from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence

import customtkinter as ctk

from photo_optimizer.models.image_model import ItemStatus, QueueItem
from photo_optimizer.services.export_service import format_bytes

_STATUS_LABELS: Dict[ItemStatus, str] = {
    "ready": "Готово к обработке",
    "optimizing": "Оптимизация…",
    "saving": "Сохранение…",
    "done": "Готово",
    "error": "Ошибка",
}


def label_for_status(item: QueueItem) -> str:
    """Подпись статуса для строки очереди."""
    if item.status == "error":
        return f"Ошибка: {item.error}"
    if item.status == "done" and item.exported_path is not None:
        return "Сохранено"
    return _STATUS_LABELS.get(item.status, "")


class _QueueRow(ctk.CTkFrame):
    """Строка очереди: имя, статус, прогресс, кнопки «вверх» и «убрать»."""
    def __init__(self, master, item: QueueItem, on_select, on_move_up, on_remove) -> None:
        super().__init__(master)
        self.grid_columnconfigure(0, weight=1)

        self._name = ctk.CTkButton(
            self, text=item.name, anchor="w", fg_color="transparent",
            text_color=("gray10", "gray90"), command=lambda: on_select(item.id),
        )
        self._name.grid(row=0, column=0, padx=4, pady=(4, 0), sticky="ew")
        ctk.CTkButton(self, text="↑", width=28, command=lambda: on_move_up(item.id)).grid(
            row=0, column=1, padx=(2, 2), pady=(4, 0)
        )
        ctk.CTkButton(self, text="✕", width=28, command=lambda: on_remove(item.id)).grid(
            row=0, column=2, padx=(2, 4), pady=(4, 0)
        )

        self._progress = ctk.CTkProgressBar(self, height=6)
        self._progress.grid(row=1, column=0, columnspan=3, padx=6, pady=(4, 2), sticky="ew")
        self._status_val = ctk.StringVar()
        self._status = ctk.CTkLabel(self, textvariable=self._status_val, anchor="w", wraplength=230, justify="left")
        self._status.grid(row=2, column=0, columnspan=3, padx=6, pady=(0, 4), sticky="ew")
        self.update_item(item)

    def update_item(self, item: QueueItem) -> None:
        self._progress.set(item.progress / 100.0)
        self._status_val.set(label_for_status(item))
        self._status.configure(text_color="#d03b3b" if item.status == "error" else ("gray30", "gray70"))


class Sidebar(ctk.CTkFrame):
    """Панель с блоками: файлы, очередь, информация."""
    def __init__(self, master: ctk.CTk, **kwargs) -> None:
        super().__init__(master, width=300, **kwargs)

        self.grid_columnconfigure(0, weight=1)

        # Callbacks
        self.on_add_files: Optional[Callable[[], None]] = None
        self.on_optimize_all: Optional[Callable[[], None]] = None
        self.on_clear: Optional[Callable[[], None]] = None
        self.on_export: Optional[Callable[[], None]] = None
        self.on_select: Optional[Callable[[str], None]] = None
        self.on_move_up: Optional[Callable[[str], None]] = None
        self.on_remove: Optional[Callable[[str], None]] = None
        self.on_caption_change: Optional[Callable[[str, str], None]] = None

        self._title = ctk.CTkLabel(self, text="Файлы", font=ctk.CTkFont(size=16, weight="bold"))
        self._title.grid(row=0, column=0, padx=8, pady=(8, 4), sticky="w")

        self._add_btn = ctk.CTkButton(self, text="Добавить изображения…", command=lambda: self._emit(self.on_add_files))
        self._add_btn.grid(row=1, column=0, padx=8, pady=(0, 4), sticky="ew")
        self._optimize_btn = ctk.CTkButton(self, text="Оптимизировать", command=lambda: self._emit(self.on_optimize_all))
        self._optimize_btn.grid(row=2, column=0, padx=8, pady=(0, 4), sticky="ew")
        self._export_btn = ctk.CTkButton(self, text="Сохранить в папку…", command=lambda: self._emit(self.on_export))
        self._export_btn.grid(row=3, column=0, padx=8, pady=(0, 4), sticky="ew")
        self._clear_btn = ctk.CTkButton(
            self, text="Очистить", fg_color="transparent", border_width=1, command=lambda: self._emit(self.on_clear)
        )
        self._clear_btn.grid(row=4, column=0, padx=8, pady=(0, 12), sticky="ew")

        # Queue section
        self._queue_title = ctk.CTkLabel(self, text="Очередь", font=ctk.CTkFont(size=16, weight="bold"))
        self._queue_title.grid(row=5, column=0, padx=8, pady=(8, 4), sticky="w")
        self._queue = ctk.CTkScrollableFrame(self, height=260)
        self._queue.grid(row=6, column=0, padx=8, pady=(0, 8), sticky="nsew")
        self._queue.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(6, weight=1)
        self._rows: Dict[str, _QueueRow] = {}

        # Info section
        self._info_title = ctk.CTkLabel(self, text="Информация", font=ctk.CTkFont(size=16, weight="bold"))
        self._info_title.grid(row=7, column=0, padx=8, pady=(8, 4), sticky="w")

        self._source_val = ctk.StringVar(value="—")
        self._result_val = ctk.StringVar(value="—")
        self._passes_val = ctk.StringVar(value="—")
        self._info_source = ctk.CTkLabel(self, textvariable=self._source_val, wraplength=280, anchor="w", justify="left")
        self._info_result = ctk.CTkLabel(self, textvariable=self._result_val, wraplength=280, anchor="w", justify="left")
        self._info_passes = ctk.CTkLabel(self, textvariable=self._passes_val, wraplength=280, anchor="w", justify="left")
        self._info_source.grid(row=8, column=0, padx=8, pady=(0, 2), sticky="ew")
        self._info_result.grid(row=9, column=0, padx=8, pady=(0, 2), sticky="ew")
        self._info_passes.grid(row=10, column=0, padx=8, pady=(0, 4), sticky="ew")

        self._caption_item_id: Optional[str] = None
        self._caption = ctk.CTkEntry(self, placeholder_text="Подпись (необязательно)", state="disabled")
        self._caption.grid(row=11, column=0, padx=8, pady=(0, 10), sticky="ew")
        self._caption.bind("<Return>", lambda _e: self._commit_caption())
        self._caption.bind("<FocusOut>", lambda _e: self._commit_caption())

    # public API (sync from controller)
    def set_items(self, items: Sequence[QueueItem]) -> None:
        """Перестраивает список очереди целиком (после добавления, удаления, перестановки)."""
        for row in self._rows.values():
            row.destroy()
        self._rows = {}
        for i, item in enumerate(items):
            row = _QueueRow(
                self._queue, item,
                on_select=lambda item_id: self._emit(self.on_select, item_id),
                on_move_up=lambda item_id: self._emit(self.on_move_up, item_id),
                on_remove=lambda item_id: self._emit(self.on_remove, item_id),
            )
            row.grid(row=i, column=0, padx=2, pady=2, sticky="ew")
            self._rows[item.id] = row

    def update_item(self, item: QueueItem) -> None:
        row = self._rows.get(item.id)
        if row is not None:
            row.update_item(item)

    def set_item_info(self, item: Optional[QueueItem]) -> None:
        self._show_caption(item)
        if item is None:
            self._source_val.set("—")
            self._result_val.set("—")
            self._passes_val.set("—")
            return
        src = item.source
        if src is not None:
            self._source_val.set(f"Исходник: {src.width}×{src.height}, {src.mode}, {format_bytes(src.size_bytes)}")
        else:
            self._source_val.set(f"Исходник: {item.path}")
        res = item.result
        if res is None:
            self._result_val.set(label_for_status(item))
            self._passes_val.set("—")
            return
        self._result_val.set(
            f"Результат: {res.width}×{res.height}, {res.format.upper()}, "
            f"{format_bytes(res.size_bytes)}, качество {res.quality:.2f}"
        )
        tried = ", ".join(f"{a.format} {a.quality:.2f}→{format_bytes(a.size_bytes)}" for a in res.attempts)
        self._passes_val.set(f"Проходы: {tried}")

    def set_busy(self, busy: bool) -> None:
        state = "disabled" if busy else "normal"
        for btn in (self._add_btn, self._optimize_btn, self._export_btn, self._clear_btn):
            btn.configure(state=state)

    # helpers
    def _show_caption(self, item: Optional[QueueItem]) -> None:
        if item is not None and item.id == self._caption_item_id:
            return  # keep what is being typed
        self._commit_caption()
        self._caption_item_id = item.id if item is not None else None
        self._caption.configure(state="normal")
        self._caption.delete(0, "end")
        if item is None:
            self._caption.configure(state="disabled")
        elif item.caption:
            self._caption.insert(0, item.caption)

    def _commit_caption(self) -> None:
        if self._caption_item_id is not None:
            self._emit(self.on_caption_change, self._caption_item_id, self._caption.get())

    @staticmethod
    def _emit(callback: Optional[Callable], *args) -> None:
        if callback:
            callback(*args)
