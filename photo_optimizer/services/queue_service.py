"""Очередь файлов на оптимизацию.

Принципы:
- Обработка строго по одному файлу: в памяти не держится больше одного полного растра.
- Ошибка одного файла не останавливает остальные; она сохраняется в элементе очереди.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from loguru import logger
from PIL import Image

from photo_optimizer.errors import ImageOptimizerError
from photo_optimizer.models.image_model import ImageData, ItemStatus, QueueItem
from photo_optimizer.services.encoder_service import EncoderService
from photo_optimizer.services.export_service import ExportService
from photo_optimizer.services.image_service import ImageService

PREVIEW_MAX_SIDE = 800

ItemCallback = Callable[[QueueItem], None]


class QueueService:
    def __init__(
        self,
        encoder: Optional[EncoderService] = None,
        image_service: Optional[ImageService] = None,
        export_service: Optional[ExportService] = None,
    ) -> None:
        self._image_service = image_service or ImageService()
        self.encoder = encoder or EncoderService(image_service=self._image_service)
        self._export_service = export_service or ExportService()
        self._items: List[QueueItem] = []

    @property
    def items(self) -> List[QueueItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[QueueItem]:
        return next((it for it in self._items if it.id == item_id), None)

    # ---- Состав очереди ----
    def add_files(self, paths: Iterable[str | Path]) -> List[QueueItem]:
        added = [QueueItem(id=uuid.uuid4().hex, path=Path(p)) for p in paths]
        self._items.extend(added)
        return added

    def remove(self, item_id: str) -> bool:
        index = next((i for i, it in enumerate(self._items) if it.id == item_id), None)
        if index is None:
            return False
        self._release(self._items.pop(index))
        return True

    def clear(self) -> None:
        for item in self._items:
            self._release(item)
        self._items.clear()

    def set_caption(self, item_id: str, caption: Optional[str]) -> bool:
        """Подпись к файлу; пустая строка или пробелы сбрасывают её в None."""
        item = self.get(item_id)
        if item is None:
            return False
        item.caption = (caption or "").strip() or None
        return True

    def move(self, from_id: str, to_id: str) -> bool:
        """Переносит элемент `from_id` на позицию `to_id` (как при перетаскивании)."""
        if from_id == to_id:
            return False
        ids = [it.id for it in self._items]
        if from_id not in ids or to_id not in ids:
            return False
        fi, ti = ids.index(from_id), ids.index(to_id)
        moved = self._items.pop(fi)
        self._items.insert(ti, moved)
        return True

    # ---- Обработка ----
    def process_all(self, on_update: Optional[ItemCallback] = None) -> List[QueueItem]:
        """Оптимизирует элементы в статусе ready/error по порядку, по одному."""
        todo = [it for it in self._items if it.status in ("ready", "error")]
        for item in todo:
            self.process_one(item, on_update)
        return todo

    def process_one(self, item: QueueItem, on_update: Optional[ItemCallback] = None) -> QueueItem:
        self._set(item, "optimizing", 10, on_update, error=None)
        try:
            source = self._image_service.load_image(item.path)
            try:
                result = self.encoder.encode_image(source.pil_image)
                item.source = self._preview(source)
            finally:
                source.pil_image.close()
        except (ImageOptimizerError, OSError) as exc:
            logger.error(f"[QueueService] {item.name}: {exc}")
            self._set(item, "error", 100, on_update, error=str(exc))
            return item

        item.result = result
        item.exported_path = None
        self._set(item, "done", 100, on_update)
        return item

    def export_all(self, out_dir: str | Path, on_update: Optional[ItemCallback] = None) -> List[Path]:
        """Сохраняет готовые результаты в `out_dir` в порядке очереди.

        Рядом пишется `manifest.json`: имя файла, подпись и порядок для каждого сохранённого элемента.
        """
        written: List[Path] = []
        manifest: List[dict] = []
        for index, item in enumerate(self._items):
            if item.status != "done" or item.result is None:
                continue
            self._set(item, "saving", 50, on_update)
            try:
                item.exported_path = self._export_service.export(item.result, out_dir, item.name, index)
            except OSError as exc:
                logger.error(f"[QueueService] Не удалось сохранить {item.name}: {exc}")
                self._set(item, "error", 100, on_update, error=str(exc))
                continue
            written.append(item.exported_path)
            manifest.append({"file": item.exported_path.name, "caption": item.caption, "sort_order": index})
            self._set(item, "done", 100, on_update)
        if manifest:
            try:
                self._export_service.write_manifest(manifest, out_dir)
            except OSError as exc:
                logger.error(f"[QueueService] Не удалось записать manifest.json: {exc}")
        return written

    # ---- Helpers ----
    def _set(
        self,
        item: QueueItem,
        status: ItemStatus,
        progress: int,
        on_update: Optional[ItemCallback],
        error: Optional[str] = None,
    ) -> None:
        item.status = status
        item.progress = progress
        item.error = error
        if on_update:
            on_update(item)

    @staticmethod
    def _release(item: QueueItem) -> None:
        if item.source is not None:
            item.source.pil_image.close()
            item.source = None

    def _preview(self, source: ImageData) -> ImageData:
        thumb = source.pil_image.copy()
        thumb.thumbnail((PREVIEW_MAX_SIDE, PREVIEW_MAX_SIDE), Image.Resampling.LANCZOS)
        return replace(source, pil_image=thumb)
