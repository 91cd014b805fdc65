"""Сохранение оптимизированных изображений на диск."""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from photo_optimizer.models.image_model import EncodedImage

_EXTENSION_RE = re.compile(r"\.[a-z0-9]+$", re.IGNORECASE)
_UNSAFE_RE = re.compile(r"[^a-z0-9\-_.]+")
_MAX_STEM = 80
MANIFEST_NAME = "manifest.json"


def format_bytes(size: Optional[int]) -> str:
    if size is None:
        return "—"
    if size < 1024:
        return f"{size} Б"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} КБ"
    return f"{size / (1024 * 1024):.2f} МБ"


def safe_name(original: str, ext: str) -> str:
    """Безопасное имя файла: без исходного расширения, в нижнем регистре, с `ext`.

    >>> safe_name("My Photo (1).PNG", "jpg")
    'my-photo-1-.jpg'
    """
    base = _EXTENSION_RE.sub("", original)
    clean = _UNSAFE_RE.sub("-", base.lower())[:_MAX_STEM]
    return f"{clean or 'photo'}.{ext}"


class ExportService:
    def export(self, result: EncodedImage, out_dir: str | Path, original_name: str, index: int = 0) -> Path:
        """Пишет `result` в `out_dir` под именем `NN-<safe_name>`; каталог создаётся при необходимости."""
        directory = Path(out_dir)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / f"{index:02d}-{safe_name(original_name, result.extension)}"
        target.write_bytes(result.data)
        logger.info(f"[ExportService] Сохранено {target} ({result.size_bytes} байт)")
        return target

    def write_manifest(self, entries: Sequence[Dict[str, Any]], out_dir: str | Path) -> Path:
        """Пишет `manifest.json` со списком сохранённых файлов (имя, подпись, порядок)."""
        directory = Path(out_dir)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / MANIFEST_NAME
        target.write_text(json.dumps(list(entries), ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"[ExportService] Манифест: {target} ({len(entries)} файл(ов))")
        return target
