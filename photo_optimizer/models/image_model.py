"""Модели данных для изображений и очереди оптимизации.

Принципы:
- SRP: только структуры данных, без логики кодирования.
- Чистый код: неизменяемость (`frozen=True`) там, где объект не меняется после создания.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional, Tuple

from PIL import Image

ImageFormat = Literal["jpeg", "webp"]
ItemStatus = Literal["ready", "optimizing", "saving", "done", "error"]

_MIME_TYPES = {"jpeg": "image/jpeg", "webp": "image/webp"}
_EXTENSIONS = {"jpeg": "jpg", "webp": "webp"}


@dataclass(frozen=True)
class ImageData:
    """Исходное изображение и его метаданные.

    Fields:
        path: Путь к исходному файлу (None для данных из памяти).
        pil_image: Декодированное изображение PIL (RGBA, ориентация уже применена).
        width: Ширина, px.
        height: Высота, px.
        mode: Режим PIL исходного файла, например "RGB" или "P".
        size_bytes: Размер закодированного источника, если известен.
    """
    path: Optional[Path]
    pil_image: Image.Image
    width: int
    height: int
    mode: str
    size_bytes: Optional[int]


@dataclass(frozen=True)
class EncodeAttempt:
    """Один проход кодирования: формат, качество и полученный размер."""
    format: ImageFormat
    quality: float
    size_bytes: int


@dataclass(frozen=True)
class EncodedImage:
    """Результат адаптивного кодирования.

    Fields:
        data: Закодированные байты.
        format: "jpeg" или "webp".
        width: Ширина результата, px.
        height: Высота результата, px.
        quality: Качество, на котором получен `data`.
        attempts: Все проходы поиска в порядке выполнения.
    """
    data: bytes
    format: ImageFormat
    width: int
    height: int
    quality: float
    attempts: Tuple[EncodeAttempt, ...] = ()

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self.format]

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self.format]

    def attempts_for(self, fmt: ImageFormat) -> List[EncodeAttempt]:
        return [a for a in self.attempts if a.format == fmt]


@dataclass
class QueueItem:
    """Элемент очереди на оптимизацию (изменяемый: статус двигается по ходу работы)."""
    id: str
    path: Path
    status: ItemStatus = "ready"
    progress: int = 0
    error: Optional[str] = None
    source: Optional[ImageData] = None
    result: Optional[EncodedImage] = None
    exported_path: Optional[Path] = None
    caption: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name
