"""Загрузка и декодирование изображений.

Принципы:
- SRP: класс отвечает только за превращение байтов/файла в растр RGBA.
- OCP: основной путь (с учётом EXIF-ориентации) и запасной путь изолированы.
- LSP/ISP: возвращает `ImageData` с предсказуемыми полями; интерфейс узкий и конкретный.
"""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from loguru import logger
from PIL import Image, ImageOps

from photo_optimizer.errors import DecodeError
from photo_optimizer.models.image_model import ImageData

_EXIF_ORIENTATION = 0x0112

# Same mapping as ImageOps.exif_transpose
_ORIENTATION_TRANSPOSE = {
    2: Image.Transpose.FLIP_LEFT_RIGHT,
    3: Image.Transpose.ROTATE_180,
    4: Image.Transpose.FLIP_TOP_BOTTOM,
    5: Image.Transpose.TRANSPOSE,
    6: Image.Transpose.ROTATE_270,
    7: Image.Transpose.TRANSVERSE,
    8: Image.Transpose.ROTATE_90,
}

_DECODE_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)

# 16/32-bit integer modes: convert("RGBA") clips them at 255 instead of rescaling
_HIGH_BIT_MODES = ("I;16", "I;16L", "I;16B", "I;16N", "I")


class ImageService:
    def load_image(self, file_path: str | Path) -> ImageData:
        """Читает файл с диска и декодирует его.

        Args:
            file_path: Путь до файла изображения.

        Returns:
            `ImageData` c `PIL.Image.Image` в режиме RGBA.

        Raises:
            FileNotFoundError: если путь не существует или не указывает на файл.
            DecodeError: если содержимое не распознано как изображение.
        """
        path = Path(file_path)
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Файл не найден: {path}")
        return self.decode_bytes(path.read_bytes(), path=path)

    def decode_bytes(self, data: bytes, path: Optional[Path] = None) -> ImageData:
        """Декодирует байты в растр RGBA с нормализованной ориентацией.

        Сначала пробует путь с `ImageOps.exif_transpose`; если он падает,
        декодирует заново без него и применяет ориентацию вручную, если её
        удаётся прочитать. Если не сработал ни один путь, бросает `DecodeError`.
        """
        label = str(path) if path is not None else "<bytes>"
        if not data:
            raise DecodeError(f"Пустые данные изображения: {label}")

        try:
            pil_image, mode = self._decode_oriented(data)
        except _DECODE_ERRORS as exc:
            logger.warning(f"[ImageService] Основной декодер не справился с {label}: {exc}; пробуем запасной путь")
            try:
                pil_image, mode = self._decode_plain(data)
            except _DECODE_ERRORS as fallback_exc:
                raise DecodeError(f"Файл не является изображением: {label}") from fallback_exc

        width, height = pil_image.size
        logger.debug(f"[ImageService] Декодировано {label}: {width}x{height}, режим {mode}")
        return ImageData(
            path=path,
            pil_image=pil_image,
            width=width,
            height=height,
            mode=mode,
            size_bytes=len(data),
        )

    # ---- Internals ----
    def _decode_oriented(self, data: bytes) -> Tuple[Image.Image, str]:
        with Image.open(BytesIO(data)) as src:
            mode = src.mode
            oriented = ImageOps.exif_transpose(src)
            try:
                return _to_rgba(oriented), mode
            finally:
                oriented.close()

    def _decode_plain(self, data: bytes) -> Tuple[Image.Image, str]:
        with Image.open(BytesIO(data)) as src:
            src.load()
            mode = src.mode
            rgba = _to_rgba(src)
            orientation = self._read_orientation(src)
        method = _ORIENTATION_TRANSPOSE.get(orientation)
        if method is None:
            return rgba, mode
        try:
            return rgba.transpose(method), mode
        finally:
            rgba.close()

    def _read_orientation(self, image: Image.Image) -> Optional[int]:
        try:
            return image.getexif().get(_EXIF_ORIENTATION)
        except _DECODE_ERRORS as exc:
            # broken EXIF block: keep the raster as stored
            logger.warning(f"[ImageService] EXIF не читается, ориентация не применена: {exc}")
            return None


def _to_rgba(image: Image.Image) -> Image.Image:
    """RGBA-копия растра; 16/32-битные режимы сначала сводятся к 8-битному `L`."""
    if image.mode not in _HIGH_BIT_MODES:
        return image.convert("RGBA")
    # keep the high byte, as viewers do for 16-bit samples
    levels = np.clip(np.asarray(image, dtype=np.int64) >> 8, 0, 255).astype(np.uint8)
    gray = Image.fromarray(levels)
    try:
        return gray.convert("RGBA")
    finally:
        gray.close()
