"""Адаптивное кодирование изображений перед загрузкой.

Конвейер: декодирование -> масштабирование -> проверка прозрачности -> поиск качества -> выбор.

Принципы:
- SRP: сервис только кодирует; чтение файлов делегировано `ImageService`.
- Предсказуемость: число проходов кодирования ограничено константой на формат.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from loguru import logger
from PIL import Image

from photo_optimizer.config import EncoderSettings
from photo_optimizer.errors import EncodeError
from photo_optimizer.models.image_model import EncodeAttempt, EncodedImage, ImageFormat
from photo_optimizer.services.image_service import ImageService

_PIL_FORMATS = {"jpeg": "JPEG", "webp": "WEBP"}
_WHITE = (255, 255, 255)


@dataclass(frozen=True)
class _Candidate:
    data: bytes
    format: ImageFormat
    quality: float
    attempts: Tuple[EncodeAttempt, ...]


class EncoderService:
    def __init__(self, settings: Optional[EncoderSettings] = None, image_service: Optional[ImageService] = None) -> None:
        self.settings = settings or EncoderSettings()
        self._image_service = image_service or ImageService()

    # ---------- Точки входа ----------
    def encode_file(self, file_path: str | Path) -> EncodedImage:
        """Читает файл и кодирует его (см. `encode_bytes`)."""
        source = self._image_service.load_image(file_path)
        try:
            return self.encode_image(source.pil_image)
        finally:
            source.pil_image.close()

    def encode_bytes(self, data: bytes) -> EncodedImage:
        """Декодирует произвольные байты изображения и кодирует результат.

        Raises:
            DecodeError: вход не растеризуется.
            EncodeError: кодировщик не смог выдать байты.
        """
        source = self._image_service.decode_bytes(data)
        try:
            return self.encode_image(source.pil_image)
        finally:
            source.pil_image.close()

    def encode_image(self, bitmap: Image.Image) -> EncodedImage:
        """Кодирует уже декодированный растр. Сам `bitmap` не закрывается и не меняется.

        1. Масштабирует до `max_dimension` по длинной стороне (без увеличения).
        2. Проверяет альфа-канал на разреженной сетке.
        3. Ищет качество в основном формате (webp при прозрачности, иначе jpeg).
        4. Если результат больше бюджета в `fallback_ratio` раз, пробует второй формат
           и берёт меньший из двух.
        """
        s = self.settings
        surface = self.render(bitmap)
        try:
            transparent = self.has_transparency(surface)
            primary: ImageFormat = "webp" if transparent else "jpeg"
            fallback: ImageFormat = "jpeg" if transparent else "webp"

            best = self.search(surface, primary, keep_alpha=transparent)
            attempts = list(best.attempts)
            if len(best.data) > s.target_max_bytes * s.fallback_ratio:
                logger.debug(
                    f"[EncoderService] {primary}: {len(best.data)} байт > "
                    f"{s.target_max_bytes} x {s.fallback_ratio}, пробуем {fallback}"
                )
                alt = self.search(surface, fallback, keep_alpha=transparent)
                attempts.extend(alt.attempts)
                if len(alt.data) < len(best.data):
                    best = alt

            width, height = surface.size
        finally:
            surface.close()

        logger.info(
            f"[EncoderService] {bitmap.width}x{bitmap.height} -> {width}x{height} {best.format}, "
            f"{len(best.data)} байт, качество {best.quality:.2f}, проходов {len(attempts)}"
        )
        return EncodedImage(
            data=best.data,
            format=best.format,
            width=width,
            height=height,
            quality=best.quality,
            attempts=tuple(attempts),
        )

    # ---------- Геометрия и отрисовка ----------
    def target_size(self, width: int, height: int) -> Tuple[int, int]:
        """Размер после равномерного уменьшения: scale = min(1, max_dim / max(w, h))."""
        longest = max(width, height)
        scale = min(1.0, self.settings.max_dimension / longest) if longest > 0 else 1.0
        # half rounds up, not to even
        return max(1, math.floor(width * scale + 0.5)), max(1, math.floor(height * scale + 0.5))

    def render(self, bitmap: Image.Image) -> Image.Image:
        """Возвращает новую поверхность RGBA нужного размера (LANCZOS)."""
        rgba = bitmap if bitmap.mode == "RGBA" else bitmap.convert("RGBA")
        try:
            size = self.target_size(*rgba.size)
            if size == rgba.size:
                return rgba.copy()
            return rgba.resize(size, Image.Resampling.LANCZOS)
        finally:
            if rgba is not bitmap:
                rgba.close()

    def has_transparency(self, surface: Image.Image) -> bool:
        """Разреженная проверка альфа-канала.

        Шаг сетки `max(1, min(w, h) // sample_grid)`, то есть порядка `sample_grid`
        выборок на короткую ось. Прозрачные области уже шага могут быть пропущены;
        это осознанный компромисс ради стоимости, не зависящей от разрешения.
        """
        if surface.mode != "RGBA":
            return False
        width, height = surface.size
        step = max(1, min(width, height) // self.settings.sample_grid)
        alpha = np.asarray(surface.getchannel("A"), dtype=np.uint8)
        return bool((alpha[::step, ::step] < 255).any())

    # ---------- Поиск качества ----------
    def search(self, surface: Image.Image, fmt: ImageFormat, keep_alpha: bool = False) -> _Candidate:
        """Линейный поиск качества с фиксированным шагом.

        Начинает с `start_quality`; пока результат больше бюджета и качество выше
        `min_quality`, снижает качество на `quality_step` (не ниже `min_quality`).
        Не более `max_passes` повторных кодирований.
        """
        s = self.settings
        prepared = self._prepare(surface, fmt, keep_alpha)
        try:
            quality = s.start_quality
            data = self._encode_once(prepared, fmt, quality)
            attempts: List[EncodeAttempt] = [EncodeAttempt(fmt, quality, len(data))]
            for _ in range(s.max_passes):
                if len(data) <= s.target_max_bytes or quality <= s.min_quality:
                    break
                quality = max(s.min_quality, round(quality - s.quality_step, 4))
                data = self._encode_once(prepared, fmt, quality)
                attempts.append(EncodeAttempt(fmt, quality, len(data)))
        finally:
            if prepared is not surface:
                prepared.close()
        return _Candidate(data=data, format=fmt, quality=quality, attempts=tuple(attempts))

    def _prepare(self, surface: Image.Image, fmt: ImageFormat, keep_alpha: bool) -> Image.Image:
        if fmt == "webp" and keep_alpha:
            return surface
        # non-alpha output: composite onto white
        flat = Image.new("RGB", surface.size, _WHITE)
        if surface.mode == "RGBA":
            flat.paste(surface, mask=surface.getchannel("A"))
        else:
            flat.paste(surface)
        return flat

    def _encode_once(self, image: Image.Image, fmt: ImageFormat, quality: float) -> bytes:
        buf = BytesIO()
        q = int(round(quality * 100))
        try:
            if fmt == "jpeg":
                image.save(buf, format=_PIL_FORMATS[fmt], quality=q, optimize=True)
            else:
                image.save(buf, format=_PIL_FORMATS[fmt], quality=q, method=4)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"Не удалось закодировать {fmt} (качество {q}): {exc}") from exc
        data = buf.getvalue()
        if not data:
            raise EncodeError(f"Кодировщик {fmt} вернул пустой результат")
        logger.debug(f"[EncoderService] {fmt} качество {q}: {len(data)} байт")
        return data
