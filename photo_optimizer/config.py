"""Настройки кодировщика.

Все константы алгоритма живут здесь; значения по умолчанию можно переопределить
переменными окружения `PHOTO_OPTIMIZER_*` (поддерживается файл `.env`).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from dotenv import load_dotenv

ENV_PREFIX = "PHOTO_OPTIMIZER_"


@dataclass(frozen=True)
class EncoderSettings:
    """Параметры адаптивного кодирования.

    Fields:
        max_dimension: Ограничение длинной стороны, px.
        target_max_bytes: Мягкий бюджет размера результата, байт.
        start_quality: Начальное качество (0..1).
        min_quality: Нижняя граница качества (0..1).
        quality_step: Шаг снижения качества за проход.
        max_passes: Максимум повторных кодирований на формат.
        fallback_ratio: Во сколько раз результат должен превысить бюджет,
            чтобы попробовать запасной формат.
        sample_grid: Число проб альфа-канала на ось (примерно).
    """
    max_dimension: int = 1600
    target_max_bytes: int = 800_000
    start_quality: float = 0.82
    min_quality: float = 0.6
    quality_step: float = 0.08
    max_passes: int = 5
    fallback_ratio: float = 1.2
    sample_grid: int = 32

    def __post_init__(self) -> None:
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension должен быть >= 1: {self.max_dimension}")
        if self.target_max_bytes < 1:
            raise ValueError(f"target_max_bytes должен быть >= 1: {self.target_max_bytes}")
        if not 0.0 < self.min_quality <= self.start_quality <= 1.0:
            raise ValueError(
                f"Ожидается 0 < min_quality <= start_quality <= 1, получено "
                f"{self.min_quality} и {self.start_quality}"
            )
        if self.quality_step <= 0:
            raise ValueError(f"quality_step должен быть > 0: {self.quality_step}")
        if self.max_passes < 0:
            raise ValueError(f"max_passes должен быть >= 0: {self.max_passes}")
        if self.fallback_ratio < 0:
            raise ValueError(f"fallback_ratio должен быть >= 0: {self.fallback_ratio}")
        if self.sample_grid < 1:
            raise ValueError(f"sample_grid должен быть >= 1: {self.sample_grid}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EncoderSettings":
        """Собирает настройки из окружения.

        Если `environ` не передан, сначала подгружается `.env`, затем читается
        `os.environ`. Нераспознанные значения приводят к `ValueError`.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            caster = int if f.type in (int, "int") else float
            try:
                overrides[f.name] = caster(raw.strip().replace("_", ""))
            except ValueError as exc:
                raise ValueError(f"Некорректное значение {ENV_PREFIX}{f.name.upper()}={raw!r}") from exc
        return cls(**overrides)

    def with_overrides(self, **changes) -> "EncoderSettings":
        """Копия настроек с заменой указанных полей (None пропускается)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
