"""Исключения оптимизатора изображений.

Принципы:
- Узкая иерархия: UI и CLI ловят только `ImageOptimizerError`.
- Сообщения пригодны для показа пользователю как есть.
"""
from __future__ import annotations


class ImageOptimizerError(Exception):
    """Базовая ошибка оптимизатора."""


class DecodeError(ImageOptimizerError):
    """Вход не удалось растеризовать ни одним доступным способом."""


class EncodeError(ImageOptimizerError):
    """Кодировщик не смог сериализовать поверхность в байты."""
