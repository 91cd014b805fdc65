from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import List

import numpy as np
import pytest
from PIL import Image

from photo_optimizer.config import EncoderSettings
from photo_optimizer.services.encoder_service import EncoderService


def to_bytes(image: Image.Image, fmt: str = "PNG", **params) -> bytes:
    buf = BytesIO()
    image.save(buf, format=fmt, **params)
    return buf.getvalue()


def noise_image(width: int, height: int, seed: int = 7) -> Image.Image:
    """Шум почти не сжимается: удобно для проверки бюджета."""
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return Image.fromarray(arr)


@pytest.fixture
def encoder() -> EncoderService:
    return EncoderService(EncoderSettings())


@pytest.fixture
def write_image(tmp_path: Path):
    def _write(name: str, image: Image.Image, fmt: str = "PNG") -> Path:
        path = tmp_path / name
        path.write_bytes(to_bytes(image, fmt))
        return path

    return _write


@pytest.fixture
def closed_images(monkeypatch) -> List[Image.Image]:
    """Все изображения, у которых вызван `close()`, в порядке вызова."""
    closed: List[Image.Image] = []
    original_close = Image.Image.close

    def tracking_close(self):
        closed.append(self)
        original_close(self)

    monkeypatch.setattr(Image.Image, "close", tracking_close)
    return closed
