from __future__ import annotations

import json

import pytest

from photo_optimizer.models.image_model import EncodedImage
from photo_optimizer.services.export_service import ExportService, format_bytes, safe_name


@pytest.mark.parametrize(
    "original, ext, expected",
    [
        ("IMG_0001.JPG", "jpg", "img_0001.jpg"),
        ("My Photo (1).PNG", "webp", "my-photo-1-.webp"),
        ("archive.tar.gz", "jpg", "archive.tar.jpg"),
        (".png", "jpg", "photo.jpg"),
        ("", "webp", "photo.webp"),
    ],
)
def test_safe_name(original, ext, expected):
    assert safe_name(original, ext) == expected


def test_safe_name_truncates_long_stems():
    name = safe_name("a" * 200 + ".png", "jpg")
    assert name == "a" * 80 + ".jpg"


def test_format_bytes():
    assert format_bytes(None) == "—"
    assert format_bytes(512) == "512 Б"
    assert format_bytes(2048) == "2.0 КБ"
    assert format_bytes(3 * 1024 * 1024) == "3.00 МБ"


def test_export_writes_bytes(tmp_path):
    result = EncodedImage(data=b"\xff\xd8fake", format="jpeg", width=1, height=1, quality=0.82)
    target = ExportService().export(result, tmp_path / "out", "Holiday Pic.heic", index=3)
    assert target == tmp_path / "out" / "03-holiday-pic.jpg"
    assert target.read_bytes() == b"\xff\xd8fake"


def test_write_manifest_keeps_unicode(tmp_path):
    entries = [{"file": "00-a.jpg", "caption": "Привет", "sort_order": 0}]
    target = ExportService().write_manifest(entries, tmp_path / "out")
    assert target == tmp_path / "out" / "manifest.json"
    text = target.read_text(encoding="utf-8")
    assert "Привет" in text
    assert json.loads(text) == entries
