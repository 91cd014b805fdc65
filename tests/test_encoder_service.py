from __future__ import annotations

from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from photo_optimizer.config import EncoderSettings
from photo_optimizer.errors import DecodeError, EncodeError
from photo_optimizer.services.encoder_service import EncoderService

from conftest import noise_image, to_bytes


def _decode(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


# ---------- Геометрия ----------
def test_small_image_is_not_upscaled(encoder):
    result = encoder.encode_image(Image.new("RGB", (300, 200), (120, 30, 200)))
    assert (result.width, result.height) == (300, 200)
    assert _decode(result.data).size == (300, 200)


def test_large_image_is_capped_on_longest_edge():
    enc = EncoderService(EncoderSettings(max_dimension=200))
    result = enc.encode_image(Image.new("RGB", (640, 300), "navy"))
    assert result.width == 200
    assert abs(result.height - 300 * 200 / 640) <= 1


def test_portrait_image_is_capped_on_height():
    enc = EncoderService(EncoderSettings(max_dimension=120))
    result = enc.encode_image(Image.new("RGB", (90, 480), "olive"))
    assert result.height == 120
    assert abs(result.width - 90 * 120 / 480) <= 1


@pytest.mark.parametrize(
    "size, expected",
    [
        ((1, 1), (1, 1)),
        ((1600, 1600), (1600, 1600)),
        ((3200, 1600), (1600, 800)),
        ((3200, 1601), (1600, 801)),
        ((3200, 1603), (1600, 802)),
        ((3000, 1), (1600, 1)),
        ((1, 5000), (1, 1600)),
    ],
)
def test_target_size(encoder, size, expected):
    assert encoder.target_size(*size) == expected


def test_one_pixel_input(encoder):
    result = encoder.encode_image(Image.new("RGB", (1, 1), "white"))
    assert (result.width, result.height) == (1, 1)
    assert _decode(result.data).size == (1, 1)


# ---------- Прозрачность и выбор формата ----------
def test_opaque_image_prefers_jpeg(encoder):
    result = encoder.encode_image(Image.new("RGBA", (64, 64), (10, 200, 10, 255)))
    assert result.attempts[0].format == "jpeg"
    assert result.format == "jpeg"
    assert result.mime_type == "image/jpeg"
    assert result.extension == "jpg"


def test_transparent_pixel_prefers_webp(encoder):
    img = Image.new("RGBA", (64, 64), (10, 200, 10, 255))
    img.putpixel((0, 0), (0, 0, 0, 0))
    result = encoder.encode_image(img)
    assert result.attempts[0].format == "webp"
    assert result.format == "webp"
    assert _decode(result.data).mode == "RGBA"


def test_semi_transparent_counts_as_transparent(encoder):
    img = Image.new("RGBA", (40, 40), (255, 0, 0, 254))
    assert encoder.has_transparency(img)


def test_transparency_check_skips_pixels_between_samples(encoder):
    # 64 // 32 = stride 2: odd coordinates are never sampled
    img = Image.new("RGBA", (64, 64), (0, 0, 0, 255))
    img.putpixel((1, 1), (0, 0, 0, 0))
    assert not encoder.has_transparency(img)


def test_rgb_surface_has_no_transparency(encoder):
    assert not encoder.has_transparency(Image.new("RGB", (8, 8)))


# ---------- Поиск качества ----------
def test_under_budget_needs_single_pass(encoder):
    result = encoder.encode_image(Image.new("RGB", (100, 100), "gray"))
    assert len(result.attempts) == 1
    assert result.quality == pytest.approx(0.82)


def test_quality_never_drops_below_floor():
    enc = EncoderService(EncoderSettings(target_max_bytes=1))
    result = enc.encode_image(noise_image(64, 64))
    jpeg = result.attempts_for("jpeg")
    assert [round(a.quality, 2) for a in jpeg] == [0.82, 0.74, 0.66, 0.6]
    assert all(a.quality >= 0.6 for a in result.attempts)


def test_reencode_count_is_capped():
    settings = EncoderSettings(target_max_bytes=1, start_quality=0.95, min_quality=0.05)
    result = EncoderService(settings).encode_image(noise_image(48, 48))
    for fmt in ("jpeg", "webp"):
        passes = result.attempts_for(fmt)
        # first encode + at most 5 re-encodes
        assert 1 <= len(passes) <= 6
        qualities = [a.quality for a in passes]
        assert qualities == sorted(qualities, reverse=True)


def test_over_budget_still_returns_smaller_candidate():
    enc = EncoderService(EncoderSettings(target_max_bytes=1))
    result = enc.encode_image(noise_image(96, 96))
    jpeg_last = result.attempts_for("jpeg")[-1]
    webp_last = result.attempts_for("webp")[-1]
    assert result.size_bytes == min(jpeg_last.size_bytes, webp_last.size_bytes)
    winner = "jpeg" if result.size_bytes == jpeg_last.size_bytes else "webp"
    assert result.format == winner


def test_fallback_not_tried_within_ratio():
    reference = EncoderService(EncoderSettings()).encode_image(noise_image(64, 64))
    budget = reference.size_bytes - 1
    # over budget, but inside the 1.2x window
    enc = EncoderService(EncoderSettings(target_max_bytes=budget, start_quality=0.82, min_quality=0.82))
    result = enc.encode_image(noise_image(64, 64))
    assert result.size_bytes > budget
    assert {a.format for a in result.attempts} == {"jpeg"}


def test_transparent_source_falls_back_to_jpeg_on_white(monkeypatch):
    enc = EncoderService(EncoderSettings(target_max_bytes=1, fallback_ratio=0))
    candidates = []
    search = enc.search

    def recording_search(surface, fmt, keep_alpha=False):
        candidate = search(surface, fmt, keep_alpha=keep_alpha)
        candidates.append(candidate)
        return candidate

    monkeypatch.setattr(enc, "search", recording_search)
    img = Image.new("RGBA", (64, 64), (0, 0, 255, 255))
    # fully transparent left half over red colour data
    img.paste((255, 0, 0, 0), (0, 0, 32, 64))
    enc.encode_image(img)

    assert [c.format for c in candidates] == ["webp", "jpeg"]
    jpeg = _decode(candidates[1].data)
    assert jpeg.mode == "RGB"
    assert min(jpeg.getpixel((8, 32))) > 235
    r, g, b = jpeg.getpixel((56, 32))
    assert b > 200 and r < 40 and g < 40


def test_fallback_ratio_is_configurable():
    enc = EncoderService(EncoderSettings(target_max_bytes=10**9, fallback_ratio=0))
    result = enc.encode_image(Image.new("RGB", (32, 32), "teal"))
    assert {a.format for a in result.attempts} == {"jpeg", "webp"}


# ---------- Ввод и ошибки ----------
def test_opaque_round_trip(encoder):
    data = to_bytes(Image.new("RGB", (100, 100), (200, 100, 50)), "PNG")
    result = encoder.encode_bytes(data)
    decoded = _decode(result.data)
    assert decoded.size == (100, 100)
    assert decoded.mode == "RGB"
    r, g, b = decoded.getpixel((50, 50))
    assert abs(r - 200) < 8 and abs(g - 100) < 8 and abs(b - 50) < 8


def test_encode_file(encoder, write_image):
    path = write_image("pic.png", Image.new("RGB", (20, 10), "red"))
    result = encoder.encode_file(path)
    assert (result.width, result.height) == (20, 10)


def test_garbage_input_raises_decode_error(encoder):
    with pytest.raises(DecodeError):
        encoder.encode_bytes(b"definitely not an image")


def test_encoder_failure_raises_encode_error(encoder, monkeypatch):
    def broken_save(self, *args, **kwargs):
        raise OSError("encoder backend unavailable")

    monkeypatch.setattr(Image.Image, "save", broken_save)
    with pytest.raises(EncodeError):
        encoder.encode_image(Image.new("RGB", (10, 10)))


def test_source_bitmap_is_left_untouched(encoder):
    src = Image.new("RGBA", (50, 20), (1, 2, 3, 255))
    encoder.encode_image(src)
    assert src.size == (50, 20)
    assert src.getpixel((0, 0)) == (1, 2, 3, 255)


def test_intermediate_images_closed_when_encoding_fails(encoder, monkeypatch, closed_images):
    created = []
    render, prepare = encoder.render, encoder._prepare

    def recording_render(bitmap):
        created.append(render(bitmap))
        return created[-1]

    def recording_prepare(surface, fmt, keep_alpha):
        created.append(prepare(surface, fmt, keep_alpha))
        return created[-1]

    def broken_save(self, *args, **kwargs):
        raise OSError("encoder backend unavailable")

    monkeypatch.setattr(encoder, "render", recording_render)
    monkeypatch.setattr(encoder, "_prepare", recording_prepare)
    monkeypatch.setattr(Image.Image, "save", broken_save)
    src = Image.new("RGBA", (40, 20), (1, 2, 3, 255))

    with pytest.raises(EncodeError):
        encoder.encode_image(src)

    # render surface + white-flattened jpeg copy
    assert len(created) == 2
    for img in created:
        assert any(c is img for c in closed_images)
    assert not any(c is src for c in closed_images)


def test_sixteen_bit_gradient_keeps_its_levels(encoder):
    levels = (np.arange(256, dtype=np.uint16) * 257)[np.newaxis, :].repeat(16, axis=0)
    data = to_bytes(Image.fromarray(levels), "PNG")

    result = encoder.encode_bytes(data)

    out = np.asarray(_decode(result.data).convert("L"), dtype=np.int16)[8]
    assert abs(int(out[128]) - 128) < 16
    assert out[0] < 16
    assert out[255] > 239
