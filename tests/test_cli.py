from __future__ import annotations

from PIL import Image

from photo_optimizer import cli


def test_cli_optimizes_files(write_image, tmp_path, capsys):
    photo = write_image("Beach Day.png", Image.new("RGB", (300, 100), "skyblue"))
    out_dir = tmp_path / "out"

    code = cli.main([str(photo), "-o", str(out_dir), "--max-dimension", "150"])

    assert code == 0
    written = out_dir / "00-beach-day.jpg"
    assert written.exists()
    with Image.open(written) as img:
        assert img.size == (150, 50)
    assert "OK" in capsys.readouterr().out


def test_cli_reports_failures(write_image, tmp_path, capsys):
    good = write_image("ok.png", Image.new("RGB", (10, 10)))
    bad = tmp_path / "broken.jpg"
    bad.write_bytes(b"nope")

    code = cli.main([str(good), str(bad), "-o", str(tmp_path / "out")])

    assert code == 1
    out = capsys.readouterr().out
    assert "FAIL" in out and "broken.jpg" in out
    assert (tmp_path / "out" / "00-ok.jpg").exists()


def test_cli_rejects_invalid_settings(write_image, tmp_path):
    photo = write_image("p.png", Image.new("RGB", (4, 4)))
    assert cli.main([str(photo), "-o", str(tmp_path), "--max-dimension", "0"]) == 2
