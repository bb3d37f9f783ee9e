"""Unit tests for the Pillow image transform and file capture."""

from pathlib import Path

import pytest
from PIL import Image

from fieldtrack.domain.exceptions import MediaTransformError
from fieldtrack.infrastructure.media.file_capture import FileImageCapture
from fieldtrack.infrastructure.media.pillow_transform import PillowImageTransform


# ── Helpers ──


def _write_image(path: Path, size: tuple[int, int], mode: str = "RGB", fmt: str = "JPEG") -> Path:
    Image.new(mode, size, color=(200, 120, 40) if mode == "RGB" else (200, 120, 40, 255)).save(path, format=fmt)
    return path


def _write_rotated(path: Path, size: tuple[int, int], orientation: int = 6) -> Path:
    exif = Image.Exif()
    exif[0x0112] = orientation
    Image.new("RGB", size, color=(40, 120, 200)).save(path, format="JPEG", exif=exif)
    return path


# ── Tests ──


@pytest.mark.asyncio
async def test_wide_photo_is_resized_to_target_width(tmp_path: Path):
    source = _write_image(tmp_path / "wide.jpg", (3000, 2000))
    transform = PillowImageTransform(tmp_path / "out")

    result = await transform.resize(str(source), 1600, 80)

    assert (result.width, result.height) == (1600, 1067)
    assert Path(result.uri).parent == tmp_path / "out"
    assert result.size_bytes == Path(result.uri).stat().st_size
    with Image.open(result.uri) as image:
        assert image.format == "JPEG"
        assert image.size == (1600, 1067)


@pytest.mark.asyncio
async def test_source_file_is_untouched(tmp_path: Path):
    source = _write_image(tmp_path / "site.jpg", (2400, 1800))
    before = source.read_bytes()

    result = await PillowImageTransform(tmp_path / "out").resize(str(source), 1600, 80)

    assert source.read_bytes() == before
    assert Path(result.uri) != source


@pytest.mark.asyncio
async def test_small_photo_is_never_upscaled(tmp_path: Path):
    source = _write_image(tmp_path / "small.jpg", (800, 600))

    result = await PillowImageTransform(tmp_path / "out").resize(str(source), 1600, 80)

    assert (result.width, result.height) == (800, 600)


@pytest.mark.asyncio
async def test_png_with_alpha_is_converted_to_jpeg(tmp_path: Path):
    source = _write_image(tmp_path / "shot.png", (400, 300), mode="RGBA", fmt="PNG")

    result = await PillowImageTransform(tmp_path / "out").resize(str(source), 1600, 80)

    assert result.uri.endswith(".jpg")
    with Image.open(result.uri) as image:
        assert image.mode == "RGB"


@pytest.mark.asyncio
async def test_undecodable_file_raises_transform_error(tmp_path: Path):
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"not an image")

    with pytest.raises(MediaTransformError):
        await PillowImageTransform(tmp_path / "out").resize(str(broken), 1600, 80)


@pytest.mark.asyncio
async def test_file_capture_reads_dimensions(tmp_path: Path):
    source = _write_image(tmp_path / "site.jpg", (3000, 2000))

    captured = await FileImageCapture().pick_or_capture(str(source))

    assert (captured.width, captured.height) == (3000, 2000)
    assert captured.uri == str(source)


@pytest.mark.asyncio
async def test_file_capture_of_missing_path_is_cancelled(tmp_path: Path):
    assert await FileImageCapture().pick_or_capture(str(tmp_path / "nope.jpg")) is None
    assert await FileImageCapture().pick_or_capture("") is None


@pytest.mark.asyncio
async def test_file_capture_reports_oriented_size(tmp_path: Path):
    source = _write_rotated(tmp_path / "portrait.jpg", (400, 300))

    captured = await FileImageCapture().pick_or_capture(str(source))

    assert (captured.width, captured.height) == (300, 400)


@pytest.mark.asyncio
async def test_rotated_photo_is_clamped_on_its_longer_edge(tmp_path: Path):
    source = _write_rotated(tmp_path / "portrait.jpg", (400, 300))
    transform = PillowImageTransform(tmp_path / "out")

    # width taken from the stored, unrotated size
    result = await transform.resize(str(source), 160, 80, max_edge=160)

    assert (result.width, result.height) == (120, 160)
    with Image.open(result.uri) as image:
        assert image.size == (120, 160)


@pytest.mark.asyncio
async def test_captured_rotated_photo_never_exceeds_longest_edge(tmp_path: Path):
    source = _write_rotated(tmp_path / "portrait.jpg", (400, 300))
    captured = await FileImageCapture().pick_or_capture(str(source))
    width = round(captured.width * 160 / max(captured.width, captured.height))

    result = await PillowImageTransform(tmp_path / "out").resize(captured.uri, width, 80, max_edge=160)

    assert max(result.width, result.height) == 160
    assert (result.width, result.height) == (120, 160)


@pytest.mark.asyncio
async def test_discard_removes_transformed_file(tmp_path: Path):
    source = _write_image(tmp_path / "site.jpg", (800, 600))
    transform = PillowImageTransform(tmp_path / "out")
    result = await transform.resize(str(source), 1600, 80)

    transform.discard(result.uri)
    transform.discard(result.uri)

    assert not Path(result.uri).exists()
    assert source.exists()
