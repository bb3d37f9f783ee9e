"""Pillow image transform — implements the LocalTransform interface.

Output layout:
    <output_dir>/<uuid>.jpg    — one fresh JPEG per transform; sources are never touched
"""

import asyncio
import logging
import tempfile
import uuid
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from fieldtrack.application.interfaces import LocalTransform
from fieldtrack.domain.entities import TransformedImage
from fieldtrack.domain.exceptions import MediaTransformError

logger = logging.getLogger(__name__)


def default_output_dir() -> Path:
    return Path(tempfile.gettempdir()) / "fieldtrack"


class PillowImageTransform(LocalTransform):
    """Downsizes and recompresses photos as JPEG in a worker thread."""

    def __init__(self, output_dir: str | Path | None = None):
        self._output_dir = Path(output_dir) if output_dir else default_output_dir()

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    async def resize(
        self, uri: str, max_width: int, quality: int, *, max_edge: int | None = None
    ) -> TransformedImage:
        if max_width <= 0:
            raise MediaTransformError(f"Invalid target width {max_width}")
        if max_edge is not None and max_edge <= 0:
            raise MediaTransformError(f"Invalid longest edge {max_edge}")
        if not 1 <= quality <= 100:
            raise MediaTransformError(f"Invalid JPEG quality {quality}")
        return await asyncio.to_thread(self._resize, uri, max_width, quality, max_edge)

    def discard(self, uri: str) -> None:
        try:
            Path(uri).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove transformed photo %s: %s", uri, exc)

    def _resize(self, uri: str, max_width: int, quality: int, max_edge: int | None) -> TransformedImage:
        source = Path(uri)
        try:
            with Image.open(source) as opened:
                image = ImageOps.exif_transpose(opened)
                image = image.convert("RGB")
        except (FileNotFoundError, UnidentifiedImageError, OSError) as exc:
            raise MediaTransformError(f"Photo could not be read: {source.name}") from exc

        # sizes are taken after orientation is applied
        scale = min(1.0, max_width / image.width)
        if max_edge is not None:
            scale = min(scale, max_edge / max(image.size))
        if scale < 1.0:
            size = (
                max(1, min(max_width, round(image.width * scale))),
                max(1, round(image.height * scale)),
            )
            if max_edge is not None:
                size = (min(size[0], max_edge), min(size[1], max_edge))
            image = image.resize(size, Image.Resampling.LANCZOS)

        self._output_dir.mkdir(parents=True, exist_ok=True)
        dest = self._output_dir / f"{uuid.uuid4().hex}.jpg"
        try:
            image.save(dest, format="JPEG", quality=quality, optimize=True)
        except OSError as exc:
            dest.unlink(missing_ok=True)
            raise MediaTransformError(f"Photo could not be compressed: {exc}") from exc

        size = dest.stat().st_size
        logger.debug("Transformed %s → %s (%dx%d, %d bytes)", source, dest, image.width, image.height, size)
        return TransformedImage(uri=str(dest), width=image.width, height=image.height, size_bytes=size)
