"""File-based image capture — implements LocalCapture for images already on disk."""

import asyncio
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from fieldtrack.application.interfaces import LocalCapture
from fieldtrack.domain.entities import CapturedImage
from fieldtrack.domain.exceptions import MediaTransformError

logger = logging.getLogger(__name__)

_ORIENTATION_TAG = 0x0112
# EXIF orientations that rotate the picture by 90 or 270 degrees
_SWAPS_AXES = frozenset({5, 6, 7, 8})


class FileImageCapture(LocalCapture):
    """Treats ``source`` as a path; a missing or empty path is a cancelled pick.

    The reported size is the displayed size, i.e. after EXIF orientation.
    """

    async def pick_or_capture(self, source: str) -> CapturedImage | None:
        if not source or not Path(source).is_file():
            logger.info("No image at %r, capture cancelled", source)
            return None
        return await asyncio.to_thread(self._read, Path(source))

    @staticmethod
    def _read(path: Path) -> CapturedImage:
        try:
            with Image.open(path) as image:
                width, height = image.size
                orientation = image.getexif().get(_ORIENTATION_TAG)
        except (UnidentifiedImageError, OSError) as exc:
            raise MediaTransformError(f"Not an image: {path.name}") from exc
        if orientation in _SWAPS_AXES:
            width, height = height, width
        return CapturedImage(uri=str(path), width=width, height=height)
