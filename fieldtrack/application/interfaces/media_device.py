"""Abstract interfaces for local media capture and transformation."""

from abc import ABC, abstractmethod

from fieldtrack.domain.entities import CapturedImage, TransformedImage


class LocalCapture(ABC):
    """Port — picks an image from the library or takes one with the camera."""

    @abstractmethod
    async def pick_or_capture(self, source: str) -> CapturedImage | None:
        """Return the captured image, or ``None`` if the user cancelled."""
        ...


class LocalTransform(ABC):
    """Port — produces a resized, recompressed copy of a local image."""

    @abstractmethod
    async def resize(
        self, uri: str, max_width: int, quality: int, *, max_edge: int | None = None
    ) -> TransformedImage:
        """Write a new image no wider than ``max_width``; ``uri`` is not modified.

        When ``max_edge`` is given, neither edge of the oriented output is
        longer than it.

        Raises:
            MediaTransformError: If the image cannot be decoded or encoded.
        """
        ...

    @abstractmethod
    def discard(self, uri: str) -> None:
        """Delete a file produced by ``resize`` once it is no longer needed."""
        ...
