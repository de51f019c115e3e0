import asyncio
from abc import ABC, abstractmethod
from typing import Self

from PIL import Image

from unwatermark.engine.exceptions import EngineTimeoutError
from unwatermark.engine.models import Position, WatermarkGeometry


class BaseWatermarkEngine(ABC):
    """Contract for all watermark removal engines.

    A single instance is shared by every pipeline task, the network
    interceptor and the DOM watcher at the same time, without locking.
    Implementations must tolerate concurrent ``remove_watermark_from_image``
    calls.
    """

    @classmethod
    @abstractmethod
    async def create(cls) -> Self:
        """Build a ready-to-use engine.

        Raises:
            Exception: if the underlying resources cannot be initialized.
        """

    @abstractmethod
    def get_watermark_info(self, width: int, height: int) -> WatermarkGeometry:
        """Return the watermark placement for an image of the given size."""

    @abstractmethod
    async def remove_watermark_from_image(self, image: Image.Image) -> Image.Image:
        """Return a cleaned copy of ``image``.

        Raises:
            Exception: if the image is malformed or processing fails.
        """


def standard_geometry(width: int, height: int) -> WatermarkGeometry:
    """Placement rule: 96px logo with 64px margin when both sides exceed 1024px,
    otherwise 48px logo with 32px margin, anchored bottom-right."""
    if width > 1024 and height > 1024:
        size, margin = 96, 64
    else:
        size, margin = 48, 32
    return WatermarkGeometry(
        size=size,
        position=Position(x=width - margin - size, y=height - margin - size),
    )


async def remove_watermark(
    engine: BaseWatermarkEngine,
    image: Image.Image,
    timeout_seconds: float | None = None,
) -> Image.Image:
    """Run the engine transform, optionally bounded by ``timeout_seconds``.

    Raises:
        EngineTimeoutError: if the bound is set and exceeded.
    """
    if timeout_seconds is None:
        return await engine.remove_watermark_from_image(image)
    try:
        return await asyncio.wait_for(
            engine.remove_watermark_from_image(image), timeout=timeout_seconds
        )
    except TimeoutError as exc:
        raise EngineTimeoutError(
            f"Engine did not finish within {timeout_seconds}s"
        ) from exc
