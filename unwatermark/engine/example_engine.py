"""Example watermark engine.

Use this module as a reference when plugging in a real engine.
Implement BaseWatermarkEngine and register it in EngineFactory, or point
the ``ENGINE`` setting at it as ``package.module:ClassName``.
"""

from typing import Self

from PIL import Image

from unwatermark.engine.base import BaseWatermarkEngine, standard_geometry
from unwatermark.engine.models import WatermarkGeometry


class ExampleEngine(BaseWatermarkEngine):
    """Engine that returns an untouched RGBA copy of the input.

    No pixel changes. Useful for local development, tests, and as a
    template for real engine adapters.
    """

    @classmethod
    async def create(cls) -> Self:
        return cls()

    def get_watermark_info(self, width: int, height: int) -> WatermarkGeometry:
        return standard_geometry(width, height)

    async def remove_watermark_from_image(self, image: Image.Image) -> Image.Image:
        return image.convert("RGBA")
