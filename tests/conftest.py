import asyncio
import io
from collections.abc import Callable
from typing import Self

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from unwatermark.config.settings import Settings
from unwatermark.engine.base import BaseWatermarkEngine, standard_geometry
from unwatermark.engine.models import WatermarkGeometry
from unwatermark.pipeline.models import SourceFile

GOOGLE_CREDIT = "Made with Google AI"


def make_png(
    width: int = 64,
    height: int = 64,
    *,
    credit: str | None = None,
    exif_dimensions: bool = False,
    xmp_dimensions: bool = False,
) -> bytes:
    """Encode a solid PNG, optionally carrying an XMP credit and EXIF or XMP dimensions."""
    img = Image.new("RGB", (width, height), (200, 30, 30))
    params: dict[str, object] = {}
    properties = []
    if credit is not None:
        properties.append(f'photoshop:Credit="{credit}"')
    if xmp_dimensions:
        properties.append(f'tiff:ImageWidth="{width}" tiff:ImageHeight="{height}"')
    if properties:
        info = PngInfo()
        info.add_itxt(
            "XML:com.adobe.xmp",
            '<x:xmpmeta xmlns:x="adobe:ns:meta/">'
            '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">'
            '<rdf:Description xmlns:photoshop="http://ns.adobe.com/photoshop/1.0/" '
            'xmlns:tiff="http://ns.adobe.com/tiff/1.0/" '
            f"{' '.join(properties)}/>"
            "</rdf:RDF></x:xmpmeta>",
        )
        params["pnginfo"] = info
    if exif_dimensions:
        exif = Image.Exif()
        exif[0x0100] = width
        exif[0x0101] = height
        params["exif"] = exif
    buf = io.BytesIO()
    img.save(buf, format="PNG", **params)
    return buf.getvalue()


def make_jpeg(width: int = 64, height: int = 64) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (10, 120, 220)).save(buf, format="JPEG")
    return buf.getvalue()


class RecordingEngine(BaseWatermarkEngine):
    """Engine double that tracks concurrency and rejects chosen image widths."""

    def __init__(self, delay: float = 0.01) -> None:
        self.delay = delay
        self.fail_widths: set[int] = set()
        self.calls = 0
        self.active = 0
        self.peak = 0

    @classmethod
    async def create(cls) -> Self:
        return cls()

    def get_watermark_info(self, width: int, height: int) -> WatermarkGeometry:
        return standard_geometry(width, height)

    async def remove_watermark_from_image(self, image: Image.Image) -> Image.Image:
        self.calls += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            if image.width in self.fail_widths:
                raise ValueError("engine rejected image")
            return image.convert("RGB")
        finally:
            self.active -= 1


class ManualTimer:
    """Timer factory whose callbacks run only when the test fires them."""

    class Handle:
        def __init__(self, delay: float, callback: Callable[[], None]) -> None:
            self.delay = delay
            self.callback = callback
            self.cancelled = False
            self.fired = False

        def cancel(self) -> None:
            self.cancelled = True

    def __init__(self) -> None:
        self.handles: list[ManualTimer.Handle] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> "ManualTimer.Handle":
        handle = ManualTimer.Handle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list["ManualTimer.Handle"]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self) -> int:
        pending = self.pending
        for handle in pending:
            handle.fired = True
            handle.callback()
        return len(pending)


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture()
def engine() -> RecordingEngine:
    return RecordingEngine()


@pytest.fixture()
def manual_timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture()
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture()
def genuine_png_bytes() -> bytes:
    return make_png(credit=GOOGLE_CREDIT, exif_dimensions=True)


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture()
def make_files() -> Callable[[int], list[SourceFile]]:
    """Build ``n`` PNG uploads; file ``i`` (1-based) is ``10 + i`` pixels wide."""

    def _make(n: int) -> list[SourceFile]:
        return [
            SourceFile(
                name=f"image{i}.png",
                media_type="image/png",
                data=make_png(width=10 + i, height=20),
            )
            for i in range(1, n + 1)
        ]

    return _make
