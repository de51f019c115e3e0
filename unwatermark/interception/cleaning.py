from unwatermark.engine.base import BaseWatermarkEngine, remove_watermark
from unwatermark.imaging.codec import decode_image_async, encode_png_async


async def clean_image_bytes(
    engine: BaseWatermarkEngine,
    data: bytes,
    timeout_seconds: float | None = None,
) -> bytes:
    """Decode, run the engine and re-encode as PNG."""
    image = await decode_image_async(data)
    cleaned = await remove_watermark(engine, image, timeout_seconds)
    return await encode_png_async(cleaned)
