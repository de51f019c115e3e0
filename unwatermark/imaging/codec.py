import asyncio
import io

from PIL import Image, UnidentifiedImageError

from unwatermark.imaging.exceptions import ImageDecodeError

PNG_MEDIA_TYPE = "image/png"


def decode_image(data: bytes) -> Image.Image:
    """Decode encoded image bytes into a fully loaded Pillow image.

    Raises:
        ImageDecodeError: if the bytes are empty or not a readable image.
    """
    if not data:
        raise ImageDecodeError("Cannot decode empty image data")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.copy()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Image decoding failed: {exc}") from exc


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


async def decode_image_async(data: bytes) -> Image.Image:
    return await asyncio.to_thread(decode_image, data)


async def encode_png_async(image: Image.Image) -> bytes:
    return await asyncio.to_thread(encode_png, image)
