"""Metadata heuristic telling genuine generated originals from re-encoded copies."""

import io
import re
from dataclasses import dataclass

from PIL import Image

from unwatermark.logging.logger import Log

EXPECTED_CREDIT = "Made with Google AI"

_EXIF_IMAGE_WIDTH = 0x0100
_EXIF_IMAGE_HEIGHT = 0x0101
_XMP_INFO_KEYS = ("xmp", "XML:com.adobe.xmp")
_XMP_DIMENSION_PROPERTIES = ("ImageWidth", "ImageHeight")

NOT_EXPECTED_SOURCE_MESSAGE = "Image does not look like a Gemini-generated image"
NOT_ORIGINAL_MESSAGE = "Image is not the original download; results may be imperfect"


@dataclass(frozen=True)
class ProvenanceResult:
    is_from_expected_source: bool
    is_unmodified_original: bool

    @property
    def passed(self) -> bool:
        return self.is_from_expected_source and self.is_unmodified_original


def check_provenance(data: bytes) -> ProvenanceResult:
    """Inspect embedded metadata. Never raises; unreadable input yields both flags false."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            exif = img.getexif()
            xmp = _read_xmp(img.info)
            credit = _xmp_property(xmp, "Credit")
            has_dimensions = all(
                exif.get(tag) for tag in (_EXIF_IMAGE_WIDTH, _EXIF_IMAGE_HEIGHT)
            ) or all(_xmp_property(xmp, name) for name in _XMP_DIMENSION_PROPERTIES)
    except Exception as exc:
        Log.debug(f"Provenance check failed: {exc}")
        return ProvenanceResult(False, False)
    return ProvenanceResult(
        is_from_expected_source=credit == EXPECTED_CREDIT,
        is_unmodified_original=has_dimensions,
    )


def describe_provenance(result: ProvenanceResult) -> str:
    """Return the user-facing warning, or an empty string when the check passed."""
    if not result.is_from_expected_source:
        return NOT_EXPECTED_SOURCE_MESSAGE
    if not result.is_unmodified_original:
        return NOT_ORIGINAL_MESSAGE
    return ""


def _read_xmp(info: dict[str, object]) -> str:
    for key in _XMP_INFO_KEYS:
        packet = info.get(key)
        if packet:
            return packet.decode("utf-8", errors="ignore") if isinstance(packet, bytes) else str(packet)
    return ""


def _xmp_property(xmp: str, name: str) -> str | None:
    """Value of an XMP property written either as an attribute or as an element."""
    if not xmp:
        return None
    match = re.search(rf"\b(?:[\w.-]+:)?{name}\s*=\s*\"([^\"]*)\"", xmp) or re.search(
        rf"<(?:[\w.-]+:)?{name}>\s*(?:<[^>]+>\s*)*([^<]+?)\s*<", xmp, re.S
    )
    if match is None:
        return None
    return match.group(1).strip()
