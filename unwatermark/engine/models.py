from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    """Top-left corner of the watermark in image pixel coordinates."""

    x: int
    y: int


@dataclass(frozen=True)
class WatermarkGeometry:
    """Square watermark placement derived from the image dimensions."""

    size: int
    position: Position
