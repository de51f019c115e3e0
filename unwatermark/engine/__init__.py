from unwatermark.engine.base import BaseWatermarkEngine, remove_watermark
from unwatermark.engine.factory import EngineFactory
from unwatermark.engine.handle import EngineHandle
from unwatermark.engine.models import Position, WatermarkGeometry

__all__ = [
    "BaseWatermarkEngine",
    "EngineFactory",
    "EngineHandle",
    "Position",
    "WatermarkGeometry",
    "remove_watermark",
]
