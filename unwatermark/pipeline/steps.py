import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import Image

from unwatermark.engine.base import BaseWatermarkEngine, remove_watermark
from unwatermark.engine.models import WatermarkGeometry
from unwatermark.imaging.codec import PNG_MEDIA_TYPE, decode_image_async, encode_png_async
from unwatermark.imaging.provenance import (
    ProvenanceResult,
    check_provenance,
    describe_provenance,
)
from unwatermark.logging.logger import Log
from unwatermark.pipeline.models import ImageItem
from unwatermark.pipeline.references import ReferenceRegistry


@dataclass(slots=True)
class SingleItemState:
    """Accumulates stage outputs as one item moves through the pipeline.

    Stages that finished before a failure keep their outputs here.
    """

    item: ImageItem
    provenance: ProvenanceResult | None = None
    provenance_message: str = ""
    geometry: WatermarkGeometry | None = None
    processed_image: Image.Image | None = None
    error_message: str = ""

    @property
    def dimensions(self) -> tuple[int, int] | None:
        if self.item.original_image is None:
            return None
        return self.item.original_image.size

    @property
    def succeeded(self) -> bool:
        return self.item.processed_reference is not None


class SingleItemStep(ABC):
    @abstractmethod
    async def run(self, state: SingleItemState) -> SingleItemState:
        raise NotImplementedError


class MarkProcessingStep(SingleItemStep):
    async def run(self, state: SingleItemState) -> SingleItemState:
        state.item.start()
        return state


class MarkFailedStep(SingleItemStep):
    async def run(self, state: SingleItemState) -> SingleItemState:
        if not state.item.is_terminal:
            state.item.fail(state.error_message)
        Log.error(
            f"Processing {state.item.display_name} failed: {state.error_message}",
            item_id=state.item.id,
        )
        return state


class DecodeStep(SingleItemStep):
    def __init__(self, references: ReferenceRegistry) -> None:
        self._references = references

    async def run(self, state: SingleItemState) -> SingleItemState:
        source = state.item.source_file
        state.item.original_image = await decode_image_async(source.data)
        state.item.original_reference = self._references.create(source.data, source.media_type)
        width, height = state.item.original_image.size
        Log.info(f"Decoded {state.item.display_name}: {width}x{height}")
        return state


class ProvenanceStep(SingleItemStep):
    async def run(self, state: SingleItemState) -> SingleItemState:
        state.provenance = await asyncio.to_thread(
            check_provenance, state.item.source_file.data
        )
        state.provenance_message = describe_provenance(state.provenance)
        state.item.provenance_warning = state.provenance_message
        return state


class GeometryStep(SingleItemStep):
    def __init__(self, engine: BaseWatermarkEngine) -> None:
        self._engine = engine

    async def run(self, state: SingleItemState) -> SingleItemState:
        if state.item.original_image is None:
            raise ValueError("SingleItemState.item.original_image must be set before geometry")
        width, height = state.item.original_image.size
        state.geometry = self._engine.get_watermark_info(width, height)
        state.item.geometry = state.geometry
        return state


class TransformStep(SingleItemStep):
    def __init__(
        self,
        engine: BaseWatermarkEngine,
        timeout_seconds: float | None = None,
    ) -> None:
        self._engine = engine
        self._timeout_seconds = timeout_seconds

    async def run(self, state: SingleItemState) -> SingleItemState:
        if state.item.original_image is None:
            raise ValueError("SingleItemState.item.original_image must be set before transform")
        state.processed_image = await remove_watermark(
            self._engine, state.item.original_image, self._timeout_seconds
        )
        return state


class ExposeStep(SingleItemStep):
    def __init__(self, references: ReferenceRegistry) -> None:
        self._references = references

    async def run(self, state: SingleItemState) -> SingleItemState:
        if state.processed_image is None:
            raise ValueError("SingleItemState.processed_image must be set before exposure")
        artifact = await encode_png_async(state.processed_image)
        state.item.complete(artifact, self._references.create(artifact, PNG_MEDIA_TYPE))
        Log.info(f"Processed {state.item.display_name}", item_id=state.item.id)
        return state
