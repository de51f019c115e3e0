import asyncio
from collections.abc import Callable, Iterable

from unwatermark.engine.base import remove_watermark
from unwatermark.imaging.codec import PNG_MEDIA_TYPE, decode_image_async, encode_png_async
from unwatermark.imaging.provenance import check_provenance, describe_provenance
from unwatermark.logging.logger import Log
from unwatermark.pipeline.context import PipelineContext
from unwatermark.pipeline.models import ImageItem, ItemStatus, SourceFile
from unwatermark.pipeline.validation import filter_acceptable

ItemListener = Callable[[ImageItem], None]


class BatchPipeline:
    """Drives a queue of image items through decode and transform.

    Decoding runs for all items at once. Transforms run in chunks of
    ``settings.batch_chunk_size``: items inside a chunk run concurrently and
    the next chunk starts only once every item of the current one is terminal.
    A failing item never aborts its siblings.

    Loading a new queue supersedes the current one. A run still working on
    superseded items stops touching them and creates no further references
    for them.
    """

    def __init__(
        self,
        context: PipelineContext,
        listener: ItemListener | None = None,
    ) -> None:
        self._context = context
        self._listener = listener
        self._annotations: set[asyncio.Task[None]] = set()
        self._current_ids: set[int] = set()
        self.items: list[ImageItem] = []

    @property
    def completed_count(self) -> int:
        return sum(1 for item in self.items if item.status is ItemStatus.COMPLETED)

    @property
    def export_available(self) -> bool:
        return self.completed_count > 0

    def load(self, files: Iterable[SourceFile]) -> list[ImageItem]:
        """Build a new queue from ``files``, superseding the current one.

        Files failing validation are dropped. If none survive, the current
        queue is kept and an empty list is returned.
        """
        accepted = filter_acceptable(files, self._context.settings)
        if not accepted:
            Log.info("No acceptable files in upload, keeping current batch")
            return []
        self.release()
        self.items = [
            ImageItem(
                id=self._context.next_item_id(),
                source_file=file,
                display_name=file.name,
            )
            for file in accepted
        ]
        self._current_ids = {item.id for item in self.items}
        Log.info(f"Queued {len(self.items)} images")
        return self.items

    def is_current(self, item: ImageItem) -> bool:
        """Whether ``item`` belongs to the queue loaded last."""
        return item.id in self._current_ids

    def chunks(self) -> list[list[ImageItem]]:
        return self._chunk(self.items)

    async def run(self) -> list[ImageItem]:
        """Process the current queue until every item is terminal."""
        items = list(self.items)
        await asyncio.gather(*(self.decode_item(item) for item in items))
        for index, chunk in enumerate(self._chunk(items)):
            if not any(self.is_current(item) for item in chunk):
                Log.info("Batch superseded, stopping")
                break
            Log.debug(f"Starting chunk {index + 1} with {len(chunk)} items")
            await asyncio.gather(*(self.process_item(item) for item in chunk))
        if self._annotations:
            await asyncio.gather(*list(self._annotations))
        completed = sum(1 for item in items if item.status is ItemStatus.COMPLETED)
        Log.info(f"Batch finished: {completed}/{len(items)} completed")
        return items

    def release(self) -> None:
        """Revoke every reference held by the current queue and clear it."""
        for item in self.items:
            self.release_item(item)
        self.items = []
        self._current_ids = set()

    def release_item(self, item: ImageItem) -> None:
        references = self._context.references
        if item.original_reference is not None:
            references.revoke(item.original_reference)
            item.original_reference = None
        if item.processed_reference is not None:
            references.revoke(item.processed_reference)
            item.processed_reference = None

    async def decode_item(self, item: ImageItem) -> None:
        if not self.is_current(item):
            return
        try:
            image = await decode_image_async(item.source_file.data)
        except Exception as exc:
            if self.is_current(item):
                Log.error(f"Failed to decode {item.display_name}: {exc}", item_id=item.id)
                item.fail(str(exc))
                self._notify(item)
            return
        if not self.is_current(item):
            Log.debug(f"Dropping decoded {item.display_name}: batch superseded", item_id=item.id)
            return
        item.original_image = image
        item.original_reference = self._context.references.create(
            item.source_file.data, item.source_file.media_type
        )
        self._notify(item)

    async def process_item(self, item: ImageItem) -> None:
        if (
            not self.is_current(item)
            or item.status is not ItemStatus.PENDING
            or item.original_image is None
        ):
            return

        item.start()
        self._notify(item)

        engine = self._context.engine
        try:
            cleaned = await remove_watermark(
                engine,
                item.original_image,
                self._context.settings.engine_timeout_seconds,
            )
            artifact = await encode_png_async(cleaned)
            width, height = item.original_image.size
            geometry = engine.get_watermark_info(width, height)
        except Exception as exc:
            if self.is_current(item):
                Log.error(f"Failed to process {item.display_name}: {exc}", item_id=item.id)
                item.fail(str(exc))
                self._notify(item)
            return

        if not self.is_current(item):
            Log.debug(f"Dropping result for {item.display_name}: batch superseded", item_id=item.id)
            return
        item.complete(artifact, self._context.references.create(artifact, PNG_MEDIA_TYPE))
        item.geometry = geometry
        Log.info(f"Processed {item.display_name}", item_id=item.id)
        self._notify(item)
        self._schedule_provenance(item)

    def _chunk(self, items: list[ImageItem]) -> list[list[ImageItem]]:
        size = max(1, self._context.settings.batch_chunk_size)
        return [items[i : i + size] for i in range(0, len(items), size)]

    def _schedule_provenance(self, item: ImageItem) -> None:
        task = asyncio.create_task(self._annotate_provenance(item))
        self._annotations.add(task)
        task.add_done_callback(self._annotations.discard)

    async def _annotate_provenance(self, item: ImageItem) -> None:
        result = await asyncio.to_thread(check_provenance, item.source_file.data)
        if result.passed or not self.is_current(item):
            return
        item.provenance_warning = describe_provenance(result)
        self._notify(item)

    def _notify(self, item: ImageItem) -> None:
        if self._listener is None:
            return
        try:
            self._listener(item)
        except Exception as exc:
            Log.error(f"Item listener failed: {exc}", item_id=item.id)
