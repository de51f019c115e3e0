from collections.abc import Iterable

from unwatermark.archive.packager import ArchivePackager, output_filename
from unwatermark.logging.logger import Log
from unwatermark.pipeline.batch import BatchPipeline, ItemListener
from unwatermark.pipeline.context import PipelineContext
from unwatermark.pipeline.models import Archive, ImageItem, ItemStatus, SourceFile
from unwatermark.pipeline.single import build_single_pipeline
from unwatermark.pipeline.steps import SingleItemState


class UploadSession:
    """Entry point for uploaded files.

    One accepted file goes through the single-item pipeline for detailed
    feedback; several go through the batch pipeline. Each upload
    supersedes the previous one and releases its references.
    """

    def __init__(
        self,
        context: PipelineContext,
        listener: ItemListener | None = None,
    ) -> None:
        self._context = context
        self.batch = BatchPipeline(context, listener)
        self._single = build_single_pipeline(context)
        self._packager = ArchivePackager(prefix=context.settings.output_prefix)
        self.single_state: SingleItemState | None = None

    @property
    def items(self) -> list[ImageItem]:
        return self.batch.items

    async def handle_files(self, files: Iterable[SourceFile]) -> list[ImageItem]:
        items = self.batch.load(files)
        if not items:
            return []
        self.single_state = None
        if len(items) == 1:
            state = await self._single.process(items[0])
            if not self.batch.is_current(items[0]):
                Log.info(f"Discarding superseded result for {items[0].display_name}")
                self.batch.release_item(items[0])
                return []
            self.single_state = state
        else:
            await self.batch.run()
        return items

    def download(self, item: ImageItem) -> tuple[str, bytes] | None:
        """Filename and bytes for one completed item, or None if it has no artifact."""
        if item.status is not ItemStatus.COMPLETED or item.processed_artifact is None:
            return None
        return (
            output_filename(item.display_name, self._context.settings.output_prefix),
            item.processed_artifact,
        )

    def export_archive(self) -> Archive | None:
        return self._packager.package(self.batch.items)

    def reset(self) -> None:
        Log.info("Resetting upload session")
        self.batch.release()
        self.single_state = None
