from unwatermark.logging.logger import Log
from unwatermark.pipeline.context import PipelineContext
from unwatermark.pipeline.models import ImageItem
from unwatermark.pipeline.steps import (
    DecodeStep,
    ExposeStep,
    GeometryStep,
    MarkFailedStep,
    MarkProcessingStep,
    ProvenanceStep,
    SingleItemState,
    SingleItemStep,
    TransformStep,
)


class SingleItemPipeline:
    """Runs one item through its steps in order.

    Pipeline: mark processing -> decode -> provenance -> geometry ->
    transform -> expose. The first failing step stops the run; the item is
    marked failed and the partially filled state is returned.
    """

    def __init__(self, steps: list[SingleItemStep], failed_step: SingleItemStep) -> None:
        self._steps = steps
        self._failed_step = failed_step

    async def process(self, item: ImageItem) -> SingleItemState:
        state = SingleItemState(item=item)
        Log.info(f"Processing single image {item.display_name}", item_id=item.id)
        try:
            for step in self._steps:
                state = await step.run(state)
        except Exception as exc:
            state.error_message = str(exc)
            await self._failed_step.run(state)
        return state


def build_single_pipeline(context: PipelineContext) -> SingleItemPipeline:
    """Build a SingleItemPipeline bound to the context's engine and references."""
    return SingleItemPipeline(
        steps=[
            MarkProcessingStep(),
            DecodeStep(context.references),
            ProvenanceStep(),
            GeometryStep(context.engine),
            TransformStep(context.engine, context.settings.engine_timeout_seconds),
            ExposeStep(context.references),
        ],
        failed_step=MarkFailedStep(),
    )
