import itertools
from collections.abc import Iterator
from dataclasses import dataclass, field

from unwatermark.config.settings import Settings
from unwatermark.engine.base import BaseWatermarkEngine
from unwatermark.pipeline.references import ReferenceRegistry


@dataclass(slots=True)
class PipelineContext:
    """State shared by the pipelines of one session.

    Owned by whoever builds it; nothing here is process-global, so several
    independent sessions may coexist.
    """

    settings: Settings
    engine: BaseWatermarkEngine
    references: ReferenceRegistry = field(default_factory=ReferenceRegistry)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    def next_item_id(self) -> int:
        return next(self._ids)
