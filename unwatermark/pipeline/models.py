from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from PIL import Image

from unwatermark.engine.models import WatermarkGeometry
from unwatermark.pipeline.exceptions import InvalidStatusTransitionError


@dataclass(frozen=True)
class SourceFile:
    """An uploaded file: name, declared media type and raw bytes."""

    name: str
    media_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path, media_type: str) -> "SourceFile":
        return cls(name=path.name, media_type=media_type, data=path.read_bytes())


class ItemStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.PROCESSING, ItemStatus.ERROR}),
    ItemStatus.PROCESSING: frozenset({ItemStatus.COMPLETED, ItemStatus.ERROR}),
    ItemStatus.COMPLETED: frozenset(),
    ItemStatus.ERROR: frozenset(),
}


@dataclass(eq=False)
class ImageItem:
    """One unit of batch work.

    ``processed_artifact`` is only ever assigned together with the
    ``completed`` status, through ``complete()``.
    """

    id: int
    source_file: SourceFile
    display_name: str
    status: ItemStatus = ItemStatus.PENDING
    original_image: Image.Image | None = None
    processed_artifact: bytes | None = None
    original_reference: str | None = None
    processed_reference: str | None = None
    geometry: WatermarkGeometry | None = None
    provenance_warning: str = ""
    error_message: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status in (ItemStatus.COMPLETED, ItemStatus.ERROR)

    def start(self) -> None:
        self._transition(ItemStatus.PROCESSING)

    def complete(self, artifact: bytes, reference: str) -> None:
        self._transition(ItemStatus.COMPLETED)
        self.processed_artifact = artifact
        self.processed_reference = reference

    def fail(self, message: str) -> None:
        self._transition(ItemStatus.ERROR)
        self.error_message = message

    def _transition(self, target: ItemStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(
                f"Item {self.id} cannot move from {self.status} to {target}"
            )
        self.status = target


@dataclass(frozen=True)
class Archive:
    """A packaged bundle ready to be written or downloaded."""

    name: str
    data: bytes
    entry_names: list[str] = field(default_factory=list)
