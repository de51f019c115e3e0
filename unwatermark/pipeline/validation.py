from collections.abc import Iterable

from unwatermark.config.settings import Settings
from unwatermark.logging.logger import Log
from unwatermark.pipeline.models import SourceFile


def is_acceptable(file: SourceFile, settings: Settings) -> bool:
    """True when the media type is accepted and the size is within the ceiling (inclusive)."""
    if file.media_type.lower() not in settings.accepted_media_types:
        return False
    return file.size <= settings.max_file_size_bytes


def filter_acceptable(files: Iterable[SourceFile], settings: Settings) -> list[SourceFile]:
    """Drop files failing the type or size checks. Rejections are logged, not raised."""
    accepted: list[SourceFile] = []
    for file in files:
        if is_acceptable(file, settings):
            accepted.append(file)
        else:
            Log.debug(
                f"Rejected {file.name}: type={file.media_type} size={file.size}"
            )
    return accepted
