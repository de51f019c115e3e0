import io
import re
import time
import zipfile
from collections.abc import Callable, Iterable

from unwatermark.logging.logger import Log
from unwatermark.pipeline.models import Archive, ImageItem, ItemStatus

DEFAULT_PREFIX = "unwatermarked_"

_EXTENSION = re.compile(r"\.[^.]+$")


def output_filename(name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Name for a cleaned image: ``<prefix><name without extension>.png``."""
    return f"{prefix}{_EXTENSION.sub('', name)}.png"


class ArchivePackager:
    """Bundles completed items into one deflated ZIP archive.

    Each completed item becomes one entry named by ``output_filename``.
    Items whose names collide share that entry and the later item wins, so
    K completed items can yield fewer than K entries.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._prefix = prefix
        self._clock = clock

    def package(self, items: Iterable[ImageItem]) -> Archive | None:
        """Return the archive of completed items, or None when there are none.

        Items sharing an output name collapse to the last one.
        """
        entries: dict[str, bytes] = {}
        for item in items:
            if item.status is not ItemStatus.COMPLETED or item.processed_artifact is None:
                continue
            entries[output_filename(item.display_name, self._prefix)] = item.processed_artifact
        if not entries:
            Log.info("Nothing to package: no completed items")
            return None

        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in entries.items():
                zf.writestr(name, data)
        archive_name = f"{self._prefix}{int(self._clock() * 1000)}.zip"
        Log.info(f"Packaged {len(entries)} images into {archive_name}")
        return Archive(name=archive_name, data=buf.getvalue(), entry_names=list(entries))
