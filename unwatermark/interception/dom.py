import asyncio
import weakref
from enum import StrEnum

from unwatermark.engine.handle import EngineHandle
from unwatermark.imaging.codec import PNG_MEDIA_TYPE
from unwatermark.interception.cleaning import clean_image_bytes
from unwatermark.interception.debounce import Debouncer, TimerFactory, loop_timer
from unwatermark.interception.document import Document, Element
from unwatermark.interception.fetcher import ImageFetcher
from unwatermark.interception.urls import canonical_size_url
from unwatermark.logging.logger import Log
from unwatermark.pipeline.references import ReferenceRegistry

GENERATED_CONTAINER_TAGS = frozenset({"generated-image"})
GENERATED_CONTAINER_CLASSES = frozenset({"generated-image-container"})


class DomState(StrEnum):
    UNPROCESSED = "unprocessed"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class DomWatcher:
    """Finds generated images in a document and swaps in cleaned versions.

    Processing state lives in watcher-owned maps keyed weakly by element, so
    nothing is written onto the page for bookkeeping. An element is
    ``processing`` exactly while it is in the in-flight set. A failed element
    is retried only once its ``src`` changes.
    """

    def __init__(
        self,
        document: Document,
        engine: EngineHandle,
        fetcher: ImageFetcher,
        references: ReferenceRegistry,
        *,
        asset_host: str,
        debounce_seconds: float = 0.1,
        timer: TimerFactory = loop_timer,
        timeout_seconds: float | None = None,
    ) -> None:
        self._document = document
        self._engine = engine
        self._fetcher = fetcher
        self._references = references
        self._asset_host = asset_host
        self._timeout_seconds = timeout_seconds
        self._debouncer = Debouncer(self.scan, debounce_seconds, timer)
        self._states: weakref.WeakKeyDictionary[Element, DomState] = weakref.WeakKeyDictionary()
        self._failed_sources: weakref.WeakKeyDictionary[Element, str] = weakref.WeakKeyDictionary()
        self._cleaned_references: weakref.WeakKeyDictionary[Element, str] = (
            weakref.WeakKeyDictionary()
        )
        self._in_flight: set[Element] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> frozenset[Element]:
        return frozenset(self._in_flight)

    def state_of(self, element: Element) -> DomState:
        return self._states.get(element, DomState.UNPROCESSED)

    def is_eligible(self, element: Element) -> bool:
        return (
            element.tag == "img"
            and self._asset_host in element.src
            and element.closest(GENERATED_CONTAINER_TAGS, GENERATED_CONTAINER_CLASSES) is not None
        )

    def find_candidates(self) -> list[Element]:
        candidates = []
        for element in self._document.images():
            if not self.is_eligible(element) or element in self._in_flight:
                continue
            if (
                self.state_of(element) is DomState.FAILED
                and self._failed_sources.get(element) == element.src
            ):
                continue
            candidates.append(element)
        return candidates

    def notify_mutation(self) -> None:
        """Mutation hook: schedules a debounced rescan."""
        self._debouncer.trigger()

    def scan(self) -> list[asyncio.Task[None]]:
        """Start processing every current candidate. Must run inside the event loop."""
        if not self._engine.ready:
            return []
        candidates = self.find_candidates()
        if not candidates:
            return []
        Log.info(f"Found {len(candidates)} images to process")
        started = []
        for element in candidates:
            task = asyncio.create_task(self.process_element(element))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            started.append(task)
        return started

    async def process_element(self, element: Element) -> None:
        engine = self._engine.engine
        if engine is None or element in self._in_flight:
            return

        self._in_flight.add(element)
        self._states[element] = DomState.PROCESSING
        original_src = element.src
        try:
            element.src = ""
            data = await self._fetcher.fetch(canonical_size_url(original_src))
            cleaned = await clean_image_bytes(engine, data, self._timeout_seconds)
            self._replace_source(element, self._references.create(cleaned, PNG_MEDIA_TYPE))
            self._states[element] = DomState.DONE
            Log.info("Processed image")
        except Exception as exc:
            Log.warning(f"Failed to process image: {exc}")
            self._mark_failed(element, original_src)
        finally:
            if self._states.get(element) is DomState.PROCESSING:
                self._mark_failed(element, original_src)
            self._in_flight.discard(element)

    async def drain(self) -> None:
        """Wait until every started processing task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        self._debouncer.cancel()

    def _replace_source(self, element: Element, reference: str) -> None:
        previous = self._cleaned_references.get(element)
        element.src = reference
        self._cleaned_references[element] = reference
        if previous is not None:
            self._references.revoke(previous)

    def _mark_failed(self, element: Element, original_src: str) -> None:
        self._states[element] = DomState.FAILED
        self._failed_sources[element] = original_src
        element.src = original_src
