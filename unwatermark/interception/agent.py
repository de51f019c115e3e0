from collections.abc import Callable

import httpx

from unwatermark.config.settings import Settings
from unwatermark.engine.exceptions import EngineInitializationError
from unwatermark.engine.handle import EngineHandle
from unwatermark.interception.debounce import TimerFactory, loop_timer
from unwatermark.interception.document import Document
from unwatermark.interception.dom import DomWatcher
from unwatermark.interception.fetcher import ImageFetcher
from unwatermark.interception.network import InterceptingTransport, WatermarkInterceptor
from unwatermark.logging.logger import Log
from unwatermark.pipeline.references import ReferenceRegistry


class InterceptionAgent:
    """Wires the network interceptor and the DOM watcher around one engine.

    ``client`` is usable right away; until ``start()`` has built the engine
    its requests pass through untouched.
    """

    def __init__(
        self,
        settings: Settings,
        document: Document,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        fetch_client: httpx.AsyncClient | None = None,
        references: ReferenceRegistry | None = None,
        timer: TimerFactory = loop_timer,
    ) -> None:
        self._settings = settings
        self._document = document
        self._unsubscribe: Callable[[], None] | None = None
        self.engine = EngineHandle()
        self.references = references if references is not None else ReferenceRegistry()
        self.transport = InterceptingTransport(
            transport if transport is not None else httpx.AsyncHTTPTransport(),
            [WatermarkInterceptor(self.engine, settings.engine_timeout_seconds)],
        )
        self.client = httpx.AsyncClient(
            transport=self.transport,
            timeout=settings.fetch_timeout_seconds,
            follow_redirects=True,
        )
        self.fetcher = ImageFetcher(
            fetch_client
            if fetch_client is not None
            else httpx.AsyncClient(timeout=settings.fetch_timeout_seconds, follow_redirects=True)
        )
        self.watcher = DomWatcher(
            document,
            self.engine,
            self.fetcher,
            self.references,
            asset_host=settings.asset_host,
            debounce_seconds=settings.dom_debounce_seconds,
            timer=timer,
            timeout_seconds=settings.engine_timeout_seconds,
        )

    async def start(self) -> None:
        """Build the engine, process images already present, then watch for more.

        Raises:
            EngineInitializationError: if the engine cannot be built.
        """
        Log.info("Initializing interception agent")
        try:
            await self.engine.initialize(self._settings)
        except EngineInitializationError as exc:
            Log.error(f"Initialization failed: {exc}")
            raise
        self.watcher.scan()
        self._unsubscribe = self._document.observe(self.watcher.notify_mutation)
        Log.info("Interception agent ready")

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.watcher.close()
        await self.watcher.drain()
        await self.client.aclose()
        await self.fetcher.aclose()
        Log.info("Interception agent stopped")
