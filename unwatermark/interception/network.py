from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence

import httpx

from unwatermark.engine.handle import EngineHandle
from unwatermark.interception.cleaning import clean_image_bytes
from unwatermark.interception.urls import canonical_size_url, is_generated_asset_url
from unwatermark.logging.logger import Log

CallNext = Callable[[httpx.Request], Awaitable[httpx.Response]]

# Describe the original body encoding; httpx recomputes them for the new body.
_FRAMING_HEADERS = frozenset({"content-length", "content-encoding", "transfer-encoding"})


class RequestInterceptor(ABC):
    """One link of the interception chain."""

    @abstractmethod
    async def intercept(self, request: httpx.Request, call_next: CallNext) -> httpx.Response:
        """Handle ``request``, delegating to ``call_next`` for the real call."""


class InterceptingTransport(httpx.AsyncBaseTransport):
    """Runs requests through a chain of interceptors before the wrapped transport."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        interceptors: Sequence[RequestInterceptor] = (),
    ) -> None:
        self._transport = transport
        self._interceptors = list(interceptors)

    def add(self, interceptor: RequestInterceptor) -> None:
        self._interceptors.append(interceptor)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._dispatch(0, request)

    async def _dispatch(self, index: int, request: httpx.Request) -> httpx.Response:
        if index >= len(self._interceptors):
            return await self._transport.handle_async_request(request)

        async def call_next(next_request: httpx.Request) -> httpx.Response:
            return await self._dispatch(index + 1, next_request)

        return await self._interceptors[index].intercept(request, call_next)

    async def aclose(self) -> None:
        await self._transport.aclose()


class WatermarkInterceptor(RequestInterceptor):
    """Replaces generated-image responses with cleaned PNGs.

    Matching requests are redirected to the full-size variant. The cleaned
    body is returned only when the real call succeeded and cleaning worked;
    otherwise the real response is returned as is. Transport errors
    propagate unchanged.
    """

    def __init__(self, engine: EngineHandle, timeout_seconds: float | None = None) -> None:
        self._engine = engine
        self._timeout_seconds = timeout_seconds

    async def intercept(self, request: httpx.Request, call_next: CallNext) -> httpx.Response:
        url = str(request.url)
        if not is_generated_asset_url(url):
            return await call_next(request)

        Log.info(f"Intercepting {url}")
        canonical = canonical_size_url(url)
        if canonical != url:
            request = _with_url(request, canonical)

        response = await call_next(request)
        engine = self._engine.engine
        if engine is None or not response.is_success:
            return response

        body = await response.aread()
        try:
            cleaned = await clean_image_bytes(engine, body, self._timeout_seconds)
        except Exception as exc:
            Log.warning(f"Processing failed for {canonical}: {exc}")
            return response

        return httpx.Response(
            status_code=response.status_code,
            headers=[
                (name, value)
                for name, value in response.headers.multi_items()
                if name.lower() not in _FRAMING_HEADERS
            ],
            content=cleaned,
            extensions=response.extensions,
        )


def _with_url(request: httpx.Request, url: str) -> httpx.Request:
    return httpx.Request(
        request.method,
        url,
        headers=request.headers,
        stream=request.stream,
        extensions=request.extensions,
    )
