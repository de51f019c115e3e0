import httpx

from unwatermark.interception.exceptions import FetchError


class ImageFetcher:
    """Privileged fetch channel for page images.

    Uses its own client, outside the interception chain, so fetched bytes
    are the untouched originals.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to fetch {url}: {exc}") from exc
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
