"""HTTP fetcher for yande.re pages."""

import logging

import httpx

from yandere_links.config import FetcherConfig
from yandere_links.fetcher.base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)


class HttpFetcher(BaseFetcher):
    """Plain HTTP fetcher backed by a pooled ``httpx.AsyncClient``.

    The client is opened on the first request. Once ``aclose`` has run the
    fetcher stays closed: later requests fail without opening a new client,
    so pages still borrowing it cannot leak a connection pool.
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.config.user_agent},
                follow_redirects=True,
                timeout=self.config.timeout_ms / 1000,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Cancel outstanding requests and close the HTTP client for good."""
        self._closed = True
        await super().aclose()
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _fetch(self, url: str) -> FetchResult:
        """Fetch a page via HTTP."""
        if self._closed:
            logger.debug("GET %s refused: fetcher is closed", url)
            return FetchResult(url=url, final_url=url, html="", status_code=0, error="Fetcher is closed")
        try:
            response = await self._get_client().get(url)
            logger.debug("GET %s -> %d", url, response.status_code)
            return FetchResult(
                url=url,
                final_url=str(response.url),
                html=response.text,
                status_code=response.status_code,
            )

        except Exception as e:
            logger.debug("GET %s failed: %s", url, e)
            return FetchResult(
                url=url,
                final_url=url,
                html="",
                status_code=0,
                error=str(e) or type(e).__name__,
            )
