"""Base class for page fetchers."""

import asyncio
from abc import ABC, abstractmethod

from pydantic import BaseModel

from yandere_links.config import FetcherConfig


class FetchResult(BaseModel):
    """Result of fetching a page."""

    url: str
    final_url: str  # After redirects
    html: str
    status_code: int
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status_code >= 200 and self.status_code < 400 and not self.error

    @property
    def error_message(self) -> str:
        return self.error or f"HTTP {self.status_code}"


class BaseFetcher(ABC):
    """Abstract base class for page fetchers.

    ``fetch`` reports transport errors through the returned ``FetchResult``
    and only raises ``asyncio.CancelledError``. Every call is tracked while
    it runs so ``cancel_pending`` can abort the outstanding requests without
    closing the fetcher.
    """

    def __init__(self, config: FetcherConfig | None = None):
        self.config = config or FetcherConfig()
        self._pending: set[asyncio.Task] = set()

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page and return its HTML content."""
        task = asyncio.current_task()
        if task is not None:
            self._pending.add(task)
        try:
            return await self._fetch(url)
        finally:
            if task is not None:
                self._pending.discard(task)

    @abstractmethod
    async def _fetch(self, url: str) -> FetchResult:
        """Perform the request."""
        pass

    def cancel_pending(self) -> int:
        """Cancel every in-flight request. Returns how many were canceled."""
        pending = [t for t in self._pending if not t.done()]
        for task in pending:
            task.cancel()
        return len(pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def aclose(self) -> None:
        """Release the transport."""
        self.cancel_pending()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
