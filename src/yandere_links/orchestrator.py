"""Crawl orchestrator that schedules page extraction across workers."""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from yandere_links.config import CrawlConfig
from yandere_links.extractor import LinkExtractor, ResultSet
from yandere_links.fetcher import BaseFetcher, FetchResult
from yandere_links.page import FetchState, Page
from yandere_links.site import is_pools_page
from yandere_links.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    """State of a crawl invocation."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELED = "canceled"


@dataclass
class CrawlSummary:
    """Counters collected while a crawl runs."""

    dispatched: int = 0
    completed: int = 0
    failed: int = 0
    canceled: int = 0
    skipped: int = 0
    links_found: int = 0
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def duration(self) -> float:
        if self.started_at and self.finished_at:
            return self.finished_at - self.started_at
        return 0.0


class CrawlOrchestrator:
    """Coordinates extraction of single pages and page ranges.

    Work is dispatched fire-and-forget onto tasks bounded by a
    ``RateLimiter``; ``await_completion`` polls the outstanding-work counter
    until every dispatched worker has finished. Fetch failures never abort a
    crawl: a page that cannot be fetched simply contributes no links.

    Pages handed in by the caller are rebound to this orchestrator's fetcher
    and cancellation event (their cached text is reused) and are never
    closed here. Pages the orchestrator creates itself are closed by the
    worker that processed them.
    """

    _NOT_STARTED = -1

    def __init__(
        self,
        fetcher: BaseFetcher,
        config: CrawlConfig | None = None,
        results: ResultSet | None = None,
        extractor: LinkExtractor | None = None,
    ):
        self.config = config or CrawlConfig()
        self.fetcher = fetcher
        self.results = results if results is not None else ResultSet()
        self.extractor = extractor or LinkExtractor()
        self.rate_limiter = RateLimiter(
            self.config.delay_seconds,
            self.config.max_workers,
        )
        self.summary = CrawlSummary()
        self._cancel_event = asyncio.Event()
        # Only touched from the event loop thread, so plain int updates are atomic
        self._outstanding = self._NOT_STARTED
        self._workers: set[asyncio.Task] = set()

    @property
    def state(self) -> CrawlState:
        if self._cancel_event.is_set():
            return CrawlState.CANCELED
        if self._outstanding == self._NOT_STARTED:
            return CrawlState.IDLE
        if self._outstanding > 0:
            return CrawlState.RUNNING
        return CrawlState.COMPLETED

    @property
    def outstanding(self) -> int:
        return self._outstanding

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    async def run(self, pages: Iterable[Page], count: int | None = None) -> ResultSet:
        """Extract every start page (or page range) and wait for the workers."""
        count = self.config.page_count if count is None else count
        for page in pages:
            if self._cancel_event.is_set():
                break
            if count == 0:
                await self.extract_single_page(page)
            else:
                await self.enumerate_pages(page, count)
        return await self.await_completion()

    async def extract_single_page(self, page: Page) -> None:
        """Dispatch workers for one page, one per pool if it is a pool listing."""
        bound = self._bind(page)
        await self._extract_single(bound, owned=bound is not page)

    async def enumerate_pages(self, start: Page, count: int = -1) -> None:
        """Dispatch a run of listing pages beginning at ``start``.

        ``count < 0`` runs to the last page, ``count == 0`` covers only the
        start page and ``count > 0`` covers that many pages. Pages are
        reached by index jumps rather than next-page links, so none of them
        waits for another to load.
        """
        bound = self._bind(start)
        first = bound.index
        if count < 0:
            count = await bound.page_count() - first + 1
        elif count == 0:
            count = 1
        logger.info("Enumerating %s: pages %d..%d", start.link, first, first + count - 1)

        pages: list[Page] = []
        if count >= 1:
            pages = [bound] + [bound.page_at(i) for i in range(first + 1, first + count)]
        owned_start = bound is not start
        for i, page in enumerate(pages):
            if self._cancel_event.is_set():
                logger.info("Cancellation requested, not dispatching %d remaining pages", len(pages) - i)
                for rest in pages[i:]:
                    if rest is not bound or owned_start:
                        await rest.aclose()
                break
            await self._extract_single(page, owned=page is not bound or owned_start)
        if not pages and owned_start:
            await bound.aclose()

    async def await_completion(self) -> ResultSet:
        """Wait until no dispatched work is outstanding, then return the results."""
        interval = self.config.poll_interval_ms / 1000
        while self._outstanding > 0:
            await asyncio.sleep(interval)
        return self.results

    def request_cancellation(self) -> None:
        """Stop dispatching new pages and abort in-flight fetches."""
        if self._cancel_event.is_set():
            return
        self._cancel_event.set()
        aborted = self.fetcher.cancel_pending()
        logger.info(
            "Cancellation requested: %d fetches aborted, %d workers outstanding",
            aborted, max(self._outstanding, 0),
        )

    def _bind(self, page: Page) -> Page:
        if page.fetcher is self.fetcher and page.cancel_event is self._cancel_event:
            return page
        return page.clone(
            fetcher=self.fetcher,
            cancel_event=self._cancel_event,
            on_fetch_failed=self._on_fetch_failed,
            lazy=True,
        )

    async def _extract_single(self, page: Page, owned: bool) -> None:
        if self._cancel_event.is_set():
            if owned:
                await page.aclose()
            return
        if not is_pools_page(page):
            self._dispatch(page, owned)
            return

        # The listing fetch obeys the same start spacing and back-off as workers
        async with self.rate_limiter.slot():
            pool_pages = await page.pool_pages()
        if owned:
            await page.aclose()
        logger.info("%s lists %d pools", page.link, len(pool_pages))
        for pool_page in pool_pages:
            if self._cancel_event.is_set():
                break
            self._dispatch(pool_page, owned=True)

    def _dispatch(self, page: Page, owned: bool) -> None:
        if self._outstanding == self._NOT_STARTED:
            self._outstanding = 0
            self.summary.started_at = time.monotonic()
        self._outstanding += 1
        self.summary.dispatched += 1
        task = asyncio.get_running_loop().create_task(
            self._work(page, owned), name=f"extract {page.link}"
        )
        self._workers.add(task)
        task.add_done_callback(self._workers.discard)

    async def _work(self, page: Page, owned: bool) -> None:
        try:
            async with self.rate_limiter.slot():
                if self._cancel_event.is_set():
                    self.summary.skipped += 1
                    return
                added = await self.extractor.extract(page, self.results)
                self.summary.links_found += len(added)
                self._record(page)
        except Exception:
            logger.exception("Extraction failed for %s", page.link)
            self.summary.failed += 1
        finally:
            try:
                if owned:
                    await page.aclose()
            finally:
                self._outstanding -= 1
                if self._outstanding == 0:
                    self.summary.finished_at = time.monotonic()

    def _record(self, page: Page) -> None:
        if page.state is FetchState.COMPLETED:
            self.summary.completed += 1
            self.rate_limiter.ease_off()
        elif page.state is FetchState.CANCELED:
            self.summary.canceled += 1
        else:
            self.summary.failed += 1

    def _on_fetch_failed(self, page: Page, result: FetchResult | None) -> None:
        if result is not None and result.status_code == 429:
            self.rate_limiter.back_off()
            logger.warning(
                "429 from %s, delay now %.2fs", page.link, self.rate_limiter.delay_seconds
            )
