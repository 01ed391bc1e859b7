"""A single yande.re page and the links embedded in it."""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

from yandere_links import site
from yandere_links.exceptions import InvalidArgumentError, PageDisposedError, PageIndexError
from yandere_links.fetcher import BaseFetcher, FetchResult, HttpFetcher
from yandere_links.sequence import PageSequence
from yandere_links.utils.url_utils import is_absolute_url, page_index, url_identity, with_page_index

logger = logging.getLogger(__name__)

FetchFailedHook = Callable[["Page", Optional[FetchResult]], None]

_NO_TEXT: Any = object()


class FetchState(str, Enum):
    """Lifecycle of a page's HTML fetch."""

    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


class Page:
    """One yande.re page: an immutable link plus its lazily fetched HTML.

    Constructing a page inside a running event loop starts the fetch right
    away unless ``lazy`` is set; otherwise the fetch starts on the first
    ``await page.text()``. Supplying ``text`` skips the network entirely.

    Every link view (``image_links``, ``page_count`` and the rest) is
    recomputed from the cached text on each call. A failed or canceled fetch
    leaves the text empty, so those views come back empty rather than
    raising; ``state`` tells the two cases apart.

    Pages compare equal when their links name the same resource: scheme,
    host, effective port and path match and the query parameters match
    regardless of order.

    Pages derived from this one (``page_at``, ``next_page``, ``pool_pages``
    and so on) share its fetcher, cancellation event and failure hook. A
    page that created its own fetcher closes it in ``aclose``.
    """

    _FETCH_ATTEMPTS = 2

    def __init__(
        self,
        link: str,
        text: str = _NO_TEXT,
        *,
        fetcher: BaseFetcher | None = None,
        cancel_event: asyncio.Event | None = None,
        on_fetch_failed: FetchFailedHook | None = None,
        lazy: bool = False,
    ):
        if not link or not isinstance(link, str):
            raise InvalidArgumentError("Page link must be a non-empty string")
        if not is_absolute_url(link):
            raise InvalidArgumentError(f"Page link is not an absolute URL: {link!r}")

        self._link = link
        self._identity = url_identity(link)
        self._fetcher = fetcher
        self._owns_fetcher = False
        self._cancel_event = cancel_event
        self._on_fetch_failed = on_fetch_failed
        self._lazy = lazy
        self._text_lock = asyncio.Lock()
        self._fetch_task: asyncio.Task | None = None
        self._text: str | None = None
        self._closed = False

        if text is _NO_TEXT:
            self._state = FetchState.NOT_STARTED
            if not lazy:
                self._start_fetch_if_running()
        else:
            if not isinstance(text, str):
                raise InvalidArgumentError("Page text must be a string")
            self._text = text
            self._state = FetchState.COMPLETED

    @property
    def link(self) -> str:
        return self._link

    @property
    def state(self) -> FetchState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def fetcher(self) -> BaseFetcher | None:
        return self._fetcher

    @property
    def cancel_event(self) -> asyncio.Event | None:
        return self._cancel_event

    @property
    def index(self) -> int:
        """1-based position of this page in its listing."""
        self._check_open()
        return page_index(self._link)

    # -- text ---------------------------------------------------------------

    async def text(self) -> str:
        """Return the page HTML, fetching it on first use.

        A failed fetch is re-issued once (not when the crawl has been
        canceled). Persistent failure and cancellation both yield "".
        """
        self._check_open()
        async with self._text_lock:
            if self._state is FetchState.COMPLETED:
                return self._text or ""
            if self._state in (FetchState.FAILED, FetchState.CANCELED):
                return ""
            return await self._resolve_text()

    async def _resolve_text(self) -> str:
        attempt = 0
        result: FetchResult | None = None
        while True:
            task = self._fetch_task or self._schedule_fetch()
            attempt += 1
            await asyncio.wait({task})

            if task is not self._fetch_task:
                # refresh() swapped in a new fetch while we waited
                attempt -= 1
                continue
            if task.cancelled():
                self._state = FetchState.CANCELED
                return ""

            self._fetch_task = None
            result, error = _outcome(task)
            if result is not None and result.success:
                self._text = result.html
                self._state = FetchState.COMPLETED
                return self._text

            logger.warning(
                "Fetch attempt %d/%d failed for %s: %s",
                attempt, self._FETCH_ATTEMPTS, self._link, error,
            )
            if self._cancel_requested():
                self._state = FetchState.CANCELED
                return ""
            if attempt >= self._FETCH_ATTEMPTS:
                self._state = FetchState.FAILED
                if self._on_fetch_failed is not None:
                    self._on_fetch_failed(self, result)
                return ""

    def _schedule_fetch(self) -> asyncio.Task:
        if self._fetcher is None:
            self._fetcher = HttpFetcher()
            self._owns_fetcher = True
        self._fetch_task = asyncio.get_running_loop().create_task(
            self._fetcher.fetch(self._link), name=f"fetch {self._link}"
        )
        self._state = FetchState.IN_FLIGHT
        return self._fetch_task

    def _start_fetch_if_running(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._schedule_fetch()

    def _cancel_requested(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    # -- derived views ------------------------------------------------------

    async def image_links(self) -> list[str]:
        return site.image_links(await self.text())

    async def pool_page_links(self) -> list[str]:
        return site.pool_page_links(await self.text())

    async def prev_page_link(self) -> str | None:
        return site.prev_page_link(await self.text())

    async def next_page_link(self) -> str | None:
        return site.next_page_link(await self.text())

    async def page_count(self) -> int:
        """Number of the last page reachable from this listing."""
        return site.scan_page_count(await self.text(), self.index)

    async def pool_pages(self) -> list["Page"]:
        return [self._spawn(link) for link in await self.pool_page_links()]

    async def prev_page(self) -> Optional["Page"]:
        link = await self.prev_page_link()
        return None if link is None else self._spawn(link)

    async def next_page(self) -> Optional["Page"]:
        link = await self.next_page_link()
        return None if link is None else self._spawn(link)

    def page_at(self, index: int) -> "Page":
        """Jump to page ``index`` of this listing without bounds checking.

        Index 0 is this page itself.
        """
        self._check_open()
        if index == 0:
            return self
        return self._spawn(with_page_index(self._link, index))

    async def get_page(self, index: int) -> "Page":
        """Like ``page_at`` but raises PageIndexError outside [0, page_count]."""
        count = await self.page_count()
        if index < 0 or index > count:
            raise PageIndexError(index, count)
        return self.page_at(index)

    def _spawn(self, link: str) -> "Page":
        return Page(
            link,
            fetcher=self._fetcher,
            cancel_event=self._cancel_event,
            on_fetch_failed=self._on_fetch_failed,
            lazy=self._lazy,
        )

    def clone(self, **options: Any) -> "Page":
        """Return an equivalent page, keyword arguments replacing collaborators.

        Already fetched text is carried over so the clone does not refetch.
        """
        self._check_open()
        kwargs: dict[str, Any] = {
            "fetcher": self._fetcher,
            "cancel_event": self._cancel_event,
            "on_fetch_failed": self._on_fetch_failed,
            "lazy": self._lazy,
        }
        kwargs.update(options)
        if self._state is FetchState.COMPLETED:
            return Page(self._link, self._text or "", **kwargs)
        return Page(self._link, **kwargs)

    # -- lifecycle ----------------------------------------------------------

    async def refresh(self) -> None:
        """Drop the cached text and fetch the page again."""
        self._check_open()
        await self.cancel()
        self._text = None
        self._state = FetchState.NOT_STARTED
        self._schedule_fetch()

    async def cancel(self) -> None:
        """Cancel the in-flight fetch and wait for it to settle."""
        self._check_open()
        task = self._fetch_task
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait({task})
        if self._state is FetchState.IN_FLIGHT:
            self._state = FetchState.CANCELED

    async def aclose(self) -> None:
        """Cancel outstanding work and release an owned transport."""
        if self._closed:
            return
        await self.cancel()
        self._closed = True
        self._text = None
        self._fetch_task = None
        if self._owns_fetcher and self._fetcher is not None:
            await self._fetcher.aclose()
        self._fetcher = None

    def _check_open(self) -> None:
        if self._closed:
            raise PageDisposedError(self._link)

    async def __aenter__(self) -> "Page":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __aiter__(self) -> PageSequence:
        self._check_open()
        return PageSequence(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Page):
            return NotImplemented
        return self._identity == other._identity

    def __hash__(self) -> int:
        return hash(self._identity)

    def __repr__(self) -> str:
        return f"Page({self._link!r}, state={self._state.value})"

    def __str__(self) -> str:
        return self._link


def _outcome(task: asyncio.Task) -> tuple[FetchResult | None, str]:
    """Unpack a finished, non-canceled fetch task."""
    exc = task.exception()
    if exc is not None:
        return None, f"{type(exc).__name__}: {exc}"
    result: FetchResult = task.result()
    return result, "" if result.success else result.error_message
