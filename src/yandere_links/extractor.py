"""Image link extraction into a shared, deduplicated result set."""

import asyncio
import logging
from typing import Callable, Iterable, Iterator

from yandere_links.page import Page
from yandere_links.site import is_pools_page

logger = logging.getLogger(__name__)

LinksCallback = Callable[[list[str]], None]


class ResultSet:
    """Unique image links gathered during one crawl.

    Check-then-insert runs under a single lock so concurrent workers never
    store the same link twice. Iteration follows first-insertion order,
    which reflects worker completion order and differs between runs.
    """

    def __init__(self, links: Iterable[str] = ()):
        self._links: dict[str, None] = dict.fromkeys(links)
        self._lock = asyncio.Lock()
        self._subscribers: list[LinksCallback] = []

    def subscribe(self, callback: LinksCallback) -> None:
        """Call ``callback`` with every non-empty batch of newly added links."""
        self._subscribers.append(callback)

    async def add_all(self, links: Iterable[str]) -> list[str]:
        """Insert links not yet present; return those that were new."""
        async with self._lock:
            added = []
            for link in links:
                if link not in self._links:
                    self._links[link] = None
                    added.append(link)
            if added:
                for callback in self._subscribers:
                    callback(added)
        return added

    def snapshot(self) -> list[str]:
        return list(self._links)

    def __contains__(self, link: object) -> bool:
        return link in self._links

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._links))


class LinkExtractor:
    """Pull image links out of a page and merge them into a result set."""

    async def extract(self, page: Page, results: ResultSet) -> list[str]:
        """Extract ``page`` into ``results`` and return the newly added links.

        Pool listings hold no images of their own; each pool they list is
        opened and extracted instead.
        """
        if not is_pools_page(page):
            return await self.extract_images(page, results)

        added: list[str] = []
        pool_pages = await page.pool_pages()
        logger.debug("%s lists %d pools", page.link, len(pool_pages))
        for pool_page in pool_pages:
            async with pool_page:
                added.extend(await self.extract_images(pool_page, results))
        return added

    async def extract_images(self, page: Page, results: ResultSet) -> list[str]:
        """Merge the page's own image links without pool expansion."""
        links = await page.image_links()
        added = await results.add_all(links)
        logger.debug(
            "%s: %d image links, %d new", page.link, len(links), len(added)
        )
        return added
