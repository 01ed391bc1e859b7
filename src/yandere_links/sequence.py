"""Forward iteration through a paginated listing."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from yandere_links.page import Page


class PageSequence:
    """Async iterator over ``start``, its next page, that page's next page, ...

    Each step fetches the current page (unless cached) to read its next-page
    link, so the walk is inherently sequential. Iteration ends at the first
    page without a next-page link. A sequence is single-pass; ``restart``
    gives a fresh one from the same start page.
    """

    def __init__(self, start: "Page"):
        self.start = start
        self._pending: Optional["Page"] = start
        self._yielded: Optional["Page"] = None

    def __aiter__(self) -> "PageSequence":
        return self

    async def __anext__(self) -> "Page":
        if self._yielded is not None:
            self._pending = await self._yielded.next_page()
            self._yielded = None
        if self._pending is None:
            raise StopAsyncIteration
        self._yielded, self._pending = self._pending, None
        return self._yielded

    def restart(self) -> "PageSequence":
        return PageSequence(self.start)

    def page_at(self, index: int) -> "Page":
        """Jump straight to page ``index`` of the start page's listing."""
        return self.start.page_at(index)

    async def take(self, limit: int) -> list["Page"]:
        """Walk at most ``limit`` pages forward and return them."""
        pages: list["Page"] = []
        if limit <= 0:
            return pages
        async for page in self:
            pages.append(page)
            if len(pages) >= limit:
                break
        return pages
