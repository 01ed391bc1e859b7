"""Exceptions raised by the page model."""


class YandereLinksError(Exception):
    """Base class for errors raised by yandere-links."""


class InvalidArgumentError(YandereLinksError, ValueError):
    """A link or page text was missing or malformed."""


class PageDisposedError(YandereLinksError, RuntimeError):
    """An operation was attempted on a closed page."""

    def __init__(self, link: str):
        super().__init__(f"Page has been closed: {link}")
        self.link = link


class PageIndexError(YandereLinksError, IndexError):
    """A page index fell outside ``[0, page_count]``."""

    def __init__(self, index: int, page_count: int):
        super().__init__(f"Page index {index} out of range [0, {page_count}]")
        self.index = index
        self.page_count = page_count
