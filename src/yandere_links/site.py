"""yande.re URL layout, markup markers and page classification.

Everything here is a pure function of a link or of page text. The markup
markers are matched literally; the site's HTML is never parsed into a tree.
"""

import html
from typing import TYPE_CHECKING, Union
from urllib.parse import urljoin

if TYPE_CHECKING:
    from yandere_links.page import Page

INDEX_PAGE_LINK = "https://yande.re"
POSTS_PAGE_LINK = INDEX_PAGE_LINK + "/post"
POOLS_PAGE_LINK = INDEX_PAGE_LINK + "/pool"
POST_PAGE_LINK_STATIC = POSTS_PAGE_LINK + "/show"
POOL_PAGE_LINK_STATIC = POOLS_PAGE_LINK + "/show"

IMAGE_LINK_PREFIX = '"file_url":"'
POOL_PAGE_LINK_PREFIX = '<a href="/pool/show'
PREV_PAGE_LINK_PREFIX = '<a class="previous_page" rel="prev" href="'
NEXT_PAGE_LINK_PREFIX = '<a class="next_page" rel="next" href="'

PAGE_PARAM = "page"

PageLike = Union["Page", str]


def scan_values(text: str, marker: str) -> list[str]:
    """Return every value that follows ``marker`` up to the next double quote.

    Values are returned in document order. A marker without a closing quote
    yields the remainder of the text.
    """
    values: list[str] = []
    pos = text.find(marker)
    while pos != -1:
        start = pos + len(marker)
        end = text.find('"', start)
        if end == -1:
            values.append(text[start:])
            break
        values.append(text[start:end])
        pos = text.find(marker, start)
    return values


def scan_first(text: str, marker: str) -> str | None:
    """Return the first value after ``marker``, or None if it does not occur."""
    pos = text.find(marker)
    if pos == -1:
        return None
    start = pos + len(marker)
    end = text.find('"', start)
    return text[start:] if end == -1 else text[start:end]


def scan_page_count(text: str, index: int) -> int:
    """Return the last page number advertised by a listing page.

    The pagination bar lists the highest page right before the next-page
    anchor, so the last run of digits ahead of that anchor is the count.
    Without a next-page anchor the page is either the last one of a series
    (a previous-page anchor exists) or not part of one.
    """
    end = text.find(NEXT_PAGE_LINK_PREFIX)
    if end == -1:
        return index if PREV_PAGE_LINK_PREFIX in text else 1

    i = end - 1
    while i >= 0 and not text[i].isdigit():
        i -= 1
    if i < 0:
        return index
    stop = i + 1
    while i >= 0 and text[i].isdigit():
        i -= 1
    return int(text[i + 1:stop])


def image_links(text: str) -> list[str]:
    return scan_values(text, IMAGE_LINK_PREFIX)


def pool_page_links(text: str) -> list[str]:
    return [POOL_PAGE_LINK_STATIC + v for v in scan_values(text, POOL_PAGE_LINK_PREFIX)]


def prev_page_link(text: str) -> str | None:
    return _resolve(scan_first(text, PREV_PAGE_LINK_PREFIX))


def next_page_link(text: str) -> str | None:
    return _resolve(scan_first(text, NEXT_PAGE_LINK_PREFIX))


def _resolve(href: str | None) -> str | None:
    if href is None:
        return None
    # Anchors carry HTML-escaped query strings (&amp;)
    return urljoin(INDEX_PAGE_LINK, html.unescape(href))


def _link_of(page: PageLike) -> str:
    return page if isinstance(page, str) else page.link


def is_site_page(page: PageLike) -> bool:
    """Check if the link belongs to yande.re."""
    return _link_of(page).startswith(INDEX_PAGE_LINK)


def is_posts_page(page: PageLike) -> bool:
    """Check if the link is a post listing (not a single post)."""
    link = _link_of(page)
    return link.startswith(POSTS_PAGE_LINK) and not link.startswith(POST_PAGE_LINK_STATIC)


def is_pools_page(page: PageLike) -> bool:
    """Check if the link is a pool listing (not a single pool)."""
    link = _link_of(page)
    return link.startswith(POOLS_PAGE_LINK) and not link.startswith(POOL_PAGE_LINK_STATIC)


def is_post_page(page: PageLike) -> bool:
    """Check if the link shows a single post."""
    return _link_of(page).startswith(POST_PAGE_LINK_STATIC)


def is_pool_page(page: PageLike) -> bool:
    """Check if the link shows a single pool."""
    return _link_of(page).startswith(POOL_PAGE_LINK_STATIC)
