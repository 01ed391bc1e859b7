"""Utility functions and classes."""

from yandere_links.utils.rate_limiter import RateLimiter
from yandere_links.utils.url_utils import (
    format_page_link,
    is_absolute_url,
    page_index,
    url_identity,
    with_page_index,
)

__all__ = [
    "RateLimiter",
    "format_page_link",
    "is_absolute_url",
    "page_index",
    "url_identity",
    "with_page_index",
]
