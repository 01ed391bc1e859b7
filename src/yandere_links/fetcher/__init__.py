"""Page fetching."""

from yandere_links.fetcher.base import BaseFetcher, FetchResult
from yandere_links.fetcher.http_fetcher import HttpFetcher

__all__ = [
    "BaseFetcher",
    "FetchResult",
    "HttpFetcher",
]
