"""URL manipulation utilities."""

import re
from urllib.parse import parse_qsl, urlsplit, urlunsplit

import httpx

from yandere_links.site import INDEX_PAGE_LINK, PAGE_PARAM, POSTS_PAGE_LINK

_DEFAULT_PORTS = {"http": 80, "https": 443}
_PAGE_PARAM_RE = re.compile(rf"(^|&){PAGE_PARAM}=\d*")


def is_absolute_url(url: str) -> bool:
    """Check if a string is a syntactically legal absolute URL."""
    if not url or url != url.strip():
        return False
    try:
        # urlsplit is stricter about ports than httpx and url_identity relies on it
        urlsplit(url).port
        return httpx.URL(url).is_absolute_url
    except (httpx.InvalidURL, TypeError, ValueError):
        return False


def url_identity(url: str) -> tuple:
    """Return the components that decide whether two URLs name the same page.

    Scheme and host compare case-insensitively, the default port is made
    explicit, and query parameters compare as an unordered multiset. The
    fragment is ignored.
    """
    parsed = urlsplit(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    port = parsed.port or _DEFAULT_PORTS.get(scheme)
    query = tuple(sorted(parse_qsl(parsed.query, keep_blank_values=True)))
    return scheme, host, port, parsed.path or "/", query


def page_index(url: str) -> int:
    """Return the 1-based pagination index carried by a URL (1 if absent)."""
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key == PAGE_PARAM:
            digits = re.match(r"\d+", value)
            return int(digits.group()) if digits else 1
    return 1


def with_page_index(url: str, index: int) -> str:
    """Return ``url`` with its pagination parameter set to ``index``.

    The parameter keeps its position when present and is appended otherwise.
    The bare site root has no listing behind it, so the posts listing is
    paginated instead.
    """
    if url.rstrip("/") == INDEX_PAGE_LINK:
        url = POSTS_PAGE_LINK
    parsed = urlsplit(url)
    query, count = _PAGE_PARAM_RE.subn(
        lambda m: f"{m.group(1)}{PAGE_PARAM}={index}", parsed.query, count=1
    )
    if not count:
        query = f"{query}&{PAGE_PARAM}={index}" if query else f"{PAGE_PARAM}={index}"
    return urlunsplit(parsed._replace(query=query))


def format_page_link(url: str) -> str:
    """Normalize a user-typed yande.re link.

    A bare ``yande.re/...`` gets the https scheme and plain http is
    upgraded; any other link is returned unchanged.
    """
    url = url.strip()
    host = urlsplit(INDEX_PAGE_LINK).netloc
    if url.startswith(host):
        return f"https://{url}"
    if url.startswith(f"http://{host}"):
        return "https://" + url[len("http://"):]
    return url
