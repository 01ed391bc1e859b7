import asyncio

import pytest

from yandere_links.fetcher import BaseFetcher, FetchResult


class FakeFetcher(BaseFetcher):
    """Serves canned HTML by URL and records every request.

    ``failures`` maps a URL to how many attempts answer 503 before the page
    is served. When ``gate`` is given, every request waits for it first.
    """

    def __init__(self, pages=None, failures=None, gate: asyncio.Event | None = None):
        super().__init__()
        self.pages = dict(pages or {})
        self.failures = dict(failures or {})
        self.gate = gate
        self.requests: list[str] = []
        self.closed = False

    async def _fetch(self, url: str) -> FetchResult:
        self.requests.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.failures.get(url, 0) > 0:
            self.failures[url] -= 1
            return FetchResult(url=url, final_url=url, html="", status_code=503)
        if url not in self.pages:
            return FetchResult(url=url, final_url=url, html="", status_code=404)
        return FetchResult(url=url, final_url=url, html=self.pages[url], status_code=200)

    async def aclose(self) -> None:
        self.closed = True
        await super().aclose()


def listing_html(images, current=1, last=1, path="/post"):
    """Build a post listing the way yande.re renders one."""
    posts = ",".join(
        f'{{"id":{i},"file_url":"{url}","width":1200,"height":800}}'
        for i, url in enumerate(images)
    )
    parts = [f'<script type="text/javascript">Post.register_resp({{"posts":[{posts}]}});</script>']
    if last > 1:
        parts.append('<div class="pagination" role="navigation">')
        if current > 1:
            parts.append(
                f'<a class="previous_page" rel="prev" href="{path}?page={current - 1}">&larr; Previous</a>'
            )
        for n in range(1, last + 1):
            if n == current:
                parts.append(f'<em class="current">{n}</em>')
            else:
                parts.append(f'<a href="{path}?page={n}">{n}</a>')
        if current < last:
            parts.append(
                f'<a class="next_page" rel="next" href="{path}?page={current + 1}">Next &rarr;</a>'
            )
        parts.append("</div>")
    return "<html><body>\n" + "\n".join(parts) + "\n</body></html>"


def pools_html(pool_ids):
    """Build a pool listing page."""
    rows = "\n".join(
        f'<tr><td><a href="/pool/show/{pid}">Pool {pid}</a></td><td>12</td></tr>'
        for pid in pool_ids
    )
    return f'<html><body><table class="highlightable">\n{rows}\n</table></body></html>'


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def posts_site():
    """A three-page post listing plus its fetcher."""
    pages = {
        "https://yande.re/post": listing_html(["https://files.yande.re/image/a.jpg",
                                               "https://files.yande.re/image/b.jpg"], 1, 3),
        "https://yande.re/post?page=2": listing_html(["https://files.yande.re/image/c.jpg"], 2, 3),
        "https://yande.re/post?page=3": listing_html(["https://files.yande.re/image/d.jpg",
                                                      "https://files.yande.re/image/a.jpg"], 3, 3),
    }
    return FakeFetcher(pages)
