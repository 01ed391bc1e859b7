import asyncio

from yandere_links.page import Page
from yandere_links.sequence import PageSequence


def test_walks_until_no_next_link(posts_site):
    async def main():
        start = Page("https://yande.re/post", fetcher=posts_site)
        return [p.link async for p in PageSequence(start)]

    assert asyncio.run(main()) == [
        "https://yande.re/post",
        "https://yande.re/post?page=2",
        "https://yande.re/post?page=3",
    ]


def test_single_page_without_pagination(fake_fetcher):
    async def main():
        start = Page("https://yande.re/post/show/1", '"file_url":"http://a/1.jpg"', fetcher=fake_fetcher)
        return [p async for p in start]

    pages = asyncio.run(main())
    assert len(pages) == 1
    assert fake_fetcher.requests == []


def test_next_page_fetched_only_when_advancing(posts_site):
    async def main():
        start = Page("https://yande.re/post", fetcher=posts_site, lazy=True)
        sequence = PageSequence(start)
        first = await sequence.__anext__()
        requested_before_advance = list(posts_site.requests)
        second = await sequence.__anext__()
        return first, requested_before_advance, second

    first, requested, second = asyncio.run(main())
    assert first.link == "https://yande.re/post"
    assert requested == []
    assert second.index == 2


def test_take_limits_pages(posts_site):
    async def main():
        sequence = PageSequence(Page("https://yande.re/post", fetcher=posts_site))
        two = await sequence.take(2)
        none = await sequence.restart().take(0)
        everything = await sequence.restart().take(10)
        return two, none, everything

    two, none, everything = asyncio.run(main())
    assert [p.index for p in two] == [1, 2]
    assert none == []
    assert [p.index for p in everything] == [1, 2, 3]


def test_restart_begins_at_start(posts_site):
    async def main():
        sequence = PageSequence(Page("https://yande.re/post", fetcher=posts_site))
        async for _ in sequence:
            pass
        again = sequence.restart()
        return [p.index async for p in again]

    assert asyncio.run(main()) == [1, 2, 3]


def test_page_at_jumps_from_start():
    sequence = PageSequence(Page("https://yande.re/post?tags=sky", ""))
    assert sequence.page_at(0) is sequence.start
    assert sequence.page_at(5).link == "https://yande.re/post?tags=sky&page=5"
