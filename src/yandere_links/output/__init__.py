"""Output writers for extracted links."""

from yandere_links.output.links_file import LinkFileOutput

__all__ = [
    "LinkFileOutput",
]
