"""Plain-text link list output writer."""

from pathlib import Path
from typing import Iterable

import aiofiles


class LinkFileOutput:
    """Write image links to a text file, one per line."""

    def __init__(self, output_path: Path, append: bool = True):
        self.output_path = Path(output_path)
        self.append = append

    async def write(self, links: Iterable[str]) -> Path:
        """Write (or append) the links and return the file path."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        content = "".join(f"{link}\n" for link in links)
        mode = "a" if self.append else "w"
        async with aiofiles.open(self.output_path, mode, encoding="utf-8") as f:
            await f.write(content)

        return self.output_path
