"""Settings for a crawl, loadable from TOML."""

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field

from yandere_links.site import INDEX_PAGE_LINK


def _default_max_workers() -> int:
    # Same sizing rule as concurrent.futures.ThreadPoolExecutor
    return min(32, (os.cpu_count() or 1) + 4)


class FetcherConfig(BaseModel):
    """How pages are requested."""

    timeout_ms: int = Field(default=30000, ge=1000, le=120000)
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36 YandereLinks/0.1"
    )


class CrawlConfig(BaseModel):
    """Configuration for the crawl orchestrator."""

    page_count: int = Field(default=0, ge=-1)  # -1 = to the last page, 0 = start page only
    max_workers: int = Field(default_factory=_default_max_workers, ge=1, le=64)
    delay_seconds: float = Field(default=0.0, ge=0.0, le=60.0)
    poll_interval_ms: int = Field(default=10, ge=1, le=1000)


class OutputConfig(BaseModel):
    """Where the collected links are written."""

    path: Path | None = None
    append: bool = True


class AppConfig(BaseModel):
    """Start pages plus one settings section per component."""

    start_urls: list[str] = Field(default_factory=lambda: [INDEX_PAGE_LINK])
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    verbose: bool = False

    @classmethod
    def from_toml(cls, path: Path) -> "AppConfig":
        """Load settings from a TOML file; missing keys keep their defaults."""
        try:
            import tomllib  # type: ignore[import-not-found]
        except ModuleNotFoundError:
            import tomli as tomllib  # type: ignore[import-not-found]
        with open(path, "rb") as f:
            return cls.model_validate(tomllib.load(f))

    def to_toml(self) -> str:
        """Render the settings that differ from the defaults as TOML."""
        data = self.model_dump(mode="json", exclude_defaults=True, exclude_none=True)
        # Top-level keys must come before the first [table] header
        lines = [f"{key} = {json.dumps(value)}" for key, value in data.items() if not isinstance(value, dict)]
        for name, table in data.items():
            if isinstance(table, dict) and table:
                lines.append(f"\n[{name}]")
                lines.extend(f"{key} = {json.dumps(value)}" for key, value in table.items())
        return "\n".join(lines).lstrip("\n") + "\n"
