from pathlib import Path

import pytest
from pydantic import ValidationError

from yandere_links.config import AppConfig, CrawlConfig, FetcherConfig


def test_defaults():
    config = AppConfig()
    assert config.start_urls == ["https://yande.re"]
    assert config.crawl.page_count == 0
    assert 1 <= config.crawl.max_workers <= 32
    assert config.crawl.poll_interval_ms == 10
    assert config.output.path is None
    assert config.output.append


@pytest.mark.parametrize(
    "field, value",
    [("page_count", -2), ("max_workers", 0), ("max_workers", 65), ("delay_seconds", -1.0)],
)
def test_crawl_config_bounds(field, value):
    with pytest.raises(ValidationError):
        CrawlConfig(**{field: value})


def test_fetcher_timeout_bounds():
    with pytest.raises(ValidationError):
        FetcherConfig(timeout_ms=10)


def test_toml_round_trip(tmp_path: Path):
    config = AppConfig(
        start_urls=["https://yande.re/post?tags=sky", "https://yande.re/pool"],
        crawl=CrawlConfig(page_count=-1, max_workers=6, delay_seconds=0.5),
        output={"path": tmp_path / "links.txt", "append": False},
        verbose=True,
    )
    path = tmp_path / "config.toml"
    path.write_text(config.to_toml())

    loaded = AppConfig.from_toml(path)
    assert loaded.start_urls == config.start_urls
    assert loaded.crawl.page_count == -1
    assert loaded.crawl.max_workers == 6
    assert loaded.crawl.delay_seconds == 0.5
    assert loaded.output.path == tmp_path / "links.txt"
    assert not loaded.output.append
    assert loaded.verbose


def test_from_toml_rejects_bad_values(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text("[crawl]\nmax_workers = 0\n")
    with pytest.raises(ValidationError):
        AppConfig.from_toml(path)
