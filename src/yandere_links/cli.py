"""Command-line interface for yandere-links."""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from yandere_links import __version__, site
from yandere_links.config import AppConfig
from yandere_links.exceptions import InvalidArgumentError
from yandere_links.fetcher import HttpFetcher
from yandere_links.orchestrator import CrawlOrchestrator, CrawlState
from yandere_links.output import LinkFileOutput
from yandere_links.page import Page
from yandere_links.utils.url_utils import format_page_link

app = typer.Typer(
    name="yandere-links",
    help="Extract image links from yande.re post and pool pages.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()

_SITE_HOST = urlsplit(site.INDEX_PAGE_LINK).hostname


def version_callback(value: bool):
    if value:
        console.print(f"yandere-links version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Image link extraction for yande.re."""
    pass


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def _parse_pages(urls: list[str]) -> list[Page]:
    """Turn command-line URLs into yande.re pages, raising on bad input."""
    pages = []
    for url in urls:
        page = Page(format_page_link(url), lazy=True)
        # The prefix test alone would accept hosts like yande.re.example.com
        if not site.is_site_page(page) or urlsplit(page.link).hostname != _SITE_HOST:
            raise InvalidArgumentError(f"Not a yande.re page: {url}")
        pages.append(page)
    return pages


@app.command()
def extract(
    urls: Optional[list[str]] = typer.Argument(
        None,
        help="URL(s) of yande.re pages containing image links (default: the site root)",
    ),
    page_count: Optional[int] = typer.Option(
        None,
        "--enumerate",
        "-e",
        help="Pages to enumerate from each URL: 0 = only that page, -1 = to the last page",
    ),
    max_workers: Optional[int] = typer.Option(
        None,
        "--max-workers",
        "-t",
        help="Maximum number of pages fetched at once",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Text file the image links are appended to",
    ),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="Replace the output file instead of appending to it",
    ),
    delay: Optional[float] = typer.Option(
        None,
        "--delay",
        help="Minimum delay between page fetches in seconds",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML config file; command-line options override it",
    ),
    save_config: Optional[Path] = typer.Option(
        None,
        "--save-config",
        help="Write the effective settings to this TOML file and exit",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Do not print links as they are found",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
):
    """
    Extract image links from one or more yande.re pages.

    Pool listings are expanded into their pools. Press Ctrl+C to stop early;
    links found so far are still written.

    Examples:

        yandere-links extract https://yande.re/post?tags=landscape -e 3

        yandere-links extract yande.re/pool -e -1 -o pools.txt

        yandere-links extract https://yande.re/post/show/123456 -q -o links.txt
    """
    try:
        config = AppConfig.from_toml(config_file) if config_file else AppConfig()
        crawl_updates: dict = {}
        if page_count is not None:
            crawl_updates["page_count"] = page_count
        if max_workers is not None:
            crawl_updates["max_workers"] = max_workers
        if delay is not None:
            crawl_updates["delay_seconds"] = delay
        config = AppConfig.model_validate(
            {
                **config.model_dump(),
                "start_urls": urls or config.start_urls,
                "crawl": {**config.crawl.model_dump(), **crawl_updates},
                "output": {
                    "path": output if output is not None else config.output.path,
                    "append": config.output.append and not overwrite,
                },
                "verbose": verbose or config.verbose,
            }
        )
    except (ValidationError, OSError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    if save_config is not None:
        try:
            save_config.write_text(config.to_toml(), encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Could not write {save_config}: {e}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]Settings saved to {save_config}[/green]")
        raise typer.Exit()

    _configure_logging(config.verbose)

    try:
        pages = _parse_pages(config.start_urls)
    except InvalidArgumentError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    try:
        orchestrator = asyncio.run(_run_extract(config, pages, quiet))
    except KeyboardInterrupt:
        console.print("\n[yellow]Extraction cancelled.[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if config.verbose:
            console.print_exception()
        raise typer.Exit(1)

    _print_summary(orchestrator, config.output.path)
    if orchestrator.state is CrawlState.CANCELED:
        raise typer.Exit(130)


async def _run_extract(config: AppConfig, pages: list[Page], quiet: bool) -> CrawlOrchestrator:
    async with HttpFetcher(config.fetcher) as fetcher:
        orchestrator = CrawlOrchestrator(fetcher, config.crawl)
        if not quiet:
            orchestrator.results.subscribe(
                lambda links: console.print(
                    "\n".join(links), markup=False, highlight=False, soft_wrap=True
                )
            )

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, orchestrator.request_cancellation)
            handles_sigint = True
        except (NotImplementedError, RuntimeError):
            handles_sigint = False

        try:
            results = await orchestrator.run(pages)
        finally:
            if handles_sigint:
                loop.remove_signal_handler(signal.SIGINT)

        if config.output.path and len(results):
            await LinkFileOutput(config.output.path, append=config.output.append).write(results)

    return orchestrator


def _print_summary(orchestrator: CrawlOrchestrator, output_path: Optional[Path]) -> None:
    summary = orchestrator.summary
    results = orchestrator.results

    console.print()
    table = Table(title="Extraction summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Pages dispatched", str(summary.dispatched))
    table.add_row("Pages loaded", f"[green]{summary.completed}[/green]")
    if summary.failed:
        table.add_row("Pages failed", f"[red]{summary.failed}[/red]")
    if summary.canceled or summary.skipped:
        table.add_row("Pages canceled", f"[yellow]{summary.canceled + summary.skipped}[/yellow]")
    table.add_row("Unique image links", str(len(results)))
    table.add_row("Time", f"{summary.duration:.1f}s")
    limiter = orchestrator.rate_limiter
    if limiter.backoff_count:
        table.add_row("429 backoffs", f"{limiter.backoff_count} (peak delay {limiter.peak_delay:.2f}s)")
    console.print(table)

    if output_path and len(results):
        console.print(f"[green]Links written to {output_path}[/green]")
    if orchestrator.state is CrawlState.CANCELED:
        console.print("[yellow]Extraction cancelled, partial results kept.[/yellow]")
    elif summary.failed:
        console.print(
            "[yellow]Some pages could not be loaded; their links are missing."
            " Rerun with --verbose for details.[/yellow]"
        )
    else:
        console.print("[bold green]Complete![/bold green]")


@app.command()
def info(
    url: str = typer.Argument(..., help="URL of a yande.re page"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
):
    """Show pagination and link counts for a single page."""
    _configure_logging(verbose)
    link = format_page_link(url)
    try:
        rows = asyncio.run(_inspect(link))
    except InvalidArgumentError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)

    table = Table(title="Page", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in rows:
        table.add_row(field, value)
    console.print(table)


async def _inspect(link: str) -> list[tuple[str, str]]:
    async with HttpFetcher() as fetcher:
        async with Page(link, fetcher=fetcher) as page:
            await page.text()
            return [
                ("Link", page.link),
                ("Kind", _page_kind(page)),
                ("Fetch", page.state.value),
                ("Index", str(page.index)),
                ("Page count", str(await page.page_count())),
                ("Image links", str(len(await page.image_links()))),
                ("Pool links", str(len(await page.pool_page_links()))),
                ("Previous", await page.prev_page_link() or "-"),
                ("Next", await page.next_page_link() or "-"),
            ]


def _page_kind(page: Page) -> str:
    if site.is_post_page(page):
        return "post"
    if site.is_pool_page(page):
        return "pool"
    if site.is_posts_page(page):
        return "post listing"
    if site.is_pools_page(page):
        return "pool listing"
    if site.is_site_page(page):
        return "yande.re"
    return "external"


if __name__ == "__main__":
    app()
