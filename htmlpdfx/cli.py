"""
Command-line interface for htmlpdfx.
"""

import asyncio
import sys
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeRemainingColumn
from rich.table import Table

from htmlpdfx import __version__
from htmlpdfx.browser import PlaywrightSurfaceFactory
from htmlpdfx.config import GenerationOptions, resolve_output
from htmlpdfx.content import LOCAL_CONTENT_PLACEHOLDER, RawMarkup, inject_content
from htmlpdfx.exceptions import ContentSourceError, HtmlPdfXError
from htmlpdfx.formats import Orientation, registry
from htmlpdfx.generator import PDFGenerator
from htmlpdfx.report import ReportBuilder
from htmlpdfx.sources import ContentSession, fetch_local_content
from htmlpdfx.utils import format_file_size, get_logger

console = Console()
LOGGER = get_logger("htmlpdfx.cli")

ORIENTATIONS = [orientation.value for orientation in Orientation]


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=30.0, follow_redirects=True)


def _build_options(output, page_format, orientation, scale, settle_timeout, title, author):
    output_dir, filename = resolve_output(output)
    return GenerationOptions.from_mapping(
        {
            "filename": filename,
            "output_dir": output_dir,
            "format": page_format,
            "orientation": orientation,
            "scale": scale,
            "settle_timeout": settle_timeout,
            "title": title,
            "author": author,
        }
    )


async def _generate(pages, options):
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Rendering pages", total=len(pages))

        def update_progress(current, total):
            progress.update(task, completed=current)

        async with PlaywrightSurfaceFactory() as factory:
            generator = PDFGenerator(factory, options=options)
            return await generator.generate(pages, progress_callback=update_progress)


def _show_result(result, options):
    table = Table(title="Generated PDF", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("File", str(result.saved_path) if result.saved_path else "(not saved)")
    table.add_row("Pages", str(result.page_count))
    table.add_row("Format", f"{options.format} {options.orientation.value}")
    table.add_row("Size", format_file_size(len(result.blob)))
    console.print(table)


def _run(pages, options):
    result = asyncio.run(_generate(pages, options))
    try:
        if result.saved_path is None:
            console.print("[bold yellow]! Warning:[/bold yellow] PDF could not be saved")
            sys.exit(1)
        console.print(
            f"\n[bold green]✓ Successfully generated {result.page_count} page(s)[/bold green]"
        )
        _show_result(result, options)
    finally:
        result.release()


def _common_options(func):
    decorators = [
        click.option(
            '--output', '-o',
            default='dynamic.pdf',
            help='Output PDF path',
            type=click.Path(dir_okay=False),
        ),
        click.option(
            '--format', 'page_format',
            default='A4',
            help='Page format name',
            type=str,
        ),
        click.option(
            '--orientation',
            default='landscape',
            help='Page orientation',
            type=click.Choice(ORIENTATIONS, case_sensitive=False),
        ),
        click.option(
            '--scale',
            default=2,
            help='Oversampling factor for captured pages',
            type=click.IntRange(min=2),
        ),
        click.option(
            '--settle-timeout',
            default=30.0,
            help='Seconds to wait for each page to finish loading',
            type=click.FloatRange(min=0, min_open=True),
        ),
        click.option('--title', default=None, help='Document title metadata'),
        click.option('--author', default=None, help='Document author metadata'),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    htmlpdfx - Render HTML pages into a single PDF.
    """
    pass


@cli.command(name="generate")
@click.argument('pages', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@_common_options
@click.option(
    '--inject-url',
    default=None,
    help=f'Fetch text from URL and substitute it for {LOCAL_CONTENT_PLACEHOLDER} in every page',
)
def generate(pages, output, page_format, orientation, scale, settle_timeout, title, author, inject_url):
    """
    Render each HTML file as one page of a PDF.

    Examples:

        htmlpdfx generate cover.html data.html -o report.pdf

        htmlpdfx generate page.html --orientation portrait --inject-url http://localhost:8000/notes.txt
    """
    try:
        options = _build_options(output, page_format, orientation, scale, settle_timeout, title, author)
        markup = [Path(page).read_text(encoding="utf-8") for page in pages]

        if inject_url:
            console.print(f"\n[bold cyan]Loading content from {inject_url}...[/bold cyan]")
            local_content = asyncio.run(_fetch(inject_url))
            markup = [inject_content(page, local_content) for page in markup]

        console.print(f"\n[bold cyan]Generating {len(markup)} page(s)...[/bold cyan]")
        _run([RawMarkup(page) for page in markup], options)
        console.print()

    except (HtmlPdfXError, ValueError, OSError) as e:
        LOGGER.debug("generate failed", exc_info=e)
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


async def _fetch(url):
    async with _http_client() as client:
        return await fetch_local_content(url, client)


async def _load_sources(session, sources):
    async with _http_client() as client:
        for url in sources:
            snippet = session.add_snippet(url, url, f"Data loaded from {url}")
            try:
                await session.load_snippet(snippet.id, client)
                console.print(f"  [green]✓[/green] {url}")
            except ContentSourceError as e:
                console.print(f"  [yellow]![/yellow] {e}")


@cli.command(name="report")
@_common_options
@click.option('--subtitle', default='Generated with dynamic data', help='Cover page subtitle')
@click.option('--content', 'main_content', default='', help='Cover page body text')
@click.option('--source', 'sources', multiple=True, help='URL of a JSON or text data source')
@click.option(
    '--defaults/--no-defaults',
    default=True,
    help='Include the manual input and sample API snippets in the overview',
)
@click.option(
    '--json', 'json_files',
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help='Local JSON or text file loaded as manual input',
)
def report(output, page_format, orientation, scale, settle_timeout, title, author,
           subtitle, main_content, sources, defaults, json_files):
    """
    Generate the cover, data and summary report pages.

    Example:

        htmlpdfx report --title "Weekly Report" --source http://localhost:8000/stats.json -o weekly.pdf
    """
    try:
        options = _build_options(output, page_format, orientation, scale, settle_timeout, title, author)
        session = ContentSession.with_defaults() if defaults else ContentSession()

        if sources:
            console.print("\n[bold cyan]Loading data sources...[/bold cyan]")
            asyncio.run(_load_sources(session, sources))
        for json_file in json_files:
            session.load_manual_input(Path(json_file).read_text(encoding="utf-8"))

        builder = ReportBuilder(
            session,
            title=title or "Dynamic PDF Report",
            subtitle=subtitle,
            main_content=main_content,
        )
        pages = builder.build_pages()

        console.print(f"\n[bold cyan]Generating {len(pages)} report page(s)...[/bold cyan]")
        _run(pages, options)
        console.print()

    except (HtmlPdfXError, ValueError, OSError) as e:
        LOGGER.debug("report failed", exc_info=e)
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


@cli.command(name="formats")
def show_formats():
    """
    List the registered page formats.
    """
    table = Table(title="Page Formats")
    table.add_column("Format", style="cyan", no_wrap=True)
    table.add_column("Orientation", style="cyan")
    table.add_column("Size (mm)", style="green")
    table.add_column("Pixels @96 DPI", style="green")

    for name in registry.names():
        for orientation in Orientation:
            size = registry.page_size(name, orientation)
            table.add_row(
                name,
                orientation.value,
                f"{size.width_mm:g} x {size.height_mm:g}",
                f"{size.width_px} x {size.height_px}",
            )

    console.print()
    console.print(table)
    console.print()


if __name__ == "__main__":  # pragma: no cover
    cli()
