"""
Command-line interface for foprint.
"""

import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from foprint import __version__
from foprint.config import Settings
from foprint.diagnostics import format_location
from foprint.exceptions import StylesheetNotFoundError
from foprint.formatter import PreviewRenderer
from foprint.task import TransformTask, resolve_stylesheet
from foprint.utils import configure_logging

console = Console()


def _settings(config_dir):
    if config_dir:
        return Settings.from_env(output_sheets_dir=Path(config_dir))
    return Settings.from_env()


def _run_in_background(task, message):
    # The task runs on a worker thread the way a GUI runs it off its event loop.
    with ThreadPoolExecutor(max_workers=1) as executor:
        with console.status(f"[bold cyan]{message}[/bold cyan]", spinner="dots"):
            return executor.submit(task).result()


def _report(result):
    for diagnostic in result.warnings:
        console.print(
            f"[yellow]! {escape(format_location(diagnostic.location) + diagnostic.message)}[/yellow]"
        )
    if result.success:
        return
    console.print("[bold red]✗ Error:[/bold red] the document could not be produced")
    for message in result.errors:
        console.print(f"  [red]• {escape(message)}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    foprint - Render XML documents to PDF through XSLT and XSL-FO.
    """
    pass


@cli.command(name="pdf")
@click.argument('input_xml', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--stylesheet', '-x',
    default=None,
    help='XSLT stylesheet producing XSL-FO (identity transform when omitted)',
    type=click.Path(dir_okay=False)
)
@click.option(
    '--output', '-o',
    default=None,
    help='Output PDF file (defaults to the input name with a .pdf suffix)',
    type=click.Path(dir_okay=False)
)
@click.option(
    '--config-dir',
    default=None,
    help='Directory containing fop.xconf',
    type=click.Path(file_okay=False)
)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def pdf(input_xml, stylesheet, output, config_dir, verbose):
    """
    Transform INPUT_XML and write the result as PDF.

    Examples:

        foprint pdf sheet.fo

        foprint pdf character.xml -x sheets/standard.xsl -o character.pdf
    """
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
    output = output or str(Path(input_xml).with_suffix('.pdf'))

    try:
        stylesheet = resolve_stylesheet(stylesheet)
    except StylesheetNotFoundError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {escape(str(e))}")
        sys.exit(1)

    task = TransformTask.to_stream(
        input_xml, stylesheet, open(output, 'wb'), settings=_settings(config_dir)
    )
    result = _run_in_background(task, f"Rendering {os.path.basename(input_xml)}...")
    if not result.success:
        Path(output).unlink(missing_ok=True)
    _report(result)

    console.print(f"\n[bold green]✓ Wrote {result.page_count} page(s)[/bold green]")
    console.print(f"[dim]Output file: {os.path.abspath(output)}[/dim]")


@cli.command(name="preview")
@click.argument('input_xml', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--stylesheet', '-x',
    default=None,
    help='XSLT stylesheet producing XSL-FO (identity transform when omitted)',
    type=click.Path(dir_okay=False)
)
@click.option(
    '--config-dir',
    default=None,
    help='Directory containing fop.xconf',
    type=click.Path(file_okay=False)
)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def preview(input_xml, stylesheet, config_dir, verbose):
    """
    Render INPUT_XML to pages and list them.

    Examples:

        foprint preview character.xml -x sheets/standard.xsl
    """
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
    renderer = PreviewRenderer()

    try:
        task = TransformTask.to_renderer(
            input_xml, stylesheet, renderer, settings=_settings(config_dir)
        )
    except StylesheetNotFoundError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {escape(str(e))}")
        sys.exit(1)

    result = _run_in_background(task, f"Rendering {os.path.basename(input_xml)}...")
    _report(result)

    table = Table(title="Rendered Pages")
    table.add_column("Page", style="cyan", justify="right")
    table.add_column("Size (pt)", style="green")
    table.add_column("First line", style="white")
    for page in renderer.pages:
        lines = page.extract_text().strip().splitlines()
        table.add_row(
            str(page.number),
            f"{page.width:.0f} x {page.height:.0f}",
            lines[0] if lines else "",
        )
    console.print(table)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
