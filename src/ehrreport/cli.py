"""EHR Report Pipeline CLI."""

import json
import logging
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ehrreport.config import settings
from ehrreport.pipeline import (
    PageBudgetError,
    TextMetricsMeasurer,
    clean_text,
    compose_pages,
    paginate_record,
    process_record,
    render_report_html,
    structure_text,
)

app = typer.Typer(
    name="ehrreport",
    help="Normalize legacy EHR records and paginate printable reports",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(__name__)

BATCH_PATTERNS = ("*.rtf", "*.txt")


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, help="Logging level"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def read_record(path: Path, encoding: str, fallback_encoding: str) -> str:
    """Read a record file, retrying with the fallback codepage if needed."""
    try:
        return path.read_text(encoding=encoding)
    except UnicodeDecodeError as e:
        logger.warning(
            f"{path}: not valid {encoding} ({e.reason}); reading as {fallback_encoding}"
        )
        return path.read_text(encoding=fallback_encoding)


def _read(path: Path) -> str:
    if not path.is_file():
        console.print(f"[bold red]Error:[/bold red] file not found: {path}")
        raise typer.Exit(code=1)
    try:
        return read_record(path, settings.input_encoding, settings.fallback_encoding)
    except UnicodeDecodeError as e:
        console.print(f"[bold red]Error:[/bold red] cannot decode {path}: {e}")
        raise typer.Exit(code=1)


def _record_json(raw: str, pivot: int) -> dict:
    record = process_record(raw, pivot=pivot)
    return record.model_dump(mode="json", exclude={"blocks"})


def _batch_worker(args: tuple) -> tuple[str, str, Optional[str]]:
    """Worker function for parallel record processing.

    Args:
        args: Tuple of (input_path, output_path, encoding, fallback_encoding, pivot)

    Returns:
        Tuple of (input_path, output_path, error message or None)
    """
    input_path, output_path, encoding, fallback_encoding, pivot = args
    try:
        raw = read_record(Path(input_path), encoding, fallback_encoding)
    except (OSError, UnicodeDecodeError) as e:
        return input_path, output_path, str(e)
    data = _record_json(raw, pivot)
    Path(output_path).write_text(
        json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8"
    )
    return input_path, output_path, None


@app.command()
def clean(
    path: Path = typer.Argument(..., help="Raw record file"),
) -> None:
    """Print the cleaned text of a raw record."""
    typer.echo(clean_text(_read(path)))


@app.command()
def structure(
    path: Path = typer.Argument(..., help="Raw record file"),
) -> None:
    """Print the canonical section text of a raw record."""
    document = structure_text(clean_text(_read(path)))
    typer.echo(document.to_text())


@app.command()
def extract(
    path: Path = typer.Argument(..., help="Raw record file"),
    pivot: int = typer.Option(settings.two_digit_year_pivot, help="Two-digit year pivot"),
    require_identity: bool = typer.Option(
        False, "--require-identity", help="Exit with code 2 when name or birth date is missing"
    ),
) -> None:
    """Print the structured record as JSON."""
    record = process_record(_read(path), pivot=pivot)
    data = record.model_dump(mode="json", exclude={"blocks"})
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))

    if require_identity and not record.header.is_identifiable:
        missing = ", ".join(record.header.identity_missing)
        console.print(f"[bold red]Missing identity fields:[/bold red] {missing}")
        raise typer.Exit(code=2)


@app.command()
def report(
    path: Path = typer.Argument(..., help="Raw record file"),
    output: Path = typer.Option(Path("report.html"), help="Output HTML file"),
    page_height: float = typer.Option(settings.page_body_height, help="Page body height"),
    pivot: int = typer.Option(settings.two_digit_year_pivot, help="Two-digit year pivot"),
) -> None:
    """Render a paginated HTML report."""
    record = process_record(_read(path), pivot=pivot)
    measure = TextMetricsMeasurer(
        chars_per_line=settings.chars_per_line,
        line_height=settings.line_height,
        block_padding=settings.block_padding,
    )
    try:
        paged = paginate_record(record, measure, page_height)
    except PageBudgetError as e:
        console.print(f"[bold red]Pagination failed:[/bold red] {e}")
        raise typer.Exit(code=1)

    pages = compose_pages(paged, page_height, gap=settings.page_gap)
    output.write_text(render_report_html(pages, record.header), encoding="utf-8")
    console.print(
        f"[bold green]Wrote[/bold green] {output} "
        f"[dim]({len(record.blocks)} blocks, {len(paged)} cards, {len(pages)} pages)[/dim]"
    )


@app.command()
def batch(
    directory: Path = typer.Argument(..., help="Directory containing raw records"),
    output_dir: Path = typer.Option(Path("./output"), help="Output directory"),
    workers: int = typer.Option(settings.max_workers, min=1, help="Number of parallel workers"),
    pivot: int = typer.Option(settings.two_digit_year_pivot, help="Two-digit year pivot"),
) -> None:
    """Batch extract every record in a directory to JSON."""
    if not directory.is_dir():
        console.print(f"[bold red]Error:[/bold red] not a directory: {directory}")
        raise typer.Exit(code=1)

    inputs = sorted({p for pattern in BATCH_PATTERNS for p in directory.glob(pattern)})
    console.print(f"[bold blue]Batch processing:[/bold blue] {directory}")
    console.print(f"[dim]Records: {len(inputs)}, Workers: {workers}, Output: {output_dir}[/dim]")
    output_dir.mkdir(parents=True, exist_ok=True)

    work_items = [
        (
            str(p),
            str(output_dir / f"{p.stem}.json"),
            settings.input_encoding,
            settings.fallback_encoding,
            pivot,
        )
        for p in inputs
    ]

    table = Table(title="Batch results")
    table.add_column("Input")
    table.add_column("Output")
    table.add_column("Status")

    failures = 0
    with ProcessPoolExecutor(max_workers=workers) as executor:
        for input_path, output_path, error in executor.map(_batch_worker, work_items):
            if error:
                failures += 1
                table.add_row(input_path, "-", f"[red]{error}[/red]")
            else:
                table.add_row(input_path, output_path, "[green]ok[/green]")

    console.print(table)
    if failures:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
