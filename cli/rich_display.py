import logging

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cli.report import ValidationReport

console = Console()


def setup_logging(level: str = "WARNING") -> None:
    """Route library logging through a rich handler on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def create_error_table(report: ValidationReport) -> Table:
    """Build the table listing every instance error."""
    table = Table(
        title=f"[bold red]{len(report.errors)} validation error(s)[/bold red]",
        box=box.ROUNDED,
        expand=True,
        padding=(0, 1),
    )
    table.add_column("Instance path", style="cyan", no_wrap=True)
    table.add_column("Keyword", style="magenta", no_wrap=True)
    table.add_column("Message", style="white")

    for error in report.errors:
        table.add_row(error.instance_path or "/", error.keyword, Text(error.message))
    return table


def print_valid_panel(report: ValidationReport, subject: str = "Instance") -> None:
    """Print the success panel."""
    lines = [f"[bold green]{subject} is valid[/bold green]"]
    if report.dialect:
        lines.append(f"[bold]Dialect:[/bold] {report.dialect}")
    console.print(
        Panel(
            "\n".join(lines),
            title="[bold green]Result[/bold green]",
            border_style="green",
        )
    )


def print_invalid_panel(subject: str = "Instance") -> None:
    console.print(
        Panel(
            f"[bold red]{subject} is not valid[/bold red]",
            title="[bold red]Result[/bold red]",
            border_style="red",
        )
    )


def print_error_panel(message: str, path: str = "") -> None:
    """Print the error panel."""
    body = f"[red]{message}[/red]"
    if path:
        body += f"\n[bold]At:[/bold] {path}"
    console.print(
        Panel(
            body,
            title="[bold red]Error[/bold red]",
            border_style="red",
        )
    )


def print_report(report: ValidationReport, subject: str = "Instance") -> None:
    """Render a report as rich panels and tables."""
    if report.schema_error:
        print_error_panel(f"Invalid schema: {report.schema_error}", report.schema_error_path or "")
    elif report.valid:
        print_valid_panel(report, subject)
    elif report.errors:
        console.print(create_error_table(report))
    else:
        print_invalid_panel(subject)

