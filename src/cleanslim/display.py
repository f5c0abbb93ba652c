"""Rich terminal display for cleanslim."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from cleanslim.config import Settings
from cleanslim.models import Category, CleanOutcome, DiskUsage, StateChange, format_size
from cleanslim.orchestrator import OrchestratorListener

console = Console()

PROGRESS_STEPS = 1000


def selection_icon(selected: bool) -> str:
    """Get checkbox for a selection flag."""
    return "[green]✓[/green]" if selected else "[dim]·[/dim]"


def show_categories(categories: list[Category], title: str = "Cache Categories") -> None:
    """Display categories with their measured sizes."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("", width=3)
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Path")

    total = 0
    for category in categories:
        if category.measured:
            size = format_size(category.size_bytes)
            files = str(category.file_count)
            total += category.size_bytes
        else:
            size = "[dim]-[/dim]"
            files = "[dim]-[/dim]"
        table.add_row(
            selection_icon(category.is_selected),
            category.id,
            category.name,
            size,
            files,
            str(category.path),
        )

    console.print(table)
    console.print(f"[bold]Total: {format_size(total)}[/bold]")


def show_cleanup_preview(categories: list[Category], dry_run: bool = False) -> None:
    """Display what is about to be cleaned."""
    if dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")

    table = Table(title="Cleanup Preview", show_header=True, header_style="bold")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    table.add_column("Path")

    total = 0
    for category in categories:
        table.add_row(category.name, format_size(category.size_bytes), str(category.path))
        total += category.size_bytes

    console.print(table)
    console.print(f"\n[bold]Total to clean: {format_size(total)}[/bold]")


def show_cleanup_result(outcome: CleanOutcome) -> None:
    """Display result of a single category clean."""
    if not outcome.success:
        console.print(f"  [red]✗[/red] {outcome.category_id}: {outcome.error}")
    elif outcome.has_failures:
        console.print(
            f"  [yellow]![/yellow] {outcome.category_id}: {format_size(outcome.bytes_freed)} freed, "
            f"{outcome.items_failed} of {outcome.items_total} items could not be removed"
        )
    else:
        console.print(
            f"  [green]✓[/green] {outcome.category_id}: {format_size(outcome.bytes_freed)} freed"
        )


def show_cleanup_summary(
    bytes_freed: int,
    outcomes: list[CleanOutcome],
    disk_before: DiskUsage | None = None,
    disk_after: DiskUsage | None = None,
) -> None:
    """Display cleanup summary."""
    success_count = sum(1 for o in outcomes if o.success)
    failure_count = sum(1 for o in outcomes if not o.success)
    item_failures = sum(o.items_failed for o in outcomes)

    console.print()
    console.print("[bold green]Cleanup Complete![/bold green]")
    console.print()

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Space freed", format_size(bytes_freed))
    table.add_row("Categories cleaned", str(success_count))
    if failure_count > 0:
        table.add_row("[red]Failed[/red]", str(failure_count))
    if item_failures > 0:
        table.add_row("[yellow]Items kept[/yellow]", str(item_failures))
    if disk_before and disk_after:
        table.add_row("Free space before", f"{disk_before.free_gb:.1f} GB")
        table.add_row("Free space after", f"[bold green]{disk_after.free_gb:.1f} GB[/bold green]")

    console.print(table)


def show_status(disk_usage: DiskUsage) -> None:
    """Display quick status."""
    used_percent = disk_usage.used_percent

    if used_percent >= 90:
        status = "[red]CRITICAL[/red]"
    elif used_percent >= 75:
        status = "[yellow]WARNING[/yellow]"
    else:
        status = "[green]OK[/green]"

    console.print(f"Disk Status: {status}")
    console.print(f"  Total: {disk_usage.total_gb:.0f} GB")
    console.print(f"  Used:  {disk_usage.used_gb:.0f} GB ({used_percent:.0f}%)")
    console.print(f"  Free:  {disk_usage.free_gb:.0f} GB")


def show_settings(settings: Settings, config_file: Path) -> None:
    """Display current settings."""
    lines = [f"[bold]{key}[/bold]: {value}" for key, value in settings.model_dump().items()]
    console.print(Panel("\n".join(lines), title=str(config_file), border_style="blue"))


def show_progress() -> Progress:
    """Create progress bar for scanning and cleaning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )


class ProgressBarListener(OrchestratorListener):
    """Mirror orchestrator progress onto a rich Progress task."""

    def __init__(self, progress: Progress, description: str):
        self.progress = progress
        self.task = progress.add_task(description, total=PROGRESS_STEPS)

    def on_scan_progress(self, fraction: float) -> None:
        self.progress.update(self.task, completed=fraction * PROGRESS_STEPS)

    def on_clean_progress(self, fraction: float) -> None:
        self.progress.update(self.task, completed=fraction * PROGRESS_STEPS)

    def on_state_change(self, change: StateChange) -> None:
        self.progress.update(self.task, description=f"{change.current.value.capitalize()}...")


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
