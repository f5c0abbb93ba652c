"""CLI interface for cleanslim."""

import logging
from typing import Optional

import typer

from cleanslim import __version__
from cleanslim.categories import CATEGORIES, build_categories, get_all_categories
from cleanslim.config import Settings, get_config_file, load_settings
from cleanslim.display import (
    ProgressBarListener,
    confirm_action,
    console,
    show_categories,
    show_cleanup_preview,
    show_cleanup_result,
    show_cleanup_summary,
    show_progress,
    show_settings,
    show_status,
)
from cleanslim.models import ScanState
from cleanslim.orchestrator import ScanCleanOrchestrator
from cleanslim.pacing import PacedListener
from cleanslim.scanner import get_disk_usage
from cleanslim.selection import JsonSelectionStore, MemorySelectionStore, SelectionStore

app = typer.Typer(
    name="cleanslim",
    help="Measure and reclaim disk space used by cache directories",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"cleanslim version {__version__}")
        raise typer.Exit()


def configure_logging(settings: Settings, verbose: bool = False) -> None:
    """Configure root logging from settings and the --verbose flag."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("cleanslim").setLevel(level)


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """cleanslim - cache cleanup CLI."""
    configure_logging(load_settings(), verbose)


def _make_orchestrator(
    selection_store: SelectionStore,
    settings: Settings,
    dry_run: bool = False,
) -> ScanCleanOrchestrator:
    return ScanCleanOrchestrator(
        categories=build_categories(selection_store),
        selection_store=selection_store,
        max_clean_workers=settings.max_clean_workers,
        dry_run=dry_run,
        credit_policy=settings.credit_policy,
    )


def _run_scan(orchestrator: ScanCleanOrchestrator, settings: Settings) -> None:
    with show_progress() as progress:
        listener = PacedListener(
            ProgressBarListener(progress, "Scanning..."),
            scan_step_delay=settings.scan_step_delay,
        )
        orchestrator.subscribe(listener)
        orchestrator.start_scan()
        orchestrator.wait()
        orchestrator.unsubscribe(listener)


@app.command()
def scan() -> None:
    """Measure every cache category."""
    settings = load_settings()
    store = JsonSelectionStore()

    with _make_orchestrator(store, settings) as orchestrator:
        _run_scan(orchestrator, settings)
        console.print()
        show_categories(orchestrator.categories)

    console.print("\n[dim]Run [bold]cleanslim clean[/bold] to clean the selected categories[/dim]")


@app.command()
def clean(
    category: Optional[list[str]] = typer.Option(
        None, "--category", "-c", help="Clean only these categories (repeatable)"
    ),
    all_categories: bool = typer.Option(False, "--all", help="Clean every category"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without deleting"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Scan, then delete the contents of the selected categories."""
    settings = load_settings()
    persisted = JsonSelectionStore()

    if category:
        unknown = [c for c in category if c not in CATEGORIES]
        if unknown:
            console.print(f"[red]Unknown category: {', '.join(unknown)}[/red]")
            console.print("\nAvailable categories:")
            for cat_id in sorted(CATEGORIES.keys()):
                console.print(f"  • {cat_id}")
            raise typer.Exit(1)

    # One-off selections from flags are not written back
    store: SelectionStore = persisted
    if category or all_categories:
        store = MemorySelectionStore(persisted.snapshot())

    with _make_orchestrator(store, settings, dry_run=dry_run) as orchestrator:
        if category:
            for cat_id in CATEGORIES:
                orchestrator.set_selection(cat_id, cat_id in category)
        elif all_categories:
            for cat_id in CATEGORIES:
                orchestrator.set_selection(cat_id, True)

        _run_scan(orchestrator, settings)

        selected = orchestrator.selected_categories
        if not selected:
            console.print("[yellow]No categories selected.[/yellow]")
            raise typer.Exit(0)

        console.print()
        show_cleanup_preview(selected, dry_run=dry_run)

        if not yes and not dry_run:
            console.print()
            if not confirm_action("Proceed with cleanup?"):
                console.print("[yellow]Cancelled[/yellow]")
                raise typer.Exit(0)

        disk_before = get_disk_usage()

        console.print()
        with show_progress() as progress:
            listener = PacedListener(
                ProgressBarListener(progress, "Cleaning..."),
                min_clean_seconds=settings.min_clean_display_seconds,
            )
            orchestrator.subscribe(listener)
            orchestrator.clean_selected()
            orchestrator.wait()
            orchestrator.unsubscribe(listener)

        if orchestrator.state != ScanState.COMPLETED:
            console.print("[red]Cleanup did not run.[/red]")
            raise typer.Exit(1)

        outcomes = orchestrator.last_outcomes
        for outcome in outcomes:
            show_cleanup_result(outcome)

        disk_after = None if dry_run else get_disk_usage()
        show_cleanup_summary(orchestrator.cleaned_size, outcomes, disk_before, disk_after)


@app.command()
def select(
    category: str = typer.Argument(..., help="Category ID"),
    selected: Optional[bool] = typer.Option(
        None, "--on/--off", help="Set the selection instead of toggling it"
    ),
) -> None:
    """Toggle or set whether a category is cleaned by default."""
    definition = CATEGORIES.get(category)
    if definition is None:
        console.print(f"[red]Unknown category: {category}[/red]")
        raise typer.Exit(1)

    store = JsonSelectionStore()
    if selected is None:
        current = store.get(category)
        if current is None:
            current = definition.default_selected
        selected = not current

    store.set(category, selected)
    state = "[green]selected[/green]" if selected else "[dim]not selected[/dim]"
    console.print(f"{definition.name}: {state}")


@app.command(name="list")
def list_categories() -> None:
    """List all cache categories."""
    console.print("[bold]Available Categories[/bold]\n")

    store = JsonSelectionStore()
    for definition in get_all_categories():
        selected = store.get(definition.id)
        if selected is None:
            selected = definition.default_selected
        mark = "[green]✓[/green]" if selected else " "
        console.print(f"  {mark} [bold]{definition.id}[/bold] - {definition.name} [dim]{definition.path}[/dim]")

    console.print("\n[dim]Run [bold]cleanslim select <category>[/bold] to change the selection[/dim]")


@app.command()
def status() -> None:
    """Show current disk usage summary."""
    show_status(get_disk_usage())


@app.command()
def config() -> None:
    """Show configuration file location and settings."""
    show_settings(load_settings(), get_config_file())


if __name__ == "__main__":
    app()
