"""CLI interface for the editorial pipeline."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from editorial.config import EditorialConfig, load_config, merge_cli_overrides
from editorial.content.models import ContentItem, ContentStatus
from editorial.errors import ConfigurationError, ItemNotFoundError, RunReport, StoreError
from editorial.workflow import Stage, create_state_machine

app = typer.Typer(
    name="editorial",
    help="Research topics and draft articles, driven by content status.",
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to a .editorial.toml config file."),
]
StoreOption = Annotated[
    Optional[str],
    typer.Option("--store", help="Store backend: json, markdown, github or notion."),
]
ContentDirOption = Annotated[
    Optional[Path],
    typer.Option("--content-dir", help="Content directory for the json and markdown stores."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from editorial import __version__

        console.print(f"editorial {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Editorial pipeline - research and draft content by status."""
    pass


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(
    config_path: Optional[Path],
    store: Optional[str],
    content_dir: Optional[Path],
    verbose: bool,
) -> EditorialConfig:
    _setup_logging(verbose)
    try:
        config = load_config(config_path)
        if content_dir is not None:
            config = merge_cli_overrides(
                config, json_path=str(content_dir), content_dir=str(content_dir)
            )
        return merge_cli_overrides(config, store=store)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _print_report(report: RunReport) -> None:
    label = "[DRY RUN] " if report.dry_run else ""
    if not report.outcomes:
        console.print(f"{label}[yellow]No items ready for {report.stage}.[/yellow]")
        return
    for outcome in report.outcomes:
        colour = {
            "succeeded": "green",
            "failed": "red",
            "retry": "yellow",
        }.get(outcome.outcome.value, "dim")
        detail = f": {outcome.message}" if outcome.message else ""
        created = f" -> {outcome.created_id}" if outcome.created_id else ""
        console.print(
            f"  [{colour}]{outcome.outcome.value}[/{colour}] "
            f"{outcome.title or outcome.item_id}{created}{detail}"
        )
    console.print(f"{label}[bold]{report.summary()}[/bold]")


def _run_stage(
    stage: Stage,
    *,
    single_item: bool,
    dry_run: bool,
    item_id: Optional[str],
    config_path: Optional[Path],
    store: Optional[str],
    content_dir: Optional[Path],
    verbose: bool,
) -> None:
    config = _load(config_path, store, content_dir, verbose)
    try:
        machine = create_state_machine(config, stages=() if dry_run else (stage,))
        report = machine.run(stage, single_item=single_item, dry_run=dry_run, item_id=item_id)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
    except StoreError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
    _print_report(report)


SingleItemOption = Annotated[
    bool,
    typer.Option("--single-item", "-s", help="Process only the first eligible item."),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", "-d", help="Validate eligible items without changing anything."),
]
ItemIdOption = Annotated[
    Optional[str],
    typer.Option("--item-id", "-i", help="Process only this item, if it is eligible."),
]


@app.command()
def research(
    single_item: SingleItemOption = False,
    dry_run: DryRunOption = False,
    item_id: ItemIdOption = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Research items that are Ready for Research."""
    _run_stage(
        Stage.RESEARCH,
        single_item=single_item,
        dry_run=dry_run,
        item_id=item_id,
        config_path=config,
        store=store,
        content_dir=content_dir,
        verbose=verbose,
    )


@app.command()
def draft(
    single_item: SingleItemOption = False,
    dry_run: DryRunOption = False,
    item_id: ItemIdOption = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Draft articles for items that are Ready for Draft."""
    _run_stage(
        Stage.DRAFT,
        single_item=single_item,
        dry_run=dry_run,
        item_id=item_id,
        config_path=config,
        store=store,
        content_dir=content_dir,
        verbose=verbose,
    )


@app.command()
def run(
    stage: Annotated[Stage, typer.Option("--stage", help="Stage to run.")],
    single_item: SingleItemOption = False,
    dry_run: DryRunOption = False,
    item_id: ItemIdOption = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run one stage by name (for event-driven triggers)."""
    _run_stage(
        stage,
        single_item=single_item,
        dry_run=dry_run,
        item_id=item_id,
        config_path=config,
        store=store,
        content_dir=content_dir,
        verbose=verbose,
    )


@app.command()
def monitor(
    stage: Annotated[
        Stage, typer.Option("--stage", help="Stage whose entry status to check.")
    ] = Stage.RESEARCH,
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print has-content=true|false depending on whether items are waiting."""
    cfg = _load(config, store, content_dir, verbose)
    try:
        machine = create_state_machine(cfg, stages=())
        has_content = machine.has_eligible_items(stage)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
    except StoreError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
    typer.echo(f"has-content={'true' if has_content else 'false'}")


@app.command()
def poll(
    interval: Annotated[
        Optional[float],
        typer.Option("--interval", help="Minutes between cycles (default from config)."),
    ] = None,
    no_research: Annotated[
        bool, typer.Option("--no-research", help="Skip the research stage.")
    ] = False,
    no_draftwriter: Annotated[
        bool, typer.Option("--no-draftwriter", help="Skip the draft stage.")
    ] = False,
    max_cycles: Annotated[
        Optional[int], typer.Option("--max-cycles", help="Stop after this many cycles.")
    ] = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run research then draft, one item each, on a timer."""
    from editorial.workflow.scheduler import TimedPoller

    cfg = merge_cli_overrides(_load(config, store, content_dir, verbose), interval=interval)
    run_research = cfg.scheduler.research and not no_research
    run_draft = cfg.scheduler.draft and not no_draftwriter
    stages = tuple(
        s for s, enabled in ((Stage.RESEARCH, run_research), (Stage.DRAFT, run_draft)) if enabled
    )

    console.print("[bold]Timed editorial workflow[/bold]")
    console.print(f"  Interval: {cfg.scheduler.interval_minutes} minute(s)")
    console.print(f"  Research: {'enabled' if run_research else 'disabled'}")
    console.print(f"  Draft: {'enabled' if run_draft else 'disabled'}")

    try:
        poller = TimedPoller(
            create_state_machine(cfg, stages=stages),
            interval_minutes=cfg.scheduler.interval_minutes,
            research=run_research,
            draft=run_draft,
        )
        cycles = poller.run_forever(max_cycles=max_cycles)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
    console.print(f"Completed {cycles} cycle(s).")


def _all_items(cfg: EditorialConfig, status: Optional[ContentStatus]) -> list[ContentItem]:
    from editorial.stores import create_store

    content_store = create_store(cfg)
    if status is not None:
        return content_store.query_by_status(status)
    list_all = getattr(content_store, "all", None)
    if callable(list_all):
        return list_all()
    items: list[ContentItem] = []
    for s in ContentStatus:
        items.extend(content_store.query_by_status(s))
    return items


@app.command()
def status(
    status_filter: Annotated[
        Optional[ContentStatus],
        typer.Option("--status", help="Only show items with this status."),
    ] = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List items and their statuses."""
    cfg = _load(config, store, content_dir, verbose)
    try:
        items = _all_items(cfg, status_filter)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
    except StoreError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    if not items:
        console.print("[yellow]No items found.[/yellow]")
        return

    table = Table(title=f"Content items ({len(items)})")
    table.add_column("ID", style="dim", overflow="fold")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Related", style="dim", overflow="fold")
    table.add_column("Error", style="red")
    for item in items:
        table.add_row(
            item.id,
            item.title or "[dim](untitled)[/dim]",
            item.status.value,
            item.related_id or "",
            item.error_message or "",
        )
    console.print(table)


@app.command()
def show(
    item_id: Annotated[str, typer.Argument(help="Item id to show.")],
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print one item with its body."""
    from editorial.stores import create_store

    cfg = _load(config, store, content_dir, verbose)
    try:
        item = create_store(cfg).read(item_id)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
    except ItemNotFoundError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    console.print(f"[bold]{item.title or '(untitled)'}[/bold]")
    console.print(f"  ID: {item.id}")
    console.print(f"  Status: {item.status.value}")
    if item.related_id:
        console.print(f"  Related: {item.related_id}")
    if item.error_message:
        console.print(f"  [red]Error: {item.error_message}[/red]")
    if item.last_modified:
        console.print(f"  Last modified: {item.last_modified.isoformat()}")
    console.print()
    console.print(item.body, markup=False, highlight=False)


@app.command()
def reset(
    item_id: Annotated[str, typer.Argument(help="Item id to reset.")],
    to: Annotated[ContentStatus, typer.Option("--to", help="Status to move the item to.")],
    config: ConfigOption = None,
    store: StoreOption = None,
    content_dir: ContentDirOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Move an item out of Error or a stuck in-progress status."""
    cfg = _load(config, store, content_dir, verbose)
    try:
        machine = create_state_machine(cfg, stages=())
        item = machine.reset_item(item_id, to)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
    except StoreError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
    console.print(f"[green]{item.id} is now {item.status.value}[/green]")


if __name__ == "__main__":
    app()
