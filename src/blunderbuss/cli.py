"""
CLI interface for Blunderbuss using Typer.

With no sub-command the launcher TUI starts. ``version`` and
``update-models`` are the only other commands.
"""

import os
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import print as rprint

from . import __version__
from .config import Config, Defaults, Settings, load_config
from .discovery import ModelRegistry
from .exceptions import ConfigError, DiscoveryError
from .logging_config import setup_cli_logging, setup_tui_logging
from .orchestrator import Services
from .store import DEFAULT_BEADS_DIR
from .workspace import find_repo_root

EXIT_CONFIG_ERROR = 2
EXIT_NOT_IN_TMUX = 3

app = typer.Typer(
    name="blunderbuss",
    help="Pick a ticket, launch an agent harness for it in tmux, watch it run",
    no_args_is_help=False,
    invoke_without_command=True,
    rich_markup_mode="rich",
)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config.yaml"),
]


def _load_config_or_exit(path: Optional[Path]) -> Config:
    try:
        return load_config(path)
    except ConfigError as e:
        rprint(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)


def build_services(
    config: Config,
    beads_dir: Path,
    dry_run: bool = False,
    debug: bool = False,
) -> Services:
    """Wire the real collaborators: bd, git worktrees, models.dev and tmux."""
    from .fakes import FakeOutputCapture, FakeStatusChecker
    from .implementations import DRY_RUN_WINDOW_ID, TmuxLauncher, TmuxOutputCapture, TmuxStatusChecker
    from .domain import WindowStatus
    from .render import TemplateRenderer
    from .store import BeadsStore
    from .workspace import GitWorkspaceDiscoverer

    settings = config.settings
    # The tickets live in the repo being worked on; cwd is only a fallback
    repo_root = find_repo_root(Path(beads_dir).expanduser().resolve().parent) or find_repo_root(Path.cwd())

    if dry_run:
        # Nothing is executed, so the window is gone as soon as it is polled
        status_checker = FakeStatusChecker({DRY_RUN_WINDOW_ID: WindowStatus.DEAD})

        def capture_factory(window_id: str) -> FakeOutputCapture:
            return FakeOutputCapture(window_id, content=b"[dry-run] command was not executed\n")
    else:
        status_checker = TmuxStatusChecker()
        capture_factory = TmuxOutputCapture

    return Services(
        store=BeadsStore(beads_dir),
        harnesses=list(config.harnesses),
        renderer=TemplateRenderer(dry_run=dry_run, debug=debug),
        launcher=TmuxLauncher(dry_run=dry_run),
        status_checker=status_checker,
        capture_factory=capture_factory,
        models=ModelRegistry(
            attempts=settings.model_fetch_attempts,
            backoff=settings.model_fetch_backoff,
        ),
        discoverer=GitWorkspaceDiscoverer(repo_root) if repo_root else None,
        settings=settings,
        defaults=config.defaults,
        default_workspace=str(repo_root or Path.cwd()),
    )


def build_demo_services(config: Optional[Config] = None) -> Services:
    """In-memory collaborators; nothing touches tmux, git or bd."""
    from .fakes import (
        FakeLauncher,
        FakeOutputCapture,
        FakeStatusChecker,
        FakeTicketStore,
        FakeWorkspaceDiscoverer,
        demo_harnesses,
    )
    from .render import TemplateRenderer

    discoverer = FakeWorkspaceDiscoverer()

    def capture_factory(window_id: str) -> FakeOutputCapture:
        return FakeOutputCapture(window_id, content=f"demo agent in window {window_id}\nworking...\n".encode())

    harnesses = list(config.harnesses) if config else demo_harnesses()
    return Services(
        store=FakeTicketStore(),
        harnesses=harnesses,
        renderer=TemplateRenderer(dry_run=True),
        launcher=FakeLauncher(),
        status_checker=FakeStatusChecker(),
        capture_factory=capture_factory,
        discoverer=discoverer,
        settings=config.settings if config else Settings(),
        defaults=config.defaults if config else Defaults(),
        default_workspace=discoverer.repo_root,
    )


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: ConfigOption = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Render and log commands without launching them")
    ] = False,
    debug: Annotated[
        bool, typer.Option("--debug", help="Verbose logging to ~/.cache/blunderbuss/blunderbuss.log")
    ] = False,
    beads_dir: Annotated[
        Path, typer.Option("--beads-dir", help="Beads database directory")
    ] = DEFAULT_BEADS_DIR,
    demo: Annotated[
        bool, typer.Option("--demo", help="Run against built-in sample data")
    ] = False,
):
    """Launch the TUI when no command is given."""
    if ctx.invoked_subcommand is not None:
        return

    from .implementations import inside_tmux
    from .tui import run_tui

    if not (dry_run or demo) and not inside_tmux():
        rprint("[red]Error:[/red] blunderbuss must run inside tmux (or pass --dry-run / --demo)")
        raise typer.Exit(code=EXIT_NOT_IN_TMUX)

    if demo:
        loaded = _load_config_or_exit(config) if config else None
        services = build_demo_services(loaded)
    else:
        services = build_services(_load_config_or_exit(config), beads_dir, dry_run=dry_run, debug=debug)

    logger = setup_tui_logging(debug=debug)
    logger.info("Starting (dry_run=%s demo=%s cwd=%s)", dry_run, demo, os.getcwd())
    run_tui(services, dry_run=dry_run or demo)


@app.command()
def version():
    """Show the installed version."""
    rprint(f"blunderbuss {__version__}")


@app.command("update-models")
def update_models(
    cache_dir: Annotated[
        Optional[Path], typer.Option("--cache-dir", help="Directory for the models.dev cache")
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Show debug logging")] = False,
):
    """Refresh the cached models.dev catalogue."""
    setup_cli_logging(debug=debug)
    registry = ModelRegistry(cache_dir=cache_dir)
    try:
        registry.refresh()
    except DiscoveryError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    rprint(f"[green]✓[/green] Cached {registry.provider_count} providers at {registry.cache_path}")


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
