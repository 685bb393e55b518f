"""Main CLI entry point using Typer.

This module defines the single ``nftsafe`` command: resolve the run
configuration, wire the services together and run the apply state machine.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from nftsafe import __version__
from nftsafe.core.config import (
    DEFAULT_BACKUP_DIR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_DESTINATION_FILE,
    DEFAULT_SOURCE_FILE,
    DEFAULT_TIMEOUT,
    RunConfig,
    resolve_run_config,
)
from nftsafe.core.context import ExecutionContext, create_context
from nftsafe.core.exceptions import ExitOutcome, NftSafeError
from nftsafe.core.executor import CommandExecutor
from nftsafe.core.output import console as app_console
from nftsafe.core.safety import is_root, require_root
from nftsafe.services.apply import ApplyResult, ApplyStateMachine
from nftsafe.services.backup import BackupStore
from nftsafe.services.guard import SystemdGuardController
from nftsafe.services.nftables import NftablesEngine
from nftsafe.services.systemd import SystemdService


app = typer.Typer(
    name="nftsafe",
    help="Apply an nftables ruleset with automatic rollback.",
    add_completion=False,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"nftsafe version {__version__}")
        raise typer.Exit(ExitOutcome.USAGE)


def help_callback(ctx: typer.Context, value: bool) -> None:
    """Print help and exit."""
    if value and not ctx.resilient_parsing:
        typer.echo(ctx.get_help())
        raise typer.Exit(ExitOutcome.USAGE)


def handle_error(error: NftSafeError) -> None:
    """Handle an NftSafeError by printing formatted error and exiting."""
    app_console.error(error.message)

    for detail in error.details:
        app_console.detail(detail)

    if error.hint:
        app_console.hint(error.hint)

    raise typer.Exit(error.exit_code)


def build_state_machine(ctx: ExecutionContext, config: RunConfig) -> ApplyStateMachine:
    """Wire the production collaborators into a state machine."""
    executor = CommandExecutor(ctx)
    engine = NftablesEngine(ctx, executor, nft_binary=config.nft_binary)
    guards = SystemdGuardController(ctx, SystemdService(ctx, executor))
    store = BackupStore(ctx, engine, config.backup_dir)
    return ApplyStateMachine(ctx, config, engine, guards, store=store)


def _show_result(
    ctx: ExecutionContext,
    config: RunConfig,
    result: ApplyResult,
    store: BackupStore,
) -> None:
    if result.dry_run:
        ctx.console.success("Dry run complete; nothing was changed")
        return

    ctx.console.summary(
        "Ruleset committed",
        {
            "Source": config.source_file,
            "Destination": config.destination_file,
            "Archive entry": result.archive_entry,
            "Reset directive added": result.normalized,
            "Archived rulesets": len(store.list_archive()),
            "Guard services restarted": ", ".join(result.guard_services_stopped) or "none",
        },
    )


@app.command(add_help_option=False)
def main(
    source_file: Annotated[
        Optional[Path],
        typer.Option(
            "--source-file",
            "-s",
            help=f"Candidate ruleset to apply. Default: {DEFAULT_SOURCE_FILE}",
            dir_okay=False,
        ),
    ] = None,
    destination_file: Annotated[
        Optional[Path],
        typer.Option(
            "--destination-file",
            "-d",
            help=f"Active configuration, replaced on success. Default: {DEFAULT_DESTINATION_FILE}",
            dir_okay=False,
        ),
    ] = None,
    backup_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--backup-dir",
            "-b",
            help=f"Directory for the snapshot and archived rulesets. Default: {DEFAULT_BACKUP_DIR}",
            file_okay=False,
        ),
    ] = None,
    timeout: Annotated[
        Optional[int],
        typer.Option(
            "--timeout",
            "-t",
            min=1,
            help=f"Seconds allowed for activation and for confirmation. Default: {DEFAULT_TIMEOUT}",
        ),
    ] = None,
    guard_service: Annotated[
        Optional[list[str]],
        typer.Option(
            "--guard-service",
            "-g",
            help="Service stopped while the new ruleset is tested. Repeatable. Default: fail2ban",
        ),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help=f"Path to configuration file. Default: {DEFAULT_CONFIG_PATH}",
            dir_okay=False,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Check the candidate and show what would happen without changing anything.",
        ),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase output verbosity. Can be repeated (-v, -vv).",
        ),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output. Only show errors and the prompt.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    help_: Annotated[
        bool,
        typer.Option(
            "--help",
            "-h",
            callback=help_callback,
            is_eager=True,
            expose_value=False,
            help="Show this message and exit.",
        ),
    ] = False,
) -> None:
    """Apply an nftables ruleset and roll it back unless confirmed.

    The live ruleset is saved, the candidate is checked and activated, and
    you are asked to confirm that you can still reach the host. Without a
    [bold]y[/bold] within the timeout the previous ruleset is restored.

    [bold]Exit codes:[/bold] 0 committed, 2 help/version, 3 not root,
    4 destination unreadable, 5 source unreadable, 6 invalid syntax,
    7 activation timed out or failed, 8 not confirmed.

    [bold]Examples:[/bold]
        sudo nftsafe
        sudo nftsafe -s /root/new.nft -t 30
        sudo nftsafe --dry-run -s /root/new.nft
    """
    ctx = create_context(
        dry_run=dry_run,
        verbose=verbose,
        quiet=quiet,
        no_color=no_color,
    )

    try:
        # Privileges come first, before any configuration source is read
        require_root(is_root())

        run_config = resolve_run_config(
            config_path=config,
            source_file=source_file,
            destination_file=destination_file,
            backup_dir=backup_dir,
            timeout=timeout,
            guard_services=guard_service,
        )
        ctx.console.debug(f"Run configuration: {run_config!r}")

        machine = build_state_machine(ctx, run_config)
        result = machine.run()
    except NftSafeError as e:
        handle_error(e)
        return

    _show_result(ctx, run_config, result, machine.store)


# Entry point
if __name__ == "__main__":
    app()
