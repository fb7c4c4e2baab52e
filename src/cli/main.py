"""Main CLI entry point for the sbsync command.

This module provides the Typer application that serves as the entry point
for the sbsync command-line tool: `init` writes a configuration file, `plan`
previews the ordered sync plan and `sync` executes it.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from src.cli.config import DEFAULT_CONFIG_PATH, ConfigLoader
from src.cli.errors import CLIError
from src.cli.models import ExitCode, SbsyncConfig
from src.cli.output import OutputHandler
from src.cli.sync_command import SyncCommand

app = typer.Typer(
    name="sbsync",
    help="""Copy Storyblok stories and folders from one space to another.

QUICK START:
  sbsync init --source <id> --target <id>    # Write sbsync.yaml
  sbsync plan --prefix app                   # Preview the plan
  sbsync sync --prefix app                   # Sync the app subtree
  sbsync sync --prefix app/home --fork-slug home-v2   # Sync as a copy

SB_TOKEN (management API token) is read from the environment or .env.""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"sbsync_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sbsync version {VERSION}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Copy Storyblok stories and folders from one space to another."""


@app.command("init")
def init_command(
    source: int = typer.Option(..., "--source", help="Source space id"),
    target: int = typer.Option(..., "--target", help="Target space id"),
    config_path: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Configuration file to write"),
    report_dir: str = typer.Option(".", "--report-dir", help="Directory for sync reports"),
    no_publish: bool = typer.Option(False, "--no-publish", help="Never publish in the target space"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration file"),
    verbosity: int = typer.Option(0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Write a configuration file for a source/target space pair."""
    _configure_logging(verbosity)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    if os.path.exists(config_path) and not force:
        output.error(f"{config_path} already exists (use --force to overwrite)")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    if source == target:
        output.error("Source and target space must differ")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    config = SbsyncConfig(
        source_space_id=source,
        target_space_id=target,
        publish=not no_publish,
        report_dir=report_dir,
    )
    try:
        ConfigLoader.save(config_path, config)
    except CLIError as e:
        logger.error(f"Initialization failed: {e}")
        output.error(f"Initialization failed: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    output.success(f"Configuration written to {config_path}")
    output.info("")
    output.info("Next steps:")
    output.info("  1. Put SB_TOKEN in the environment or a .env file")
    output.info("  2. Run 'sbsync plan --prefix <slug>' to preview a sync")
    raise typer.Exit(ExitCode.SUCCESS)


@app.command("plan")
def plan_command(
    prefix: Optional[List[str]] = typer.Option(
        None, "--prefix", help="Full-slug prefix to select (can be used multiple times)", metavar="SLUG",
    ),
    select_all: bool = typer.Option(False, "--all", help="Select every source story"),
    fork_slug: Optional[str] = typer.Option(None, "--fork-slug", help="Plan the selected prefix as a copy under this slug"),
    copy_suffix: bool = typer.Option(False, "--copy-suffix", help="Append ' (copy)' to forked names"),
    source: Optional[int] = typer.Option(None, "--source", help="Source space id (overrides config)"),
    target: Optional[int] = typer.Option(None, "--target", help="Target space id (overrides config)"),
    config_path: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Configuration file"),
    verbosity: int = typer.Option(0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Show the ordered sync plan without changing the target."""
    _configure_logging(verbosity)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    sync_cmd = SyncCommand(config_path=config_path, output_handler=output)
    exit_code = sync_cmd.run(
        prefixes=prefix,
        select_all=select_all,
        plan_only=True,
        fork_slug=fork_slug,
        copy_suffix=copy_suffix,
        source_space_id=source,
        target_space_id=target,
    )
    raise typer.Exit(exit_code)


@app.command("sync")
def sync_command(
    prefix: Optional[List[str]] = typer.Option(
        None, "--prefix", help="Full-slug prefix to select (can be used multiple times)", metavar="SLUG",
    ),
    select_all: bool = typer.Option(False, "--all", help="Sync every source story"),
    dry_run: bool = typer.Option(False, "--dry-run", "--dryrun", help="Preview changes without applying them"),
    fork_slug: Optional[str] = typer.Option(None, "--fork-slug", help="Sync the selected prefix as a copy under this slug"),
    copy_suffix: bool = typer.Option(False, "--copy-suffix", help="Append ' (copy)' to forked names"),
    no_hydrate: bool = typer.Option(False, "--no-hydrate", help="Skip the delivery API prefetch"),
    report_dir: Optional[str] = typer.Option(None, "--report-dir", help="Directory for the JSON sync report"),
    source: Optional[int] = typer.Option(None, "--source", help="Source space id (overrides config)"),
    target: Optional[int] = typer.Option(None, "--target", help="Target space id (overrides config)"),
    config_path: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Configuration file"),
    logdir: Optional[str] = typer.Option(None, "--logdir", help="Directory for log files (creates timestamped log file)"),
    verbosity: int = typer.Option(0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Sync the selected stories into the target space.

    \b
    EXAMPLES:
      sbsync sync --prefix app                  # app and everything below it
      sbsync sync --prefix app --prefix blog    # two subtrees
      sbsync sync --all --dry-run               # preview a full sync
      sbsync sync --prefix app/home --fork-slug home-v2 --copy-suffix
    """
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    sync_cmd = SyncCommand(config_path=config_path, output_handler=output)
    exit_code = sync_cmd.run(
        prefixes=prefix,
        select_all=select_all,
        dry_run=dry_run,
        fork_slug=fork_slug,
        copy_suffix=copy_suffix,
        hydrate=not no_hydrate,
        source_space_id=source,
        target_space_id=target,
        report_dir=report_dir,
    )
    raise typer.Exit(exit_code)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
