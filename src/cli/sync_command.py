"""Sync command orchestration for CLI.

This module provides the SyncCommand class that drives a complete
space-to-space sync for the CLI: configuration, credentials, inventories,
selection, planning, hydration, execution and reporting.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

from src.cli.config import DEFAULT_CONFIG_PATH, ConfigLoader
from src.cli.errors import CLIError, ConfigError, ConfigNotFoundError, SelectionError
from src.cli.models import ExitCode, SbsyncConfig, SyncSummary
from src.cli.output import OutputHandler
from src.cli.report import SyncReport
from src.space_sync.call_context import CallContext
from src.space_sync.fork import fork_subtree
from src.space_sync.models import ItemOutcome, Operation, PreflightItem
from src.space_sync.observer import SyncObserver
from src.space_sync.orchestrator import SyncOrchestrator
from src.space_sync.rate_limiter import SpaceRateLimiter
from src.space_sync.slug_utils import sort_stories_by_full_slug
from src.storyblok_client.api_wrapper import ManagementAPI
from src.storyblok_client.auth import Authenticator
from src.storyblok_client.cda_client import CDAClient
from src.storyblok_client.errors import (
    APIAccessError,
    APIUnreachableError,
    InvalidCredentialsError,
)
from src.storyblok_client.models import Story

logger = logging.getLogger(__name__)


def select_stories(
    source_stories: Sequence[Story],
    prefixes: Optional[Sequence[str]] = None,
    select_all: bool = False,
) -> List[PreflightItem]:
    """Build the initial selection from full-slug prefixes.

    A story matches a prefix when its full slug equals the prefix or lies
    below it. Selecting a folder therefore selects its whole subtree.

    Args:
        source_stories: Source inventory
        prefixes: Full-slug prefixes to select
        select_all: Select every source story (prefixes are ignored)

    Returns:
        Selected items in full-slug order
    """
    normalized = [p.strip('/') for p in prefixes or [] if p.strip('/')]
    selected: List[PreflightItem] = []
    for story in sort_stories_by_full_slug(source_stories):
        if select_all or any(
            story.full_slug == prefix or story.full_slug.startswith(prefix + "/")
            for prefix in normalized
        ):
            selected.append(PreflightItem(story=story))
    return selected


class SyncCommand:
    """Orchestrates the complete sync workflow for the CLI.

    The sync workflow:
        1. Load configuration and credentials
        2. Resolve the source and target spaces
        3. Load both story inventories
        4. Select stories by prefix (optionally forked under a new slug)
        5. Build the ordered plan (stop here for plan and dry runs)
        6. Prefetch content through the delivery API
        7. Execute the plan item by item, recording a report
        8. Return appropriate exit code

    Example:
        >>> output = OutputHandler(verbosity=1)
        >>> sync_cmd = SyncCommand(output_handler=output)
        >>> exit_code = sync_cmd.run(prefixes=["app"], dry_run=True)
        >>> sys.exit(exit_code)
    """

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        config_required: bool = False,
        output_handler: Optional[OutputHandler] = None,
        authenticator: Optional[Authenticator] = None,
        api: Optional[Any] = None,
        observer: Optional[SyncObserver] = None,
        cda_factory: Callable[[str], Any] = CDAClient,
    ):
        """Initialize sync command with dependencies.

        Args:
            config_path: Path to configuration YAML file
            config_required: Fail when the configuration file is missing
            output_handler: OutputHandler for terminal output (optional)
            authenticator: Authenticator for the Storyblok API (optional)
            api: Management API client (optional, built from authenticator)
            observer: Observer for engine events (optional)
            cda_factory: Builds a delivery API client from a token

        Note:
            All dependencies are optional to support testing. In production
            they are created automatically.
        """
        self.config_path = config_path
        self.config_required = config_required
        self.output_handler = output_handler or OutputHandler()
        self.authenticator = authenticator
        self.api = api
        self.observer = observer
        self.cda_factory = cda_factory

    def run(
        self,
        prefixes: Optional[List[str]] = None,
        select_all: bool = False,
        dry_run: bool = False,
        plan_only: bool = False,
        fork_slug: Optional[str] = None,
        copy_suffix: bool = False,
        hydrate: bool = True,
        source_space_id: Optional[int] = None,
        target_space_id: Optional[int] = None,
        report_dir: Optional[str] = None,
    ) -> ExitCode:
        """Execute sync operation with specified options.

        This is the main entry point for sync operations. It translates
        exceptions to appropriate exit codes.

        Args:
            prefixes: Full-slug prefixes to select
            select_all: Sync every source story
            dry_run: Show the plan without writing anything
            plan_only: Same as dry_run (used by the plan command)
            fork_slug: Sync the single selected prefix as a copy under this slug
            copy_suffix: Append " (copy)" to forked names
            hydrate: Prefetch content through the delivery API
            source_space_id: Overrides config and environment
            target_space_id: Overrides config and environment
            report_dir: Overrides the configured report directory

        Returns:
            ExitCode indicating success or specific failure type
        """
        try:
            if not prefixes and not select_all:
                self.output_handler.error("Nothing selected: pass --prefix or --all")
                return ExitCode.GENERAL_ERROR
            if fork_slug and (select_all or not prefixes or len(prefixes) != 1):
                self.output_handler.error("--fork-slug requires exactly one --prefix")
                return ExitCode.GENERAL_ERROR

            # Step 1: Load configuration and credentials
            logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_or_default(self.config_path, required=self.config_required)

            if not self.authenticator:
                self.authenticator = Authenticator()
            credentials = self.authenticator.get_credentials()

            source_id, target_id = self._resolve_space_ids(
                config, credentials, source_space_id, target_space_id
            )

            if not self.api:
                self.api = ManagementAPI(self.authenticator)

            # Step 2: Resolve spaces
            with self.output_handler.spinner("Loading spaces..."):
                source_space = self.api.get_space(source_id)
                target_space = self.api.get_space(target_id)
            self.output_handler.info(
                f"Source: {source_space.name} ({source_space.id}) -> "
                f"Target: {target_space.name} ({target_space.id})"
            )

            # Step 3: Load inventories
            with self.output_handler.spinner("Loading stories..."):
                source_stories = self.api.list_stories(source_id)
                target_stories = self.api.list_stories(target_id)
            logger.info(
                f"Loaded {len(source_stories)} source and {len(target_stories)} target stories"
            )

            # Step 4: Selection
            selection = self._build_selection(
                source_stories, target_stories, prefixes, select_all, fork_slug, copy_suffix
            )
            if not selection:
                self.output_handler.warning("No source stories match the selection")
                return ExitCode.SUCCESS

            # Step 5: Plan
            orchestrator = SyncOrchestrator(
                self.api,
                source_space,
                target_space,
                observer=self.observer,
                limiter=SpaceRateLimiter(
                    read_rps=config.rate_limit.read_rps,
                    write_rps=config.rate_limit.write_rps,
                    burst=config.rate_limit.burst,
                ),
                cda_factory=self.cda_factory,
                publish=config.publish,
            )
            items = orchestrator.plan_items(source_stories, target_stories, selection)
            self.output_handler.print_plan(items)

            if dry_run or plan_only:
                if dry_run:
                    self.output_handler.print("\n[dim]Dry run: no changes applied[/dim]")
                return ExitCode.SUCCESS

            if not orchestrator.should_publish():
                self.output_handler.info("Publishing disabled for this run")

            # Step 6: Hydrate
            if hydrate and config.hydration.enabled:
                with self.output_handler.spinner("Prefetching content..."):
                    stats = orchestrator.hydrate(
                        CallContext(), items, source_stories, slug_workers=config.hydration.workers
                    )
                self.output_handler.print_hydration(stats)

            # Step 7: Execute
            report = SyncReport(
                f"{source_space.name} ({source_space.id})",
                f"{target_space.name} ({target_space.id})",
            )
            summary = self._execute(orchestrator, items, report)

            # Step 8: Report
            report_path = report.save(report_dir or config.report_dir)
            if report_path is not None:
                self.output_handler.info(f"Report written to {report_path}")
            self.output_handler.print_summary(summary)

            if summary.failed_count > 0:
                return ExitCode.PARTIAL_FAILURE
            if summary.cancelled_count > 0:
                return ExitCode.GENERAL_ERROR
            return ExitCode.SUCCESS

        except InvalidCredentialsError as e:
            logger.error(f"Authentication failed: {e}")
            self.output_handler.error(f"Authentication failed: {e}")
            self.output_handler.info("Check the SB_TOKEN environment variable")
            return ExitCode.AUTH_ERROR

        except (APIUnreachableError, APIAccessError) as e:
            logger.error(f"API error: {e}")
            self.output_handler.error(f"API error: {e}")
            self.output_handler.info("Check your internet connection and try again")
            return ExitCode.NETWORK_ERROR

        except (ConfigError, ConfigNotFoundError) as e:
            logger.error(f"Configuration error: {e}")
            self.output_handler.error(f"Configuration error: {e}")
            return ExitCode.GENERAL_ERROR

        except CLIError as e:
            logger.error(f"CLI error: {e}")
            self.output_handler.error(f"Error: {e}")
            return ExitCode.GENERAL_ERROR

        except Exception as e:
            logger.exception("Unexpected error during sync")
            self.output_handler.error(f"Unexpected error: {e}")
            return ExitCode.GENERAL_ERROR

    def _resolve_space_ids(
        self,
        config: SbsyncConfig,
        credentials: Any,
        source_flag: Optional[int],
        target_flag: Optional[int],
    ) -> Tuple[int, int]:
        """Pick space ids: command line, then config file, then environment.

        Raises:
            ConfigError: If a space id is missing or source equals target
        """
        source_id = source_flag or config.source_space_id or credentials.source_space_id
        target_id = target_flag or config.target_space_id or credentials.target_space_id
        if not source_id:
            raise ConfigError("Source space id is not set (--source, config or SOURCE_SPACE_ID)", 'source_space_id')
        if not target_id:
            raise ConfigError("Target space id is not set (--target, config or TARGET_SPACE_ID)", 'target_space_id')
        if source_id == target_id:
            raise ConfigError("Source and target space must differ", 'target_space_id')
        return source_id, target_id

    def _build_selection(
        self,
        source_stories: List[Story],
        target_stories: List[Story],
        prefixes: Optional[List[str]],
        select_all: bool,
        fork_slug: Optional[str],
        copy_suffix: bool,
    ) -> List[PreflightItem]:
        selection = select_stories(source_stories, prefixes, select_all)
        if not fork_slug or not selection:
            return selection

        root_slug = prefixes[0].strip('/')
        root = next((it for it in selection if it.story.full_slug == root_slug), None)
        if root is None:
            raise SelectionError(f"Cannot fork '{root_slug}': no source story at that path")
        forked = fork_subtree(
            root, fork_slug, source_stories, target_stories,
            append_copy_suffix=copy_suffix, append_child_copy_suffix=copy_suffix,
        )
        self.output_handler.info(f"Forking {root_slug} as {forked[0].story.full_slug}")
        return forked

    def _execute(
        self,
        orchestrator: SyncOrchestrator,
        items: List[PreflightItem],
        report: SyncReport,
    ) -> SyncSummary:
        """Run the plan with a progress bar and record every outcome."""
        summary = SyncSummary()
        ctx = CallContext()

        def _record(item: PreflightItem, outcome: ItemOutcome) -> None:
            slug = item.story.full_slug
            if outcome.cancelled:
                summary.cancelled_count += 1
                return
            result = outcome.result
            operation = result.operation.value if result is not None else Operation.CREATE.value
            retry_429 = result.retry_429 if result is not None else 0
            if outcome.error is not None:
                summary.failed_count += 1
                report.add_error(slug, operation, str(outcome.error), outcome.duration_ms,
                                 item.story, rate_limit_429=retry_429)
                return
            if result.operation == Operation.UPDATE:
                summary.updated_count += 1
            else:
                summary.created_count += 1
            if result.warning:
                summary.warning_count += 1
                report.add_warning(slug, operation, result.warning, outcome.duration_ms,
                                   item.story, result.target_story, rate_limit_429=retry_429)
            else:
                report.add_success(slug, operation, outcome.duration_ms,
                                   result.target_story, rate_limit_429=retry_429)

        with self.output_handler.progress_bar(len(items), "Syncing") as progress:
            task = progress.add_task("Syncing", total=len(items))

            def _on_outcome(item: PreflightItem, outcome: ItemOutcome) -> None:
                _record(item, outcome)
                progress.update(task, advance=1)

            try:
                orchestrator.run(ctx, items, on_outcome=_on_outcome)
            except KeyboardInterrupt:
                ctx.cancel()
                done = len(report.entries) + summary.cancelled_count
                summary.cancelled_count += max(0, len(items) - done)
                self.output_handler.warning("Sync interrupted, remaining items were not run")

        return summary
