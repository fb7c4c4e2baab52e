"""Data models for CLI operations.

This module defines all data models used by the CLI module.
All models use dataclasses for clean, type-safe data structures,
following the patterns established in src/space_sync/models.py.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    These exit codes provide meaningful feedback about the operation result:
    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): General error (config issues, validation failures)
    - PARTIAL_FAILURE (2): Sync finished but at least one item failed
    - AUTH_ERROR (3): Authentication or authorization failure
    - NETWORK_ERROR (4): Network connectivity or API availability issues

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    PARTIAL_FAILURE = 2
    AUTH_ERROR = 3
    NETWORK_ERROR = 4


@dataclass
class RateLimitConfig:
    """Initial request rates per space.

    Attributes:
        read_rps: Initial read rate (requests per second)
        write_rps: Initial write rate (requests per second)
        burst: Token bucket capacity
    """
    read_rps: float = 7.0
    write_rps: float = 7.0
    burst: int = 7


@dataclass
class HydrationConfig:
    """Content prefetch settings.

    Attributes:
        enabled: Prefetch content through the delivery API before syncing
        workers: Thread pool size for per-story prefetch
    """
    enabled: bool = True
    workers: int = 10


@dataclass
class SbsyncConfig:
    """Complete sync configuration loaded from sbsync.yaml.

    Space ids left unset here fall back to SOURCE_SPACE_ID / TARGET_SPACE_ID
    from the environment.

    Attributes:
        source_space_id: Space to copy from
        target_space_id: Space to copy into
        rate_limit: Rate limiter settings
        hydration: Prefetch settings
        publish: Publish stories that are published in the source
        report_dir: Directory for JSON sync reports

    Example:
        >>> config = SbsyncConfig(source_space_id=1, target_space_id=2)
        >>> config.rate_limit.burst
        7
    """
    source_space_id: Optional[int] = None
    target_space_id: Optional[int] = None
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    hydration: HydrationConfig = field(default_factory=HydrationConfig)
    publish: bool = True
    report_dir: str = "."


@dataclass
class SyncSummary:
    """Summary of sync operation results for display to user.

    Attributes:
        created_count: Nodes created in the target
        updated_count: Nodes updated in the target
        warning_count: Items that succeeded with a warning
        failed_count: Items that failed
        cancelled_count: Items not run because the sync was cancelled

    Example:
        >>> summary = SyncSummary(created_count=5, updated_count=3)
        >>> print(f"Created {summary.created_count} stories")
    """
    created_count: int = 0
    updated_count: int = 0
    warning_count: int = 0
    failed_count: int = 0
    cancelled_count: int = 0
