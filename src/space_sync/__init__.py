"""Space-to-space sync engine for Storyblok content trees.

The engine plans a selection of source stories (deduplicated, completed with
missing ancestor folders and ordered parents-first) and pushes it into the
target space under adaptive per-space rate limits.
"""

from .call_context import CallContext
from .content_cache import ContentCache, HydrationCache
from .errors import (
    DeadlineExceededError,
    NotAFolderError,
    OperationCancelledError,
    SourceFolderNotFoundError,
    SpaceSyncError,
)
from .folder_builder import FolderPathBuilder
from .fork import fork_subtree
from .models import (
    HydrationStats,
    ItemOutcome,
    ItemState,
    Operation,
    PreflightItem,
    RunStatus,
    SyncItemResult,
    SyncPlanStep,
)
from .observer import RecordingObserver, SyncObserver
from .orchestrator import SyncOrchestrator
from .preflight import PreflightPlanner
from .rate_limiter import SpaceRateLimiter
from .story_syncer import StorySyncer

__all__ = [
    "CallContext",
    "ContentCache",
    "HydrationCache",
    "DeadlineExceededError",
    "NotAFolderError",
    "OperationCancelledError",
    "SourceFolderNotFoundError",
    "SpaceSyncError",
    "FolderPathBuilder",
    "fork_subtree",
    "HydrationStats",
    "ItemOutcome",
    "ItemState",
    "Operation",
    "PreflightItem",
    "RunStatus",
    "SyncItemResult",
    "SyncPlanStep",
    "RecordingObserver",
    "SyncObserver",
    "SyncOrchestrator",
    "PreflightPlanner",
    "SpaceRateLimiter",
    "StorySyncer",
]
