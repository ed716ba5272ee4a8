# continuity_sync/Sync/__init__.py
from .exceptions import SyncError, PullError, UnknownCategoryError
from .dedup import deduplicate_keys, deduplicate_scene_numbers
from .session_guard import SessionGuard
from .asset_uploader import AssetUploader, AssetSource
from .persistence import RemotePersistence
from .scheduler import DebounceScheduler, SaveResult, EventLoopClock
from .change_tracker import ChangeTracker, classify_changes
from .full_save import FullSaveOrchestrator, FullSaveReport
from .pull_merge import PullMerge, PullSummary
from .sync_status import SyncStatus, SyncStatusTracker
from .engine import SyncEngine

__all__ = [
    "SyncError", "PullError", "UnknownCategoryError",
    "deduplicate_keys", "deduplicate_scene_numbers",
    "SessionGuard", "AssetUploader", "AssetSource", "RemotePersistence",
    "DebounceScheduler", "SaveResult", "EventLoopClock",
    "ChangeTracker", "classify_changes",
    "FullSaveOrchestrator", "FullSaveReport",
    "PullMerge", "PullSummary",
    "SyncStatus", "SyncStatusTracker",
    "SyncEngine"
]
