# continuity_sync/Sync/engine.py
# Description: Wires the sync components to a local project state and exposes them to the app.
#
"""
engine.py
---------

`SyncEngine` is what the rest of the application talks to:

    engine = SyncEngine.from_config(state, access_token=token)
    engine.start()                      # local writes now schedule debounced saves
    ...
    report = await engine.save_everything()   # before sign-out
    await engine.pull(project_id)             # explicit refresh; raises PullError
    await engine.flush_auto_save()            # before shutdown
    await engine.close()

Saves scheduled from mutations push the payload captured at mutation time. A full save reads
the state as it is when each category's turn comes.
"""
# Imports
import functools
from typing import Any, List, Optional
#
# 3rd-party Libraries
import httpx
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import (
    ALL_CATEGORIES, CATEGORY_SCENES, CATEGORY_CHARACTERS, CATEGORY_LOOKS, CATEGORY_CAPTURES,
    CATEGORY_SCHEDULE, CATEGORY_CALL_SHEETS, CATEGORY_SCRIPT,
    DEFAULT_DEBOUNCE_SECONDS, DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_PHOTOS_BUCKET, DEFAULT_DOCUMENTS_BUCKET,
)
from continuity_sync.config import get_sync_setting, get_photo_cache_db_path
from continuity_sync.DB.Photo_Cache_DB import PhotoCacheDB
from continuity_sync.Project_State.local_state import LocalProjectState
from continuity_sync.remote_api.auth import SessionProvider, TokenSessionProvider
from continuity_sync.remote_api.client import RemoteStoreClient
from .asset_uploader import AssetUploader
from .change_tracker import ChangeTracker
from .exceptions import SyncError, UnknownCategoryError
from .full_save import FullSaveOrchestrator, FullSaveReport
from .persistence import RemotePersistence
from .pull_merge import PullMerge, PullSummary
from .scheduler import Clock, DebounceScheduler, SaveFn, SaveResult
from .session_guard import SessionGuard
from .sync_status import SyncStatus, SyncStatusTracker
#
#######################################################################################################################
#
# Functions:

class SyncEngine:
    def __init__(
        self,
        client: RemoteStoreClient,
        state: LocalProjectState,
        auth: Optional[SessionProvider] = None,
        binary_cache: Optional[PhotoCacheDB] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Optional[Clock] = None,
        photos_bucket: str = DEFAULT_PHOTOS_BUCKET,
        documents_bucket: str = DEFAULT_DOCUMENTS_BUCKET,
    ):
        self.client = client
        self.state = state
        self.auth: SessionProvider = auth or TokenSessionProvider(client)
        self.binary_cache = binary_cache
        self.session_guard = SessionGuard(self.auth)
        self.uploader = AssetUploader(client, binary_cache, photos_bucket, documents_bucket)
        self.persistence = RemotePersistence(client, self.uploader)
        self.scheduler = DebounceScheduler(self.session_guard, debounce_seconds, clock)
        self.tracker = ChangeTracker(self.scheduler, self._make_save)
        self.full_save = FullSaveOrchestrator(
            self.scheduler,
            {category: functools.partial(self._save_current, category) for category in ALL_CATEGORIES},
        )
        self.puller = PullMerge(client, state, self.tracker, binary_cache, photos_bucket, documents_bucket)
        self.status_tracker = SyncStatusTracker(self.scheduler)
        self._unsubscribe = None

    @classmethod
    def from_config(
        cls,
        state: LocalProjectState,
        access_token: Optional[str] = None,
        binary_cache: Optional[PhotoCacheDB] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SyncEngine":
        """Builds an engine from the loaded settings (see config.load_settings)."""
        url = get_sync_setting("remote", "url", "")
        if not url:
            raise SyncError("No remote URL configured ([remote].url or CONTINUITY_SYNC_URL)")
        client = RemoteStoreClient(
            url,
            get_sync_setting("remote", "api_key", ""),
            access_token=access_token,
            timeout=float(get_sync_setting("remote", "timeout", DEFAULT_HTTP_TIMEOUT_SECONDS)),
            transport=transport,
        )
        if binary_cache is None:
            binary_cache = PhotoCacheDB(get_photo_cache_db_path())
        return cls(
            client,
            state,
            binary_cache=binary_cache,
            debounce_seconds=float(get_sync_setting("sync", "debounce_seconds", DEFAULT_DEBOUNCE_SECONDS)),
            photos_bucket=get_sync_setting("storage", "photos_bucket", DEFAULT_PHOTOS_BUCKET),
            documents_bucket=get_sync_setting("storage", "documents_bucket", DEFAULT_DOCUMENTS_BUCKET),
        )

    # --- Lifecycle ---
    def start(self):
        """Starts turning local state writes into debounced saves."""
        if self._unsubscribe is None:
            self._unsubscribe = self.state.subscribe(self.tracker.observe)
            logger.info("[SyncEngine] Watching local state for changes")

    def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("[SyncEngine] Stopped watching local state")

    async def close(self):
        """Stops watching, drops pending saves and releases the HTTP client. Flush first to keep them."""
        self.stop()
        self.scheduler.cancel_all()
        await self.scheduler.wait_idle()
        await self.client.close()
        if self.binary_cache is not None:
            self.binary_cache.close_connection()

    # --- Saving ---
    def _make_save(self, category: str, payload: Any) -> SaveFn:
        project_id = self.state.project_id

        async def _save():
            await self._save_payload(category, payload, project_id)
        return _save

    async def _save_current(self, category: str):
        await self._save_payload(category, self.state.snapshot()[category], self.state.project_id)

    async def _save_payload(self, category: str, payload: Any, project_id: Optional[str]):
        if project_id is None:
            logger.debug(f"[SyncEngine] No current project, nothing to save for {category}")
            return
        user_id = self.auth.get_current_user_id()
        persistence = self.persistence

        if category == CATEGORY_SCENES:
            await persistence.save_scenes(payload or [], project_id)
        elif category == CATEGORY_CHARACTERS:
            await persistence.save_characters(payload or [], project_id)
        elif category == CATEGORY_LOOKS:
            await persistence.save_looks(payload or [], project_id)
        elif category == CATEGORY_CAPTURES:
            await persistence.save_captures(list((payload or {}).values()), project_id, user_id)
        elif category == CATEGORY_SCHEDULE:
            await persistence.save_schedule(payload, project_id)
        elif category == CATEGORY_CALL_SHEETS:
            await persistence.save_call_sheets(payload or [], project_id, user_id)
        elif category == CATEGORY_SCRIPT:
            scene_count = len(self.state.project.scenes) if self.state.project else 0
            await persistence.save_script(payload, project_id, user_id, scene_count=scene_count)
        else:
            raise UnknownCategoryError(category)

    def notify_mutation(self, category: str, payload: Any) -> bool:
        return self.tracker.notify_mutation(category, payload)

    async def save_everything(self) -> FullSaveReport:
        return await self.full_save.save_everything()

    async def flush_auto_save(self) -> List[SaveResult]:
        return await self.scheduler.flush_all()

    # --- Pulling ---
    async def pull(self, project_id: str) -> PullSummary:
        summary = await self.puller.pull(project_id)
        self.status_tracker.mark_pulled()
        return summary

    async def check_for_updates(self, project_id: Optional[str] = None) -> bool:
        """True when the backend's scene or character count differs from the local project's."""
        project_id = project_id or self.state.project_id
        if project_id is None or not await self.session_guard.has_active_session():
            return False
        return await self.puller.check_for_updates(project_id)

    # --- Diagnostics ---
    @property
    def failure_count(self) -> int:
        return self.scheduler.failure_count

    @property
    def last_failure_message(self) -> Optional[str]:
        return self.scheduler.last_failure_message

    def status(self) -> SyncStatus:
        return self.status_tracker.snapshot()

#
# End of engine.py
#######################################################################################################################
