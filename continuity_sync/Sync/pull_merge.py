# continuity_sync/Sync/pull_merge.py
# Description: Fetches a project's remote state and replaces local state with it.
#
"""
pull_merge.py
-------------

`PullMerge.pull(project_id)` works in two halves.

Fetch (awaits allowed):
    1. project-level tables, concurrently;
    2. scene<->character links, look<->scene links and continuity events for those scenes/looks;
    3. photos of those continuity events;
    4. photo bytes the local cache does not have yet, and document PDFs as data URIs.

Merge (no awaits): inside the change tracker's suppression guard, every category the backend
has data for replaces its local counterpart in one `replace_from_remote` call. A few fields
only ever live on this device and are carried over from the current local entities: scene
script text when the backend has none, look master references, character actor numbers and
the schedule's PDF when it is the same schedule. Pulling a project other than the current one
starts from empty captures, schedule and call sheets.

`check_for_updates(project_id)` only compares remote and local scene and character counts.

Any fetch failure raises `PullError` with the remote error chained; local state is untouched.
"""
# Imports
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
#
# 3rd-party Libraries
from loguru import logger
from pydantic import ValidationError
#
# Local Imports
from continuity_sync.Constants import (
    TABLE_PROJECTS, TABLE_SCENES, TABLE_CHARACTERS, TABLE_LOOKS, TABLE_SCENE_CHARACTERS, TABLE_LOOK_SCENES,
    TABLE_CONTINUITY_EVENTS, TABLE_PHOTOS, TABLE_SCHEDULE_DATA, TABLE_CALL_SHEET_DATA, TABLE_SCRIPT_UPLOADS,
    DEFAULT_PHOTOS_BUCKET, DEFAULT_DOCUMENTS_BUCKET, CONTENT_TYPE_JPEG, CONTENT_TYPE_PDF,
)
from continuity_sync.DB.Photo_Cache_DB import PhotoCacheDBError
from continuity_sync.Metrics.metrics_logger import log_counter, timeit
from continuity_sync.Project_State.local_state import LocalProjectState
from continuity_sync.Project_State.models import Project, ScriptDocument
from continuity_sync.remote_api.client import RemoteStoreClient
from continuity_sync.remote_api.exceptions import RemoteStoreError
from continuity_sync.remote_api.schemas import (
    SceneRow, CharacterRow, LookRow, ContinuityEventRow, PhotoRow,
    ScheduleDataRow, CallSheetDataRow, ScriptUploadRow,
)
from continuity_sync.remote_api.utils import encode_data_uri
from .change_tracker import ChangeTracker
from .exceptions import PullError
from . import mappers
#
#######################################################################################################################
#
# Functions:

class WritableBinaryCache(Protocol):
    def get_binary(self, asset_id: str) -> Optional[bytes]: ...

    def save_binary(self, asset_id: str, data: bytes, content_type: str = ...) -> None: ...


@dataclass
class RemoteSnapshot:
    project_name: Optional[str]
    scenes: List[SceneRow]
    characters: List[CharacterRow]
    looks: List[LookRow]
    scene_characters: Dict[str, List[str]]
    look_scenes: Dict[str, List[str]]
    continuity_events: List[ContinuityEventRow]
    photos: Dict[str, List[PhotoRow]]
    schedule: Optional[ScheduleDataRow]
    call_sheets: List[CallSheetDataRow]
    script: Optional[ScriptUploadRow]
    schedule_pdf: Optional[str] = None
    call_sheet_pdfs: Optional[Dict[str, str]] = None
    script_pdf: Optional[str] = None


@dataclass
class PullSummary:
    project_id: str
    scenes: int = 0
    characters: int = 0
    looks: int = 0
    captures: int = 0
    photos_downloaded: int = 0
    call_sheets: int = 0
    has_schedule: bool = False
    has_script: bool = False


class PullMerge:
    def __init__(
        self,
        client: RemoteStoreClient,
        state: LocalProjectState,
        tracker: ChangeTracker,
        binary_cache: Optional[WritableBinaryCache] = None,
        photos_bucket: str = DEFAULT_PHOTOS_BUCKET,
        documents_bucket: str = DEFAULT_DOCUMENTS_BUCKET,
    ):
        self.client = client
        self.state = state
        self.tracker = tracker
        self.binary_cache = binary_cache
        self.photos_bucket = photos_bucket
        self.documents_bucket = documents_bucket

    @timeit("sync_pull_duration_seconds")
    async def pull(self, project_id: str) -> PullSummary:
        logger.info(f"[Pull] Fetching project {project_id}")
        try:
            snapshot = await self._fetch(project_id)
            photos_downloaded = await self._download_missing_photos(snapshot)
            await self._download_documents(project_id, snapshot)
        except (RemoteStoreError, ValidationError, PhotoCacheDBError) as e:
            logger.error(f"[Pull] Project {project_id} failed: {type(e).__name__} - {e}")
            log_counter("sync_pull_failed")
            raise PullError(project_id, str(e)) from e

        summary = self._merge(project_id, snapshot)
        summary.photos_downloaded = photos_downloaded
        log_counter("sync_pull_ok")
        logger.info(f"[Pull] Project {project_id} merged: {summary}")
        return summary

    def _current_project(self, project_id: str) -> Optional[Project]:
        """The local project when it is the one being pulled; its side collections belong to it."""
        project = self.state.project
        return project if project is not None and project.id == project_id else None

    async def check_for_updates(self, project_id: str) -> bool:
        """
        Cheap "is a pull worth it?" test: compares remote scene and character counts with the
        local ones. Raises PullError when the backend cannot be reached.
        """
        current = self._current_project(project_id)
        by_project = {"project_id": project_id}
        try:
            scenes, characters = await asyncio.gather(
                self.client.select(TABLE_SCENES, columns="id", eq=by_project),
                self.client.select(TABLE_CHARACTERS, columns="id", eq=by_project),
            )
        except RemoteStoreError as e:
            logger.warning(f"[Pull] Update check for project {project_id} failed: {e}")
            raise PullError(project_id, str(e)) from e
        local_scenes = len(current.scenes) if current else 0
        local_characters = len(current.characters) if current else 0
        has_updates = len(scenes) != local_scenes or len(characters) != local_characters
        logger.debug(f"[Pull] Update check for {project_id}: remote {len(scenes)} scenes, {len(characters)} characters; "
                     f"local {local_scenes}, {local_characters} -> {has_updates}")
        return has_updates

    # --- Fetch ---
    async def _fetch(self, project_id: str) -> RemoteSnapshot:
        by_project = {"project_id": project_id}
        (projects, scenes, characters, looks, schedules, call_sheets, scripts) = await asyncio.gather(
            self.client.select(TABLE_PROJECTS, columns="id,name", eq={"id": project_id}, limit=1),
            self.client.select(TABLE_SCENES, eq=by_project, order="scene_number"),
            self.client.select(TABLE_CHARACTERS, eq=by_project, order="name"),
            self.client.select(TABLE_LOOKS, eq=by_project),
            self.client.select(TABLE_SCHEDULE_DATA, eq=by_project, order="created_at.desc", limit=1),
            self.client.select(TABLE_CALL_SHEET_DATA, eq=by_project, order="production_day"),
            self.client.select(TABLE_SCRIPT_UPLOADS, eq={**by_project, "is_active": True},
                               order="created_at.desc", limit=1),
        )
        scene_rows = [SceneRow.model_validate(row) for row in scenes]
        look_rows = [LookRow.model_validate(row) for row in looks]
        scene_ids = [row.id for row in scene_rows]
        look_ids = [row.id for row in look_rows]

        scene_links, look_links, events = await asyncio.gather(
            self._select_in(TABLE_SCENE_CHARACTERS, "scene_id,character_id", "scene_id", scene_ids),
            self._select_in(TABLE_LOOK_SCENES, "look_id,scene_number", "look_id", look_ids),
            self._select_in(TABLE_CONTINUITY_EVENTS, "*", "scene_id", scene_ids),
        )
        event_rows = [ContinuityEventRow.model_validate(row) for row in events]
        photos = await self._select_in(TABLE_PHOTOS, "*", "continuity_event_id", [row.id for row in event_rows])

        scene_characters: Dict[str, List[str]] = {}
        for link in scene_links:
            scene_characters.setdefault(link["scene_id"], []).append(link["character_id"])
        look_scenes: Dict[str, List[str]] = {}
        for link in look_links:
            look_scenes.setdefault(link["look_id"], []).append(link["scene_number"])
        photos_by_event: Dict[str, List[PhotoRow]] = {}
        for row in photos:
            photo = PhotoRow.model_validate(row)
            photos_by_event.setdefault(photo.continuity_event_id, []).append(photo)

        return RemoteSnapshot(
            project_name=projects[0].get("name") if projects else None,
            scenes=scene_rows,
            characters=[CharacterRow.model_validate(row) for row in characters],
            looks=look_rows,
            scene_characters=scene_characters,
            look_scenes=look_scenes,
            continuity_events=event_rows,
            photos=photos_by_event,
            schedule=ScheduleDataRow.model_validate(schedules[0]) if schedules else None,
            call_sheets=[CallSheetDataRow.model_validate(row) for row in call_sheets],
            script=ScriptUploadRow.model_validate(scripts[0]) if scripts else None,
        )

    async def _select_in(self, table: str, columns: str, column: str, values: List[str]) -> List[Dict[str, Any]]:
        if not values:
            return []
        return await self.client.select(table, columns=columns, in_={column: values})

    async def _download_missing_photos(self, snapshot: RemoteSnapshot) -> int:
        if self.binary_cache is None:
            return 0
        missing = [
            photo for rows in snapshot.photos.values() for photo in rows
            if self.binary_cache.get_binary(photo.id) is None
        ]
        if not missing:
            return 0
        outcomes = await asyncio.gather(*(self._download_photo(photo) for photo in missing))
        return sum(1 for ok in outcomes if ok)

    async def _download_photo(self, photo: PhotoRow) -> bool:
        try:
            data = await self.client.download_object(self.photos_bucket, photo.storage_path)
        except RemoteStoreError as e:
            # The row still carries the storage path; the bytes can be fetched on a later pull
            logger.warning(f"[Pull] Photo {photo.id} could not be downloaded from {photo.storage_path}: {e}")
            log_counter("sync_photo_download_failed")
            return False
        self.binary_cache.save_binary(photo.id, data, CONTENT_TYPE_JPEG)
        return True

    async def _download_document(self, storage_path: str) -> Optional[str]:
        try:
            data = await self.client.download_object(self.documents_bucket, storage_path)
        except RemoteStoreError as e:
            logger.warning(f"[Pull] Document {storage_path} could not be downloaded: {e}")
            return None
        return encode_data_uri(data, CONTENT_TYPE_PDF)

    async def _download_documents(self, project_id: str, snapshot: RemoteSnapshot):
        current = self._current_project(project_id)
        local_schedule = self.state.schedule if current else None
        schedule = snapshot.schedule
        if schedule and schedule.storage_path:
            has_local_pdf = local_schedule is not None and local_schedule.id == schedule.id and local_schedule.pdf_uri
            if not has_local_pdf:
                snapshot.schedule_pdf = await self._download_document(schedule.storage_path)

        local_sheets = self.state.call_sheets if current else []
        local_pdfs = {sheet.id: sheet.pdf_uri for sheet in local_sheets if sheet.pdf_uri}
        snapshot.call_sheet_pdfs = dict(local_pdfs)
        for sheet in snapshot.call_sheets:
            if sheet.storage_path and sheet.id not in local_pdfs:
                pdf = await self._download_document(sheet.storage_path)
                if pdf:
                    snapshot.call_sheet_pdfs[sheet.id] = pdf

        local_script = current.script if current else None
        script = snapshot.script
        if script and script.storage_path:
            if local_script is None or local_script.storage_path != script.storage_path:
                snapshot.script_pdf = await self._download_document(script.storage_path)

    # --- Merge (synchronous) ---
    def _merge(self, project_id: str, snapshot: RemoteSnapshot) -> PullSummary:
        current = self._current_project(project_id)
        # Captures, schedule and call sheets beside another project must not carry over
        local_captures = list(self.state.captures.values()) if current else []
        local_schedule = self.state.schedule if current else None
        local_call_sheets = self.state.call_sheets if current else []
        existing_scenes = {scene.id: scene for scene in current.scenes} if current else {}
        existing_characters = {character.id: character for character in current.characters} if current else {}
        existing_looks = {look.id: look for look in current.looks} if current else {}
        summary = PullSummary(project_id=project_id)

        project = current or Project(id=project_id, name=snapshot.project_name or project_id)
        updates: Dict[str, Any] = {}
        if snapshot.project_name:
            updates["name"] = snapshot.project_name
        # An empty backend (nothing pushed yet) must not wipe local work
        if snapshot.scenes or snapshot.characters or snapshot.looks:
            updates["scenes"] = [
                mappers.row_to_scene(row, snapshot.scene_characters.get(row.id, []), existing_scenes.get(row.id))
                for row in snapshot.scenes
            ]
            updates["characters"] = [
                mappers.row_to_character(row, existing_characters.get(row.id)) for row in snapshot.characters
            ]
            updates["looks"] = [
                mappers.row_to_look(row, snapshot.look_scenes.get(row.id, []), existing_looks.get(row.id))
                for row in snapshot.looks
            ]
        if snapshot.script:
            local_script = current.script if current else None
            if local_script is not None and local_script.storage_path == snapshot.script.storage_path:
                updates["script"] = local_script
            elif snapshot.script_pdf:
                updates["script"] = ScriptDocument(
                    data_uri=snapshot.script_pdf,
                    file_name=snapshot.script.file_name,
                    storage_path=snapshot.script.storage_path,
                )
        if updates:
            project = project.model_copy(update=updates)

        if snapshot.continuity_events:
            captures = [
                mappers.row_to_capture(row, snapshot.photos.get(row.id, []))
                for row in snapshot.continuity_events
            ]
        else:
            captures = local_captures

        schedule = local_schedule
        if snapshot.schedule is not None:
            schedule = mappers.row_to_schedule(snapshot.schedule, existing=local_schedule)
            if schedule.pdf_uri is None and snapshot.schedule_pdf:
                schedule = schedule.model_copy(update={"pdf_uri": snapshot.schedule_pdf})

        call_sheets = local_call_sheets
        if snapshot.call_sheets:
            pdfs = snapshot.call_sheet_pdfs or {}
            call_sheets = [
                mappers.row_to_call_sheet(row).model_copy(update={"pdf_uri": pdfs.get(row.id)})
                for row in snapshot.call_sheets
            ]

        with self.tracker.suppressed():
            self.state.replace_from_remote(project, captures, schedule, call_sheets)

        summary.scenes = len(project.scenes)
        summary.characters = len(project.characters)
        summary.looks = len(project.looks)
        summary.captures = len(captures)
        summary.call_sheets = len(call_sheets)
        summary.has_schedule = schedule is not None
        summary.has_script = project.script is not None
        return summary

#
# End of pull_merge.py
#######################################################################################################################
