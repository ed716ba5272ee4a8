# continuity_sync/Sync/persistence.py
# Description: One coroutine per change category, pushing a local snapshot to the shared backend.
#
"""
persistence.py
--------------

`RemotePersistence` maps local entities to remote rows and writes them. Every save is safe to
repeat with the same input:

- scenes are upserted on (project_id, scene_number) after duplicate scene numbers in the batch
  have been rewritten, every other table on its id;
- scene<->character and look<->scene links are replaced as whole sets through RPCs, so links
  removed locally disappear remotely;
- photos and documents go through the `AssetUploader`, which never uploads the same asset twice;
- script uploads are content addressed, so re-saving an unchanged script is a no-op.

Remote rejections propagate (as `RemoteStoreError` subclasses) to the caller, which is the
scheduler's failure accounting. The exceptions are per-photo and per-call-sheet failures, which
are logged and skipped so the rest of the batch still goes through.
"""
# Imports
import hashlib
from typing import Iterable, List, Optional, Set
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import (
    TABLE_SCENES, TABLE_CHARACTERS, TABLE_LOOKS, TABLE_CONTINUITY_EVENTS, TABLE_PHOTOS,
    TABLE_SCHEDULE_DATA, TABLE_CALL_SHEET_DATA, TABLE_SCRIPT_UPLOADS,
    RPC_SYNC_SCENE_CHARACTERS, RPC_SYNC_LOOK_SCENES,
    SCENES_CONFLICT_TARGET, ID_CONFLICT_TARGET,
    FOLDER_MASTER_REFS, FOLDER_CAPTURES, FOLDER_SCHEDULES, FOLDER_CALL_SHEETS, FOLDER_SCRIPTS,
)
from continuity_sync.Metrics.metrics_logger import log_counter, timeit
from continuity_sync.Project_State.models import (
    Scene, Character, Look, SceneCapture, ProductionSchedule, CallSheet, ScriptDocument,
)
from continuity_sync.remote_api.client import RemoteStoreClient
from continuity_sync.remote_api.exceptions import RemoteStoreError
from continuity_sync.remote_api.utils import decode_data_uri, is_data_uri
from .asset_uploader import AssetUploader, AssetSource
from .dedup import deduplicate_scene_numbers
from .exceptions import SyncError
from . import mappers
#
#######################################################################################################################
#
# Functions:

SCRIPT_DIGEST_LENGTH = 32


def script_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:SCRIPT_DIGEST_LENGTH]


class RemotePersistence:
    def __init__(self, client: RemoteStoreClient, uploader: AssetUploader):
        self.client = client
        self.uploader = uploader

    # --- scenes ---
    @timeit("sync_save_duration_seconds", labels={"category": "scenes"})
    async def save_scenes(self, scenes: Iterable[Scene], project_id: str):
        scenes = list(scenes)
        if not scenes:
            logger.debug(f"[Persistence] No scenes to save for project {project_id}")
            return
        rows = deduplicate_scene_numbers([mappers.scene_to_row(scene, project_id) for scene in scenes])
        renamed = [
            (original.scene_number, row["scene_number"])
            for original, row in zip(scenes, rows)
            if original.scene_number != row["scene_number"]
        ]
        if renamed:
            logger.warning(f"[Persistence] Renamed duplicate scene numbers before upsert: {renamed}")

        await self.client.upsert(TABLE_SCENES, rows, on_conflict=SCENES_CONFLICT_TARGET)
        await self.client.rpc(RPC_SYNC_SCENE_CHARACTERS, {
            "p_scene_ids": [scene.id for scene in scenes],
            "p_entries": mappers.scene_character_entries(scenes),
        })
        logger.info(f"[Persistence] Saved {len(rows)} scenes for project {project_id}")

    # --- characters ---
    @timeit("sync_save_duration_seconds", labels={"category": "characters"})
    async def save_characters(self, characters: Iterable[Character], project_id: str):
        rows = [mappers.character_to_row(character, project_id) for character in characters]
        if not rows:
            return
        await self.client.upsert(TABLE_CHARACTERS, rows, on_conflict=ID_CONFLICT_TARGET)
        logger.info(f"[Persistence] Saved {len(rows)} characters for project {project_id}")

    # --- looks ---
    @timeit("sync_save_duration_seconds", labels={"category": "looks"})
    async def save_looks(self, looks: Iterable[Look], project_id: str):
        looks = list(looks)
        if not looks:
            return
        rows = []
        for look in looks:
            reference_path = None
            reference = look.master_reference
            if reference is not None:
                # A failed reference upload leaves the look's remote reference untouched
                reference_path = await self.uploader.upload_asset(
                    f"{project_id}/{FOLDER_MASTER_REFS}/{look.id}",
                    reference.id,
                    AssetSource(storage_path=reference.storage_path, inline_data=reference.uri),
                )
            rows.append(mappers.look_to_row(look, project_id, master_reference_path=reference_path))

        # Rows must share one key set for a bulk upsert
        with_reference = [row for row in rows if "master_reference_path" in row]
        without_reference = [row for row in rows if "master_reference_path" not in row]
        for batch in (with_reference, without_reference):
            if batch:
                await self.client.upsert(TABLE_LOOKS, batch, on_conflict=ID_CONFLICT_TARGET)

        await self.client.rpc(RPC_SYNC_LOOK_SCENES, {
            "p_look_ids": [look.id for look in looks],
            "p_entries": mappers.look_scene_entries(looks),
        })
        logger.info(f"[Persistence] Saved {len(rows)} looks for project {project_id}")

    # --- captures ---
    async def _remote_photo_ids(self, photo_ids: List[str]) -> Set[str]:
        if not photo_ids:
            return set()
        rows = await self.client.select(TABLE_PHOTOS, columns="id", in_={"id": photo_ids})
        return {row["id"] for row in rows}

    @timeit("sync_save_duration_seconds", labels={"category": "captures"})
    async def save_captures(self, captures: Iterable[SceneCapture], project_id: str,
                            user_id: Optional[str] = None) -> int:
        """
        Upserts continuity events, then uploads and records every photo the backend does not
        have yet. Returns the number of photos newly recorded.
        """
        captures = list(captures)
        if not captures:
            return 0
        rows = [mappers.capture_to_row(capture, user_id) for capture in captures]
        await self.client.upsert(TABLE_CONTINUITY_EVENTS, rows, on_conflict=ID_CONFLICT_TARGET)

        pending = [
            (capture, angle, photo)
            for capture in captures
            for angle, photo in mappers.capture_photos(capture)
        ]
        already_remote = await self._remote_photo_ids([photo.id for _, _, photo in pending])

        recorded = 0
        for capture, angle, photo in pending:
            if photo.id in already_remote:
                continue
            storage_path = await self.uploader.upload_asset(
                f"{project_id}/{FOLDER_CAPTURES}/{capture.id}",
                photo.id,
                AssetSource(storage_path=photo.storage_path, inline_data=photo.uri),
            )
            if not storage_path:
                continue
            try:
                await self.client.upsert(
                    TABLE_PHOTOS, [mappers.photo_to_row(photo, capture.id, angle, storage_path)],
                    on_conflict=ID_CONFLICT_TARGET,
                )
            except RemoteStoreError as e:
                logger.error(f"[Persistence] Recording photo {photo.id} of capture {capture.id} failed: {e}")
                log_counter("sync_photo_row_failed")
                continue
            recorded += 1

        logger.info(f"[Persistence] Saved {len(rows)} captures for project {project_id} "
                    f"({recorded} new photos, {len(already_remote)} already remote)")
        return recorded

    # --- schedule ---
    @timeit("sync_save_duration_seconds", labels={"category": "schedule"})
    async def save_schedule(self, schedule: Optional[ProductionSchedule], project_id: str):
        if schedule is None:
            return
        await self.client.upsert(TABLE_SCHEDULE_DATA, [mappers.schedule_to_row(schedule, project_id)],
                                 on_conflict=ID_CONFLICT_TARGET)
        if is_data_uri(schedule.pdf_uri):
            storage_path = await self.uploader.upload_document(
                f"{project_id}/{FOLDER_SCHEDULES}", schedule.id, schedule.pdf_uri,
                storage_path=schedule.storage_path,
            )
            if storage_path:
                await self.client.update(TABLE_SCHEDULE_DATA, {"storage_path": storage_path},
                                         eq={"id": schedule.id})
        logger.info(f"[Persistence] Saved schedule {schedule.id} for project {project_id}")

    # --- call sheets ---
    @timeit("sync_save_duration_seconds", labels={"category": "callSheets"})
    async def save_call_sheets(self, call_sheets: Iterable[CallSheet], project_id: str,
                               user_id: Optional[str] = None) -> List[str]:
        """Saves call sheets one by one. Returns the ids of the call sheets that failed."""
        failed: List[str] = []
        saved = 0
        for call_sheet in call_sheets:
            try:
                await self.client.upsert(
                    TABLE_CALL_SHEET_DATA, [mappers.call_sheet_to_row(call_sheet, project_id, user_id)],
                    on_conflict=ID_CONFLICT_TARGET,
                )
                if is_data_uri(call_sheet.pdf_uri):
                    storage_path = await self.uploader.upload_document(
                        f"{project_id}/{FOLDER_CALL_SHEETS}", call_sheet.id, call_sheet.pdf_uri,
                        storage_path=call_sheet.storage_path,
                    )
                    if storage_path:
                        await self.client.update(TABLE_CALL_SHEET_DATA, {"storage_path": storage_path},
                                                 eq={"id": call_sheet.id})
            except RemoteStoreError as e:
                logger.error(f"[Persistence] Call sheet {call_sheet.id} (day {call_sheet.production_day}) "
                             f"failed to save, continuing: {e}")
                log_counter("sync_call_sheet_failed")
                failed.append(call_sheet.id)
                continue
            saved += 1
        logger.info(f"[Persistence] Saved {saved} call sheets for project {project_id} ({len(failed)} failed)")
        return failed

    # --- script ---
    @timeit("sync_save_duration_seconds", labels={"category": "script"})
    async def save_script(self, script: Optional[ScriptDocument], project_id: str,
                          user_id: Optional[str] = None, scene_count: int = 0) -> Optional[str]:
        """
        Uploads the script PDF and makes it the project's one active script.

        The new row is inserted before older rows are deactivated, so a failure in between
        leaves two active rows rather than none. Returns the storage path, or None when there
        is no script to save.
        """
        if script is None or not is_data_uri(script.data_uri):
            return None
        data, _content_type = decode_data_uri(script.data_uri)
        digest = script_digest(data)

        storage_path = await self.uploader.upload_document(f"{project_id}/{FOLDER_SCRIPTS}", digest, script.data_uri)
        if not storage_path:
            raise SyncError(f"Script for project {project_id} could not be uploaded")

        active_rows = await self.client.select(
            TABLE_SCRIPT_UPLOADS, columns="id,storage_path",
            eq={"project_id": project_id, "is_active": True},
        )
        if any(row.get("storage_path") == storage_path for row in active_rows):
            if len(active_rows) == 1:
                logger.debug(f"[Persistence] Script {storage_path} is already the active script, nothing to do")
                return storage_path
            # An earlier save inserted this row but failed to deactivate the older ones
            logger.info(f"[Persistence] Script {storage_path} is active alongside {len(active_rows) - 1} older rows")
        else:
            await self.client.insert(TABLE_SCRIPT_UPLOADS, [mappers.script_upload_row(
                project_id, storage_path, script.file_name, len(data), scene_count, user_id,
            )])
        await self.client.update(
            TABLE_SCRIPT_UPLOADS, {"is_active": False},
            eq={"project_id": project_id, "is_active": True},
            neq={"storage_path": storage_path},
        )
        logger.info(f"[Persistence] Script {storage_path} is now the active script of project {project_id}")
        return storage_path

#
# End of persistence.py
#######################################################################################################################
