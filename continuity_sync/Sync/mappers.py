# continuity_sync/Sync/mappers.py
# Conversions between local entities (Project_State.models) and remote rows (remote_api.schemas).
#
# Imports
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, get_args
#
# Local Imports
from continuity_sync.Constants import FIXED_PHOTO_ANGLES, ADDITIONAL_PHOTO_ANGLE
from continuity_sync.Project_State.models import (
    Scene, Character, Look, SceneCapture, Photo, ProductionSchedule, CallSheet,
    IntExt, TimeOfDay,
)
from continuity_sync.remote_api.schemas import (
    SceneRow, CharacterRow, LookRow, ContinuityEventRow, PhotoRow,
    ScheduleDataRow, CallSheetDataRow, ScriptUploadRow,
    SceneCharacterLink, LookSceneLink,
)
from continuity_sync.remote_api.utils import model_to_row
#
#######################################################################################################################
#
# Functions:

def _choice(value: Optional[str], literal_type: Any, default: str) -> str:
    return value if value in get_args(literal_type) else default


########################################################################################################################
# Local -> remote

def scene_to_row(scene: Scene, project_id: str) -> Dict[str, Any]:
    return model_to_row(SceneRow(
        id=scene.id,
        project_id=project_id,
        scene_number=scene.scene_number,
        int_ext=scene.int_ext or None,
        location=scene.slugline or None,
        time_of_day=scene.time_of_day or None,
        synopsis=scene.synopsis or None,
        shooting_day=scene.shooting_day,
        filming_status=scene.filming_status or None,
        filming_notes=scene.filming_notes or None,
        is_complete=scene.is_complete,
        completed_at=scene.completed_at,
        script_content=scene.script_content or None,
    ))


def character_to_row(character: Character, project_id: str) -> Dict[str, Any]:
    # actor_name is managed elsewhere; actor_number never leaves the device
    return model_to_row(CharacterRow(
        id=character.id,
        project_id=project_id,
        name=character.name,
        initials=character.initials,
        avatar_colour=character.avatar_colour or "#6366f1",
    ), exclude={"actor_name"})


def look_to_row(look: Look, project_id: str, master_reference_path: Optional[str] = None) -> Dict[str, Any]:
    row = model_to_row(LookRow(
        id=look.id,
        project_id=project_id,
        character_id=look.character_id,
        name=look.name,
        description=look.notes or None,
        estimated_time=look.estimated_time,
        makeup_details=look.makeup,
        hair_details=look.hair,
        master_reference_path=master_reference_path,
    ))
    if master_reference_path is None:
        # Leave an existing remote reference alone when this device has nothing to say about it
        row.pop("master_reference_path")
    return row


def capture_to_row(capture: SceneCapture, user_id: Optional[str] = None) -> Dict[str, Any]:
    return model_to_row(ContinuityEventRow(
        id=capture.id,
        scene_id=capture.scene_id,
        character_id=capture.character_id,
        look_id=capture.look_id or None,
        status='in_progress',
        general_notes=capture.notes or None,
        application_time=capture.application_time,
        continuity_flags=capture.continuity_flags,
        continuity_events_data=capture.continuity_events,
        sfx_details=capture.sfx_details,
        checked_by=user_id,
    ), exclude={"created_at"})


def photo_to_row(photo: Photo, capture_id: str, angle: str, storage_path: str) -> Dict[str, Any]:
    return model_to_row(PhotoRow(
        id=photo.id,
        continuity_event_id=capture_id,
        storage_path=storage_path,
        photo_type='on_set',
        angle=angle,
        taken_at=photo.captured_at or datetime.now(timezone.utc),
    ))


def schedule_to_row(schedule: ProductionSchedule, project_id: str) -> Dict[str, Any]:
    # storage_path is patched separately once the PDF is in storage
    return model_to_row(ScheduleDataRow(
        id=schedule.id,
        project_id=project_id,
        raw_pdf_text=schedule.raw_text or None,
        cast_list=schedule.cast_list,
        days=schedule.days,
        status='complete' if schedule.status == 'complete' else 'pending',
    ), exclude={"storage_path", "created_at"})


def call_sheet_to_row(call_sheet: CallSheet, project_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    return model_to_row(CallSheetDataRow(
        id=call_sheet.id,
        project_id=project_id,
        shoot_date=call_sheet.date,
        production_day=call_sheet.production_day,
        raw_text=call_sheet.raw_text or None,
        parsed_data=call_sheet.parsed_data,
        uploaded_by=user_id,
    ), exclude={"storage_path", "created_at"})


def script_upload_row(project_id: str, storage_path: str, file_name: str, file_size: int,
                      scene_count: int, user_id: Optional[str] = None) -> Dict[str, Any]:
    return model_to_row(ScriptUploadRow(
        project_id=project_id,
        storage_path=storage_path,
        file_name=file_name,
        file_size=file_size,
        is_active=True,
        status='uploaded',
        uploaded_by=user_id,
        scene_count=scene_count,
    ), exclude={"id", "created_at"})


def scene_character_entries(scenes: Iterable[Scene]) -> List[Dict[str, Any]]:
    return [
        model_to_row(SceneCharacterLink(scene_id=scene.id, character_id=character_id))
        for scene in scenes
        for character_id in dict.fromkeys(scene.characters)
    ]


def look_scene_entries(looks: Iterable[Look]) -> List[Dict[str, Any]]:
    return [
        model_to_row(LookSceneLink(look_id=look.id, scene_number=scene_number))
        for look in looks
        for scene_number in dict.fromkeys(look.scenes)
    ]


def capture_photos(capture: SceneCapture) -> List[tuple]:
    """All photos of a capture as (angle, photo) pairs: fixed angles first, then additional ones."""
    pairs = [(angle, capture.photos[angle]) for angle in FIXED_PHOTO_ANGLES if capture.photos.get(angle)]
    pairs.extend((ADDITIONAL_PHOTO_ANGLE, photo) for photo in capture.additional_photos)
    return pairs


########################################################################################################################
# Remote -> local

def row_to_scene(row: SceneRow, character_ids: List[str], existing: Optional[Scene] = None) -> Scene:
    return Scene(
        id=row.id,
        scene_number=row.scene_number,
        slugline=row.location or "",
        int_ext=_choice(row.int_ext, IntExt, 'INT'),
        time_of_day=_choice(row.time_of_day, TimeOfDay, 'DAY'),
        synopsis=row.synopsis or None,
        characters=character_ids,
        is_complete=row.is_complete,
        completed_at=row.completed_at,
        filming_status=row.filming_status or None,
        filming_notes=row.filming_notes or None,
        shooting_day=row.shooting_day or None,
        # Remote may not have the script text yet; keep what this device parsed
        script_content=row.script_content or (existing.script_content if existing else None),
    )


def row_to_character(row: CharacterRow, existing: Optional[Character] = None) -> Character:
    return Character(
        id=row.id,
        name=row.name,
        initials=row.initials,
        avatar_colour=row.avatar_colour,
        actor_number=existing.actor_number if existing else None,
    )


def row_to_look(row: LookRow, scene_numbers: List[str], existing: Optional[Look] = None) -> Look:
    return Look(
        id=row.id,
        character_id=row.character_id,
        name=row.name,
        scenes=scene_numbers,
        estimated_time=row.estimated_time,
        makeup=row.makeup_details or {},
        hair=row.hair_details or {},
        notes=row.description or None,
        master_reference=existing.master_reference if existing else None,
    )


def row_to_photo(row: PhotoRow, uri: str = "") -> Photo:
    return Photo(
        id=row.id,
        captured_at=row.taken_at,
        angle=row.angle,
        uri=uri,
        storage_path=row.storage_path,
    )


def row_to_capture(row: ContinuityEventRow, photo_rows: Iterable[PhotoRow]) -> SceneCapture:
    photos: Dict[str, Photo] = {}
    additional: List[Photo] = []
    for photo_row in photo_rows:
        photo = row_to_photo(photo_row)
        if photo_row.angle in FIXED_PHOTO_ANGLES:
            photos[photo_row.angle] = photo
        else:
            additional.append(photo)
    return SceneCapture(
        id=row.id,
        scene_id=row.scene_id,
        character_id=row.character_id,
        look_id=row.look_id or "",
        captured_at=row.created_at or datetime.now(timezone.utc),
        photos=photos,
        additional_photos=additional,
        continuity_flags=row.continuity_flags or {},
        continuity_events=row.continuity_events_data or [],
        sfx_details=row.sfx_details or {},
        notes=row.general_notes or "",
        application_time=row.application_time or None,
    )


def row_to_schedule(row: ScheduleDataRow, existing: Optional[ProductionSchedule] = None) -> ProductionSchedule:
    same_schedule = existing is not None and existing.id == row.id
    return ProductionSchedule(
        id=row.id,
        status='complete' if row.status == 'complete' else 'pending',
        cast_list=row.cast_list or [],
        days=row.days or [],
        raw_text=row.raw_pdf_text or None,
        uploaded_at=row.created_at,
        pdf_uri=existing.pdf_uri if same_schedule else None,
        storage_path=row.storage_path,
    )


def row_to_call_sheet(row: CallSheetDataRow) -> CallSheet:
    parsed = row.parsed_data or {}
    return CallSheet(
        id=row.id,
        date=row.shoot_date,
        production_day=row.production_day,
        raw_text=row.raw_text or parsed.get("rawText"),
        uploaded_at=row.created_at,
        storage_path=row.storage_path,
        parsed_data=parsed,
    )

#
# End of mappers.py
#######################################################################################################################
