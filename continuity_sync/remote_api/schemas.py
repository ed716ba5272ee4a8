# continuity_sync/remote_api/schemas.py
# Row shapes of the shared backend tables. Column names follow the remote schema (snake_case).
from datetime import datetime
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, ConfigDict

PhotoAngle = Literal['front', 'left', 'right', 'back', 'detail', 'additional']
ScheduleStatus = Literal['pending', 'complete']


class RemoteRow(BaseModel):
    # Rows fetched with select=* may carry columns this client does not model
    model_config = ConfigDict(extra='ignore')


# --- Project-level tables ---
class SceneRow(RemoteRow):
    id: str
    project_id: str
    scene_number: str
    int_ext: Optional[str] = None
    location: Optional[str] = None
    time_of_day: Optional[str] = None
    synopsis: Optional[str] = None
    shooting_day: Optional[int] = None
    filming_status: Optional[str] = None
    filming_notes: Optional[str] = None
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    script_content: Optional[str] = None

class CharacterRow(RemoteRow):
    id: str
    project_id: str
    name: str
    initials: str = ""
    avatar_colour: str = "#6366f1"
    actor_name: Optional[str] = None

class LookRow(RemoteRow):
    id: str
    project_id: str
    character_id: str
    name: str
    description: Optional[str] = None
    estimated_time: int = 30
    makeup_details: Optional[Dict[str, Any]] = None
    hair_details: Optional[Dict[str, Any]] = None
    master_reference_path: Optional[str] = None

class ContinuityEventRow(RemoteRow):
    id: str
    scene_id: str
    character_id: str
    look_id: Optional[str] = None
    status: str = 'in_progress'
    general_notes: Optional[str] = None
    application_time: Optional[int] = None
    continuity_flags: Optional[Dict[str, Any]] = None
    continuity_events_data: Optional[List[Dict[str, Any]]] = None
    sfx_details: Optional[Dict[str, Any]] = None
    checked_by: Optional[str] = None
    created_at: Optional[datetime] = None

class PhotoRow(RemoteRow):
    id: str
    continuity_event_id: str
    storage_path: str
    photo_type: str = 'on_set'
    angle: PhotoAngle = 'additional'
    taken_at: datetime

class ScheduleDataRow(RemoteRow):
    id: str
    project_id: str
    raw_pdf_text: Optional[str] = None
    cast_list: Optional[List[Dict[str, Any]]] = None
    days: Optional[List[Dict[str, Any]]] = None
    status: ScheduleStatus = 'pending'
    storage_path: Optional[str] = None
    created_at: Optional[datetime] = None

class CallSheetDataRow(RemoteRow):
    id: str
    project_id: str
    shoot_date: Optional[str] = None
    production_day: int = 0
    raw_text: Optional[str] = None
    parsed_data: Optional[Dict[str, Any]] = None
    uploaded_by: Optional[str] = None
    storage_path: Optional[str] = None
    created_at: Optional[datetime] = None

class ScriptUploadRow(RemoteRow):
    id: Optional[str] = None  # assigned by the backend on insert
    project_id: str
    storage_path: str
    file_name: str = 'script.pdf'
    file_size: int = 0
    is_active: bool = True
    status: str = 'uploaded'
    uploaded_by: Optional[str] = None
    scene_count: int = 0
    created_at: Optional[datetime] = None


# --- Junction tables ---
class SceneCharacterLink(RemoteRow):
    scene_id: str
    character_id: str

class LookSceneLink(RemoteRow):
    look_id: str
    scene_number: str
