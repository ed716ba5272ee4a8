# continuity_sync/Project_State/models.py
# Local (on-device) entity shapes. These are what the rest of the app reads and writes;
# the sync layer maps them to remote rows in Sync/mappers.py.
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field

IntExt = Literal['INT', 'EXT', 'INT/EXT']
TimeOfDay = Literal['DAY', 'NIGHT', 'MORNING', 'EVENING', 'CONTINUOUS']
LocalPhotoAngle = Literal['front', 'left', 'right', 'back', 'detail', 'additional']


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Photo(BaseModel):
    id: str
    captured_at: datetime = Field(default_factory=_utcnow)
    angle: Optional[LocalPhotoAngle] = None
    # Inline data URI fallback when the bytes are not in the local binary cache
    uri: str = ""
    thumbnail: str = ""
    # Set once the photo is known to exist in remote storage
    storage_path: Optional[str] = None


class Scene(BaseModel):
    id: str
    scene_number: str
    slugline: str = ""
    int_ext: IntExt = 'INT'
    time_of_day: TimeOfDay = 'DAY'
    synopsis: Optional[str] = None
    characters: List[str] = Field(default_factory=list)
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    filming_status: Optional[str] = None
    filming_notes: Optional[str] = None
    shooting_day: Optional[int] = None
    script_content: Optional[str] = None


class Character(BaseModel):
    id: str
    name: str
    initials: str = ""
    avatar_colour: str = "#6366f1"
    # Local-only, kept across pulls
    actor_number: Optional[int] = None


class Look(BaseModel):
    id: str
    character_id: str
    name: str
    scenes: List[str] = Field(default_factory=list)  # scene numbers
    estimated_time: int = 30
    makeup: Dict[str, Any] = Field(default_factory=dict)
    hair: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    master_reference: Optional[Photo] = None


class SceneCapture(BaseModel):
    id: str
    scene_id: str
    character_id: str
    look_id: str = ""
    captured_at: datetime = Field(default_factory=_utcnow)
    photos: Dict[str, Photo] = Field(default_factory=dict)  # front / left / right / back
    additional_photos: List[Photo] = Field(default_factory=list)
    continuity_flags: Dict[str, Any] = Field(default_factory=dict)
    continuity_events: List[Dict[str, Any]] = Field(default_factory=list)
    sfx_details: Dict[str, Any] = Field(default_factory=dict)
    notes: str = ""
    application_time: Optional[int] = None

    @property
    def capture_key(self) -> str:
        return f"{self.scene_id}-{self.character_id}"


class ProductionSchedule(BaseModel):
    id: str
    status: Literal['pending', 'complete'] = 'pending'
    cast_list: List[Dict[str, Any]] = Field(default_factory=list)
    days: List[Dict[str, Any]] = Field(default_factory=list)
    raw_text: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    pdf_uri: Optional[str] = None
    storage_path: Optional[str] = None

    @property
    def total_days(self) -> int:
        return len(self.days)


class CallSheet(BaseModel):
    id: str
    date: Optional[str] = None
    production_day: int = 0
    raw_text: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    pdf_uri: Optional[str] = None
    storage_path: Optional[str] = None
    # Parsed call sheet content (scenes, call times, notes) owned by the parsing collaborator
    parsed_data: Dict[str, Any] = Field(default_factory=dict)


class ScriptDocument(BaseModel):
    data_uri: str
    file_name: str = "script.pdf"
    storage_path: Optional[str] = None


class Project(BaseModel):
    id: str
    name: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    scenes: List[Scene] = Field(default_factory=list)
    characters: List[Character] = Field(default_factory=list)
    looks: List[Look] = Field(default_factory=list)
    script: Optional[ScriptDocument] = None
