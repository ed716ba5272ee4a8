# continuity_sync/Project_State/__init__.py
from .models import (
    Project, Scene, Character, Look, SceneCapture, Photo,
    ProductionSchedule, CallSheet, ScriptDocument
)
from .local_state import LocalProjectState, StateSnapshot

__all__ = [
    "Project", "Scene", "Character", "Look", "SceneCapture", "Photo",
    "ProductionSchedule", "CallSheet", "ScriptDocument",
    "LocalProjectState", "StateSnapshot"
]
