# local_state.py
# Description: In-memory store for the current project, observable by the sync engine.
#
"""
local_state.py
--------------

Holds the one "current" project plus the collections that live beside it (scene captures,
the production schedule, call sheets). Every write replaces the touched collection with a
new object and leaves the others alone, so two snapshots can be compared by identity to
find out what changed.

Listeners are called synchronously after each write with ``(previous_snapshot, snapshot)``.
A snapshot is a plain dict keyed by change category (see ``Constants.ALL_CATEGORIES``).
"""
# Imports
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional
#
# Third-Party Libraries
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import (
    CATEGORY_SCENES, CATEGORY_CHARACTERS, CATEGORY_LOOKS, CATEGORY_CAPTURES,
    CATEGORY_SCHEDULE, CATEGORY_CALL_SHEETS, CATEGORY_SCRIPT,
)
from continuity_sync.Project_State.models import (
    Project, Scene, Character, Look, SceneCapture, ProductionSchedule, CallSheet, ScriptDocument,
)
#
########################################################################################################################
#
# Functions:

StateSnapshot = Dict[str, Any]
StateListener = Callable[[StateSnapshot, StateSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalProjectState:
    def __init__(self, project: Optional[Project] = None):
        self.project: Optional[Project] = project
        self.captures: Dict[str, SceneCapture] = {}
        self.schedule: Optional[ProductionSchedule] = None
        self.call_sheets: List[CallSheet] = []
        self._listeners: List[StateListener] = []

    # --- Observation ---
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Registers `listener`; returns a callable that removes it again."""
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def snapshot(self) -> StateSnapshot:
        project = self.project
        return {
            CATEGORY_SCENES: project.scenes if project else None,
            CATEGORY_CHARACTERS: project.characters if project else None,
            CATEGORY_LOOKS: project.looks if project else None,
            CATEGORY_CAPTURES: self.captures,
            CATEGORY_SCHEDULE: self.schedule,
            CATEGORY_CALL_SHEETS: self.call_sheets,
            CATEGORY_SCRIPT: project.script if project else None,
        }

    def _emit(self, previous: StateSnapshot):
        current = self.snapshot()
        # Copy: a listener may unsubscribe while we iterate
        for listener in list(self._listeners):
            listener(previous, current)

    # --- Project ---
    @property
    def project_id(self) -> Optional[str]:
        return self.project.id if self.project else None

    def set_project(self, project: Optional[Project]):
        """Switches the current project. Collections that belong beside the project are reset."""
        previous = self.snapshot()
        self.project = project
        self.captures = {}
        self.schedule = None
        self.call_sheets = []
        logger.debug(f"[LocalState] Current project set to {project.id if project else None}")
        self._emit(previous)

    def _require_project(self) -> Project:
        if self.project is None:
            raise RuntimeError("No current project")
        return self.project

    def _update_project(self, **fields):
        project = self._require_project()
        previous = self.snapshot()
        # model_copy is shallow: untouched collections keep their identity
        self.project = project.model_copy(update={**fields, "updated_at": _utcnow()})
        self._emit(previous)

    def set_scenes(self, scenes: Iterable[Scene]):
        self._update_project(scenes=list(scenes))

    def set_characters(self, characters: Iterable[Character]):
        self._update_project(characters=list(characters))

    def set_looks(self, looks: Iterable[Look]):
        self._update_project(looks=list(looks))

    def set_script(self, script: Optional[ScriptDocument]):
        self._update_project(script=script)

    # --- Collections beside the project ---
    def set_captures(self, captures: Iterable[SceneCapture]):
        previous = self.snapshot()
        self.captures = {capture.capture_key: capture for capture in captures}
        self._emit(previous)

    def upsert_capture(self, capture: SceneCapture):
        previous = self.snapshot()
        self.captures = {**self.captures, capture.capture_key: capture}
        self._emit(previous)

    def set_schedule(self, schedule: Optional[ProductionSchedule]):
        previous = self.snapshot()
        self.schedule = schedule
        self._emit(previous)

    def set_call_sheets(self, call_sheets: Iterable[CallSheet]):
        previous = self.snapshot()
        self.call_sheets = list(call_sheets)
        self._emit(previous)

    def add_call_sheet(self, call_sheet: CallSheet):
        previous = self.snapshot()
        self.call_sheets = [cs for cs in self.call_sheets if cs.id != call_sheet.id] + [call_sheet]
        self._emit(previous)

    # --- Bulk replace ---
    def replace_from_remote(
        self,
        project: Project,
        captures: Iterable[SceneCapture],
        schedule: Optional[ProductionSchedule],
        call_sheets: Iterable[CallSheet],
    ):
        """
        Replaces every collection at once with remotely fetched data and notifies listeners once.
        Callers are expected to hold the change tracker's suppression guard.
        """
        previous = self.snapshot()
        self.project = project
        self.captures = {capture.capture_key: capture for capture in captures}
        self.schedule = schedule
        self.call_sheets = list(call_sheets)
        logger.debug(f"[LocalState] Replaced project {project.id} from remote "
                     f"({len(project.scenes)} scenes, {len(self.captures)} captures)")
        self._emit(previous)

#
# End of local_state.py
########################################################################################################################
