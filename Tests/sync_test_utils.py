# Tests/sync_test_utils.py
# In-memory stand-in for the shared backend, a hand-driven clock, a fake session and sample data.
#
# Imports
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
#
# Local Imports
from continuity_sync.Constants import (
    TABLE_SCENES, TABLE_SCENE_CHARACTERS, TABLE_LOOK_SCENES, TABLE_SCRIPT_UPLOADS,
    RPC_SYNC_SCENE_CHARACTERS, RPC_SYNC_LOOK_SCENES,
)
from continuity_sync.Project_State.models import (
    Project, Scene, Character, Look, SceneCapture, Photo, ProductionSchedule, CallSheet, ScriptDocument,
)
from continuity_sync.remote_api.exceptions import APIRequestError
from continuity_sync.remote_api.utils import encode_data_uri
#
########################################################################################################################
#
# Fake backend:

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-body"
PDF_BYTES = b"%PDF-1.4 fake schedule"
JPEG_DATA_URI = encode_data_uri(JPEG_BYTES, "image/jpeg")
PDF_DATA_URI = encode_data_uri(PDF_BYTES, "application/pdf")

# Composite uniqueness constraints the real schema enforces
UNIQUE_CONSTRAINTS = {
    TABLE_SCENES: ("project_id", "scene_number"),
}


def _matches(row: Dict[str, Any], eq=None, neq=None, in_=None) -> bool:
    for column, value in (eq or {}).items():
        if row.get(column) != value:
            return False
    for column, value in (neq or {}).items():
        if row.get(column) == value:
            return False
    for column, values in (in_ or {}).items():
        if row.get(column) not in list(values):
            return False
    return True


class FakeRemoteStore:
    """
    Async stand-in for RemoteStoreClient keeping tables and storage objects in memory.

    `calls` records every write ("upsert", "insert", "update", "rpc", "upload") as a tuple.
    `fail_on` maps (operation, table_or_bucket) to an exception raised instead of performing it.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.objects: Dict[tuple, bytes] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[tuple, Exception] = {}
        self.access_token: Optional[str] = "token"
        self.closed = False

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def calls_for(self, operation: str, target: Optional[str] = None) -> List[tuple]:
        return [c for c in self.calls if c[0] == operation and (target is None or c[1] == target)]

    def _maybe_fail(self, operation: str, target: str):
        error = self.fail_on.get((operation, target))
        if error is not None:
            raise error

    def _check_unique(self, table: str):
        columns = UNIQUE_CONSTRAINTS.get(table)
        if not columns:
            return
        seen = set()
        for row in self.rows(table):
            key = tuple(row.get(c) for c in columns)
            if key in seen:
                raise APIRequestError(409, f'duplicate key value violates unique constraint on {columns}')
            seen.add(key)

    # --- Tables ---
    async def select(self, table, columns="*", eq=None, in_=None, order=None, limit=None):
        self._maybe_fail("select", table)
        rows = [dict(r) for r in self.rows(table) if _matches(r, eq=eq, in_=in_)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{c: r.get(c) for c in wanted} for r in rows]
        return rows

    async def upsert(self, table, rows, on_conflict):
        self._maybe_fail("upsert", table)
        rows = rows if isinstance(rows, list) else [rows]
        self.calls.append(("upsert", table, [dict(r) for r in rows], on_conflict))
        conflict_columns = [c.strip() for c in on_conflict.split(",")]
        keys = [tuple(r.get(c) for c in conflict_columns) for r in rows]
        if len(set(keys)) != len(keys):
            raise APIRequestError(409, "ON CONFLICT DO UPDATE command cannot affect row a second time")
        snapshot = [dict(r) for r in self.rows(table)]
        for row in rows:
            key = tuple(row.get(c) for c in conflict_columns)
            existing = next((r for r in self.rows(table) if tuple(r.get(c) for c in conflict_columns) == key), None)
            if existing is not None:
                existing.update(row)
            else:
                self.rows(table).append(dict(row))
        try:
            self._check_unique(table)
        except APIRequestError:
            self.tables[table] = snapshot
            raise

    async def insert(self, table, rows):
        self._maybe_fail("insert", table)
        rows = rows if isinstance(rows, list) else [rows]
        self.calls.append(("insert", table, [dict(r) for r in rows]))
        for row in rows:
            stored = dict(row)
            if table == TABLE_SCRIPT_UPLOADS:
                stored.setdefault("id", str(uuid.uuid4()))
                stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            self.rows(table).append(stored)
        self._check_unique(table)

    async def update(self, table, values, eq=None, neq=None, in_=None):
        self._maybe_fail("update", table)
        if not (eq or neq or in_):
            raise ValueError("unfiltered update")
        self.calls.append(("update", table, dict(values), dict(eq or {}), dict(neq or {})))
        for row in self.rows(table):
            if _matches(row, eq=eq, neq=neq, in_=in_):
                row.update(values)

    async def rpc(self, function, params):
        self._maybe_fail("rpc", function)
        self.calls.append(("rpc", function, params))
        if function == RPC_SYNC_SCENE_CHARACTERS:
            table, parent_column, parents = TABLE_SCENE_CHARACTERS, "scene_id", params["p_scene_ids"]
        elif function == RPC_SYNC_LOOK_SCENES:
            table, parent_column, parents = TABLE_LOOK_SCENES, "look_id", params["p_look_ids"]
        else:
            raise APIRequestError(404, f"function {function} does not exist")
        self.tables[table] = [r for r in self.rows(table) if r.get(parent_column) not in parents]
        self.rows(table).extend(dict(entry) for entry in params["p_entries"])
        return None

    # --- Storage ---
    async def upload_object(self, bucket, path, data, content_type, upsert=True, cache_control="3600"):
        self._maybe_fail("upload", bucket)
        self.calls.append(("upload", bucket, path, content_type))
        self.objects[(bucket, path)] = bytes(data)
        return path

    async def download_object(self, bucket, path):
        self._maybe_fail("download", bucket)
        if (bucket, path) not in self.objects:
            raise APIRequestError(404, f"Object not found: {bucket}/{path}")
        return self.objects[(bucket, path)]

    # --- Auth / lifecycle ---
    async def get_user(self):
        return {"id": "user-1"} if self.access_token else None

    async def close(self):
        self.closed = True


class FakeSessionProvider:
    def __init__(self, active: bool = True, user_id: str = "user-1"):
        self.active = active
        self.user_id = user_id
        self.error: Optional[Exception] = None
        self.checks = 0

    async def get_session(self):
        self.checks += 1
        if self.error is not None:
            raise self.error
        return {"user": {"id": self.user_id}, "access_token": "token"} if self.active else None

    def get_current_user_id(self):
        return self.user_id if self.active else None


class FakeTimer:
    def __init__(self, when: float, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Clock whose timers only fire when the test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay, callback):
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active_timers(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float):
        self.now += seconds
        due = sorted((t for t in self.active_timers if t.when <= self.now), key=lambda t: t.when)
        for timer in due:
            self.timers.remove(timer)
            timer.callback()


########################################################################################################################
#
# Sample data:

def make_scene(scene_id: str, number: str, characters=None, **kwargs) -> Scene:
    return Scene(id=scene_id, scene_number=number, slugline=f"INT. SET {number} - DAY",
                 characters=characters or [], **kwargs)


def make_photo(photo_id: str, uri: str = JPEG_DATA_URI, **kwargs) -> Photo:
    return Photo(id=photo_id, uri=uri, **kwargs)


def make_project(project_id: str = "proj-1") -> Project:
    return Project(
        id=project_id,
        name="Night Shoot",
        scenes=[make_scene("sc-1", "1", ["ch-1"]), make_scene("sc-2", "2", ["ch-1", "ch-2"])],
        characters=[Character(id="ch-1", name="Ada", initials="A", actor_number=1),
                    Character(id="ch-2", name="Ben", initials="B", actor_number=2)],
        looks=[Look(id="lk-1", character_id="ch-1", name="Day 1", scenes=["1", "2"])],
    )


def make_capture(capture_id: str = "cap-1", scene_id: str = "sc-1", character_id: str = "ch-1") -> SceneCapture:
    return SceneCapture(
        id=capture_id, scene_id=scene_id, character_id=character_id, look_id="lk-1",
        photos={"front": make_photo(f"{capture_id}-front"), "left": make_photo(f"{capture_id}-left")},
        additional_photos=[make_photo(f"{capture_id}-extra")],
        notes="smudged mascara",
    )


def make_schedule(schedule_id: str = "sch-1", pdf_uri: Optional[str] = PDF_DATA_URI) -> ProductionSchedule:
    return ProductionSchedule(id=schedule_id, status="complete", days=[{"day": 1}], pdf_uri=pdf_uri)


def make_call_sheet(sheet_id: str, day: int, pdf_uri: Optional[str] = PDF_DATA_URI) -> CallSheet:
    return CallSheet(id=sheet_id, date=f"2026-03-0{day}", production_day=day, pdf_uri=pdf_uri,
                     parsed_data={"scenes": [{"sceneNumber": str(day)}]})


def make_script(content: bytes = PDF_BYTES) -> ScriptDocument:
    return ScriptDocument(data_uri=encode_data_uri(content, "application/pdf"), file_name="script.pdf")


#
# End of sync_test_utils.py
########################################################################################################################
