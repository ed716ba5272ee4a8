# test_local_state.py
#
# Imports
import pytest
#
# Local Imports
from continuity_sync.Constants import ALL_CATEGORIES, CATEGORY_SCENES, CATEGORY_CAPTURES, CATEGORY_CALL_SHEETS
from continuity_sync.Project_State.local_state import LocalProjectState
from continuity_sync.Sync.change_tracker import classify_changes
from sync_test_utils import make_scene, make_capture, make_call_sheet, make_project, make_schedule
#
########################################################################################################################
#
# Tests:

@pytest.fixture
def events(local_state):
    seen = []
    local_state.subscribe(lambda prev, curr: seen.append(classify_changes(prev, curr)))
    return seen


def test_snapshot_has_every_category(local_state):
    assert list(local_state.snapshot()) == ALL_CATEGORIES


def test_snapshot_without_project():
    state = LocalProjectState()
    snapshot = state.snapshot()
    assert snapshot[CATEGORY_SCENES] is None
    assert snapshot[CATEGORY_CAPTURES] == {}
    assert state.project_id is None


def test_project_writes_touch_only_their_collection(local_state, events):
    characters_before = local_state.project.characters
    local_state.set_scenes([make_scene("sc-9", "9")])
    assert events == [[CATEGORY_SCENES]]
    assert local_state.project.characters is characters_before
    assert local_state.project.updated_at is not None


def test_project_writes_need_a_project():
    with pytest.raises(RuntimeError):
        LocalProjectState().set_scenes([])


def test_upsert_capture_replaces_by_scene_and_character(local_state, events):
    local_state.upsert_capture(make_capture("cap-1"))
    first = local_state.captures
    local_state.upsert_capture(make_capture("cap-2"))  # same scene and character
    assert list(local_state.captures) == ["sc-1-ch-1"]
    assert local_state.captures["sc-1-ch-1"].id == "cap-2"
    assert first["sc-1-ch-1"].id == "cap-1"  # earlier snapshot untouched
    assert events == [[CATEGORY_CAPTURES], [CATEGORY_CAPTURES]]


def test_add_call_sheet_replaces_same_id(local_state, events):
    local_state.add_call_sheet(make_call_sheet("cs-1", 1))
    local_state.add_call_sheet(make_call_sheet("cs-2", 2))
    local_state.add_call_sheet(make_call_sheet("cs-1", 3))
    assert [(cs.id, cs.production_day) for cs in local_state.call_sheets] == [("cs-2", 2), ("cs-1", 3)]
    assert events == [[CATEGORY_CALL_SHEETS]] * 3


def test_set_project_resets_side_collections(local_state):
    local_state.upsert_capture(make_capture())
    local_state.set_schedule(make_schedule())
    local_state.set_project(make_project("proj-2"))
    assert local_state.project_id == "proj-2"
    assert local_state.captures == {}
    assert local_state.schedule is None


def test_replace_from_remote_notifies_once(local_state, events):
    local_state.replace_from_remote(make_project("proj-1"), [make_capture()], make_schedule(), [])
    assert len(events) == 1
    assert "captures" in events[0] and "schedule" in events[0]


def test_unsubscribe(local_state):
    seen = []
    unsubscribe = local_state.subscribe(lambda prev, curr: seen.append(curr))
    unsubscribe()
    unsubscribe()
    local_state.set_scenes([])
    assert seen == []

#
# End of test_local_state.py
########################################################################################################################
