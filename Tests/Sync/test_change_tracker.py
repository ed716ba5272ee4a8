# test_change_tracker.py
#
# Imports
import pytest
from unittest.mock import MagicMock
#
# Local Imports
from continuity_sync.Constants import CATEGORY_SCENES, CATEGORY_CAPTURES, CATEGORY_SCHEDULE
from continuity_sync.Sync.change_tracker import ChangeTracker, classify_changes
from continuity_sync.Sync.exceptions import UnknownCategoryError
from sync_test_utils import make_scene, make_capture, make_schedule
#
########################################################################################################################
#
# Fixtures:

@pytest.fixture
def scheduler():
    return MagicMock()


@pytest.fixture
def save_factory():
    return MagicMock(side_effect=lambda category, payload: f"save:{category}")


@pytest.fixture
def tracker(scheduler, save_factory):
    return ChangeTracker(scheduler, save_factory)


# --- Tests ---

def test_mutation_schedules_save_for_its_category(tracker, scheduler, save_factory):
    assert tracker.notify_mutation(CATEGORY_SCENES, ["payload"]) is True
    save_factory.assert_called_once_with(CATEGORY_SCENES, ["payload"])
    scheduler.schedule.assert_called_once_with(CATEGORY_SCENES, "save:scenes")


def test_unknown_category_is_rejected(tracker, scheduler):
    with pytest.raises(UnknownCategoryError):
        tracker.notify_mutation("timesheets", {})
    with pytest.raises(ValueError):
        tracker.notify_mutation("Scenes", {})
    scheduler.schedule.assert_not_called()


def test_mutation_while_receiving_from_remote_is_ignored(tracker, scheduler, local_state):
    local_state.subscribe(tracker.observe)
    with tracker.suppressed():
        assert tracker.receiving_from_remote is True
        local_state.set_scenes([make_scene("sc-9", "9")])
        assert tracker.notify_mutation(CATEGORY_SCENES, []) is False
    assert tracker.receiving_from_remote is False
    scheduler.schedule.assert_not_called()


def test_suppression_is_released_when_the_write_raises(tracker):
    with pytest.raises(RuntimeError):
        with tracker.suppressed():
            raise RuntimeError("merge failed")
    assert tracker.receiving_from_remote is False


def test_suppression_nests(tracker):
    with tracker.suppressed():
        with tracker.suppressed():
            pass
        assert tracker.receiving_from_remote is True
    assert tracker.receiving_from_remote is False


def test_local_state_writes_are_classified(tracker, scheduler, local_state):
    local_state.subscribe(tracker.observe)
    local_state.set_scenes([make_scene("sc-9", "9")])
    local_state.upsert_capture(make_capture())
    scheduled = [c.args[0] for c in scheduler.schedule.call_args_list]
    assert scheduled == [CATEGORY_SCENES, CATEGORY_CAPTURES]


def test_classify_changes_compares_by_identity(local_state):
    before = local_state.snapshot()
    local_state.set_schedule(make_schedule())
    after = local_state.snapshot()
    assert classify_changes(before, after) == [CATEGORY_SCHEDULE]
    assert classify_changes(after, local_state.snapshot()) == []

#
# End of test_change_tracker.py
########################################################################################################################
