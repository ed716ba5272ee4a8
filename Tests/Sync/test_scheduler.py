# test_scheduler.py
#
# Imports
import asyncio
import pytest
from unittest.mock import AsyncMock
#
# Local Imports
from continuity_sync.Sync.scheduler import DebounceScheduler, TRIGGER_FLUSH
from continuity_sync.Sync.session_guard import SessionGuard
#
########################################################################################################################
#
# Fixtures:

pytestmark = pytest.mark.asyncio

DEBOUNCE = 0.8


@pytest.fixture
def scheduler(fake_session, fake_clock):
    return DebounceScheduler(SessionGuard(fake_session), debounce_seconds=DEBOUNCE, clock=fake_clock)


def recorder(writes, key, payload):
    async def _save():
        writes.append((key, payload))
    return _save


# --- Tests ---

async def test_burst_of_mutations_produces_one_write_with_last_payload(scheduler, fake_clock):
    writes = []
    for i in range(5):
        scheduler.schedule("scenes", recorder(writes, "scenes", i))
        fake_clock.advance(DEBOUNCE / 2)
    assert writes == []
    fake_clock.advance(DEBOUNCE)
    await scheduler.wait_idle()
    assert writes == [("scenes", 4)]
    assert scheduler.pending_keys == []


async def test_nothing_runs_before_the_quiet_window_ends(scheduler, fake_clock):
    writes = []
    scheduler.schedule("looks", recorder(writes, "looks", 1))
    fake_clock.advance(DEBOUNCE - 0.01)
    await scheduler.wait_idle()
    assert writes == []
    assert scheduler.pending_keys == ["looks"]


async def test_categories_are_debounced_independently(scheduler, fake_clock):
    writes = []
    scheduler.schedule("scenes", recorder(writes, "scenes", 1))
    fake_clock.advance(0.5)
    scheduler.schedule("characters", recorder(writes, "characters", 1))
    fake_clock.advance(0.5)
    await scheduler.wait_idle()
    assert writes == [("scenes", 1)]
    fake_clock.advance(0.5)
    await scheduler.wait_idle()
    assert writes == [("scenes", 1), ("characters", 1)]


async def test_flush_runs_every_pending_save_and_clears_timers(scheduler, fake_clock):
    writes = []
    for key in ("scenes", "characters", "looks"):
        scheduler.schedule(key, recorder(writes, key, "latest"))
    results = await scheduler.flush_all()

    assert sorted(key for key, _ in writes) == ["characters", "looks", "scenes"]
    assert [r.trigger for r in results] == [TRIGGER_FLUSH] * 3
    assert scheduler.pending_keys == []
    assert fake_clock.active_timers == []

    fake_clock.advance(10)
    await scheduler.wait_idle()
    assert len(writes) == 3


async def test_flush_keeps_going_after_a_failure(scheduler):
    writes = []
    scheduler.schedule("scenes", AsyncMock(side_effect=RuntimeError("scenes broke")))
    scheduler.schedule("characters", recorder(writes, "characters", 1))
    results = await scheduler.flush_all()
    assert [r.success for r in results] == [False, True]
    assert writes == [("characters", 1)]
    assert scheduler.last_failure_message == "scenes broke"


async def test_failure_is_counted_and_reset_by_success(scheduler, fake_clock):
    scheduler.schedule("scenes", AsyncMock(side_effect=ConnectionError("offline")))
    fake_clock.advance(DEBOUNCE)
    await scheduler.wait_idle()
    scheduler.schedule("scenes", AsyncMock(side_effect=ConnectionError("still offline")))
    fake_clock.advance(DEBOUNCE)
    await scheduler.wait_idle()
    assert scheduler.failure_count == 2
    assert scheduler.failure_count_for("scenes") == 2
    assert scheduler.last_failure_message == "still offline"
    assert scheduler.pending_keys == []  # no automatic retry

    scheduler.schedule("scenes", AsyncMock(return_value=None))
    fake_clock.advance(DEBOUNCE)
    await scheduler.wait_idle()
    assert scheduler.failure_count == 0
    assert scheduler.results[-1].success is True


async def test_no_session_skips_the_write(scheduler, fake_clock, fake_session):
    fake_session.active = False
    save = AsyncMock()
    scheduler.schedule("captures", save)
    fake_clock.advance(DEBOUNCE)
    await scheduler.wait_idle()
    save.assert_not_awaited()
    assert scheduler.results[-1].skipped is True
    assert scheduler.failure_count == 0


async def test_session_is_checked_when_the_timer_fires(scheduler, fake_clock, fake_session):
    save = AsyncMock()
    scheduler.schedule("schedule", save)
    fake_session.active = False  # session expired during the quiet window
    fake_clock.advance(DEBOUNCE)
    await scheduler.wait_idle()
    save.assert_not_awaited()


async def test_cancel_all_drops_pending_saves(scheduler, fake_clock):
    save = AsyncMock()
    scheduler.schedule("scenes", save)
    scheduler.schedule("looks", save)
    assert scheduler.cancel_all() == 2
    fake_clock.advance(DEBOUNCE)
    await scheduler.wait_idle()
    save.assert_not_awaited()


async def test_result_listener_sees_every_outcome(scheduler):
    seen = []
    scheduler.add_result_listener(seen.append)
    scheduler.schedule("script", AsyncMock())
    await scheduler.flush_all()
    assert [(r.key, r.success) for r in seen] == [("script", True)]


async def test_event_loop_clock_fires_for_real():
    writes = []
    scheduler = DebounceScheduler(None, debounce_seconds=0.01)
    scheduler.schedule("scenes", recorder(writes, "scenes", "x"))
    await asyncio.sleep(0.05)
    await scheduler.wait_idle()
    assert writes == [("scenes", "x")]

#
# End of test_scheduler.py
########################################################################################################################
