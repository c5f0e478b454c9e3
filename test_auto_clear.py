"""
Tests for the auto-clear timer and its sweep scheduler
"""
import asyncio
from datetime import timedelta

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from models.order_models import AutoClearPhase, AutoClearState
from services.auto_clear_service import SWEEP_JOB_ID, AutoClearTimer, schedule_sweep

T0 = 1_700_000_000_000


@pytest.fixture
def timer():
    return AutoClearTimer(window_ms=30000)


class TestAutoClearTimer:
    def test_idle_without_order(self, timer):
        assert timer.phase(None) == AutoClearPhase.IDLE
        assert timer.phase(AutoClearState()) == AutoClearPhase.IDLE

    def test_order_starts_pending_clear(self, timer):
        state = timer.on_order_placed(T0)

        assert state == AutoClearState(last_order_timestamp=T0, suppress_clear=False)
        assert timer.phase(state) == AutoClearPhase.PENDING_CLEAR

    def test_cancel_suppresses(self, timer):
        state = timer.on_cancel(timer.on_order_placed(T0))

        assert state.last_order_timestamp == T0
        assert timer.phase(state) == AutoClearPhase.SUPPRESSED

    def test_cancel_when_idle_is_noop(self, timer):
        state = AutoClearState()

        assert timer.on_cancel(state) == state
        assert timer.phase(timer.on_cancel(state)) == AutoClearPhase.IDLE

    def test_order_after_cancel_restarts_pending_clear(self, timer):
        suppressed = timer.on_cancel(timer.on_order_placed(T0))

        state = timer.on_order_placed(T0 + 60000)

        assert suppressed.suppress_clear
        assert state == AutoClearState(last_order_timestamp=T0 + 60000, suppress_clear=False)

    @pytest.mark.parametrize("elapsed, expired", [
        (0, False),
        (29999, False),
        (30000, False),
        (30001, True),
        (600000, True),
    ])
    def test_expiry_is_strictly_after_window(self, timer, elapsed, expired):
        state = timer.on_order_placed(T0)

        assert timer.is_expired(state, T0 + elapsed) is expired

    def test_suppressed_never_expires(self, timer):
        state = timer.on_cancel(timer.on_order_placed(T0))

        assert not timer.is_expired(state, T0 + 10 ** 9)

    def test_remaining_ms(self, timer):
        state = timer.on_order_placed(T0)

        assert timer.remaining_ms(state, T0) == 30000
        assert timer.remaining_ms(state, T0 + 12000) == 18000
        assert timer.remaining_ms(state, T0 + 45000) == 0
        assert timer.remaining_ms(timer.on_cancel(state), T0) == 0
        assert timer.remaining_ms(None, T0) == 0

    @pytest.mark.parametrize("raw, expected", [
        (None, None),
        (str(T0), T0),
        ("not-a-number", None),
        ("", None),
    ])
    def test_parse_timestamp(self, raw, expected):
        assert AutoClearTimer.parse_timestamp(raw) == expected

    def test_flag_format(self):
        assert AutoClearTimer.format_flag(True) == "true"
        assert AutoClearTimer.format_flag(False) == "false"
        assert AutoClearTimer.parse_flag("true") is True
        assert AutoClearTimer.parse_flag("false") is False
        assert AutoClearTimer.parse_flag(None) is False


async def wait_for(condition, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition() and loop.time() < deadline:
        await asyncio.sleep(0.01)


class TestSweepScheduling:
    async def test_sweep_runs_as_soon_as_scheduler_starts(self):
        calls = []
        scheduler = AsyncIOScheduler()
        schedule_sweep(scheduler, lambda: calls.append(1), interval_seconds=60)

        scheduler.start()
        await wait_for(lambda: calls)
        scheduler.shutdown(wait=False)

        assert calls == [1]

    async def test_sweep_job_uses_interval(self):
        scheduler = AsyncIOScheduler()
        schedule_sweep(scheduler, lambda: None, interval_seconds=5)
        schedule_sweep(scheduler, lambda: None, interval_seconds=5)

        scheduler.start(paused=True)
        jobs = scheduler.get_jobs()
        scheduler.shutdown(wait=False)

        assert [job.id for job in jobs] == [SWEEP_JOB_ID]
        assert jobs[0].trigger.interval == timedelta(seconds=5)

    async def test_failing_sweep_is_logged_and_scheduler_keeps_running(self, caplog):
        calls = []

        def sweep():
            calls.append(1)
            raise RuntimeError("storage unavailable")

        scheduler = AsyncIOScheduler()
        schedule_sweep(scheduler, sweep, interval_seconds=60)

        scheduler.start()
        await wait_for(lambda: calls)
        await asyncio.sleep(0.01)

        assert scheduler.running
        assert scheduler.get_job(SWEEP_JOB_ID) is not None
        assert "Auto-clear sweep failed: storage unavailable" in caplog.text
        scheduler.shutdown(wait=False)
