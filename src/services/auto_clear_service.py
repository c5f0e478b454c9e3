"""
Auto-clear timer: empties a restaurant's cart shortly after an order is placed
unless the customer asks to keep it
"""
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config.settings import AUTO_CLEAR_WINDOW_MS, AUTO_CLEAR_SWEEP_SECONDS
from models.order_models import AutoClearPhase, AutoClearState

logger = logging.getLogger(__name__)


class AutoClearTimer:
    """
    Per-tenant state machine:

        IDLE --place_order--> PENDING_CLEAR --cancel--> SUPPRESSED
        PENDING_CLEAR --window elapsed, swept--> IDLE
        any --clear_cart--> IDLE

    The timer itself holds no state; it interprets AutoClearState values.
    """

    def __init__(self, window_ms: int = AUTO_CLEAR_WINDOW_MS):
        self.window_ms = window_ms

    def phase(self, state: Optional[AutoClearState]) -> AutoClearPhase:
        if state is None or not state.is_active:
            return AutoClearPhase.IDLE
        if state.suppress_clear:
            return AutoClearPhase.SUPPRESSED
        return AutoClearPhase.PENDING_CLEAR

    def on_order_placed(self, now_ms: int) -> AutoClearState:
        return AutoClearState(last_order_timestamp=now_ms, suppress_clear=False)

    def on_cancel(self, state: AutoClearState) -> AutoClearState:
        """Suppress the pending clear; there is nothing to cancel when idle"""
        if not state.is_active:
            return state
        return AutoClearState(last_order_timestamp=state.last_order_timestamp, suppress_clear=True)

    def is_expired(self, state: Optional[AutoClearState], now_ms: int) -> bool:
        if self.phase(state) != AutoClearPhase.PENDING_CLEAR:
            return False
        return now_ms - state.last_order_timestamp > self.window_ms

    def remaining_ms(self, state: Optional[AutoClearState], now_ms: int) -> int:
        """Milliseconds left on the countdown, 0 unless a clear is pending"""
        if self.phase(state) != AutoClearPhase.PENDING_CLEAR:
            return 0
        return max(0, self.window_ms - (now_ms - state.last_order_timestamp))

    @staticmethod
    def parse_timestamp(raw: Optional[str]) -> Optional[int]:
        """Parse a persisted epoch-ms value; None when absent or corrupt"""
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    @staticmethod
    def parse_flag(raw: Optional[str]) -> bool:
        return raw == "true"

    @staticmethod
    def format_flag(value: bool) -> str:
        return "true" if value else "false"



SWEEP_JOB_ID = "auto_clear_sweep"


def schedule_sweep(scheduler: AsyncIOScheduler, sweep: Callable[[], Any],
                   interval_seconds: float = AUTO_CLEAR_SWEEP_SECONDS):
    """
    Register the expiry sweep as an interval job that also fires as soon
    as the scheduler starts. The job is a coroutine so it runs on the event
    loop rather than in the executor's thread pool.
    """

    async def run_sweep():
        try:
            sweep()
        except Exception as e:
            logger.error(f"Auto-clear sweep failed: {e}")

    return scheduler.add_job(
        run_sweep,
        'interval',
        seconds=interval_seconds,
        id=SWEEP_JOB_ID,
        next_run_time=datetime.now(),
        coalesce=True,
        max_instances=1,
        replace_existing=True,
    )
