# remindbot - Chat Reminder Scheduler
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Reminder Scheduler Module

Keeps one cancellable one-shot timer per pending reminder on the asyncio
event loop. Timers are derived state: the store is the source of truth,
and reconcile() rebuilds every timer from it at startup.

The id -> timer mapping is guarded by a single asyncio.Lock. A timer only
delivers if, under that lock, it is still the ARMED timer for its id; a
cancel only succeeds under the same condition. So for any reminder either
the cancel succeeds or the delivery happens, never both.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import pytz

from analytics import track

from .delivery import ReminderDelivery
from .errors import StoreError
from .store import Reminder, ReminderStore

logger = logging.getLogger("remindbot.reminders.scheduler")


class TimerState(str, Enum):
    """Lifecycle of a reminder timer."""

    ARMED = "armed"
    FIRING = "firing"
    DISARMED = "disarmed"


@dataclass
class ReminderTimer:
    """An armed delayed delivery for one reminder."""

    reminder: Reminder
    handle: Any = None  # asyncio.TimerHandle or anything with cancel()
    state: TimerState = TimerState.ARMED


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class ReminderScheduler:
    """
    In-memory scheduler for reminder delivery.

    Each timer, on elapse, delivers the reminder and deletes it from the
    store. Delivery is at-most-once: failures are logged, never retried.
    """

    def __init__(
        self,
        store: ReminderStore,
        delivery: ReminderDelivery,
        clock: Optional[Callable[[], datetime]] = None,
        call_later: Optional[Callable[..., Any]] = None,
    ):
        """
        Initialize the reminder scheduler.

        Args:
            store: Reminder store (source of truth)
            delivery: Transport used to notify the owner
            clock: Returns the current aware UTC datetime
            call_later: call_later(delay, callback, *args) -> handle with cancel();
                defaults to the running event loop's call_later
        """
        self.store = store
        self.delivery = delivery
        self._clock = clock or utc_now
        self._call_later = call_later

        self._lock = asyncio.Lock()
        self._timers: dict[int, ReminderTimer] = {}
        self._firing: set[int] = set()
        self._spent: set[int] = set()  # fired, but the stored record could not be deleted
        self._tasks: set[asyncio.Task] = set()

    # =========================================================================
    # Public API
    # =========================================================================

    async def schedule(self, reminder: Reminder) -> bool:
        """
        Arm a timer for a reminder, or expire it if it's already due.

        Args:
            reminder: A reminder that is already persisted

        Returns:
            True if a timer was armed, False if the reminder was expired
            or has already fired
        """
        delay = (reminder.remind_at - self._clock()).total_seconds()

        async with self._lock:
            if reminder.id in self._firing:
                logger.warning(f"Reminder {reminder.id} is being delivered, not rescheduling")
                return False
            if reminder.id in self._spent:
                logger.warning(f"Reminder {reminder.id} already fired, not rescheduling")
                return False

            stale = self._timers.pop(reminder.id, None)
            if stale is not None:
                logger.warning(f"Reminder {reminder.id} already had a timer, replacing it")
                self._disarm(stale)

            if delay > 0:
                timer = ReminderTimer(reminder=reminder)
                timer.handle = self._arm(delay, self._on_elapsed, timer)
                self._timers[reminder.id] = timer

        if delay <= 0:
            await self._expire(reminder)
            return False

        logger.debug(f"Armed reminder {reminder.id}, fires in {delay:.1f}s")
        return True

    async def disarm(
        self, reminder_id: int, owner_id: Optional[int] = None
    ) -> Optional[Reminder]:
        """
        Disarm a reminder's timer so it can never fire.

        Args:
            reminder_id: Reminder ID
            owner_id: If given, only disarm a timer belonging to this owner

        Returns:
            The disarmed reminder, or None if nothing armed matched
        """
        async with self._lock:
            timer = self._timers.get(reminder_id)
            if timer is None or timer.state is not TimerState.ARMED:
                return None
            if owner_id is not None and timer.reminder.owner_id != owner_id:
                return None

            del self._timers[reminder_id]
            self._disarm(timer)

        logger.info(f"Disarmed reminder {reminder_id}")
        return timer.reminder

    async def cancel(self, reminder_id: int, owner_id: Optional[int] = None) -> bool:
        """
        Cancel a reminder's timer.

        Returns:
            True if a timer was found and disarmed
        """
        return await self.disarm(reminder_id, owner_id) is not None

    async def reconcile(self, now: Optional[datetime] = None) -> int:
        """
        Rebuild timers from the store.

        Reminders that came due while the process was down are deleted
        without delivery.

        Args:
            now: Reference time (defaults to the clock)

        Returns:
            Number of timers armed
        """
        now = now or self._clock()

        expired = await self.store.delete_expired(now)
        if expired:
            track(
                "reminder_expired",
                "reminder",
                properties={"count": expired, "reason": "missed_while_offline"},
            )

        pending = await self.store.list_pending_as_of(now)
        armed = 0
        for reminder in pending:
            try:
                if await self.schedule(reminder):
                    armed += 1
            except StoreError as e:
                logger.error(f"Failed to reconcile reminder {reminder.id}: {e}", exc_info=True)

        logger.info(
            f"Reconciled reminders: {armed} armed, {expired} missed while offline"
        )
        return armed

    def now(self) -> datetime:
        """Current time according to the scheduler's clock."""
        return self._clock()

    def is_armed(self, reminder_id: int) -> bool:
        timer = self._timers.get(reminder_id)
        return timer is not None and timer.state is TimerState.ARMED

    def is_firing(self, reminder_id: int) -> bool:
        """Whether a delivery has claimed this reminder and not yet finished."""
        return reminder_id in self._firing

    def is_spent(self, reminder_id: int) -> bool:
        """Whether this reminder fired but its stored record is still there."""
        return reminder_id in self._spent

    def pending_count(self) -> int:
        return len(self._timers)

    async def join(self) -> None:
        """Wait for every in-flight delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """
        Disarm all timers and wait for in-flight deliveries.

        The store is left untouched; the next reconcile() re-arms everything.
        """
        async with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            for timer in timers:
                self._disarm(timer)

        await self.join()
        logger.info(f"Reminder scheduler stopped ({len(timers)} timer(s) disarmed)")

    # =========================================================================
    # Timer plumbing
    # =========================================================================

    def _arm(self, delay: float, callback: Callable[..., None], *args: Any) -> Any:
        if self._call_later is not None:
            return self._call_later(delay, callback, *args)
        return asyncio.get_running_loop().call_later(delay, callback, *args)

    @staticmethod
    def _disarm(timer: ReminderTimer) -> None:
        timer.handle.cancel()
        timer.state = TimerState.DISARMED

    def _on_elapsed(self, timer: ReminderTimer) -> None:
        """Timer callback: hand the fire sequence to a task."""
        task = asyncio.get_running_loop().create_task(self._fire(timer))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Reminder fire task crashed", exc_info=task.exception()
            )

    async def _fire(self, timer: ReminderTimer) -> None:
        """Deliver a reminder and delete it, unless it was disarmed first."""
        reminder = timer.reminder

        async with self._lock:
            if timer.state is not TimerState.ARMED or self._timers.get(reminder.id) is not timer:
                logger.debug(f"Reminder {reminder.id} elapsed after being disarmed, skipping")
                return

            # The loop timer runs on a monotonic clock; remind_at is wall time
            remaining = (reminder.remind_at - self._clock()).total_seconds()
            if remaining > 0:
                logger.info(f"Reminder {reminder.id} elapsed {remaining:.1f}s early, re-arming")
                timer.handle = self._arm(remaining, self._on_elapsed, timer)
                return

            timer.state = TimerState.FIRING
            del self._timers[reminder.id]
            self._firing.add(reminder.id)

        try:
            delivered = await self._deliver(reminder)
            try:
                await self.store.delete(reminder.id)
            except StoreError as e:
                logger.error(f"Failed to delete fired reminder {reminder.id}: {e}", exc_info=True)
                async with self._lock:
                    self._spent.add(reminder.id)

            track(
                "reminder_delivered" if delivered else "reminder_delivery_failed",
                "reminder",
                owner_id=reminder.owner_id,
                properties={"reminder_id": reminder.id},
            )
        finally:
            async with self._lock:
                self._firing.discard(reminder.id)

    async def _deliver(self, reminder: Reminder) -> bool:
        try:
            delivered = await self.delivery.deliver(
                reminder.owner_id, reminder.id, reminder.text
            )
        except Exception as e:
            logger.error(f"Failed to deliver reminder {reminder.id}: {e}", exc_info=True)
            return False

        if not delivered:
            logger.warning(f"Reminder {reminder.id} was not delivered to {reminder.owner_id}, dropping it")
        return bool(delivered)

    async def _expire(self, reminder: Reminder) -> None:
        """Delete a reminder whose time has already passed, without delivering it."""
        logger.info(f"Reminder {reminder.id} expired at {reminder.remind_at}, deleting without delivery")
        await self.store.delete(reminder.id)
        track(
            "reminder_expired",
            "reminder",
            owner_id=reminder.owner_id,
            properties={"reminder_id": reminder.id, "reason": "past_due"},
        )
