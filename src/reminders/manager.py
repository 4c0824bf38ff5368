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
Reminder Manager Module

The entry point the command layer talks to: create, list and cancel
reminders, plus the one-time startup that rebuilds timers from storage.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

import asyncpg

import analytics
from analytics import track

from .config import ReminderConfig
from .delivery import ReminderDelivery
from .duration import parse_duration
from .errors import (
    DurationParseError,
    EmptyReminderError,
    StoreError,
    TooManyRemindersError,
)
from .scheduler import ReminderScheduler
from .store import DRIVER_ERRORS, ReminderStore

logger = logging.getLogger("remindbot.reminders.manager")


class CancelResult(str, Enum):
    """Outcome of a cancel request."""

    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class CreatedReminder:
    """Result of a successful create request."""

    id: int
    seconds: int
    remind_at: datetime


@dataclass(frozen=True)
class PendingReminder:
    """A reminder as shown in an owner's list."""

    id: int
    text: str
    seconds_remaining: float


class ReminderManager:
    """
    Coordinates the reminder store and scheduler.

    A reminder is always persisted before its timer is armed, so a timer
    never exists for a reminder the store doesn't know about.
    """

    def __init__(
        self,
        store: ReminderStore,
        scheduler: ReminderScheduler,
        max_pending_per_owner: int = 0,
    ):
        """
        Initialize the reminder manager.

        Args:
            store: Reminder store
            scheduler: Scheduler arming delivery timers
            max_pending_per_owner: Cap on stored reminders per owner (0 = no cap)
        """
        self.store = store
        self.scheduler = scheduler
        self.max_pending_per_owner = max_pending_per_owner
        self.db_pool: Optional[asyncpg.Pool] = None  # set when the manager owns the pool
        self._started = False

    def _require_started(self) -> None:
        if not self._started:
            raise RuntimeError("ReminderManager.startup() must run before handling requests")

    async def startup(self) -> int:
        """
        Rebuild timers from storage. Must run exactly once, before any
        create or cancel request.

        Returns:
            Number of reminders armed
        """
        if self._started:
            raise RuntimeError("ReminderManager.startup() already ran")

        armed = await self.scheduler.reconcile(self.scheduler.now())
        self._started = True
        logger.info(f"Reminder manager started with {armed} pending reminder(s)")
        return armed

    async def create_reminder(
        self, owner_id: int, text: str, duration_text: str
    ) -> CreatedReminder:
        """
        Create a reminder that fires after the given duration.

        Args:
            owner_id: Chat the reminder belongs to
            text: Note to deliver
            duration_text: Duration expression, e.g. "5 минут"

        Returns:
            CreatedReminder with the new ID and the parsed duration

        Raises:
            EmptyReminderError: If the note is blank
            DurationParseError: If the duration isn't understood
            TooManyRemindersError: If the owner hit max_pending_per_owner
            StoreError: If the reminder couldn't be saved
        """
        self._require_started()

        text = (text or "").strip()
        if not text:
            raise EmptyReminderError("Reminder text is empty")

        seconds = parse_duration(duration_text)
        if seconds is None:
            raise DurationParseError(duration_text)

        remind_at = self.scheduler.now() + timedelta(seconds=seconds)
        if self.max_pending_per_owner:
            reminder = await self.store.insert_capped(
                owner_id, text, remind_at, self.max_pending_per_owner
            )
            if reminder is None:
                raise TooManyRemindersError(owner_id, self.max_pending_per_owner)
        else:
            reminder = await self.store.insert(owner_id, text, remind_at)
        await self.scheduler.schedule(reminder)

        track(
            "reminder_created",
            "reminder",
            owner_id=owner_id,
            properties={"reminder_id": reminder.id, "seconds": seconds},
        )
        return CreatedReminder(id=reminder.id, seconds=seconds, remind_at=remind_at)

    async def list_reminders(self, owner_id: int) -> list[PendingReminder]:
        """
        List an owner's pending reminders, soonest first.

        Returns:
            PendingReminder entries (empty if the owner has none)
        """
        now = self.scheduler.now()
        reminders = await self.store.list_by_owner(owner_id)
        return [
            PendingReminder(
                id=r.id,
                text=r.text,
                seconds_remaining=max(0.0, (r.remind_at - now).total_seconds()),
            )
            for r in reminders
            if not self.scheduler.is_spent(r.id)
        ]

    async def cancel_reminder(self, owner_id: int, reminder_id: int) -> CancelResult:
        """
        Cancel one of an owner's reminders.

        If the reminder's timer has already started delivering, the cancel
        loses and NOT_FOUND is returned.

        Args:
            owner_id: Chat ID (for ownership check)
            reminder_id: Reminder ID

        Returns:
            CANCELLED, or NOT_FOUND if missing, not owned, or already firing
        """
        self._require_started()

        disarmed = await self.scheduler.disarm(reminder_id, owner_id)
        if disarmed is None and (
            self.scheduler.is_firing(reminder_id) or self.scheduler.is_spent(reminder_id)
        ):
            logger.info(f"Cancel of reminder {reminder_id} lost to delivery")
            return CancelResult.NOT_FOUND

        try:
            deleted = await self.store.delete_owned(reminder_id, owner_id)
        except StoreError:
            if disarmed is not None:
                # Still stored, so it must stay scheduled
                await self.scheduler.schedule(disarmed)
            raise

        if not deleted:
            if disarmed is not None:
                logger.warning(f"Reminder {reminder_id} had a timer but no stored record")
            return CancelResult.NOT_FOUND

        track(
            "reminder_cancelled",
            "reminder",
            owner_id=owner_id,
            properties={"reminder_id": reminder_id},
        )
        return CancelResult.CANCELLED

    async def close(self) -> None:
        """Stop all timers and release the pool if this manager opened it."""
        await self.scheduler.shutdown()
        await analytics.shutdown()
        if self.db_pool is not None:
            await self.db_pool.close()
            self.db_pool = None


async def setup_reminders(
    delivery: ReminderDelivery,
    config: Optional[ReminderConfig] = None,
) -> ReminderManager:
    """
    Open storage, rebuild timers and return a ready manager.

    Any failure here is fatal: the caller must not start accepting requests.

    Args:
        delivery: Transport used when reminders fire
        config: Reminder configuration (defaults to ReminderConfig.from_env())

    Returns:
        A started ReminderManager that owns its connection pool

    Raises:
        StoreError: If the database can't be reached or initialized
    """
    config = config or ReminderConfig.from_env()
    if not config.database_url:
        raise StoreError("DATABASE_URL is not set")

    try:
        db_pool = await asyncpg.create_pool(
            config.database_url,
            min_size=config.pool_min_size,
            max_size=config.pool_max_size,
        )
    except DRIVER_ERRORS as e:
        raise StoreError(f"Failed to connect to reminder database: {e}") from e

    store = ReminderStore(db_pool)
    try:
        await store.init_schema()
    except StoreError:
        await db_pool.close()
        raise

    analytics.configure(db_pool, enabled=config.analytics_enabled)
    if config.analytics_enabled:
        try:
            await analytics.init_schema(db_pool)
        except DRIVER_ERRORS as e:
            logger.warning(f"Analytics disabled, schema setup failed: {e}")
            analytics.configure(None, enabled=False)

    scheduler = ReminderScheduler(store, delivery)
    manager = ReminderManager(
        store, scheduler, max_pending_per_owner=config.max_pending_per_owner
    )
    manager.db_pool = db_pool

    try:
        await manager.startup()
    except StoreError:
        await manager.close()
        raise
    return manager
