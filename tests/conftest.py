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

"""Shared fixtures: in-memory store, manual clock and timers, recording delivery."""

import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import analytics
from reminders.errors import StoreError
from reminders.manager import ReminderManager
from reminders.scheduler import ReminderScheduler
from reminders.store import Reminder

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=pytz.UTC)


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ManualHandle:
    def __init__(self, when: datetime, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Stands in for loop.call_later; timers run when the clock is advanced."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.handles: list[ManualHandle] = []

    def call_later(self, delay: float, callback, *args) -> ManualHandle:
        handle = ManualHandle(self.clock() + timedelta(seconds=delay), callback, args)
        self.handles.append(handle)
        return handle

    def live(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds: float) -> None:
        self.clock.advance(seconds)
        due = sorted(
            (h for h in self.live() if h.when <= self.clock()),
            key=lambda h: h.when,
        )
        for handle in due:
            handle.fired = True
            handle.callback(*handle.args)


class FakeStore:
    """In-memory ReminderStore with the same async interface."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.rows: dict[int, Reminder] = {}
        self.next_id = 1
        self.failing: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise StoreError(f"{operation} failed")

    def add(self, owner_id: int, text: str, remind_at: datetime) -> Reminder:
        """Insert directly, bypassing the manager and scheduler."""
        reminder = Reminder(
            id=self.next_id,
            owner_id=owner_id,
            text=text,
            remind_at=remind_at,
            created_at=self.clock(),
        )
        self.rows[reminder.id] = reminder
        self.next_id += 1
        return reminder

    async def init_schema(self) -> None:
        self._check("init_schema")

    async def insert(self, owner_id: int, text: str, remind_at: datetime) -> Reminder:
        self._check("insert")
        return self.add(owner_id, text, remind_at)

    async def insert_capped(
        self, owner_id: int, text: str, remind_at: datetime, limit: int
    ) -> Optional[Reminder]:
        self._check("insert")
        if await self.count_by_owner(owner_id) >= limit:
            return None
        return self.add(owner_id, text, remind_at)

    async def get(self, reminder_id: int) -> Optional[Reminder]:
        self._check("get")
        return self.rows.get(reminder_id)

    async def list_by_owner(self, owner_id: int) -> list[Reminder]:
        self._check("list_by_owner")
        return sorted(
            (r for r in self.rows.values() if r.owner_id == owner_id),
            key=lambda r: (r.remind_at, r.id),
        )

    async def count_by_owner(self, owner_id: int) -> int:
        self._check("count_by_owner")
        return sum(1 for r in self.rows.values() if r.owner_id == owner_id)

    async def delete_owned(self, reminder_id: int, owner_id: int) -> bool:
        self._check("delete_owned")
        reminder = self.rows.get(reminder_id)
        if reminder is None or reminder.owner_id != owner_id:
            return False
        del self.rows[reminder_id]
        return True

    async def delete(self, reminder_id: int) -> None:
        self._check("delete")
        self.rows.pop(reminder_id, None)

    async def delete_expired(self, now: datetime) -> int:
        self._check("delete_expired")
        expired = [rid for rid, r in self.rows.items() if r.remind_at <= now]
        for rid in expired:
            del self.rows[rid]
        return len(expired)

    async def list_pending_as_of(self, now: datetime) -> list[Reminder]:
        self._check("list_pending_as_of")
        return sorted(
            (r for r in self.rows.values() if r.remind_at > now),
            key=lambda r: r.remind_at,
        )


class RecordingDelivery:
    """Records deliver() calls; can fail, raise, or hold until released."""

    def __init__(self):
        self.calls: list[tuple[int, int, str]] = []
        self.result = True
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def deliver(self, owner_id: int, reminder_id: int, text: str) -> bool:
        self.calls.append((owner_id, reminder_id, text))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def no_analytics(monkeypatch):
    """Keep analytics from touching a database during tests."""
    monkeypatch.setattr(analytics, "_enabled", False)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def timers(clock):
    return ManualTimers(clock)


@pytest.fixture
def store(clock):
    return FakeStore(clock)


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def scheduler(store, delivery, clock, timers):
    return ReminderScheduler(store, delivery, clock=clock, call_later=timers.call_later)


@pytest.fixture
def manager(store, scheduler):
    return ReminderManager(store, scheduler)
