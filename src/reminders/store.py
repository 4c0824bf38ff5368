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
Reminder Store Module

Durable storage for reminders. The store is the single source of truth:
the scheduler's timers are rebuilt from it on every start.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import asyncpg

from .errors import StoreError

logger = logging.getLogger("remindbot.reminders.store")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS reminders (
    id BIGSERIAL PRIMARY KEY,
    owner_id BIGINT NOT NULL,
    text TEXT NOT NULL CHECK (text <> ''),
    remind_at TIMESTAMPTZ NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_reminders_owner_remind_at
    ON reminders (owner_id, remind_at);
CREATE INDEX IF NOT EXISTS idx_reminders_remind_at
    ON reminders (remind_at);
"""

# Failures that mean the database could not be reached or refused the query
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


@dataclass(frozen=True)
class Reminder:
    """A persisted reminder."""

    id: int
    owner_id: int
    text: str
    remind_at: datetime  # UTC, absolute
    created_at: datetime

    @classmethod
    def from_row(cls, row) -> "Reminder":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            text=row["text"],
            remind_at=row["remind_at"],
            created_at=row["created_at"],
        )


class ReminderStore:
    """
    PostgreSQL-backed reminder storage.

    Every method is a single-statement, single-record (or single-predicate)
    operation, so no explicit transactions are needed.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        """
        Initialize the reminder store.

        Args:
            db_pool: asyncpg connection pool
        """
        self.db = db_pool

    async def init_schema(self) -> None:
        """Create the reminders table and indexes if they don't exist."""
        try:
            await self.db.execute(SCHEMA_SQL)
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to initialize reminder schema: {e}") from e
        logger.info("Reminder schema ready")

    async def insert(self, owner_id: int, text: str, remind_at: datetime) -> Reminder:
        """
        Persist a new reminder.

        The row is committed when this returns, so the caller may schedule
        it immediately.

        Args:
            owner_id: Chat the reminder belongs to
            text: Note to deliver
            remind_at: Absolute UTC delivery time

        Returns:
            The stored reminder with its assigned ID
        """
        try:
            row = await self.db.fetchrow(
                """
                INSERT INTO reminders (owner_id, text, remind_at)
                VALUES ($1, $2, $3)
                RETURNING id, owner_id, text, remind_at, created_at
                """,
                owner_id,
                text,
                remind_at,
            )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to save reminder for owner {owner_id}: {e}") from e

        reminder = Reminder.from_row(row)
        logger.info(
            f"Stored reminder {reminder.id} for owner {owner_id}: remind_at={remind_at}"
        )
        return reminder

    async def insert_capped(
        self, owner_id: int, text: str, remind_at: datetime, limit: int
    ) -> Optional[Reminder]:
        """
        Persist a new reminder unless the owner already has `limit` stored.

        Count and insert run in one transaction holding a per-owner advisory
        lock, so concurrent creates for the same owner cannot overshoot.

        Returns:
            The stored reminder, or None if the owner is at the limit
        """
        try:
            async with self.db.acquire() as conn:
                async with conn.transaction():
                    await conn.execute("SELECT pg_advisory_xact_lock($1)", owner_id)
                    count = await conn.fetchval(
                        "SELECT COUNT(*) FROM reminders WHERE owner_id = $1",
                        owner_id,
                    )
                    if count >= limit:
                        logger.info(f"Owner {owner_id} is at the reminder limit ({limit})")
                        return None
                    row = await conn.fetchrow(
                        """
                        INSERT INTO reminders (owner_id, text, remind_at)
                        VALUES ($1, $2, $3)
                        RETURNING id, owner_id, text, remind_at, created_at
                        """,
                        owner_id,
                        text,
                        remind_at,
                    )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to save reminder for owner {owner_id}: {e}") from e

        reminder = Reminder.from_row(row)
        logger.info(
            f"Stored reminder {reminder.id} for owner {owner_id}: remind_at={remind_at}"
        )
        return reminder

    async def get(self, reminder_id: int) -> Optional[Reminder]:
        """
        Get a reminder by ID.

        Returns:
            Reminder or None if not found
        """
        try:
            row = await self.db.fetchrow(
                """
                SELECT id, owner_id, text, remind_at, created_at
                FROM reminders
                WHERE id = $1
                """,
                reminder_id,
            )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to load reminder {reminder_id}: {e}") from e

        return Reminder.from_row(row) if row else None

    async def list_by_owner(self, owner_id: int) -> list[Reminder]:
        """
        List an owner's reminders, soonest first.

        Args:
            owner_id: Chat whose reminders to list

        Returns:
            Reminders ordered by remind_at ascending (empty if none)
        """
        try:
            rows = await self.db.fetch(
                """
                SELECT id, owner_id, text, remind_at, created_at
                FROM reminders
                WHERE owner_id = $1
                ORDER BY remind_at ASC, id ASC
                """,
                owner_id,
            )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to list reminders for owner {owner_id}: {e}") from e

        return [Reminder.from_row(row) for row in rows]

    async def count_by_owner(self, owner_id: int) -> int:
        """Count an owner's stored reminders."""
        try:
            return await self.db.fetchval(
                "SELECT COUNT(*) FROM reminders WHERE owner_id = $1",
                owner_id,
            )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to count reminders for owner {owner_id}: {e}") from e

    async def delete_owned(self, reminder_id: int, owner_id: int) -> bool:
        """
        Delete a reminder if the owner matches.

        Args:
            reminder_id: Reminder ID
            owner_id: Chat ID (for ownership check)

        Returns:
            True if deleted, False if not found or not owned
        """
        try:
            result = await self.db.execute(
                """
                DELETE FROM reminders
                WHERE id = $1 AND owner_id = $2
                """,
                reminder_id,
                owner_id,
            )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to delete reminder {reminder_id}: {e}") from e

        deleted = result == "DELETE 1"
        if deleted:
            logger.info(f"Deleted reminder {reminder_id} for owner {owner_id}")
        return deleted

    async def delete(self, reminder_id: int) -> None:
        """
        Delete a reminder without an ownership check.

        Used by the scheduler once it has fired or expired a reminder.
        """
        try:
            await self.db.execute("DELETE FROM reminders WHERE id = $1", reminder_id)
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to delete reminder {reminder_id}: {e}") from e

    async def delete_expired(self, now: datetime) -> int:
        """
        Delete every reminder whose delivery time is not after `now`.

        Returns:
            Number of reminders removed
        """
        try:
            result = await self.db.execute(
                "DELETE FROM reminders WHERE remind_at <= $1",
                now,
            )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to delete expired reminders: {e}") from e

        # Status looks like "DELETE 3"
        deleted = int(result.split()[-1])
        if deleted:
            logger.info(f"Deleted {deleted} reminder(s) that expired before {now}")
        return deleted

    async def list_pending_as_of(self, now: datetime) -> list[Reminder]:
        """
        List every reminder still due after `now`.

        Returns:
            Reminders ordered by remind_at ascending
        """
        try:
            rows = await self.db.fetch(
                """
                SELECT id, owner_id, text, remind_at, created_at
                FROM reminders
                WHERE remind_at > $1
                ORDER BY remind_at ASC
                """,
                now,
            )
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to load pending reminders: {e}") from e

        return [Reminder.from_row(row) for row in rows]
