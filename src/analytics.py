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
Lightweight analytics tracking for remindbot.

Usage:
    from analytics import track, track_async

    # Synchronous (fire-and-forget, uses background task)
    track("reminder_created", "reminder", owner_id=123, properties={"seconds": 300})

    # Async (when you need to await completion)
    await track_async("reminder_cancelled", "reminder", owner_id=123)
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("remindbot.analytics")

# Module-level connection pool (set by configure() or created lazily)
_pool: Optional[asyncpg.Pool] = None
_owns_pool: bool = False
_enabled: bool = os.getenv("ANALYTICS_ENABLED", "true").lower() == "true"

# Background tasks are held here so they aren't garbage collected mid-flight
_pending: set[asyncio.Task] = set()

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS analytics_events (
    id BIGSERIAL PRIMARY KEY,
    event_name TEXT NOT NULL,
    event_category TEXT NOT NULL,
    owner_id BIGINT,
    properties JSONB NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


def configure(pool: Optional[asyncpg.Pool], enabled: Optional[bool] = None) -> None:
    """
    Share an existing connection pool with analytics.

    Args:
        pool: Pool to write events through (None to disable writes)
        enabled: Override ANALYTICS_ENABLED
    """
    global _pool, _owns_pool, _enabled
    _pool = pool
    _owns_pool = False
    if enabled is not None:
        _enabled = enabled


async def init_schema(pool: asyncpg.Pool) -> None:
    """Create the analytics_events table if it doesn't exist."""
    await pool.execute(SCHEMA_SQL)


async def _get_pool() -> Optional[asyncpg.Pool]:
    """Get the configured pool, or create one from DATABASE_URL."""
    global _pool, _owns_pool
    if _pool is None and _enabled:
        database_url = os.getenv("DATABASE_URL")
        if database_url:
            try:
                _pool = await asyncpg.create_pool(database_url, min_size=1, max_size=2)
                _owns_pool = True
            except (asyncpg.PostgresError, OSError) as e:
                logger.warning(f"Analytics pool creation failed: {e}")
                return None
    return _pool


async def track_async(
    event_name: str,
    event_category: str,
    owner_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Track an event asynchronously.

    Args:
        event_name: Specific event identifier (e.g., "reminder_delivered")
        event_category: One of: reminder, error, system
        owner_id: Chat the event relates to (optional)
        properties: Additional event data as key-value pairs

    Returns:
        True if event was recorded, False otherwise
    """
    if not _enabled:
        return False

    pool = await _get_pool()
    if pool is None:
        return False

    try:
        await pool.execute(
            """
            INSERT INTO analytics_events
                (event_name, event_category, owner_id, properties)
            VALUES ($1, $2, $3, $4)
            """,
            event_name,
            event_category,
            owner_id,
            json.dumps(properties or {}),
        )
        return True
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.debug(f"Analytics tracking failed: {e}")
        return False


def track(
    event_name: str,
    event_category: str,
    owner_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> None:
    """
    Track an event (fire-and-forget).

    Creates a background task to record the event without blocking.
    Safe to call from sync or async contexts.
    """
    if not _enabled:
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running loop - skip tracking
        return

    task = loop.create_task(track_async(event_name, event_category, owner_id, properties))
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def shutdown() -> None:
    """Flush pending events and close the pool if analytics created it."""
    global _pool, _owns_pool
    if _pending:
        await asyncio.gather(*_pending, return_exceptions=True)
    if _pool is not None and _owns_pool:
        await _pool.close()
    _pool = None
    _owns_pool = False
