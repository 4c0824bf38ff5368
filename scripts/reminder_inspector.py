"""
Reminder Inspector CLI

Debug tool for inspecting stored reminders.

Usage:
    # List pending reminders (all owners)
    python scripts/reminder_inspector.py list

    # List one chat's reminders
    python scripts/reminder_inspector.py list --owner-id 123456789

    # Inspect a specific reminder
    python scripts/reminder_inspector.py inspect --reminder-id 42

    # Show reminder statistics
    python scripts/reminder_inspector.py stats

    # Delete reminders whose time has already passed (what startup does)
    python scripts/reminder_inspector.py purge-expired
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

import asyncpg
import pytz
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders import ReminderStore, format_duration

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def format_datetime(dt: datetime) -> str:
    """Format datetime for display."""
    if dt is None:
        return "Never"
    return dt.strftime("%Y-%m-%d %H:%M:%S %Z")


def truncate(text: str, max_len: int = 80) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


async def list_reminders(conn: asyncpg.Connection, owner_id: int = None, limit: int = 50):
    """List reminders, soonest first."""
    if owner_id:
        rows = await conn.fetch(
            """
            SELECT id, owner_id, text, remind_at, created_at
            FROM reminders
            WHERE owner_id = $1
            ORDER BY remind_at ASC
            LIMIT $2
            """,
            owner_id,
            limit,
        )
    else:
        rows = await conn.fetch(
            """
            SELECT id, owner_id, text, remind_at, created_at
            FROM reminders
            ORDER BY remind_at ASC
            LIMIT $1
            """,
            limit,
        )

    if not rows:
        logger.info("No reminders found matching the criteria.")
        return

    now = datetime.now(pytz.UTC)
    logger.info(f"\n{'='*80}")
    logger.info(f"Found {len(rows)} reminders")
    if owner_id:
        total = await ReminderStore(conn).count_by_owner(owner_id)
        logger.info(f"Owner {owner_id} has {total} stored reminder(s)")
    logger.info(f"{'='*80}\n")

    for row in rows:
        remaining = (row["remind_at"] - now).total_seconds()
        due = f"in {format_duration(remaining)}" if remaining > 0 else "OVERDUE"
        logger.info(f"[{row['id']}] owner {row['owner_id']} | {due}")
        logger.info(f"    {truncate(row['text'], 70)}")
        logger.info("")


async def inspect_reminder(conn: asyncpg.Connection, reminder_id: int):
    """Show every field of one reminder."""
    store = ReminderStore(conn)
    reminder = await store.get(reminder_id)

    if reminder is None:
        logger.error(f"Reminder {reminder_id} not found")
        return

    logger.info(f"\n{'='*80}")
    logger.info(f"Reminder {reminder.id}")
    logger.info(f"{'='*80}")
    logger.info(f"Owner:     {reminder.owner_id}")
    logger.info(f"Text:      {reminder.text}")
    logger.info(f"Remind at: {format_datetime(reminder.remind_at)}")
    logger.info(f"Created:   {format_datetime(reminder.created_at)}")


async def show_stats(conn: asyncpg.Connection):
    """Show reminder statistics."""
    now = datetime.now(pytz.UTC)

    total = await conn.fetchval("SELECT COUNT(*) FROM reminders")
    overdue = await conn.fetchval(
        "SELECT COUNT(*) FROM reminders WHERE remind_at <= $1", now
    )
    next_due = await conn.fetchval(
        "SELECT MIN(remind_at) FROM reminders WHERE remind_at > $1", now
    )
    owners = await conn.fetch(
        """
        SELECT owner_id, COUNT(*) as count
        FROM reminders
        GROUP BY owner_id
        ORDER BY count DESC
        LIMIT 10
        """
    )

    logger.info(f"\n{'='*80}")
    logger.info("Reminder Statistics")
    logger.info(f"{'='*80}\n")
    logger.info(f"Total reminders: {total}")
    logger.info(f"Overdue (will be dropped at next startup): {overdue}")
    logger.info(f"Next due: {format_datetime(next_due)}")

    if owners:
        logger.info("\nTop owners:")
        for row in owners:
            logger.info(f"  {row['owner_id']}: {row['count']}")


async def purge_expired(conn: asyncpg.Connection):
    """Delete every reminder whose time has passed."""
    store = ReminderStore(conn)
    deleted = await store.delete_expired(datetime.now(pytz.UTC))
    logger.info(f"Deleted {deleted} expired reminder(s)")


async def main_async(args):
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        logger.error("DATABASE_URL environment variable not set")
        sys.exit(1)

    conn = await asyncpg.connect(db_url)

    try:
        if args.command == "list":
            await list_reminders(conn, owner_id=args.owner_id, limit=args.limit)
        elif args.command == "inspect":
            await inspect_reminder(conn, args.reminder_id)
        elif args.command == "stats":
            await show_stats(conn)
        elif args.command == "purge-expired":
            await purge_expired(conn)
    finally:
        await conn.close()


def main():
    parser = argparse.ArgumentParser(
        description="Reminder Inspector CLI - Debug and query stored reminders"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # List command
    list_parser = subparsers.add_parser("list", help="List reminders")
    list_parser.add_argument("--owner-id", type=int, help="Filter by owner (chat) ID")
    list_parser.add_argument(
        "--limit", type=int, default=50, help="Max results (default: 50)"
    )

    # Inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Inspect a specific reminder")
    inspect_parser.add_argument("--reminder-id", type=int, required=True, help="Reminder ID")

    # Stats command
    subparsers.add_parser("stats", help="Show reminder statistics")

    # Purge command
    subparsers.add_parser("purge-expired", help="Delete reminders that are already due")

    args = parser.parse_args()
    asyncio.run(main_async(args))


if __name__ == "__main__":
    main()
