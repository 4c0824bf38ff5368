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
Reminder Delivery Module

The boundary between the scheduler and the chat transport. The scheduler
only knows the ReminderDelivery protocol; DiscordDelivery is the adapter
used when running as a Discord bot.
"""

import logging
from typing import TYPE_CHECKING, Protocol

import discord

if TYPE_CHECKING:
    from discord.ext import commands

logger = logging.getLogger("remindbot.reminders.delivery")


class ReminderDelivery(Protocol):
    """Something that can notify a chat that its reminder is due."""

    async def deliver(self, owner_id: int, reminder_id: int, text: str) -> bool:
        """Send the reminder; return True on success, False on failure."""
        ...


def format_notification(reminder_id: int, text: str) -> str:
    """Build the message shown when a reminder fires."""
    return f"⏰ НАПОМИНАНИЕ #{reminder_id}\n📝 {text}"


class DiscordDelivery:
    """
    Delivers reminders to Discord channels.

    The owner ID is the channel (or DM channel) the reminder was created in.
    """

    def __init__(self, bot: "commands.Bot"):
        self.bot = bot

    async def deliver(self, owner_id: int, reminder_id: int, text: str) -> bool:
        channel = self.bot.get_channel(owner_id)
        try:
            if channel is None:
                channel = await self.bot.fetch_channel(owner_id)
            await channel.send(format_notification(reminder_id, text))
        except discord.NotFound:
            logger.warning(f"Reminder {reminder_id}: channel {owner_id} not found (deleted)")
            return False
        except discord.Forbidden:
            logger.warning(f"Reminder {reminder_id}: no access to channel {owner_id}")
            return False
        except discord.HTTPException as e:
            logger.warning(f"Reminder {reminder_id}: send to channel {owner_id} failed: {e}")
            return False

        logger.info(f"Delivered reminder {reminder_id} to channel {owner_id}")
        return True
