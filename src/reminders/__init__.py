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
Reminders Package

Persistent one-shot reminders: "<note> через <duration>" is stored,
armed as a timer, and delivered back to the owning chat when it comes due.
"""

from .config import ReminderConfig
from .delivery import DiscordDelivery, ReminderDelivery, format_notification
from .duration import (
    MAX_DURATION_SECONDS,
    format_duration,
    parse_duration,
    split_reminder_request,
)
from .errors import (
    DurationParseError,
    EmptyReminderError,
    ReminderError,
    StoreError,
    TooManyRemindersError,
)
from .manager import (
    CancelResult,
    CreatedReminder,
    PendingReminder,
    ReminderManager,
    setup_reminders,
)
from .scheduler import ReminderScheduler, ReminderTimer, TimerState
from .store import Reminder, ReminderStore

__all__ = [
    "ReminderConfig",
    "DiscordDelivery",
    "ReminderDelivery",
    "format_notification",
    "MAX_DURATION_SECONDS",
    "format_duration",
    "parse_duration",
    "split_reminder_request",
    "DurationParseError",
    "EmptyReminderError",
    "ReminderError",
    "StoreError",
    "TooManyRemindersError",
    "CancelResult",
    "CreatedReminder",
    "PendingReminder",
    "ReminderManager",
    "setup_reminders",
    "ReminderScheduler",
    "ReminderTimer",
    "TimerState",
    "Reminder",
    "ReminderStore",
]
