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
Reminder Errors

Exceptions raised across the reminder package. The command layer catches
these and turns them into user-facing replies.
"""


class ReminderError(Exception):
    """Base class for reminder failures surfaced to the requester."""

    pass


class DurationParseError(ReminderError):
    """Raised when a duration expression cannot be understood."""

    def __init__(self, duration_text: str):
        self.duration_text = duration_text
        super().__init__(f"Could not understand duration: '{duration_text}'")


class EmptyReminderError(ReminderError):
    """Raised when the reminder note is blank."""

    pass


class TooManyRemindersError(ReminderError):
    """Raised when an owner already has the maximum number of pending reminders."""

    def __init__(self, owner_id: int, limit: int):
        self.owner_id = owner_id
        self.limit = limit
        super().__init__(f"Owner {owner_id} already has {limit} pending reminders")


class StoreError(ReminderError):
    """Raised when the reminder store cannot read or write."""

    pass
