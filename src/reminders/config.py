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
Reminder Configuration

Values can be overridden via environment variables (a .env file is read
if present).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass
class ReminderConfig:
    """Configuration for the reminder system."""

    database_url: Optional[str] = None

    # asyncpg pool sizing
    pool_min_size: int = 1
    pool_max_size: int = 5

    # 0 = unlimited
    max_pending_per_owner: int = 0

    analytics_enabled: bool = True

    @classmethod
    def from_env(cls) -> "ReminderConfig":
        """Create config from environment variables with defaults."""
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            pool_min_size=int(os.getenv("REMINDER_POOL_MIN", "1")),
            pool_max_size=int(os.getenv("REMINDER_POOL_MAX", "5")),
            max_pending_per_owner=int(os.getenv("REMINDER_MAX_PENDING", "0")),
            analytics_enabled=os.getenv("ANALYTICS_ENABLED", "true").lower() == "true",
        )
