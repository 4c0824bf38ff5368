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
Duration Module

Parses short duration expressions ("5 минут", "2 часа", "30 сек") into
seconds and formats second counts back into a compact human-readable form.
"""

import logging
import math
import re
from typing import Optional

logger = logging.getLogger("remindbot.reminders.duration")

SECONDS_PER_UNIT = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
}

# Closed vocabulary of unit spellings, mapped to their unit
UNIT_ALIASES = {
    "с": "seconds",
    "сек": "seconds",
    "сек.": "seconds",
    "секунда": "seconds",
    "секунду": "seconds",
    "секунды": "seconds",
    "секунд": "seconds",
    "м": "minutes",
    "мин": "minutes",
    "мин.": "minutes",
    "минута": "minutes",
    "минуту": "minutes",
    "минуты": "minutes",
    "минут": "minutes",
    "ч": "hours",
    "ч.": "hours",
    "час": "hours",
    "часа": "hours",
    "часов": "hours",
}

# Upper bound for a single duration; keeps now + duration representable
MAX_DURATION_SECONDS = 2**31 - 1

REQUEST_SEPARATOR = " через "

_DURATION_PATTERN = re.compile(r"^([0-9]+)\s*(\S+)$")


def parse_duration(text: str) -> Optional[int]:
    """
    Parse a duration expression into a whole number of seconds.

    Args:
        text: Expression like "5 минут", "2ч" or "30 секунд"

    Returns:
        Number of seconds, or None if the expression is not understood
    """
    if not isinstance(text, str):
        return None

    match = _DURATION_PATTERN.match(text.strip().lower())
    if not match:
        return None

    unit = UNIT_ALIASES.get(match.group(2))
    if unit is None:
        return None

    # Reject huge literals before int() has to convert them
    digits = match.group(1).lstrip("0") or "0"
    if len(digits) > len(str(MAX_DURATION_SECONDS)):
        return None

    seconds = int(digits) * SECONDS_PER_UNIT[unit]
    if seconds <= 0 or seconds > MAX_DURATION_SECONDS:
        return None

    return seconds


def format_duration(seconds: float) -> str:
    """
    Format a number of seconds as a short approximation.

    Values are floored at every step: 119 seconds is "1 мин",
    3660 seconds is "1 ч 1 мин" and 7200 seconds is "2 ч".

    Args:
        seconds: Duration in seconds (negative or non-finite values count as zero)

    Returns:
        Human-readable duration
    """
    if not math.isfinite(seconds):
        seconds = 0
    seconds = max(0, int(seconds))

    if seconds < 60:
        return f"{seconds} сек"
    if seconds < 3600:
        return f"{seconds // 60} мин"

    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if minutes:
        return f"{hours} ч {minutes} мин"
    return f"{hours} ч"


def split_reminder_request(raw: str) -> Optional[tuple[str, str]]:
    """
    Split a free-text request into its note and duration parts.

    The last " через " wins, so notes may contain the word themselves:
    "узнать через кого заказать через 2 часа" -> ("узнать через кого заказать", "2 часа").

    Args:
        raw: Request text, e.g. "купить молоко через 5 минут"

    Returns:
        Tuple of (note, duration_text), or None if either part is missing
    """
    if not isinstance(raw, str):
        return None

    note, sep, duration_text = raw.rpartition(REQUEST_SEPARATOR)
    if not sep:
        return None

    note = note.strip()
    duration_text = duration_text.strip()
    if not note or not duration_text:
        return None

    return note, duration_text
