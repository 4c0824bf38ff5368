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

"""Tests for duration parsing and formatting."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.duration import (
    MAX_DURATION_SECONDS,
    UNIT_ALIASES,
    SECONDS_PER_UNIT,
    format_duration,
    parse_duration,
    split_reminder_request,
)


class TestParseDuration:
    """Test the duration grammar."""

    def test_original_examples(self):
        assert parse_duration("5 минут") == 300
        assert parse_duration("2 часа") == 7200
        assert parse_duration("30 секунд") == 30

    @pytest.mark.parametrize("unit", sorted(UNIT_ALIASES))
    @pytest.mark.parametrize("n", [1, 7, 42])
    def test_every_unit_spelling(self, n, unit):
        expected = n * SECONDS_PER_UNIT[UNIT_ALIASES[unit]]
        assert parse_duration(f"{n} {unit}") == expected

    def test_whitespace_between_number_and_unit_is_optional(self):
        assert parse_duration("5мин") == 300
        assert parse_duration("3ч") == 10800
        assert parse_duration("10   сек") == 10

    def test_case_insensitive_and_trimmed(self):
        assert parse_duration("  5 МИНУТ ") == 300
        assert parse_duration("1 Час") == 3600

    def test_grammatical_variants(self):
        assert parse_duration("1 минуту") == 60
        assert parse_duration("1 минута") == 60
        assert parse_duration("3 минуты") == 180
        assert parse_duration("5 часов") == 18000
        assert parse_duration("1 секунду") == 1

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "минут",
            "5",
            "5 лет",
            "5 minutes",
            "пять минут",
            "-5 минут",
            "5.5 минут",
            "5 минут 30 секунд",
            "через 5 минут",
            "5 мин ут",
        ],
    )
    def test_not_understood(self, text):
        assert parse_duration(text) is None

    def test_no_unit_is_never_assumed(self):
        assert parse_duration("300") is None

    def test_zero_is_not_understood(self):
        assert parse_duration("0 минут") is None
        assert parse_duration("000 сек") is None

    def test_overflow_is_not_understood(self):
        assert parse_duration(f"{MAX_DURATION_SECONDS} сек") == MAX_DURATION_SECONDS
        assert parse_duration(f"{MAX_DURATION_SECONDS + 1} сек") is None
        assert parse_duration(f"{MAX_DURATION_SECONDS} часов") is None
        assert parse_duration("9" * 5000 + " сек") is None

    def test_leading_zeros(self):
        assert parse_duration("0005 мин") == 300

    def test_non_ascii_digits_rejected(self):
        assert parse_duration("٥ минут") is None

    def test_non_string_input(self):
        assert parse_duration(None) is None
        assert parse_duration(5) is None


class TestFormatDuration:
    """Test the human-readable approximation."""

    @pytest.mark.parametrize("seconds", [0, 1, 30, 59])
    def test_seconds_range(self, seconds):
        assert format_duration(seconds) == f"{seconds} сек"

    @pytest.mark.parametrize(
        "seconds,expected",
        [(60, "1 мин"), (119, "1 мин"), (300, "5 мин"), (3599, "59 мин")],
    )
    def test_minutes_range_floors(self, seconds, expected):
        assert format_duration(seconds) == expected

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (3600, "1 ч"),
            (3659, "1 ч"),
            (3660, "1 ч 1 мин"),
            (7200, "2 ч"),
            (9000, "2 ч 30 мин"),
            (90000, "25 ч"),
        ],
    )
    def test_hours_range(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_fractional_seconds_floor(self):
        assert format_duration(59.9) == "59 сек"
        assert format_duration(299.7) == "4 мин"

    def test_negative_clamped(self):
        assert format_duration(-5) == "0 сек"

    @pytest.mark.parametrize("seconds", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_formats_as_zero(self, seconds):
        assert format_duration(seconds) == "0 сек"


class TestSplitReminderRequest:
    """Test splitting "<note> через <duration>" requests."""

    def test_basic(self):
        assert split_reminder_request("купить молоко через 5 минут") == ("купить молоко", "5 минут")

    def test_last_separator_wins(self):
        assert split_reminder_request("узнать через кого заказать через 2 часа") == (
            "узнать через кого заказать",
            "2 часа",
        )

    @pytest.mark.parametrize(
        "raw",
        ["купить молоко", " через 5 минут", "купить молоко через ", "", None],
    )
    def test_incomplete(self, raw):
        assert split_reminder_request(raw) is None
