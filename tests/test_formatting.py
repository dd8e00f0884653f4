from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from astrochat.domains.contacts.formatting import YESTERDAY_LABEL, relative_timestamp

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def test_today_shows_time_of_day():
    assert relative_timestamp(datetime(2024, 5, 10, 8, 5, tzinfo=timezone.utc), NOW) == "08:05"


def test_yesterday_label():
    assert relative_timestamp(datetime(2024, 5, 9, 23, 59, tzinfo=timezone.utc), NOW) == YESTERDAY_LABEL


def test_older_shows_date():
    assert relative_timestamp(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc), NOW) == "2024-05-01"


def test_missing_moment_is_blank():
    assert relative_timestamp(None, NOW) == ""


def test_naive_moment_is_read_as_utc():
    assert relative_timestamp(datetime(2024, 5, 10, 7, 30), NOW) == "07:30"


def test_display_timezone_shifts_the_day():
    # 23:30 UTC on the 9th is already the 10th in Madrid
    tz = ZoneInfo("Europe/Madrid")
    assert relative_timestamp(datetime(2024, 5, 9, 23, 30, tzinfo=timezone.utc), NOW, tz) == "01:30"
