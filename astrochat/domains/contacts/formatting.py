from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo

YESTERDAY_LABEL = "Yesterday"


def relative_timestamp(moment: datetime | None, now: datetime, tz: tzinfo = timezone.utc) -> str:
    """Chat-list label: time of day for today, ``Yesterday``, otherwise the calendar date."""
    if moment is None:
        return ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(tz)
    today = now.astimezone(tz).date()
    if local.date() == today:
        return local.strftime("%H:%M")
    if local.date() == today - timedelta(days=1):
        return YESTERDAY_LABEL
    return local.date().isoformat()


__all__ = ["YESTERDAY_LABEL", "relative_timestamp"]
