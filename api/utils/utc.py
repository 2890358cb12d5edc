from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from api.settings import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcfromtimestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, timezone.utc)


def exam_timezone() -> ZoneInfo:
    return ZoneInfo(settings.exam_timezone)


def parse_datetime(value: str | int | float | None) -> datetime | None:
    """Parse a HubSpot datetime value (epoch milliseconds or ISO 8601) into an aware datetime."""

    if value is None or value == "":
        return None

    if isinstance(value, (int, float)) or value.isdigit():
        return utcfromtimestamp(int(value) / 1000)

    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=exam_timezone())
    return dt


def parse_date(value: str | int | float | None) -> date | None:
    """Parse a HubSpot date property (`YYYY-MM-DD` or epoch milliseconds at midnight UTC)."""

    if value is None or value == "":
        return None

    if isinstance(value, (int, float)) or value.isdigit():
        return utcfromtimestamp(int(value) / 1000).date()

    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def local_today() -> date:
    return utcnow().astimezone(exam_timezone()).date()
