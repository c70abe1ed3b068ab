import logging
from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from .. import config

logger = logging.getLogger(__name__)

UPCOMING = "upcoming"
LIVE = "live"
COMPLETED = "completed"

DateLike = Union[str, date, datetime, None]


def _timezone() -> ZoneInfo:
    return ZoneInfo(config.EVENT_TIMEZONE)


def now_tz() -> datetime:
    return datetime.now(_timezone())


def ensure_timezone(dt: datetime) -> datetime:
    tz = _timezone()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _parse(value: DateLike) -> Union[date, datetime, None]:
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return value
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    # fromisoformat only learned the "Z" suffix in 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def derive_status(event_date: DateLike, now: Optional[datetime] = None) -> str:
    """
    Work out an event's lifecycle state from its stored date.

    The comparison happens in the configured event timezone: ``live`` when
    the event falls on today's calendar day there, ``upcoming`` when it is
    later, ``completed`` otherwise. A missing or unparseable date counts
    as upcoming.
    """
    now = ensure_timezone(now or now_tz())
    try:
        parsed = _parse(event_date)
    except ValueError:
        logger.warning("Unparseable event date %r", event_date)
        return UPCOMING
    if parsed is None:
        return UPCOMING

    if isinstance(parsed, datetime):
        moment = ensure_timezone(parsed)
        if moment.date() == now.date():
            return LIVE
        return UPCOMING if moment > now else COMPLETED

    if parsed == now.date():
        return LIVE
    return UPCOMING if parsed > now.date() else COMPLETED
