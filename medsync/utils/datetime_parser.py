import re
import calendar
import logging
from typing import Any, Optional
from datetime import date, datetime
import dateparser

logger = logging.getLogger(__name__)


ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

TIME_PATTERN = re.compile(
    r"^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?(?::\d{2}(?:\.\d+)?)?\s*(?P<meridiem>[AaPp]\.?[Mm]\.?)?$"
)

# Time part of an ISO timestamp, with an optional Z or numeric offset.
ISO_TIME_PATTERN = re.compile(r"^(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)(?:Z|[+\-]\d{2}:?\d{2})?$")

DEFAULT_TIME = "00:00"


#------This Function parses a calendar date from any input---------
def parse_calendar_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if "T" in text:
        text = text.split("T", 1)[0]

    if ISO_DATE_PATTERN.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None

    settings = {
        "RETURN_AS_TIMEZONE_AWARE": False,
        "PREFER_DAY_OF_MONTH": "first",
    }

    try:
        parsed = dateparser.parse(text, settings=settings)
    except Exception as e:
        logger.debug(f"[DATES] Failed to parse date '{text}': {e}")
        return None

    return parsed.date() if parsed else None


#------This Function canonicalizes a date partition key---------
def canonical_date_string(value: Any) -> str:
    """Return the ``YYYY-MM-DD`` key for ``value`` without any timezone shift.

    Strings that already carry a date prefix keep exactly that prefix, so an
    ISO timestamp such as ``2025-06-10T23:30:00-05:00`` stays on the 10th.
    Anything unparseable yields an empty string, which matches no date.
    """
    if isinstance(value, str):
        text = value.strip()
        prefix = text.split("T", 1)[0].split(" ", 1)[0]
        if ISO_DATE_PATTERN.match(prefix):
            try:
                date.fromisoformat(prefix)
            except ValueError:
                logger.debug(f"[DATES] Impossible calendar date '{prefix}'")
                return ""
            return prefix

    parsed = parse_calendar_date(value)
    return parsed.isoformat() if parsed else ""


#------This Function normalizes a time of day to HH:MM---------
def normalize_time(value: Any, default: str = DEFAULT_TIME) -> str:
    if value is None:
        return default

    if isinstance(value, datetime):
        return value.strftime("%H:%M")

    text = str(value).strip()
    if "T" in text:
        iso_match = ISO_TIME_PATTERN.match(text.split("T", 1)[1])
        if not iso_match:
            return default
        text = iso_match.group(1)

    match = TIME_PATTERN.match(text)
    if not match:
        return default

    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    meridiem = (match.group("meridiem") or "").replace(".", "").lower()

    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        return default

    return f"{hour:02d}:{minute:02d}"


def time_to_minutes(value: str) -> int:
    try:
        hours, minutes = value.split(":")[:2]
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError):
        return 0


#------This Function adds calendar months to a date---------
def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
