"""
Subscription expiry status.

status is derived from expiry_date and "today" only:
  expired   - days_remaining < 0
  expiring  - 0 <= days_remaining <= EXPIRING_THRESHOLD_DAYS
  active    - otherwise

The expiring threshold is a display rule. Reminder emails use the user's own
reminder_days (see reminder_selection), the two are independent.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime

STATUS_ACTIVE = "active"
STATUS_EXPIRING = "expiring"
STATUS_EXPIRED = "expired"
VALID_STATUSES = {STATUS_ACTIVE, STATUS_EXPIRING, STATUS_EXPIRED}

EXPIRING_THRESHOLD_DAYS = 7

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


class InvalidDateError(ValueError):
    pass


@dataclass(frozen=True)
class StatusClassification:
    status: str
    days_remaining: int


def _as_date(value: date | datetime) -> date:
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def compute_days_remaining(expiry_date: date | datetime, today: date | datetime) -> int:
    """Whole calendar days from today until expiry_date (negative once past)."""
    return (_as_date(expiry_date) - _as_date(today)).days


def status_for_days(days_remaining: int) -> str:
    if days_remaining < 0:
        return STATUS_EXPIRED
    if days_remaining <= EXPIRING_THRESHOLD_DAYS:
        return STATUS_EXPIRING
    return STATUS_ACTIVE


def classify(expiry_date: date | datetime, today: date | datetime) -> StatusClassification:
    """Return (status, days_remaining) for a subscription expiring on expiry_date."""
    days = compute_days_remaining(expiry_date, today)
    return StatusClassification(status=status_for_days(days), days_remaining=days)


def parse_calendar_date(value: str | date | datetime | None) -> date:
    """
    Parse a form value (YYYY-MM-DD, or a full ISO datetime) into a date.

    Raises InvalidDateError for empty or unparseable values, so callers can
    reject the input before classify() ever sees it.
    """
    if isinstance(value, (date, datetime)):
        return _as_date(value)
    if not value or not str(value).strip():
        raise InvalidDateError("日期不能為空")
    text = str(value).strip()
    if not _ISO_DATE.match(text):
        raise InvalidDateError(f"日期格式錯誤: {value}")
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidDateError(f"日期格式錯誤: {value}")
