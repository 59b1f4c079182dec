"""
"Today" in the application timezone
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from subtrack.config import get_settings


def local_today() -> date:
    """Current calendar date in settings.TIMEZONE"""
    return datetime.now(ZoneInfo(get_settings().TIMEZONE)).date()
