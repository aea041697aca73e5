import math
from datetime import datetime, timedelta
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from config import DAY_KEY_TIMEZONE

SCHOOL_TZ = ZoneInfo(DAY_KEY_TIMEZONE)


def get_today_key(moment: Optional[datetime] = None) -> str:
    """YYYY-MM-DD of ``moment`` (default: now) on the school clock.

    Naive datetimes are taken as UTC.
    """
    if moment is None:
        moment = datetime.now(SCHOOL_TZ)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    return moment.astimezone(SCHOOL_TZ).strftime("%Y-%m-%d")


def get_week(moment: Optional[datetime] = None) -> Dict[str, str]:
    """Sunday 00:00 through Saturday 23:59:59.999 of the school week containing ``moment``."""
    local = (moment or datetime.now(SCHOOL_TZ))
    if local.tzinfo is None:
        local = local.replace(tzinfo=ZoneInfo("UTC"))
    local = local.astimezone(SCHOOL_TZ)

    days_since_sunday = (local.weekday() + 1) % 7
    sunday = (local - timedelta(days=days_since_sunday)).replace(hour=0, minute=0, second=0, microsecond=0)
    saturday = (sunday + timedelta(days=6)).replace(hour=23, minute=59, second=59, microsecond=999000)
    return {
        "start_iso": sunday.isoformat(),
        "end_iso": saturday.isoformat(),
        "key": f"{sunday.year}-W{math.ceil(sunday.day / 7):02d}",
    }
