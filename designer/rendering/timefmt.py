"""
时间相关的格式化：时区解析、时钟、日期、倒计时和天数计算。
"""

import logging
import math
import os
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

LOCAL_TIMEZONE = "local"

_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
_MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


# ── 时区 ──────────────────────────────────────────────

def detect_local_timezone(default: str = "UTC") -> str:
    """Best-effort IANA name of the host zone."""
    env = os.environ.get("TZ", "").lstrip(":")
    if env:
        return env
    try:
        with open("/etc/timezone", encoding="utf-8") as f:
            name = f.read().strip()
            if name:
                return name
    except OSError:
        pass
    try:
        target = os.path.realpath("/etc/localtime")
        if "zoneinfo/" in target:
            return target.split("zoneinfo/", 1)[1]
    except OSError:
        pass
    return default


def resolve_timezone(name: Optional[str], local_timezone: Optional[str] = None, default: str = "UTC") -> str:
    """'local' and empty map to the detected (or configured) local zone."""
    if not name or name == LOCAL_TIMEZONE:
        return local_timezone or detect_local_timezone(default)
    return name


def get_zone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', falling back to UTC")
        return timezone.utc


def now_in(tz_name: str, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(get_zone(tz_name))


# ── 时钟 / 日期 ──────────────────────────────────────────

def format_clock(moment: datetime, hour12: bool = False, show_seconds: bool = False) -> str:
    """en-US 2-digit time: ``09:05``, ``09:05:07`` or ``09:05 PM``."""
    if hour12:
        hour = moment.hour % 12 or 12
        text = f"{hour:02d}:{moment.minute:02d}"
        if show_seconds:
            text += f":{moment.second:02d}"
        return f"{text} {'AM' if moment.hour < 12 else 'PM'}"
    text = f"{moment.hour:02d}:{moment.minute:02d}"
    if show_seconds:
        text += f":{moment.second:02d}"
    return text


def date_parts(config: Dict[str, Any]) -> Dict[str, bool]:
    weekday = config.get("showWeekday")
    if weekday is None:
        weekday = config.get("showDayOfWeek")
    parts = {
        "weekday": bool(weekday) if weekday is not None else False,
        "day": config.get("showDay", True) is not False,
        "month": config.get("showMonth", True) is not False,
        "year": config.get("showYear", True) is not False,
    }
    if not any(parts.values()):
        parts.update(day=True, month=True, year=True)
    return parts


def format_date(moment: date, weekday: bool = False, day: bool = True, month: bool = True, year: bool = True) -> str:
    """
    en-US long date, e.g. ``Monday, January 5, 2026``.

    Partial combinations follow the same ordering: ``January 5``, ``January 2026``,
    ``Monday 5``, ``5, 2026``.
    """
    weekday_name = _WEEKDAYS[moment.weekday()]
    month_name = _MONTHS[moment.month - 1]

    if month and day:
        body = f"{month_name} {moment.day}"
        if year:
            body += f", {moment.year}"
    elif month:
        body = f"{month_name} {moment.year}" if year else month_name
    elif day:
        body = f"{moment.day}, {moment.year}" if year else str(moment.day)
    else:
        body = str(moment.year) if year else ""

    if weekday:
        if not body:
            return weekday_name
        sep = ", " if month else " "
        return f"{weekday_name}{sep}{body}"
    return body


def seconds_until_midnight(tz_name: str, now: Optional[datetime] = None) -> float:
    """Seconds until the next midnight in the given zone (not the host zone)."""
    local = now_in(tz_name, now)
    tomorrow = (local + timedelta(days=1)).date()
    midnight = datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=local.tzinfo)
    return (midnight - local).total_seconds()


# ── 倒计时 ──────────────────────────────────────────────

EXPIRED_LABEL = "Expired"


@dataclass(frozen=True)
class Remaining:
    days: int
    hours: int
    minutes: int
    seconds: int

    @property
    def expired(self) -> bool:
        return self.days == self.hours == self.minutes == self.seconds == 0


def parse_target(value: Any, tz_name: str = "UTC") -> Optional[datetime]:
    if isinstance(value, datetime):
        target = value
    elif isinstance(value, date):
        target = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value:
        try:
            target = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Invalid target date '{value}'")
            return None
    else:
        return None
    if target.tzinfo is None:
        target = target.replace(tzinfo=get_zone(tz_name))
    return target


def decompose(target: datetime, now: datetime) -> Remaining:
    """Whole days/hours/minutes/seconds left; all zero once the target has passed."""
    diff = (target - now).total_seconds()
    if diff <= 0:
        return Remaining(0, 0, 0, 0)
    total = int(diff)
    return Remaining(total // 86400, total % 86400 // 3600, total % 3600 // 60, total % 60)


def countdown_text(config: Dict[str, Any], target: Optional[datetime], now: datetime) -> str:
    label = config.get("label") or "Countdown"
    if target is None or (target - now).total_seconds() <= 0:
        return f"{label}\n{EXPIRED_LABEL}"

    left = decompose(target, now)
    parts = []
    if config.get("showDays") is not False and left.days > 0:
        parts.append(f"{left.days}d")
    if config.get("showHours") is not False:
        parts.append(f"{left.hours}h")
    if config.get("showMinutes") is not False:
        parts.append(f"{left.minutes}m")
    if config.get("showSeconds"):
        parts.append(f"{left.seconds}s")
    return f"{label}\n{' '.join(parts)}"


def days_until(target: date, today: date) -> int:
    """Whole days between two calendar dates, counted in the past as well."""
    diff = (datetime(target.year, target.month, target.day) - datetime(today.year, today.month, today.day))
    return abs(math.ceil(diff.total_seconds() / 86400))
