"""
Resolve free-text time phrases to a 24-hour (start, end) pair.

Rules are (pattern, extractor) pairs tried in order. An extractor may
return None to let later matches and rules have a go. Tasks never span
midnight: any end at or past 24:00 is clamped to 23:59.

A bare hour after "at" ("gym at 7") is read on the 24-hour clock, so
"at 3" is 03:00. Add am/pm or minutes to mean the afternoon.
"""
import re
from typing import Callable, NamedTuple, Optional

DEFAULT_START = "09:00"
DEFAULT_DURATION = 60  # minutes
LAST_MINUTE = 23 * 60 + 59


class TimeRange(NamedTuple):
    start: str
    end: str


def to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def add_minutes(hhmm: str, minutes: int) -> str:
    """Shift a time, clamping at 23:59 so the result stays on the same day."""
    return format_minutes(min(to_minutes(hhmm) + minutes, LAST_MINUTE))


def _to_24h(hour: int, meridiem: str) -> int:
    if meridiem == "p" and hour != 12:
        return hour + 12
    if meridiem == "a" and hour == 12:
        return 0
    return hour


def _build(start: int, end: Optional[int] = None) -> TimeRange:
    # A start of 23:59 leaves no room for an end on the same day
    start = min(start, LAST_MINUTE - 1)
    if end is None or end <= start:
        end = start + DEFAULT_DURATION
    return TimeRange(format_minutes(start), format_minutes(min(end, LAST_MINUTE)))


def clamp_range(start: str, end: Optional[str] = None) -> TimeRange:
    """Same-day range for HH:MM strings; an end missing or not after start becomes start + 1 hour."""
    return _build(to_minutes(start), to_minutes(end) if end else None)


_MERIDIEM = r"([ap])\.?m\.?(?![a-z])"
_SEPARATOR = r"\s*(?:-|–|to|until|till)\s*"


def _meridiem_range(match: re.Match) -> Optional[TimeRange]:
    start_h, start_m, start_mer, end_h, end_m, end_mer = match.groups()
    start_h, end_h = int(start_h), int(end_h)
    start_m, end_m = int(start_m or 0), int(end_m or 0)
    if not (1 <= start_h <= 12 and 1 <= end_h <= 12) or start_m > 59 or end_m > 59:
        return None

    end = _to_24h(end_h, end_mer) * 60 + end_m
    if start_mer:
        start = _to_24h(start_h, start_mer) * 60 + start_m
    else:
        # "2-4pm": the start borrows the trailing meridiem unless that puts it after the end ("11-1pm")
        start = _to_24h(start_h, end_mer) * 60 + start_m
        if start >= end:
            flipped = _to_24h(start_h, "a" if end_mer == "p" else "p") * 60 + start_m
            if flipped < end:
                start = flipped
    return _build(start, end)


def _clock_range(match: re.Match) -> Optional[TimeRange]:
    start_h, start_m, end_h, end_m = (int(g) for g in match.groups())
    return _build(start_h * 60 + start_m, end_h * 60 + end_m)


def _meridiem_time(match: re.Match) -> Optional[TimeRange]:
    hour, minutes, meridiem = match.groups()
    hour, minutes = int(hour), int(minutes or 0)
    if not 1 <= hour <= 12 or minutes > 59:
        return None
    return _build(_to_24h(hour, meridiem) * 60 + minutes)


def _named_time(match: re.Match) -> Optional[TimeRange]:
    return _build(0 if match.group(1) == "midnight" else 12 * 60)


def _clock_time(match: re.Match) -> Optional[TimeRange]:
    hour, minutes = (int(g) for g in match.groups())
    return _build(hour * 60 + minutes)


def _bare_hour(match: re.Match) -> Optional[TimeRange]:
    hour = int(match.group(1))
    if hour > 23:
        return None
    return _build(hour * 60)


TimeRule = tuple[re.Pattern, Callable[[re.Match], Optional[TimeRange]]]

TIME_RULES: list[TimeRule] = [
    (re.compile(rf"\b(\d{{1,2}})(?::(\d{{2}}))?\s*(?:([ap])\.?m\.?)?{_SEPARATOR}(\d{{1,2}})(?::(\d{{2}}))?\s*{_MERIDIEM}"),
     _meridiem_range),
    (re.compile(rf"\b([01]?\d|2[0-3]):([0-5]\d){_SEPARATOR}([01]?\d|2[0-3]):([0-5]\d)\b"), _clock_range),
    (re.compile(rf"\b(\d{{1,2}})(?::(\d{{2}}))?\s*{_MERIDIEM}"), _meridiem_time),
    (re.compile(r"\b(noon|midday|midnight)\b"), _named_time),
    (re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b"), _clock_time),
    (re.compile(r"\bat\s+(\d{1,2})\b(?![:/.-]\d)"), _bare_hour),
]


def resolve_time(text: str) -> TimeRange:
    """Find the first time or time range in text; defaults to 09:00-10:00."""
    lowered = (text or "").lower()
    for pattern, extract in TIME_RULES:
        for match in pattern.finditer(lowered):
            found = extract(match)
            if found is not None:
                return found
    return _build(to_minutes(DEFAULT_START))
