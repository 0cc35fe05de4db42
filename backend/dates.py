"""
Resolve free-text date phrases to ISO dates (YYYY-MM-DD).

Each rule is a (pattern, extractor) pair. Rules are tried in priority
order: absolute dates, weekday phrases, relative days, relative spans.
An extractor returns None when its match does not make a valid date, in
which case later matches and rules are tried. Nothing recognised means
today.

Numeric dates are read month first (6/15/2026). When the first number
cannot be a month (15/6/2026) the day-first reading is the only valid one
and is used instead.
"""
import re
from datetime import date, timedelta
from typing import Callable, Optional

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

_MONTH = "(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")\.?"
_WEEKDAY = "(" + "|".join(WEEKDAYS) + ")"
_ORDINAL = r"(?:st|nd|rd|th)?"
_COUNT = r"(\d{1,4}|" + "|".join(NUMBER_WORDS) + ")"


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _roll_forward(month: int, day: int, today: date) -> Optional[date]:
    """A yearless date that has already passed this year means next year."""
    candidate = _safe_date(today.year, month, day)
    if candidate is None:
        return None
    if candidate < today:
        return _safe_date(today.year + 1, month, day)
    return candidate


def _month_day(first: int, second: int) -> Optional[tuple[int, int]]:
    if first <= 12:
        return first, second
    if second <= 12:
        return second, first
    return None


def _count(word: str) -> int:
    return int(word) if word.isdigit() else NUMBER_WORDS[word]


# Absolute dates

def _iso(match: re.Match, today: date) -> Optional[date]:
    year, month, day = (int(g) for g in match.groups())
    return _safe_date(year, month, day)


def _day_month_year(match: re.Match, today: date) -> Optional[date]:
    day, month, year = match.groups()
    return _safe_date(int(year), MONTHS[month], int(day))


def _month_day_year(match: re.Match, today: date) -> Optional[date]:
    month, day, year = match.groups()
    return _safe_date(int(year), MONTHS[month], int(day))


def _numeric_with_year(match: re.Match, today: date) -> Optional[date]:
    first, second, year = (int(g) for g in match.groups())
    parts = _month_day(first, second)
    return _safe_date(year, *parts) if parts else None


def _day_month(match: re.Match, today: date) -> Optional[date]:
    day, month = match.groups()
    return _roll_forward(MONTHS[month], int(day), today)


def _month_day_only(match: re.Match, today: date) -> Optional[date]:
    month, day = match.groups()
    return _roll_forward(MONTHS[month], int(day), today)


def _numeric(match: re.Match, today: date) -> Optional[date]:
    parts = _month_day(int(match.group(1)), int(match.group(2)))
    return _roll_forward(*parts, today) if parts else None


# Weekday phrases

def _weekday_next_week(match: re.Match, today: date) -> Optional[date]:
    target = WEEKDAYS.index(match.group(1))
    next_monday = today - timedelta(days=today.weekday()) + timedelta(days=7)
    return next_monday + timedelta(days=target)


def _weekday_coming(match: re.Match, today: date) -> Optional[date]:
    offset = (WEEKDAYS.index(match.group(1)) - today.weekday()) % 7
    return today + timedelta(days=offset or 7)


def _weekday(match: re.Match, today: date) -> Optional[date]:
    offset = (WEEKDAYS.index(match.group(1)) - today.weekday()) % 7
    return today + timedelta(days=offset)


# Relative days and spans

def _offset(days: int) -> Callable[[re.Match, date], Optional[date]]:
    def extract(match: re.Match, today: date) -> Optional[date]:
        return today + timedelta(days=days)
    return extract


def _in_days(match: re.Match, today: date) -> Optional[date]:
    return today + timedelta(days=_count(match.group(1)))


def _in_weeks(match: re.Match, today: date) -> Optional[date]:
    return today + timedelta(weeks=_count(match.group(1)))


DateRule = tuple[re.Pattern, Callable[[re.Match, date], Optional[date]]]

DATE_RULES: list[DateRule] = [
    (re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b"), _iso),
    (re.compile(rf"\b(\d{{1,2}}){_ORDINAL}\s+(?:of\s+)?{_MONTH},?\s+(\d{{4}})\b"), _day_month_year),
    (re.compile(rf"\b{_MONTH}\s+(\d{{1,2}}){_ORDINAL},?\s+(\d{{4}})\b"), _month_day_year),
    (re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b"), _numeric_with_year),
    (re.compile(rf"\b(\d{{1,2}}){_ORDINAL}\s+(?:of\s+)?{_MONTH}\b"), _day_month),
    (re.compile(rf"\b{_MONTH}\s+(\d{{1,2}}){_ORDINAL}\b(?!\s*(?::|[ap]\.?m\b))"), _month_day_only),
    (re.compile(r"\b(\d{1,2})/(\d{1,2})\b(?!/)"), _numeric),

    (re.compile(rf"\bnext\s+week(?:'s)?\s+(?:on\s+)?{_WEEKDAY}\b"), _weekday_next_week),
    (re.compile(rf"\b{_WEEKDAY}\s+(?:of\s+)?next\s+week\b"), _weekday_next_week),
    (re.compile(rf"\b(?:next|coming|this\s+coming)\s+{_WEEKDAY}\b"), _weekday_coming),
    (re.compile(rf"\b{_WEEKDAY}\b"), _weekday),

    (re.compile(r"\bday\s+after\s+tomorrow\b"), _offset(2)),
    (re.compile(r"\b(?:tomorrow|tmrw)\b"), _offset(1)),
    (re.compile(r"\b(?:today|tonight)\b"), _offset(0)),

    (re.compile(r"\bnext\s+week\b"), _offset(7)),
    (re.compile(rf"\bin\s+{_COUNT}\s+days?\b"), _in_days),
    (re.compile(rf"\bin\s+{_COUNT}\s+weeks?\b"), _in_weeks),
]


def resolve_date(text: str, today: Optional[date] = None) -> str:
    """Return the ISO date text refers to, anchored on today."""
    today = today or date.today()
    lowered = (text or "").lower()
    for pattern, extract in DATE_RULES:
        for match in pattern.finditer(lowered):
            found = extract(match, today)
            if found is not None:
                return found.isoformat()
    return today.isoformat()
