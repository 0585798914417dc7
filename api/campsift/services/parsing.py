from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONTHS: dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
AND_UP_MAX_AGE = 18

_DASH = r"(?:-|–|—|to|through|thru)"
_MONTH_DAY_RANGE_RE = re.compile(
    rf"\b([a-z]+)\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\s*{_DASH}\s*(\d{{1,2}})(?:st|nd|rd|th)?,?\s*(\d{{4}})\b"
)
_MONTH_TO_MONTH_RANGE_RE = re.compile(
    rf"\b([a-z]+)\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\s*{_DASH}\s*([a-z]+)\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s*(\d{{4}})\b"
)
_NUMERIC_RANGE_RE = re.compile(
    rf"(\d{{1,2}})/(\d{{1,2}})/(\d{{4}})\s*{_DASH}\s*(\d{{1,2}})/(\d{{1,2}})/(\d{{4}})"
)
_SUMMER_RE = re.compile(r"\bsummer\s+(\d{4})\b")
_TIME_RANGE_RE = re.compile(
    rf"(\d{{1,2}})(?::(\d{{2}}))?\s*([ap])?\.?\s*(?:m\.?)?\s*{_DASH}\s*(\d{{1,2}})(?::(\d{{2}}))?\s*([ap])?\.?\s*(?:m\b\.?)?"
)
_FREE_RE = re.compile(r"\bfree\b", re.IGNORECASE)
_PRICE_RE = re.compile(r"(\d[\d,]*)(?:\.(\d+))?")
_GRADE_TOKEN = r"(pre-?k|k|\d{1,2})"
_GRADE_RANGE_RE = re.compile(
    rf"(?:grades?\s*)?{_GRADE_TOKEN}\s*(?:st|nd|rd|th)?\s*(?:-|–|—|to)\s*{_GRADE_TOKEN}\s*(?:st|nd|rd|th)?(?:\s*grades?)?"
)
_GRADE_HINT_RE = re.compile(r"\bgrades?\b|\bpre-?k\b|\bk\b|\d(?:st|nd|rd|th)\b")
_AGE_RANGE_RE = re.compile(r"(\d{1,2})\s*(?:-|–|—|to)\s*(\d{1,2})")
_AGE_AND_UP_RE = re.compile(r"(\d{1,2})\s*(?:\+|and\s*up|and\s*older|&\s*up)")


@dataclass(slots=True, frozen=True)
class ParsedDateRange:
    start_date: str
    end_date: str
    is_flexible: bool = False


@dataclass(slots=True, frozen=True)
class ParsedTimeRange:
    drop_off_hour: int
    drop_off_minute: int
    pick_up_hour: int
    pick_up_minute: int


@dataclass(slots=True, frozen=True)
class ParsedAgeRange:
    min_age: int | None = None
    max_age: int | None = None
    min_grade: int | None = None
    max_grade: int | None = None

    @property
    def is_grade_range(self) -> bool:
        return self.min_grade is not None or self.max_grade is not None


def round_half_up(value: float | Decimal) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    candidate = value.strip()
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", candidate):
        return None
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        return None


def parse_date_range(text: str | None) -> ParsedDateRange | None:
    if not text:
        return None
    normalized = text.strip().lower()

    match = _MONTH_TO_MONTH_RANGE_RE.search(normalized)
    if match and match.group(1) in MONTHS and match.group(3) in MONTHS:
        year = int(match.group(5))
        return _build_range(
            (year, MONTHS[match.group(1)], int(match.group(2))),
            (year, MONTHS[match.group(3)], int(match.group(4))),
        )

    match = _MONTH_DAY_RANGE_RE.search(normalized)
    if match and match.group(1) in MONTHS:
        year = int(match.group(4))
        month = MONTHS[match.group(1)]
        return _build_range((year, month, int(match.group(2))), (year, month, int(match.group(3))))

    match = _NUMERIC_RANGE_RE.search(normalized)
    if match:
        return _build_range(
            (int(match.group(3)), int(match.group(1)), int(match.group(2))),
            (int(match.group(6)), int(match.group(4)), int(match.group(5))),
        )

    match = _SUMMER_RE.search(normalized)
    if match:
        year = int(match.group(1))
        return ParsedDateRange(
            start_date=date(year, 6, 1).isoformat(),
            end_date=date(year, 8, 31).isoformat(),
            is_flexible=True,
        )

    return None


def parse_time_range(text: str | None) -> ParsedTimeRange | None:
    if not text:
        return None
    match = _TIME_RANGE_RE.search(text.strip().lower())
    if not match:
        return None

    drop_off_hour = int(match.group(1))
    drop_off_minute = int(match.group(2) or 0)
    drop_off_period = match.group(3)
    pick_up_hour = int(match.group(4))
    pick_up_minute = int(match.group(5) or 0)
    pick_up_period = match.group(6)

    if drop_off_period is None and pick_up_period is not None:
        # "9-3pm": borrow the pick-up meridiem only if drop-off stays earlier.
        if _to_24_hour(drop_off_hour, pick_up_period) <= _to_24_hour(pick_up_hour, pick_up_period):
            drop_off_period = pick_up_period

    drop_off_hour = _to_24_hour(drop_off_hour, drop_off_period)
    pick_up_hour = _to_24_hour(pick_up_hour, pick_up_period)
    if pick_up_period is None and pick_up_hour < 6:
        pick_up_hour += 12

    if not (0 <= drop_off_hour <= 23 and 0 <= pick_up_hour <= 23):
        return None
    if not (0 <= drop_off_minute <= 59 and 0 <= pick_up_minute <= 59):
        return None

    return ParsedTimeRange(
        drop_off_hour=drop_off_hour,
        drop_off_minute=drop_off_minute,
        pick_up_hour=pick_up_hour,
        pick_up_minute=pick_up_minute,
    )


def parse_price(text: str | None) -> int | None:
    if not text:
        return None
    if _FREE_RE.search(text):
        return 0

    match = _PRICE_RE.search(text)
    if not match:
        return None
    whole = match.group(1).replace(",", "")
    fraction = match.group(2) or "0"
    try:
        dollars = Decimal(f"{whole}.{fraction}")
    except InvalidOperation:
        return None
    return round_half_up(dollars * 100)


def parse_age_range(text: str | None) -> ParsedAgeRange | None:
    if not text:
        return None
    normalized = text.strip().lower()

    if _GRADE_HINT_RE.search(normalized):
        match = _GRADE_RANGE_RE.search(normalized)
        if match:
            return ParsedAgeRange(
                min_grade=_grade_value(match.group(1)),
                max_grade=_grade_value(match.group(2)),
            )

    match = _AGE_RANGE_RE.search(normalized)
    if match:
        return ParsedAgeRange(min_age=int(match.group(1)), max_age=int(match.group(2)))

    match = _AGE_AND_UP_RE.search(normalized)
    if match:
        return ParsedAgeRange(min_age=int(match.group(1)), max_age=AND_UP_MAX_AGE)

    return None


def _build_range(start: tuple[int, int, int], end: tuple[int, int, int]) -> ParsedDateRange | None:
    try:
        start_date = date(*start)
        end_date = date(*end)
    except ValueError:
        return None
    return ParsedDateRange(start_date=start_date.isoformat(), end_date=end_date.isoformat())


def _to_24_hour(hour: int, period: str | None) -> int:
    if period == "p" and hour != 12:
        return hour + 12
    if period == "a" and hour == 12:
        return 0
    return hour


def _grade_value(token: str) -> int:
    if token == "k":
        return 0
    if token.startswith("pre"):
        return -1
    return int(token)
